"""Tests for parsing raw model output."""

import pytest

from prio_router.errors import MalformedProviderOutput
from prio_router.models import AiRequest, Quadrant, RequestType
from prio_router.parsing import (
    extract_json_object,
    parse_action_items,
    parse_briefing,
    parse_general,
    parse_priority,
    parse_smart_goal,
    parse_task,
)


def _request(kind: RequestType = RequestType.CLASSIFY_PRIORITY, text: str = "Call mom") -> AiRequest:
    return AiRequest(kind, text)


class TestExtractJsonObject:
    """Locating JSON in chatty model output."""

    def test_fenced_block(self) -> None:
        raw = 'Here you go:\n```json\n{"quadrant": "Q1"}\n```\nAnything else?'
        assert extract_json_object(raw) == {"quadrant": "Q1"}

    def test_prose_around_object(self) -> None:
        raw = 'Sure! {"quadrant": "DELEGATE", "confidence": 0.8} Hope this helps {x}'
        assert extract_json_object(raw)["quadrant"] == "DELEGATE"

    def test_nested_braces_and_braces_in_strings(self) -> None:
        raw = '{"explanation": "has } and { inside", "meta": {"a": {"b": 1}}} trailing'
        data = extract_json_object(raw)
        assert data["explanation"] == "has } and { inside"
        assert data["meta"] == {"a": {"b": 1}}

    def test_escaped_quote_in_string(self) -> None:
        data = extract_json_object(r'{"title": "Say \"hi\" {now}"}')
        assert data["title"] == 'Say "hi" {now}'

    def test_skips_invalid_candidate(self) -> None:
        assert extract_json_object('{not json} then {"quadrant": "Q3"}') == {"quadrant": "Q3"}

    @pytest.mark.parametrize("raw", ["", "   ", "no json here", "[1, 2, 3]", '{"open": '])
    def test_raises_when_nothing_usable(self, raw: str) -> None:
        with pytest.raises(MalformedProviderOutput):
            extract_json_object(raw)


class TestParsePriority:
    """Classification output."""

    def test_clamps_high_confidence(self) -> None:
        result, confidence = parse_priority(
            '```json\n{"quadrant": "Q1", "confidence": 1.5}\n```', _request()
        )
        assert result.quadrant is Quadrant.DO_FIRST
        assert result.confidence == 1.0
        assert confidence == 1.0

    def test_clamps_negative_confidence(self) -> None:
        result, confidence = parse_priority('{"quadrant": "Q4", "confidence": -0.3}', _request())
        assert result.quadrant is Quadrant.ELIMINATE
        assert confidence == 0.0

    def test_unknown_label_maps_to_schedule(self) -> None:
        result, _ = parse_priority('{"quadrant": "UNKNOWN", "confidence": 0.9}', _request())
        assert result.quadrant is Quadrant.SCHEDULE

    def test_missing_fields_get_defaults(self) -> None:
        result, confidence = parse_priority('{"quadrant": "DO"}', _request())
        assert result.quadrant is Quadrant.DO_FIRST
        assert confidence == pytest.approx(0.7)
        assert result.explanation == ""
        assert result.is_urgent is True
        assert result.is_important is True

    def test_explicit_flags_win(self) -> None:
        result, _ = parse_priority(
            '{"quadrant": "SCHEDULE", "is_urgent": "yes", "is_important": false, '
            '"confidence": "0.9", "explanation": "  later  "}',
            _request(),
        )
        assert result.is_urgent is True
        assert result.is_important is False
        assert result.confidence == pytest.approx(0.9)
        assert result.explanation == "later"

    def test_malformed_guesses_from_keywords(self) -> None:
        result, confidence = parse_priority("I think this is ELIMINATE territory", _request())
        assert result.quadrant is Quadrant.ELIMINATE
        assert confidence == pytest.approx(0.3)

    def test_malformed_without_keywords(self) -> None:
        result, confidence = parse_priority("no idea", _request())
        assert result.quadrant is Quadrant.SCHEDULE
        assert confidence == pytest.approx(0.3)

    def test_malformed_refusal_is_not_do_first(self) -> None:
        result, _ = parse_priority("I don't know what to do", _request())
        assert result.quadrant is Quadrant.SCHEDULE

    @pytest.mark.parametrize("raw", ["DO", "Quadrant: Do", 'Answer: "DO"', "Do first, it is due today"])
    def test_malformed_do_label(self, raw: str) -> None:
        result, _ = parse_priority(raw, _request())
        assert result.quadrant is Quadrant.DO_FIRST


class TestParseTask:
    """Task extraction output."""

    def test_full_object(self) -> None:
        raw = (
            '{"title": "Call mom", "due_date": "2026-03-12", "due_time": "17:00", '
            '"is_urgent": true, "keywords": ["Family"]}'
        )
        result, confidence = parse_task(raw, _request(RequestType.PARSE_TASK))
        assert result.title == "Call mom"
        assert result.due_date == "2026-03-12"
        assert result.due_time == "17:00"
        assert result.tags == ["family", "urgent"]
        assert result.suggested_quadrant is Quadrant.DO_FIRST
        assert confidence == pytest.approx(0.8)

    def test_null_strings_become_none(self) -> None:
        raw = '{"title": "Stretch", "due_date": "null", "due_time": "N/A", "keywords": "health, morning"}'
        result, _ = parse_task(raw, _request(RequestType.PARSE_TASK))
        assert result.due_date is None
        assert result.due_time is None
        assert result.tags == ["health", "morning"]
        assert result.suggested_quadrant is None

    def test_missing_title_uses_input(self) -> None:
        result, _ = parse_task('{"due_date": "2026-03-12"}', _request(RequestType.PARSE_TASK, "  Pay rent  "))
        assert result.title == "Pay rent"

    def test_malformed_uses_input(self) -> None:
        text = "x" * 150
        result, confidence = parse_task("sorry, I can't", _request(RequestType.PARSE_TASK, text))
        assert result.title == "x" * 100
        assert confidence == pytest.approx(0.3)


class TestParseOtherTypes:
    """SMART goals, briefings, action items and free text."""

    def test_smart_goal(self) -> None:
        raw = (
            '{"refined_goal": "Run a 10k by June", "measurable": "10 km", '
            '"milestones": "5k in April; 8k in May"}'
        )
        result, confidence = parse_smart_goal(raw, _request(RequestType.SUGGEST_SMART_GOAL, "Get fit"))
        assert result.refined_goal == "Run a 10k by June"
        assert result.suggested_milestones == ["5k in April", "8k in May"]
        assert result.specific == ""
        assert confidence == pytest.approx(0.8)

    def test_smart_goal_malformed_keeps_goal(self) -> None:
        result, confidence = parse_smart_goal("...", _request(RequestType.SUGGEST_SMART_GOAL, "Get fit"))
        assert result.refined_goal == "Get fit"
        assert confidence == pytest.approx(0.3)

    def test_briefing(self) -> None:
        raw = '{"greeting": "Morning!", "summary": "Busy day", "top_priorities": ["Ship"], "motivational_quote": null}'
        result, _ = parse_briefing(raw, _request(RequestType.GENERATE_BRIEFING))
        assert result.greeting == "Morning!"
        assert result.top_priorities == ["Ship"]
        assert result.insights == []
        assert result.motivational_quote is None

    def test_briefing_malformed_becomes_summary(self) -> None:
        result, confidence = parse_briefing("Have a great day.", _request(RequestType.GENERATE_BRIEFING))
        assert result.summary == "Have a great day."
        assert confidence == pytest.approx(0.3)

    def test_action_items(self) -> None:
        raw = (
            '{"items": [{"description": "Send minutes", "assignee": "Ana", "due_date": null}, '
            '"Book room", {"task": "Draft budget"}, {"assignee": "nobody"}]}'
        )
        result, _ = parse_action_items(raw, _request(RequestType.EXTRACT_ACTION_ITEMS))
        assert [item.description for item in result.items] == ["Send minutes", "Book room", "Draft budget"]
        assert result.items[0].assignee == "Ana"
        assert result.items[0].due_date is None

    def test_action_items_malformed_splits_lines(self) -> None:
        raw = "- Send minutes\n\n2. Book room\n* Draft budget"
        result, confidence = parse_action_items(raw, _request(RequestType.EXTRACT_ACTION_ITEMS))
        assert [item.description for item in result.items] == ["Send minutes", "Book room", "Draft budget"]
        assert confidence == pytest.approx(0.3)

    def test_general_text(self) -> None:
        result, confidence = parse_general("  Hello there  ", _request(RequestType.GENERAL_GENERATE))
        assert result.text == "Hello there"
        assert confidence == pytest.approx(0.8)


class TestQuadrantLabels:
    """Free-form quadrant labels."""

    @pytest.mark.parametrize(
        "label,expected",
        [
            ("DO", Quadrant.DO_FIRST),
            ("do first", Quadrant.DO_FIRST),
            ("do-first", Quadrant.DO_FIRST),
            ("Q2", Quadrant.SCHEDULE),
            (" delegate ", Quadrant.DELEGATE),
            ("eliminate", Quadrant.ELIMINATE),
            ("whatever", Quadrant.SCHEDULE),
            (None, Quadrant.SCHEDULE),
            (3, Quadrant.SCHEDULE),
            (Quadrant.DELEGATE, Quadrant.DELEGATE),
        ],
    )
    def test_from_label(self, label: object, expected: Quadrant) -> None:
        assert Quadrant.from_label(label) is expected

    def test_from_flags(self) -> None:
        assert Quadrant.from_flags(True, True) is Quadrant.DO_FIRST
        assert Quadrant.from_flags(False, True) is Quadrant.SCHEDULE
        assert Quadrant.from_flags(True, False) is Quadrant.DELEGATE
        assert Quadrant.from_flags(False, False) is Quadrant.ELIMINATE
