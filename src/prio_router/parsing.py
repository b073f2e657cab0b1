"""
prio-router: Parsing of raw model output.

Small on-device models wrap their JSON in markdown fences, add prose around
it, skip fields or report confidences outside [0, 1]. Everything here is
tolerant: the first balanced JSON object is located, missing fields get
defaults, confidences are clamped and unknown labels map to SCHEDULE.
Output with no usable JSON degrades to a low-confidence default result
instead of failing the request.

Defaults:
    classification: confidence 0.7, explanation "", urgency/importance from
        the quadrant. Malformed: quadrant guessed from keywords in the raw
        text (SCHEDULE if none), confidence 0.3.
    task: title from the request input, confidence 0.8. Malformed: title is
        the first 100 characters of the input, confidence 0.3.
    SMART goal: refined goal is the request input. Malformed: refined goal
        only, confidence 0.3.
    briefing: malformed output becomes the summary, confidence 0.3.
    action items: malformed output yields one item per non-empty line.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Callable

from prio_router.errors import MalformedProviderOutput
from prio_router.models import (
    ActionItem,
    ActionItems,
    AiRequest,
    AiResult,
    BriefingContent,
    GeneralText,
    ParsedTask,
    PriorityClassification,
    Quadrant,
    SmartGoalSuggestion,
    clamp_confidence,
)

logger = logging.getLogger(__name__)

MALFORMED_CONFIDENCE = 0.3
DEFAULT_CLASSIFICATION_CONFIDENCE = 0.7
DEFAULT_LLM_CONFIDENCE = 0.8
MAX_TITLE_LENGTH = 100

OutputParser = Callable[[str, AiRequest], tuple[AiResult, float]]

_FENCE_RE = re.compile(r"```[a-zA-Z]*\s*(.*?)```", re.DOTALL)
_NULLS = {"", "null", "none", "n/a"}
_KEYWORD_QUADRANTS = (
    (re.compile(r"\bELIMINATE\b"), Quadrant.ELIMINATE),
    (re.compile(r"\bDELEGATE\b"), Quadrant.DELEGATE),
    (re.compile(r"\bSCHEDULE\b"), Quadrant.SCHEDULE),
    # Bare "DO" counts only as a label, never as a verb in prose.
    (
        re.compile(r"\b(DO[ _]FIRST|Q1)\b|^\W*DO\W*$|\bQUADRANT\W+DO\b|[\"']DO[\"']", re.MULTILINE),
        Quadrant.DO_FIRST,
    ),
)


# ── JSON extraction ────────────────────────────────────────────────


def _balanced_end(text: str, start: int) -> int | None:
    """Index of the brace closing the object opened at ``start``."""
    depth = 0
    in_string = False
    escaped = False
    for i in range(start, len(text)):
        ch = text[i]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
        elif ch == '"':
            in_string = True
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return i
    return None


def _first_object(text: str) -> dict[str, Any] | None:
    start = text.find("{")
    while start != -1:
        end = _balanced_end(text, start)
        if end is not None:
            try:
                value = json.loads(text[start : end + 1])
            except json.JSONDecodeError:
                value = None
            if isinstance(value, dict):
                return value
        start = text.find("{", start + 1)
    return None


def extract_json_object(raw: str) -> dict[str, Any]:
    """Locate the first well-formed JSON object in raw model text.

    Fenced blocks are searched first, then the whole text.

    Raises:
        MalformedProviderOutput: If no JSON object can be decoded.
    """
    if not raw or not raw.strip():
        raise MalformedProviderOutput("Empty model output")
    candidates = [m.group(1) for m in _FENCE_RE.finditer(raw)]
    candidates.append(raw)
    for text in candidates:
        obj = _first_object(text)
        if obj is not None:
            return obj
    raise MalformedProviderOutput(f"No JSON object in model output: {raw[:80]!r}")


# ── Field helpers ──────────────────────────────────────────────────


def _confidence(value: Any, default: float) -> float:
    if isinstance(value, str):
        value = value.strip().rstrip("%")
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    return clamp_confidence(number)


def _flag(value: Any, default: bool) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in ("true", "yes", "1"):
            return True
        if lowered in ("false", "no", "0"):
            return False
    return default


def _text(value: Any, default: str) -> str:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return default


def _optional_text(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return None if text.lower() in _NULLS else text


def _str_list(value: Any) -> list[str]:
    if isinstance(value, str):
        value = re.split(r"[,;\n]", value)
    if not isinstance(value, list):
        return []
    return [str(v).strip() for v in value if v is not None and str(v).strip()]


def _quadrant_from_text(raw: str) -> Quadrant:
    upper = raw.upper()
    for pattern, quadrant in _KEYWORD_QUADRANTS:
        if pattern.search(upper):
            return quadrant
    return Quadrant.SCHEDULE


def _malformed(kind: str, error: MalformedProviderOutput) -> None:
    logger.warning(f"Malformed {kind} output, using default: {error}")


# ── Per-type parsers ───────────────────────────────────────────────


def parse_priority(raw: str, request: AiRequest) -> tuple[AiResult, float]:
    try:
        data = extract_json_object(raw)
    except MalformedProviderOutput as e:
        _malformed("classification", e)
        quadrant = _quadrant_from_text(raw or "")
        result = PriorityClassification(
            quadrant=quadrant,
            confidence=MALFORMED_CONFIDENCE,
            explanation="Model output could not be parsed",
            is_urgent=quadrant.is_urgent,
            is_important=quadrant.is_important,
        )
        return result, MALFORMED_CONFIDENCE

    quadrant = Quadrant.from_label(data.get("quadrant", data.get("classification")))
    result = PriorityClassification(
        quadrant=quadrant,
        confidence=_confidence(data.get("confidence"), DEFAULT_CLASSIFICATION_CONFIDENCE),
        explanation=_text(data.get("explanation", data.get("reasoning")), ""),
        is_urgent=_flag(data.get("is_urgent"), quadrant.is_urgent),
        is_important=_flag(data.get("is_important"), quadrant.is_important),
    )
    return result, result.confidence


def parse_task(raw: str, request: AiRequest) -> tuple[AiResult, float]:
    fallback_title = request.input.strip()[:MAX_TITLE_LENGTH]
    try:
        data = extract_json_object(raw)
    except MalformedProviderOutput as e:
        _malformed("task", e)
        return ParsedTask(title=fallback_title, confidence=MALFORMED_CONFIDENCE), MALFORMED_CONFIDENCE

    is_urgent = _flag(data.get("is_urgent"), False)
    tags = [t.lower() for t in _str_list(data.get("keywords", data.get("tags")))]
    if is_urgent and "urgent" not in tags:
        tags.append("urgent")

    if data.get("quadrant") is not None:
        suggested: Quadrant | None = Quadrant.from_label(data["quadrant"])
    elif is_urgent:
        suggested = Quadrant.DO_FIRST
    else:
        suggested = None

    result = ParsedTask(
        title=_text(data.get("title"), fallback_title)[:MAX_TITLE_LENGTH],
        due_date=_optional_text(data.get("due_date")),
        due_time=_optional_text(data.get("due_time")),
        suggested_quadrant=suggested,
        tags=tags,
        confidence=_confidence(data.get("confidence"), DEFAULT_LLM_CONFIDENCE),
    )
    return result, result.confidence


def parse_smart_goal(raw: str, request: AiRequest) -> tuple[AiResult, float]:
    goal = request.input.strip()
    try:
        data = extract_json_object(raw)
    except MalformedProviderOutput as e:
        _malformed("SMART goal", e)
        return SmartGoalSuggestion(refined_goal=goal), MALFORMED_CONFIDENCE

    result = SmartGoalSuggestion(
        refined_goal=_text(data.get("refined_goal"), goal),
        specific=_text(data.get("specific"), ""),
        measurable=_text(data.get("measurable"), ""),
        achievable=_text(data.get("achievable"), ""),
        relevant=_text(data.get("relevant"), ""),
        time_bound=_text(data.get("time_bound"), ""),
        suggested_milestones=_str_list(data.get("suggested_milestones", data.get("milestones"))),
    )
    return result, _confidence(data.get("confidence"), DEFAULT_LLM_CONFIDENCE)


def parse_briefing(raw: str, request: AiRequest) -> tuple[AiResult, float]:
    try:
        data = extract_json_object(raw)
    except MalformedProviderOutput as e:
        _malformed("briefing", e)
        return BriefingContent(greeting="", summary=(raw or "").strip()[:500]), MALFORMED_CONFIDENCE

    result = BriefingContent(
        greeting=_text(data.get("greeting"), ""),
        summary=_text(data.get("summary"), ""),
        top_priorities=_str_list(data.get("top_priorities")),
        insights=_str_list(data.get("insights")),
        motivational_quote=_optional_text(data.get("motivational_quote")),
    )
    return result, _confidence(data.get("confidence"), DEFAULT_LLM_CONFIDENCE)


def parse_action_items(raw: str, request: AiRequest) -> tuple[AiResult, float]:
    try:
        data = extract_json_object(raw)
    except MalformedProviderOutput as e:
        _malformed("action items", e)
        lines = [line.strip().lstrip("-*•0123456789.) ").strip() for line in (raw or "").splitlines()]
        items = [ActionItem(description=line) for line in lines if line]
        return ActionItems(items=items), MALFORMED_CONFIDENCE

    items = []
    for entry in data.get("items") or []:
        if isinstance(entry, dict):
            description = _text(entry.get("description", entry.get("task")), "")
            if description:
                items.append(
                    ActionItem(
                        description=description,
                        assignee=_optional_text(entry.get("assignee")),
                        due_date=_optional_text(entry.get("due_date")),
                    )
                )
        elif isinstance(entry, str) and entry.strip():
            items.append(ActionItem(description=entry.strip()))
    return ActionItems(items=items), _confidence(data.get("confidence"), DEFAULT_LLM_CONFIDENCE)


def parse_general(raw: str, request: AiRequest) -> tuple[AiResult, float]:
    return GeneralText(text=(raw or "").strip()), DEFAULT_LLM_CONFIDENCE
