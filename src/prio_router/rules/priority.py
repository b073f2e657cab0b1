"""
prio-router: Deterministic Eisenhower priority classifier.

Scores urgency and importance independently from pattern evidence in the
task text, adds deadline pressure from an optional due date, and maps the
result onto a quadrant with a calibrated confidence. Results below the
escalation threshold are flagged so the router can ask an inference backend.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date, datetime
from typing import Callable

from prio_router.models import PriorityClassification, Quadrant

ESCALATION_THRESHOLD = 0.65
MAX_CONFIDENCE = 0.95

# Deadline urgency levels.
URGENCY_CRITICAL = 0.75  # due today or overdue
URGENCY_HIGH = 0.65  # due tomorrow
URGENCY_MEDIUM = 0.5  # within 3 days
URGENCY_LOW = 0.25  # within a week


def _compile(*patterns: str) -> tuple[re.Pattern[str], ...]:
    return tuple(re.compile(p, re.IGNORECASE) for p in patterns)


URGENCY_PATTERNS = _compile(
    r"\b(urgent|asap|immediately|emergency|critical|crisis)\b",
    r"\b(now|right now|right away|this instant)\b",
    r"\b(first thing|top priority|highest priority)\b",
    r"\b(today|tonight|this morning|this afternoon|this evening)\b",
    r"\b(before|by|until)\s+(today|tonight|end of day|eod|close of business|cob)\b",
    r"\b(overdue|late|behind|past due|missed|expired)\b",
    r"\bwas due\b",
    r"\b(in|within)\s+(\d+|one|two|three|a few)\s*(hour|minute|min|hr)s?\b",
    r"\b(deadline|due)\s+(today|tomorrow|tonight|now)\b",
    r"\b(server|system|app|site|service|website)\s+(is\s+)?(down|crashed?|outage|error|failure)\b",
    r"\b(server|system|app|site|service|website).{0,10}(down|crash|outage|failure)\b",
    r"\b(production|prod)\s*(is\s+)?(issue|problem|bug|error|incident|fire|down)\b",
    r"\b(hotfix|hot fix|outage|incident|sev[0-9])\b",
    r"\b(users|customers)\s+(cannot|can't|unable to|experiencing)\b",
    r"\bblocking\s+(release|deploy|launch|others?)\b",
    r"\b(client|customer|stakeholder|boss|manager|ceo)\s*(is\s+)?(waiting|asking|calling|needs)\b",
    r"\bwaiting\s+(on|for)\s+(you|me|us|this|a response|an answer)\b",
)

IMPORTANCE_PATTERNS = _compile(
    r"\b(important|crucial|vital|essential|key|strategic|significant)\b",
    r"\b(priority|prioritize|must do|need to|have to)\b",
    r"\b(career|promotion|performance review|interview|salary|raise)\b",
    r"\b(skill|skills|expertise|certification|mentor)\b",
    r"\b(okr|kpi|objective|key result|quarterly|annual)\b",
    r"\b(health|doctor|medical|hospital|dentist|therapy|prescription|medication)\b",
    r"\b(exercise|workout|gym|fitness|sleep|mental health)\b",
    r"\b(family|spouse|partner|wife|husband|child|children|kids?|mom|dad|parents?)\b",
    r"\b(wedding|anniversary|birthday|graduation)\b",
    r"\b(tax|taxes|budget|investment|retirement|mortgage|loan|debt|bills?|rent|insurance)\b",
    r"\b(invoice|payment due|audit|compliance|contract|legal|lawyer|court)\b",
    r"\b(learn|study|course|training|workshop|degree)\b",
    r"\b(client|customer|investor|board|stakeholder|executive)\b",
    r"\b(project|deliverable|release|launch|milestone|proposal)\b",
    r"\b(strategy|plan|planning|roadmap|vision)\b",
    r"\b(revenue|sales|profit|forecast|deal)\b",
    r"\b(server|system|app|site|service|website)\s+(is\s+)?(down|crashed?|outage|failure)\b",
    r"\b(server|system|app|site|service|website).{0,10}(down|crash|outage|failure)\b",
    r"\b(data)\s*(loss|corruption|at risk)\b",
    r"\b(users?|customers?)\s*(affected|impacted|cannot|can't|unable)\b",
    r"\b(emergency|crisis)\b",
)

DELEGATION_PATTERNS = _compile(
    r"\b(delegate|assign|someone else|team can|anyone can)\b",
    r"\b(routine|recurring|periodic)\b",
    r"\border\s+(office\s+)?supplies\b",
    r"\boffice\s+supplies\b",
    r"\b(schedule|book|reserve)\s+(the\s+)?(team\s+)?(meeting|room|flight|hotel|restaurant|lunch|dinner|event)\b",
    r"\b(arrange|set up|organize)\s+(a\s+)?(meeting|call|event|lunch|dinner|party)\b",
    r"\bstatus\s+(report|update|check)\b",
    r"\b(compile|gather|collect)\s+.*report\b",
    r"\bfill\s+(out|in)\s+(the\s+)?(form|survey|questionnaire)\b",
    r"\b(update|enter|log|record)\s+.*(spreadsheet|database|crm)\b",
    r"\b(file|sort|archive)\s+.*(documents|files|papers)\b",
    r"\b(forward|reply to)\s+.*(email|message)\b",
    r"\b(coordinate|reschedule|follow up)\b",
    r"\b(order|reorder|purchase)\s+.*(supplies|materials|equipment)\b",
    r"\b(renew)\s+.*(subscription|membership)\b",
)

LOW_PRIORITY_PATTERNS = _compile(
    r"\b(maybe|someday|eventually|when i have time|if i have time)\b",
    r"\b(nice to have|would be good|could|might)\b",
    r"\b(optional|not required|not urgent|low priority|non-essential)\b",
    r"\b(no rush|no hurry|whenever|at some point)\b",
    r"\b(browse|scroll|binge|stream)\b",
    r"\b(social media|youtube|netflix|reddit|twitter|instagram|tiktok|facebook)\b",
    r"\b(game|gaming|entertainment|tv show|movie)\b",
    r"\b(for fun|just for fun)\b",
    r"\b(reorganize|rearrange|tidy|declutter)\s+(bookshelf|desk|closet|drawer)\b",
    r"\b(wish|would like to|thinking about|daydream)\b",
    r"\brandom\s+(idea|thought|thing)\b",
    r"^(stuff|things|misc|miscellaneous|other|various)$",
)

SOON_DEADLINE_PATTERNS = _compile(
    r"\b(today|tonight|this morning|this afternoon|this evening)\b",
    r"\btomorrow\b",
    r"\bby\s+(monday|tuesday|wednesday|thursday|friday|saturday|sunday)\b",
    r"\bin\s+(1|one|2|two|3|three)\s+days?\b",
    r"\bdue\s+(today|tomorrow|soon)\b",
    r"\bthis\s+week\b",
    r"\b(eod|eow)\b",
    r"\bend\s+of\s+(week|day)\b",
    r"\bwithin\s+\d+\s+hours?\b",
)

FUTURE_DEADLINE_PATTERNS = _compile(
    r"\bnext\s+(week|month|year)\b",
    r"\bin\s+(\d+|several)\s+weeks?\b",
    r"\bby\s+(next|end of)\s+(month|quarter|year)\b",
    r"\b(q[1-4])\b",
    r"\bno\s+(deadline|due date)\b",
    r"\blong\s+term\b",
)


@dataclass
class _Evidence:
    urgency: list[str]
    importance: list[str]
    delegation: list[str]
    low_priority: list[str]
    soon_deadline: bool
    future_deadline: bool
    deadline_urgency: float

    @property
    def deadline_critical(self) -> bool:
        return self.deadline_urgency >= URGENCY_HIGH


def _matches(patterns: tuple[re.Pattern[str], ...], text: str) -> list[str]:
    found = []
    for pattern in patterns:
        match = pattern.search(text)
        if match:
            found.append(match.group(0))
    return found


def deadline_urgency(due: date | None, today: date) -> float:
    """Urgency contributed by a due date, in [0, 1]."""
    if due is None:
        return 0.0
    days = (due - today).days
    if days < 0:
        return min(1.0, URGENCY_CRITICAL + 0.05 * -days)
    if days == 0:
        return URGENCY_CRITICAL
    if days == 1:
        return URGENCY_HIGH
    if days <= 3:
        return URGENCY_MEDIUM
    if days <= 7:
        return URGENCY_LOW
    return max(0.0, URGENCY_LOW - (days - 7) * 0.01)


class PriorityClassifier:
    """Rule-based Eisenhower classifier.

    Args:
        clock: Returns the current time; used for deadline arithmetic.
    """

    def __init__(self, clock: Callable[[], datetime] = datetime.now) -> None:
        self._clock = clock

    def classify(self, text: str, due_date: date | None = None) -> PriorityClassification:
        text = text.strip()
        evidence = _Evidence(
            urgency=_matches(URGENCY_PATTERNS, text),
            importance=_matches(IMPORTANCE_PATTERNS, text),
            delegation=_matches(DELEGATION_PATTERNS, text),
            low_priority=_matches(LOW_PRIORITY_PATTERNS, text),
            soon_deadline=bool(_matches(SOON_DEADLINE_PATTERNS, text)),
            future_deadline=bool(_matches(FUTURE_DEADLINE_PATTERNS, text)),
            deadline_urgency=deadline_urgency(due_date, self._clock().date()),
        )
        quadrant, confidence, explanation = self._decide(evidence)
        confidence = min(confidence, MAX_CONFIDENCE)

        return PriorityClassification(
            quadrant=quadrant,
            confidence=confidence,
            explanation=explanation,
            is_urgent=quadrant.is_urgent,
            is_important=quadrant.is_important,
            urgency_signals=evidence.urgency,
            importance_signals=evidence.importance,
            should_escalate=confidence < ESCALATION_THRESHOLD,
        )

    @staticmethod
    def _decide(ev: _Evidence) -> tuple[Quadrant, float, str]:
        urgency = len(ev.urgency)
        importance = len(ev.importance)
        delegation = len(ev.delegation)
        low = len(ev.low_priority)

        is_urgent = urgency >= 1 or ev.soon_deadline or ev.deadline_critical
        is_important = importance >= 1 and low == 0 and delegation == 0

        if low >= 2:
            return Quadrant.ELIMINATE, 0.85, f"Multiple low-priority signals ({low})"
        if low >= 1 and urgency == 0 and importance == 0:
            return Quadrant.ELIMINATE, 0.75, "Low-priority activity"
        if delegation >= 1 and not is_important and not is_urgent:
            return (
                Quadrant.DELEGATE,
                0.70 + 0.05 * min(delegation, 2),
                "Routine task that someone else can handle",
            )
        if is_urgent and is_important:
            confidence = 0.75 + 0.05 * min(urgency + importance, 4)
            if ev.deadline_critical:
                confidence += 0.10
            return (
                Quadrant.DO_FIRST,
                confidence,
                f"Urgent and important (urgency: {urgency}, importance: {importance})",
            )
        if ev.deadline_critical:
            return Quadrant.DO_FIRST, 0.80, "Deadline is imminent"
        if is_important:
            return (
                Quadrant.SCHEDULE,
                0.70 + 0.05 * min(importance, 3),
                f"Important but not urgent (importance: {importance})",
            )
        if is_urgent:
            return (
                Quadrant.DELEGATE,
                0.65 + 0.05 * min(urgency, 2),
                f"Urgent but not important (urgency: {urgency})",
            )
        if delegation >= 1:
            return Quadrant.DELEGATE, 0.65, "Routine task with some importance"
        if ev.future_deadline:
            return Quadrant.SCHEDULE, 0.60, "Deadline is in the future"
        if ev.deadline_urgency >= 0.5:
            return Quadrant.SCHEDULE, 0.65, "Deadline within a few days"
        return Quadrant.SCHEDULE, 0.55, "No strong signals; defaulting to schedule"
