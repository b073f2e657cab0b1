"""
prio-router: Data models for requests, results, responses and routing policy.

All public types used throughout the library are defined here.
"""

from __future__ import annotations

import time
import uuid
from dataclasses import dataclass, field
from datetime import date
from enum import Enum


def clamp_confidence(value: float) -> float:
    """Clamp a confidence score into [0.0, 1.0]. NaN becomes 0.0."""
    if value != value:
        return 0.0
    return max(0.0, min(1.0, float(value)))


class RequestType(Enum):
    """Kinds of work the router can be asked to do."""

    CLASSIFY_PRIORITY = "classify_priority"
    PARSE_TASK = "parse_task"
    SUGGEST_SMART_GOAL = "suggest_smart_goal"
    GENERATE_BRIEFING = "generate_briefing"
    EXTRACT_ACTION_ITEMS = "extract_action_items"
    GENERAL_GENERATE = "general_generate"


_QUADRANT_ALIASES = {
    "Q1": "DO_FIRST",
    "DO": "DO_FIRST",
    "DO_FIRST": "DO_FIRST",
    "DO FIRST": "DO_FIRST",
    "URGENT_IMPORTANT": "DO_FIRST",
    "Q2": "SCHEDULE",
    "SCHEDULE": "SCHEDULE",
    "PLAN": "SCHEDULE",
    "Q3": "DELEGATE",
    "DELEGATE": "DELEGATE",
    "Q4": "ELIMINATE",
    "ELIMINATE": "ELIMINATE",
    "DROP": "ELIMINATE",
    "DELETE": "ELIMINATE",
}


class Quadrant(Enum):
    """Eisenhower matrix quadrants.

    Q1 is urgent and important, Q2 important only, Q3 urgent only,
    Q4 neither.
    """

    DO_FIRST = "Q1"
    SCHEDULE = "Q2"
    DELEGATE = "Q3"
    ELIMINATE = "Q4"

    @classmethod
    def from_flags(cls, is_urgent: bool, is_important: bool) -> Quadrant:
        """Apply the urgency/importance tie-break table."""
        if is_urgent and is_important:
            return cls.DO_FIRST
        if is_important:
            return cls.SCHEDULE
        if is_urgent:
            return cls.DELEGATE
        return cls.ELIMINATE

    @classmethod
    def from_label(cls, label: object) -> Quadrant:
        """Map a free-form model label to a quadrant.

        Unrecognized labels map to SCHEDULE rather than raising.

        Example::

            Quadrant.from_label("do first")  # Quadrant.DO_FIRST
            Quadrant.from_label("UNKNOWN")   # Quadrant.SCHEDULE
        """
        if isinstance(label, cls):
            return label
        if not isinstance(label, str):
            return cls.SCHEDULE
        key = label.strip().upper().replace("-", "_")
        name = _QUADRANT_ALIASES.get(key) or _QUADRANT_ALIASES.get(key.replace("_", " "))
        return cls[name] if name else cls.SCHEDULE

    @property
    def is_urgent(self) -> bool:
        return self in (Quadrant.DO_FIRST, Quadrant.DELEGATE)

    @property
    def is_important(self) -> bool:
        return self in (Quadrant.DO_FIRST, Quadrant.SCHEDULE)


class RoutingMode(Enum):
    """Router policy governing whether and in what order escalation runs.

    RULE_ONLY: never call an inference backend.
    HYBRID: escalate low-confidence answers to the native LLM.
    HYBRID_PLATFORM_FIRST: try the platform service, then the native LLM.
    ESCALATION_PREFERRED: always try inference backends first.
    """

    RULE_ONLY = "rule_only"
    HYBRID = "hybrid"
    HYBRID_PLATFORM_FIRST = "hybrid_platform_first"
    ESCALATION_PREFERRED = "escalation_preferred"


@dataclass
class RequestOptions:
    """Per-request routing options.

    Attributes:
        use_llm: Allow escalation to inference backends.
        min_confidence: Rule confidence below which the router escalates.
            None uses the router's configured default.
        timeout_ms: Upper bound for each provider call, in milliseconds.
        max_tokens: Generation budget for inference backends.
        temperature: Sampling temperature for inference backends.
    """

    use_llm: bool = True
    min_confidence: float | None = None
    timeout_ms: int | None = None
    max_tokens: int = 256
    temperature: float = 0.3

    def __post_init__(self) -> None:
        if self.min_confidence is not None and not 0.0 <= self.min_confidence <= 1.0:
            raise ValueError(f"min_confidence must be in [0, 1], got {self.min_confidence}")
        if self.timeout_ms is not None and self.timeout_ms <= 0:
            raise ValueError(f"timeout_ms must be positive, got {self.timeout_ms}")


@dataclass
class AiContext:
    """Optional context that helps providers answer more accurately."""

    existing_goals: list[str] = field(default_factory=list)
    recent_tasks: list[str] = field(default_factory=list)
    due_date: date | None = None
    current_time: str | None = None
    previous_quadrant: Quadrant | None = None


@dataclass
class AiRequest:
    """One unit of work submitted to the router.

    Example::

        request = AiRequest(RequestType.CLASSIFY_PRIORITY, "Submit taxes by Friday")
        response = await router.complete(request)
    """

    request_type: RequestType
    input: str
    context: AiContext | None = None
    options: RequestOptions = field(default_factory=RequestOptions)
    id: str = field(default_factory=lambda: uuid.uuid4().hex)


# ── Results ────────────────────────────────────────────────────────


class AiResult:
    """Base class of every result payload. Exactly one variant per response."""


@dataclass
class PriorityClassification(AiResult):
    quadrant: Quadrant
    confidence: float
    explanation: str = ""
    is_urgent: bool = False
    is_important: bool = False
    urgency_signals: list[str] = field(default_factory=list)
    importance_signals: list[str] = field(default_factory=list)
    should_escalate: bool = False

    def __post_init__(self) -> None:
        self.confidence = clamp_confidence(self.confidence)


@dataclass
class ParsedTask(AiResult):
    """A task extracted from free text.

    Attributes:
        title: Cleaned-up task title.
        due_date: ISO date (YYYY-MM-DD) when one was found.
        due_time: 24-hour time (HH:MM) when one was found.
        suggested_quadrant: Priority suggestion for the new task.
        tags: Free-form keyword tags.
        confidence: Extraction confidence in [0, 1].
    """

    title: str
    due_date: str | None = None
    due_time: str | None = None
    suggested_quadrant: Quadrant | None = None
    tags: list[str] = field(default_factory=list)
    confidence: float = 0.0

    def __post_init__(self) -> None:
        self.confidence = clamp_confidence(self.confidence)


@dataclass
class SmartGoalSuggestion(AiResult):
    refined_goal: str
    specific: str = ""
    measurable: str = ""
    achievable: str = ""
    relevant: str = ""
    time_bound: str = ""
    suggested_milestones: list[str] = field(default_factory=list)


@dataclass
class BriefingContent(AiResult):
    greeting: str
    summary: str
    top_priorities: list[str] = field(default_factory=list)
    insights: list[str] = field(default_factory=list)
    motivational_quote: str | None = None


@dataclass
class ActionItem:
    description: str
    assignee: str | None = None
    due_date: str | None = None


@dataclass
class ActionItems(AiResult):
    items: list[ActionItem] = field(default_factory=list)


@dataclass
class GeneralText(AiResult):
    text: str


# ── Responses ──────────────────────────────────────────────────────


@dataclass
class ResponseMetadata:
    """Routing metadata attached to every response.

    Attributes:
        was_rule_based: True when the deterministic rule engine answered.
        confidence_score: Confidence of the returned result, in [0, 1].
        provider_id: Provider that produced the result.
        latency_ms: Time spent producing the response.
        model: Model or engine name reported by the provider.
        attempted_providers: Escalation providers tried, in visit order.
        fallback_reason: Why the router fell back to the rule engine, if it did.
    """

    was_rule_based: bool = False
    confidence_score: float = 0.0
    provider_id: str = ""
    latency_ms: float = 0.0
    model: str = ""
    attempted_providers: tuple[str, ...] = ()
    fallback_reason: str | None = None

    def __post_init__(self) -> None:
        self.confidence_score = clamp_confidence(self.confidence_score)


@dataclass
class AiResponse:
    """The router's answer to an AiRequest.

    ``success`` is False only when no provider can handle the request type.
    """

    request_id: str
    success: bool
    result: AiResult | None = None
    metadata: ResponseMetadata = field(default_factory=ResponseMetadata)
    error: str | None = None
    error_code: str | None = None


@dataclass
class OverrideRecord:
    """A user correction of an earlier classification."""

    request_id: str
    original_quadrant: Quadrant
    override_quadrant: Quadrant
    was_llm: bool
    timestamp: float = field(default_factory=time.time)
