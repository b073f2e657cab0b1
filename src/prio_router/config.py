"""
prio-router: Router configuration.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping

from prio_router.models import RequestType, RoutingMode

DEFAULT_MIN_CONFIDENCE = 0.65

DEFAULT_ESCALATION_TYPES = frozenset(
    {
        RequestType.CLASSIFY_PRIORITY,
        RequestType.PARSE_TASK,
        RequestType.SUGGEST_SMART_GOAL,
    }
)


@dataclass
class RouterConfig:
    """Configuration for AiRouter.

    Attributes:
        default_mode: Routing mode used until set_routing_mode() is called.
        escalation_eligible_types: Request types that may be escalated from
            the rule engine to an inference backend.
        default_min_confidence: Rule confidence below which a request is
            escalated, unless the request sets its own threshold.
        provider_timeout: Upper bound in seconds for a single provider call.
        override_history_capacity: Number of override records kept; older
            records are evicted.
        auto_select_mode: On first use, switch HYBRID to
            HYBRID_PLATFORM_FIRST when the platform provider is ready and no
            mode was set explicitly.

    Example::

        config = RouterConfig(default_mode=RoutingMode.RULE_ONLY, provider_timeout=3.0)
        router = AiRouter(config=config)
    """

    default_mode: RoutingMode = RoutingMode.HYBRID
    escalation_eligible_types: frozenset[RequestType] = field(
        default_factory=lambda: DEFAULT_ESCALATION_TYPES
    )
    default_min_confidence: float = DEFAULT_MIN_CONFIDENCE
    provider_timeout: float = 5.0
    override_history_capacity: int = 500
    auto_select_mode: bool = True

    def __post_init__(self) -> None:
        if not 0.0 <= self.default_min_confidence <= 1.0:
            raise ValueError(
                f"default_min_confidence must be in [0, 1], got {self.default_min_confidence}"
            )
        if self.provider_timeout <= 0:
            raise ValueError(f"provider_timeout must be positive, got {self.provider_timeout}")
        if self.override_history_capacity < 1:
            raise ValueError(
                f"override_history_capacity must be >= 1, got {self.override_history_capacity}"
            )
        self.escalation_eligible_types = frozenset(self.escalation_eligible_types)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> RouterConfig:
        """Build a config from plain values, e.g. parsed JSON or YAML.

        Mode and request type names are accepted by value ("hybrid") or by
        name ("HYBRID"). Unknown keys raise ValueError.
        """
        known = set(cls.__dataclass_fields__)
        unknown = set(data) - known
        if unknown:
            raise ValueError(f"Unknown RouterConfig keys: {sorted(unknown)}")

        kwargs = dict(data)
        if "default_mode" in kwargs:
            kwargs["default_mode"] = _parse_enum(RoutingMode, kwargs["default_mode"])
        if "escalation_eligible_types" in kwargs:
            kwargs["escalation_eligible_types"] = frozenset(
                _parse_enum(RequestType, t) for t in kwargs["escalation_eligible_types"]
            )
        return cls(**kwargs)


def _parse_enum(enum_cls: type, value: Any) -> Any:
    if isinstance(value, enum_cls):
        return value
    text = str(value).strip()
    try:
        return enum_cls(text.lower())
    except ValueError:
        pass
    try:
        return enum_cls[text.upper()]
    except KeyError:
        raise ValueError(f"Invalid {enum_cls.__name__}: {value!r}") from None
