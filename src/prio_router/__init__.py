"""
prio-router: On-device AI request router.

Deterministic rule engine first, confidence-driven escalation to a native
LLM or a platform AI service, graceful fallback and accuracy tracking.

Quickstart::

    from prio_router import AiRequest, AiRouter, RequestType

    router = AiRouter()

    async with router:
        response = await router.complete(
            AiRequest(RequestType.CLASSIFY_PRIORITY, "URGENT: production server down")
        )
        print(response.result.quadrant)
"""

from prio_router.config import RouterConfig
from prio_router.errors import (
    MalformedProviderOutput,
    ProviderError,
    ProviderNotSupported,
    ProviderTimeout,
    ProviderUnavailable,
    RouterError,
    UnsupportedRequestType,
)
from prio_router.models import (
    ActionItem,
    ActionItems,
    AiContext,
    AiRequest,
    AiResponse,
    AiResult,
    BriefingContent,
    GeneralText,
    OverrideRecord,
    ParsedTask,
    PriorityClassification,
    Quadrant,
    RequestOptions,
    RequestType,
    ResponseMetadata,
    RoutingMode,
    SmartGoalSuggestion,
)
from prio_router.providers import (
    AvailabilityState,
    Available,
    Downloadable,
    Downloading,
    NativeEngine,
    NativeLlmProvider,
    OllamaPlatformClient,
    PlatformAiProvider,
    PlatformClient,
    Provider,
    RuleBasedProvider,
    Unavailable,
)
from prio_router.router import AiRouter
from prio_router.rules import RuleEngine
from prio_router.signals import Observable
from prio_router.stats import RouterStats, StatsTracker

__version__ = "0.1.0"

__all__ = [
    # Core
    "AiRouter",
    "RouterConfig",
    "RoutingMode",
    "AiRequest",
    "AiResponse",
    "AiContext",
    "RequestOptions",
    "RequestType",
    "ResponseMetadata",
    # Results
    "AiResult",
    "PriorityClassification",
    "ParsedTask",
    "SmartGoalSuggestion",
    "BriefingContent",
    "ActionItem",
    "ActionItems",
    "GeneralText",
    "Quadrant",
    "OverrideRecord",
    # Providers
    "Provider",
    "RuleBasedProvider",
    "RuleEngine",
    "NativeEngine",
    "NativeLlmProvider",
    "LlamaCppEngine",
    "PlatformAiProvider",
    "PlatformClient",
    "OllamaPlatformClient",
    "AvailabilityState",
    "Available",
    "Downloadable",
    "Downloading",
    "Unavailable",
    # Errors
    "RouterError",
    "ProviderError",
    "ProviderUnavailable",
    "ProviderTimeout",
    "ProviderNotSupported",
    "MalformedProviderOutput",
    "UnsupportedRequestType",
    # Features
    "Observable",
    "RouterStats",
    "StatsTracker",
]


def __getattr__(name: str) -> object:
    """Lazy import for optional dependencies."""
    if name == "LlamaCppEngine":
        from prio_router.providers.llama_cpp import LlamaCppEngine

        return LlamaCppEngine
    raise AttributeError(f"module 'prio_router' has no attribute {name!r}")
