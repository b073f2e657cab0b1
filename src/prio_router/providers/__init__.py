"""prio-router: Provider implementations."""

from prio_router.providers.base import Provider
from prio_router.providers.llm import LlmProvider
from prio_router.providers.native import NativeEngine, NativeLlmProvider
from prio_router.providers.ollama import OllamaPlatformClient
from prio_router.providers.platform import (
    AvailabilityState,
    Available,
    Downloadable,
    Downloading,
    PlatformAiProvider,
    PlatformClient,
    Unavailable,
)
from prio_router.providers.rule_based import RuleBasedProvider

__all__ = [
    "Provider",
    "LlmProvider",
    "RuleBasedProvider",
    "NativeEngine",
    "NativeLlmProvider",
    "PlatformAiProvider",
    "PlatformClient",
    "OllamaPlatformClient",
    "AvailabilityState",
    "Available",
    "Downloadable",
    "Downloading",
    "Unavailable",
]
