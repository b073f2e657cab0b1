"""
prio-router: Platform AI provider.

Adapts an OS-level generative AI service to the Provider protocol. Unlike
the native provider, the service has a download lifecycle, tracked as an
AvailabilityState:

    Unavailable(reason) -> Downloadable -> Downloading(progress) -> Available

Only Available is usable. The router never starts a download; that is left
to the application via download_model().
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import AsyncIterator, Callable, Protocol, runtime_checkable

from prio_router.errors import ProviderError, ProviderTimeout, ProviderUnavailable
from prio_router.models import AiRequest
from prio_router.prompts import Prompt
from prio_router.providers.llm import LlmProvider
from prio_router.signals import Observable

logger = logging.getLogger(__name__)

PLATFORM_AI_ID = "platform-ai"


class AvailabilityState:
    """Base class of the platform service availability states."""


@dataclass(frozen=True)
class Unavailable(AvailabilityState):
    reason: str


@dataclass(frozen=True)
class Downloadable(AvailabilityState):
    pass


@dataclass(frozen=True)
class Downloading(AvailabilityState):
    progress: int = 0

    def __post_init__(self) -> None:
        object.__setattr__(self, "progress", max(0, min(100, int(self.progress))))


@dataclass(frozen=True)
class Available(AvailabilityState):
    pass


@runtime_checkable
class PlatformClient(Protocol):
    """Client for the OS-level generative service."""

    async def check_status(self) -> AvailabilityState:
        ...

    def download(self) -> AsyncIterator[int]:
        """Start the model download, yielding progress percentages."""
        ...

    async def generate(
        self,
        system_prompt: str,
        user_prompt: str,
        *,
        max_tokens: int,
        temperature: float,
        timeout: float,
    ) -> str:
        ...

    async def close(self) -> None:
        ...


class PlatformAiProvider(LlmProvider):
    """Provider backed by the platform's generative AI service.

    Handles every LLM request type. ``availability`` carries the full
    lifecycle state; ``is_available`` is True only while it is Available.

    Example::

        provider = PlatformAiProvider(OllamaPlatformClient(model="gemma2:2b"))
        await provider.initialize()
        if isinstance(provider.availability.value, Downloadable):
            await provider.download_model()
    """

    provider_id = PLATFORM_AI_ID

    def __init__(
        self,
        client: PlatformClient,
        timeout: float = 10.0,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        super().__init__(clock)
        self.client = client
        self.timeout = timeout
        self.availability: Observable[AvailabilityState] = Observable(Unavailable("Not checked"))
        self.availability.subscribe(self._on_state)
        self._download_lock = asyncio.Lock()

    def _on_state(self, state: AvailabilityState) -> None:
        self.is_available.set(isinstance(state, Available))
        logger.info(f"Platform AI availability: {state}")

    async def initialize(self) -> bool:
        state = await self.refresh_availability()
        return isinstance(state, Available)

    async def refresh_availability(self) -> AvailabilityState:
        """Query the service and publish its current state."""
        try:
            state = await self.client.check_status()
        except Exception as e:
            state = Unavailable(f"Status check failed: {e}")
        self.availability.set(state)
        return state

    async def download_model(self) -> bool:
        """Download the service's model, publishing Downloading(progress).

        Returns:
            True once the model is available.
        """
        async with self._download_lock:
            if isinstance(self.availability.value, Available):
                return True
            self.availability.set(Downloading(0))
            try:
                async for progress in self.client.download():
                    self.availability.set(Downloading(progress))
            except Exception as e:
                logger.warning(f"Platform AI download failed: {e}")
                self.availability.set(Unavailable(f"Download failed: {e}"))
                return False
            state = await self.refresh_availability()
            return isinstance(state, Available)

    async def release(self) -> None:
        await self.client.close()
        self.availability.set(Unavailable("Released"))

    async def _generate_text(self, prompt: Prompt, request: AiRequest) -> str:
        state = self.availability.value
        if not isinstance(state, Available):
            raise ProviderUnavailable(f"Platform AI not ready: {state}", self.provider_id)

        try:
            return await self.client.generate(
                prompt.system,
                prompt.user,
                max_tokens=request.options.max_tokens,
                temperature=request.options.temperature,
                timeout=self.timeout,
            )
        except asyncio.TimeoutError as e:
            raise ProviderTimeout(f"Platform AI exceeded {self.timeout}s", self.provider_id) from e
        except ProviderError:
            raise
        except Exception as e:
            raise ProviderError(f"Platform AI generation failed: {e}", self.provider_id) from e
