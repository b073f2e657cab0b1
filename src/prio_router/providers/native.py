"""
prio-router: Native on-device LLM provider.

Wraps a bundled inference engine reached through a foreign-function
boundary (llama.cpp by default). The engine API is blocking, so every call
runs in a worker thread; anything the engine raises is converted to a
ProviderError before it reaches the router.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import Callable, Protocol, runtime_checkable

from prio_router.errors import ProviderError, ProviderTimeout, ProviderUnavailable
from prio_router.models import AiRequest, RequestType
from prio_router.prompts import Prompt
from prio_router.providers.llm import LlmProvider

logger = logging.getLogger(__name__)

NATIVE_LLM_ID = "native-llm"


@runtime_checkable
class NativeEngine(Protocol):
    """Blocking interface of a native inference engine."""

    @property
    def is_loaded(self) -> bool:
        ...

    def load(self, model_path: str) -> None:
        """Load model weights. Raises on failure."""
        ...

    def generate(
        self, system_prompt: str, user_prompt: str, *, max_tokens: int, temperature: float
    ) -> str:
        """Run one completion and return the generated text."""
        ...

    def unload(self) -> None:
        ...


class NativeLlmProvider(LlmProvider):
    """Provider backed by a locally loaded model.

    ``is_available`` is True exactly while a model is loaded. Extracting
    action items has no dedicated handler here and is rejected with
    ProviderNotSupported.

    Example::

        provider = NativeLlmProvider(LlamaCppEngine(), model_path="models/phi-3-mini-q4.gguf")
        await provider.initialize()
    """

    provider_id = NATIVE_LLM_ID
    handled_types = frozenset(
        {
            RequestType.CLASSIFY_PRIORITY,
            RequestType.PARSE_TASK,
            RequestType.SUGGEST_SMART_GOAL,
            RequestType.GENERATE_BRIEFING,
            RequestType.GENERAL_GENERATE,
        }
    )

    def __init__(
        self,
        engine: NativeEngine,
        model_path: str | None = None,
        inference_timeout: float = 30.0,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        """Initialize the provider.

        Args:
            engine: Native engine performing the inference.
            model_path: Model loaded by initialize(), if any.
            inference_timeout: Seconds before a single generation is abandoned.
            clock: Source of the current time for date-aware prompts.
        """
        super().__init__(clock)
        self.engine = engine
        self.model_path = model_path
        self.inference_timeout = inference_timeout
        self._model_lock = asyncio.Lock()
        self._inference_lock = asyncio.Lock()
        self._loaded_path: str | None = None

    @property
    def model_name(self) -> str:
        return self._loaded_path or "none"

    async def initialize(self) -> bool:
        if self.engine.is_loaded:
            self.is_available.set(True)
            return True
        if self.model_path is None:
            logger.info("Native LLM: no model configured")
            return False
        return await self.load_model(self.model_path)

    async def load_model(self, model_path: str) -> bool:
        """Load a model, replacing any loaded one.

        Returns:
            True if the model loaded. Failures are logged and leave the
            provider unavailable.
        """
        async with self._model_lock:
            self.is_available.set(False)
            try:
                await asyncio.to_thread(self.engine.load, model_path)
            except Exception as e:
                logger.warning(f"Native LLM failed to load {model_path}: {e}")
                self._loaded_path = None
                return False
            self._loaded_path = model_path
            self.is_available.set(True)
            logger.info(f"Native LLM loaded: {model_path}")
            return True

    async def unload_model(self) -> None:
        async with self._model_lock:
            self.is_available.set(False)
            if self.engine.is_loaded:
                await asyncio.to_thread(self.engine.unload)
                logger.info(f"Native LLM unloaded: {self._loaded_path}")
            self._loaded_path = None

    async def release(self) -> None:
        await self.unload_model()

    async def _generate_text(self, prompt: Prompt, request: AiRequest) -> str:
        if not self.engine.is_loaded:
            self.is_available.set(False)
            raise ProviderUnavailable("No native model loaded", self.provider_id)

        try:
            return await asyncio.wait_for(
                self._run_exclusive(prompt, request), timeout=self.inference_timeout
            )
        except asyncio.TimeoutError as e:
            raise ProviderTimeout(
                f"Native inference exceeded {self.inference_timeout}s", self.provider_id
            ) from e
        except ProviderError:
            raise
        except Exception as e:
            raise ProviderError(f"Native inference failed: {e}", self.provider_id) from e

    async def _run_exclusive(self, prompt: Prompt, request: AiRequest) -> str:
        """Run one generation with the engine to ourselves.

        A worker thread cannot be interrupted, so callers queue on
        ``_inference_lock`` rather than inside the engine. A caller that gives
        up while queued never reaches the engine. The lock is released when
        the worker thread finishes, not when the caller stops waiting.
        """
        await self._inference_lock.acquire()
        try:
            job = asyncio.ensure_future(
                asyncio.to_thread(
                    self.engine.generate,
                    prompt.system,
                    prompt.user,
                    max_tokens=request.options.max_tokens,
                    temperature=request.options.temperature,
                )
            )
        except BaseException:
            self._inference_lock.release()
            raise
        job.add_done_callback(self._generation_finished)
        return await asyncio.shield(job)

    def _generation_finished(self, job: asyncio.Future) -> None:
        self._inference_lock.release()
        if not job.cancelled() and job.exception() is not None:
            logger.debug(f"Native generation ended with {job.exception()!r}")
