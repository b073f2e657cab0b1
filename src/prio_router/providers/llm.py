"""
prio-router: Shared base for inference-backed providers.

Each request type an LLM provider answers has a dedicated handler: a prompt
builder plus an output parser. A type without a handler is rejected with
ProviderNotSupported instead of being routed through a generic chat prompt,
which would produce a result of the wrong shape.
"""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Callable

from prio_router import parsing, prompts
from prio_router.errors import ProviderNotSupported, ProviderUnavailable
from prio_router.models import AiRequest, AiResponse, RequestType, ResponseMetadata
from prio_router.parsing import OutputParser
from prio_router.prompts import Prompt
from prio_router.signals import Observable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Handler:
    build_prompt: Callable[[AiRequest, datetime], Prompt]
    parse: OutputParser


HANDLERS: dict[RequestType, Handler] = {
    RequestType.CLASSIFY_PRIORITY: Handler(prompts.classify_priority, parsing.parse_priority),
    RequestType.PARSE_TASK: Handler(prompts.parse_task, parsing.parse_task),
    RequestType.SUGGEST_SMART_GOAL: Handler(prompts.suggest_smart_goal, parsing.parse_smart_goal),
    RequestType.GENERATE_BRIEFING: Handler(prompts.generate_briefing, parsing.parse_briefing),
    RequestType.EXTRACT_ACTION_ITEMS: Handler(prompts.extract_action_items, parsing.parse_action_items),
    RequestType.GENERAL_GENERATE: Handler(prompts.general_generate, parsing.parse_general),
}


class LlmProvider(ABC):
    """Base class for providers that answer by prompting a language model.

    Subclasses declare ``handled_types`` and implement ``_generate_text``,
    which must raise ProviderError subclasses on failure.
    """

    provider_id: str = "llm"
    handled_types: frozenset[RequestType] = frozenset(HANDLERS)

    def __init__(self, clock: Callable[[], datetime] = datetime.now) -> None:
        self.is_available: Observable[bool] = Observable(False)
        self._clock = clock

    @property
    def supported_types(self) -> frozenset[RequestType]:
        return self.handled_types

    @property
    def model_name(self) -> str:
        return self.provider_id

    async def complete(self, request: AiRequest) -> AiResponse:
        if request.request_type not in self.handled_types:
            raise ProviderNotSupported(request.request_type, self.provider_id)
        if not self.is_available.value:
            raise ProviderUnavailable(f"{self.provider_id} is not available", self.provider_id)

        handler = HANDLERS[request.request_type]
        start_time = time.perf_counter()
        prompt = handler.build_prompt(request, self._clock())
        raw = await self._generate_text(prompt, request)
        result, confidence = handler.parse(raw, request)
        latency_ms = (time.perf_counter() - start_time) * 1000

        logger.debug(
            f"{self.provider_id} answered {request.request_type.value} "
            f"in {latency_ms:.0f}ms (confidence {confidence:.2f})"
        )
        return AiResponse(
            request_id=request.id,
            success=True,
            result=result,
            metadata=ResponseMetadata(
                was_rule_based=False,
                confidence_score=confidence,
                provider_id=self.provider_id,
                latency_ms=latency_ms,
                model=self.model_name,
            ),
        )

    @abstractmethod
    async def _generate_text(self, prompt: Prompt, request: AiRequest) -> str:
        """Run the model and return its raw text output."""

    @abstractmethod
    async def initialize(self) -> bool:
        ...

    @abstractmethod
    async def release(self) -> None:
        ...
