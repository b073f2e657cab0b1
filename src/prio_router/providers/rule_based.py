"""
prio-router: Rule-based provider.

Adapts the deterministic RuleEngine to the Provider protocol. Always
available, no I/O, answers in well under 50 ms.
"""

from __future__ import annotations

import time
from typing import Callable

from prio_router.errors import ProviderNotSupported
from prio_router.models import AiRequest, AiResponse, AiResult, RequestType, ResponseMetadata
from prio_router.rules.engine import RuleEngine
from prio_router.rules.goals import TEMPLATE_CONFIDENCE
from prio_router.signals import Observable

RULE_BASED_ID = "rule-based"


class RuleBasedProvider:
    """Provider backed by the deterministic rule engine.

    Never fails for a supported request type; other types raise
    ProviderNotSupported so the router does not mistake them for an answer.
    """

    provider_id = RULE_BASED_ID
    model_name = "rule-engine"

    def __init__(self, engine: RuleEngine | None = None) -> None:
        self.engine = engine or RuleEngine()
        self.is_available: Observable[bool] = Observable(True)
        self._handlers: dict[RequestType, Callable[[AiRequest], tuple[AiResult, float]]] = {
            RequestType.CLASSIFY_PRIORITY: self._classify,
            RequestType.PARSE_TASK: self._parse,
            RequestType.SUGGEST_SMART_GOAL: self._smart_goal,
        }
        self.supported_types = frozenset(self._handlers)

    async def initialize(self) -> bool:
        return True

    async def complete(self, request: AiRequest) -> AiResponse:
        handler = self._handlers.get(request.request_type)
        if handler is None:
            raise ProviderNotSupported(request.request_type, self.provider_id)

        start_time = time.perf_counter()
        result, confidence = handler(request)
        return AiResponse(
            request_id=request.id,
            success=True,
            result=result,
            metadata=ResponseMetadata(
                was_rule_based=True,
                confidence_score=confidence,
                provider_id=self.provider_id,
                latency_ms=(time.perf_counter() - start_time) * 1000,
                model=self.model_name,
            ),
        )

    async def release(self) -> None:
        pass

    def _classify(self, request: AiRequest) -> tuple[AiResult, float]:
        due_date = request.context.due_date if request.context else None
        result = self.engine.classify_priority(request.input, due_date)
        return result, result.confidence

    def _parse(self, request: AiRequest) -> tuple[AiResult, float]:
        result = self.engine.parse_task(request.input)
        return result, result.confidence

    def _smart_goal(self, request: AiRequest) -> tuple[AiResult, float]:
        return self.engine.suggest_smart_goal(request.input), TEMPLATE_CONFIDENCE
