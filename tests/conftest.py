"""Shared test fixtures and mock providers for prio-router tests."""

from __future__ import annotations

import asyncio
import threading
import time
from datetime import datetime
from typing import Any, AsyncIterator

import pytest

from prio_router.errors import ProviderError, ProviderNotSupported
from prio_router.models import (
    ActionItem,
    ActionItems,
    AiRequest,
    AiResponse,
    AiResult,
    BriefingContent,
    GeneralText,
    ParsedTask,
    PriorityClassification,
    Quadrant,
    RequestType,
    ResponseMetadata,
    SmartGoalSuggestion,
)
from prio_router.providers.platform import AvailabilityState, Available
from prio_router.providers.rule_based import RuleBasedProvider
from prio_router.rules import RuleEngine
from prio_router.signals import Observable

# Wednesday, 2026-03-11 10:00
FIXED_NOW = datetime(2026, 3, 11, 10, 0)


def fixed_clock() -> datetime:
    return FIXED_NOW


class MockProvider:
    """Configurable mock escalation provider.

    By default, answers every request type successfully. Can be configured
    to fail, delay, decline the request type or start unavailable.
    """

    def __init__(
        self,
        provider_id: str = "mock",
        available: bool = True,
        should_fail: bool = False,
        raise_not_supported: bool = False,
        delay_seconds: float = 0.0,
        quadrant: Quadrant = Quadrant.DO_FIRST,
        confidence: float = 0.9,
        supported_types: frozenset[RequestType] | None = None,
        call_log: list[str] | None = None,
    ) -> None:
        self.provider_id = provider_id
        self.is_available: Observable[bool] = Observable(available)
        self.should_fail = should_fail
        self.raise_not_supported = raise_not_supported
        self.delay_seconds = delay_seconds
        self.quadrant = quadrant
        self.confidence = confidence
        self.supported_types = supported_types or frozenset(RequestType)
        self.call_log = call_log if call_log is not None else []
        self.call_count = 0
        self.init_count = 0
        self.released = False
        self.last_request: AiRequest | None = None

    async def initialize(self) -> bool:
        self.init_count += 1
        await asyncio.sleep(0)
        return self.is_available.value

    async def complete(self, request: AiRequest) -> AiResponse:
        self.call_count += 1
        self.call_log.append(self.provider_id)
        self.last_request = request

        if self.delay_seconds > 0:
            await asyncio.sleep(self.delay_seconds)
        if self.raise_not_supported:
            raise ProviderNotSupported(request.request_type, self.provider_id)
        if self.should_fail:
            raise ProviderError("Mock failure", self.provider_id)

        return AiResponse(
            request_id=request.id,
            success=True,
            result=self._result(request),
            metadata=ResponseMetadata(
                was_rule_based=False,
                confidence_score=self.confidence,
                provider_id=self.provider_id,
                latency_ms=self.delay_seconds * 1000,
                model="mock-model",
            ),
        )

    async def release(self) -> None:
        self.released = True

    def _result(self, request: AiRequest) -> AiResult:
        kind = request.request_type
        if kind is RequestType.CLASSIFY_PRIORITY:
            return PriorityClassification(
                quadrant=self.quadrant,
                confidence=self.confidence,
                explanation=f"{self.provider_id} says so",
                is_urgent=self.quadrant.is_urgent,
                is_important=self.quadrant.is_important,
            )
        if kind is RequestType.PARSE_TASK:
            return ParsedTask(title=f"{self.provider_id} task", confidence=self.confidence)
        if kind is RequestType.SUGGEST_SMART_GOAL:
            return SmartGoalSuggestion(refined_goal=f"{self.provider_id} refined goal")
        if kind is RequestType.GENERATE_BRIEFING:
            return BriefingContent(greeting="Good morning", summary="Three tasks due today")
        if kind is RequestType.EXTRACT_ACTION_ITEMS:
            return ActionItems(items=[ActionItem(description="Send the minutes", assignee="Ana")])
        return GeneralText(text=f"{self.provider_id} text")


class FakeEngine:
    """In-memory NativeEngine returning a canned completion."""

    def __init__(
        self,
        response: str = '{"quadrant": "DO", "confidence": 0.9, "explanation": "deadline"}',
        fail_load: bool = False,
        fail_generate: Exception | None = None,
        delay_seconds: float = 0.0,
    ) -> None:
        self.response = response
        self.fail_load = fail_load
        self.fail_generate = fail_generate
        self.delay_seconds = delay_seconds
        self.loaded_path: str | None = None
        self.calls: list[dict[str, Any]] = []

    @property
    def is_loaded(self) -> bool:
        return self.loaded_path is not None

    def load(self, model_path: str) -> None:
        if self.fail_load:
            raise FileNotFoundError(f"Model file not found: {model_path}")
        self.loaded_path = model_path

    def generate(
        self, system_prompt: str, user_prompt: str, *, max_tokens: int, temperature: float
    ) -> str:
        self.calls.append(
            {
                "system": system_prompt,
                "user": user_prompt,
                "max_tokens": max_tokens,
                "temperature": temperature,
            }
        )
        if self.delay_seconds > 0:
            time.sleep(self.delay_seconds)
        if self.fail_generate is not None:
            raise self.fail_generate
        return self.response

    def unload(self) -> None:
        self.loaded_path = None


class SerialEngine(FakeEngine):
    """FakeEngine that runs one generation at a time, like llama.cpp."""

    def __init__(self, delay_seconds: float = 0.2) -> None:
        super().__init__(delay_seconds=delay_seconds)
        self._lock = threading.Lock()
        self.finished = 0

    def generate(
        self, system_prompt: str, user_prompt: str, *, max_tokens: int, temperature: float
    ) -> str:
        with self._lock:
            text = super().generate(
                system_prompt, user_prompt, max_tokens=max_tokens, temperature=temperature
            )
            self.finished += 1
            return text


class FakePlatformClient:
    """In-memory PlatformClient with scripted status and download progress."""

    def __init__(
        self,
        status: AvailabilityState | None = None,
        response: str = '{"items": [{"description": "Send the minutes", "assignee": "Ana"}]}',
        progress: list[int] | None = None,
        download_error: Exception | None = None,
        generate_error: Exception | None = None,
        status_error: Exception | None = None,
    ) -> None:
        self.status = status or Available()
        self.response = response
        self.progress = progress if progress is not None else [25, 50, 100]
        self.download_error = download_error
        self.generate_error = generate_error
        self.status_error = status_error
        self.generate_calls: list[dict[str, Any]] = []
        self.closed = False

    async def check_status(self) -> AvailabilityState:
        if self.status_error is not None:
            raise self.status_error
        return self.status

    async def download(self) -> AsyncIterator[int]:
        for value in self.progress:
            await asyncio.sleep(0)
            yield value
        if self.download_error is not None:
            raise self.download_error
        self.status = Available()

    async def generate(
        self,
        system_prompt: str,
        user_prompt: str,
        *,
        max_tokens: int,
        temperature: float,
        timeout: float,
    ) -> str:
        self.generate_calls.append(
            {"system": system_prompt, "user": user_prompt, "timeout": timeout}
        )
        if self.generate_error is not None:
            raise self.generate_error
        return self.response

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def rule_provider() -> RuleBasedProvider:
    """Rule-based provider pinned to FIXED_NOW."""
    return RuleBasedProvider(RuleEngine(clock=fixed_clock))


@pytest.fixture
def engine() -> RuleEngine:
    """Rule engine pinned to FIXED_NOW."""
    return RuleEngine(clock=fixed_clock)
