"""Tests for the native on-device LLM provider."""

import asyncio

import pytest

from conftest import FakeEngine, SerialEngine, fixed_clock
from prio_router.errors import (
    ProviderError,
    ProviderNotSupported,
    ProviderTimeout,
    ProviderUnavailable,
)
from prio_router.models import AiRequest, Quadrant, RequestOptions, RequestType
from prio_router.providers.native import NativeLlmProvider


def _provider(
    engine: FakeEngine, model_path: str | None = "phi3.gguf", **kwargs: float
) -> NativeLlmProvider:
    return NativeLlmProvider(engine, model_path=model_path, clock=fixed_clock, **kwargs)


class TestNativeLifecycle:
    """Model loading and availability."""

    @pytest.mark.asyncio
    async def test_initialize_loads_model(self) -> None:
        engine = FakeEngine()
        provider = _provider(engine)
        seen: list[bool] = []
        provider.is_available.subscribe(seen.append)

        assert await provider.initialize() is True
        assert engine.loaded_path == "phi3.gguf"
        assert provider.is_available.value is True
        assert provider.model_name == "phi3.gguf"
        assert seen == [False, True]

    @pytest.mark.asyncio
    async def test_initialize_without_model(self) -> None:
        provider = _provider(FakeEngine(), model_path=None)
        assert await provider.initialize() is False
        assert provider.is_available.value is False

    @pytest.mark.asyncio
    async def test_load_failure_leaves_unavailable(self) -> None:
        provider = _provider(FakeEngine(fail_load=True))
        assert await provider.initialize() is False
        assert provider.is_available.value is False
        assert provider.model_name == "none"

    @pytest.mark.asyncio
    async def test_unload(self) -> None:
        engine = FakeEngine()
        provider = _provider(engine)
        await provider.initialize()
        await provider.release()
        assert engine.is_loaded is False
        assert provider.is_available.value is False

    @pytest.mark.asyncio
    async def test_swap_model(self) -> None:
        engine = FakeEngine()
        provider = _provider(engine)
        await provider.initialize()
        assert await provider.load_model("llama3.gguf") is True
        assert provider.model_name == "llama3.gguf"
        assert provider.is_available.value is True


class TestNativeComplete:
    """Inference through the engine."""

    @pytest.mark.asyncio
    async def test_classification(self) -> None:
        engine = FakeEngine(response='```json\n{"quadrant": "Q1", "confidence": 1.5}\n```')
        provider = _provider(engine)
        await provider.initialize()

        response = await provider.complete(
            AiRequest(RequestType.CLASSIFY_PRIORITY, "Fix the outage", options=RequestOptions(max_tokens=64))
        )
        assert response.success
        assert response.result.quadrant is Quadrant.DO_FIRST
        assert response.result.confidence == 1.0
        assert response.metadata.confidence_score == 1.0
        assert response.metadata.was_rule_based is False
        assert response.metadata.provider_id == "native-llm"
        assert engine.calls[0]["max_tokens"] == 64
        assert "Fix the outage" in engine.calls[0]["user"]

    @pytest.mark.asyncio
    async def test_prompt_uses_clock(self) -> None:
        engine = FakeEngine(response='{"title": "Call mom", "due_date": "2026-03-12"}')
        provider = _provider(engine)
        await provider.initialize()

        response = await provider.complete(AiRequest(RequestType.PARSE_TASK, "call mom tomorrow"))
        assert response.result.title == "Call mom"
        assert "2026-03-11" in engine.calls[0]["user"]
        assert "Wednesday" in engine.calls[0]["user"]

    @pytest.mark.asyncio
    async def test_not_loaded_is_unavailable(self) -> None:
        provider = _provider(FakeEngine(), model_path=None)
        with pytest.raises(ProviderUnavailable):
            await provider.complete(AiRequest(RequestType.CLASSIFY_PRIORITY, "x"))

    @pytest.mark.asyncio
    async def test_action_items_not_supported(self) -> None:
        engine = FakeEngine()
        provider = _provider(engine)
        await provider.initialize()

        assert RequestType.EXTRACT_ACTION_ITEMS not in provider.supported_types
        with pytest.raises(ProviderNotSupported):
            await provider.complete(AiRequest(RequestType.EXTRACT_ACTION_ITEMS, "notes"))
        assert engine.calls == []

    @pytest.mark.asyncio
    async def test_engine_error_is_wrapped(self) -> None:
        provider = _provider(FakeEngine(fail_generate=RuntimeError("llama_decode failed")))
        await provider.initialize()

        with pytest.raises(ProviderError) as exc_info:
            await provider.complete(AiRequest(RequestType.GENERAL_GENERATE, "hi"))
        assert not isinstance(exc_info.value, ProviderTimeout)
        assert exc_info.value.provider_id == "native-llm"
        assert "llama_decode failed" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_timeout(self) -> None:
        provider = _provider(FakeEngine(delay_seconds=0.3), inference_timeout=0.02)
        await provider.initialize()

        with pytest.raises(ProviderTimeout):
            await provider.complete(AiRequest(RequestType.GENERAL_GENERATE, "hi"))
        assert provider.is_available.value is True

    @pytest.mark.asyncio
    async def test_abandoned_requests_never_reach_engine(self) -> None:
        engine = SerialEngine(delay_seconds=0.2)
        provider = _provider(engine)
        await provider.initialize()
        request = AiRequest(RequestType.GENERAL_GENERATE, "hi")

        results = await asyncio.gather(
            *(asyncio.wait_for(provider.complete(request), 0.05) for _ in range(5)),
            return_exceptions=True,
        )
        assert all(isinstance(r, asyncio.TimeoutError) for r in results)

        await asyncio.sleep(0.4)
        assert len(engine.calls) == 1
        assert engine.finished == 1

        response = await provider.complete(request)
        assert response.success
        assert engine.finished == 2
