"""
prio-router: Core router implementation.

The AiRouter always computes a deterministic rule-based answer first, then
decides per request whether to escalate to an on-device inference backend
(native LLM or platform AI service), walking the candidates in an order set
by the routing mode and falling back to the rule-based answer when every
candidate declines, fails or times out.
"""

from __future__ import annotations

import asyncio
import logging
import threading
import time
from collections import deque
from typing import Any, Callable

from prio_router.config import RouterConfig
from prio_router.errors import ProviderError, ProviderNotSupported, UnsupportedRequestType
from prio_router.models import (
    AiRequest,
    AiResponse,
    OverrideRecord,
    PriorityClassification,
    Quadrant,
    ResponseMetadata,
    RoutingMode,
)
from prio_router.providers.base import Provider
from prio_router.providers.rule_based import RuleBasedProvider
from prio_router.signals import Observable
from prio_router.stats import RouterStats, StatsTracker

logger = logging.getLogger(__name__)

# Escalation visit order per mode, by provider slot.
_ESCALATION_ORDER: dict[RoutingMode, tuple[str, ...]] = {
    RoutingMode.RULE_ONLY: (),
    RoutingMode.HYBRID: ("native",),
    RoutingMode.HYBRID_PLATFORM_FIRST: ("platform", "native"),
    RoutingMode.ESCALATION_PREFERRED: ("native", "platform"),
}

# Preference order for types only inference backends implement.
_DIRECT_ORDER: dict[RoutingMode, tuple[str, ...]] = {
    RoutingMode.RULE_ONLY: (),
    RoutingMode.HYBRID: ("native", "platform"),
    RoutingMode.HYBRID_PLATFORM_FIRST: ("platform", "native"),
    RoutingMode.ESCALATION_PREFERRED: ("native", "platform"),
}

# Outcome labels used for stats accounting.
_RULE_BASED = "rule_based"
_ESCALATED = "escalated"
_ESCALATION_FAILED = "escalation_failed"
_DIRECT = "direct"
_UNANSWERED = "unanswered"


class AiRouter:
    """Routes AI requests between the rule engine and inference backends.

    Quick setup::

        router = AiRouter(native=NativeLlmProvider(LlamaCppEngine(), model_path="phi3.gguf"))

        async with router:
            response = await router.complete(
                AiRequest(RequestType.CLASSIFY_PRIORITY, "Finish the board deck by tomorrow")
            )
            print(response.result.quadrant, response.metadata.was_rule_based)

    Full configuration::

        router = AiRouter(
            native=NativeLlmProvider(LlamaCppEngine(threads=4), model_path="phi3.gguf"),
            platform=PlatformAiProvider(OllamaPlatformClient(model="gemma2:2b")),
            config=RouterConfig(default_mode=RoutingMode.HYBRID_PLATFORM_FIRST,
                                default_min_confidence=0.7,
                                provider_timeout=3.0),
        )
        router.stats.subscribe(lambda s: print(s.total_requests))
    """

    def __init__(
        self,
        rule_based: RuleBasedProvider | None = None,
        *,
        native: Provider | None = None,
        platform: Provider | None = None,
        config: RouterConfig | None = None,
    ) -> None:
        self._config = config or RouterConfig()
        self._rule_based = rule_based or RuleBasedProvider()
        self._native = native
        self._platform = platform

        self.routing_mode: Observable[RoutingMode] = Observable(self._config.default_mode)
        self._mode_explicit = False

        self._stats = StatsTracker()
        self._history: deque[OverrideRecord] = deque(maxlen=self._config.override_history_capacity)
        self._history_lock = threading.Lock()

        self._available: dict[str, bool] = {}
        self._unsubscribers: list[Callable[[], None]] = []
        self._init_lock = asyncio.Lock()
        self._initialized = False

    @property
    def config(self) -> RouterConfig:
        return self._config

    @property
    def stats(self) -> Observable[RouterStats]:
        """Observable snapshot of routing statistics."""
        return self._stats.observable

    # ──────────────────────────────────────────────────────────────────────
    # Lifecycle
    # ──────────────────────────────────────────────────────────────────────

    async def initialize(self) -> None:
        """Initialize every provider once.

        Safe to call concurrently; exactly one initialization runs. Called
        automatically by the first complete().
        """
        if self._initialized:
            return
        async with self._init_lock:
            if self._initialized:
                return

            await self._rule_based.initialize()
            for provider in self._escalation_providers():
                try:
                    ready = await provider.initialize()
                except Exception as e:
                    logger.warning(f"Provider '{provider.provider_id}' failed to initialize: {e}")
                    ready = False
                logger.info(f"Provider '{provider.provider_id}' initialized (ready={ready})")
                self._unsubscribers.append(
                    provider.is_available.subscribe(
                        lambda value, pid=provider.provider_id: self._on_availability(pid, value)
                    )
                )

            if (
                self._config.auto_select_mode
                and not self._mode_explicit
                and self.routing_mode.value is RoutingMode.HYBRID
                and self._platform is not None
                and self._available.get(self._platform.provider_id, False)
            ):
                self.routing_mode.set(RoutingMode.HYBRID_PLATFORM_FIRST)
                logger.info("Platform AI ready, routing mode set to HYBRID_PLATFORM_FIRST")

            self._initialized = True
            logger.info(
                f"AiRouter initialized (mode={self.routing_mode.value.name}, "
                f"providers: {', '.join(self._provider_ids())})"
            )

    async def close(self) -> None:
        """Release every provider."""
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers.clear()

        for provider in [self._rule_based, *self._escalation_providers()]:
            try:
                await provider.release()
            except Exception as e:
                logger.warning(f"Error releasing provider '{provider.provider_id}': {e}")

        self._available.clear()
        self._initialized = False
        logger.info("AiRouter closed")

    async def __aenter__(self) -> AiRouter:
        """Async context manager entry."""
        await self.initialize()
        return self

    async def __aexit__(self, *args: Any) -> None:
        """Async context manager exit."""
        await self.close()

    # ──────────────────────────────────────────────────────────────────────
    # Routing Policy
    # ──────────────────────────────────────────────────────────────────────

    def set_routing_mode(self, mode: RoutingMode) -> None:
        """Change the routing mode. Calls already routing are not affected."""
        self._mode_explicit = True
        previous = self.routing_mode.value
        self.routing_mode.set(mode)
        if previous is not mode:
            logger.info(f"Routing mode changed: {previous.name} -> {mode.name}")

    # ──────────────────────────────────────────────────────────────────────
    # Core API
    # ──────────────────────────────────────────────────────────────────────

    async def complete(self, request: AiRequest) -> AiResponse:
        """Answer a request with the best available provider.

        Escalation-eligible types always succeed: the rule-based answer is
        returned whenever no inference backend produces one. ``success`` is
        False only when no provider can handle the request type.

        Cancelling the calling task cancels any in-flight provider call and
        leaves the statistics untouched.
        """
        await self.initialize()

        start_time = time.perf_counter()
        mode = self.routing_mode.value
        rule_response = await self._rule_answer(request)

        if request.request_type in self._config.escalation_eligible_types:
            response, outcome = await self._route_eligible(request, mode, rule_response)
        else:
            response, outcome = await self._route_direct(request, mode, rule_response)

        latency_ms = (time.perf_counter() - start_time) * 1000
        response.request_id = request.id
        response.metadata.latency_ms = latency_ms
        self._record(outcome, response, latency_ms)

        logger.debug(
            f"Request {request.id} ({request.request_type.value}) -> "
            f"{response.metadata.provider_id or 'none'} [{outcome}] in {latency_ms:.0f}ms"
        )
        return response

    async def _rule_answer(self, request: AiRequest) -> AiResponse | None:
        if request.request_type not in self._rule_based.supported_types:
            return None
        try:
            return await self._rule_based.complete(request)
        except ProviderNotSupported:
            return None

    async def _route_eligible(
        self, request: AiRequest, mode: RoutingMode, rule_response: AiResponse | None
    ) -> tuple[AiResponse, str]:
        llm_allowed = mode is not RoutingMode.RULE_ONLY and request.options.use_llm

        if rule_response is None:
            # Eligible type the rule engine cannot answer: inference backends only.
            if not llm_allowed:
                return self._unsupported(request), _UNANSWERED
            candidates = self._candidates(_ESCALATION_ORDER[mode])
            response, attempted, errors = await self._try_candidates(request, candidates)
            if response is not None:
                response.metadata.attempted_providers = attempted
                return response, _ESCALATED
            return self._unsupported(request, attempted, errors), _UNANSWERED

        if not llm_allowed:
            return rule_response, _RULE_BASED

        candidates = self._candidates(_ESCALATION_ORDER[mode])
        if not candidates:
            return rule_response, _RULE_BASED

        threshold = request.options.min_confidence
        if threshold is None:
            threshold = self._config.default_min_confidence
        rule_confidence = rule_response.metadata.confidence_score
        if mode is not RoutingMode.ESCALATION_PREFERRED and rule_confidence >= threshold:
            return rule_response, _RULE_BASED

        logger.debug(
            f"Escalating {request.request_type.value} (rule confidence "
            f"{rule_confidence:.2f}, threshold {threshold:.2f}, mode {mode.name})"
        )
        response, attempted, errors = await self._try_candidates(request, candidates)
        if response is not None:
            response.metadata.attempted_providers = attempted
            return response, _ESCALATED

        rule_response.metadata.attempted_providers = attempted
        rule_response.metadata.fallback_reason = "; ".join(errors)
        return rule_response, _ESCALATION_FAILED

    async def _route_direct(
        self, request: AiRequest, mode: RoutingMode, rule_response: AiResponse | None
    ) -> tuple[AiResponse, str]:
        if rule_response is not None:
            return rule_response, _RULE_BASED
        if mode is RoutingMode.RULE_ONLY or not request.options.use_llm:
            return self._unsupported(request), _UNANSWERED

        handlers = [
            p
            for p in self._candidates(_DIRECT_ORDER[mode])
            if request.request_type in p.supported_types
        ]
        if not handlers:
            return self._unsupported(request), _UNANSWERED

        # The first capable provider owns the type; no trial of the others.
        response, attempted, errors = await self._try_candidates(request, handlers[:1])
        if response is not None:
            response.metadata.attempted_providers = attempted
            return response, _DIRECT
        return (
            AiResponse(
                request_id=request.id,
                success=False,
                metadata=ResponseMetadata(
                    provider_id=handlers[0].provider_id, attempted_providers=attempted
                ),
                error="; ".join(errors),
                error_code="provider_failed",
            ),
            _UNANSWERED,
        )

    async def _try_candidates(
        self, request: AiRequest, candidates: list[Provider]
    ) -> tuple[AiResponse | None, tuple[str, ...], list[str]]:
        """Ask each candidate in turn until one answers.

        Returns:
            The first successful response (or None), the ids of the
            providers attempted, and one error line per failed attempt.
        """
        timeout = self._call_timeout(request)
        attempted: list[str] = []
        errors: list[str] = []

        for provider in candidates:
            pid = provider.provider_id
            attempted.append(pid)
            try:
                response = await asyncio.wait_for(provider.complete(request), timeout=timeout)
            except asyncio.TimeoutError:
                logger.warning(f"Provider '{pid}' timed out after {timeout}s")
                errors.append(f"{pid}: timeout after {timeout}s")
                continue
            except ProviderNotSupported:
                logger.debug(f"Provider '{pid}' does not support {request.request_type.value}")
                errors.append(f"{pid}: not supported")
                continue
            except ProviderError as e:
                logger.warning(f"Provider '{pid}' failed: {e}")
                errors.append(f"{pid}: {e}")
                continue
            except Exception as e:
                logger.warning(f"Provider '{pid}' raised {type(e).__name__}: {e}")
                errors.append(f"{pid}: {type(e).__name__}: {e}")
                continue

            if not response.success or response.result is None:
                errors.append(f"{pid}: {response.error or 'no result'}")
                continue
            return response, tuple(attempted), errors

        return None, tuple(attempted), errors

    # ──────────────────────────────────────────────────────────────────────
    # Overrides & Accuracy
    # ──────────────────────────────────────────────────────────────────────

    def record_override(
        self,
        request_id: str,
        original_result: PriorityClassification | Quadrant,
        override_quadrant: Quadrant | str,
        was_llm: bool,
    ) -> OverrideRecord:
        """Record that the user corrected a classification.

        Args:
            request_id: Id of the request whose result was corrected.
            original_result: The classification that was shown to the user.
            override_quadrant: The quadrant the user chose instead.
            was_llm: Whether the original came from an inference backend.

        Returns:
            The stored record. The history keeps the most recent
            ``override_history_capacity`` records.
        """
        original = (
            original_result.quadrant
            if isinstance(original_result, PriorityClassification)
            else original_result
        )
        record = OverrideRecord(
            request_id=request_id,
            original_quadrant=original,
            override_quadrant=Quadrant.from_label(override_quadrant),
            was_llm=was_llm,
        )
        with self._history_lock:
            self._history.append(record)
        self._stats.record_override()
        logger.debug(
            f"Override on {request_id}: {original.name} -> {record.override_quadrant.name} "
            f"({'llm' if was_llm else 'rule-based'})"
        )
        return record

    def get_override_history(self) -> list[OverrideRecord]:
        """Override records, oldest first."""
        with self._history_lock:
            return list(self._history)

    def calculate_accuracy(self) -> float:
        """Share of requests not overridden by the user, in [0, 1].

        Returns 1.0 before any request has completed.
        """
        return self._stats.accuracy()

    def reset_stats(self) -> None:
        """Reset counters and clear the override history."""
        with self._history_lock:
            self._history.clear()
        self._stats.reset()

    # ──────────────────────────────────────────────────────────────────────
    # Observability
    # ──────────────────────────────────────────────────────────────────────

    def get_stats(self) -> dict[str, Any]:
        """Get routing statistics."""
        stats = self._stats.get_stats()
        stats["routing_mode"] = self.routing_mode.value.name
        return stats

    def get_provider_status(self) -> dict[str, dict[str, Any]]:
        """Get per-provider availability and capabilities."""
        result: dict[str, dict[str, Any]] = {}
        for provider in [self._rule_based, *self._escalation_providers()]:
            status: dict[str, Any] = {
                "available": provider.is_available.value,
                "supported_types": sorted(t.value for t in provider.supported_types),
            }
            availability = getattr(provider, "availability", None)
            if isinstance(availability, Observable):
                status["state"] = repr(availability.value)
            result[provider.provider_id] = status
        return result

    # ──────────────────────────────────────────────────────────────────────
    # Internal
    # ──────────────────────────────────────────────────────────────────────

    def _escalation_providers(self) -> list[Provider]:
        return [p for p in (self._platform, self._native) if p is not None]

    def _provider_ids(self) -> list[str]:
        return [self._rule_based.provider_id] + [p.provider_id for p in self._escalation_providers()]

    def _candidates(self, slots: tuple[str, ...]) -> list[Provider]:
        """Providers for the given slots that currently report available."""
        candidates = []
        for slot in slots:
            provider = self._native if slot == "native" else self._platform
            if provider is not None and self._available.get(provider.provider_id, False):
                candidates.append(provider)
        return candidates

    def _on_availability(self, provider_id: str, available: bool) -> None:
        previous = self._available.get(provider_id)
        self._available[provider_id] = available
        if previous is not None and previous != available:
            logger.info(f"Provider '{provider_id}' availability changed: {available}")

    def _call_timeout(self, request: AiRequest) -> float:
        timeout = self._config.provider_timeout
        if request.options.timeout_ms is not None:
            timeout = min(timeout, request.options.timeout_ms / 1000)
        return timeout

    @staticmethod
    def _unsupported(
        request: AiRequest, attempted: tuple[str, ...] = (), errors: list[str] | None = None
    ) -> AiResponse:
        error = str(UnsupportedRequestType(request.request_type))
        if errors:
            error = f"{error} ({'; '.join(errors)})"
        return AiResponse(
            request_id=request.id,
            success=False,
            metadata=ResponseMetadata(attempted_providers=attempted),
            error=error,
            error_code="unsupported_request_type",
        )

    def _record(self, outcome: str, response: AiResponse, latency_ms: float) -> None:
        provider_id = response.metadata.provider_id
        if outcome == _RULE_BASED:
            self._stats.record_rule_based(provider_id, latency_ms)
        elif outcome == _ESCALATION_FAILED:
            self._stats.record_rule_based(provider_id, latency_ms, escalation_failed=True)
        elif outcome == _ESCALATED:
            self._stats.record_escalated(provider_id, latency_ms)
        elif outcome == _DIRECT:
            self._stats.record_direct(provider_id, latency_ms)
        else:
            self._stats.record_unanswered(latency_ms)
