"""
prio-router: Routing statistics and accuracy tracking.

Thread-safe statistics collection for monitoring how often requests are
answered by the rule engine versus escalated to inference backends, and
how often users correct the result.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field, replace
from typing import Any

from prio_router.signals import Observable


@dataclass(frozen=True)
class RouterStats:
    """Snapshot of router metrics.

    Attributes:
        total_requests: Completed complete() calls.
        rule_based_only: Requests answered by the rule engine.
        escalated: Requests answered by an escalation provider after the
            rule engine ran.
        escalation_failures: Escalations where every candidate failed and
            the rule result was returned instead.
        direct: Non-escalable requests answered by the single provider
            that implements them.
        unanswered: Requests that got no result (unsupported type or its
            only capable provider failed).
        overrides: User corrections recorded via record_override().
        requests_by_provider: Per-provider answer counts.
        avg_latency_ms: Running average end-to-end latency.
        avg_escalation_latency_ms: Running average latency of escalated requests.
    """

    total_requests: int = 0
    rule_based_only: int = 0
    escalated: int = 0
    escalation_failures: int = 0
    direct: int = 0
    unanswered: int = 0
    overrides: int = 0
    requests_by_provider: dict[str, int] = field(default_factory=dict)
    avg_latency_ms: float = 0.0
    avg_escalation_latency_ms: float = 0.0


class StatsTracker:
    """Thread-safe statistics tracker for the router.

    All methods are safe to call from any thread or task. Every update is
    published to ``observable`` as an immutable RouterStats snapshot.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._stats = RouterStats()
        self._escalation_count = 0
        self.observable: Observable[RouterStats] = Observable(self._stats)

    def record_rule_based(
        self, provider_id: str, latency_ms: float, escalation_failed: bool = False
    ) -> None:
        """Record a request answered by the rule engine."""
        with self._lock:
            self._update(
                provider_id,
                latency_ms,
                rule_based_only=self._stats.rule_based_only + 1,
                escalation_failures=self._stats.escalation_failures + int(escalation_failed),
            )

    def record_escalated(self, provider_id: str, latency_ms: float) -> None:
        """Record a request answered by an escalation provider."""
        with self._lock:
            self._escalation_count += 1
            avg = self._stats.avg_escalation_latency_ms
            avg += (latency_ms - avg) / self._escalation_count
            self._update(
                provider_id,
                latency_ms,
                escalated=self._stats.escalated + 1,
                avg_escalation_latency_ms=avg,
            )

    def record_direct(self, provider_id: str, latency_ms: float) -> None:
        """Record a non-escalable request answered by its designated provider."""
        with self._lock:
            self._update(provider_id, latency_ms, direct=self._stats.direct + 1)

    def record_unanswered(self, latency_ms: float) -> None:
        """Record a request that no provider could answer."""
        with self._lock:
            self._update(None, latency_ms, unanswered=self._stats.unanswered + 1)

    def record_override(self) -> None:
        """Record a user correction."""
        with self._lock:
            self._publish(replace(self._stats, overrides=self._stats.overrides + 1))

    def accuracy(self) -> float:
        """Share of requests the user did not correct, in [0, 1].

        Returns 1.0 before any request has been recorded.
        """
        with self._lock:
            total = self._stats.total_requests
            if total == 0:
                return 1.0
            return max(0.0, min(1.0, (total - self._stats.overrides) / total))

    def snapshot(self) -> RouterStats:
        """Return the current immutable snapshot."""
        with self._lock:
            return self._stats

    def get_stats(self) -> dict[str, Any]:
        """Get a snapshot of current statistics as a dictionary."""
        with self._lock:
            s = self._stats
            return {
                "total_requests": s.total_requests,
                "rule_based_only": s.rule_based_only,
                "escalated": s.escalated,
                "escalation_failures": s.escalation_failures,
                "direct": s.direct,
                "unanswered": s.unanswered,
                "overrides": s.overrides,
                "accuracy": round(self.accuracy(), 4),
                "escalation_rate": s.escalated / max(s.total_requests, 1),
                "requests_by_provider": dict(s.requests_by_provider),
                "avg_latency_ms": round(s.avg_latency_ms, 1),
                "avg_escalation_latency_ms": round(s.avg_escalation_latency_ms, 1),
            }

    def reset(self) -> None:
        """Reset all statistics to zero."""
        with self._lock:
            self._escalation_count = 0
            self._publish(RouterStats())

    def _update(self, provider_id: str | None, latency_ms: float, **changes: Any) -> None:
        # Caller holds the lock.
        total = self._stats.total_requests + 1
        by_provider = dict(self._stats.requests_by_provider)
        if provider_id is not None:
            by_provider[provider_id] = by_provider.get(provider_id, 0) + 1
        avg = self._stats.avg_latency_ms
        avg += (latency_ms - avg) / total
        self._publish(
            replace(
                self._stats,
                total_requests=total,
                requests_by_provider=by_provider,
                avg_latency_ms=avg,
                **changes,
            )
        )

    def _publish(self, stats: RouterStats) -> None:
        self._stats = stats
        self.observable.set(stats)
