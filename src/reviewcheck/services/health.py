"""Process-wide provider health counters."""

import logging
import threading
from datetime import datetime
from typing import Dict, Iterable, List, Optional

from ..core.constants import HealthConstants
from ..core.models import ProviderHealth

logger = logging.getLogger(__name__)


class _Slot:
    """Counters for one provider, guarded by their own lock."""

    __slots__ = (
        "name", "lock", "available", "success_count", "failure_count",
        "total_latency", "consecutive_failures", "last_success", "last_failure", "last_error",
    )

    def __init__(self, name: str):
        self.name = name
        self.lock = threading.Lock()
        self.clear()
        self.available = True

    def clear(self) -> None:
        self.success_count = 0
        self.failure_count = 0
        self.total_latency = 0.0
        self.consecutive_failures = 0
        self.last_success = None
        self.last_failure = None
        self.last_error = None


class ProviderHealthTracker:
    """Success/latency counters per provider, safe for concurrent analyses.

    Slots live in a table indexed by provider name. A slot is created the first
    time a provider is seen and is never removed; ``reset`` only zeroes it.
    """

    def __init__(
        self,
        providers: Iterable[str] = (),
        neutral_score: float = HealthConstants.NEUTRAL_SCORE,
        fast_latency: float = HealthConstants.FAST_LATENCY,
        slow_latency: float = HealthConstants.SLOW_LATENCY,
        failure_streak_threshold: int = HealthConstants.FAILURE_STREAK_THRESHOLD,
    ):
        self._slots: Dict[str, _Slot] = {}
        self._table_lock = threading.Lock()
        self.neutral_score = neutral_score
        self.fast_latency = fast_latency
        self.slow_latency = slow_latency
        self.failure_streak_threshold = failure_streak_threshold
        for name in providers:
            self._slot(name)

    def _slot(self, provider: str) -> _Slot:
        slot = self._slots.get(provider)
        if slot is None:
            with self._table_lock:
                slot = self._slots.get(provider)
                if slot is None:
                    slot = _Slot(provider)
                    self._slots[provider] = slot
        return slot

    @property
    def providers(self) -> List[str]:
        return list(self._slots)

    def record_result(
        self,
        provider: str,
        success: bool,
        latency_seconds: float,
        error: Optional[str] = None,
    ) -> bool:
        """Count one call. Returns True if it ends a failure streak."""
        slot = self._slot(provider)
        with slot.lock:
            slot.total_latency += max(0.0, latency_seconds)
            if success:
                recovered = slot.consecutive_failures > 0
                slot.success_count += 1
                slot.consecutive_failures = 0
                slot.last_success = datetime.now()
            else:
                recovered = False
                slot.failure_count += 1
                slot.consecutive_failures += 1
                slot.last_failure = datetime.now()
                slot.last_error = error
        if recovered:
            logger.info(f"Provider {provider} recovered after failures")
        return recovered

    def set_available(self, provider: str, available: bool) -> None:
        slot = self._slot(provider)
        with slot.lock:
            slot.available = available

    def reset(self, provider: Optional[str] = None) -> None:
        """Zero the counters of one provider, or of all of them."""
        names = [provider] if provider else self.providers
        for name in names:
            slot = self._slot(name)
            with slot.lock:
                slot.clear()
            logger.info(f"Reset health metrics for {name}")

    def metrics(self, provider: str) -> ProviderHealth:
        """Consistent snapshot of one provider, taken under its lock."""
        slot = self._slot(provider)
        with slot.lock:
            snapshot = ProviderHealth(
                name=provider,
                available=slot.available,
                success_count=slot.success_count,
                failure_count=slot.failure_count,
                total_latency=slot.total_latency,
                request_count=slot.success_count + slot.failure_count,
                consecutive_failures=slot.consecutive_failures,
                last_success=slot.last_success,
                last_failure=slot.last_failure,
                last_error=slot.last_error,
            )
        snapshot.health_score = self._score(snapshot)
        return snapshot

    def all_metrics(self) -> Dict[str, ProviderHealth]:
        return {name: self.metrics(name) for name in self.providers}

    def health_score(self, provider: str) -> float:
        return self.metrics(provider).health_score

    def _latency_score(self, avg_latency: float) -> float:
        if avg_latency <= self.fast_latency:
            return 100.0
        if avg_latency >= self.slow_latency:
            return 0.0
        span = self.slow_latency - self.fast_latency
        return 100.0 * (self.slow_latency - avg_latency) / span

    def _score(self, h: ProviderHealth) -> float:
        if h.request_count == 0:
            return self.neutral_score
        score = (
            HealthConstants.SUCCESS_WEIGHT * h.success_rate
            + HealthConstants.LATENCY_WEIGHT * self._latency_score(h.avg_latency)
        )
        if h.consecutive_failures >= self.failure_streak_threshold:
            score *= HealthConstants.FAILURE_STREAK_PENALTY
        return round(score, 2)
