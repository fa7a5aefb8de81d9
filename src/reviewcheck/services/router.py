"""Provider selection by health score, with a manual override."""

import logging
import threading
from typing import Any, Dict, Iterable, List, Optional

from diskcache import Cache

from ..core.constants import HealthConstants
from .health import ProviderHealthTracker
from .providers import ReviewAnalysisProvider

logger = logging.getLogger(__name__)

_OVERRIDE_KEY = "router.primary_provider"


class ProviderRouter:
    """Picks the provider to analyze with. Never retries on its own."""

    def __init__(
        self,
        providers: Iterable[ReviewAnalysisProvider],
        tracker: Optional[ProviderHealthTracker] = None,
        state_cache: Optional[Cache] = None,
    ):
        self.providers: Dict[str, ReviewAnalysisProvider] = {}
        for provider in providers:
            self.providers[provider.name.lower()] = provider
        self.tracker = tracker or ProviderHealthTracker(self.providers)
        self.state_cache = state_cache
        self._override: Optional[str] = None
        self._lock = threading.Lock()
        for name in self.providers:
            # make sure every provider has a slot before the first call
            self.tracker.metrics(name)

    def get(self, name: str) -> Optional[ReviewAnalysisProvider]:
        return self.providers.get(name.lower())

    def _refresh_availability(self, name: str) -> bool:
        available = bool(self.providers[name].is_available())
        self.tracker.set_available(name, available)
        return available

    @property
    def override(self) -> Optional[str]:
        with self._lock:
            if self._override:
                return self._override
        if self.state_cache is not None:
            return self.state_cache.get(_OVERRIDE_KEY)
        return None

    def select_optimal(self, excluding: Iterable[str] = ()) -> Optional[ReviewAnalysisProvider]:
        """Best available provider not in ``excluding``, or None."""
        excluded = {name.lower() for name in excluding}

        forced = self.override
        if forced and forced not in excluded and forced in self.providers:
            if self._refresh_availability(forced):
                return self.providers[forced]
            logger.warning(f"Forced provider {forced} is unavailable, falling back to health ranking")

        candidates = []
        for order, name in enumerate(self.providers):
            if name in excluded or not self._refresh_availability(name):
                continue
            snapshot = self.tracker.metrics(name)
            candidates.append((-snapshot.health_score, snapshot.avg_latency, order, name))

        if not candidates:
            logger.error("No analysis provider available")
            return None
        best = min(candidates)[3]
        logger.debug(f"Selected provider {best} from {len(candidates)} candidates")
        return self.providers[best]

    def force_select(self, name: str) -> bool:
        """Pin a provider. False when it is unknown or unavailable."""
        key = name.lower()
        if key not in self.providers or not self._refresh_availability(key):
            logger.warning(f"Cannot switch to provider {name}: unknown or unavailable")
            return False
        with self._lock:
            self._override = key
        if self.state_cache is not None:
            self.state_cache.set(_OVERRIDE_KEY, key, expire=3600 * HealthConstants.OVERRIDE_TTL_HOURS)
        logger.info(f"Switched primary provider to: {key}")
        return True

    def clear_override(self) -> None:
        with self._lock:
            self._override = None
        if self.state_cache is not None:
            self.state_cache.delete(_OVERRIDE_KEY)

    def estimate_cost(self, provider: str, review_count: int) -> float:
        target = self.get(provider)
        if target is None:
            raise KeyError(f"Unknown provider: {provider}")
        return target.estimated_cost(review_count)

    def cost_comparison(self, review_count: int) -> Dict[str, Dict[str, Any]]:
        comparison = {}
        for name, provider in self.providers.items():
            if self._refresh_availability(name):
                comparison[name] = {
                    "cost": provider.estimated_cost(review_count),
                    "available": True,
                    "health_score": self.tracker.health_score(name),
                }
            else:
                comparison[name] = {"cost": None, "available": False, "health_score": 0}
        return comparison

    def status(self) -> Dict[str, Any]:
        """Health snapshot of every provider plus the current pick."""
        metrics = {}
        for name in self.providers:
            self._refresh_availability(name)
            metrics[name] = self.tracker.metrics(name)
        optimal = self.select_optimal()
        return {
            "providers": metrics,
            "optimal": optimal.name if optimal else None,
            "override": self.override,
        }

    def names(self) -> List[str]:
        return list(self.providers)
