"""
Eviction hooks keyed by (attribute, dependent field).
"""

import threading
from typing import Any, Callable, FrozenSet, List, Optional, Set, Tuple

from shared.logging import get_logger
from shared.metrics import CacheMetrics
from ..caching.keys import CacheKeyBuilder, subject_type_name
from .feed import ChangeEvent


class InvalidationWiring:
    """Attaches at most one eviction hook per (attribute, field) pair."""

    def __init__(self, backend: Any, keys: CacheKeyBuilder, metrics: Optional[CacheMetrics] = None):
        self.backend = backend
        self.keys = keys
        self.metrics = metrics
        self.logger = get_logger("cached_serializer.invalidation.wiring")
        self._wired: Set[Tuple[str, str]] = set()
        self._unsubscribers: List[Callable[[], None]] = []
        self._lock = threading.Lock()

    def wire(self, notifier: Any, attribute: str, field: str) -> bool:
        """Subscribe an eviction hook for ``attribute`` on changes to ``field``.

        Returns False when the pair is already wired.
        """
        pair = (attribute, field)
        with self._lock:
            if pair in self._wired:
                return False
            self._unsubscribers.append(notifier.subscribe(self._make_hook(attribute, field)))
            self._wired.add(pair)

        self.logger.info("Eviction hook wired", attribute=attribute, field=field)
        return True

    def _make_hook(self, attribute: str, field: str) -> Callable[[ChangeEvent], None]:
        def evict(event: ChangeEvent) -> None:
            if not event.changed(field) or event.identity is None:
                return

            key = self.keys.build(subject_type_name(event.subject_type), event.identity, attribute)
            self.backend.delete(key)
            self.logger.info("Evicted cached attribute", attribute=attribute, field=field, key=key)
            self._record_eviction(attribute, field)

        evict.__qualname__ = f"evict[{attribute}<-{field}]"
        return evict

    def _record_eviction(self, attribute: str, field: str) -> None:
        if not self.metrics:
            return

        try:
            self.metrics.record_eviction(attribute, field)
        except Exception as exc:  # pragma: no cover - metrics failures should never break eviction
            self.logger.debug("Failed to record eviction metrics", error=str(exc))

    @property
    def wired_pairs(self) -> FrozenSet[Tuple[str, str]]:
        with self._lock:
            return frozenset(self._wired)

    def detach(self) -> None:
        """Unsubscribe every hook this wiring attached."""
        with self._lock:
            unsubscribers, self._unsubscribers = self._unsubscribers, []
            self._wired.clear()
        for unsubscribe in unsubscribers:
            unsubscribe()
