"""
Process-local cache backend.

Intended for tests and single-process hosts. Entries live in a dict guarded
by a lock; compute runs outside the lock, so concurrent misses on the same
key may each compute (last writer wins).
"""

import threading
import time
from datetime import timedelta
from typing import Any, Callable, Dict, Optional, Tuple

from shared.logging import get_logger


class MemoryCacheBackend:
    """In-memory fetch-or-compute store with TTL support."""

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self.clock = clock
        self.logger = get_logger("cached_serializer.caching.memory")
        self._entries: Dict[str, Tuple[Any, Optional[float]]] = {}
        self._lock = threading.Lock()

        # Diagnostics
        self.writes = 0
        self.deletes = 0

    def fetch(
        self,
        key: str,
        ttl: Optional[timedelta] = None,
        force: bool = False,
        compute: Optional[Callable[[], Any]] = None,
    ) -> Any:
        if not force:
            found, value = self._read(key)
            if found:
                return value

        if compute is None:
            raise ValueError("compute is required on a cache miss")

        value = compute()
        self._write(key, value, ttl)
        return value

    def delete(self, key: str) -> None:
        with self._lock:
            if self._entries.pop(key, None) is not None:
                self.deletes += 1
                self.logger.debug("Deleted cache entry", key=key)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def _read(self, key: str) -> Tuple[bool, Any]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return False, None

            value, expires_at = entry
            if expires_at is not None and self.clock() >= expires_at:
                del self._entries[key]
                return False, None

            return True, value

    def _write(self, key: str, value: Any, ttl: Optional[timedelta]) -> None:
        expires_at = None
        if ttl is not None:
            expires_at = self.clock() + ttl.total_seconds()

        with self._lock:
            self._entries[key] = (value, expires_at)
            self.writes += 1

    def __contains__(self, key: str) -> bool:
        return self._read(key)[0]

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
