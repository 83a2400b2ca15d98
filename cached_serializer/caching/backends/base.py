"""
Cache backend contract consumed by attribute policies.
"""

from datetime import timedelta
from typing import Any, Callable, Optional, Protocol, runtime_checkable


@runtime_checkable
class CacheBackend(Protocol):
    """Fetch-or-compute key/value store with TTL and forced recompute."""

    def fetch(
        self,
        key: str,
        ttl: Optional[timedelta],
        force: bool,
        compute: Callable[[], Any],
    ) -> Any:
        """Return the live value at ``key`` unless ``force``; otherwise compute and store it.

        Nothing may be stored when ``compute`` raises.
        """
        ...

    def delete(self, key: str) -> None:
        """Remove the entry at ``key``; no-op when absent."""
        ...
