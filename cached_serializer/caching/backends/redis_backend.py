"""
Redis cache backend.

Thin adapter over a synchronous ``redis.Redis`` client. Values are wrapped
in a small envelope so that a cached ``None`` is distinguishable from a
miss, then encoded with ``codec`` (a :class:`JsonCodec` unless told
otherwise). With the JSON codec a cache hit returns what JSON can hold:
datetimes, dates, decimals and UUIDs as strings, sets and tuples as lists.
Pass ``codec=pickle`` to keep Python types across hits.
"""

from datetime import timedelta
from typing import Any, Callable, Optional

import redis

from shared.config import CacheSettings, get_settings
from shared.errors import CacheBackendError
from shared.logging import get_logger
from ..codec import JsonCodec


class RedisCacheBackend:
    """Fetch-or-compute backend stored in Redis."""

    def __init__(
        self,
        client: Optional[redis.Redis] = None,
        *,
        url: Optional[str] = None,
        settings: Optional[CacheSettings] = None,
        codec: Any = None,
    ):
        self.logger = get_logger("cached_serializer.caching.redis")
        self.codec = codec or JsonCodec()

        if client is None:
            settings = settings or get_settings()
            client = redis.Redis.from_url(
                url or settings.redis_url,
                socket_connect_timeout=settings.redis_socket_timeout,
                socket_timeout=settings.redis_socket_timeout,
                retry_on_timeout=True,
                health_check_interval=30
            )
        self.client = client

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
        try:
            self.client.delete(key)
        except redis.RedisError as e:
            self.logger.error("Redis delete failed", key=key, error=str(e))
            raise CacheBackendError("redis", f"failed to delete {key}", {"error": str(e)}) from e

    def health_check(self) -> bool:
        """Check Redis health."""
        try:
            return bool(self.client.ping())
        except redis.RedisError:
            return False

    def _read(self, key: str):
        try:
            raw = self.client.get(key)
        except redis.RedisError as e:
            self.logger.error("Redis get failed, treating as miss", key=key, error=str(e))
            return False, None

        if raw is None:
            return False, None

        try:
            envelope = self.codec.loads(raw)
            return True, envelope["v"]
        except (TypeError, ValueError, KeyError) as e:
            self.logger.warning("Undecodable cache entry, treating as miss", key=key, error=str(e))
            return False, None

    def _write(self, key: str, value: Any, ttl: Optional[timedelta]) -> None:
        try:
            payload = self.codec.dumps({"v": value})
        except (TypeError, ValueError) as e:
            self.logger.error("Value cannot be encoded, not cached", key=key, error=str(e))
            return

        try:
            if ttl is None:
                self.client.set(key, payload)
            else:
                self.client.set(key, payload, px=max(1, int(ttl.total_seconds() * 1000)))
        except redis.RedisError as e:
            # The computed value is still returned to the caller
            self.logger.error("Redis set failed", key=key, error=str(e))
