"""
Cache backends.

- base: the ``CacheBackend`` protocol attribute policies are resolved against.
- memory: process-local backend for tests and single-process hosts.
- redis_backend: adapter over a synchronous Redis client.
"""

from .base import CacheBackend
from .memory import MemoryCacheBackend
from .redis_backend import RedisCacheBackend

__all__ = ["CacheBackend", "MemoryCacheBackend", "RedisCacheBackend"]
