"""
Declarative, attribute-level caching for serialized domain objects.

Each output attribute carries a caching policy: read straight from a column
and evicted when it changes, cached forever, never cached, or computed and
recomputed on dependent column changes, a predicate, or an expiry.

Modules of interest:
- builder: SerializerBuilder, the declaration API.
- serializer: Serializer and SerializerDefinition.
- policies: AttributePolicy and PolicyRegistry (merge-on-redeclare).
- caching: cache key derivation and backends.
- invalidation: change feeds and eviction hook wiring.
"""

from .builder import SerializerBuilder, resolve_subject_type
from .caching.backends import CacheBackend, MemoryCacheBackend, RedisCacheBackend
from .caching.keys import CacheKeyBuilder, subject_type_name
from .invalidation import ChangeEvent, ChangeFeed, InvalidationWiring, change_feed_for
from .policies import AttributePolicy, PolicyKind, PolicyRegistry
from .serializer import Serializer, SerializerDefinition, serialize_many

__all__ = [
    "AttributePolicy",
    "CacheBackend",
    "CacheKeyBuilder",
    "ChangeEvent",
    "ChangeFeed",
    "InvalidationWiring",
    "MemoryCacheBackend",
    "PolicyKind",
    "PolicyRegistry",
    "RedisCacheBackend",
    "Serializer",
    "SerializerBuilder",
    "SerializerDefinition",
    "change_feed_for",
    "resolve_subject_type",
    "serialize_many",
    "subject_type_name",
]
