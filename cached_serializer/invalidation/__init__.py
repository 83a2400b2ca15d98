"""
Invalidation package.

Subject types expose a ``ChangeFeed``; serializers subscribe one eviction
hook per (attribute, dependent field) pair, which deletes the cached value
once a committed change touches that field.
"""

from .feed import ChangeEvent, ChangeFeed, change_feed_for
from .wiring import InvalidationWiring

__all__ = ["ChangeEvent", "ChangeFeed", "InvalidationWiring", "change_feed_for"]
