"""
Shared fixtures for cached serializer unit tests.
"""

from collections import Counter

import pytest

from cached_serializer.caching.backends.memory import MemoryCacheBackend
from cached_serializer.caching.keys import CacheKeyBuilder
from cached_serializer.invalidation.feed import ChangeFeed


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class CountingCompute:
    """Compute function wrapper recording how often it ran."""

    def __init__(self, fn):
        self.fn = fn
        self.calls = 0

    def __call__(self, subject):
        self.calls += 1
        return self.fn(subject)


def make_user_type():
    """Fresh subject type per test so feed subscriptions never leak."""

    class User:
        change_feed = ChangeFeed()

        def __init__(self, id=1, email="a@x.com", first_name="Ada", last_name="Lovelace", silly=False):
            self.id = id
            self.reads = Counter()
            self._email = email
            self.first_name = first_name
            self.last_name = last_name
            self.silly = silly

        @property
        def email(self):
            self.reads["email"] += 1
            return self._email

        def update(self, **changes):
            """Apply changes and publish them as one committed change-set."""
            for field, value in changes.items():
                setattr(self, "_email" if field == "email" else field, value)
            type(self).change_feed.publish(self, changes)

    return User


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def backend(clock):
    return MemoryCacheBackend(clock=clock)


@pytest.fixture
def keys():
    return CacheKeyBuilder()


@pytest.fixture
def user_type():
    return make_user_type()


@pytest.fixture
def user(user_type):
    return user_type(id=1, email="a@x.com")


@pytest.fixture
def counting():
    return CountingCompute
