"""
Integration tests for the cached serialization flow.
"""

from collections import Counter
from datetime import timedelta

import pytest

from cached_serializer import ChangeFeed, MemoryCacheBackend, SerializerBuilder
from shared.errors import ConfigurationError


class ManualClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


class User:
    """Subject with a change feed, standing in for an ORM model."""

    change_feed = ChangeFeed()

    def __init__(self, id, email, first_name="Ada", last_name="Lovelace"):
        self.id = id
        self.first_name = first_name
        self.last_name = last_name
        self._email = email
        self.email_reads = 0

    @property
    def email(self):
        self.email_reads += 1
        return self._email

    def save(self, **changes):
        """Apply changes and announce the commit."""
        for field, value in changes.items():
            setattr(self, "_email" if field == "email" else field, value)
        self.change_feed.publish(self, changes)


class TestSerializationFlow:
    """Integration tests for declaring, serializing and invalidating."""

    @pytest.fixture(autouse=True)
    def fresh_feed(self):
        User.change_feed = ChangeFeed()
        yield

    @pytest.fixture
    def clock(self):
        return ManualClock()

    @pytest.fixture
    def backend(self, clock):
        return MemoryCacheBackend(clock=clock)

    def test_column_invalidation_end_to_end(self, backend):
        """Test columns(email) across a committed change."""
        builder = SerializerBuilder("UserSerializer", backend=backend, subject_types=[User])
        builder.columns("email")
        UserSerializer = builder.build()

        user = User(id=1, email="a@x.com")

        assert UserSerializer.serializer(user).to_dict() == {"email": "a@x.com"}
        assert user.email_reads == 1

        user.save(email="b@x.com")
        assert "cached_serializer:user:1:email" not in backend

        assert UserSerializer.serializer(user).to_dict() == {"email": "b@x.com"}
        assert user.email_reads == 2
        writes = backend.writes

        assert UserSerializer.serializer(user).to_dict() == {"email": "b@x.com"}
        assert user.email_reads == 2
        assert backend.writes == writes

    def test_mixed_declarations(self, backend, clock):
        """Test every declaration kind on one serializer."""
        builder = SerializerBuilder("UserSerializer", backend=backend, subject_types=[User])
        calls = Counter()
        flags = {"active": False}

        builder.columns("email")
        builder.constant("first_name")

        @builder.volatile
        def request_count(user):
            calls["request_count"] += 1
            return calls["request_count"]

        @builder.computed(columns=["first_name", "last_name"])
        def full_name(user):
            calls["full_name"] += 1
            return f"{user.first_name} {user.last_name}"

        @builder.computed(recompute_if=lambda u: flags["active"])
        def active(user):
            calls["active"] += 1
            return flags["active"]

        @builder.computed(expires_in=timedelta(hours=1))
        def revenue(user):
            calls["revenue"] += 1
            return 100 * calls["revenue"]

        UserSerializer = builder.build(freeze=True)
        user = User(id=7, email="ada@x.com")

        first = UserSerializer.serializer(user).to_dict()
        assert list(first) == ["email", "first_name", "request_count", "full_name", "active", "revenue"]
        assert first["full_name"] == "Ada Lovelace"
        assert first["revenue"] == 100

        user.save(last_name="Byron")
        clock.now += 3601
        flags["active"] = True

        second = UserSerializer.serializer(user).to_dict()
        assert second["full_name"] == "Ada Byron"
        assert second["first_name"] == "Ada"
        assert second["request_count"] == 2
        assert second["active"] is True
        assert second["revenue"] == 200
        assert calls == Counter({"request_count": 2, "full_name": 2, "active": 2, "revenue": 2})

        flags["active"] = False
        third = UserSerializer.serializer(user).to_dict()
        assert third["active"] is True
        assert calls["active"] == 2

    def test_merged_redeclaration(self, backend):
        """Test reopening an attribute accumulates its recompute triggers."""
        builder = SerializerBuilder("UserSerializer", backend=backend, subject_types=[User])
        calls = Counter()
        state = {"p1": False, "p2": False}

        builder.computed("silly", lambda u: calls.update(["first"]) or "first", recompute_if=lambda u: state["p1"])
        builder.computed(
            "silly",
            lambda u: calls.update(["second"]) or "second",
            recompute_if=lambda u: state["p2"],
            expires_in=timedelta(seconds=10),
        )
        UserSerializer = builder.build()
        user = User(id=3, email="x@x.com")

        assert UserSerializer.serialize(user) == {"silly": "second"}

        state["p1"] = True
        assert UserSerializer.serialize(user) == {"silly": "second"}
        state["p1"], state["p2"] = False, True
        assert UserSerializer.serialize(user) == {"silly": "second"}

        assert calls == Counter({"second": 3})
        assert UserSerializer.registry.get("silly").expires_in == timedelta(seconds=10)

    def test_registration_error_before_resolution(self, backend):
        """Test a computed attribute without invalidation options is rejected at declaration."""
        builder = SerializerBuilder("UserSerializer", backend=backend, subject_types=[User])

        with pytest.raises(ConfigurationError):
            @builder.computed()
            def x(user):
                return 1

        assert builder.build().serialize(User(id=1, email="a@x.com")) == {}

    def test_serializers_share_one_backend(self, backend):
        """Test serializers of the same subject type share cached entries."""
        public = SerializerBuilder("PublicUser", backend=backend, subject_class=User)
        public.columns("email")
        admin = SerializerBuilder("AdminUser", backend=backend, subject_class=User)
        admin.columns("email")
        admin.constant("last_name")

        user = User(id=1, email="a@x.com")
        assert public.serializer(user).to_dict() == {"email": "a@x.com"}
        assert admin.serializer(user).to_dict() == {"email": "a@x.com", "last_name": "Lovelace"}

        # Both serializers address the same entry for a shared attribute
        assert user.email_reads == 1

        user.save(email="b@x.com")
        assert public.serializer(user).to_dict() == {"email": "b@x.com"}
