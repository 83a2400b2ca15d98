"""
Unit tests for RedisCacheBackend.
"""

import json
import pickle
from datetime import date, datetime, timedelta
from decimal import Decimal
from unittest.mock import MagicMock, patch

import pytest
import redis

from cached_serializer.builder import SerializerBuilder
from cached_serializer.caching.backends.redis_backend import RedisCacheBackend
from cached_serializer.invalidation.feed import ChangeFeed
from shared.config import get_settings
from shared.errors import CacheBackendError


class TestRedisCacheBackend:
    """Test cases for RedisCacheBackend."""

    @pytest.fixture
    def client(self):
        """Mock Redis client."""
        client = MagicMock(spec=redis.Redis)
        client.get.return_value = None
        return client

    @pytest.fixture
    def backend(self, client):
        """Create RedisCacheBackend around the mock client."""
        return RedisCacheBackend(client)

    def test_hit_returns_decoded_value(self, backend, client):
        """Test a stored envelope is decoded without computing."""
        client.get.return_value = json.dumps({"v": "a@x.com"}).encode()
        compute = MagicMock()

        assert backend.fetch("k", None, False, compute) == "a@x.com"
        compute.assert_not_called()
        client.set.assert_not_called()

    def test_cached_none_is_a_hit(self, backend, client):
        """Test the envelope distinguishes a cached None from a miss."""
        client.get.return_value = json.dumps({"v": None}).encode()
        compute = MagicMock()

        assert backend.fetch("k", None, False, compute) is None
        compute.assert_not_called()

    def test_miss_computes_and_sets_without_ttl(self, backend, client):
        """Test a miss stores the computed value with no expiry."""
        assert backend.fetch("k", None, False, lambda: [1, 2]) == [1, 2]

        client.set.assert_called_once_with("k", json.dumps({"v": [1, 2]}))

    def test_ttl_is_set_in_milliseconds(self, backend, client):
        """Test TTL is passed as PX."""
        backend.fetch("k", timedelta(seconds=1.5), False, lambda: 1)

        client.set.assert_called_once_with("k", json.dumps({"v": 1}), px=1500)

    def test_force_skips_read(self, backend, client):
        """Test forced fetch never reads the stored value."""
        backend.fetch("k", None, True, lambda: "fresh")

        client.get.assert_not_called()
        client.set.assert_called_once()

    def test_compute_error_propagates_and_stores_nothing(self, backend, client):
        """Test compute errors are not wrapped and nothing is written."""
        def compute():
            raise ZeroDivisionError()

        with pytest.raises(ZeroDivisionError):
            backend.fetch("k", None, False, compute)

        client.set.assert_not_called()

    def test_read_error_is_treated_as_miss(self, backend, client):
        """Test connection errors on GET fall back to computing."""
        client.get.side_effect = redis.ConnectionError("down")

        assert backend.fetch("k", None, False, lambda: "computed") == "computed"

    def test_undecodable_entry_is_treated_as_miss(self, backend, client):
        """Test corrupt payloads are recomputed."""
        client.get.return_value = b"not-json"

        assert backend.fetch("k", None, False, lambda: "computed") == "computed"
        client.set.assert_called_once()

    def test_write_error_still_returns_value(self, backend, client):
        """Test a failed SET does not fail the serialization."""
        client.set.side_effect = redis.TimeoutError("slow")

        assert backend.fetch("k", None, False, lambda: "computed") == "computed"

    def test_unencodable_value_is_returned_uncached(self, backend, client):
        """Test values the codec rejects are returned but not stored."""
        value = object()

        assert backend.fetch("k", None, False, lambda: value) == value
        client.set.assert_not_called()

    def test_rich_scalars_are_cached_as_json(self, backend, client):
        """Test dates, decimals and sets are stored with the JSON codec."""
        backend.fetch("k", None, False, lambda: {"at": date(2024, 1, 2), "amount": Decimal("1.50"), "tags": {"b", "a"}})

        client.set.assert_called_once_with(
            "k", json.dumps({"v": {"at": "2024-01-02", "amount": "1.50", "tags": ["a", "b"]}})
        )

    def test_datetime_column_is_cached(self, backend, client):
        """Test a datetime column is stored once and served from Redis afterwards."""
        class Order:
            change_feed = ChangeFeed()

            def __init__(self):
                self.id = 1
                self.created_at = datetime(2024, 1, 2, 3, 4, 5)

        builder = SerializerBuilder("OrderSerializer", backend=backend, subject_class=Order)
        builder.columns("created_at")
        order = Order()

        assert builder.serializer(order).to_dict() == {"created_at": order.created_at}
        client.set.assert_called_once_with(
            "cached_serializer:order:1:created_at",
            json.dumps({"v": "2024-01-02T03:04:05"}),
        )

        client.get.return_value = client.set.call_args[0][1]

        # JSON hits come back as ISO strings
        assert builder.serializer(order).to_dict() == {"created_at": "2024-01-02T03:04:05"}
        assert client.set.call_count == 1

    def test_pickle_codec(self, client):
        """Test an alternative codec keeps rich types."""
        backend = RedisCacheBackend(client, codec=pickle)
        value = datetime(2024, 1, 1)

        backend.fetch("k", None, False, lambda: value)
        stored = client.set.call_args[0][1]
        client.get.return_value = stored

        assert backend.fetch("k", None, False, MagicMock()) == value

    def test_delete(self, backend, client):
        """Test delete issues DEL."""
        backend.delete("k")

        client.delete.assert_called_once_with("k")

    def test_delete_error_raises(self, backend, client):
        """Test eviction failures surface as CacheBackendError."""
        client.delete.side_effect = redis.ConnectionError("down")

        with pytest.raises(CacheBackendError) as exc_info:
            backend.delete("k")

        assert exc_info.value.code == "CACHE_BACKEND_ERROR"

    def test_health_check(self, backend, client):
        """Test ping drives the health check."""
        client.ping.return_value = True
        assert backend.health_check() is True

        client.ping.side_effect = redis.ConnectionError("down")
        assert backend.health_check() is False

    def test_client_built_from_settings(self):
        """Test the client is created from the configured URL."""
        settings = get_settings(redis_url="redis://cache:6379/2", redis_socket_timeout=1.0)

        with patch("cached_serializer.caching.backends.redis_backend.redis.Redis.from_url") as from_url:
            backend = RedisCacheBackend(settings=settings)

        from_url.assert_called_once()
        assert from_url.call_args[0][0] == "redis://cache:6379/2"
        assert from_url.call_args[1]["socket_timeout"] == 1.0
        assert backend.client is from_url.return_value
