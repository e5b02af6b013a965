"""Tests for ValkeyClient - JSON document store over redis-py."""

import json
from unittest.mock import Mock, patch

import pytest
import redis

from clients.valkey_client import ValkeyClient


@pytest.fixture
def redis_mock():
    mock = Mock(spec=redis.Redis)
    with patch("clients.valkey_client.redis.from_url", return_value=mock) as from_url:
        mock.from_url = from_url
        yield mock


@pytest.fixture
def valkey(redis_mock):
    return ValkeyClient("redis://localhost:6379/0")


class TestValkeyClientInit:
    """Connection initialization."""

    def test_connects_and_pings(self, redis_mock, valkey):
        """Client decodes responses and verifies connectivity immediately."""
        redis_mock.from_url.assert_called_once_with("redis://localhost:6379/0", decode_responses=True)
        redis_mock.ping.assert_called_once()

    def test_unreachable_server_fails_fast(self, redis_mock):
        """Connection errors propagate instead of returning a half-built client."""
        redis_mock.ping.side_effect = redis.ConnectionError("refused")

        with pytest.raises(redis.ConnectionError):
            ValkeyClient("redis://localhost:6379/0")


class TestJsonDocuments:
    """set_json/get_json operations."""

    def test_set_json_with_expiration_uses_setex(self, redis_mock, valkey):
        valkey.set_json("checkout:abc", {"step": "summary"}, expire_seconds=60)

        key, ttl, payload = redis_mock.setex.call_args.args
        assert (key, ttl) == ("checkout:abc", 60)
        assert json.loads(payload) == {"step": "summary"}

    def test_set_json_without_expiration(self, redis_mock, valkey):
        valkey.set_json("checkout:abc", {"step": "summary"})

        redis_mock.set.assert_called_once()
        redis_mock.setex.assert_not_called()

    def test_get_json_parses_document(self, redis_mock, valkey):
        redis_mock.get.return_value = '{"step":"payment"}'
        assert valkey.get_json("checkout:abc") == {"step": "payment"}

    def test_get_json_missing_returns_none(self, redis_mock, valkey):
        """Missing key is not an error."""
        redis_mock.get.return_value = None
        assert valkey.get_json("checkout:missing") is None

    def test_get_json_invalid_raises(self, redis_mock, valkey):
        redis_mock.get.return_value = "not json"

        with pytest.raises(ValueError, match="Invalid JSON"):
            valkey.get_json("checkout:abc")


class TestKeys:

    def test_delete_returns_true_when_existed(self, redis_mock, valkey):
        redis_mock.delete.return_value = 1
        assert valkey.delete("checkout:abc") is True

    def test_delete_returns_false_when_missing(self, redis_mock, valkey):
        redis_mock.delete.return_value = 0
        assert valkey.delete("checkout:abc") is False
