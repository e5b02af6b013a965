"""
Valkey (Redis-compatible) client for checkout session storage.

Sessions are stored as compact JSON documents, one key per session.
Fail-fast: connection problems raise, they are never masked.
"""

import json
import logging

import redis

logger = logging.getLogger(__name__)


class ValkeyClient:
    """
    JSON document store over redis-py.

    Usage:
        client = ValkeyClient("redis://localhost:6379/0")
        client.set_json("checkout:abc", {"step": "summary"}, expire_seconds=86400)
        doc = client.get_json("checkout:abc")  # None if missing
    """

    def __init__(self, url: str):
        """
        Connect and ping.

        Raises:
            redis.ConnectionError: Server unreachable
        """
        self._client = redis.from_url(url, decode_responses=True)
        self._client.ping()
        logger.info("Connected to Valkey for checkout sessions")

    def set_json(self, key: str, value: dict, expire_seconds: int | None = None) -> None:
        """Write a document; with expire_seconds the key TTL is reset on every write."""
        payload = json.dumps(value, separators=(",", ":"))
        if expire_seconds is not None:
            self._client.setex(key, expire_seconds, payload)
        else:
            self._client.set(key, payload)

    def get_json(self, key: str) -> dict | None:
        """
        Read a document.

        Returns None if the key is missing. Raises ValueError if the
        stored value is not JSON.
        """
        raw = self._client.get(key)
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON in key '{key}': {e}")

    def delete(self, key: str) -> bool:
        """True if the key existed."""
        return self._client.delete(key) > 0
