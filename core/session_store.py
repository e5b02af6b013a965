"""Checkout session persistence.

Sessions are stored as JSON documents keyed by an opaque session key
(one per browser/client). A running timer is persisted as a UTC deadline
next to the session so a client that comes back after a reload resumes
with the wall-clock time that is really left.
"""

import logging
import threading
from abc import ABC, abstractmethod

from clients.valkey_client import ValkeyClient
from core.config import CheckoutConfig
from core.models import CheckoutSession
from utils.timezone import parse_iso

logger = logging.getLogger(__name__)


class CheckoutSessionStore(ABC):
    """Interface for checkout session persistence."""

    def save(self, session_key: str, session: CheckoutSession) -> None:
        """Persist a session, replacing any previous version."""
        document = session.model_dump(mode="json")
        deadline = session.timer.deadline()
        document["timer_deadline"] = deadline.isoformat() if deadline else None
        self._write(session_key, document)

    def load(self, session_key: str, resume: bool = False) -> CheckoutSession | None:
        """
        Return the stored session, or None if there is none.

        With resume=True a running timer is recomputed from its persisted
        deadline (used when a client reconnects).
        """
        document = self._read(session_key)
        if document is None:
            return None

        deadline = document.pop("timer_deadline", None)
        session = CheckoutSession.model_validate(document)
        if resume and deadline:
            session = session.model_copy(update={
                "timer": session.timer.resume(parse_iso(deadline)),
            })
        return session

    @abstractmethod
    def delete(self, session_key: str) -> bool:
        """Remove a session. Returns False if it did not exist."""
        ...

    @abstractmethod
    def _read(self, session_key: str) -> dict | None:
        ...

    @abstractmethod
    def _write(self, session_key: str, document: dict) -> None:
        ...


class InMemoryCheckoutSessionStore(CheckoutSessionStore):
    """Process-local store for single-process deployments and tests."""

    def __init__(self):
        self._documents: dict[str, dict] = {}
        self._lock = threading.Lock()

    def delete(self, session_key: str) -> bool:
        with self._lock:
            return self._documents.pop(session_key, None) is not None

    def _read(self, session_key: str) -> dict | None:
        with self._lock:
            document = self._documents.get(session_key)
            return dict(document) if document is not None else None

    def _write(self, session_key: str, document: dict) -> None:
        with self._lock:
            self._documents[session_key] = document


class ValkeyCheckoutSessionStore(CheckoutSessionStore):
    """
    Valkey-backed store.

    Every save refreshes the key TTL, so idle sessions disappear after
    config.session_ttl_seconds.
    """

    KEY_PREFIX = "checkout:"

    def __init__(self, valkey: ValkeyClient, config: CheckoutConfig):
        self._valkey = valkey
        self._ttl_seconds = config.session_ttl_seconds

    def _key(self, session_key: str) -> str:
        """Generate Valkey key for a checkout session."""
        return f"{self.KEY_PREFIX}{session_key}"

    def delete(self, session_key: str) -> bool:
        return self._valkey.delete(self._key(session_key))

    def _read(self, session_key: str) -> dict | None:
        return self._valkey.get_json(self._key(session_key))

    def _write(self, session_key: str, document: dict) -> None:
        self._valkey.set_json(self._key(session_key), document, expire_seconds=self._ttl_seconds)
        logger.debug(f"Saved checkout session {session_key}")
