"""
Event bus for checkout domain events.

Synchronous in-process pub/sub. Handlers execute immediately in the same
thread as the publisher. Handler errors are logged but never propagate:
the session transition has already been saved.
"""

import logging
from typing import Callable, Dict, List

from core.events import CheckoutEvent

logger = logging.getLogger(__name__)


class EventBus:
    """
    In-process event bus for checkout domain events.

    Subscribe by event class, publish by event instance. Handlers are
    called synchronously in subscription order.
    """

    def __init__(self):
        self._subscribers: Dict[type, List[Callable]] = {}

    def subscribe(self, event_type: type[CheckoutEvent], callback: Callable):
        """
        Subscribe to events of a specific type.

        Subscribing to CheckoutEvent receives every event.

        Args:
            event_type: Event class to subscribe to (e.g. CheckoutExpired)
            callback: Function to call when event is published
        """
        self._subscribers.setdefault(event_type, []).append(callback)

    def publish(self, event: CheckoutEvent):
        """
        Publish an event to all subscribers of its type (and base types).

        Args:
            event: CheckoutEvent instance to publish
        """
        for event_type in type(event).__mro__:
            for callback in self._subscribers.get(event_type, []):
                try:
                    callback(event)
                except Exception:
                    logger.exception(
                        "Handler %s failed for %s (session=%s)",
                        getattr(callback, "__name__", repr(callback)),
                        type(event).__name__,
                        event.session_key,
                    )
