"""
Domain events for checkout.

Immutable event objects that represent checkout milestones. The checkout
service publishes what happened; handlers (UI notifications, analytics,
ticker management) react without the service knowing who's listening.

Event Categories:
- Session lifecycle: started, event switched
- Transaction: created, completed
- Timer: expired

Events carry the session key and the relevant ids so handlers don't need
to re-read the store.
"""

from dataclasses import dataclass, field
from datetime import datetime
from uuid import uuid4

from utils.timezone import now_utc


@dataclass(frozen=True, kw_only=True)
class CheckoutEvent:
    """Base class for all checkout domain events."""
    session_key: str
    event_id: str | None = None
    occurred_at: datetime = field(default_factory=now_utc)
    notification_id: str = field(default_factory=lambda: str(uuid4()))


# =============================================================================
# SESSION EVENTS
# =============================================================================


@dataclass(frozen=True, kw_only=True)
class CheckoutStarted(CheckoutEvent):
    """Countdown started (first arrival at summary) or was re-armed after expiry."""
    remaining_seconds: int


@dataclass(frozen=True, kw_only=True)
class EventSwitched(CheckoutEvent):
    """Session was re-seeded for a different event; the previous cart is gone."""
    previous_event_id: str | None = None


# =============================================================================
# TRANSACTION EVENTS
# =============================================================================


@dataclass(frozen=True, kw_only=True)
class TransactionCreated(CheckoutEvent):
    """Server issued a payable transaction; the session moved to payment."""
    transaction_id: str
    total_cents: int
    currency: str


@dataclass(frozen=True, kw_only=True)
class CheckoutCompleted(CheckoutEvent):
    """Terminal success. Either a free checkout or a confirmed payment."""
    transaction_id: str


# =============================================================================
# TIMER EVENTS
# =============================================================================


@dataclass(frozen=True, kw_only=True)
class CheckoutExpired(CheckoutEvent):
    """Countdown reached zero. The cart is kept for a retry."""
    pass
