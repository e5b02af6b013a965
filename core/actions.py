"""
Checkout actions.

Inputs to the checkout state machine (core.machine.apply). Each action
is an immutable description of one user or collaborator step; applying
it to a session yields the next session.
"""

from dataclasses import dataclass

from core.models import (
    CartItem,
    Coupon,
    EventDisplayInfo,
    ItemType,
    NominativeAssignment,
    Purchaser,
    RecipientLookupResult,
    Transaction,
)
from core.nominative import LookupRequest


@dataclass(frozen=True)
class CheckoutAction:
    """Base class for all checkout actions."""
    pass


# =============================================================================
# SESSION
# =============================================================================


@dataclass(frozen=True)
class ResetForNewEvent(CheckoutAction):
    """User landed on an event page."""
    event_id: str
    event_name: str | None = None
    event_slug: str | None = None
    display_info: EventDisplayInfo | None = None


# =============================================================================
# CART
# =============================================================================


@dataclass(frozen=True)
class AddItem(CheckoutAction):
    item: CartItem


@dataclass(frozen=True)
class UpdateQuantity(CheckoutAction):
    item_id: str
    price_id: str
    delta: int
    max_quantity: int | None = None


@dataclass(frozen=True)
class RemoveItem(CheckoutAction):
    item_id: str
    price_id: str


@dataclass(frozen=True)
class ClearItemsByType(CheckoutAction):
    item_type: ItemType


@dataclass(frozen=True)
class ClearCart(CheckoutAction):
    pass


# =============================================================================
# COUPON AND ASSIGNMENTS
# =============================================================================


@dataclass(frozen=True)
class SetCoupon(CheckoutAction):
    """Apply a validated coupon, or remove it with None."""
    coupon: Coupon | None


@dataclass(frozen=True)
class SetNominativeAssignments(CheckoutAction):
    assignments: tuple[NominativeAssignment, ...]


@dataclass(frozen=True)
class AssignToMe(CheckoutAction):
    item_index: int


@dataclass(frozen=True)
class AssignToSend(CheckoutAction):
    item_index: int


@dataclass(frozen=True)
class ToggleAllForMe(CheckoutAction):
    pass


@dataclass(frozen=True)
class UpdateRecipientPhone(CheckoutAction):
    item_index: int
    phone: str


@dataclass(frozen=True)
class UpdateRecipientCountry(CheckoutAction):
    item_index: int
    phone_country: str


@dataclass(frozen=True)
class UpdateRecipientEmail(CheckoutAction):
    item_index: int
    email: str


@dataclass(frozen=True)
class BeginRecipientLookup(CheckoutAction):
    item_index: int
    purchaser: Purchaser | None


@dataclass(frozen=True)
class ResolveRecipientLookup(CheckoutAction):
    request: LookupRequest
    result: RecipientLookupResult


@dataclass(frozen=True)
class FailRecipientLookup(CheckoutAction):
    request: LookupRequest


# =============================================================================
# STEPS AND HANDSHAKE
# =============================================================================


@dataclass(frozen=True)
class GoToSummary(CheckoutAction):
    is_authenticated: bool


@dataclass(frozen=True)
class GoBack(CheckoutAction):
    """payment -> summary, summary -> selection."""
    pass


@dataclass(frozen=True)
class GoBackToSelection(CheckoutAction):
    pass


@dataclass(frozen=True)
class BeginSubmit(CheckoutAction):
    """Handshake about to be sent; blocks a second submission."""
    pass


@dataclass(frozen=True)
class HandshakeSucceeded(CheckoutAction):
    transaction: Transaction


@dataclass(frozen=True)
class HandshakeFailed(CheckoutAction):
    pass


@dataclass(frozen=True)
class SetTransaction(CheckoutAction):
    transaction_id: str
    total_cents: int
    currency: str


@dataclass(frozen=True)
class ClearTransaction(CheckoutAction):
    pass


@dataclass(frozen=True)
class GoToPayment(CheckoutAction):
    pass


@dataclass(frozen=True)
class CompletePayment(CheckoutAction):
    """Payment provider confirmed the linked transaction."""
    transaction_id: str | None = None


# =============================================================================
# TIMER
# =============================================================================


@dataclass(frozen=True)
class Tick(CheckoutAction):
    seconds: int = 1


@dataclass(frozen=True)
class ExpireTimer(CheckoutAction):
    pass


@dataclass(frozen=True)
class ResetTimer(CheckoutAction):
    pass
