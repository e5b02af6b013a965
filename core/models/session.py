"""Checkout session domain model.

The session is the client-held checkout state for one event, spanning
selection through payment. It is an immutable value; core.machine.apply
produces the next session for every action.
"""

from enum import Enum

from pydantic import BaseModel, Field

from core.models.cart import Cart
from core.models.coupon import Coupon
from core.models.nominative import NominativeAssignment
from core.timer import CheckoutTimer


class CheckoutStep(str, Enum):
    """Checkout flow position."""

    SELECTION = "selection"
    SUMMARY = "summary"
    PAYMENT = "payment"
    CONFIRMATION = "confirmation"  # Terminal success


class EventDisplayInfo(BaseModel):
    """Presentation details carried along for the summary and payment screens."""

    cover_image: str | None = None
    date: str | None = None
    venue: str | None = None
    terms_and_conditions: str | None = None

    model_config = {"frozen": True}


class CheckoutSession(BaseModel):
    """Full checkout state for one event."""

    event_id: str | None = None
    event_name: str | None = None
    event_slug: str | None = None
    event_display_info: EventDisplayInfo | None = None

    cart: Cart = Field(default_factory=Cart)
    step: CheckoutStep = CheckoutStep.SELECTION
    coupon: Coupon | None = None
    nominative_assignments: tuple[NominativeAssignment, ...] = ()
    service_fee_cents: int = Field(0, ge=0)

    transaction_id: str | None = None
    transaction_total_cents: int | None = None
    transaction_currency: str | None = None

    timer: CheckoutTimer = Field(default_factory=CheckoutTimer)
    is_submitting: bool = False
    completed_transaction_id: str | None = None

    model_config = {"frozen": True}

    @property
    def items(self):
        return self.cart.items

    @property
    def is_expired(self) -> bool:
        return self.timer.is_expired

    @property
    def is_completed(self) -> bool:
        return self.step == CheckoutStep.CONFIRMATION

    @property
    def remaining_time(self) -> int:
        return self.timer.remaining_seconds

    def has_items(self) -> bool:
        return self.cart.has_items()

    def assignment_for(self, item_index: int) -> NominativeAssignment | None:
        for assignment in self.nominative_assignments:
            if assignment.item_index == item_index:
                return assignment
        return None
