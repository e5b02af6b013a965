"""Transaction handshake and collaborator payload models.

These mirror the contracts of the out-of-scope collaborators (transaction
API, coupon validation, recipient directory, auth). Amounts are cents.
"""

from enum import Enum

from pydantic import BaseModel, Field

from core.models.coupon import Coupon


class Attendee(BaseModel):
    """Recipient of one nominative unit as sent to the server."""

    is_for_me: bool
    to_user_id: str | None = None
    phone: str | None = None
    phone_country: str | None = None
    email: str | None = None


class CartItemRequest(BaseModel):
    """One cart line in a create-transaction request."""

    item_type: str  # Upper-case catalog category: TICKET, GUESTLIST, ...
    item_id: str
    price_id: str | None = None
    quantity: int = Field(..., ge=1)
    attendees: list[Attendee] | None = None


class CreateTransactionRequest(BaseModel):
    """Payload converting a priced session into a server transaction."""

    event_id: str
    items: list[CartItemRequest]
    coupon_code: str | None = None
    currency: str | None = None


class TransactionStatus(str, Enum):
    """Server-side transaction lifecycle."""

    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    EXPIRED = "EXPIRED"
    REFUNDED = "REFUNDED"


class Transaction(BaseModel):
    """Server-issued transaction."""

    id: str
    status: TransactionStatus
    total_price_cents: int = Field(..., ge=0)
    currency: str = "EUR"

    @property
    def needs_payment(self) -> bool:
        """False for free or already-settled transactions."""
        return self.total_price_cents > 0 and self.status != TransactionStatus.COMPLETED


class ResponseStatus(str, Enum):
    SUCCESS = "success"
    ERROR = "error"


class TransactionResult(BaseModel):
    """Outcome of a create-transaction call that reached the server."""

    status: ResponseStatus
    transaction: Transaction | None = None
    message: str | None = None


class RecipientLookupResult(BaseModel):
    """Outcome of a phone-number lookup in the user directory."""

    found: bool
    user_id: str | None = None


class CouponValidationResult(BaseModel):
    """Outcome of a coupon-code validation."""

    valid: bool
    coupon: Coupon | None = None
    message: str | None = None


class Purchaser(BaseModel):
    """The signed-in user buying the tickets."""

    id: str
    phone: str | None = None
    country: str | None = None
    first_name: str | None = None
