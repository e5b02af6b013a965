"""Core domain models."""

from core.models.cart import Cart, CartItem, ItemType
from core.models.coupon import Coupon, CouponType
from core.models.nominative import (
    AssignmentType, NominativeAssignment, NominativeSlot, EMAIL_PATTERN,
)
from core.models.session import CheckoutSession, CheckoutStep, EventDisplayInfo
from core.models.transaction import (
    Attendee, CartItemRequest, CreateTransactionRequest,
    Transaction, TransactionStatus, TransactionResult, ResponseStatus,
    RecipientLookupResult, CouponValidationResult, Purchaser,
)

__all__ = [
    # Cart
    "Cart", "CartItem", "ItemType",
    # Coupon
    "Coupon", "CouponType",
    # Nominative
    "AssignmentType", "NominativeAssignment", "NominativeSlot", "EMAIL_PATTERN",
    # Session
    "CheckoutSession", "CheckoutStep", "EventDisplayInfo",
    # Transaction
    "Attendee", "CartItemRequest", "CreateTransactionRequest",
    "Transaction", "TransactionStatus", "TransactionResult", "ResponseStatus",
    "RecipientLookupResult", "CouponValidationResult", "Purchaser",
]
