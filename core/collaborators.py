"""Collaborator interfaces consumed by the checkout core.

Implementations live outside this package (HTTP clients, the auth
layer). They must raise TransportError when the remote side cannot be
reached; any answer that reached the server is returned as a result
model instead.
"""

from abc import ABC, abstractmethod

from core.models import (
    CouponValidationResult,
    CreateTransactionRequest,
    Purchaser,
    RecipientLookupResult,
    TransactionResult,
)


class TransportError(Exception):
    """Collaborator could not be reached (timeout, DNS, connection reset...)."""


class RecipientDirectory(ABC):
    """Finds registered users by phone number."""

    @abstractmethod
    def lookup_recipient(self, phone_country: str, phone: str) -> RecipientLookupResult:
        """Look up a user by calling code and national digits."""
        ...


class CouponValidator(ABC):
    """Validates coupon codes."""

    @abstractmethod
    def validate_coupon(self, code: str) -> CouponValidationResult:
        ...


class TransactionGateway(ABC):
    """Creates and cancels server-side transactions."""

    @abstractmethod
    def create_transaction(self, request: CreateTransactionRequest) -> TransactionResult:
        ...

    @abstractmethod
    def cancel_transaction(self, transaction_id: str) -> None:
        """Release an abandoned PENDING transaction."""
        ...


class AuthProvider(ABC):
    """Session/auth collaborator."""

    @abstractmethod
    def is_authenticated(self) -> bool:
        ...

    @abstractmethod
    def current_user(self) -> Purchaser | None:
        """The signed-in purchaser, or None when anonymous."""
        ...
