"""Typed exceptions for checkout failures."""


class CheckoutError(Exception):
    """Base class for checkout errors."""


# =============================================================================
# VALIDATION - inline, recoverable, session left untouched
# =============================================================================


class CheckoutValidationError(CheckoutError):
    """Caller input does not satisfy a checkout precondition."""


class EmptyCartError(CheckoutValidationError):
    """No items selected. Client should prompt the user to select items."""

    def __init__(self):
        super().__init__("Select at least one item to continue")


class NotAuthenticatedError(CheckoutValidationError):
    """Checkout requires a signed-in purchaser."""

    def __init__(self):
        super().__init__("Sign in to continue with checkout")


class NominativeIncompleteError(CheckoutValidationError):
    """At least one personalised unit has no resolved recipient."""

    def __init__(self, pending_slots: list[int]):
        self.pending_slots = pending_slots
        super().__init__(
            f"Assign a recipient to every nominative ticket (pending slots: {pending_slots})"
        )


class InvalidPhoneError(CheckoutValidationError):
    """Phone number has the wrong digit count for its country."""

    def __init__(self, phone_country: str, expected_length: int):
        self.phone_country = phone_country
        self.expected_length = expected_length
        super().__init__(
            f"Phone number for +{phone_country} must have {expected_length} digits"
        )


class SelfSendError(CheckoutValidationError):
    """
    Recipient phone is the purchaser's own number.

    Self-transfers must use the 'me' assignment instead.
    """

    def __init__(self):
        super().__init__("Cannot send a ticket to yourself; assign it to 'me' instead")


class InvalidAssignmentError(CheckoutValidationError):
    """Assignment edit is not valid for the slot's current state."""


class InvalidStepError(CheckoutValidationError):
    """Requested step transition is not allowed from the current step."""


class InvalidCartError(CheckoutValidationError):
    """Cart mutation would break a cart invariant."""


# =============================================================================
# LIFECYCLE
# =============================================================================


class SessionExpiredError(CheckoutError):
    """
    Checkout timer elapsed.

    Cart data is preserved; the session needs an explicit timer reset
    before it can progress again.
    """

    def __init__(self):
        super().__init__("Checkout time expired. Reset the timer to try again.")


class SessionCompletedError(CheckoutError):
    """Session reached terminal success. Start a new one to buy again."""

    def __init__(self):
        super().__init__("Checkout already completed")


class SubmissionInProgressError(CheckoutError):
    """A transaction handshake for this session is already pending."""

    def __init__(self):
        super().__init__("A transaction is already being created for this checkout")


# =============================================================================
# COLLABORATOR OUTCOMES
# =============================================================================


class CouponRejectedError(CheckoutError):
    """Coupon code is unknown, exhausted or otherwise not applicable."""

    def __init__(self, code: str, message: str | None = None):
        self.code = code
        super().__init__(message or f"Coupon {code} is not valid")


class HandshakeRejectedError(CheckoutError):
    """Server refused to create the transaction. Message is shown verbatim."""

    def __init__(self, message: str):
        self.server_message = message
        super().__init__(message)


class ConnectivityError(CheckoutError):
    """A collaborator could not be reached. Safe to retry."""

    def __init__(self, operation: str):
        self.operation = operation
        super().__init__("Could not reach the server. Check your connection and try again.")
