"""
Transaction handshake service.

Converts a priced, fully assigned session into a server transaction:

    BeginSubmit -> create_transaction -> HandshakeSucceeded | HandshakeFailed

The submitting flag is persisted before the gateway is called, so a
second submit for the same session is refused while the first one is
in flight.
"""

import logging

from core import actions as a
from core.collaborators import TransactionGateway, TransportError
from core.config import CheckoutConfig
from core.exceptions import ConnectivityError, HandshakeRejectedError, SessionExpiredError
from core.models import (
    CartItemRequest,
    CheckoutSession,
    CreateTransactionRequest,
    ResponseStatus,
)
from core.nominative import attendees_for_line
from core.services.checkout_service import CheckoutService

logger = logging.getLogger(__name__)


class HandshakeService:
    """Service for creating transactions from checkout sessions."""

    def __init__(
        self,
        checkout: CheckoutService,
        gateway: TransactionGateway,
        config: CheckoutConfig,
    ):
        self.checkout = checkout
        self.gateway = gateway
        self.config = config

    def build_request(self, session: CheckoutSession) -> CreateTransactionRequest:
        """
        Payload for the current cart.

        Nominative lines carry one attendee per unit, in slot order.
        """
        items = []
        for line_index, item in enumerate(session.cart.items):
            attendees = None
            if item.is_nominative:
                attendees = attendees_for_line(
                    session.cart, session.nominative_assignments, line_index
                )
            items.append(CartItemRequest(
                item_type=item.type.value.upper(),
                item_id=item.id,
                price_id=item.price_id,
                quantity=item.quantity,
                attendees=attendees,
            ))

        return CreateTransactionRequest(
            event_id=session.event_id,
            items=items,
            coupon_code=session.coupon.code if session.coupon else None,
            currency=self.config.currency,
        )

    def submit(self, session_key: str) -> CheckoutSession:
        """
        Create the server transaction for a session at summary.

        Free checkouts complete immediately; payable ones move to payment.
        A transaction the session is no longer waiting for is cancelled.

        Raises:
            CheckoutValidationError: Empty cart, wrong step or incomplete assignments.
            SubmissionInProgressError: A submit for this session is already pending.
            SessionExpiredError: Countdown elapsed; reset the timer first.
            HandshakeRejectedError: Server refused; message is shown verbatim.
            ConnectivityError: Gateway unreachable; safe to retry.
        """
        session = self.checkout.transition(session_key, a.BeginSubmit())
        if session.is_expired or not session.is_submitting:
            raise SessionExpiredError()

        request = self.build_request(session)
        logger.info(
            f"Creating transaction for checkout {session_key}: "
            f"{len(request.items)} lines, coupon={request.coupon_code}"
        )

        try:
            result = self.gateway.create_transaction(request)
        except TransportError as e:
            logger.error(f"Transaction gateway unreachable for checkout {session_key}: {e}")
            self.checkout.transition(session_key, a.HandshakeFailed())
            raise ConnectivityError("create_transaction") from e
        except Exception:
            self.checkout.transition(session_key, a.HandshakeFailed())
            raise

        if result.status != ResponseStatus.SUCCESS or result.transaction is None:
            message = result.message or "The transaction could not be created"
            logger.warning(f"Transaction rejected for checkout {session_key}: {message}")
            self.checkout.transition(session_key, a.HandshakeFailed())
            raise HandshakeRejectedError(message)

        transaction = result.transaction
        logger.info(
            f"Transaction {transaction.id} created for checkout {session_key} "
            f"({transaction.total_price_cents} {transaction.currency})"
        )

        try:
            session = self.checkout.transition(
                session_key, a.HandshakeSucceeded(transaction=transaction)
            )
        except Exception:
            self.checkout.transition(session_key, a.HandshakeFailed())
            self.checkout.cancel_transaction(transaction.id)
            raise

        if transaction.id not in (session.transaction_id, session.completed_transaction_id):
            self.checkout.cancel_transaction(transaction.id)
        return session
