"""
Recipient lookup service.

Resolves 'send' slots against the user directory. The slot is marked
searching and persisted before the directory is called; a trigger for a
slot that is already searching does not issue a second call.
"""

import logging

from core import actions as a
from core.collaborators import AuthProvider, RecipientDirectory, TransportError
from core.models import AssignmentType, CheckoutSession
from core.nominative import lookup_request_for
from core.services.checkout_service import CheckoutService

logger = logging.getLogger(__name__)


class NominativeService:
    """Service for nominative recipient lookups."""

    def __init__(
        self,
        checkout: CheckoutService,
        directory: RecipientDirectory,
        auth: AuthProvider,
    ):
        self.checkout = checkout
        self.directory = directory
        self.auth = auth

    def lookup_recipient(self, session_key: str, item_index: int) -> CheckoutSession:
        """
        Look up the phone entered for a slot.

        Found -> 'found' with the user's id. Not found, or directory
        unreachable -> 'notfound', and the purchaser must add an email.

        Raises:
            InvalidPhoneError: Wrong digit count; no lookup issued.
            SelfSendError: Purchaser's own number; no lookup issued.
            InvalidAssignmentError: Slot is not in the 'send' state.
        """
        purchaser = self.auth.current_user()
        before, after = self.checkout.transition_with_previous(
            session_key, a.BeginRecipientLookup(item_index=item_index, purchaser=purchaser)
        )

        previous = before.assignment_for(item_index)
        current = after.assignment_for(item_index)
        started = (
            current is not None
            and current.is_searching
            and (previous is None or not previous.is_searching)
        )
        if not started:
            return after

        request = lookup_request_for(current)
        try:
            result = self.directory.lookup_recipient(request.phone_country, request.phone)
        except TransportError as e:
            logger.error(f"Recipient directory unreachable for slot {item_index}: {e}")
            return self.checkout.transition(session_key, a.FailRecipientLookup(request=request))

        session = self.checkout.transition(
            session_key, a.ResolveRecipientLookup(request=request, result=result)
        )
        resolved = session.assignment_for(item_index)
        if resolved is not None and resolved.assignment_type == AssignmentType.FOUND:
            logger.info(f"Slot {item_index} resolved to user {resolved.to_user_id}")
        return session
