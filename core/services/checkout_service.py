"""
Checkout service.

Owns the load -> apply -> save -> publish cycle for checkout sessions.
Every operation is an action applied through core.machine under a
per-session lock; domain events are derived from the before/after pair
and published once the lock is released.
"""

import logging
import threading
from contextlib import contextmanager

from core import actions as a
from core.collaborators import AuthProvider, TransactionGateway, TransportError
from core.config import CheckoutConfig
from core.event_bus import EventBus
from core.events import (
    CheckoutCompleted,
    CheckoutEvent,
    CheckoutExpired,
    CheckoutStarted,
    EventSwitched,
    TransactionCreated,
)
from core.machine import apply, new_session, nominative_complete
from core.models import (
    CartItem,
    CheckoutSession,
    CheckoutStep,
    Coupon,
    EventDisplayInfo,
    ItemType,
    NominativeAssignment,
)
from core.pricing import PriceBreakdown, compute_pricing
from core.session_store import CheckoutSessionStore
from utils.url_state import create_shareable_url, serialize_all_quantities

logger = logging.getLogger(__name__)

_STEP_NUMBERS = {
    CheckoutStep.SELECTION: 1,
    CheckoutStep.SUMMARY: 2,
    CheckoutStep.PAYMENT: 3,
    CheckoutStep.CONFIRMATION: 4,
}


class CheckoutService:
    """Service for checkout session operations."""

    def __init__(
        self,
        store: CheckoutSessionStore,
        event_bus: EventBus,
        auth: AuthProvider,
        config: CheckoutConfig,
        gateway: TransactionGateway | None = None,
    ):
        self.store = store
        self.event_bus = event_bus
        self.auth = auth
        self.config = config
        self.gateway = gateway
        # session key -> [lock, holders]; entries live only while held or awaited
        self._locks: dict[str, list] = {}
        self._locks_lock = threading.Lock()

    # -------------------------------------------------------------------------
    # Core cycle
    # -------------------------------------------------------------------------

    @contextmanager
    def _lock_for(self, session_key: str):
        """Serialize work on one session."""
        with self._locks_lock:
            entry = self._locks.get(session_key)
            if entry is None:
                entry = [threading.RLock(), 0]
                self._locks[session_key] = entry
            entry[1] += 1

        try:
            with entry[0]:
                yield
        finally:
            with self._locks_lock:
                entry[1] -= 1
                if entry[1] == 0:
                    del self._locks[session_key]

    def get_session(self, session_key: str) -> CheckoutSession:
        """Stored session, or a fresh empty one if none exists yet."""
        session = self.store.load(session_key)
        if session is None:
            return new_session(self.config)
        return session

    def transition_with_previous(
        self,
        session_key: str,
        action: a.CheckoutAction,
    ) -> tuple[CheckoutSession, CheckoutSession]:
        """
        Apply an action atomically and return (before, after).

        Raises whatever core.machine.apply raises; the stored session is
        untouched in that case.
        """
        with self._lock_for(session_key):
            before = self.get_session(session_key)
            after = apply(before, action, self.config)
            if after is not before:
                self.store.save(session_key, after)

        for event in self._events_for(session_key, before, after):
            self.event_bus.publish(event)
        return before, after

    def transition(self, session_key: str, action: a.CheckoutAction) -> CheckoutSession:
        return self.transition_with_previous(session_key, action)[1]

    def _events_for(
        self,
        session_key: str,
        before: CheckoutSession,
        after: CheckoutSession,
    ) -> list[CheckoutEvent]:
        """Domain events implied by a transition."""
        events: list[CheckoutEvent] = []
        event_id = after.event_id

        if before.event_id is not None and after.event_id != before.event_id:
            events.append(EventSwitched(
                session_key=session_key,
                event_id=event_id,
                previous_event_id=before.event_id,
            ))
        if not before.timer.is_running and after.timer.is_running:
            events.append(CheckoutStarted(
                session_key=session_key,
                event_id=event_id,
                remaining_seconds=after.remaining_time,
            ))
        if (
            after.step == CheckoutStep.PAYMENT
            and after.transaction_id is not None
            and (
                before.step != CheckoutStep.PAYMENT
                or after.transaction_id != before.transaction_id
            )
        ):
            events.append(TransactionCreated(
                session_key=session_key,
                event_id=event_id,
                transaction_id=after.transaction_id,
                total_cents=after.transaction_total_cents or 0,
                currency=after.transaction_currency or self.config.currency,
            ))
        if not before.is_expired and after.is_expired:
            logger.info(f"Checkout {session_key} expired for event {event_id}")
            events.append(CheckoutExpired(session_key=session_key, event_id=event_id))
        if not before.is_completed and after.is_completed:
            logger.info(
                f"Checkout {session_key} completed with transaction {after.completed_transaction_id}"
            )
            events.append(CheckoutCompleted(
                session_key=session_key,
                event_id=event_id,
                transaction_id=after.completed_transaction_id,
            ))
        return events

    # -------------------------------------------------------------------------
    # Session
    # -------------------------------------------------------------------------

    def reset_for_new_event(
        self,
        session_key: str,
        event_id: str,
        event_name: str | None = None,
        event_slug: str | None = None,
        display_info: EventDisplayInfo | None = None,
    ) -> CheckoutSession:
        """
        Bind the session to an event.

        A different event (or a completed session) starts from scratch;
        the same event keeps its cart.
        """
        return self.transition(session_key, a.ResetForNewEvent(
            event_id=event_id,
            event_name=event_name,
            event_slug=event_slug,
            display_info=display_info,
        ))

    def resume(self, session_key: str) -> CheckoutSession:
        """
        Reload a session after a client reconnect.

        A running timer is recomputed from its persisted deadline, which
        may expire the session. A timer still running afterwards is
        announced again so a ticker picks it up in this process.
        """
        with self._lock_for(session_key):
            before = self.get_session(session_key)
            resumed = self.store.load(session_key, resume=True)
            if resumed is None:
                return before
            self.store.save(session_key, resumed)

        events = self._events_for(session_key, before, resumed)
        if before.timer.is_running and resumed.timer.is_running:
            events.append(CheckoutStarted(
                session_key=session_key,
                event_id=resumed.event_id,
                remaining_seconds=resumed.remaining_time,
            ))
        for event in events:
            self.event_bus.publish(event)
        return resumed

    def discard(self, session_key: str) -> bool:
        """Forget a session entirely."""
        with self._lock_for(session_key):
            return self.store.delete(session_key)

    # -------------------------------------------------------------------------
    # Cart
    # -------------------------------------------------------------------------

    def add_item(self, session_key: str, item: CartItem) -> CheckoutSession:
        return self.transition(session_key, a.AddItem(item=item))

    def update_quantity(
        self,
        session_key: str,
        item_id: str,
        price_id: str,
        delta: int,
        max_quantity: int | None = None,
    ) -> CheckoutSession:
        return self.transition(session_key, a.UpdateQuantity(
            item_id=item_id, price_id=price_id, delta=delta, max_quantity=max_quantity,
        ))

    def remove_item(self, session_key: str, item_id: str, price_id: str) -> CheckoutSession:
        return self.transition(session_key, a.RemoveItem(item_id=item_id, price_id=price_id))

    def clear_items_by_type(self, session_key: str, item_type: ItemType) -> CheckoutSession:
        return self.transition(session_key, a.ClearItemsByType(item_type=item_type))

    def clear_cart(self, session_key: str) -> CheckoutSession:
        return self.transition(session_key, a.ClearCart())

    def has_items(self, session_key: str) -> bool:
        return self.get_session(session_key).has_items()

    # -------------------------------------------------------------------------
    # Coupon and nominative assignments
    # -------------------------------------------------------------------------

    def set_coupon(self, session_key: str, coupon: Coupon | None) -> CheckoutSession:
        return self.transition(session_key, a.SetCoupon(coupon=coupon))

    def remove_coupon(self, session_key: str) -> CheckoutSession:
        return self.set_coupon(session_key, None)

    def set_nominative_assignments(
        self,
        session_key: str,
        assignments: list[NominativeAssignment],
    ) -> CheckoutSession:
        return self.transition(
            session_key, a.SetNominativeAssignments(assignments=tuple(assignments))
        )

    def assign_to_me(self, session_key: str, item_index: int) -> CheckoutSession:
        return self.transition(session_key, a.AssignToMe(item_index=item_index))

    def assign_to_send(self, session_key: str, item_index: int) -> CheckoutSession:
        return self.transition(session_key, a.AssignToSend(item_index=item_index))

    def toggle_all_for_me(self, session_key: str) -> CheckoutSession:
        return self.transition(session_key, a.ToggleAllForMe())

    def update_recipient_phone(self, session_key: str, item_index: int, phone: str) -> CheckoutSession:
        return self.transition(session_key, a.UpdateRecipientPhone(item_index=item_index, phone=phone))

    def update_recipient_country(
        self,
        session_key: str,
        item_index: int,
        phone_country: str,
    ) -> CheckoutSession:
        return self.transition(
            session_key,
            a.UpdateRecipientCountry(item_index=item_index, phone_country=phone_country),
        )

    def update_recipient_email(self, session_key: str, item_index: int, email: str) -> CheckoutSession:
        return self.transition(session_key, a.UpdateRecipientEmail(item_index=item_index, email=email))

    def nominative_complete(self, session_key: str) -> bool:
        return nominative_complete(self.get_session(session_key))

    # -------------------------------------------------------------------------
    # Steps
    # -------------------------------------------------------------------------

    def go_to_summary(self, session_key: str) -> CheckoutSession:
        """
        selection -> summary.

        Raises:
            EmptyCartError: Nothing selected.
            NotAuthenticatedError: Purchaser must sign in first.
        """
        return self.transition(
            session_key, a.GoToSummary(is_authenticated=self.auth.is_authenticated())
        )

    def go_back(self, session_key: str) -> CheckoutSession:
        """One step back. Leaving payment abandons the linked transaction."""
        before, after = self.transition_with_previous(session_key, a.GoBack())
        self._cancel_abandoned(before, after)
        return after

    def go_back_to_selection(self, session_key: str) -> CheckoutSession:
        before, after = self.transition_with_previous(session_key, a.GoBackToSelection())
        self._cancel_abandoned(before, after)
        return after

    def go_to_payment(self, session_key: str) -> CheckoutSession:
        """summary -> payment for a session that already has a payable transaction."""
        return self.transition(session_key, a.GoToPayment())

    def set_transaction(
        self,
        session_key: str,
        transaction_id: str,
        total_cents: int,
        currency: str,
    ) -> CheckoutSession:
        return self.transition(session_key, a.SetTransaction(
            transaction_id=transaction_id, total_cents=total_cents, currency=currency,
        ))

    def clear_transaction(self, session_key: str) -> CheckoutSession:
        before, after = self.transition_with_previous(session_key, a.ClearTransaction())
        self._cancel_abandoned(before, after)
        return after

    def complete_payment(self, session_key: str, transaction_id: str | None = None) -> CheckoutSession:
        """Payment provider confirmed the payment: terminal success."""
        return self.transition(session_key, a.CompletePayment(transaction_id=transaction_id))

    def cancel_transaction(self, transaction_id: str) -> None:
        """Best-effort release of a server transaction no session is linked to."""
        if self.gateway is None:
            return
        try:
            self.gateway.cancel_transaction(transaction_id)
            logger.info(f"Cancelled abandoned transaction {transaction_id}")
        except TransportError as e:
            logger.warning(f"Could not cancel abandoned transaction {transaction_id}: {e}")

    def _cancel_abandoned(self, before: CheckoutSession, after: CheckoutSession) -> None:
        if before.transaction_id is None or after.transaction_id is not None:
            return
        self.cancel_transaction(before.transaction_id)

    # -------------------------------------------------------------------------
    # Timer
    # -------------------------------------------------------------------------

    def tick(self, session_key: str, seconds: int = 1) -> CheckoutSession | None:
        """Advance the countdown. Returns None if the session no longer exists."""
        if self.store.load(session_key) is None:
            return None
        return self.transition(session_key, a.Tick(seconds=seconds))

    def remaining_time(self, session_key: str) -> int:
        return self.get_session(session_key).remaining_time

    def is_timer_expired(self, session_key: str) -> bool:
        return self.get_session(session_key).is_expired

    def reset_timer(self, session_key: str) -> CheckoutSession:
        """Re-arm the countdown; on an expired session this is the retry."""
        before, after = self.transition_with_previous(session_key, a.ResetTimer())
        self._cancel_abandoned(before, after)
        return after

    def expire_timer(self, session_key: str) -> CheckoutSession:
        return self.transition(session_key, a.ExpireTimer())

    # -------------------------------------------------------------------------
    # Derived values
    # -------------------------------------------------------------------------

    def get_service_fee(self, session_key: str | None = None) -> int:
        if session_key is None:
            return self.config.service_fee_cents
        return self.get_session(session_key).service_fee_cents

    def get_pricing(self, session_key: str) -> PriceBreakdown:
        session = self.get_session(session_key)
        return compute_pricing(session.cart, session.service_fee_cents, session.coupon)

    def selection_tokens(self, session_key: str) -> dict[str, str]:
        """Per-category "priceId:qty,..." tokens for the current cart."""
        session = self.get_session(session_key)
        return serialize_all_quantities(session.cart.quantities_by_category())

    def shareable_url(self, session_key: str, base_url: str, tab: str | None = None) -> str:
        session = self.get_session(session_key)
        return create_shareable_url(
            base_url,
            session.cart.quantities_by_category(),
            step=_STEP_NUMBERS[session.step],
            tab=tab,
        )
