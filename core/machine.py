"""
Checkout state machine.

    selection -> summary -> payment -> confirmation

`apply(session, action)` is the single transition function. It never
mutates its input: validation failures raise and leave the caller's
session untouched; successful actions return the next session.

Overlays:
- expired: once the timer elapses, forward actions (step progression,
  coupon and assignment edits, submission) become no-ops until
  ResetTimer. Cart data is kept for the retry.
- submitting: cart, coupon and assignment edits are refused until the
  handshake settles.
- confirmation: terminal. Only ResetForNewEvent (and ticks) are accepted.
"""

import logging

from core import actions as a
from core import nominative
from core.config import CheckoutConfig
from core.exceptions import (
    EmptyCartError,
    InvalidStepError,
    NominativeIncompleteError,
    NotAuthenticatedError,
    SessionCompletedError,
    SubmissionInProgressError,
)
from core.models import Cart, CheckoutSession, CheckoutStep, EventDisplayInfo
from core.timer import CheckoutTimer

logger = logging.getLogger(__name__)

_DEFAULT_CONFIG = CheckoutConfig()

# Blocked while the timer is expired
_FORWARD_ACTIONS = (
    a.GoToSummary,
    a.GoToPayment,
    a.BeginSubmit,
    a.SetTransaction,
    a.SetCoupon,
    a.SetNominativeAssignments,
    a.AssignToMe,
    a.AssignToSend,
    a.ToggleAllForMe,
    a.UpdateRecipientPhone,
    a.UpdateRecipientCountry,
    a.UpdateRecipientEmail,
    a.BeginRecipientLookup,
)


# Refused while a transaction is being created from the current selection
_PRICED_INPUT_ACTIONS = (
    a.AddItem,
    a.UpdateQuantity,
    a.RemoveItem,
    a.ClearItemsByType,
    a.ClearCart,
    a.SetCoupon,
    a.SetNominativeAssignments,
    a.AssignToMe,
    a.AssignToSend,
    a.ToggleAllForMe,
    a.UpdateRecipientPhone,
    a.UpdateRecipientCountry,
    a.UpdateRecipientEmail,
    a.BeginRecipientLookup,
)


def new_session(
    config: CheckoutConfig,
    event_id: str | None = None,
    event_name: str | None = None,
    event_slug: str | None = None,
    display_info: EventDisplayInfo | None = None,
) -> CheckoutSession:
    """Empty session for an event with an armed, not yet started timer."""
    return CheckoutSession(
        event_id=event_id,
        event_name=event_name,
        event_slug=event_slug,
        event_display_info=display_info,
        service_fee_cents=config.service_fee_cents,
        timer=CheckoutTimer.armed(config.timer_duration_seconds),
    )


def nominative_complete(session: CheckoutSession) -> bool:
    return nominative.is_nominative_complete(session.cart, session.nominative_assignments)


def apply(
    session: CheckoutSession,
    action: a.CheckoutAction,
    config: CheckoutConfig | None = None,
) -> CheckoutSession:
    """
    Compute the session that results from applying an action.

    Raises:
        CheckoutValidationError: Precondition not met; nothing changed.
        SessionCompletedError: Session is terminal.
        SubmissionInProgressError: A handshake is pending; the selection it
            was priced from cannot change.
    """
    config = config or _DEFAULT_CONFIG

    if session.is_completed:
        if isinstance(action, a.ResetForNewEvent):
            return _reset_for_new_event(session, action, config)
        if isinstance(action, (a.Tick, a.HandshakeFailed)):
            return session
        raise SessionCompletedError()

    if session.is_submitting and isinstance(action, _PRICED_INPUT_ACTIONS):
        raise SubmissionInProgressError()

    if session.is_expired and isinstance(action, _FORWARD_ACTIONS):
        logger.warning(
            f"Ignoring {type(action).__name__} on expired checkout for event {session.event_id}"
        )
        return session

    handler = _HANDLERS.get(type(action))
    if handler is None:
        raise TypeError(f"Unknown checkout action {type(action).__name__}")
    return handler(session, action, config)


# =============================================================================
# SESSION
# =============================================================================


def _reset_for_new_event(session, action: a.ResetForNewEvent, config) -> CheckoutSession:
    if session.is_completed or session.event_id != action.event_id:
        if session.event_id is not None and session.event_id != action.event_id:
            logger.info(f"Switching checkout from event {session.event_id} to {action.event_id}")
        return new_session(
            config,
            event_id=action.event_id,
            event_name=action.event_name,
            event_slug=action.event_slug,
            display_info=action.display_info,
        )

    return session.model_copy(update={
        "event_name": action.event_name or session.event_name,
        "event_slug": action.event_slug or session.event_slug,
        "event_display_info": action.display_info or session.event_display_info,
    })


# =============================================================================
# CART
# =============================================================================


def _with_cart(session: CheckoutSession, cart: Cart, config: CheckoutConfig) -> CheckoutSession:
    """
    Swap in a new cart, re-keying assignments to the new slot layout.

    A priced transaction no longer matches the cart, so any linkage is
    dropped and payment falls back to summary. An emptied cart falls back
    to selection.
    """
    if cart == session.cart:
        return session

    update = {
        "cart": cart,
        "nominative_assignments": nominative.reconcile_assignments(
            session.cart, cart, session.nominative_assignments, config.default_phone_country
        ),
    }
    if session.transaction_id is not None:
        update.update(_cleared_transaction())
    if not cart.has_items():
        update["step"] = CheckoutStep.SELECTION
    elif session.step == CheckoutStep.PAYMENT:
        update["step"] = CheckoutStep.SUMMARY
    return session.model_copy(update=update)


def _add_item(session, action: a.AddItem, config):
    return _with_cart(session, session.cart.add_item(action.item), config)


def _update_quantity(session, action: a.UpdateQuantity, config):
    cart = session.cart.update_quantity(
        action.item_id, action.price_id, action.delta, action.max_quantity
    )
    return _with_cart(session, cart, config)


def _remove_item(session, action: a.RemoveItem, config):
    return _with_cart(session, session.cart.remove_item(action.item_id, action.price_id), config)


def _clear_items_by_type(session, action: a.ClearItemsByType, config):
    return _with_cart(session, session.cart.clear_items_by_type(action.item_type), config)


def _clear_cart(session, action: a.ClearCart, config):
    return new_session(
        config,
        event_id=session.event_id,
        event_name=session.event_name,
        event_slug=session.event_slug,
        display_info=session.event_display_info,
    )


# =============================================================================
# COUPON AND ASSIGNMENTS
# =============================================================================


def _set_coupon(session, action: a.SetCoupon, config):
    return session.model_copy(update={"coupon": action.coupon})


def _with_assignments(session, assignments) -> CheckoutSession:
    return session.model_copy(update={"nominative_assignments": assignments})


def _set_assignments(session, action: a.SetNominativeAssignments, config):
    return _with_assignments(
        session, nominative.validate_assignments(session.cart, action.assignments)
    )


def _assign_to_me(session, action: a.AssignToMe, config):
    return _with_assignments(
        session, nominative.assign_to_me(session.nominative_assignments, action.item_index)
    )


def _assign_to_send(session, action: a.AssignToSend, config):
    return _with_assignments(session, nominative.assign_to_send(
        session.nominative_assignments, action.item_index, config.default_phone_country
    ))


def _toggle_all_for_me(session, action: a.ToggleAllForMe, config):
    return _with_assignments(session, nominative.toggle_all_for_me(
        session.nominative_assignments, config.default_phone_country
    ))


def _update_phone(session, action: a.UpdateRecipientPhone, config):
    return _with_assignments(session, nominative.update_phone(
        session.nominative_assignments, action.item_index, action.phone
    ))


def _update_country(session, action: a.UpdateRecipientCountry, config):
    return _with_assignments(session, nominative.update_phone_country(
        session.nominative_assignments, action.item_index, action.phone_country
    ))


def _update_email(session, action: a.UpdateRecipientEmail, config):
    return _with_assignments(session, nominative.update_email(
        session.nominative_assignments, action.item_index, action.email
    ))


def _begin_lookup(session, action: a.BeginRecipientLookup, config):
    assignments, _ = nominative.begin_lookup(
        session.nominative_assignments, action.item_index, action.purchaser
    )
    return _with_assignments(session, assignments)


def _resolve_lookup(session, action: a.ResolveRecipientLookup, config):
    return _with_assignments(session, nominative.resolve_lookup(
        session.nominative_assignments, action.request, action.result
    ))


def _fail_lookup(session, action: a.FailRecipientLookup, config):
    return _with_assignments(
        session, nominative.fail_lookup(session.nominative_assignments, action.request)
    )


# =============================================================================
# STEPS
# =============================================================================


def _cleared_transaction() -> dict:
    return {
        "transaction_id": None,
        "transaction_total_cents": None,
        "transaction_currency": None,
    }


def _require_nominative_complete(session: CheckoutSession) -> None:
    if not nominative_complete(session):
        raise NominativeIncompleteError(
            nominative.pending_slots(session.cart, session.nominative_assignments)
        )


def _go_to_summary(session, action: a.GoToSummary, config):
    if session.step == CheckoutStep.PAYMENT:
        raise InvalidStepError("Use back navigation to leave the payment step")
    if not session.has_items():
        raise EmptyCartError()
    if not action.is_authenticated:
        raise NotAuthenticatedError()

    assignments = session.nominative_assignments
    if session.cart.has_nominative_items and not assignments:
        assignments = nominative.seed_assignments(session.cart, config.default_phone_country)

    return session.model_copy(update={
        "step": CheckoutStep.SUMMARY,
        "nominative_assignments": assignments,
        "timer": session.timer.start(),
    })


def _go_back(session, action: a.GoBack, config):
    if session.step == CheckoutStep.PAYMENT:
        return session.model_copy(update={"step": CheckoutStep.SUMMARY, **_cleared_transaction()})
    if session.step == CheckoutStep.SUMMARY:
        return session.model_copy(update={"step": CheckoutStep.SELECTION})
    return session


def _go_back_to_selection(session, action: a.GoBackToSelection, config):
    update = {"step": CheckoutStep.SELECTION}
    if session.step == CheckoutStep.PAYMENT:
        update.update(_cleared_transaction())
    return session.model_copy(update=update)


def _begin_submit(session, action: a.BeginSubmit, config):
    if session.is_submitting:
        raise SubmissionInProgressError()
    if session.step != CheckoutStep.SUMMARY:
        raise InvalidStepError(f"Cannot create a transaction from the {session.step.value} step")
    if not session.has_items():
        raise EmptyCartError()
    _require_nominative_complete(session)
    return session.model_copy(update={"is_submitting": True})


def _complete(session: CheckoutSession, transaction_id: str) -> CheckoutSession:
    """Terminal success: cart and transaction linkage cleared, timer frozen."""
    return session.model_copy(update={
        "cart": Cart(),
        "coupon": None,
        "nominative_assignments": (),
        "step": CheckoutStep.CONFIRMATION,
        "timer": session.timer.stop(),
        "is_submitting": False,
        "completed_transaction_id": transaction_id,
        **_cleared_transaction(),
    })


def _handshake_succeeded(session, action: a.HandshakeSucceeded, config):
    """
    Link or complete a created transaction.

    A result that arrives after the session stopped waiting for it (the
    submission was released, or the user navigated off summary) is not
    linked; the caller cancels it.
    """
    transaction = action.transaction
    if not session.is_submitting:
        logger.warning(f"Transaction {transaction.id} arrived with no submission pending; not linking it")
        return session
    if session.step != CheckoutStep.SUMMARY:
        logger.warning(
            f"Transaction {transaction.id} arrived after checkout moved to "
            f"{session.step.value}; not linking it"
        )
        return session.model_copy(update={"is_submitting": False})

    if not transaction.needs_payment:
        return _complete(session, transaction.id)

    settled = session.model_copy(update={"is_submitting": False})
    if session.is_expired:
        logger.warning(
            f"Transaction {transaction.id} arrived after checkout expired; not linking it"
        )
        return settled

    linked = _set_transaction(settled, a.SetTransaction(
        transaction_id=transaction.id,
        total_cents=transaction.total_price_cents,
        currency=transaction.currency,
    ), config)
    return _go_to_payment(linked, a.GoToPayment(), config)


def _handshake_failed(session, action: a.HandshakeFailed, config):
    return session.model_copy(update={"is_submitting": False})


def _set_transaction(session, action: a.SetTransaction, config):
    return session.model_copy(update={
        "transaction_id": action.transaction_id,
        "transaction_total_cents": action.total_cents,
        "transaction_currency": action.currency,
    })


def _clear_transaction(session, action: a.ClearTransaction, config):
    update = _cleared_transaction()
    if session.step == CheckoutStep.PAYMENT:
        update["step"] = CheckoutStep.SUMMARY
    return session.model_copy(update=update)


def _go_to_payment(session, action: a.GoToPayment, config):
    if session.step not in (CheckoutStep.SUMMARY, CheckoutStep.PAYMENT):
        raise InvalidStepError(f"Cannot go to payment from the {session.step.value} step")
    _require_nominative_complete(session)
    if session.transaction_id is None or not session.transaction_total_cents:
        raise InvalidStepError("No payable transaction linked to this checkout")

    return session.model_copy(update={
        "step": CheckoutStep.PAYMENT,
        "timer": session.timer.start(),
    })


def _complete_payment(session, action: a.CompletePayment, config):
    if session.step != CheckoutStep.PAYMENT or session.transaction_id is None:
        raise InvalidStepError("No payment in progress")
    if action.transaction_id is not None and action.transaction_id != session.transaction_id:
        raise InvalidStepError(
            f"Payment confirmed for {action.transaction_id}, "
            f"but checkout is linked to {session.transaction_id}"
        )
    return _complete(session, session.transaction_id)


# =============================================================================
# TIMER
# =============================================================================


def _tick(session, action: a.Tick, config):
    timer = session.timer.tick(action.seconds)
    if timer == session.timer:
        return session
    return session.model_copy(update={"timer": timer})


def _expire_timer(session, action: a.ExpireTimer, config):
    if session.is_expired:
        return session
    return session.model_copy(update={"timer": session.timer.expire()})


def _reset_timer(session, action: a.ResetTimer, config):
    """
    Retry after expiry: re-arm the countdown, discard the stale
    transaction and fall back from payment to summary.

    A timer that has not expired is left alone.
    """
    if not session.is_expired:
        return session

    update = {
        "timer": session.timer.reset(),
        "is_submitting": False,
        **_cleared_transaction(),
    }
    if session.step == CheckoutStep.PAYMENT:
        update["step"] = CheckoutStep.SUMMARY
    return session.model_copy(update=update)


_HANDLERS = {
    a.ResetForNewEvent: _reset_for_new_event,
    a.AddItem: _add_item,
    a.UpdateQuantity: _update_quantity,
    a.RemoveItem: _remove_item,
    a.ClearItemsByType: _clear_items_by_type,
    a.ClearCart: _clear_cart,
    a.SetCoupon: _set_coupon,
    a.SetNominativeAssignments: _set_assignments,
    a.AssignToMe: _assign_to_me,
    a.AssignToSend: _assign_to_send,
    a.ToggleAllForMe: _toggle_all_for_me,
    a.UpdateRecipientPhone: _update_phone,
    a.UpdateRecipientCountry: _update_country,
    a.UpdateRecipientEmail: _update_email,
    a.BeginRecipientLookup: _begin_lookup,
    a.ResolveRecipientLookup: _resolve_lookup,
    a.FailRecipientLookup: _fail_lookup,
    a.GoToSummary: _go_to_summary,
    a.GoBack: _go_back,
    a.GoBackToSelection: _go_back_to_selection,
    a.BeginSubmit: _begin_submit,
    a.HandshakeSucceeded: _handshake_succeeded,
    a.HandshakeFailed: _handshake_failed,
    a.SetTransaction: _set_transaction,
    a.ClearTransaction: _clear_transaction,
    a.GoToPayment: _go_to_payment,
    a.CompletePayment: _complete_payment,
    a.Tick: _tick,
    a.ExpireTimer: _expire_timer,
    a.ResetTimer: _reset_timer,
}
