"""
Checkout endpoints.

    GET  /api/checkout          current session with derived pricing
    GET  /api/checkout/share    shareable selection URL
    POST /api/checkout/actions  unified mutation endpoint

The session key comes from CheckoutSessionMiddleware (request.state).
Every mutation returns the resulting session in the same shape as GET.
"""

from fastapi import APIRouter, Query, Request
from pydantic import BaseModel

from api.base import success_response
from core.models import (
    CartItem,
    CheckoutSession,
    EventDisplayInfo,
    ItemType,
    NominativeAssignment,
)
from core.machine import nominative_complete
from core.pricing import compute_pricing
from core.services.checkout_service import CheckoutService


class CheckoutActionRequest(BaseModel):
    action: str
    data: dict = {}


def session_payload(session: CheckoutSession) -> dict:
    """Session document plus the values clients derive from it."""
    pricing = compute_pricing(session.cart, session.service_fee_cents, session.coupon)
    payload = session.model_dump(mode="json")
    payload["pricing"] = pricing.model_dump(mode="json")
    payload["is_expired"] = session.is_expired
    payload["is_completed"] = session.is_completed
    payload["remaining_time"] = session.remaining_time
    payload["remaining_display"] = session.timer.format_remaining()
    payload["nominative_complete"] = nominative_complete(session)
    return payload


def _session_key(request: Request) -> str:
    key = getattr(request.state, "checkout_key", None)
    if not key:
        raise ValueError("Checkout session key missing from request")
    return key


def create_checkout_router(services: dict) -> APIRouter:
    router = APIRouter()

    checkout: CheckoutService = services["checkout"]
    handler = CheckoutActionHandler(
        checkout=checkout,
        handshake=services["handshake"],
        nominative=services["nominative"],
        coupon=services["coupon"],
    )

    @router.get("/checkout")
    async def get_checkout(request: Request):
        session = checkout.get_session(_session_key(request))
        return success_response(
            session_payload(session), request.state.request_id
        ).model_dump(mode="json")

    @router.get("/checkout/share")
    async def share_checkout(
        request: Request,
        base_url: str = Query(..., min_length=1),
        tab: str | None = Query(None),
    ):
        key = _session_key(request)
        data = {
            "url": checkout.shareable_url(key, base_url, tab=tab),
            "selection": checkout.selection_tokens(key),
        }
        return success_response(data, request.state.request_id).model_dump(mode="json")

    @router.post("/checkout/actions")
    async def perform_action(request: Request, body: CheckoutActionRequest):
        if body.action not in handler.ALLOWED_ACTIONS:
            raise ValueError(
                f"Unknown checkout action '{body.action}'. "
                f"Allowed: {', '.join(sorted(handler.ALLOWED_ACTIONS))}"
            )

        method = getattr(handler, f"_handle_{body.action}")
        try:
            session = method(_session_key(request), dict(body.data))
        except KeyError as e:
            raise ValueError(f"Missing field {e} for action '{body.action}'") from e
        return success_response(
            session_payload(session), request.state.request_id
        ).model_dump(mode="json")

    return router


# =============================================================================
# HANDLER
# =============================================================================


class CheckoutActionHandler:
    ALLOWED_ACTIONS = {
        "reset_for_new_event", "resume",
        "add_item", "update_quantity", "remove_item", "clear_items_by_type", "clear_cart",
        "apply_coupon", "remove_coupon",
        "set_nominative_assignments", "assign_to_me", "assign_to_send", "toggle_all_for_me",
        "update_recipient_phone", "update_recipient_country", "update_recipient_email",
        "lookup_recipient",
        "go_to_summary", "go_back", "go_back_to_selection",
        "submit", "go_to_payment", "clear_transaction", "complete_payment",
        "reset_timer", "expire_timer",
    }

    def __init__(self, checkout, handshake, nominative, coupon):
        self.checkout = checkout
        self.handshake = handshake
        self.nominative = nominative
        self.coupon = coupon

    # Session

    def _handle_reset_for_new_event(self, key: str, data: dict):
        display_info = data.get("display_info")
        return self.checkout.reset_for_new_event(
            key,
            event_id=data["event_id"],
            event_name=data.get("event_name"),
            event_slug=data.get("event_slug"),
            display_info=EventDisplayInfo(**display_info) if display_info else None,
        )

    def _handle_resume(self, key: str, data: dict):
        return self.checkout.resume(key)

    # Cart

    def _handle_add_item(self, key: str, data: dict):
        return self.checkout.add_item(key, CartItem(**data))

    def _handle_update_quantity(self, key: str, data: dict):
        return self.checkout.update_quantity(
            key,
            item_id=data["item_id"],
            price_id=data["price_id"],
            delta=int(data["delta"]),
            max_quantity=data.get("max_quantity"),
        )

    def _handle_remove_item(self, key: str, data: dict):
        return self.checkout.remove_item(key, data["item_id"], data["price_id"])

    def _handle_clear_items_by_type(self, key: str, data: dict):
        return self.checkout.clear_items_by_type(key, ItemType(data["item_type"]))

    def _handle_clear_cart(self, key: str, data: dict):
        return self.checkout.clear_cart(key)

    # Coupon

    def _handle_apply_coupon(self, key: str, data: dict):
        return self.coupon.apply_coupon_code(key, data.get("code", ""))

    def _handle_remove_coupon(self, key: str, data: dict):
        return self.coupon.remove_coupon(key)

    # Nominative assignments

    def _handle_set_nominative_assignments(self, key: str, data: dict):
        assignments = [NominativeAssignment(**a) for a in data.get("assignments", [])]
        return self.checkout.set_nominative_assignments(key, assignments)

    def _handle_assign_to_me(self, key: str, data: dict):
        return self.checkout.assign_to_me(key, int(data["item_index"]))

    def _handle_assign_to_send(self, key: str, data: dict):
        return self.checkout.assign_to_send(key, int(data["item_index"]))

    def _handle_toggle_all_for_me(self, key: str, data: dict):
        return self.checkout.toggle_all_for_me(key)

    def _handle_update_recipient_phone(self, key: str, data: dict):
        return self.checkout.update_recipient_phone(key, int(data["item_index"]), data["phone"])

    def _handle_update_recipient_country(self, key: str, data: dict):
        return self.checkout.update_recipient_country(
            key, int(data["item_index"]), data["phone_country"]
        )

    def _handle_update_recipient_email(self, key: str, data: dict):
        return self.checkout.update_recipient_email(key, int(data["item_index"]), data["email"])

    def _handle_lookup_recipient(self, key: str, data: dict):
        return self.nominative.lookup_recipient(key, int(data["item_index"]))

    # Steps

    def _handle_go_to_summary(self, key: str, data: dict):
        return self.checkout.go_to_summary(key)

    def _handle_go_back(self, key: str, data: dict):
        return self.checkout.go_back(key)

    def _handle_go_back_to_selection(self, key: str, data: dict):
        return self.checkout.go_back_to_selection(key)

    def _handle_submit(self, key: str, data: dict):
        return self.handshake.submit(key)

    def _handle_go_to_payment(self, key: str, data: dict):
        return self.checkout.go_to_payment(key)

    def _handle_clear_transaction(self, key: str, data: dict):
        return self.checkout.clear_transaction(key)

    def _handle_complete_payment(self, key: str, data: dict):
        return self.checkout.complete_payment(key, data.get("transaction_id"))

    # Timer

    def _handle_reset_timer(self, key: str, data: dict):
        return self.checkout.reset_timer(key)

    def _handle_expire_timer(self, key: str, data: dict):
        return self.checkout.expire_timer(key)
