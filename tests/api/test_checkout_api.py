"""Tests for the checkout HTTP endpoints."""

from core.collaborators import TransportError
from core.models import (
    CouponValidationResult,
    RecipientLookupResult,
    ResponseStatus,
    Transaction,
    TransactionResult,
    TransactionStatus,
)
from api.middleware import CHECKOUT_COOKIE
from factories import make_coupon

TICKET = {
    "id": "tkt-1",
    "price_id": "price-1",
    "type": "ticket",
    "name": "General admission",
    "unit_price_cents": 1500,
    "quantity": 2,
}


def _payable():
    return TransactionResult(
        status=ResponseStatus.SUCCESS,
        transaction=Transaction(id="tx-1", status=TransactionStatus.PENDING, total_price_cents=3200),
    )


# =============================================================================
# ENVELOPE AND SESSION COOKIE
# =============================================================================


class TestEnvelope:

    def test_get_returns_session_with_pricing(self, client):
        response = client.get("/api/checkout")

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["data"]["step"] == "selection"
        assert body["data"]["pricing"]["total_cents"] == 200
        assert body["data"]["remaining_display"] == "10:00"

    def test_request_id_matches_header(self, client):
        response = client.get("/api/checkout")
        assert response.json()["meta"]["request_id"] == response.headers["X-Request-ID"]

    def test_new_client_gets_session_cookie(self, anonymous_client):
        response = anonymous_client.get("/api/checkout")
        assert CHECKOUT_COOKIE in response.cookies

    def test_known_client_keeps_its_session(self, client):
        response = client.get("/api/checkout")
        assert CHECKOUT_COOKIE not in response.cookies


# =============================================================================
# ACTIONS
# =============================================================================


class TestActions:

    def test_add_item_returns_updated_pricing(self, act):
        act("reset_for_new_event", event_id="evt-1", event_name="Closing Party")
        response = act("add_item", **TICKET)

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["event_id"] == "evt-1"
        assert data["pricing"]["subtotal_cents"] == 3000
        assert data["pricing"]["total_cents"] == 3200

    def test_unknown_action_rejected(self, act):
        response = act("teleport")

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "INVALID_REQUEST"

    def test_missing_field_rejected(self, act):
        response = act("update_quantity", item_id="tkt-1")

        assert response.status_code == 400
        assert "price_id" in response.json()["error"]["message"]

    def test_invalid_item_rejected(self, act):
        response = act("add_item", **{**TICKET, "quantity": 0})
        assert response.status_code == 400

    def test_malformed_body_is_validation_error(self, client):
        response = client.post("/api/checkout/actions", json={"data": {}})

        assert response.status_code == 422
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"


# =============================================================================
# CHECKOUT FLOW
# =============================================================================


class TestCheckoutFlow:

    def test_summary_with_empty_cart(self, act):
        response = act("go_to_summary")

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "EMPTY_CART"

    def test_summary_requires_sign_in(self, act, auth):
        auth.is_authenticated.return_value = False
        act("add_item", **TICKET)

        response = act("go_to_summary")

        assert response.status_code == 401
        assert response.json()["error"]["code"] == "NOT_AUTHENTICATED"

    def test_submit_moves_to_payment(self, act, gateway):
        gateway.create_transaction.return_value = _payable()
        act("add_item", **TICKET)
        act("go_to_summary")

        response = act("submit")

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["step"] == "payment"
        assert data["transaction_id"] == "tx-1"

    def test_rejected_transaction_message_is_verbatim(self, act, gateway):
        gateway.create_transaction.return_value = TransactionResult(
            status=ResponseStatus.ERROR, message="Event is sold out",
        )
        act("add_item", **TICKET)
        act("go_to_summary")

        response = act("submit")

        assert response.status_code == 400
        assert response.json()["error"] == {
            "code": "TRANSACTION_REJECTED",
            "message": "Event is sold out",
            "details": None,
        }

    def test_gateway_down_is_service_unavailable(self, act, gateway):
        gateway.create_transaction.side_effect = TransportError("timeout")
        act("add_item", **TICKET)
        act("go_to_summary")

        response = act("submit")

        assert response.status_code == 503
        assert response.json()["error"]["code"] == "SERVICE_UNAVAILABLE"

    def test_unexpected_failure_is_internal_error(self, act, client, gateway):
        gateway.create_transaction.side_effect = RuntimeError("bug")
        act("add_item", **TICKET)
        act("go_to_summary")

        response = act("submit")

        assert response.status_code == 500
        assert response.json()["error"]["code"] == "INTERNAL_ERROR"
        assert client.get("/api/checkout").json()["data"]["is_submitting"] is False

    def test_incomplete_assignments_report_pending_slots(self, act, gateway):
        act("add_item", **{**TICKET, "is_nominative": True})
        act("go_to_summary")

        response = act("submit")

        assert response.status_code == 400
        error = response.json()["error"]
        assert error["code"] == "NOMINATIVE_INCOMPLETE"
        assert error["details"] == {"pending_slots": [1]}
        gateway.create_transaction.assert_not_called()

    def test_expired_session_cannot_submit(self, act, gateway):
        act("add_item", **TICKET)
        act("go_to_summary")
        act("expire_timer")

        response = act("submit")

        assert response.status_code == 409
        assert response.json()["error"]["code"] == "SESSION_EXPIRED"

    def test_completed_session_refuses_changes(self, act, gateway):
        gateway.create_transaction.return_value = _payable()
        act("add_item", **TICKET)
        act("go_to_summary")
        act("submit")
        act("complete_payment", transaction_id="tx-1")

        response = act("add_item", **TICKET)

        assert response.status_code == 409
        assert response.json()["error"]["code"] == "SESSION_COMPLETED"


# =============================================================================
# RECIPIENTS AND COUPONS
# =============================================================================


class TestRecipientsAndCoupons:

    def test_lookup_resolves_recipient(self, act, directory):
        directory.lookup_recipient.return_value = RecipientLookupResult(found=True, user_id="user-7")
        act("add_item", **{**TICKET, "is_nominative": True})
        act("go_to_summary")
        act("update_recipient_phone", item_index=1, phone="600 333 444")

        response = act("lookup_recipient", item_index=1)

        data = response.json()["data"]
        assert data["nominative_assignments"][1]["assignment_type"] == "found"
        assert data["nominative_complete"] is True

    def test_short_phone_reports_expected_length(self, act):
        act("add_item", **{**TICKET, "is_nominative": True})
        act("go_to_summary")
        act("update_recipient_phone", item_index=1, phone="600")

        response = act("lookup_recipient", item_index=1)

        assert response.status_code == 400
        assert response.json()["error"]["details"] == {"phone_country": "34", "expected_length": 9}

    def test_coupon_applied(self, act, validator):
        validator.validate_coupon.return_value = CouponValidationResult(valid=True, coupon=make_coupon())
        act("add_item", **TICKET)

        response = act("apply_coupon", code="save10")

        assert response.json()["data"]["pricing"]["discount_cents"] == 300

    def test_coupon_rejected(self, act, validator):
        validator.validate_coupon.return_value = CouponValidationResult(valid=False, message="Expired coupon")

        response = act("apply_coupon", code="OLD")

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "COUPON_REJECTED"
        assert response.json()["error"]["message"] == "Expired coupon"


class TestShare:

    def test_share_url(self, act, client):
        act("add_item", **TICKET)

        response = client.get("/api/checkout/share", params={"base_url": "https://tickets.example/e/1"})

        data = response.json()["data"]
        assert data["url"] == "https://tickets.example/e/1?tickets=price-1:2"
        assert data["selection"] == {"tickets": "price-1:2"}
