"""Tests for the nominative assignment engine."""

import pytest

from core import nominative
from core.exceptions import InvalidAssignmentError, InvalidPhoneError, SelfSendError
from core.models import AssignmentType, NominativeAssignment, Purchaser, RecipientLookupResult
from factories import RECIPIENT_PHONE, make_cart, make_item

COUNTRY = "34"


def _me(index):
    return NominativeAssignment(item_index=index, assignment_type=AssignmentType.ME)


def _send(index, phone=None, country=COUNTRY):
    return NominativeAssignment(
        item_index=index, assignment_type=AssignmentType.SEND, phone=phone, phone_country=country,
    )


def _notfound(index, email="friend@example.com"):
    return NominativeAssignment(
        item_index=index,
        assignment_type=AssignmentType.NOTFOUND,
        phone="600 111 222",
        phone_country=COUNTRY,
        email=email,
    )


def _found(index):
    return NominativeAssignment(
        item_index=index, assignment_type=AssignmentType.FOUND,
        phone="600 333 444", phone_country=COUNTRY, to_user_id=f"user-{index}",
    )


@pytest.fixture
def two_ticket_cart():
    return make_cart(make_item(unit_price_cents=10, quantity=2, is_nominative=True))


# =============================================================================
# SLOTS
# =============================================================================


class TestSlots:

    def test_one_slot_per_nominative_unit_in_cart_order(self):
        cart = make_cart(
            make_item("a", quantity=2, is_nominative=True),
            make_item("b", quantity=3),
            make_item("c", quantity=1, is_nominative=True),
        )
        slots = nominative.build_slots(cart)

        assert [s.item_index for s in slots] == [0, 1, 2]
        assert [(s.item_id, s.unit) for s in slots] == [("a", 0), ("a", 1), ("c", 0)]
        assert [s.line_index for s in slots] == [0, 0, 2]

    def test_line_slot_range_starts_after_preceding_nominative_lines(self):
        cart = make_cart(
            make_item("a", quantity=2, is_nominative=True),
            make_item("b", quantity=3),
            make_item("c", quantity=2, is_nominative=True),
        )
        assert list(nominative.line_slot_range(cart, 0)) == [0, 1]
        assert list(nominative.line_slot_range(cart, 1)) == []
        assert list(nominative.line_slot_range(cart, 2)) == [2, 3]

    def test_seed_gives_first_slot_to_purchaser(self, two_ticket_cart):
        seeded = nominative.seed_assignments(two_ticket_cart, COUNTRY)

        assert [a.assignment_type for a in seeded] == [AssignmentType.ME, AssignmentType.SEND]
        assert seeded[1].phone_country == COUNTRY


class TestReconcile:

    def test_assignments_follow_their_unit_when_a_line_is_inserted_before(self):
        before = make_cart(make_item("b", quantity=1, is_nominative=True))
        after = make_cart(
            make_item("a", quantity=1, is_nominative=True),
            make_item("b", quantity=1, is_nominative=True),
        )
        reconciled = nominative.reconcile_assignments(before, after, (_found(0),), COUNTRY)

        assert reconciled[0].assignment_type == AssignmentType.SEND
        assert reconciled[1].assignment_type == AssignmentType.FOUND
        assert reconciled[1].item_index == 1

    def test_quantity_increase_seeds_new_slot_as_send(self, two_ticket_cart):
        bigger = two_ticket_cart.update_quantity("tkt-1", "price-1", 1)
        reconciled = nominative.reconcile_assignments(
            two_ticket_cart, bigger, (_me(0), _notfound(1)), COUNTRY
        )

        assert [a.assignment_type for a in reconciled] == [
            AssignmentType.ME, AssignmentType.NOTFOUND, AssignmentType.SEND,
        ]

    def test_quantity_decrease_drops_trailing_slot(self, two_ticket_cart):
        smaller = two_ticket_cart.update_quantity("tkt-1", "price-1", -1)
        reconciled = nominative.reconcile_assignments(
            two_ticket_cart, smaller, (_me(0), _notfound(1)), COUNTRY
        )
        assert reconciled == (_me(0),)

    def test_no_nominative_items_clears_assignments(self, two_ticket_cart):
        empty = two_ticket_cart.remove_item("tkt-1", "price-1")
        assert nominative.reconcile_assignments(two_ticket_cart, empty, (_me(0), _me(1)), COUNTRY) == ()

    def test_validate_rejects_out_of_range_slot(self, two_ticket_cart):
        with pytest.raises(InvalidAssignmentError):
            nominative.validate_assignments(two_ticket_cart, (_me(0), _me(2)))

    def test_validate_rejects_duplicate_slot(self, two_ticket_cart):
        with pytest.raises(InvalidAssignmentError):
            nominative.validate_assignments(two_ticket_cart, (_me(0), _me(0)))

    def test_validate_orders_by_slot(self, two_ticket_cart):
        assert nominative.validate_assignments(two_ticket_cart, (_me(1), _me(0))) == (_me(0), _me(1))


# =============================================================================
# SLOT EDITS
# =============================================================================


class TestSlotEdits:

    def test_me_to_send_uses_default_country_and_clears_identity(self):
        result = nominative.assign_to_send((_me(0),), 0, COUNTRY)
        assert result[0] == _send(0)

    def test_assign_to_me_from_found(self):
        result = nominative.assign_to_me((_found(0),), 0)
        assert result[0] == _me(0)

    def test_toggle_all_me_becomes_all_send(self):
        result = nominative.toggle_all_for_me((_me(0), _me(1)), COUNTRY)
        assert all(a.assignment_type == AssignmentType.SEND for a in result)

    def test_toggle_mixed_becomes_all_me(self):
        result = nominative.toggle_all_for_me((_me(0), _found(1)), COUNTRY)
        assert result == (_me(0), _me(1))

    def test_phone_edit_formats_digits(self):
        result = nominative.update_phone((_send(0),), 0, "600-333-444")
        assert result[0].phone == "600 333 444"

    def test_phone_edit_truncates_to_country_length(self):
        result = nominative.update_phone((_send(0),), 0, "6003334449999")
        assert result[0].phone == "600 333 444"

    def test_phone_edit_reverts_found_to_send(self):
        result = nominative.update_phone((_found(0),), 0, "600 999 888")

        assert result[0].assignment_type == AssignmentType.SEND
        assert result[0].to_user_id is None
        assert result[0].email is None

    def test_phone_edit_on_me_slot_rejected(self):
        with pytest.raises(InvalidAssignmentError):
            nominative.update_phone((_me(0),), 0, "600 999 888")

    def test_country_edit_clears_phone(self):
        result = nominative.update_phone_country((_notfound(0),), 0, "+44")

        assert result[0] == _send(0, phone=None, country="44")

    def test_email_only_editable_when_not_found(self):
        with pytest.raises(InvalidAssignmentError):
            nominative.update_email((_send(0),), 0, "a@b.com")

        result = nominative.update_email((_notfound(0, email=""),), 0, " a@b.com ")
        assert result[0].email == "a@b.com"

    def test_unknown_slot_rejected(self):
        with pytest.raises(InvalidAssignmentError):
            nominative.assign_to_me((_me(0),), 3)


# =============================================================================
# LOOKUP
# =============================================================================


class TestLookup:

    def test_valid_trigger_marks_slot_searching(self):
        assignments, request = nominative.begin_lookup(
            (_send(0, "600 333 444"),), 0, purchaser=None
        )

        assert assignments[0].assignment_type == AssignmentType.SEARCHING
        assert request == nominative.LookupRequest(item_index=0, phone_country="34", phone=RECIPIENT_PHONE)

    def test_wrong_length_fails_locally(self):
        with pytest.raises(InvalidPhoneError) as exc_info:
            nominative.begin_lookup((_send(0, "600 333"),), 0, purchaser=None)
        assert exc_info.value.expected_length == 9

    def test_country_specific_length(self):
        assignments, request = nominative.begin_lookup(
            (_send(0, "0123456789", country="44"),), 0, purchaser=None
        )
        assert request.phone_country == "44"

    def test_self_send_rejected_locally(self):
        purchaser = Purchaser(id="u-1", phone="600 123 456", country="34")

        with pytest.raises(SelfSendError):
            nominative.begin_lookup((_send(0, "600123456"),), 0, purchaser=purchaser)

    def test_self_send_compares_normalized_country(self):
        purchaser = Purchaser(id="u-1", phone="600123456", country="+34")

        with pytest.raises(SelfSendError):
            nominative.begin_lookup((_send(0, "600 123 456"),), 0, purchaser=purchaser)

    def test_same_digits_other_country_is_not_self_send(self):
        purchaser = Purchaser(id="u-1", phone="600123456", country="33")
        assignments, request = nominative.begin_lookup(
            (_send(0, "600 123 456"),), 0, purchaser=purchaser
        )
        assert request is not None

    def test_second_trigger_while_searching_is_ignored(self):
        searching, _ = nominative.begin_lookup((_send(0, "600 333 444"),), 0, purchaser=None)
        again, request = nominative.begin_lookup(searching, 0, purchaser=None)

        assert request is None
        assert again is searching

    def test_lookup_requires_send_state(self):
        with pytest.raises(InvalidAssignmentError):
            nominative.begin_lookup((_me(0),), 0, purchaser=None)

    def test_found_result_sets_user_and_clears_email(self):
        searching, request = nominative.begin_lookup((_send(0, "600 333 444"),), 0, purchaser=None)
        resolved = nominative.resolve_lookup(
            searching, request, RecipientLookupResult(found=True, user_id="u-9")
        )

        assert resolved[0].assignment_type == AssignmentType.FOUND
        assert resolved[0].to_user_id == "u-9"
        assert resolved[0].email is None
        assert resolved[0].is_complete

    def test_not_found_result_starts_email_path(self):
        searching, request = nominative.begin_lookup((_send(0, "600 333 444"),), 0, purchaser=None)
        resolved = nominative.resolve_lookup(searching, request, RecipientLookupResult(found=False))

        assert resolved[0].assignment_type == AssignmentType.NOTFOUND
        assert resolved[0].email == ""
        assert not resolved[0].is_complete

    def test_transport_failure_falls_back_to_not_found(self):
        searching, request = nominative.begin_lookup((_send(0, "600 333 444"),), 0, purchaser=None)
        failed = nominative.fail_lookup(searching, request)

        assert failed[0].assignment_type == AssignmentType.NOTFOUND

    def test_result_for_edited_slot_is_discarded(self):
        searching, request = nominative.begin_lookup((_send(0, "600 333 444"),), 0, purchaser=None)
        edited = nominative.update_phone(searching, 0, "600 999 888")

        resolved = nominative.resolve_lookup(
            edited, request, RecipientLookupResult(found=True, user_id="u-9")
        )
        assert resolved == edited


# =============================================================================
# COMPLETENESS AND ATTENDEES
# =============================================================================


class TestCompleteness:

    def test_cart_without_nominative_items_is_complete(self):
        cart = make_cart(make_item())
        assert nominative.is_nominative_complete(cart, ()) is True

    def test_me_plus_send_is_incomplete_until_recipient_has_email(self, two_ticket_cart):
        assignments = (_me(0), _send(1))
        assert nominative.is_nominative_complete(two_ticket_cart, assignments) is False
        assert nominative.pending_slots(two_ticket_cart, assignments) == [1]

        assignments = (_me(0), _notfound(1, email="a@b.com"))
        assert nominative.is_nominative_complete(two_ticket_cart, assignments) is True

    def test_missing_assignment_is_incomplete(self, two_ticket_cart):
        assert nominative.is_nominative_complete(two_ticket_cart, (_me(0),)) is False

    @pytest.mark.parametrize("assignments", [
        (_me(0), _found(1), _notfound(2)),
        (_notfound(0), _me(1), _found(2)),
        (_found(2), _notfound(1), _me(0)),
    ])
    def test_complete_regardless_of_slot_order(self, assignments):
        cart = make_cart(make_item(quantity=3, is_nominative=True))
        assert nominative.is_nominative_complete(cart, assignments) is True

    def test_attendees_per_line(self):
        cart = make_cart(
            make_item("a", quantity=1, is_nominative=True),
            make_item("b", quantity=2, is_nominative=True),
        )
        assignments = (_me(0), _found(1), _notfound(2))

        first = nominative.attendees_for_line(cart, assignments, 0)
        second = nominative.attendees_for_line(cart, assignments, 1)

        assert [a.is_for_me for a in first] == [True]
        assert second[0].to_user_id == "user-1"
        assert second[1].is_for_me is False
        assert second[1].phone == "600111222"
        assert second[1].email == "friend@example.com"
