"""
Nominative assignment engine.

Maps every personalised unit in the cart (a slot) to a delivery target.
Slots are rebuilt from the cart on every call, flattened in cart order,
and assignments are keyed by the resulting slot index. When the cart
changes structurally, assignments are re-keyed by slot identity
(item, price, unit number) instead of trusting the old indices.

Per-slot states:

    (seed) -> me                first slot
    (seed) -> send              every other slot
    me -> send                  default country, identity cleared
    send -> searching           valid lookup trigger
    searching -> found          lookup matched a user
    searching -> notfound       no match, or transport failure
    found/notfound/searching -> send   phone or country edited

All functions are pure and return new assignment tuples.
"""

import logging
from dataclasses import dataclass

from core.exceptions import InvalidAssignmentError, InvalidPhoneError, SelfSendError
from core.models import (
    AssignmentType,
    Attendee,
    Cart,
    NominativeAssignment,
    NominativeSlot,
    Purchaser,
    RecipientLookupResult,
)
from utils.phone import (
    digits_only,
    expected_length,
    format_phone,
    has_valid_length,
    normalize_country,
    same_number,
)

logger = logging.getLogger(__name__)

Assignments = tuple[NominativeAssignment, ...]


@dataclass(frozen=True)
class LookupRequest:
    """Normalised input for a recipient directory lookup."""

    item_index: int
    phone_country: str
    phone: str  # Digits only


# =============================================================================
# SLOTS
# =============================================================================


def build_slots(cart: Cart) -> tuple[NominativeSlot, ...]:
    """Flatten nominative lines into one slot per unit, in cart order."""
    slots = []
    for line_index, item in enumerate(cart.items):
        if not item.is_nominative:
            continue
        for unit in range(item.quantity):
            slots.append(NominativeSlot(
                item_index=len(slots),
                line_index=line_index,
                item_id=item.id,
                price_id=item.price_id,
                unit=unit,
            ))
    return tuple(slots)


def line_slot_range(cart: Cart, line_index: int) -> range:
    """
    Global slot indices belonging to one nominative line.

    Start is the summed quantity of every preceding nominative line.
    """
    start = 0
    for index, item in enumerate(cart.items):
        if index == line_index:
            return range(start, start + item.quantity) if item.is_nominative else range(start, start)
        if item.is_nominative:
            start += item.quantity
    raise IndexError(f"Cart has no line {line_index}")


def _send(item_index: int, default_country: str) -> NominativeAssignment:
    return NominativeAssignment(
        item_index=item_index,
        assignment_type=AssignmentType.SEND,
        phone_country=default_country,
    )


def seed_assignments(cart: Cart, default_country: str) -> Assignments:
    """Initial assignments: slot 0 for the purchaser, the rest to be sent."""
    seeded = []
    for slot in build_slots(cart):
        if slot.item_index == 0:
            seeded.append(NominativeAssignment(item_index=0, assignment_type=AssignmentType.ME))
        else:
            seeded.append(_send(slot.item_index, default_country))
    return tuple(seeded)


def reconcile_assignments(
    previous_cart: Cart,
    cart: Cart,
    assignments: Assignments,
    default_country: str,
) -> Assignments:
    """
    Carry assignments across a cart change.

    Each surviving slot keeps its assignment under its new index; slots
    that did not exist before are seeded. With no prior assignments the
    whole set is seeded (first slot 'me').
    """
    if not cart.has_nominative_items:
        return ()
    if not assignments:
        return seed_assignments(cart, default_country)

    by_identity = {}
    old_slots = build_slots(previous_cart)
    for assignment in assignments:
        if assignment.item_index < len(old_slots):
            by_identity[old_slots[assignment.item_index].identity] = assignment

    reconciled = []
    for slot in build_slots(cart):
        carried = by_identity.get(slot.identity)
        if carried is None:
            reconciled.append(_send(slot.item_index, default_country))
        elif carried.item_index != slot.item_index:
            reconciled.append(carried.model_copy(update={"item_index": slot.item_index}))
        else:
            reconciled.append(carried)
    return tuple(reconciled)


def validate_assignments(cart: Cart, assignments: Assignments) -> Assignments:
    """
    Check a caller-supplied assignment set against the cart's slots.

    Returns the assignments ordered by slot index.

    Raises:
        InvalidAssignmentError: Duplicate or out-of-range slot indices.
    """
    slot_count = cart.nominative_quantity
    seen = set()
    for assignment in assignments:
        if assignment.item_index >= slot_count:
            raise InvalidAssignmentError(
                f"Slot {assignment.item_index} does not exist (cart has {slot_count} nominative units)"
            )
        if assignment.item_index in seen:
            raise InvalidAssignmentError(f"Slot {assignment.item_index} assigned twice")
        seen.add(assignment.item_index)
    return tuple(sorted(assignments, key=lambda a: a.item_index))


# =============================================================================
# SLOT EDITS
# =============================================================================


def _get(assignments: Assignments, item_index: int) -> NominativeAssignment:
    for assignment in assignments:
        if assignment.item_index == item_index:
            return assignment
    raise InvalidAssignmentError(f"Slot {item_index} does not exist")


def _replace(assignments: Assignments, updated: NominativeAssignment) -> Assignments:
    return tuple(updated if a.item_index == updated.item_index else a for a in assignments)


def assign_to_me(assignments: Assignments, item_index: int) -> Assignments:
    """Give the unit to the purchaser. Allowed from any state."""
    _get(assignments, item_index)
    return _replace(assignments, NominativeAssignment(
        item_index=item_index,
        assignment_type=AssignmentType.ME,
    ))


def assign_to_send(assignments: Assignments, item_index: int, default_country: str) -> Assignments:
    """Switch a slot to 'send to someone else', clearing any identity."""
    current = _get(assignments, item_index)
    if current.assignment_type == AssignmentType.SEND:
        return assignments
    return _replace(assignments, _send(item_index, default_country))


def toggle_all_for_me(assignments: Assignments, default_country: str) -> Assignments:
    """All 'me' -> all 'send'; anything else -> all 'me'."""
    if assignments and all(a.assignment_type == AssignmentType.ME for a in assignments):
        return tuple(_send(a.item_index, default_country) for a in assignments)
    return tuple(
        NominativeAssignment(item_index=a.item_index, assignment_type=AssignmentType.ME)
        for a in assignments
    )


def update_phone(assignments: Assignments, item_index: int, phone: str) -> Assignments:
    """
    Edit the recipient phone.

    Any previous resolution is invalidated: the slot goes back to 'send'
    and loses to_user_id and email.
    """
    current = _get(assignments, item_index)
    if current.assignment_type == AssignmentType.ME:
        raise InvalidAssignmentError(f"Slot {item_index} is assigned to the purchaser")

    return _replace(assignments, NominativeAssignment(
        item_index=item_index,
        assignment_type=AssignmentType.SEND,
        phone_country=current.phone_country,
        phone=format_phone(current.phone_country, phone) or None,
    ))


def update_phone_country(assignments: Assignments, item_index: int, phone_country: str) -> Assignments:
    """Change the calling code. The phone is cleared since its length rules change."""
    current = _get(assignments, item_index)
    if current.assignment_type == AssignmentType.ME:
        raise InvalidAssignmentError(f"Slot {item_index} is assigned to the purchaser")

    return _replace(assignments, NominativeAssignment(
        item_index=item_index,
        assignment_type=AssignmentType.SEND,
        phone_country=normalize_country(phone_country),
    ))


def update_email(assignments: Assignments, item_index: int, email: str) -> Assignments:
    """Fill the email of a recipient the directory did not know."""
    current = _get(assignments, item_index)
    if current.assignment_type != AssignmentType.NOTFOUND:
        raise InvalidAssignmentError(
            f"Email can only be set on a slot whose recipient was not found (slot {item_index} "
            f"is '{current.assignment_type.value}')"
        )
    return _replace(assignments, current.model_copy(update={"email": email.strip()}))


# =============================================================================
# RECIPIENT LOOKUP
# =============================================================================


def begin_lookup(
    assignments: Assignments,
    item_index: int,
    purchaser: Purchaser | None,
) -> tuple[Assignments, LookupRequest | None]:
    """
    Validate a lookup trigger and mark the slot as searching.

    Returns the unchanged assignments and no request when a lookup for the
    slot is already in flight.

    Raises:
        InvalidAssignmentError: Slot is not in the 'send' state.
        InvalidPhoneError: Wrong digit count for the country. No lookup issued.
        SelfSendError: Number is the purchaser's own. No lookup issued.
    """
    current = _get(assignments, item_index)
    if current.is_searching:
        logger.warning(f"Lookup already in flight for slot {item_index}; trigger ignored")
        return assignments, None
    if current.assignment_type != AssignmentType.SEND:
        raise InvalidAssignmentError(
            f"Slot {item_index} is '{current.assignment_type.value}'; enter a phone number first"
        )

    country = normalize_country(current.phone_country)
    if not has_valid_length(country, current.phone):
        raise InvalidPhoneError(country, expected_length(country))

    if purchaser is not None and same_number(
        country, current.phone, purchaser.country, purchaser.phone
    ):
        raise SelfSendError()

    searching = current.model_copy(update={
        "assignment_type": AssignmentType.SEARCHING,
        "phone_country": country,
    })
    return _replace(assignments, searching), lookup_request_for(searching)


def lookup_request_for(assignment: NominativeAssignment | None) -> LookupRequest | None:
    """The directory request a searching slot is waiting on."""
    if assignment is None or not assignment.is_searching:
        return None
    return LookupRequest(
        item_index=assignment.item_index,
        phone_country=normalize_country(assignment.phone_country),
        phone=digits_only(assignment.phone),
    )


def _in_flight_for(assignments: Assignments, request: LookupRequest) -> NominativeAssignment | None:
    """The searching slot this request was issued for, if it is still waiting."""
    for assignment in assignments:
        if (
            assignment.item_index == request.item_index
            and assignment.is_searching
            and same_number(
                assignment.phone_country, assignment.phone,
                request.phone_country, request.phone,
            )
        ):
            return assignment
    return None


def resolve_lookup(
    assignments: Assignments,
    request: LookupRequest,
    result: RecipientLookupResult,
) -> Assignments:
    """
    Apply a lookup answer.

    Answers for slots that were edited or moved while the call was in
    flight are discarded.
    """
    current = _in_flight_for(assignments, request)
    if current is None:
        logger.info(f"Discarding stale lookup result for slot {request.item_index}")
        return assignments

    if result.found and result.user_id:
        resolved = current.model_copy(update={
            "assignment_type": AssignmentType.FOUND,
            "to_user_id": result.user_id,
            "email": None,
        })
    else:
        resolved = current.model_copy(update={
            "assignment_type": AssignmentType.NOTFOUND,
            "to_user_id": None,
            "email": "",
        })
    return _replace(assignments, resolved)


def fail_lookup(assignments: Assignments, request: LookupRequest) -> Assignments:
    """Transport failure: fall through to the manual email path."""
    return resolve_lookup(assignments, request, RecipientLookupResult(found=False))


# =============================================================================
# COMPLETENESS AND ATTENDEES
# =============================================================================


def pending_slots(cart: Cart, assignments: Assignments) -> list[int]:
    """Slot indices that still block checkout."""
    slot_count = cart.nominative_quantity
    by_index = {a.item_index: a for a in assignments}
    return [
        index for index in range(slot_count)
        if index not in by_index or not by_index[index].is_complete
    ]


def is_nominative_complete(cart: Cart, assignments: Assignments) -> bool:
    """
    True iff the cart has no nominative units, or there is exactly one
    assignment per slot and every one of them is complete.
    """
    if not cart.has_nominative_items:
        return True
    if len(assignments) != cart.nominative_quantity:
        return False
    return all(a.is_complete for a in assignments)


def _attendee(assignment: NominativeAssignment | None) -> Attendee:
    if assignment is None:
        return Attendee(is_for_me=True)
    if assignment.assignment_type == AssignmentType.FOUND and assignment.to_user_id:
        return Attendee(is_for_me=False, to_user_id=assignment.to_user_id)
    if assignment.assignment_type == AssignmentType.NOTFOUND:
        return Attendee(
            is_for_me=False,
            phone=digits_only(assignment.phone),
            phone_country=assignment.phone_country,
            email=assignment.email,
        )
    # 'me', and anything incomplete that slipped past the gate
    return Attendee(is_for_me=True)


def attendees_for_line(cart: Cart, assignments: Assignments, line_index: int) -> list[Attendee]:
    """Attendee records for the slots of one nominative line."""
    by_index = {a.item_index: a for a in assignments}
    return [_attendee(by_index.get(index)) for index in line_slot_range(cart, line_index)]
