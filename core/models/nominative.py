"""Nominative (personalised) ticket assignment models.

A nominative cart line needs one named recipient per unit. Every unit is
a slot addressed by its position in the flattened cart (item 0's units
first, then item 1's, ...).
"""

import re
from enum import Enum

from pydantic import BaseModel, Field

# Only the basic local@domain.tld shape gates completeness. The email field
# holds in-progress input, so it is a plain str rather than EmailStr.
EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


class AssignmentType(str, Enum):
    """Delivery target state of one slot."""

    ME = "me"  # Purchaser keeps the unit
    SEND = "send"  # Phone being entered, not yet looked up
    SEARCHING = "searching"  # Lookup in flight
    FOUND = "found"  # Lookup matched a registered user
    NOTFOUND = "notfound"  # No match; recipient identified by email


class NominativeSlot(BaseModel):
    """One assignable unit of a nominative cart line."""

    item_index: int = Field(..., ge=0)
    line_index: int = Field(..., ge=0)
    item_id: str
    price_id: str
    unit: int = Field(..., ge=0)

    model_config = {"frozen": True}

    @property
    def identity(self) -> tuple[str, str, int]:
        """Position-independent identity used to carry assignments across cart edits."""
        return (self.item_id, self.price_id, self.unit)


class NominativeAssignment(BaseModel):
    """Recipient resolution for one slot."""

    item_index: int = Field(..., ge=0)
    assignment_type: AssignmentType
    phone: str | None = None
    phone_country: str | None = None
    email: str | None = None
    to_user_id: str | None = None

    model_config = {"frozen": True}

    @property
    def is_searching(self) -> bool:
        return self.assignment_type == AssignmentType.SEARCHING

    @property
    def is_complete(self) -> bool:
        """Whether this slot is ready for checkout."""
        if self.assignment_type == AssignmentType.ME:
            return True
        if self.assignment_type == AssignmentType.FOUND:
            return bool(self.to_user_id)
        if self.assignment_type == AssignmentType.NOTFOUND:
            return bool(self.phone) and bool(
                self.email and EMAIL_PATTERN.match(self.email.strip())
            )
        return False
