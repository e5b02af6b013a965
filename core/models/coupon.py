"""Coupon domain models.

PERCENTAGE coupons carry a percent (10 = 10%). FIXED_AMOUNT coupons carry
cents, like every other amount in the codebase.
"""

from enum import Enum

from pydantic import BaseModel, Field, field_validator


class CouponType(str, Enum):
    """How a coupon's value is applied to the subtotal."""

    PERCENTAGE = "PERCENTAGE"
    FIXED_AMOUNT = "FIXED_AMOUNT"


class Coupon(BaseModel):
    """A validated coupon applied to a checkout."""

    id: str
    code: str = Field(..., min_length=1)
    type: CouponType
    value: int = Field(..., ge=0)
    remaining_uses: int | None = None  # Informational; enforced server-side

    model_config = {"frozen": True}

    @field_validator("code")
    @classmethod
    def normalize_code(cls, v: str) -> str:
        return v.strip().upper()
