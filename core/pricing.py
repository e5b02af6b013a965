"""
Checkout pricing.

Pure functions: the breakdown is recomputed from the cart, the service
fee and the coupon on every read and never stored. The discount applies
to the subtotal only, never to the service fee, and the payable total is
clamped at zero.
"""

from decimal import Decimal, ROUND_HALF_UP

from pydantic import BaseModel

from core.models import Cart, Coupon, CouponType


class PriceBreakdown(BaseModel):
    """Derived amounts for a checkout, in cents."""

    subtotal_cents: int
    service_fee_cents: int
    discount_cents: int
    total_cents: int

    model_config = {"frozen": True}

    @property
    def is_free(self) -> bool:
        return self.total_cents == 0


def compute_discount(subtotal_cents: int, coupon: Coupon | None) -> int:
    """
    Discount a coupon grants against a subtotal.

    PERCENTAGE rounds half-up to the cent; both types are capped at the
    subtotal so a discount can never exceed what is being bought.
    """
    if coupon is None or subtotal_cents <= 0:
        return 0

    if coupon.type == CouponType.PERCENTAGE:
        raw = (Decimal(subtotal_cents) * Decimal(coupon.value) / Decimal(100))
        discount = int(raw.quantize(Decimal("1"), rounding=ROUND_HALF_UP))
    else:
        discount = coupon.value

    return max(0, min(discount, subtotal_cents))


def compute_pricing(
    cart: Cart,
    service_fee_cents: int,
    coupon: Coupon | None = None,
) -> PriceBreakdown:
    """Subtotal, fee, discount and payable total for a cart."""
    subtotal = cart.subtotal_cents
    discount = compute_discount(subtotal, coupon)
    total = max(0, subtotal + service_fee_cents - discount)

    return PriceBreakdown(
        subtotal_cents=subtotal,
        service_fee_cents=service_fee_cents,
        discount_cents=discount,
        total_cents=total,
    )
