"""Coupon code validation and application."""

import logging

from core.collaborators import CouponValidator, TransportError
from core.exceptions import ConnectivityError, CouponRejectedError
from core.models import CheckoutSession
from core.services.checkout_service import CheckoutService

logger = logging.getLogger(__name__)


class CouponService:
    """Service for applying coupon codes to checkout sessions."""

    def __init__(self, checkout: CheckoutService, validator: CouponValidator):
        self.checkout = checkout
        self.validator = validator

    def apply_coupon_code(self, session_key: str, code: str) -> CheckoutSession:
        """
        Validate a code and apply the coupon it names.

        Raises:
            CouponRejectedError: Unknown or unusable code. The previous coupon stays.
            ConnectivityError: Validator unreachable.
        """
        normalized = (code or "").strip().upper()
        if not normalized:
            raise CouponRejectedError(normalized, "Enter a coupon code")

        try:
            result = self.validator.validate_coupon(normalized)
        except TransportError as e:
            logger.error(f"Coupon validator unreachable for {normalized}: {e}")
            raise ConnectivityError("validate_coupon") from e

        if not result.valid or result.coupon is None:
            logger.info(f"Coupon {normalized} rejected: {result.message}")
            raise CouponRejectedError(normalized, result.message)

        return self.checkout.set_coupon(session_key, result.coupon)

    def remove_coupon(self, session_key: str) -> CheckoutSession:
        return self.checkout.remove_coupon(session_key)
