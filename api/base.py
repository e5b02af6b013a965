"""Unified API response format and error codes."""

from typing import Any
from datetime import datetime
from uuid import uuid4

from pydantic import BaseModel, Field

from utils.timezone import now_utc


class APIError(BaseModel):
    """Error details in API response."""

    code: str = Field(..., description="Machine-readable error code")
    message: str = Field(..., description="Human-readable error message")
    details: dict | None = Field(None, description="Structured context, e.g. pending slots")


class APIMeta(BaseModel):
    """Metadata included in every API response."""

    timestamp: datetime = Field(..., description="Response timestamp (UTC)")
    request_id: str = Field(..., description="Unique request identifier for tracing")


class APIResponse(BaseModel):
    """
    Unified response format for all checkout endpoints.

    Every endpoint returns this structure, making client parsing predictable.
    """

    success: bool
    data: Any | None = None
    error: APIError | None = None
    meta: APIMeta


def _meta(request_id: str | None) -> APIMeta:
    return APIMeta(timestamp=now_utc(), request_id=request_id or str(uuid4()))


def success_response(data: Any, request_id: str | None = None) -> APIResponse:
    """Create a success response."""
    return APIResponse(success=True, data=data, error=None, meta=_meta(request_id))


def error_response(
    code: str,
    message: str,
    details: dict | None = None,
    request_id: str | None = None,
) -> APIResponse:
    """Create an error response."""
    return APIResponse(
        success=False,
        data=None,
        error=APIError(code=code, message=message, details=details),
        meta=_meta(request_id),
    )


class ErrorCodes:
    """Machine-readable error codes returned by the checkout API."""

    # Request
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INVALID_REQUEST = "INVALID_REQUEST"
    NOT_FOUND = "NOT_FOUND"

    # Checkout preconditions
    EMPTY_CART = "EMPTY_CART"
    NOT_AUTHENTICATED = "NOT_AUTHENTICATED"
    NOMINATIVE_INCOMPLETE = "NOMINATIVE_INCOMPLETE"
    INVALID_PHONE = "INVALID_PHONE"
    SELF_SEND = "SELF_SEND"
    INVALID_ASSIGNMENT = "INVALID_ASSIGNMENT"
    INVALID_STEP = "INVALID_STEP"
    INVALID_CART = "INVALID_CART"

    # Session lifecycle
    SESSION_EXPIRED = "SESSION_EXPIRED"
    SESSION_COMPLETED = "SESSION_COMPLETED"
    SUBMISSION_IN_PROGRESS = "SUBMISSION_IN_PROGRESS"

    # Collaborators
    COUPON_REJECTED = "COUPON_REJECTED"
    TRANSACTION_REJECTED = "TRANSACTION_REJECTED"
    SERVICE_UNAVAILABLE = "SERVICE_UNAVAILABLE"

    # Infrastructure
    INTERNAL_ERROR = "INTERNAL_ERROR"
