"""Global exception handlers for FastAPI."""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from starlette.responses import JSONResponse

from api.base import error_response, ErrorCodes
from core.exceptions import (
    CheckoutError,
    ConnectivityError,
    CouponRejectedError,
    EmptyCartError,
    HandshakeRejectedError,
    InvalidAssignmentError,
    InvalidCartError,
    InvalidPhoneError,
    InvalidStepError,
    NominativeIncompleteError,
    NotAuthenticatedError,
    SelfSendError,
    SessionCompletedError,
    SessionExpiredError,
    SubmissionInProgressError,
)

logger = logging.getLogger(__name__)

# Most specific first; the first isinstance match wins
_CHECKOUT_ERRORS: list[tuple[type[CheckoutError], int, str]] = [
    (EmptyCartError, 400, ErrorCodes.EMPTY_CART),
    (NotAuthenticatedError, 401, ErrorCodes.NOT_AUTHENTICATED),
    (NominativeIncompleteError, 400, ErrorCodes.NOMINATIVE_INCOMPLETE),
    (InvalidPhoneError, 400, ErrorCodes.INVALID_PHONE),
    (SelfSendError, 400, ErrorCodes.SELF_SEND),
    (InvalidAssignmentError, 400, ErrorCodes.INVALID_ASSIGNMENT),
    (InvalidStepError, 409, ErrorCodes.INVALID_STEP),
    (InvalidCartError, 400, ErrorCodes.INVALID_CART),
    (SessionExpiredError, 409, ErrorCodes.SESSION_EXPIRED),
    (SessionCompletedError, 409, ErrorCodes.SESSION_COMPLETED),
    (SubmissionInProgressError, 409, ErrorCodes.SUBMISSION_IN_PROGRESS),
    (CouponRejectedError, 400, ErrorCodes.COUPON_REJECTED),
    (HandshakeRejectedError, 400, ErrorCodes.TRANSACTION_REJECTED),
    (ConnectivityError, 503, ErrorCodes.SERVICE_UNAVAILABLE),
]


def _details(exc: CheckoutError) -> dict | None:
    if isinstance(exc, NominativeIncompleteError):
        return {"pending_slots": exc.pending_slots}
    if isinstance(exc, InvalidPhoneError):
        return {"phone_country": exc.phone_country, "expected_length": exc.expected_length}
    if isinstance(exc, CouponRejectedError):
        return {"code": exc.code}
    return None


def checkout_error_status(exc: CheckoutError) -> tuple[int, str]:
    """HTTP status and error code for a checkout exception."""
    for exc_type, status_code, code in _CHECKOUT_ERRORS:
        if isinstance(exc, exc_type):
            return status_code, code
    return 400, ErrorCodes.INVALID_REQUEST


def _request_id(request: Request) -> str | None:
    return getattr(request.state, "request_id", None)


def register_error_handlers(app: FastAPI) -> None:
    """Register global exception handlers on the app."""

    @app.exception_handler(CheckoutError)
    async def checkout_error_handler(request: Request, exc: CheckoutError):
        status_code, code = checkout_error_status(exc)
        if status_code >= 500:
            logger.error(f"{code}: {exc}")
        return JSONResponse(
            status_code=status_code,
            content=error_response(
                code, str(exc), _details(exc), _request_id(request)
            ).model_dump(mode="json"),
        )

    @app.exception_handler(ValueError)
    async def value_error_handler(request: Request, exc: ValueError):
        message = str(exc)
        if "not found" in message.lower():
            return JSONResponse(
                status_code=404,
                content=error_response(
                    ErrorCodes.NOT_FOUND, message, request_id=_request_id(request)
                ).model_dump(mode="json"),
            )
        return JSONResponse(
            status_code=400,
            content=error_response(
                ErrorCodes.INVALID_REQUEST, message, request_id=_request_id(request)
            ).model_dump(mode="json"),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=422,
            content=error_response(
                ErrorCodes.VALIDATION_ERROR,
                str(exc.errors()),
                request_id=_request_id(request),
            ).model_dump(mode="json"),
        )

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception("Unhandled exception")
        return JSONResponse(
            status_code=500,
            content=error_response(
                ErrorCodes.INTERNAL_ERROR,
                "An internal error occurred",
                request_id=_request_id(request),
            ).model_dump(mode="json"),
        )
