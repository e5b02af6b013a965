"""HTTP interface for the checkout engine."""

from api.base import (
    APIError,
    APIMeta,
    APIResponse,
    ErrorCodes,
    error_response,
    success_response,
)
