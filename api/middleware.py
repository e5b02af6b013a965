"""Request-scoped middleware for checkout API requests."""

from uuid import uuid4

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

CHECKOUT_COOKIE = "checkout_session"


class CheckoutSessionMiddleware(BaseHTTPMiddleware):
    """
    Assigns a request ID and resolves the checkout session key.

    The key lives in a cookie; a client without one gets a new key, which
    is set on the response so the next request continues the same session.
    """

    def __init__(self, app, cookie_name: str = CHECKOUT_COOKIE, max_age_seconds: int = 86400):
        super().__init__(app)
        self.cookie_name = cookie_name
        self.max_age_seconds = max_age_seconds

    async def dispatch(self, request: Request, call_next):
        request_id = str(uuid4())
        request.state.request_id = request_id

        session_key = request.cookies.get(self.cookie_name)
        is_new = not session_key
        if is_new:
            session_key = uuid4().hex
        request.state.checkout_key = session_key

        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        if is_new:
            response.set_cookie(
                self.cookie_name,
                session_key,
                max_age=self.max_age_seconds,
                httponly=True,
                samesite="lax",
            )
        return response
