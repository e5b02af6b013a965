"""Tests for CheckoutSessionMiddleware."""

import pytest
from uuid import UUID
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.testclient import TestClient

from api.middleware import CHECKOUT_COOKIE, CheckoutSessionMiddleware


@pytest.fixture
def app():
    """Minimal FastAPI app echoing the request-scoped state."""
    app = FastAPI()
    app.add_middleware(CheckoutSessionMiddleware, max_age_seconds=120)

    @app.get("/test")
    async def test_endpoint(request: Request):
        return JSONResponse({
            "request_id": request.state.request_id,
            "checkout_key": request.state.checkout_key,
        })

    return app


@pytest.fixture
def client(app):
    return TestClient(app)


class TestRequestID:

    def test_response_has_request_id_header(self, client):
        response = client.get("/test")
        UUID(response.headers["X-Request-ID"])

    def test_request_state_matches_header(self, client):
        response = client.get("/test")
        assert response.headers["X-Request-ID"] == response.json()["request_id"]

    def test_each_request_gets_unique_id(self, client):
        r1 = client.get("/test")
        r2 = client.get("/test")
        assert r1.headers["X-Request-ID"] != r2.headers["X-Request-ID"]


class TestCheckoutKey:

    def test_new_client_gets_key_cookie(self, client):
        response = client.get("/test")

        key = response.json()["checkout_key"]
        assert response.cookies[CHECKOUT_COOKIE] == key
        set_cookie = response.headers["set-cookie"].lower()
        assert "httponly" in set_cookie
        assert "max-age=120" in set_cookie

    def test_key_reused_on_following_requests(self, client):
        first = client.get("/test").json()["checkout_key"]
        second = client.get("/test").json()["checkout_key"]
        assert first == second

    def test_existing_cookie_not_reissued(self, client):
        client.cookies.set(CHECKOUT_COOKIE, "known-key")

        response = client.get("/test")

        assert response.json()["checkout_key"] == "known-key"
        assert "set-cookie" not in response.headers
