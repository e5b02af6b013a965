"""API test fixtures: TestClient over the full service graph with mocked collaborators."""

import pytest
from starlette.testclient import TestClient

from api.app import create_app, create_services
from api.middleware import CHECKOUT_COOKIE

API_SESSION = "api-session"


@pytest.fixture
def services(config, auth, gateway, directory, validator, store, event_bus):
    return create_services(
        config,
        auth=auth,
        gateway=gateway,
        directory=directory,
        validator=validator,
        store=store,
        event_bus=event_bus,
    )


@pytest.fixture
def app(services):
    """FastAPI app with middleware, error handlers and checkout routes; no tick threads."""
    return create_app(services, run_tickers=False)


@pytest.fixture
def client(app):
    """Client bound to a known checkout session."""
    c = TestClient(app, raise_server_exceptions=False)
    c.cookies.set(CHECKOUT_COOKIE, API_SESSION)
    return c


@pytest.fixture
def anonymous_client(app):
    """Client without a checkout cookie."""
    return TestClient(app, raise_server_exceptions=False)


@pytest.fixture
def act(client):
    """POST one checkout action and return the response."""

    def _act(action: str, **data):
        return client.post("/api/checkout/actions", json={"action": action, "data": data})

    return _act
