"""Shared test fixtures for the checkout test suite."""

from unittest.mock import Mock

import pytest

from core.collaborators import (
    AuthProvider,
    CouponValidator,
    RecipientDirectory,
    TransactionGateway,
)
from core.config import CheckoutConfig
from core.event_bus import EventBus
from core.machine import new_session
from core.models import Purchaser
from core.services.checkout_service import CheckoutService
from core.session_store import InMemoryCheckoutSessionStore
from factories import EVENT_ID, PURCHASER_PHONE, SESSION_KEY


# =============================================================================
# FIXTURES
# =============================================================================


@pytest.fixture
def config() -> CheckoutConfig:
    return CheckoutConfig()


@pytest.fixture
def purchaser() -> Purchaser:
    return Purchaser(id="user-1", phone=PURCHASER_PHONE, country="34", first_name="Ana")


@pytest.fixture
def session(config):
    """Fresh session bound to EVENT_ID."""
    return new_session(config, event_id=EVENT_ID, event_name="Closing Party")


@pytest.fixture
def store():
    return InMemoryCheckoutSessionStore()


@pytest.fixture
def event_bus():
    return EventBus()


@pytest.fixture
def published(event_bus):
    """Every event published on the bus, in order."""
    from core.events import CheckoutEvent

    received = []
    event_bus.subscribe(CheckoutEvent, received.append)
    return received


@pytest.fixture
def auth(purchaser):
    mock = Mock(spec=AuthProvider)
    mock.is_authenticated.return_value = True
    mock.current_user.return_value = purchaser
    return mock


@pytest.fixture
def gateway():
    return Mock(spec=TransactionGateway)


@pytest.fixture
def directory():
    return Mock(spec=RecipientDirectory)


@pytest.fixture
def validator():
    return Mock(spec=CouponValidator)


@pytest.fixture
def checkout_service(store, event_bus, auth, config, gateway):
    service = CheckoutService(store, event_bus, auth, config, gateway=gateway)
    service.reset_for_new_event(SESSION_KEY, EVENT_ID, event_name="Closing Party")
    return service
