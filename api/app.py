"""Application wiring for the checkout API."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from api.checkout import create_checkout_router
from api.errors import register_error_handlers
from api.middleware import CheckoutSessionMiddleware
from clients.valkey_client import ValkeyClient
from core.collaborators import (
    AuthProvider,
    CouponValidator,
    RecipientDirectory,
    TransactionGateway,
)
from core.config import CheckoutConfig
from core.event_bus import EventBus
from core.events import CheckoutCompleted, CheckoutExpired, CheckoutStarted, EventSwitched
from core.services.checkout_service import CheckoutService
from core.services.coupon_service import CouponService
from core.services.handshake_service import HandshakeService
from core.services.nominative_service import NominativeService
from core.session_store import (
    CheckoutSessionStore,
    InMemoryCheckoutSessionStore,
    ValkeyCheckoutSessionStore,
)
from core.ticker import TickerRegistry

logger = logging.getLogger(__name__)


def create_store(config: CheckoutConfig) -> CheckoutSessionStore:
    """Valkey store when a URL is configured, otherwise process-local."""
    if config.valkey_url:
        return ValkeyCheckoutSessionStore(ValkeyClient(config.valkey_url), config)
    logger.info("No Valkey URL configured; checkout sessions are kept in memory")
    return InMemoryCheckoutSessionStore()


def create_services(
    config: CheckoutConfig,
    auth: AuthProvider,
    gateway: TransactionGateway,
    directory: RecipientDirectory,
    validator: CouponValidator,
    store: CheckoutSessionStore | None = None,
    event_bus: EventBus | None = None,
) -> dict:
    """Build the service graph shared by the router and the tickers."""
    event_bus = event_bus or EventBus()
    checkout = CheckoutService(
        store or create_store(config), event_bus, auth, config, gateway=gateway
    )
    return {
        "config": config,
        "event_bus": event_bus,
        "checkout": checkout,
        "handshake": HandshakeService(checkout, gateway, config),
        "nominative": NominativeService(checkout, directory, auth),
        "coupon": CouponService(checkout, validator),
    }


def wire_tickers(services: dict) -> TickerRegistry:
    """One countdown thread per started session, stopped when it finishes."""
    tickers = TickerRegistry(
        services["checkout"], services["config"].tick_interval_seconds
    )
    bus: EventBus = services["event_bus"]
    bus.subscribe(CheckoutStarted, tickers.on_started)
    for event_type in (CheckoutExpired, CheckoutCompleted, EventSwitched):
        bus.subscribe(event_type, tickers.on_finished)
    return tickers


def create_app(services: dict, run_tickers: bool = True) -> FastAPI:
    """FastAPI app with session middleware, error handlers and checkout routes."""
    config: CheckoutConfig = services["config"]

    tickers = wire_tickers(services) if run_tickers else None

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        if tickers is not None:
            tickers.stop_all()

    app = FastAPI(title="Checkout", lifespan=lifespan)
    app.state.tickers = tickers
    app.add_middleware(CheckoutSessionMiddleware, max_age_seconds=config.session_ttl_seconds)
    register_error_handlers(app)
    app.include_router(create_checkout_router(services), prefix="/api")

    return app
