"""Checkout configuration."""

import os

from dotenv import find_dotenv, load_dotenv
from pydantic import BaseModel, Field

ENV_PREFIX = "CHECKOUT_"


class CheckoutConfig(BaseModel):
    """
    Checkout configuration.

    Durations are in seconds, amounts in cents.
    """

    # Timer
    timer_duration_seconds: int = Field(
        default=600,  # 10 minutes
        description="How long a session may hold its selection unpaid",
        ge=30,
        le=3600,
    )
    tick_interval_seconds: float = Field(
        default=1.0,
        description="Period of the countdown ticker",
        gt=0,
        le=1.0,
    )

    # Pricing
    service_fee_cents: int = Field(
        default=200,
        description="Flat service fee added to every checkout",
        ge=0,
    )
    currency: str = Field(
        default="EUR",
        description="Currency requested when creating transactions",
        min_length=3,
        max_length=3,
    )

    # Nominative tickets
    default_phone_country: str = Field(
        default="34",
        description="Calling code preselected for ticket recipients",
        pattern=r"^\d{1,4}$",
    )

    # Session storage
    valkey_url: str | None = Field(
        default=None,
        description="Valkey/Redis URL for session storage; in-memory when unset",
    )
    session_ttl_seconds: int = Field(
        default=86400,
        description="How long an idle checkout session is kept in the store",
        ge=60,
    )


def load_config() -> CheckoutConfig:
    """
    Build config from CHECKOUT_* environment variables.

    A .env file in the working directory is loaded first; real
    environment variables take precedence. Unset values use defaults.
    """
    load_dotenv(find_dotenv(usecwd=True))

    overrides = {}
    for field_name in CheckoutConfig.model_fields:
        value = os.getenv(f"{ENV_PREFIX}{field_name.upper()}")
        if value is not None:
            overrides[field_name] = value

    return CheckoutConfig.model_validate(overrides)
