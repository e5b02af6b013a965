"""
Checkout countdown.

Bounds how long a session may hold its selection unpaid. The countdown
starts when the session first reaches the summary step, keeps running
across summary and payment (it measures total time held), stops without
resetting on terminal success, and latches `is_expired` when it reaches
zero. Only an explicit reset re-arms it.

The timer is an immutable value; CheckoutTicker drives the ticks.
"""

from datetime import datetime

from pydantic import BaseModel, Field

from utils.timezone import deadline_after, seconds_until


class CheckoutTimer(BaseModel):
    """Seconds countdown attached to a checkout session."""

    duration_seconds: int = Field(600, ge=1)
    remaining_seconds: int = Field(600, ge=0)
    has_started: bool = False
    is_running: bool = False
    is_expired: bool = False

    model_config = {"frozen": True}

    @classmethod
    def armed(cls, duration_seconds: int) -> "CheckoutTimer":
        """Fresh, not yet started timer."""
        return cls(duration_seconds=duration_seconds, remaining_seconds=duration_seconds)

    def start(self) -> "CheckoutTimer":
        """Begin counting. No-op if already started or expired."""
        if self.has_started or self.is_expired:
            return self
        return self.model_copy(update={"has_started": True, "is_running": True})

    def tick(self, seconds: int = 1) -> "CheckoutTimer":
        """Count down. Reaching zero latches expiry and stops the timer."""
        if not self.is_running or self.is_expired:
            return self
        remaining = max(0, self.remaining_seconds - seconds)
        if remaining == 0:
            return self.expire()
        return self.model_copy(update={"remaining_seconds": remaining})

    def stop(self) -> "CheckoutTimer":
        """Stop counting, keeping the remaining time."""
        return self.model_copy(update={"is_running": False})

    def expire(self) -> "CheckoutTimer":
        return self.model_copy(update={
            "remaining_seconds": 0,
            "is_running": False,
            "is_expired": True,
            "has_started": True,
        })

    def reset(self) -> "CheckoutTimer":
        """Re-arm from the configured duration and keep counting."""
        return self.model_copy(update={
            "remaining_seconds": self.duration_seconds,
            "has_started": True,
            "is_running": True,
            "is_expired": False,
        })

    # -------------------------------------------------------------------------
    # Persistence helpers
    # -------------------------------------------------------------------------

    def deadline(self, now: datetime | None = None) -> datetime | None:
        """Wall-clock instant a running timer will hit zero."""
        if not self.is_running:
            return None
        return deadline_after(self.remaining_seconds, now)

    def resume(self, deadline: datetime, now: datetime | None = None) -> "CheckoutTimer":
        """Recompute remaining time of a running timer from its persisted deadline."""
        if not self.is_running:
            return self
        remaining = seconds_until(deadline, now)
        if remaining == 0:
            return self.expire()
        return self.model_copy(update={"remaining_seconds": remaining})

    def format_remaining(self) -> str:
        """MM:SS for display."""
        minutes, seconds = divmod(self.remaining_seconds, 60)
        return f"{minutes:02d}:{seconds:02d}"
