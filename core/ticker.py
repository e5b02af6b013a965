"""
Periodic countdown driver.

One background thread per session calls CheckoutService.tick once per
interval. Starting an already running ticker is a no-op, so remounting a
checkout screen never stacks duplicate timers. The thread exits on its
own once the session disappears or its timer stops running (expiry,
completion, a cleared cart).
"""

import logging
import threading

logger = logging.getLogger(__name__)


class CheckoutTicker:
    """Ticks one checkout session until stopped or its timer stops."""

    def __init__(self, checkout_service, session_key: str, interval_seconds: float = 1.0):
        self._service = checkout_service
        self._session_key = session_key
        self._interval = interval_seconds
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None
        self._lock = threading.Lock()

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> bool:
        """Start ticking. Returns False if a tick thread is already running."""
        with self._lock:
            if self.is_running:
                return False
            self._stop.clear()
            self._thread = threading.Thread(
                target=self._run,
                name=f"checkout-ticker-{self._session_key}",
                daemon=True,
            )
            self._thread.start()
            return True

    def stop(self, timeout: float | None = None) -> None:
        """Cancel ticking and wait for the thread to exit."""
        self._stop.set()
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout if timeout is not None else self._interval * 2)

    def _run(self) -> None:
        while not self._stop.wait(self._interval):
            try:
                session = self._service.tick(self._session_key)
            except Exception:
                logger.exception(f"Tick failed for checkout {self._session_key}")
                return
            if session is None or not session.timer.is_running:
                logger.info(f"Ticker for checkout {self._session_key} finished")
                return


class TickerRegistry:
    """
    Keeps at most one ticker per session key.

    Wire it to the event bus: start on CheckoutStarted, stop on
    CheckoutExpired, CheckoutCompleted and EventSwitched.
    """

    def __init__(self, checkout_service, interval_seconds: float = 1.0):
        self._service = checkout_service
        self._interval = interval_seconds
        self._tickers: dict[str, CheckoutTicker] = {}
        self._lock = threading.RLock()

    def start(self, session_key: str) -> CheckoutTicker:
        with self._lock:
            self._prune()
            ticker = self._tickers.get(session_key)
            if ticker is None:
                ticker = CheckoutTicker(self._service, session_key, self._interval)
                self._tickers[session_key] = ticker
            ticker.start()
            return ticker

    def stop(self, session_key: str) -> None:
        with self._lock:
            ticker = self._tickers.pop(session_key, None)
        if ticker is not None:
            ticker.stop()

    def stop_all(self) -> None:
        with self._lock:
            keys = list(self._tickers)
        for key in keys:
            self.stop(key)

    def _prune(self) -> None:
        """Forget tickers whose threads exited on their own."""
        finished = [key for key, ticker in self._tickers.items() if not ticker.is_running]
        for key in finished:
            del self._tickers[key]

    def is_running(self, session_key: str) -> bool:
        with self._lock:
            ticker = self._tickers.get(session_key)
            return ticker is not None and ticker.is_running

    # Event bus handlers

    def on_started(self, event) -> None:
        self.start(event.session_key)

    def on_finished(self, event) -> None:
        self.stop(event.session_key)
