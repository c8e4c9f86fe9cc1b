"""
Shared outbound call gate.

Every call the engine makes (market queries, purchases, sales, navigation,
deliveries) passes through one ``RateLimiter``. Dispatch is serialized: one
call in flight at a time, a minimum spacing between calls, and a global pause
that doubles on every rate-limited response and resets on the next success.
"""

import threading
import time
from contextlib import contextmanager
from typing import Any, Callable, Iterator, Optional, TypeVar

import structlog

from ..config.defaults import RateLimitParams
from ..errors import RateLimitedError

logger = structlog.get_logger(__name__)

T = TypeVar("T")


class RateLimiter:
    """Single gate shared by every vehicle executor."""

    def __init__(
        self,
        params: Optional[RateLimitParams] = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep
    ) -> None:
        self.params = params or RateLimitParams()
        self._clock = clock
        self._sleep = sleep
        self._lock = threading.Lock()
        self._last_call: Optional[float] = None
        self._backoff_until: Optional[float] = None
        self._current_backoff = self.params.backoff_initial_seconds
        self._call_count = 0
        self._rate_limited_count = 0
        self._waited_seconds = 0.0

    def _wait_turn(self) -> None:
        """Sleep until both the global backoff and the minimum spacing allow a call."""
        now = self._clock()
        wait = 0.0

        if self._backoff_until is not None and now < self._backoff_until:
            wait = self._backoff_until - now

        if self._last_call is not None:
            spacing = self.params.min_interval_seconds - (now - self._last_call)
            wait = max(wait, spacing)

        if wait > 0:
            self._waited_seconds += wait
            self._sleep(wait)

    @contextmanager
    def slot(self) -> Iterator[None]:
        """Hold the gate for the duration of one outbound call."""
        with self._lock:
            self._wait_turn()
            try:
                yield
            finally:
                self._last_call = self._clock()
                self._call_count += 1

    def call(self, fn: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        """
        Dispatch ``fn`` through the gate.

        A ``RateLimitedError`` extends the global pause before being re-raised
        to the caller, whose retry policy decides whether to try again.
        """
        with self.slot():
            try:
                result = fn(*args, **kwargs)
            except RateLimitedError as e:
                self._register_rate_limit(e.retry_after)
                raise
            self._current_backoff = self.params.backoff_initial_seconds
            return result

    def _register_rate_limit(self, retry_after: Optional[float]) -> None:
        pause = self._current_backoff
        if retry_after is not None:
            pause = max(pause, retry_after)
        pause = min(pause, self.params.backoff_max_seconds)

        self._backoff_until = self._clock() + pause
        self._current_backoff = min(
            self._current_backoff * 2, self.params.backoff_max_seconds
        )
        self._rate_limited_count += 1

        logger.warning(
            "Rate limited, pausing all outbound calls",
            pause_seconds=pause,
            next_backoff_seconds=self._current_backoff,
            rate_limited_count=self._rate_limited_count
        )

    def get_stats(self) -> dict[str, Any]:
        """Get gate statistics."""
        return {
            "call_count": self._call_count,
            "rate_limited_count": self._rate_limited_count,
            "waited_seconds": round(self._waited_seconds, 3),
            "current_backoff_seconds": self._current_backoff,
        }
