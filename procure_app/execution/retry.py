"""Bounded exponential backoff shared by purchases and deliveries."""

import time
from dataclasses import dataclass
from typing import Any, Callable, Optional, TypeVar

import structlog

from ..config.defaults import RetryParams
from ..errors import PurchaseRejectedError, RateLimitedError

logger = structlog.get_logger(__name__)

T = TypeVar("T")


@dataclass
class RetryOutcome:
    """Result of a retried call: either ``value`` or the last ``error``."""
    value: Any = None
    error: Optional[BaseException] = None
    attempts: int = 0

    @property
    def succeeded(self) -> bool:
        return self.error is None


class RetryPolicy:
    """Retries recoverable failures with a doubling, capped delay."""

    def __init__(
        self,
        params: Optional[RetryParams] = None,
        sleep: Callable[[float], None] = time.sleep
    ) -> None:
        self.params = params or RetryParams()
        self._sleep = sleep

    def delay_for(self, attempt: int) -> float:
        """Delay after failed attempt number ``attempt`` (1-based)."""
        delay = self.params.base_delay_seconds * (2 ** (attempt - 1))
        return min(delay, self.params.max_delay_seconds)

    def is_retryable(self, error: BaseException) -> bool:
        if isinstance(error, PurchaseRejectedError):
            return self.params.retry_rejections
        return bool(getattr(error, "recoverable", False))

    def run(
        self,
        fn: Callable[..., T],
        *args: Any,
        on_failure: Optional[Callable[[BaseException, int], None]] = None,
        should_stop: Optional[Callable[[], bool]] = None,
        **kwargs: Any
    ) -> RetryOutcome:
        """
        Call ``fn`` until it succeeds, fails permanently, or attempts run out.

        Args:
            fn: Callable to invoke
            on_failure: Called with (error, attempt) after every failed attempt
            should_stop: Checked before each retry; True abandons the call

        Returns:
            RetryOutcome with the value or the last error. Exceptions that are
            not ``ProcurementError`` instances propagate unchanged.
        """
        attempt = 0
        while True:
            attempt += 1
            try:
                return RetryOutcome(value=fn(*args, **kwargs), attempts=attempt)
            except Exception as e:
                if not hasattr(e, "recoverable"):
                    raise
                if on_failure is not None:
                    on_failure(e, attempt)

                if not self.is_retryable(e) or attempt >= self.params.max_attempts:
                    return RetryOutcome(error=e, attempts=attempt)
                if should_stop is not None and should_stop():
                    return RetryOutcome(error=e, attempts=attempt)

                delay = self.delay_for(attempt)
                if isinstance(e, RateLimitedError) and e.retry_after:
                    delay = min(max(delay, e.retry_after), self.params.max_delay_seconds)

                logger.info(
                    "Retrying after failure",
                    error=type(e).__name__,
                    attempt=attempt,
                    max_attempts=self.params.max_attempts,
                    delay_seconds=delay
                )
                self._sleep(delay)
