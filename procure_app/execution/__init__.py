"""
Purchase execution: the shared rate-limit gate, retry policy and plan ledger.

The executor itself lives in ``procure_app.execution.executor``.
"""

from .accounting import PlanLedger
from .rate_limiter import RateLimiter
from .retry import RetryOutcome, RetryPolicy

__all__ = [
    "PlanLedger",
    "RateLimiter",
    "RetryOutcome",
    "RetryPolicy",
]
