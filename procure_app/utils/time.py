"""
Time helpers for deadlines, arrival waits and report timing.
"""

from datetime import datetime, timezone
from typing import Optional


def utc_now() -> datetime:
    """Current wall-clock time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def format_timestamp(ts: datetime) -> str:
    """Format a timestamp for logs, reports and the plan archive."""
    return ts.isoformat()


def seconds_until(target: datetime, now: Optional[datetime] = None) -> float:
    """
    Seconds from ``now`` until ``target``; zero if ``target`` has passed.

    Args:
        target: Future instant, e.g. a vehicle arrival time
        now: Reference instant, defaults to the current time

    Returns:
        Non-negative number of seconds
    """
    if now is None:
        now = utc_now()
    return max(0.0, (target - now).total_seconds())


def is_expired(deadline: Optional[datetime], now: Optional[datetime] = None) -> bool:
    """True if a deadline exists and has passed."""
    if deadline is None:
        return False
    if now is None:
        now = utc_now()
    return now >= deadline
