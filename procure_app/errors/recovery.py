"""
Recovery strategy classifications for error handling.

These mixins tag errors by their recovery characteristics. The retry policy
retries errors whose ``recoverable`` flag is set.
"""


class RecoverableError(Exception):
    """Mixin for errors that can be recovered from by retrying with backoff."""

    recoverable = True


class UnrecoverableError(Exception):
    """Mixin for errors that retrying will not fix."""

    recoverable = False
