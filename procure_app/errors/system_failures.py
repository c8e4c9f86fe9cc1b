"""
System failure error classifications for unrecoverable errors.

These exceptions represent programming or environment failures that stop the
current procurement attempt.
"""

from typing import Optional

from .base import ProcurementError


class SystemFailureError(ProcurementError):
    """Base class for unrecoverable system failures."""


class StateTransitionError(SystemFailureError):
    """Invalid state transition for a plan or allocation."""

    def __init__(self, message: str, current_state: Optional[str] = None,
                 attempted_transition: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.current_state = current_state
        self.attempted_transition = attempted_transition


class ConfigurationError(SystemFailureError):
    """Configuration values failed validation."""

    def __init__(self, message: str, errors: Optional[list] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.errors = errors or []


class PersistenceError(SystemFailureError):
    """Plan archive read or write failure."""

    def __init__(self, message: str, operation: Optional[str] = None,
                 target: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.operation = operation
        self.target = target
