"""
Error classification system for procurement planning and execution.

Errors are split by how the engine reacts to them: planning outcomes cause
replanning (next venue, smaller batch, different vehicle), execution failures
are retried locally when recoverable, and system failures stop the attempt.
"""

from .base import ProcurementError
from .execution import (
    ContractExpiredError,
    DeliveryFailedError,
    ExecutionError,
    NavigationFailedError,
    PurchaseRejectedError,
    RateLimitedError,
    SaleRejectedError,
    TransientTradeError,
    VenueDepletedError,
)
from .planning import (
    CargoInsufficientError,
    PlanningError,
    PriceOutOfBandError,
    ShortfallDetected,
    VenueUnavailableError,
)
from .recovery import (
    RecoverableError,
    UnrecoverableError,
)
from .system_failures import (
    ConfigurationError,
    PersistenceError,
    StateTransitionError,
    SystemFailureError,
)

__all__ = [
    "ProcurementError",
    # Planning outcomes
    "PlanningError",
    "VenueUnavailableError",
    "PriceOutOfBandError",
    "CargoInsufficientError",
    "ShortfallDetected",
    # Execution failures
    "ExecutionError",
    "RateLimitedError",
    "TransientTradeError",
    "PurchaseRejectedError",
    "VenueDepletedError",
    "SaleRejectedError",
    "NavigationFailedError",
    "DeliveryFailedError",
    "ContractExpiredError",
    # System failures
    "SystemFailureError",
    "StateTransitionError",
    "ConfigurationError",
    "PersistenceError",
    # Recovery categories
    "RecoverableError",
    "UnrecoverableError",
]
