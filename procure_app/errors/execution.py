"""
Execution failure classifications.

Raised by collaborator clients (trade, navigation, delivery) and classified
so the executor knows whether to retry a batch, fail it, or abort the plan.
"""

from typing import Optional

from .base import ProcurementError
from .recovery import RecoverableError, UnrecoverableError


class ExecutionError(ProcurementError):
    """Base class for failures of outbound calls."""


class RateLimitedError(RecoverableError, ExecutionError):
    """The venue's global rate limit rejected the call."""

    def __init__(self, message: str = "rate limited",
                 retry_after: Optional[float] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.retry_after = retry_after


class TransientTradeError(RecoverableError, ExecutionError):
    """Timeout or server-side hiccup; the same call may succeed later."""


class PurchaseRejectedError(ExecutionError):
    """Venue refused the purchase (e.g. insufficient credits, market closed)."""

    def __init__(self, message: str, venue_id: Optional[str] = None,
                 good: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.venue_id = venue_id
        self.good = good


class VenueDepletedError(UnrecoverableError, ExecutionError):
    """The offer disappeared or its volume dropped to zero since planning."""

    def __init__(self, message: str, venue_id: Optional[str] = None,
                 good: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.venue_id = venue_id
        self.good = good


class SaleRejectedError(ExecutionError):
    """Nobody at the vehicle's location buys this cargo."""

    def __init__(self, message: str, vehicle_id: Optional[str] = None,
                 good: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.vehicle_id = vehicle_id
        self.good = good


class NavigationFailedError(ExecutionError):
    """Navigation collaborator exhausted its own retries."""

    def __init__(self, message: str, vehicle_id: Optional[str] = None,
                 destination: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.vehicle_id = vehicle_id
        self.destination = destination


class DeliveryFailedError(ExecutionError):
    """Contract delivery call failed."""

    def __init__(self, message: str, contract_id: Optional[str] = None,
                 vehicle_id: Optional[str] = None, transient: bool = False,
                 **kwargs):
        super().__init__(message, **kwargs)
        self.contract_id = contract_id
        self.vehicle_id = vehicle_id
        self.recoverable = transient


class ContractExpiredError(UnrecoverableError, ExecutionError):
    """Contract deadline passed; pending work is dropped."""

    def __init__(self, message: str, contract_id: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.contract_id = contract_id
