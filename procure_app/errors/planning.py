"""
Planning outcome classifications.

These are structural conditions found while choosing venues, sizing batches
and packing cargo. They are never retried blindly; they cause replanning and
are surfaced in the final report when unresolved.
"""

from typing import Optional

from .base import ProcurementError


class PlanningError(ProcurementError):
    """Base class for structural planning conditions."""


class VenueUnavailableError(PlanningError):
    """No reachable venue offers the good."""

    def __init__(self, message: str, good: Optional[str] = None,
                 systems: Optional[list] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.good = good
        self.systems = systems or []
        self.context.setdefault("good", good)
        self.context.setdefault("systems", self.systems)


class PriceOutOfBandError(PlanningError):
    """Venue price falls outside the good's reference band."""

    def __init__(self, message: str, good: Optional[str] = None,
                 venue_id: Optional[str] = None, price: Optional[int] = None,
                 accepted_range: Optional[tuple] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.good = good
        self.venue_id = venue_id
        self.price = price
        self.accepted_range = accepted_range
        self.context.setdefault("venue_id", venue_id)
        self.context.setdefault("price", price)


class CargoInsufficientError(PlanningError):
    """Vehicle cargo space cannot be freed up to the required amount."""

    def __init__(self, message: str, vehicle_id: Optional[str] = None,
                 required: Optional[int] = None, available: Optional[int] = None,
                 **kwargs):
        super().__init__(message, **kwargs)
        self.vehicle_id = vehicle_id
        self.required = required
        self.available = available
        self.context.setdefault("vehicle_id", vehicle_id)
        self.context.setdefault("required", required)
        self.context.setdefault("available", available)


class ShortfallDetected(PlanningError):
    """Part of the contract could not be sourced this cycle.

    Not an error in normal operation: the engine reports shortfalls in the
    ``ProcurementReport``. Raised only on request via
    ``ProcurementReport.raise_for_shortfall()``.
    """

    def __init__(self, message: str, good: Optional[str] = None,
                 required: int = 0, sourced: int = 0, **kwargs):
        super().__init__(message, **kwargs)
        self.good = good
        self.required = required
        self.sourced = sourced
        self.shortfall = max(0, required - sourced)
        self.context.setdefault("shortfall", self.shortfall)
