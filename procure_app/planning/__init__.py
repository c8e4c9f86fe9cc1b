"""
Procurement planning: venue discovery, price sanity, batch splitting and
fleet allocation.
"""

from .allocator import AllocationResult, FleetAllocator
from .batches import BatchPlan, BatchPlanner, VenueSourcing, split_into_batches
from .locator import VenueLocator, trait_score
from .pricing import PriceValidator

__all__ = [
    "AllocationResult",
    "BatchPlan",
    "BatchPlanner",
    "FleetAllocator",
    "PriceValidator",
    "VenueLocator",
    "VenueSourcing",
    "split_into_batches",
    "trait_score",
]
