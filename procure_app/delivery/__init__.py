"""Contract delivery of purchased cargo."""

from .coordinator import (
    DeliveryCoordinator,
    DeliveryOutcome,
    DeliveryStatus,
    VehicleDelivery,
)

__all__ = [
    "DeliveryCoordinator",
    "DeliveryOutcome",
    "DeliveryStatus",
    "VehicleDelivery",
]
