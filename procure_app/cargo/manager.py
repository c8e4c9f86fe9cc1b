"""
Cargo space management.

Frees hold space on a vehicle ahead of a purchase by selling cargo that is not
reserved for the active contract, falling back to jettison when nobody buys.
Reserved goods are never touched.
"""

import math
import threading
from typing import Any, Iterable

import structlog

from ..data.models import Vehicle
from ..errors import CargoInsufficientError, ExecutionError
from ..execution.rate_limiter import RateLimiter
from ..gateways.base import TradeClient

logger = structlog.get_logger(__name__)


def categorize_cargo(
    vehicle: Vehicle,
    reserved_goods: Iterable[str]
) -> tuple[dict[str, int], dict[str, int]]:
    """
    Split a vehicle's cargo into (reserved, sellable) holdings.

    Args:
        vehicle: Vehicle to inspect
        reserved_goods: Goods earmarked for the active contract

    Returns:
        Two good -> units mappings
    """
    reserved_set = set(reserved_goods)
    reserved: dict[str, int] = {}
    sellable: dict[str, int] = {}

    for good, units in vehicle.cargo.items():
        if good in reserved_set:
            reserved[good] = units
        else:
            sellable[good] = units

    return reserved, sellable


class CargoManager:
    """Clears non-reserved cargo to reach a free-space target."""

    def __init__(self, trade: TradeClient, limiter: RateLimiter) -> None:
        self.trade = trade
        self.limiter = limiter
        self._stats_lock = threading.Lock()
        self._units_sold = 0
        self._units_jettisoned = 0
        self._revenue = 0

    def ensure_free_space(
        self,
        vehicle: Vehicle,
        required_space: int,
        reserved_goods: Iterable[str]
    ) -> int:
        """
        Free at least ``required_space`` on ``vehicle`` if possible.

        Sells the largest non-reserved holdings first, only as much as the
        deficit needs, and jettisons whatever could not be sold.

        Returns:
            Free space after clearing; callers re-check it against the target
        """
        free = vehicle.free_space
        if free >= required_space:
            return free

        reserved_set = set(reserved_goods)
        _, sellable = categorize_cargo(vehicle, reserved_set)
        deficit = required_space - free

        log = logger.bind(vehicle_id=vehicle.vehicle_id, waypoint=vehicle.waypoint)
        log.info(
            "Clearing cargo space",
            required_space=required_space,
            free_space=free,
            deficit=deficit,
            sellable=sellable,
            reserved=sorted(reserved_set)
        )

        ordered = sorted(
            sellable.items(),
            key=lambda item: (-item[1] * vehicle.unit_space.get(item[0], 1), item[0])
        )

        for good, units in ordered:
            if deficit <= 0:
                break

            space_per_unit = vehicle.unit_space.get(good, 1)
            to_clear = min(units, math.ceil(deficit / space_per_unit))

            cleared = self._sell(vehicle, good, to_clear)
            if cleared < to_clear:
                cleared += self._jettison(vehicle, good, to_clear - cleared)

            deficit -= cleared * space_per_unit

        result = vehicle.free_space
        log.info(
            "Cargo clearing finished",
            required_space=required_space,
            free_space=result,
            satisfied=result >= required_space
        )
        return result

    def require_free_space(
        self,
        vehicle: Vehicle,
        required_space: int,
        reserved_goods: Iterable[str]
    ) -> int:
        """Like ``ensure_free_space`` but raise if the target cannot be met."""
        free = self.ensure_free_space(vehicle, required_space, reserved_goods)
        if free < required_space:
            raise CargoInsufficientError(
                f"{vehicle.vehicle_id} has {free} free cargo space, needs {required_space}",
                vehicle_id=vehicle.vehicle_id,
                required=required_space,
                available=free,
            )
        return free

    def _sell(self, vehicle: Vehicle, good: str, units: int) -> int:
        try:
            receipt = self.limiter.call(self.trade.sell, vehicle.vehicle_id, good, units)
        except ExecutionError as e:
            logger.warning(
                "Sale failed, falling back to jettison",
                vehicle_id=vehicle.vehicle_id,
                good=good,
                units=units,
                error=str(e)
            )
            return 0

        removed = vehicle.remove_cargo(good, min(units, receipt.units_removed))
        with self._stats_lock:
            self._units_sold += removed
            self._revenue += receipt.revenue

        logger.info(
            "Sold cargo",
            vehicle_id=vehicle.vehicle_id,
            good=good,
            units=removed,
            revenue=receipt.revenue
        )
        return removed

    def _jettison(self, vehicle: Vehicle, good: str, units: int) -> int:
        try:
            receipt = self.limiter.call(self.trade.jettison, vehicle.vehicle_id, good, units)
        except ExecutionError as e:
            logger.error(
                "Jettison failed",
                vehicle_id=vehicle.vehicle_id,
                good=good,
                units=units,
                error=str(e)
            )
            return 0

        removed = vehicle.remove_cargo(good, min(units, receipt.units_removed))
        with self._stats_lock:
            self._units_jettisoned += removed

        logger.info("Jettisoned cargo", vehicle_id=vehicle.vehicle_id, good=good, units=removed)
        return removed

    def get_stats(self, reset: bool = False) -> dict[str, Any]:
        """Get clearing statistics."""
        with self._stats_lock:
            stats = {
                "units_sold": self._units_sold,
                "units_jettisoned": self._units_jettisoned,
                "revenue": self._revenue,
            }
            if reset:
                self._units_sold = 0
                self._units_jettisoned = 0
                self._revenue = 0
        return stats

