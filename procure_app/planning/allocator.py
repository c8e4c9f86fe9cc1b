"""
Fleet capacity allocation.

Greedy bin-packing of purchase batches onto vehicles by free cargo space.
Works on a free-space snapshot, so re-running it on an unchanged fleet and
batch list yields the same allocations.
"""

from dataclasses import dataclass, field
from typing import Iterable, Optional

from ..cargo.manager import CargoManager
from ..data.models import PurchaseBatch, ShipAllocation, Vehicle
from ..knowledge.products import ProductKnowledgeBase
from ..logging.config import get_planning_logger

logger = get_planning_logger(__name__)


@dataclass
class AllocationResult:
    """Allocations plus whatever could not be placed."""
    allocations: list[ShipAllocation] = field(default_factory=list)
    unallocated: list[PurchaseBatch] = field(default_factory=list)
    free_space: dict[str, int] = field(default_factory=dict)   # snapshot used for packing
    cleared_cargo: bool = False

    @property
    def units_allocated(self) -> int:
        return sum(a.planned_units for a in self.allocations)

    @property
    def units_unallocated(self) -> int:
        return sum(b.units for b in self.unallocated)


class FleetAllocator:
    """Assigns batches to vehicles without exceeding their free space."""

    def __init__(
        self,
        knowledge: ProductKnowledgeBase,
        cargo_manager: Optional[CargoManager] = None
    ) -> None:
        self.knowledge = knowledge
        self.cargo_manager = cargo_manager

    def _space_for(self, batch: PurchaseBatch, units: Optional[int] = None) -> int:
        info = self.knowledge.get(batch.good)
        return info.cargo_space(batch.units if units is None else units)

    def _clear_fleet(
        self,
        vehicles: list[Vehicle],
        deficit: int,
        reserved_goods: set
    ) -> bool:
        """Ask the cargo manager to free ``deficit`` space across the fleet."""
        cleared = False
        for vehicle in sorted(vehicles, key=lambda v: (-v.capacity, v.vehicle_id)):
            if deficit <= 0:
                break
            before = vehicle.free_space
            after = self.cargo_manager.ensure_free_space(
                vehicle, before + deficit, reserved_goods
            )
            gained = after - before
            if gained > 0:
                cleared = True
                deficit -= gained
        return cleared

    def allocate(
        self,
        batches: Iterable[PurchaseBatch],
        vehicles: Iterable[Vehicle],
        reserved_goods: Iterable[str] = (),
        id_prefix: str = ""
    ) -> AllocationResult:
        """
        Map batches onto vehicles.

        Args:
            batches: Batches in planner order
            vehicles: Candidate fleet
            reserved_goods: Goods the cargo manager must never clear
            id_prefix: Prefix making allocation ids unique across passes

        Returns:
            AllocationResult; ``unallocated`` holds units no vehicle can carry
        """
        batches = list(batches)
        vehicles = list(vehicles)
        reserved = set(reserved_goods)
        result = AllocationResult()

        if not batches or not vehicles:
            result.unallocated = batches
            return result

        required_space = sum(self._space_for(b) for b in batches)
        total_free = sum(v.free_space for v in vehicles)

        if total_free < required_space and self.cargo_manager is not None:
            logger.info(
                "Fleet free space short, clearing cargo",
                required_space=required_space,
                total_free=total_free
            )
            result.cleared_cargo = self._clear_fleet(
                vehicles, required_space - total_free, reserved
            )

        free = {v.vehicle_id: v.free_space for v in vehicles}
        result.free_space = dict(free)
        order = sorted(vehicles, key=lambda v: (-free[v.vehicle_id], v.vehicle_id))
        by_vehicle: dict[str, ShipAllocation] = {}

        def assign(vehicle: Vehicle, batch: PurchaseBatch) -> None:
            allocation = by_vehicle.get(vehicle.vehicle_id)
            if allocation is None:
                allocation = ShipAllocation(
                    allocation_id=f"{id_prefix}alloc-{vehicle.vehicle_id}",
                    vehicle_id=vehicle.vehicle_id,
                )
                by_vehicle[vehicle.vehicle_id] = allocation
            space = self._space_for(batch)
            allocation.add_batch(batch, space)
            free[vehicle.vehicle_id] -= space

        for batch in batches:
            space = self._space_for(batch)
            target = next((v for v in order if free[v.vehicle_id] >= space), None)
            if target is not None:
                assign(target, batch)
                continue

            # No single vehicle holds the batch: split it across the fleet
            info = self.knowledge.get(batch.good)
            remaining = batch.units
            part = 0
            for vehicle in order:
                fit = info.units_fitting(free[vehicle.vehicle_id])
                while fit > 0 and remaining > 0:
                    size = min(info.transaction_limit, fit, remaining)
                    part += 1
                    assign(vehicle, batch.with_units(size, f"{batch.batch_id}.{part}"))
                    fit -= size
                    remaining -= size
                if remaining <= 0:
                    break

            if remaining > 0:
                leftover = batch if part == 0 else batch.with_units(
                    remaining, f"{batch.batch_id}.{part + 1}"
                )
                result.unallocated.append(leftover)

        result.allocations = [
            by_vehicle[v.vehicle_id] for v in order if v.vehicle_id in by_vehicle
        ]

        logger.info(
            "Fleet allocation complete",
            vehicle_count=len(vehicles),
            allocation_count=len(result.allocations),
            units_allocated=result.units_allocated,
            units_unallocated=result.units_unallocated,
            cleared_cargo=result.cleared_cargo
        )
        return result
