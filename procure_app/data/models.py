"""
Canonical data models for contracts, venues, fleet and procurement plans.

Venue snapshots and receipts are immutable. Contracts, vehicles, allocations
and plans are mutated in place during an attempt: a vehicle only by its own
executor thread, a plan only through its ``PlanLedger``.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional


class ContractStatus(str, Enum):
    """Contract fulfillment status."""
    OPEN = "open"
    PARTIALLY_FULFILLED = "partially_fulfilled"
    FULFILLED = "fulfilled"
    EXPIRED = "expired"


class PlanStatus(str, Enum):
    """Procurement plan lifecycle status."""
    PLANNING = "planning"
    EXECUTING = "executing"
    COMPLETED = "completed"
    PARTIAL = "partial"
    FAILED = "failed"


class AllocationState(str, Enum):
    """Per-vehicle executor state."""
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    PARTIAL = "partial"
    FAILED = "failed"


class BatchStatus(str, Enum):
    """Outcome of a single purchase batch."""
    PENDING = "pending"
    SUCCEEDED = "succeeded"
    PARTIAL = "partial"
    FAILED = "failed"
    DROPPED = "dropped"       # never issued: plan aborted first


class TransactionOutcome(str, Enum):
    """Outcome of one purchase call."""
    SUCCEEDED = "succeeded"
    RATE_LIMITED = "rate_limited"
    REJECTED = "rejected"
    PARTIAL = "partial"


TERMINAL_PLAN_STATES = (PlanStatus.COMPLETED, PlanStatus.PARTIAL, PlanStatus.FAILED)
TERMINAL_ALLOCATION_STATES = (
    AllocationState.COMPLETED, AllocationState.PARTIAL, AllocationState.FAILED
)


@dataclass
class Contract:
    """Delivery contract for a single good."""
    contract_id: str
    good: str
    units_required: int
    destination: str                            # Delivery waypoint
    deadline: Optional[datetime] = None         # Aware UTC; None = no deadline
    units_fulfilled: int = 0                    # Delivered before or during this attempt
    per_delivery_limit: Optional[int] = None    # Max units per delivery call
    status: ContractStatus = ContractStatus.OPEN

    @property
    def units_outstanding(self) -> int:
        return max(0, self.units_required - self.units_fulfilled)


@dataclass(frozen=True)
class TradeOffer:
    """A venue's posted price and volume for one good."""
    good: str
    purchase_price: int         # Credits per unit when buying from the venue
    trade_volume: int           # Units available at the posted price
    sell_price: int = 0         # Credits per unit when selling to the venue


@dataclass(frozen=True)
class Venue:
    """Read-only market snapshot; may be stale by execution time."""
    venue_id: str               # Waypoint symbol
    system: str
    traits: tuple = ()
    offers: tuple = ()          # tuple[TradeOffer, ...]

    def offer_for(self, good: str) -> Optional[TradeOffer]:
        """Offer for ``good`` if the venue sells it."""
        for offer in self.offers:
            if offer.good == good:
                return offer
        return None


@dataclass
class Vehicle:
    """Fleet vehicle with cargo hold."""
    vehicle_id: str
    system: str
    waypoint: str
    capacity: int
    cargo: dict[str, int] = field(default_factory=dict)        # good -> units
    unit_space: dict[str, int] = field(default_factory=dict)   # good -> space per unit

    @property
    def used_space(self) -> int:
        return sum(units * self.unit_space.get(good, 1) for good, units in self.cargo.items())

    @property
    def free_space(self) -> int:
        return max(0, self.capacity - self.used_space)

    def units_of(self, good: str) -> int:
        return self.cargo.get(good, 0)

    def add_cargo(self, good: str, units: int, space_per_unit: int = 1) -> None:
        if units <= 0:
            return
        self.cargo[good] = self.cargo.get(good, 0) + units
        self.unit_space[good] = space_per_unit

    def remove_cargo(self, good: str, units: int) -> int:
        """Remove up to ``units`` of ``good``; returns units actually removed."""
        held = self.cargo.get(good, 0)
        removed = min(held, max(0, units))
        if removed == held:
            self.cargo.pop(good, None)
            self.unit_space.pop(good, None)
        else:
            self.cargo[good] = held - removed
        return removed


@dataclass(frozen=True)
class PurchaseBatch:
    """One purchase call's worth of units at one venue."""
    batch_id: str
    venue_id: str
    venue_system: str
    good: str
    units: int
    expected_unit_price: int

    def with_units(self, units: int, batch_id: str) -> "PurchaseBatch":
        """Copy of this batch resized to ``units`` under a new id."""
        return PurchaseBatch(
            batch_id=batch_id,
            venue_id=self.venue_id,
            venue_system=self.venue_system,
            good=self.good,
            units=units,
            expected_unit_price=self.expected_unit_price,
        )


@dataclass
class ShipAllocation:
    """Batches assigned to one vehicle, executed strictly in order."""
    allocation_id: str
    vehicle_id: str
    batches: list[PurchaseBatch] = field(default_factory=list)
    committed_space: int = 0
    state: AllocationState = AllocationState.PENDING
    batch_status: dict[str, BatchStatus] = field(default_factory=dict)
    batch_purchased: dict[str, int] = field(default_factory=dict)   # batch_id -> units bought
    units_purchased: int = 0

    @property
    def planned_units(self) -> int:
        return sum(batch.units for batch in self.batches)

    @property
    def committed_units(self) -> int:
        """Units still counted against the need.

        Failed and dropped batches release their units for the next pass; a
        partial batch keeps only what it bought.
        """
        total = 0
        for batch in self.batches:
            status = self.batch_status.get(batch.batch_id)
            if status in (BatchStatus.PENDING, BatchStatus.SUCCEEDED):
                total += batch.units
            elif status == BatchStatus.PARTIAL:
                total += self.batch_purchased.get(batch.batch_id, 0)
        return total

    def add_batch(self, batch: PurchaseBatch, space: int) -> None:
        self.batches.append(batch)
        self.batch_status[batch.batch_id] = BatchStatus.PENDING
        self.committed_space += space

    def batches_with_status(self, *statuses: BatchStatus) -> list[PurchaseBatch]:
        return [b for b in self.batches if self.batch_status.get(b.batch_id) in statuses]


@dataclass(frozen=True)
class TransactionRecord:
    """Audit record of one purchase attempt."""
    batch_id: str
    vehicle_id: str
    venue_id: str
    outcome: TransactionOutcome
    units_purchased: int
    price_paid: int             # Total credits paid for the call
    timestamp: datetime
    attempt: int = 1


@dataclass(frozen=True)
class FailedBatch:
    """Diagnostics for a batch that did not purchase its full amount."""
    batch_id: str
    vehicle_id: str
    venue_id: str
    units_planned: int
    units_purchased: int
    reason: str
    attempts: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "batch_id": self.batch_id,
            "vehicle_id": self.vehicle_id,
            "venue_id": self.venue_id,
            "units_planned": self.units_planned,
            "units_purchased": self.units_purchased,
            "reason": self.reason,
            "attempts": self.attempts,
        }


@dataclass
class ProcurementPlan:
    """Single fulfillment attempt for a contract; archived once terminal."""
    plan_id: str
    contract_id: str
    good: str
    units_to_source: int                        # Need at creation, after cargo on hand
    remaining_units_needed: int
    created_at: datetime
    units_on_hand: int = 0                      # Contract good already aboard the fleet
    units_purchased: int = 0
    status: PlanStatus = PlanStatus.PLANNING
    allocations: list[ShipAllocation] = field(default_factory=list)
    transactions: list[TransactionRecord] = field(default_factory=list)
    failed_batches: list[FailedBatch] = field(default_factory=list)
    rejected_venues: dict[str, str] = field(default_factory=dict)   # venue_id -> reason
    depleted_venues: set = field(default_factory=set)
    passes: int = 0

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_PLAN_STATES

    @property
    def planned_units(self) -> int:
        """Units committed across every pass; never exceeds ``units_to_source``."""
        return sum(allocation.committed_units for allocation in self.allocations)

    def to_dict(self) -> dict[str, Any]:
        return {
            "plan_id": self.plan_id,
            "contract_id": self.contract_id,
            "good": self.good,
            "status": self.status.value,
            "units_to_source": self.units_to_source,
            "units_on_hand": self.units_on_hand,
            "planned_units": self.planned_units,
            "units_purchased": self.units_purchased,
            "remaining_units_needed": self.remaining_units_needed,
            "created_at": self.created_at.isoformat(),
            "passes": self.passes,
            "allocations": [
                {
                    "allocation_id": a.allocation_id,
                    "vehicle_id": a.vehicle_id,
                    "state": a.state.value,
                    "committed_space": a.committed_space,
                    "units_purchased": a.units_purchased,
                    "batches": [
                        {
                            "batch_id": b.batch_id,
                            "venue_id": b.venue_id,
                            "units": b.units,
                            "expected_unit_price": b.expected_unit_price,
                            "status": a.batch_status[b.batch_id].value,
                        }
                        for b in a.batches
                    ],
                }
                for a in self.allocations
            ],
            "transactions": [
                {
                    "batch_id": t.batch_id,
                    "vehicle_id": t.vehicle_id,
                    "venue_id": t.venue_id,
                    "outcome": t.outcome.value,
                    "units_purchased": t.units_purchased,
                    "price_paid": t.price_paid,
                    "timestamp": t.timestamp.isoformat(),
                    "attempt": t.attempt,
                }
                for t in self.transactions
            ],
            "failed_batches": [f.to_dict() for f in self.failed_batches],
            "rejected_venues": dict(self.rejected_venues),
            "depleted_venues": sorted(self.depleted_venues),
        }


# Collaborator receipts

@dataclass(frozen=True)
class PurchaseReceipt:
    """Result of a successful purchase call."""
    units_purchased: int
    unit_price: int
    total_price: int


@dataclass(frozen=True)
class CargoReceipt:
    """Result of a sell or jettison call."""
    good: str
    units_removed: int
    revenue: int = 0


@dataclass(frozen=True)
class NavigationResult:
    """Navigation accepted; vehicle is ready at ``arrival``."""
    vehicle_id: str
    destination: str
    arrival: datetime


@dataclass(frozen=True)
class DeliveryReceipt:
    """Result of a contract delivery call."""
    units_delivered: int
    contract_units_fulfilled: int
    contract_units_required: int
