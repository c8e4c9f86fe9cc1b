"""Outcome report for one procurement attempt."""

from dataclasses import dataclass, field
from typing import Any

from ..errors import ShortfallDetected
from .models import ContractStatus, FailedBatch, PlanStatus


@dataclass
class ProcurementReport:
    """What was bought, what was delivered and what went wrong."""
    contract_id: str
    plan_id: str
    good: str
    plan_status: PlanStatus
    contract_status: ContractStatus
    units_required: int
    units_to_source: int
    units_on_hand: int = 0
    units_purchased: int = 0
    units_delivered: int = 0
    total_spent: int = 0
    passes: int = 0
    elapsed_seconds: float = 0.0
    failed_batches: list[FailedBatch] = field(default_factory=list)
    rejected_venues: dict[str, str] = field(default_factory=dict)
    issues: list[dict[str, Any]] = field(default_factory=list)
    deliveries: list[dict[str, Any]] = field(default_factory=list)

    @property
    def units_sourced(self) -> int:
        """Units available to deliver: on hand at start plus purchased."""
        return self.units_on_hand + self.units_purchased

    @property
    def shortfall(self) -> int:
        return max(0, self.units_to_source - self.units_purchased)

    @property
    def succeeded(self) -> bool:
        return self.plan_status == PlanStatus.COMPLETED and self.shortfall == 0

    def raise_for_shortfall(self) -> None:
        """Raise ``ShortfallDetected`` if the attempt left units unsourced."""
        if self.shortfall <= 0:
            return
        raise ShortfallDetected(
            f"{self.contract_id}: sourced {self.units_sourced} of "
            f"{self.units_to_source + self.units_on_hand} {self.good}",
            good=self.good,
            required=self.units_to_source + self.units_on_hand,
            sourced=self.units_sourced,
            context={"plan_id": self.plan_id, "failed_batches": len(self.failed_batches)},
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "contract_id": self.contract_id,
            "plan_id": self.plan_id,
            "good": self.good,
            "plan_status": self.plan_status.value,
            "contract_status": self.contract_status.value,
            "units_required": self.units_required,
            "units_to_source": self.units_to_source,
            "units_on_hand": self.units_on_hand,
            "units_purchased": self.units_purchased,
            "units_delivered": self.units_delivered,
            "shortfall": self.shortfall,
            "total_spent": self.total_spent,
            "passes": self.passes,
            "elapsed_seconds": round(self.elapsed_seconds, 3),
            "failed_batches": [f.to_dict() for f in self.failed_batches],
            "rejected_venues": dict(self.rejected_venues),
            "issues": list(self.issues),
            "deliveries": list(self.deliveries),
        }
