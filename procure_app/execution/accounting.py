"""
Plan progress ledger.

The single synchronized path through which executor threads update a plan:
purchased units, the remaining counter, the transaction log, failed batches
and depleted venues.
"""

import threading
from typing import Any, Optional

import structlog

from ..data.models import (
    FailedBatch,
    ProcurementPlan,
    PurchaseBatch,
    TransactionOutcome,
    TransactionRecord,
)
from ..utils.time import utc_now

logger = structlog.get_logger(__name__)


class PlanLedger:
    """Thread-safe accounting for one procurement plan."""

    def __init__(self, plan: ProcurementPlan) -> None:
        self.plan = plan
        self._lock = threading.Lock()

    @property
    def remaining_units(self) -> int:
        with self._lock:
            return self.plan.remaining_units_needed

    @property
    def units_purchased(self) -> int:
        with self._lock:
            return self.plan.units_purchased

    def record_purchase(
        self,
        batch: PurchaseBatch,
        vehicle_id: str,
        units: int,
        price_paid: int,
        attempt: int = 1
    ) -> TransactionRecord:
        """
        Book a completed purchase call.

        Full fills are SUCCEEDED, short fills PARTIAL. The remaining counter
        never drops below zero.
        """
        outcome = (
            TransactionOutcome.SUCCEEDED if units >= batch.units
            else TransactionOutcome.PARTIAL
        )
        record = TransactionRecord(
            batch_id=batch.batch_id,
            vehicle_id=vehicle_id,
            venue_id=batch.venue_id,
            outcome=outcome,
            units_purchased=units,
            price_paid=price_paid,
            timestamp=utc_now(),
            attempt=attempt,
        )

        with self._lock:
            plan = self.plan
            plan.transactions.append(record)
            plan.units_purchased += units
            plan.remaining_units_needed = max(0, plan.units_to_source - plan.units_purchased)
            remaining = plan.remaining_units_needed

        logger.info(
            "Purchase booked",
            plan_id=self.plan.plan_id,
            batch_id=batch.batch_id,
            vehicle_id=vehicle_id,
            units=units,
            price_paid=price_paid,
            remaining_units_needed=remaining
        )
        return record

    def record_attempt(
        self,
        batch: PurchaseBatch,
        vehicle_id: str,
        outcome: TransactionOutcome,
        attempt: int
    ) -> TransactionRecord:
        """Log a purchase attempt that bought nothing (rate limited, rejected)."""
        record = TransactionRecord(
            batch_id=batch.batch_id,
            vehicle_id=vehicle_id,
            venue_id=batch.venue_id,
            outcome=outcome,
            units_purchased=0,
            price_paid=0,
            timestamp=utc_now(),
            attempt=attempt,
        )
        with self._lock:
            self.plan.transactions.append(record)
        return record

    def record_failure(
        self,
        batch: PurchaseBatch,
        vehicle_id: str,
        reason: str,
        units_purchased: int = 0,
        attempts: int = 0
    ) -> FailedBatch:
        failed = FailedBatch(
            batch_id=batch.batch_id,
            vehicle_id=vehicle_id,
            venue_id=batch.venue_id,
            units_planned=batch.units,
            units_purchased=units_purchased,
            reason=reason,
            attempts=attempts,
        )
        with self._lock:
            self.plan.failed_batches.append(failed)

        logger.warning(
            "Batch failed",
            plan_id=self.plan.plan_id,
            batch_id=batch.batch_id,
            vehicle_id=vehicle_id,
            venue_id=batch.venue_id,
            reason=reason,
            units_planned=batch.units,
            units_purchased=units_purchased,
            attempts=attempts
        )
        return failed

    def mark_depleted(self, venue_id: str) -> None:
        with self._lock:
            self.plan.depleted_venues.add(venue_id)
            self.plan.rejected_venues[venue_id] = "depleted"

    def is_depleted(self, venue_id: str) -> bool:
        with self._lock:
            return venue_id in self.plan.depleted_venues

    def failed_since(self, index: int) -> list[FailedBatch]:
        """Failed batches recorded after the first ``index`` entries."""
        with self._lock:
            return list(self.plan.failed_batches[index:])

    def snapshot(self, extra: Optional[dict[str, Any]] = None) -> dict[str, Any]:
        """Consistent view of the counters for logging."""
        with self._lock:
            data = {
                "plan_id": self.plan.plan_id,
                "units_to_source": self.plan.units_to_source,
                "units_purchased": self.plan.units_purchased,
                "remaining_units_needed": self.plan.remaining_units_needed,
                "transaction_count": len(self.plan.transactions),
                "failed_batch_count": len(self.plan.failed_batches),
            }
        if extra:
            data.update(extra)
        return data
