"""
Procurement execution.

Runs each vehicle's allocation on its own worker thread. Batches of one
allocation run strictly in order: navigate to the venue, make room in the
hold, then purchase with bounded retries. A failed batch never stops the
remaining batches of the allocation or any other vehicle.
"""

import re
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from typing import Callable, Iterable, Optional

from ..cargo.manager import CargoManager
from ..config.defaults import ExecutionParams
from ..data.models import (
    AllocationState,
    BatchStatus,
    PurchaseBatch,
    ShipAllocation,
    TransactionOutcome,
    Vehicle,
)
from ..errors import (
    ExecutionError,
    PurchaseRejectedError,
    RateLimitedError,
    VenueDepletedError,
)
from ..gateways.base import NavigationClient, TradeClient
from ..knowledge.products import ProductKnowledgeBase
from ..logging.config import WORKER_THREAD_PREFIX, get_execution_logger
from ..state.transitions import transition_allocation
from ..utils.time import is_expired, seconds_until, utc_now
from .accounting import PlanLedger
from .rate_limiter import RateLimiter
from .retry import RetryPolicy

logger = get_execution_logger(__name__)


def failure_reason(error: BaseException) -> str:
    """``VenueDepletedError`` -> ``venue_depleted``."""
    kind = getattr(error, "kind", type(error).__name__)
    return re.sub(r"(?<!^)(?=[A-Z])", "_", kind).lower()


class ProcurementExecutor:
    """Executes ship allocations against the trade and navigation clients."""

    def __init__(
        self,
        trade: TradeClient,
        navigation: NavigationClient,
        cargo_manager: CargoManager,
        limiter: RateLimiter,
        retry_policy: RetryPolicy,
        knowledge: ProductKnowledgeBase,
        params: Optional[ExecutionParams] = None,
        clock: Callable[[], datetime] = utc_now,
        sleep: Callable[[float], None] = time.sleep
    ) -> None:
        self.trade = trade
        self.navigation = navigation
        self.cargo_manager = cargo_manager
        self.limiter = limiter
        self.retry_policy = retry_policy
        self.knowledge = knowledge
        self.params = params or ExecutionParams()
        self._clock = clock
        self._sleep = sleep
        self._cancelled = threading.Event()

    def cancel(self) -> None:
        """Stop issuing new purchases; in-flight calls finish."""
        self._cancelled.set()
        logger.warning("Execution cancelled")

    def reset(self) -> None:
        self._cancelled.clear()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def abort_reason(self, deadline: Optional[datetime]) -> Optional[str]:
        """``"cancelled"``, ``"deadline"`` or None when work may continue."""
        if self._cancelled.is_set():
            return "cancelled"
        if deadline is not None and is_expired(deadline, self._clock()):
            return "deadline"
        return None

    def execute_all(
        self,
        allocations: Iterable[ShipAllocation],
        vehicles: dict[str, Vehicle],
        ledger: PlanLedger,
        reserved_goods: Iterable[str] = (),
        deadline: Optional[datetime] = None
    ) -> list[ShipAllocation]:
        """
        Run allocations concurrently, one worker per vehicle.

        Returns once every allocation reached a terminal state. Unexpected
        errors in a worker are re-raised after all workers have finished.
        """
        allocations = list(allocations)
        if not allocations:
            return []

        reserved = frozenset(reserved_goods)
        workers = max(1, min(self.params.max_workers, len(allocations)))

        logger.info(
            "Executing allocations",
            plan_id=ledger.plan.plan_id,
            allocation_count=len(allocations),
            workers=workers
        )

        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix=WORKER_THREAD_PREFIX) as pool:
            futures = [
                pool.submit(
                    self.execute_allocation,
                    allocation,
                    vehicles[allocation.vehicle_id],
                    ledger,
                    reserved,
                    deadline,
                )
                for allocation in allocations
            ]

        results = [future.result() for future in futures]
        logger.info("Allocations finished", **ledger.snapshot())
        return results

    def execute_allocation(
        self,
        allocation: ShipAllocation,
        vehicle: Vehicle,
        ledger: PlanLedger,
        reserved_goods: Iterable[str] = (),
        deadline: Optional[datetime] = None
    ) -> ShipAllocation:
        """Run one vehicle's batches in order and settle its final state."""
        reserved = frozenset(reserved_goods)
        log = logger.bind(
            plan_id=ledger.plan.plan_id,
            allocation_id=allocation.allocation_id,
            vehicle_id=vehicle.vehicle_id
        )

        reason = self.abort_reason(deadline)
        if reason is not None:
            self._drop_batches(allocation, allocation.batches, ledger, reason)
            transition_allocation(allocation, AllocationState.FAILED, reason)
            return allocation

        transition_allocation(
            allocation, AllocationState.IN_PROGRESS, "execution_started",
            {"batch_count": len(allocation.batches)}
        )

        unreachable: set = set()
        for index, batch in enumerate(allocation.batches):
            reason = self.abort_reason(deadline)
            if reason is not None:
                log.warning("Aborting allocation", reason=reason)
                self._drop_batches(allocation, allocation.batches[index:], ledger, reason)
                break
            self._execute_batch(allocation, vehicle, batch, ledger, reserved, deadline, unreachable)

        succeeded = allocation.batches_with_status(BatchStatus.SUCCEEDED)
        if len(succeeded) == len(allocation.batches):
            final = AllocationState.COMPLETED
        elif allocation.units_purchased == 0:
            final = AllocationState.FAILED
        else:
            final = AllocationState.PARTIAL

        transition_allocation(
            allocation, final, "batches_exhausted",
            {"units_purchased": allocation.units_purchased}
        )
        return allocation

    def _drop_batches(
        self,
        allocation: ShipAllocation,
        batches: list[PurchaseBatch],
        ledger: PlanLedger,
        reason: str
    ) -> None:
        for batch in batches:
            allocation.batch_status[batch.batch_id] = BatchStatus.DROPPED
            ledger.record_failure(batch, allocation.vehicle_id, reason)

    def _fail_batch(
        self,
        allocation: ShipAllocation,
        batch: PurchaseBatch,
        ledger: PlanLedger,
        reason: str,
        attempts: int = 0
    ) -> None:
        allocation.batch_status[batch.batch_id] = BatchStatus.FAILED
        ledger.record_failure(batch, allocation.vehicle_id, reason, attempts=attempts)

    def _travel_to(self, vehicle: Vehicle, batch: PurchaseBatch) -> None:
        """Move ``vehicle`` to the batch venue and wait for arrival."""
        if vehicle.waypoint == batch.venue_id:
            return

        result = self.limiter.call(self.navigation.navigate, vehicle.vehicle_id, batch.venue_id)
        wait = seconds_until(result.arrival, self._clock())
        if wait > 0:
            logger.info(
                "Waiting for arrival",
                vehicle_id=vehicle.vehicle_id,
                destination=batch.venue_id,
                wait_seconds=round(wait, 3)
            )
            # Outside the rate-limit gate so other vehicles keep trading
            self._sleep(wait)

        vehicle.waypoint = batch.venue_id
        vehicle.system = batch.venue_system

    def _execute_batch(
        self,
        allocation: ShipAllocation,
        vehicle: Vehicle,
        batch: PurchaseBatch,
        ledger: PlanLedger,
        reserved: frozenset,
        deadline: Optional[datetime],
        unreachable: set
    ) -> None:
        log = logger.bind(
            batch_id=batch.batch_id,
            vehicle_id=vehicle.vehicle_id,
            venue_id=batch.venue_id,
            units=batch.units
        )

        if ledger.is_depleted(batch.venue_id):
            self._fail_batch(allocation, batch, ledger, "venue_depleted")
            return
        if batch.venue_id in unreachable:
            self._fail_batch(allocation, batch, ledger, "navigation_failed")
            return

        try:
            self._travel_to(vehicle, batch)
        except ExecutionError as e:
            log.error("Navigation to venue failed", error=str(e))
            unreachable.add(batch.venue_id)
            self._fail_batch(allocation, batch, ledger, "navigation_failed", attempts=1)
            return

        info = self.knowledge.get(batch.good)
        units = batch.units
        required = info.cargo_space(units)
        free = self.cargo_manager.ensure_free_space(vehicle, required, reserved)
        if free < required:
            units = min(units, info.units_fitting(free))
            log.warning("Hold short, reducing batch", free_space=free, units_fitting=units)
            if units <= 0:
                self._fail_batch(allocation, batch, ledger, "cargo_insufficient")
                return

        def on_failure(error: BaseException, attempt: int) -> None:
            if isinstance(error, RateLimitedError):
                ledger.record_attempt(batch, vehicle.vehicle_id, TransactionOutcome.RATE_LIMITED, attempt)
            elif isinstance(error, PurchaseRejectedError):
                ledger.record_attempt(batch, vehicle.vehicle_id, TransactionOutcome.REJECTED, attempt)
            log.warning("Purchase attempt failed", attempt=attempt, error=str(error))

        outcome = self.retry_policy.run(
            self.limiter.call,
            self.trade.purchase,
            vehicle.vehicle_id,
            batch.venue_id,
            batch.good,
            units,
            on_failure=on_failure,
            should_stop=lambda: self.abort_reason(deadline) is not None,
        )

        if not outcome.succeeded:
            if isinstance(outcome.error, VenueDepletedError):
                ledger.mark_depleted(batch.venue_id)
            self._fail_batch(
                allocation, batch, ledger, failure_reason(outcome.error), outcome.attempts
            )
            return

        receipt = outcome.value
        bought = min(receipt.units_purchased, units)
        if bought <= 0:
            self._fail_batch(allocation, batch, ledger, "nothing_purchased", outcome.attempts)
            return

        vehicle.add_cargo(batch.good, bought, info.cargo_per_unit)
        allocation.units_purchased += bought
        allocation.batch_purchased[batch.batch_id] = bought
        ledger.record_purchase(
            batch, vehicle.vehicle_id, bought, receipt.total_price, outcome.attempts
        )

        if bought >= batch.units:
            allocation.batch_status[batch.batch_id] = BatchStatus.SUCCEEDED
        else:
            allocation.batch_status[batch.batch_id] = BatchStatus.PARTIAL
            ledger.record_failure(
                batch, vehicle.vehicle_id, "partial_fill",
                units_purchased=bought, attempts=outcome.attempts
            )
