"""
Main procurement engine coordinator.

Orchestrates one fulfillment attempt for a contract:
Contract → Venues → Price check → Batches → Allocations → Purchases → Delivery
"""

import time
import uuid
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Iterable, Optional

import structlog

from .cargo.manager import CargoManager
from .config.loader import ConfigLoader
from .config.validation import ConfigValidator
from .data.models import (
    Contract,
    ContractStatus,
    PlanStatus,
    ProcurementPlan,
    Vehicle,
)
from .data.report import ProcurementReport
from .delivery.coordinator import DeliveryCoordinator
from .errors import (
    CargoInsufficientError,
    ConfigurationError,
    ContractExpiredError,
    PersistenceError,
    ShortfallDetected,
    VenueUnavailableError,
)
from .execution.accounting import PlanLedger
from .execution.executor import ProcurementExecutor
from .execution.rate_limiter import RateLimiter
from .execution.retry import RetryPolicy
from .gateways.base import (
    ContractSource,
    DeliveryClient,
    MarketQuery,
    NavigationClient,
    TradeClient,
)
from .knowledge.products import ProductKnowledgeBase
from .logging.config import get_planning_logger
from .persistence.plan_archive import PlanArchive
from .planning.allocator import FleetAllocator
from .planning.batches import BatchPlanner
from .planning.locator import VenueLocator
from .planning.pricing import PriceValidator
from .state.transitions import transition_plan
from .utils.time import is_expired, utc_now

logger = structlog.get_logger(__name__)
planning_logger = get_planning_logger(__name__)


class ProcurementEngine:
    """
    Main coordinator for contract procurement.

    One engine serves one fleet. Each call to ``plan_and_execute`` is a new
    fulfillment attempt with its own plan; the shared rate limiter persists
    across attempts.
    """

    def __init__(
        self,
        contracts: ContractSource,
        market: MarketQuery,
        trade: TradeClient,
        navigation: NavigationClient,
        delivery: DeliveryClient,
        config_dir: Optional[Path] = None,
        overrides: Optional[dict[str, Any]] = None,
        archive: Optional[PlanArchive] = None,
        clock: Callable[[], datetime] = utc_now,
        sleep: Callable[[float], None] = time.sleep,
        monotonic: Callable[[], float] = time.monotonic
    ) -> None:
        """
        Initialize the engine and validate configuration.

        Raises:
            ConfigurationError: If engine.yaml, goods.yaml or ``overrides``
                contain invalid values
        """
        self.logger = logger
        self.contracts = contracts
        self.archive = archive
        self._clock = clock
        self._monotonic = monotonic

        self.config_loader = ConfigLoader.create(config_dir)
        merged = self.config_loader.merge_config(overrides)
        goods = self.config_loader.load_goods_config()

        errors = ConfigValidator.validate_config(merged)
        errors.extend(ConfigValidator.validate_product_overrides(goods))
        if errors:
            error_msgs = [f"{err.field}: {err.message} (got: {err.value})" for err in errors]
            self.logger.error("Configuration validation failed", errors=error_msgs)
            raise ConfigurationError(
                f"Invalid configuration: {'; '.join(error_msgs)}", errors=errors
            )

        self.config = self.config_loader.load(overrides)

        self.knowledge = ProductKnowledgeBase(goods, self.config.product_defaults)
        self.limiter = RateLimiter(self.config.rate_limit, clock=monotonic, sleep=sleep)
        self.retry_policy = RetryPolicy(self.config.retry, sleep=sleep)

        self.locator = VenueLocator(market, self.knowledge, self.limiter, self.config.locator)
        self.validator = PriceValidator(self.knowledge, self.config.pricing)
        self.planner = BatchPlanner(self.knowledge, self.validator)
        self.cargo_manager = CargoManager(trade, self.limiter)
        self.allocator = FleetAllocator(self.knowledge, self.cargo_manager)
        self.executor = ProcurementExecutor(
            trade,
            navigation,
            self.cargo_manager,
            self.limiter,
            self.retry_policy,
            self.knowledge,
            self.config.execution,
            clock=clock,
            sleep=sleep,
        )
        self.coordinator = DeliveryCoordinator(
            navigation,
            delivery,
            self.limiter,
            self.retry_policy,
            self.config.delivery,
            clock=clock,
            sleep=sleep,
        )

        self.logger.info(
            "Procurement engine initialized",
            config_dir=str(self.config_loader.config_dir),
            extra_goods=sorted(goods),
            tie_break=self.config.locator.tie_break,
            max_attempts=self.config.retry.max_attempts
        )

    @classmethod
    def from_universe(cls, universe: Any, **kwargs: Any) -> "ProcurementEngine":
        """Build an engine whose every collaborator is ``universe``."""
        return cls(universe, universe, universe, universe, universe, **kwargs)

    def abandon(self) -> None:
        """Abandon the running attempt; purchased cargo is kept and reported."""
        self.executor.cancel()

    def run(self, contract_id: str, vehicles: Iterable[Vehicle]) -> ProcurementReport:
        """Fetch ``contract_id`` from the contract source and procure for it."""
        contract = self.limiter.call(self.contracts.get_contract, contract_id)
        return self.plan_and_execute(contract, vehicles)

    def plan_and_execute(self, contract: Contract, vehicles: Iterable[Vehicle]) -> ProcurementReport:
        """
        Run one fulfillment attempt for ``contract`` with ``vehicles``.

        Args:
            contract: Contract to fulfil; its progress and status are updated
            vehicles: Fleet available to this attempt; mutated as cargo moves

        Returns:
            ProcurementReport with exact purchased and delivered counts.
            Shortfalls are reported, not raised.
        """
        started = self._monotonic()
        vehicles = list(vehicles)
        self.executor.reset()

        units_on_hand = sum(v.units_of(contract.good) for v in vehicles)
        plan = ProcurementPlan(
            plan_id=f"plan-{contract.contract_id}-{uuid.uuid4().hex[:8]}",
            contract_id=contract.contract_id,
            good=contract.good,
            units_to_source=max(0, contract.units_outstanding - units_on_hand),
            remaining_units_needed=max(0, contract.units_outstanding - units_on_hand),
            created_at=self._clock(),
            units_on_hand=units_on_hand,
        )
        ledger = PlanLedger(plan)
        issues: list[dict[str, Any]] = []
        log = self.logger.bind(plan_id=plan.plan_id, contract_id=contract.contract_id)

        log.info(
            "Procurement plan created",
            good=contract.good,
            units_required=contract.units_required,
            units_fulfilled=contract.units_fulfilled,
            units_on_hand=units_on_hand,
            units_to_source=plan.units_to_source,
            fleet=[v.vehicle_id for v in vehicles]
        )

        expired = contract.deadline is not None and is_expired(contract.deadline, self._clock())
        if expired:
            contract.status = ContractStatus.EXPIRED
            issues.append(ContractExpiredError(
                f"contract {contract.contract_id} expired before procurement",
                contract_id=contract.contract_id,
            ).to_dict())
        elif plan.units_to_source > 0:
            self._procure(contract, vehicles, plan, ledger, issues)

        self._settle_plan(plan)

        deliveries: list[dict[str, Any]] = []
        units_delivered = 0
        holds_good = any(v.units_of(contract.good) > 0 for v in vehicles)
        if not expired and not self.executor.cancelled and holds_good:
            outcome = self.coordinator.deliver(contract, vehicles)
            issues.extend(outcome.issues)
            deliveries = [d.to_dict() for d in outcome.vehicles]
            units_delivered = outcome.units_delivered
        elif self.executor.cancelled:
            log.warning("Attempt abandoned, skipping delivery")

        if plan.remaining_units_needed > 0 and not expired:
            issues.append(ShortfallDetected(
                f"{plan.remaining_units_needed} of {plan.units_to_source} {plan.good} not sourced",
                good=plan.good,
                required=plan.units_to_source,
                sourced=plan.units_purchased,
            ).to_dict())

        report = ProcurementReport(
            contract_id=contract.contract_id,
            plan_id=plan.plan_id,
            good=plan.good,
            plan_status=plan.status,
            contract_status=contract.status,
            units_required=contract.units_required,
            units_to_source=plan.units_to_source,
            units_on_hand=plan.units_on_hand,
            units_purchased=plan.units_purchased,
            units_delivered=units_delivered,
            total_spent=sum(t.price_paid for t in plan.transactions),
            passes=plan.passes,
            elapsed_seconds=self._monotonic() - started,
            failed_batches=list(plan.failed_batches),
            rejected_venues=dict(plan.rejected_venues),
            issues=issues,
            deliveries=deliveries,
        )

        if self.archive is not None:
            try:
                self.archive.archive(plan, report)
            except PersistenceError as e:
                log.error("Failed to archive plan", error=str(e))
                report.issues.append(e.to_dict())

        log.info(
            "Procurement attempt finished",
            plan_status=report.plan_status.value,
            contract_status=report.contract_status.value,
            units_purchased=report.units_purchased,
            units_delivered=report.units_delivered,
            shortfall=report.shortfall,
            passes=report.passes,
            elapsed_seconds=round(report.elapsed_seconds, 3)
        )
        return report

    def _procure(
        self,
        contract: Contract,
        vehicles: list[Vehicle],
        plan: ProcurementPlan,
        ledger: PlanLedger,
        issues: list[dict[str, Any]]
    ) -> None:
        """Plan, allocate and execute passes until the need is met or no pass helps."""
        by_id = {v.vehicle_id: v for v in vehicles}
        reserved = {contract.good}
        max_passes = 1 + self.config.execution.max_reassignment_passes

        while plan.passes < max_passes:
            if plan.status == PlanStatus.EXECUTING:
                transition_plan(plan, PlanStatus.PLANNING, "reassignment",
                                {"remaining_units_needed": ledger.remaining_units})
            plan.passes += 1
            prefix = f"p{plan.passes}-"
            need = ledger.remaining_units

            venues = self.locator.locate(contract.good, vehicles)
            batch_plan = self.planner.plan(
                contract.good, need, venues,
                exclude=set(plan.depleted_venues),
                batch_prefix=prefix,
            )
            for venue_id, reason in batch_plan.rejected_venues.items():
                plan.rejected_venues.setdefault(venue_id, reason)

            if not batch_plan.batches:
                regions = VenueLocator.regions_for(vehicles)
                issues.append(VenueUnavailableError(
                    f"no acceptable venue offers {contract.good}",
                    good=contract.good,
                    systems=regions,
                    context={"pass": plan.passes, "venues_considered": batch_plan.venues_considered},
                ).to_dict())
                planning_logger.warning(
                    "No acceptable venues", good=contract.good, regions=regions, pass_number=plan.passes
                )
                break

            allocation = self.allocator.allocate(
                batch_plan.batches, vehicles, reserved_goods=reserved, id_prefix=prefix
            )
            if allocation.unallocated:
                issues.append(CargoInsufficientError(
                    f"fleet cannot carry {allocation.units_unallocated} {contract.good}",
                    required=self.knowledge.get(contract.good).cargo_space(
                        allocation.units_unallocated + allocation.units_allocated
                    ),
                    available=sum(allocation.free_space.values()),
                    context={"pass": plan.passes},
                ).to_dict())
            if not allocation.allocations:
                break

            plan.allocations.extend(allocation.allocations)
            transition_plan(plan, PlanStatus.EXECUTING, "allocations_ready", {
                "pass": plan.passes,
                "allocation_count": len(allocation.allocations),
                "units_planned": allocation.units_allocated,
            })

            failures_before = len(plan.failed_batches)
            self.executor.execute_all(
                allocation.allocations, by_id, ledger, reserved, contract.deadline
            )

            if ledger.remaining_units == 0:
                break
            reason = self.executor.abort_reason(contract.deadline)
            if reason is not None:
                issues.append({
                    "type": "Aborted",
                    "message": f"procurement stopped: {reason}",
                    "recoverable": False,
                    "context": {"pass": plan.passes, "reason": reason},
                })
                break
            if not ledger.failed_since(failures_before):
                # Nothing failed, so another pass would plan the same venues
                break

    def _settle_plan(self, plan: ProcurementPlan) -> None:
        if plan.remaining_units_needed == 0:
            target = PlanStatus.COMPLETED
        elif plan.units_purchased > 0 or plan.units_on_hand > 0:
            target = PlanStatus.PARTIAL
        else:
            target = PlanStatus.FAILED

        transition_plan(plan, target, "attempt_finished", {
            "units_purchased": plan.units_purchased,
            "remaining_units_needed": plan.remaining_units_needed,
        })

    def get_stats(self) -> dict[str, Any]:
        """Get engine statistics."""
        stats: dict[str, Any] = {
            "rate_limiter": self.limiter.get_stats(),
            "cargo": self.cargo_manager.get_stats(),
        }
        if self.archive is not None:
            stats["archive"] = self.archive.get_stats()
        return stats
