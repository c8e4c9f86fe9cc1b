"""Tests for procurement execution."""

from datetime import timedelta
from unittest.mock import Mock

import pytest

from procure_app.cargo.manager import CargoManager
from procure_app.config.defaults import ExecutionParams
from procure_app.data.models import (
    AllocationState,
    BatchStatus,
    CargoReceipt,
    NavigationResult,
    ProcurementPlan,
    PurchaseBatch,
    PurchaseReceipt,
    ShipAllocation,
    TransactionOutcome,
)
from procure_app.errors import (
    NavigationFailedError,
    RateLimitedError,
    TransientTradeError,
    VenueDepletedError,
)
from procure_app.execution.accounting import PlanLedger
from procure_app.execution.executor import ProcurementExecutor, failure_reason
from procure_app.gateways.base import NavigationClient, TradeClient


def batch(batch_id, units, venue_id="X1-A-M1"):
    return PurchaseBatch(batch_id, venue_id, "X1-A", "ELECTRONICS", units, 1500)


def allocation_for(vehicle_id, batches):
    allocation = ShipAllocation(allocation_id=f"alloc-{vehicle_id}", vehicle_id=vehicle_id)
    for b in batches:
        allocation.add_batch(b, b.units)
    return allocation


def fill(vehicle_id, venue_id, good, units):
    return PurchaseReceipt(units_purchased=units, unit_price=1500, total_price=units * 1500)


@pytest.fixture
def trade():
    client = Mock(spec=TradeClient)
    client.purchase.side_effect = fill
    return client


@pytest.fixture
def navigation(fixed_now):
    client = Mock(spec=NavigationClient)
    client.navigate.side_effect = lambda vid, dest: NavigationResult(vid, dest, fixed_now)
    return client


@pytest.fixture
def ledger(fixed_now):
    return PlanLedger(ProcurementPlan(
        plan_id="plan-1",
        contract_id="CONTRACT-1",
        good="ELECTRONICS",
        units_to_source=100,
        remaining_units_needed=100,
        created_at=fixed_now,
    ))


@pytest.fixture
def executor(trade, navigation, limiter, retry_policy, knowledge, sleeper, fixed_now):
    return ProcurementExecutor(
        trade,
        navigation,
        CargoManager(trade, limiter),
        limiter,
        retry_policy,
        knowledge,
        ExecutionParams(max_workers=4),
        clock=lambda: fixed_now,
        sleep=sleeper,
    )


class TestExecuteAllocation:
    """Test the per-vehicle batch state machine."""

    def test_all_batches_succeed(self, executor, ledger, make_vehicle):
        vehicle = make_vehicle(capacity=50)
        allocation = allocation_for(vehicle.vehicle_id, [batch("b1", 20), batch("b2", 20)])

        executor.execute_allocation(allocation, vehicle, ledger, {"ELECTRONICS"})

        assert allocation.state == AllocationState.COMPLETED
        assert allocation.units_purchased == 40
        assert vehicle.units_of("ELECTRONICS") == 40
        assert vehicle.waypoint == "X1-A-M1"
        assert ledger.plan.remaining_units_needed == 60
        assert all(s == BatchStatus.SUCCEEDED for s in allocation.batch_status.values())

    def test_navigates_once_per_venue(self, executor, navigation, ledger, make_vehicle):
        vehicle = make_vehicle(capacity=60)
        allocation = allocation_for(vehicle.vehicle_id, [
            batch("b1", 10), batch("b2", 10), batch("b3", 10, venue_id="X1-A-M2"),
        ])

        executor.execute_allocation(allocation, vehicle, ledger)

        assert [c.args[1] for c in navigation.navigate.call_args_list] == ["X1-A-M1", "X1-A-M2"]

    def test_failure_isolation(self, executor, trade, ledger, make_vehicle):
        """Three of five batches fail; the other two still complete."""
        failing = {2, 3, 5}

        def purchase(vehicle_id, venue_id, good, units):
            if units in failing:
                raise TransientTradeError("server error")
            return fill(vehicle_id, venue_id, good, units)

        trade.purchase.side_effect = purchase
        vehicle = make_vehicle(capacity=50)
        allocation = allocation_for(vehicle.vehicle_id, [batch(f"b{n}", n) for n in range(1, 6)])

        executor.execute_allocation(allocation, vehicle, ledger)

        assert allocation.state == AllocationState.PARTIAL
        assert allocation.units_purchased == 5
        assert {b.batch_id for b in allocation.batches_with_status(BatchStatus.FAILED)} == {"b2", "b3", "b5"}
        assert {f.batch_id for f in ledger.plan.failed_batches} == {"b2", "b3", "b5"}
        assert all(f.reason == "transient_trade" and f.attempts == 3 for f in ledger.plan.failed_batches)
        assert ledger.plan.units_purchased == 5

    def test_all_batches_fail(self, executor, trade, ledger, make_vehicle):
        trade.purchase.side_effect = TransientTradeError("down")
        vehicle = make_vehicle()
        allocation = allocation_for(vehicle.vehicle_id, [batch("b1", 10)])

        executor.execute_allocation(allocation, vehicle, ledger)

        assert allocation.state == AllocationState.FAILED
        assert vehicle.units_of("ELECTRONICS") == 0

    def test_depleted_venue_fails_immediately(self, executor, trade, ledger, make_vehicle):
        trade.purchase.side_effect = VenueDepletedError("gone", venue_id="X1-A-M1")
        vehicle = make_vehicle()
        allocation = allocation_for(vehicle.vehicle_id, [batch("b1", 10), batch("b2", 10)])

        executor.execute_allocation(allocation, vehicle, ledger)

        assert trade.purchase.call_count == 1
        assert ledger.is_depleted("X1-A-M1")
        assert [f.reason for f in ledger.plan.failed_batches] == ["venue_depleted", "venue_depleted"]

    def test_rate_limited_then_success(self, executor, trade, ledger, make_vehicle):
        trade.purchase.side_effect = [RateLimitedError("429"), fill("S", "V", "G", 10)]
        vehicle = make_vehicle()
        allocation = allocation_for(vehicle.vehicle_id, [batch("b1", 10)])

        executor.execute_allocation(allocation, vehicle, ledger)

        outcomes = [t.outcome for t in ledger.plan.transactions]
        assert outcomes == [TransactionOutcome.RATE_LIMITED, TransactionOutcome.SUCCEEDED]
        assert ledger.plan.transactions[-1].attempt == 2
        assert allocation.state == AllocationState.COMPLETED

    def test_partial_fill(self, executor, trade, ledger, make_vehicle):
        trade.purchase.side_effect = lambda vid, ven, good, units: PurchaseReceipt(6, 1500, 9000)
        vehicle = make_vehicle()
        allocation = allocation_for(vehicle.vehicle_id, [batch("b1", 10)])

        executor.execute_allocation(allocation, vehicle, ledger)

        assert allocation.batch_status["b1"] == BatchStatus.PARTIAL
        assert allocation.state == AllocationState.PARTIAL
        assert ledger.plan.failed_batches[0].reason == "partial_fill"
        assert ledger.plan.failed_batches[0].units_purchased == 6

    def test_navigation_failure_fails_batches_at_venue(self, executor, navigation, ledger, make_vehicle, fixed_now):
        def navigate(vid, dest):
            if dest == "X1-A-M1":
                raise NavigationFailedError("no fuel", vehicle_id=vid, destination=dest)
            return NavigationResult(vid, dest, fixed_now)

        navigation.navigate.side_effect = navigate
        vehicle = make_vehicle(capacity=60)
        allocation = allocation_for(vehicle.vehicle_id, [
            batch("b1", 10), batch("b2", 10), batch("b3", 10, venue_id="X1-A-M2"),
        ])

        executor.execute_allocation(allocation, vehicle, ledger)

        assert navigation.navigate.call_count == 2
        assert allocation.batch_status["b1"] == BatchStatus.FAILED
        assert allocation.batch_status["b2"] == BatchStatus.FAILED
        assert allocation.batch_status["b3"] == BatchStatus.SUCCEEDED
        assert ledger.plan.failed_batches[0].reason == "navigation_failed"

    def test_waits_for_arrival_outside_gate(self, executor, navigation, ledger, make_vehicle, sleeper, fixed_now):
        navigation.navigate.side_effect = lambda vid, dest: NavigationResult(
            vid, dest, fixed_now + timedelta(seconds=30)
        )
        vehicle = make_vehicle()

        executor.execute_allocation(allocation_for(vehicle.vehicle_id, [batch("b1", 5)]), vehicle, ledger)

        assert pytest.approx(30.0) in sleeper.calls

    def test_clears_cargo_before_purchase(self, executor, trade, ledger, make_vehicle):
        trade.sell.side_effect = lambda vid, good, units: CargoReceipt(good, units, units * 400)
        vehicle = make_vehicle(capacity=20, cargo={"FOOD": 20})
        allocation = allocation_for(vehicle.vehicle_id, [batch("b1", 15)])

        executor.execute_allocation(allocation, vehicle, ledger, {"ELECTRONICS"})

        trade.sell.assert_called_once_with("SHIP-1", "FOOD", 15)
        assert vehicle.units_of("ELECTRONICS") == 15
        assert vehicle.units_of("FOOD") == 5

    def test_cancelled_before_start_drops_everything(self, executor, trade, ledger, make_vehicle):
        vehicle = make_vehicle()
        allocation = allocation_for(vehicle.vehicle_id, [batch("b1", 10), batch("b2", 10)])

        executor.cancel()
        executor.execute_allocation(allocation, vehicle, ledger)

        trade.purchase.assert_not_called()
        assert allocation.state == AllocationState.FAILED
        assert set(allocation.batch_status.values()) == {BatchStatus.DROPPED}
        assert {f.reason for f in ledger.plan.failed_batches} == {"cancelled"}

    def test_cancel_mid_allocation_keeps_purchases(self, executor, trade, ledger, make_vehicle):
        def purchase_then_cancel(vehicle_id, venue_id, good, units):
            executor.cancel()
            return fill(vehicle_id, venue_id, good, units)

        trade.purchase.side_effect = purchase_then_cancel
        vehicle = make_vehicle()
        allocation = allocation_for(vehicle.vehicle_id, [batch("b1", 10), batch("b2", 10), batch("b3", 10)])

        executor.execute_allocation(allocation, vehicle, ledger)

        assert allocation.state == AllocationState.PARTIAL
        assert allocation.batch_status["b1"] == BatchStatus.SUCCEEDED
        assert allocation.batch_status["b2"] == BatchStatus.DROPPED
        assert allocation.batch_status["b3"] == BatchStatus.DROPPED
        assert vehicle.units_of("ELECTRONICS") == 10

    def test_deadline_passed_drops_batches(self, executor, trade, ledger, make_vehicle, fixed_now):
        vehicle = make_vehicle()
        allocation = allocation_for(vehicle.vehicle_id, [batch("b1", 10)])

        executor.execute_allocation(allocation, vehicle, ledger, deadline=fixed_now - timedelta(minutes=1))

        trade.purchase.assert_not_called()
        assert ledger.plan.failed_batches[0].reason == "deadline"


class TestExecuteAll:
    """Test concurrent execution across vehicles."""

    def test_runs_every_allocation(self, executor, ledger, make_vehicle):
        vehicles = {v.vehicle_id: v for v in (make_vehicle("A", capacity=30), make_vehicle("B", capacity=20))}
        allocations = [
            allocation_for("A", [batch("b1", 20), batch("b3", 5)]),
            allocation_for("B", [batch("b2", 20)]),
        ]

        results = executor.execute_all(allocations, vehicles, ledger, {"ELECTRONICS"})

        assert [a.state for a in results] == [AllocationState.COMPLETED, AllocationState.COMPLETED]
        assert ledger.plan.units_purchased == 45
        assert vehicles["A"].units_of("ELECTRONICS") == 25
        assert vehicles["B"].units_of("ELECTRONICS") == 20

    def test_one_vehicle_failing_does_not_affect_other(self, executor, trade, ledger, make_vehicle):
        def purchase(vehicle_id, venue_id, good, units):
            if vehicle_id == "A":
                raise TransientTradeError("A is cursed")
            return fill(vehicle_id, venue_id, good, units)

        trade.purchase.side_effect = purchase
        vehicles = {v.vehicle_id: v for v in (make_vehicle("A"), make_vehicle("B"))}

        results = executor.execute_all(
            [allocation_for("A", [batch("a1", 10)]), allocation_for("B", [batch("b1", 10)])],
            vehicles, ledger,
        )

        assert results[0].state == AllocationState.FAILED
        assert results[1].state == AllocationState.COMPLETED

    def test_empty(self, executor, ledger):
        assert executor.execute_all([], {}, ledger) == []


class TestFailureReason:

    def test_snake_case_kind(self):
        assert failure_reason(VenueDepletedError("x")) == "venue_depleted"
        assert failure_reason(RateLimitedError()) == "rate_limited"
        assert failure_reason(KeyError("x")) == "key_error"
