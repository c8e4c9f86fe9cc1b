"""Tests for the plan progress ledger."""

import threading

import pytest

from procure_app.data.models import (
    ProcurementPlan,
    PurchaseBatch,
    TransactionOutcome,
)
from procure_app.execution.accounting import PlanLedger


@pytest.fixture
def plan(fixed_now):
    return ProcurementPlan(
        plan_id="plan-1",
        contract_id="CONTRACT-1",
        good="ELECTRONICS",
        units_to_source=100,
        remaining_units_needed=100,
        created_at=fixed_now,
    )


def batch(batch_id="b1", units=20):
    return PurchaseBatch(batch_id, "V1", "X1-A", "ELECTRONICS", units, 1500)


class TestPlanLedger:
    """Test synchronized accounting."""

    def test_purchase_decrements_remaining(self, plan):
        ledger = PlanLedger(plan)
        record = ledger.record_purchase(batch(), "SHIP-1", 20, 30000)

        assert record.outcome == TransactionOutcome.SUCCEEDED
        assert plan.units_purchased == 20
        assert plan.remaining_units_needed == 80
        assert plan.transactions == [record]

    def test_short_fill_is_partial(self, plan):
        record = PlanLedger(plan).record_purchase(batch(units=20), "SHIP-1", 12, 18000)
        assert record.outcome == TransactionOutcome.PARTIAL

    def test_remaining_never_negative(self, plan):
        ledger = PlanLedger(plan)
        for i in range(6):
            ledger.record_purchase(batch(f"b{i}"), "SHIP-1", 20, 1)

        assert plan.units_purchased == 120
        assert plan.remaining_units_needed == 0

    def test_attempts_logged_without_units(self, plan):
        ledger = PlanLedger(plan)
        ledger.record_attempt(batch(), "SHIP-1", TransactionOutcome.RATE_LIMITED, 1)

        assert plan.transactions[0].units_purchased == 0
        assert plan.units_purchased == 0

    def test_failures_and_depletion(self, plan):
        ledger = PlanLedger(plan)
        ledger.record_failure(batch("b1"), "SHIP-1", "transient_trade", attempts=5)
        ledger.mark_depleted("V1")

        assert plan.failed_batches[0].reason == "transient_trade"
        assert plan.failed_batches[0].attempts == 5
        assert ledger.is_depleted("V1")
        assert plan.rejected_venues["V1"] == "depleted"
        assert len(ledger.failed_since(0)) == 1
        assert ledger.failed_since(1) == []

    def test_concurrent_purchases_are_consistent(self, plan):
        plan.units_to_source = plan.remaining_units_needed = 4000
        ledger = PlanLedger(plan)

        def buy(worker):
            for i in range(100):
                ledger.record_purchase(batch(f"w{worker}-{i}", units=10), f"SHIP-{worker}", 10, 10)

        threads = [threading.Thread(target=buy, args=(w,)) for w in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert plan.units_purchased == 4000
        assert plan.remaining_units_needed == 0
        assert len(plan.transactions) == 400
        assert ledger.snapshot()["transaction_count"] == 400
