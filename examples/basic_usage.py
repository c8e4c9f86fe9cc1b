#!/usr/bin/env python3
"""
Basic Usage Example - Procurement Planning & Allocation Engine

This script runs one procurement attempt against the in-memory universe. It
shows how to:
- Build a small world with venues, a fleet and a contract
- Initialize the engine
- Run a fulfillment attempt and read the report

Run: python examples/basic_usage.py
"""

import json

from procure_app.data.models import Contract, TradeOffer, Vehicle
from procure_app.engine import ProcurementEngine
from procure_app.errors import RateLimitedError
from procure_app.gateways.memory import InMemoryUniverse
from procure_app.logging.config import configure_logging


def build_world() -> InMemoryUniverse:
    """Two ELECTRONICS venues and a cheap-but-suspicious one."""
    world = InMemoryUniverse(credits=200_000)
    world.add_venue(
        "X1-DEMO-A1", "X1-DEMO", ("HIGH_TECH", "MARKETPLACE"),
        [TradeOffer("ELECTRONICS", purchase_price=1500, trade_volume=25)],
    )
    world.add_venue(
        "X1-DEMO-B2", "X1-DEMO", ("MARKETPLACE",),
        [TradeOffer("ELECTRONICS", purchase_price=1400, trade_volume=40),
         TradeOffer("FOOD", purchase_price=400, trade_volume=100, sell_price=350)],
    )
    world.add_venue(
        "X1-DEMO-C3", "X1-DEMO", ("HIGH_TECH", "MARKETPLACE"),
        [TradeOffer("ELECTRONICS", purchase_price=50_000, trade_volume=500)],
    )
    world.add_waypoint("X1-DEMO-HQ", "X1-DEMO")

    # One rate-limited response to show the shared backoff
    world.script_failure("purchase", RateLimitedError("429 Too Many Requests", retry_after=0.5))
    return world


def main():
    """Main example function."""
    print("🚀 Procurement Engine - Basic Usage Example")
    print("=" * 50)

    configure_logging(level="INFO")

    world = build_world()
    fleet = [
        Vehicle("HAULER-1", system="X1-DEMO", waypoint="X1-DEMO-HQ", capacity=30),
        Vehicle("HAULER-2", system="X1-DEMO", waypoint="X1-DEMO-B2", capacity=30,
                cargo={"FOOD": 10}),
    ]
    contract = Contract(
        contract_id="CONTRACT-DEMO",
        good="ELECTRONICS",
        units_required=45,
        destination="X1-DEMO-HQ",
        per_delivery_limit=20,
    )
    world.register_fleet(fleet)
    world.add_contract(contract)

    engine = ProcurementEngine.from_universe(
        world, overrides={"rate_limit": {"min_interval_seconds": 0.05}}
    )

    print(f"\n📋 Procuring {contract.units_required} {contract.good} for {contract.contract_id}")
    report = engine.run(contract.contract_id, fleet)

    print("\n📊 Report")
    print(json.dumps(report.to_dict(), indent=2, default=str))

    print(f"\n✅ Purchased {report.units_purchased}, delivered {report.units_delivered}")
    if report.shortfall:
        print(f"⚠️  Shortfall of {report.shortfall} units")
    print(f"💰 Credits left: {world.credits}")


if __name__ == "__main__":
    main()
