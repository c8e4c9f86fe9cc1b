"""Pytest configuration and shared fixtures."""

from datetime import datetime, timezone
from typing import Callable

import pytest

from procure_app.cargo.manager import CargoManager
from procure_app.config.defaults import RateLimitParams, RetryParams
from procure_app.data.models import Contract, TradeOffer, Vehicle
from procure_app.engine import ProcurementEngine
from procure_app.execution.rate_limiter import RateLimiter
from procure_app.execution.retry import RetryPolicy
from procure_app.gateways.memory import InMemoryUniverse
from procure_app.knowledge.products import ProductKnowledgeBase


class SleepRecorder:
    """Stand-in for ``time.sleep`` that records instead of blocking."""

    def __init__(self):
        self.calls: list[float] = []

    def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)

    @property
    def total(self) -> float:
        return sum(self.calls)


@pytest.fixture
def sleeper() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture
def knowledge() -> ProductKnowledgeBase:
    return ProductKnowledgeBase()


@pytest.fixture
def limiter(sleeper) -> RateLimiter:
    """Rate limiter with no spacing that never blocks."""
    return RateLimiter(RateLimitParams(min_interval_seconds=0.0), sleep=sleeper)


@pytest.fixture
def retry_policy(sleeper) -> RetryPolicy:
    return RetryPolicy(RetryParams(max_attempts=3), sleep=sleeper)


@pytest.fixture
def universe() -> InMemoryUniverse:
    """World with two ELECTRONICS venues in system X1-A."""
    world = InMemoryUniverse()
    world.add_venue(
        "X1-A-M1", "X1-A", ("HIGH_TECH", "MARKETPLACE"),
        [TradeOffer("ELECTRONICS", purchase_price=1500, trade_volume=100, sell_price=1400),
         TradeOffer("FOOD", purchase_price=500, trade_volume=50, sell_price=450)],
    )
    world.add_venue(
        "X1-A-M2", "X1-A", ("MARKETPLACE",),
        [TradeOffer("ELECTRONICS", purchase_price=1400, trade_volume=100)],
    )
    world.add_waypoint("X1-A-HQ", "X1-A")
    return world


@pytest.fixture
def make_vehicle() -> Callable[..., Vehicle]:
    def _make(vehicle_id: str = "SHIP-1", capacity: int = 40, waypoint: str = "X1-A-HQ",
              system: str = "X1-A", cargo: dict = None) -> Vehicle:
        return Vehicle(
            vehicle_id=vehicle_id,
            system=system,
            waypoint=waypoint,
            capacity=capacity,
            cargo=dict(cargo or {}),
        )
    return _make


@pytest.fixture
def make_contract() -> Callable[..., Contract]:
    def _make(units: int = 45, good: str = "ELECTRONICS", destination: str = "X1-A-HQ",
              **kwargs) -> Contract:
        return Contract(
            contract_id=kwargs.pop("contract_id", "CONTRACT-1"),
            good=good,
            units_required=units,
            destination=destination,
            **kwargs,
        )
    return _make


@pytest.fixture
def cargo_manager(universe, limiter) -> CargoManager:
    return CargoManager(universe, limiter)


@pytest.fixture
def make_engine(universe, sleeper, tmp_path) -> Callable[..., ProcurementEngine]:
    """Engine over ``universe`` with an empty config dir and no real sleeping."""
    def _make(overrides: dict = None, **kwargs) -> ProcurementEngine:
        merged = {"rate_limit": {"min_interval_seconds": 0.0}}
        for section, values in (overrides or {}).items():
            merged.setdefault(section, {}).update(values)
        kwargs.setdefault("config_dir", tmp_path)
        kwargs.setdefault("sleep", sleeper)
        return ProcurementEngine.from_universe(kwargs.pop("world", universe), overrides=merged, **kwargs)
    return _make


@pytest.fixture
def fixed_now() -> datetime:
    return datetime(2026, 1, 1, 12, 0, 0, tzinfo=timezone.utc)
