"""Unit tests for the procurement engine."""

import pytest

from procure_app.data.models import PlanStatus
from procure_app.engine import ProcurementEngine
from procure_app.errors import ConfigurationError
from procure_app.persistence.plan_archive import PlanArchive


class TestEngineInitialization:
    """Test engine construction and configuration handling."""

    def test_engine_initialization(self, make_engine) -> None:
        engine = make_engine()

        assert engine.config.retry.max_attempts == 5
        assert engine.config.rate_limit.min_interval_seconds == 0.0
        assert engine.archive is None

    def test_from_universe_wires_every_collaborator(self, universe, make_engine) -> None:
        engine = make_engine()

        assert engine.contracts is universe
        assert engine.locator.market is universe
        assert engine.executor.trade is universe
        assert engine.coordinator.delivery is universe

    def test_invalid_override_raises(self, make_engine) -> None:
        with pytest.raises(ConfigurationError) as exc_info:
            make_engine(overrides={"retry": {"max_attempts": 0}})

        assert exc_info.value.errors[0].field == "retry.max_attempts"

    def test_unknown_override_raises(self, make_engine) -> None:
        with pytest.raises(ConfigurationError):
            make_engine(overrides={"locator": {"tiebreak": "price"}})

    def test_invalid_goods_yaml_raises(self, universe, tmp_path) -> None:
        (tmp_path / "goods.yaml").write_text("goods:\n  FUEL:\n    price_band: [200, 50]\n")

        with pytest.raises(ConfigurationError):
            ProcurementEngine.from_universe(universe, config_dir=tmp_path)

    def test_goods_yaml_extends_knowledge(self, make_engine, tmp_path) -> None:
        (tmp_path / "goods.yaml").write_text(
            "goods:\n  FUEL:\n    price_band: [50, 200]\n    transaction_limit: 40\n"
        )

        engine = make_engine()

        assert engine.knowledge.get("FUEL").transaction_limit == 40
        assert engine.knowledge.get("FUEL").price_band == (50, 200)

    def test_engine_yaml_applied(self, make_engine, tmp_path) -> None:
        (tmp_path / "engine.yaml").write_text("locator:\n  tie_break: venue_id\n")

        engine = make_engine()

        assert engine.config.locator.tie_break == "venue_id"


class TestEngineAttempts:
    """Test per-attempt behaviour."""

    def test_each_attempt_gets_new_plan(self, make_engine, make_contract, make_vehicle, universe) -> None:
        vehicles = [make_vehicle(capacity=50)]
        universe.register_fleet(vehicles)
        contract = make_contract(units=10)
        universe.add_contract(contract)
        engine = make_engine()

        first = engine.plan_and_execute(make_contract(units=10), vehicles)
        second = engine.plan_and_execute(make_contract(units=10), vehicles)

        assert first.plan_id != second.plan_id
        assert first.plan_id.startswith("plan-CONTRACT-1-")

    def test_abandon_before_attempt_is_cleared(self, make_engine, make_contract, make_vehicle, universe) -> None:
        """A fresh attempt does not inherit an earlier abandon."""
        vehicles = [make_vehicle(capacity=50)]
        universe.register_fleet(vehicles)
        contract = make_contract(units=10)
        universe.add_contract(contract)
        engine = make_engine()

        engine.abandon()
        report = engine.plan_and_execute(contract, vehicles)

        assert report.plan_status == PlanStatus.COMPLETED
        assert report.units_purchased == 10

    def test_get_stats(self, make_engine) -> None:
        archive = PlanArchive(":memory:")
        engine = make_engine(archive=archive)

        stats = engine.get_stats()

        assert "rate_limiter" in stats
        assert "cargo" in stats
        assert stats["archive"]["total_plans"] == 0

    def test_archive_failure_becomes_issue(self, make_engine, make_contract, make_vehicle, universe) -> None:
        vehicles = [make_vehicle(capacity=50)]
        universe.register_fleet(vehicles)
        contract = make_contract(units=10)
        universe.add_contract(contract)
        archive = PlanArchive(":memory:")
        archive.close()

        report = make_engine(archive=archive).plan_and_execute(contract, vehicles)

        assert report.units_purchased == 10
        assert "Persistence" in [issue["type"] for issue in report.issues]
