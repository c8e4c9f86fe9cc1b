"""Tests for the product knowledge base."""

import pytest
from dataclasses import FrozenInstanceError

from procure_app.config.defaults import ProductDefaults
from procure_app.knowledge.products import PRODUCT_TABLE, ProductInfo, ProductKnowledgeBase


class TestProductInfo:
    """Test ProductInfo helpers."""

    def test_cargo_space_scales_with_units(self):
        info = ProductInfo("CRATES", ("MARKETPLACE",), cargo_per_unit=3)
        assert info.cargo_space(4) == 12

    def test_units_fitting_rounds_down(self):
        info = ProductInfo("CRATES", ("MARKETPLACE",), cargo_per_unit=3)
        assert info.units_fitting(10) == 3
        assert info.units_fitting(2) == 0
        assert info.units_fitting(-5) == 0

    def test_is_immutable(self):
        info = PRODUCT_TABLE["ELECTRONICS"]
        with pytest.raises(FrozenInstanceError):
            info.transaction_limit = 99


class TestProductKnowledgeBase:
    """Test lookups, defaults and overrides."""

    def test_known_good_record(self, knowledge):
        """ELECTRONICS carries its traits, band and limit."""
        info = knowledge.get("ELECTRONICS")

        assert info.preferred_traits == ("HIGH_TECH", "MARKETPLACE")
        assert info.price_band == (1000, 2000)
        assert info.transaction_limit == 20
        assert info.is_default is False

    def test_all_table_goods_are_known(self, knowledge):
        expected = {
            "ELECTRONICS", "MACHINERY", "MEDICINE", "FOOD", "CLOTHING",
            "TOOLS", "WEAPONS", "DRUGS", "EQUIPMENT", "JEWELRY",
        }
        assert set(knowledge.goods()) == expected
        assert all(knowledge.is_known_good(good) for good in expected)

    def test_unknown_good_gets_default_record(self, knowledge):
        """Unknown goods resolve to the conservative default, never raise."""
        info = knowledge.get("UNOBTAINIUM")

        assert info.good == "UNOBTAINIUM"
        assert info.is_default is True
        assert info.preferred_traits == ("MARKETPLACE",)
        assert info.transaction_limit == 10
        assert info.price_band is None
        assert "UNOBTAINIUM" not in knowledge

    def test_custom_defaults(self):
        kb = ProductKnowledgeBase(defaults=ProductDefaults(transaction_limit=5, cargo_per_unit=2))
        info = kb.get("MYSTERY")
        assert info.transaction_limit == 5
        assert info.cargo_per_unit == 2

    def test_override_changes_only_given_fields(self):
        kb = ProductKnowledgeBase({"ELECTRONICS": {"transaction_limit": 5}})
        info = kb.get("ELECTRONICS")

        assert info.transaction_limit == 5
        assert info.price_band == (1000, 2000)
        assert info.preferred_traits == ("HIGH_TECH", "MARKETPLACE")

    def test_override_adds_new_good(self):
        kb = ProductKnowledgeBase({
            "FUEL": {"preferred_traits": ["FUEL_STATION"], "price_band": [50, 200], "transaction_limit": 40}
        })
        info = kb.get("FUEL")

        assert kb.is_known_good("FUEL")
        assert info.preferred_traits == ("FUEL_STATION",)
        assert info.price_band == (50, 200)
        assert info.transaction_limit == 40
        assert info.is_default is False

    def test_overrides_do_not_leak_into_table(self):
        ProductKnowledgeBase({"ELECTRONICS": {"transaction_limit": 1}})
        assert PRODUCT_TABLE["ELECTRONICS"].transaction_limit == 20
