"""
Product knowledge base for marketplace procurement.

A static, enumerable table keyed by good identifier. Goods missing from the
table resolve to a conservative default record instead of ad hoc branching.
"""

from dataclasses import dataclass, replace
from typing import Any, Optional

import structlog

from ..config.defaults import ProductDefaults

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class ProductInfo:
    """Static procurement facts for one good."""
    good: str
    preferred_traits: tuple                 # Most specific first
    price_band: Optional[tuple] = None      # (min, max) credits/unit; None = use global band
    transaction_limit: int = 10             # Max units per purchase call
    cargo_per_unit: int = 1                 # Cargo space per unit
    is_default: bool = False                # True when synthesized for an unknown good

    def cargo_space(self, units: int) -> int:
        """Cargo space consumed by ``units`` of this good."""
        return units * self.cargo_per_unit

    def units_fitting(self, space: int) -> int:
        """Whole units of this good that fit into ``space``."""
        if self.cargo_per_unit <= 0:
            return 0
        return max(0, space) // self.cargo_per_unit


PRODUCT_TABLE: dict[str, ProductInfo] = {
    info.good: info
    for info in (
        ProductInfo("ELECTRONICS", ("HIGH_TECH", "MARKETPLACE"), (1000, 2000), 20, 1),
        ProductInfo("MACHINERY", ("INDUSTRIAL", "MARKETPLACE"), (800, 1500), 15, 1),
        ProductInfo("MEDICINE", ("RESEARCH", "MARKETPLACE"), (600, 1200), 25, 1),
        ProductInfo("FOOD", ("AGRICULTURAL", "MARKETPLACE"), (300, 800), 30, 1),
        ProductInfo("CLOTHING", ("MARKETPLACE", "INDUSTRIAL"), (400, 900), 25, 1),
        ProductInfo("TOOLS", ("INDUSTRIAL", "MARKETPLACE"), (500, 1000), 20, 1),
        ProductInfo("WEAPONS", ("MILITARY", "INDUSTRIAL", "MARKETPLACE"), (1200, 2500), 10, 1),
        ProductInfo("DRUGS", ("RESEARCH", "MARKETPLACE"), (800, 1800), 15, 1),
        ProductInfo("EQUIPMENT", ("INDUSTRIAL", "MARKETPLACE"), (600, 1400), 15, 1),
        ProductInfo("JEWELRY", ("MARKETPLACE",), (1000, 3000), 10, 1),
    )
}


class ProductKnowledgeBase:
    """Lookup of ``ProductInfo`` by good with a default fallback record."""

    def __init__(
        self,
        overrides: Optional[dict[str, dict[str, Any]]] = None,
        defaults: Optional[ProductDefaults] = None
    ) -> None:
        self.defaults = defaults or ProductDefaults()
        self._products = dict(PRODUCT_TABLE)

        for good, entry in (overrides or {}).items():
            self._products[good] = self._apply_override(good, entry)

    def _apply_override(self, good: str, entry: dict[str, Any]) -> ProductInfo:
        base = self._products.get(good) or self.default_record(good)
        changes: dict[str, Any] = {"is_default": False}

        if "preferred_traits" in entry:
            changes["preferred_traits"] = tuple(entry["preferred_traits"])
        if "price_band" in entry:
            low, high = entry["price_band"]
            changes["price_band"] = (low, high)
        if "transaction_limit" in entry:
            changes["transaction_limit"] = int(entry["transaction_limit"])
        if "cargo_per_unit" in entry:
            changes["cargo_per_unit"] = int(entry["cargo_per_unit"])

        logger.debug("Applied product override", good=good, fields=sorted(changes))
        return replace(base, **changes)

    def default_record(self, good: str) -> ProductInfo:
        """Conservative record used for goods missing from the table."""
        return ProductInfo(
            good=good,
            preferred_traits=tuple(self.defaults.preferred_traits),
            price_band=None,
            transaction_limit=self.defaults.transaction_limit,
            cargo_per_unit=self.defaults.cargo_per_unit,
            is_default=True,
        )

    def get(self, good: str) -> ProductInfo:
        """Product info for ``good``; never raises."""
        info = self._products.get(good)
        if info is None:
            return self.default_record(good)
        return info

    def is_known_good(self, good: str) -> bool:
        return good in self._products

    def goods(self) -> list[str]:
        """All goods with an explicit record, sorted."""
        return sorted(self._products)

    def __contains__(self, good: str) -> bool:
        return self.is_known_good(good)
