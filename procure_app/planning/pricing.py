"""
Reference price band validation.

An offer is acceptable when its unit price sits inside the good's reference
band, widened by a small margin on top and a tolerance at the bottom. The
check is independent of the total quantity required and of the budget.
"""

from typing import Optional

from ..config.defaults import PricingParams
from ..errors import PriceOutOfBandError
from ..knowledge.products import ProductKnowledgeBase


class PriceValidator:
    """Accepts or rejects venue prices per unit."""

    def __init__(
        self,
        knowledge: ProductKnowledgeBase,
        params: Optional[PricingParams] = None
    ) -> None:
        self.knowledge = knowledge
        self.params = params or PricingParams()

    def reference_band(self, good: str) -> tuple:
        """Reference band for ``good``, or the global default band."""
        band = self.knowledge.get(good).price_band
        if band is None:
            return (self.params.default_band_min, self.params.default_band_max)
        return band

    def accepted_range(self, good: str) -> tuple:
        """Inclusive (lowest, highest) acceptable unit price."""
        band_min, band_max = self.reference_band(good)
        return (band_min * self.params.min_tolerance, band_max * self.params.max_margin)

    def is_acceptable(self, good: str, price: float) -> bool:
        lowest, highest = self.accepted_range(good)
        return lowest <= price <= highest

    def check(self, good: str, price: float, venue_id: Optional[str] = None) -> None:
        """
        Raise ``PriceOutOfBandError`` if ``price`` is outside the accepted range.

        Args:
            good: Good being bought
            price: Offered unit price
            venue_id: Venue posting the price, for diagnostics
        """
        lowest, highest = self.accepted_range(good)
        if lowest <= price <= highest:
            return

        direction = "above" if price > highest else "below"
        raise PriceOutOfBandError(
            f"{good} at {venue_id or 'venue'} priced {price} is {direction} "
            f"accepted range [{lowest:g}, {highest:g}]",
            good=good,
            venue_id=venue_id,
            price=price,
            accepted_range=(lowest, highest),
        )
