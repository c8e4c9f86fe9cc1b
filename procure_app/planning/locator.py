"""
Venue discovery and ranking.

Regions are derived from where the fleet currently is; nothing is hardcoded.
Candidates are ranked by preferred-trait matches, then advertised trade
volume, then a configurable tie-break.
"""

from typing import Iterable, Iterator, Optional

from ..config.defaults import LocatorParams
from ..data.models import Vehicle, Venue
from ..errors import ExecutionError
from ..execution.rate_limiter import RateLimiter
from ..gateways.base import MarketQuery
from ..knowledge.products import ProductInfo, ProductKnowledgeBase
from ..logging.config import get_planning_logger

logger = get_planning_logger(__name__)


def trait_score(venue: Venue, info: ProductInfo) -> int:
    """Number of the good's preferred traits present on the venue."""
    venue_traits = set(venue.traits)
    return sum(1 for trait in info.preferred_traits if trait in venue_traits)


class VenueLocator:
    """Finds venues offering a good near any fleet vehicle."""

    def __init__(
        self,
        market: MarketQuery,
        knowledge: ProductKnowledgeBase,
        limiter: RateLimiter,
        params: Optional[LocatorParams] = None
    ) -> None:
        self.market = market
        self.knowledge = knowledge
        self.limiter = limiter
        self.params = params or LocatorParams()

    @staticmethod
    def regions_for(vehicles: Iterable[Vehicle]) -> list[str]:
        """Distinct systems the fleet occupies, in first-seen order."""
        regions: list[str] = []
        for vehicle in vehicles:
            if vehicle.system not in regions:
                regions.append(vehicle.system)
        return regions

    def discover(self, good: str, vehicles: Iterable[Vehicle]) -> list[Venue]:
        """Query every fleet region and keep venues that offer ``good``."""
        candidates: dict[str, Venue] = {}

        for region in self.regions_for(vehicles):
            try:
                venues = self.limiter.call(self.market.get_venues, region)
            except ExecutionError as e:
                logger.warning(
                    "Market query failed, skipping region",
                    region=region,
                    error=str(e)
                )
                continue

            for venue in venues:
                offer = venue.offer_for(good)
                if offer is None or offer.trade_volume <= 0:
                    continue
                candidates.setdefault(venue.venue_id, venue)

        return list(candidates.values())

    def rank(self, good: str, venues: Iterable[Venue]) -> list[Venue]:
        """Order venues by trait matches, trade volume, then tie-break."""
        info = self.knowledge.get(good)

        def sort_key(venue: Venue) -> tuple:
            offer = venue.offer_for(good)
            volume = offer.trade_volume if offer else 0
            if self.params.tie_break == "price":
                tie = (offer.purchase_price if offer else 0, venue.venue_id)
            else:
                tie = (venue.venue_id,)
            return (-trait_score(venue, info), -volume) + tie

        return sorted(venues, key=sort_key)

    def locate(self, good: str, vehicles: Iterable[Vehicle]) -> Iterator[Venue]:
        """
        Lazily yield ranked venues offering ``good``.

        An empty sequence is a normal outcome, not an error. Callers may stop
        consuming once their need is met.
        """
        vehicles = list(vehicles)
        ranked = self.rank(good, self.discover(good, vehicles))

        logger.info(
            "Located candidate venues",
            good=good,
            regions=self.regions_for(vehicles),
            candidate_count=len(ranked)
        )

        yield from ranked
