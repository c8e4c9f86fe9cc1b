"""Tests for venue discovery and ranking."""

from unittest.mock import Mock

import pytest

from procure_app.config.defaults import LocatorParams
from procure_app.data.models import TradeOffer, Venue
from procure_app.errors import TransientTradeError
from procure_app.gateways.base import MarketQuery
from procure_app.planning.locator import VenueLocator, trait_score


def venue(venue_id, system="X1-A", traits=("MARKETPLACE",), volume=50, price=1500):
    return Venue(venue_id, system, traits, (TradeOffer("ELECTRONICS", price, volume),))


class TestTraitScore:

    def test_counts_matching_traits(self, knowledge):
        info = knowledge.get("ELECTRONICS")
        assert trait_score(venue("V", traits=("HIGH_TECH", "MARKETPLACE")), info) == 2
        assert trait_score(venue("V", traits=("MARKETPLACE", "SHIPYARD")), info) == 1
        assert trait_score(venue("V", traits=()), info) == 0


class TestVenueLocator:
    """Test region discovery and ranking."""

    def test_regions_from_vehicle_locations(self, make_vehicle):
        vehicles = [
            make_vehicle("S1", system="X1-A"),
            make_vehicle("S2", system="X1-B"),
            make_vehicle("S3", system="X1-A"),
        ]
        assert VenueLocator.regions_for(vehicles) == ["X1-A", "X1-B"]

    def test_one_query_per_region(self, knowledge, limiter, make_vehicle):
        market = Mock(spec=MarketQuery)
        market.get_venues.return_value = []
        locator = VenueLocator(market, knowledge, limiter)

        list(locator.locate("ELECTRONICS", [make_vehicle("S1"), make_vehicle("S2"),
                                            make_vehicle("S3", system="X1-B")]))

        assert [c.args for c in market.get_venues.call_args_list] == [("X1-A",), ("X1-B",)]

    def test_ranking_traits_then_volume_then_price(self, knowledge, limiter, make_vehicle):
        market = Mock(spec=MarketQuery)
        market.get_venues.return_value = [
            venue("PLAIN-BIG", volume=500),
            venue("TECH-SMALL", traits=("HIGH_TECH", "MARKETPLACE"), volume=10),
            venue("TECH-BIG", traits=("HIGH_TECH", "MARKETPLACE"), volume=90),
            venue("PLAIN-CHEAP", volume=500, price=1100),
        ]
        locator = VenueLocator(market, knowledge, limiter)

        ranked = [v.venue_id for v in locator.locate("ELECTRONICS", [make_vehicle()])]
        assert ranked == ["TECH-BIG", "TECH-SMALL", "PLAIN-CHEAP", "PLAIN-BIG"]

    def test_venue_id_tie_break(self, knowledge, limiter, make_vehicle):
        market = Mock(spec=MarketQuery)
        market.get_venues.return_value = [venue("B", price=1000), venue("A", price=1900)]
        locator = VenueLocator(market, knowledge, limiter, LocatorParams(tie_break="venue_id"))

        assert [v.venue_id for v in locator.locate("ELECTRONICS", [make_vehicle()])] == ["A", "B"]

    def test_venues_without_good_excluded(self, knowledge, limiter, make_vehicle):
        market = Mock(spec=MarketQuery)
        market.get_venues.return_value = [
            venue("HAS"),
            Venue("NONE", "X1-A", ("MARKETPLACE",), (TradeOffer("FOOD", 400, 50),)),
            venue("EMPTY", volume=0),
        ]
        locator = VenueLocator(market, knowledge, limiter)

        assert [v.venue_id for v in locator.locate("ELECTRONICS", [make_vehicle()])] == ["HAS"]

    def test_empty_result_is_normal(self, knowledge, limiter, make_vehicle):
        market = Mock(spec=MarketQuery)
        market.get_venues.return_value = []
        locator = VenueLocator(market, knowledge, limiter)

        assert list(locator.locate("ELECTRONICS", [make_vehicle()])) == []

    def test_failing_region_skipped(self, knowledge, limiter, make_vehicle):
        market = Mock(spec=MarketQuery)

        def get_venues(system):
            if system == "X1-B":
                raise TransientTradeError("timeout")
            return [venue("V1", system=system)]

        market.get_venues.side_effect = get_venues
        locator = VenueLocator(market, knowledge, limiter)
        ranked = list(locator.locate("ELECTRONICS", [make_vehicle(system="X1-B"), make_vehicle("S2")]))

        assert [v.venue_id for v in ranked] == ["V1"]

    def test_locate_is_lazy(self, knowledge, limiter, make_vehicle):
        market = Mock(spec=MarketQuery)
        market.get_venues.return_value = [venue("V1")]
        locator = VenueLocator(market, knowledge, limiter)

        iterator = locator.locate("ELECTRONICS", [make_vehicle()])
        market.get_venues.assert_not_called()
        next(iterator)
        market.get_venues.assert_called_once()
