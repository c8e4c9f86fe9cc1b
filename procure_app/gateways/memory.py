"""
In-memory collaborator implementations.

``InMemoryUniverse`` implements every gateway interface over a small mutable
world: venues with finite supply, vehicle positions, contracts and credits.
Failures can be scripted per operation so tests and dry runs can exercise
rate limiting, depletion and rejections without a network.
"""

import threading
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta
from typing import Any, Callable, Optional

from ..data.models import (
    CargoReceipt,
    Contract,
    ContractStatus,
    DeliveryReceipt,
    NavigationResult,
    PurchaseReceipt,
    TradeOffer,
    Venue,
)
from ..errors import (
    ContractExpiredError,
    DeliveryFailedError,
    NavigationFailedError,
    ProcurementError,
    PurchaseRejectedError,
    SaleRejectedError,
    VenueDepletedError,
)
from ..utils.time import is_expired, utc_now
from .base import ContractSource, DeliveryClient, MarketQuery, NavigationClient, TradeClient


@dataclass
class MarketState:
    """Mutable venue state behind the snapshots handed out."""
    venue_id: str
    system: str
    traits: tuple = ()
    offers: dict[str, TradeOffer] = field(default_factory=dict)

    def snapshot(self) -> Venue:
        return Venue(
            venue_id=self.venue_id,
            system=self.system,
            traits=tuple(self.traits),
            offers=tuple(self.offers[good] for good in sorted(self.offers)),
        )


@dataclass
class ScriptedFailure:
    operation: str
    error: ProcurementError
    remaining: int = 1
    key: Optional[str] = None


class InMemoryUniverse(ContractSource, MarketQuery, TradeClient, NavigationClient, DeliveryClient):
    """Thread-safe fake of the trading world."""

    def __init__(
        self,
        credits: Optional[int] = None,
        travel_seconds: float = 0.0,
        clock: Callable[[], datetime] = utc_now
    ) -> None:
        self.credits = credits
        self.travel_seconds = travel_seconds
        self._clock = clock
        self._lock = threading.RLock()
        self._markets: dict[str, MarketState] = {}
        self._positions: dict[str, str] = {}
        self._waypoints: dict[str, str] = {}          # waypoint -> system
        self._contracts: dict[str, Contract] = {}
        self._failures: list[ScriptedFailure] = []
        self.calls: list[tuple] = []
        self.fulfilled: list[str] = []

    # World setup

    def add_venue(
        self,
        venue_id: str,
        system: str,
        traits: tuple = (),
        offers: Optional[list[TradeOffer]] = None
    ) -> None:
        with self._lock:
            self._markets[venue_id] = MarketState(
                venue_id=venue_id,
                system=system,
                traits=tuple(traits),
                offers={offer.good: offer for offer in offers or []},
            )
            self._waypoints[venue_id] = system

    def add_waypoint(self, waypoint: str, system: str) -> None:
        with self._lock:
            self._waypoints[waypoint] = system

    def place_vehicle(self, vehicle_id: str, waypoint: str) -> None:
        with self._lock:
            self._positions[vehicle_id] = waypoint

    def register_fleet(self, vehicles) -> None:
        """Place every vehicle at its current waypoint."""
        with self._lock:
            for vehicle in vehicles:
                self._positions[vehicle.vehicle_id] = vehicle.waypoint
                self._waypoints.setdefault(vehicle.waypoint, vehicle.system)

    def add_contract(self, contract: Contract) -> None:
        with self._lock:
            self._contracts[contract.contract_id] = replace(contract)
            self._waypoints.setdefault(contract.destination, contract.destination.rsplit("-", 1)[0])

    def script_failure(
        self,
        operation: str,
        error: ProcurementError,
        times: int = 1,
        key: Optional[str] = None
    ) -> None:
        """
        Make the next ``times`` calls of ``operation`` raise ``error``.

        ``key`` narrows the failure to one venue (purchase, sell), vehicle
        (navigate), system (get_venues) or contract (deliver, fulfill).
        """
        with self._lock:
            self._failures.append(ScriptedFailure(operation, error, times, key))

    def volume_of(self, venue_id: str, good: str) -> int:
        with self._lock:
            offer = self._markets[venue_id].offers.get(good)
            return offer.trade_volume if offer else 0

    def position_of(self, vehicle_id: str) -> Optional[str]:
        with self._lock:
            return self._positions.get(vehicle_id)

    def contract_state(self, contract_id: str) -> Contract:
        with self._lock:
            return replace(self._contracts[contract_id])

    def call_count(self, operation: str) -> int:
        with self._lock:
            return sum(1 for call in self.calls if call[0] == operation)

    def _enter(self, operation: str, key: Optional[str], *args: Any) -> None:
        """Log the call and raise a scripted failure if one matches."""
        self.calls.append((operation, key) + args)
        for failure in self._failures:
            if failure.operation != operation or failure.remaining <= 0:
                continue
            if failure.key is not None and failure.key != key:
                continue
            failure.remaining -= 1
            raise failure.error

    # ContractSource

    def get_contract(self, contract_id: str) -> Contract:
        with self._lock:
            self._enter("get_contract", contract_id)
            return replace(self._contracts[contract_id])

    # MarketQuery

    def get_venues(self, system: str) -> list[Venue]:
        with self._lock:
            self._enter("get_venues", system)
            return [
                market.snapshot()
                for market in sorted(self._markets.values(), key=lambda m: m.venue_id)
                if market.system == system
            ]

    # TradeClient

    def purchase(self, vehicle_id: str, venue_id: str, good: str, units: int) -> PurchaseReceipt:
        with self._lock:
            self._enter("purchase", venue_id, vehicle_id, good, units)

            if self._positions.get(vehicle_id) != venue_id:
                raise PurchaseRejectedError(
                    f"{vehicle_id} is not docked at {venue_id}", venue_id=venue_id, good=good
                )

            market = self._markets.get(venue_id)
            offer = market.offers.get(good) if market else None
            if offer is None or offer.trade_volume <= 0:
                raise VenueDepletedError(
                    f"{venue_id} has no {good} left", venue_id=venue_id, good=good
                )

            bought = min(units, offer.trade_volume)
            total = bought * offer.purchase_price
            if self.credits is not None:
                if self.credits < total:
                    raise PurchaseRejectedError(
                        f"insufficient credits for {bought} {good}", venue_id=venue_id, good=good,
                        context={"credits": self.credits, "cost": total}
                    )
                self.credits -= total

            market.offers[good] = replace(offer, trade_volume=offer.trade_volume - bought)
            return PurchaseReceipt(
                units_purchased=bought, unit_price=offer.purchase_price, total_price=total
            )

    def sell(self, vehicle_id: str, good: str, units: int) -> CargoReceipt:
        with self._lock:
            waypoint = self._positions.get(vehicle_id)
            self._enter("sell", waypoint, vehicle_id, good, units)

            market = self._markets.get(waypoint)
            offer = market.offers.get(good) if market else None
            if offer is None or offer.sell_price <= 0:
                raise SaleRejectedError(
                    f"no buyer for {good} at {waypoint}", vehicle_id=vehicle_id, good=good
                )

            revenue = units * offer.sell_price
            if self.credits is not None:
                self.credits += revenue
            return CargoReceipt(good=good, units_removed=units, revenue=revenue)

    def jettison(self, vehicle_id: str, good: str, units: int) -> CargoReceipt:
        with self._lock:
            self._enter("jettison", vehicle_id, good, units)
            return CargoReceipt(good=good, units_removed=units)

    # NavigationClient

    def navigate(self, vehicle_id: str, destination: str) -> NavigationResult:
        with self._lock:
            self._enter("navigate", vehicle_id, destination)
            if destination not in self._waypoints:
                raise NavigationFailedError(
                    f"unknown waypoint {destination}",
                    vehicle_id=vehicle_id,
                    destination=destination,
                )
            self._positions[vehicle_id] = destination
            return NavigationResult(
                vehicle_id=vehicle_id,
                destination=destination,
                arrival=self._clock() + timedelta(seconds=self.travel_seconds),
            )

    # DeliveryClient

    def deliver(self, contract_id: str, vehicle_id: str, good: str, units: int) -> DeliveryReceipt:
        with self._lock:
            self._enter("deliver", contract_id, vehicle_id, good, units)
            contract = self._contracts.get(contract_id)
            if contract is None:
                raise DeliveryFailedError(f"unknown contract {contract_id}", contract_id=contract_id)
            if contract.deadline is not None and is_expired(contract.deadline, self._clock()):
                contract.status = ContractStatus.EXPIRED
                raise ContractExpiredError(f"contract {contract_id} expired", contract_id=contract_id)
            if self._positions.get(vehicle_id) != contract.destination:
                raise DeliveryFailedError(
                    f"{vehicle_id} is not at {contract.destination}",
                    contract_id=contract_id, vehicle_id=vehicle_id,
                )
            if good != contract.good:
                raise DeliveryFailedError(
                    f"contract {contract_id} does not accept {good}",
                    contract_id=contract_id, vehicle_id=vehicle_id,
                )
            if contract.per_delivery_limit and units > contract.per_delivery_limit:
                raise DeliveryFailedError(
                    f"delivery of {units} exceeds limit {contract.per_delivery_limit}",
                    contract_id=contract_id, vehicle_id=vehicle_id,
                )

            accepted = min(units, contract.units_outstanding)
            contract.units_fulfilled += accepted
            contract.status = (
                ContractStatus.FULFILLED if contract.units_outstanding == 0
                else ContractStatus.PARTIALLY_FULFILLED
            )
            return DeliveryReceipt(
                units_delivered=accepted,
                contract_units_fulfilled=contract.units_fulfilled,
                contract_units_required=contract.units_required,
            )

    def fulfill(self, contract_id: str) -> None:
        with self._lock:
            self._enter("fulfill", contract_id)
            contract = self._contracts[contract_id]
            if contract.units_outstanding > 0:
                raise DeliveryFailedError(
                    f"contract {contract_id} still needs {contract.units_outstanding} units",
                    contract_id=contract_id,
                )
            contract.status = ContractStatus.FULFILLED
            self.fulfilled.append(contract_id)
