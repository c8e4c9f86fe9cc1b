"""
Collaborator interfaces consumed by the procurement engine.

Implementations wrap the real network client; failures must be raised as the
classified exceptions from ``procure_app.errors`` so the executor can decide
between retrying, failing a batch, and aborting. Callers route every method
through the shared ``RateLimiter``; implementations do not rate-limit.
"""

from abc import ABC, abstractmethod

from ..data.models import (
    CargoReceipt,
    Contract,
    DeliveryReceipt,
    NavigationResult,
    PurchaseReceipt,
    Venue,
)


class ContractSource(ABC):
    """Yields contracts to procure for."""

    @abstractmethod
    def get_contract(self, contract_id: str) -> Contract:
        """Fetch the current state of a contract."""


class MarketQuery(ABC):
    """Market snapshots per region."""

    @abstractmethod
    def get_venues(self, system: str) -> list[Venue]:
        """
        Venues in ``system`` with their traits and current offers.

        Data may be stale or partial.
        """


class TradeClient(ABC):
    """Buying and clearing cargo."""

    @abstractmethod
    def purchase(self, vehicle_id: str, venue_id: str, good: str, units: int) -> PurchaseReceipt:
        """
        Buy ``units`` (<= transaction limit) of ``good`` at ``venue_id``.

        Raises:
            RateLimitedError: global rate limit hit
            TransientTradeError: timeout or server error
            PurchaseRejectedError: venue refused the purchase
            VenueDepletedError: offer gone or volume exhausted
        """

    @abstractmethod
    def sell(self, vehicle_id: str, good: str, units: int) -> CargoReceipt:
        """
        Sell cargo at the vehicle's current location.

        Raises:
            SaleRejectedError: no buyer for the good here
        """

    @abstractmethod
    def jettison(self, vehicle_id: str, good: str, units: int) -> CargoReceipt:
        """Discard cargo to free space."""


class NavigationClient(ABC):
    """Vehicle movement."""

    @abstractmethod
    def navigate(self, vehicle_id: str, destination: str) -> NavigationResult:
        """
        Start moving ``vehicle_id`` to ``destination``.

        Raises:
            NavigationFailedError: the collaborator exhausted its own retries
        """


class DeliveryClient(ABC):
    """Contract deliveries."""

    @abstractmethod
    def deliver(self, contract_id: str, vehicle_id: str, good: str, units: int) -> DeliveryReceipt:
        """
        Hand over cargo against a contract at its destination.

        Raises:
            DeliveryFailedError: delivery refused or failed
            ContractExpiredError: contract no longer accepts deliveries
        """

    @abstractmethod
    def fulfill(self, contract_id: str) -> None:
        """Close a contract whose deliveries are complete."""
