"""
Contract delivery coordination.

Moves the contract good from every vehicle holding it to the contract
destination and hands it over in increments the contract accepts. Vehicles
that cannot reach the destination or whose delivery fails keep their cargo.
"""

import time
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Iterable, Optional

from ..config.defaults import DeliveryParams
from ..data.models import Contract, ContractStatus, Vehicle
from ..errors import ContractExpiredError, ExecutionError
from ..execution.rate_limiter import RateLimiter
from ..execution.retry import RetryPolicy
from ..gateways.base import DeliveryClient, NavigationClient
from ..logging.config import get_execution_logger
from ..utils.time import is_expired, seconds_until, utc_now

logger = get_execution_logger(__name__)


class DeliveryStatus(str, Enum):
    """Per-vehicle delivery outcome."""
    SUCCESS = "success"
    PARTIAL = "partial"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass
class VehicleDelivery:
    """What one vehicle handed over."""
    vehicle_id: str
    status: DeliveryStatus
    units_delivered: int = 0
    units_retained: int = 0
    attempts: int = 0
    error: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "vehicle_id": self.vehicle_id,
            "status": self.status.value,
            "units_delivered": self.units_delivered,
            "units_retained": self.units_retained,
            "attempts": self.attempts,
            "error": self.error,
        }


@dataclass
class DeliveryOutcome:
    """Result of delivering a contract from the whole fleet."""
    contract_id: str
    contract_status: ContractStatus
    units_delivered: int = 0
    vehicles: list[VehicleDelivery] = field(default_factory=list)
    fulfilled: bool = False              # Fulfill call accepted
    issues: list[dict[str, Any]] = field(default_factory=list)


class DeliveryCoordinator:
    """Delivers purchased cargo against a contract."""

    def __init__(
        self,
        navigation: NavigationClient,
        delivery: DeliveryClient,
        limiter: RateLimiter,
        retry_policy: RetryPolicy,
        params: Optional[DeliveryParams] = None,
        clock: Callable[[], datetime] = utc_now,
        sleep: Callable[[float], None] = time.sleep
    ) -> None:
        self.navigation = navigation
        self.delivery = delivery
        self.limiter = limiter
        self.retry_policy = retry_policy
        self.params = params or DeliveryParams()
        self._clock = clock
        self._sleep = sleep

    def _expire(self, contract: Contract, outcome: DeliveryOutcome, error: Optional[BaseException] = None) -> None:
        contract.status = ContractStatus.EXPIRED
        outcome.contract_status = ContractStatus.EXPIRED
        issue = error.to_dict() if isinstance(error, ContractExpiredError) else {
            "type": "ContractExpired",
            "message": f"contract {contract.contract_id} deadline passed",
            "recoverable": False,
            "context": {"deadline": contract.deadline.isoformat() if contract.deadline else None},
        }
        outcome.issues.append(issue)
        logger.warning("Contract expired, retaining cargo", contract_id=contract.contract_id)

    def deliver(self, contract: Contract, vehicles: Iterable[Vehicle]) -> DeliveryOutcome:
        """
        Deliver the contract good from every vehicle that holds it.

        Args:
            contract: Contract to deliver against; updated in place
            vehicles: Fleet; only vehicles holding the good are visited

        Returns:
            DeliveryOutcome with per-vehicle results and the contract status
        """
        outcome = DeliveryOutcome(contract_id=contract.contract_id, contract_status=contract.status)

        if contract.deadline is not None and is_expired(contract.deadline, self._clock()):
            self._expire(contract, outcome)
            return outcome

        holders = sorted(
            (v for v in vehicles if v.units_of(contract.good) > 0),
            key=lambda v: (-v.units_of(contract.good), v.vehicle_id)
        )

        for vehicle in holders:
            if contract.units_outstanding <= 0:
                outcome.vehicles.append(VehicleDelivery(
                    vehicle_id=vehicle.vehicle_id,
                    status=DeliveryStatus.SKIPPED,
                    units_retained=vehicle.units_of(contract.good),
                ))
                continue
            if contract.deadline is not None and is_expired(contract.deadline, self._clock()):
                self._expire(contract, outcome)
                break

            result = self._deliver_from(contract, vehicle, outcome)
            outcome.vehicles.append(result)
            outcome.units_delivered += result.units_delivered
            if contract.status == ContractStatus.EXPIRED:
                break

        if contract.status != ContractStatus.EXPIRED:
            if contract.units_fulfilled >= contract.units_required:
                contract.status = ContractStatus.FULFILLED
            elif contract.units_fulfilled > 0:
                contract.status = ContractStatus.PARTIALLY_FULFILLED
        outcome.contract_status = contract.status

        if contract.status == ContractStatus.FULFILLED and self.params.fulfill_on_complete:
            outcome.fulfilled = self._fulfill(contract, outcome)

        logger.info(
            "Delivery finished",
            contract_id=contract.contract_id,
            contract_status=contract.status.value,
            units_delivered=outcome.units_delivered,
            units_fulfilled=contract.units_fulfilled,
            units_required=contract.units_required,
            fulfilled=outcome.fulfilled
        )
        return outcome

    def _deliver_from(
        self,
        contract: Contract,
        vehicle: Vehicle,
        outcome: DeliveryOutcome
    ) -> VehicleDelivery:
        good = contract.good
        result = VehicleDelivery(vehicle_id=vehicle.vehicle_id, status=DeliveryStatus.FAILED)
        log = logger.bind(contract_id=contract.contract_id, vehicle_id=vehicle.vehicle_id)

        if vehicle.waypoint != contract.destination:
            try:
                nav = self.limiter.call(self.navigation.navigate, vehicle.vehicle_id, contract.destination)
            except ExecutionError as e:
                log.error("Navigation to destination failed", destination=contract.destination, error=str(e))
                result.error = "navigation_failed"
                result.units_retained = vehicle.units_of(good)
                outcome.issues.append(e.to_dict())
                return result

            wait = seconds_until(nav.arrival, self._clock())
            if wait > 0:
                self._sleep(wait)
            vehicle.waypoint = contract.destination

        while vehicle.units_of(good) > 0 and contract.units_outstanding > 0:
            units = min(vehicle.units_of(good), contract.units_outstanding)
            if contract.per_delivery_limit:
                units = min(units, contract.per_delivery_limit)

            attempt = self.retry_policy.run(
                self.limiter.call,
                self.delivery.deliver,
                contract.contract_id,
                vehicle.vehicle_id,
                good,
                units,
            )
            result.attempts += attempt.attempts

            if not attempt.succeeded:
                error = attempt.error
                if isinstance(error, ContractExpiredError):
                    self._expire(contract, outcome, error)
                else:
                    outcome.issues.append(error.to_dict())
                result.error = getattr(error, "kind", type(error).__name__)
                log.error("Delivery failed, retaining cargo", units=units, error=str(error))
                break

            receipt = attempt.value
            delivered = vehicle.remove_cargo(good, min(units, receipt.units_delivered))
            result.units_delivered += delivered
            contract.units_fulfilled = max(
                contract.units_fulfilled + delivered, receipt.contract_units_fulfilled
            )
            log.info(
                "Delivered cargo",
                units=delivered,
                units_fulfilled=contract.units_fulfilled,
                units_required=contract.units_required
            )
            if delivered <= 0:
                result.error = "nothing_delivered"
                break

        result.units_retained = vehicle.units_of(good)
        if result.error is None:
            result.status = DeliveryStatus.SUCCESS
        elif result.units_delivered > 0:
            result.status = DeliveryStatus.PARTIAL
        return result

    def _fulfill(self, contract: Contract, outcome: DeliveryOutcome) -> bool:
        attempt = self.retry_policy.run(self.limiter.call, self.delivery.fulfill, contract.contract_id)
        if attempt.succeeded:
            logger.info("Contract fulfilled", contract_id=contract.contract_id)
            return True

        outcome.issues.append(attempt.error.to_dict())
        logger.error(
            "Fulfill call failed",
            contract_id=contract.contract_id,
            error=str(attempt.error)
        )
        return False
