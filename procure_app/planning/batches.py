"""
Transaction batch planning.

Turns an outstanding need into purchase batches that respect the good's
transaction limit, accepting partial supply from each venue and moving on to
the next ranked venue for whatever is left.
"""

from dataclasses import dataclass, field
from typing import Iterable, Optional

from ..data.models import PurchaseBatch, Venue
from ..errors import PriceOutOfBandError
from ..knowledge.products import ProductKnowledgeBase
from ..logging.config import get_planning_logger, log_venue_decision
from .pricing import PriceValidator

logger = get_planning_logger(__name__)


def split_into_batches(amount: int, limit: int) -> list[int]:
    """
    Split ``amount`` into batch sizes no larger than ``limit``.

    Returns ``limit`` repeated ``count - 1`` times followed by the remainder,
    where ``count = ceil(amount / limit)``. 137 with limit 20 gives six 20s
    and a 17.
    """
    if limit <= 0:
        raise ValueError(f"transaction limit must be positive, got {limit}")
    if amount <= 0:
        return []

    full, remainder = divmod(amount, limit)
    sizes = [limit] * full
    if remainder:
        sizes.append(remainder)
    return sizes


@dataclass(frozen=True)
class VenueSourcing:
    """How much one venue contributes to the plan."""
    venue_id: str
    offered_volume: int
    units_sourced: int
    unit_price: int


@dataclass
class BatchPlan:
    """Ordered purchase batches for one planning pass."""
    good: str
    units_needed: int
    batches: list[PurchaseBatch] = field(default_factory=list)
    sourcing: list[VenueSourcing] = field(default_factory=list)
    rejected_venues: dict[str, str] = field(default_factory=dict)
    venues_considered: int = 0

    @property
    def units_planned(self) -> int:
        return sum(batch.units for batch in self.batches)

    @property
    def shortfall(self) -> int:
        return max(0, self.units_needed - self.units_planned)


class BatchPlanner:
    """Sources a need across ranked venues in transaction-limited batches."""

    def __init__(self, knowledge: ProductKnowledgeBase, validator: PriceValidator) -> None:
        self.knowledge = knowledge
        self.validator = validator

    def plan(
        self,
        good: str,
        units_needed: int,
        venues: Iterable[Venue],
        exclude: Optional[set] = None,
        batch_prefix: str = ""
    ) -> BatchPlan:
        """
        Build batches for ``units_needed`` of ``good`` from ranked ``venues``.

        Args:
            good: Good to buy
            units_needed: Outstanding need for this pass
            venues: Ranked venues; consumed lazily and only until need is met
            exclude: Venue ids to skip (e.g. depleted earlier in the attempt)
            batch_prefix: Prefix making batch ids unique across passes

        Returns:
            BatchPlan whose batches never exceed ``units_needed`` in total
        """
        info = self.knowledge.get(good)
        exclude = exclude or set()
        plan = BatchPlan(good=good, units_needed=max(0, units_needed))
        residual = plan.units_needed
        sequence = 0
        if residual <= 0:
            venues = ()

        for venue in venues:
            plan.venues_considered += 1

            if venue.venue_id in exclude:
                plan.rejected_venues[venue.venue_id] = "depleted"
                log_venue_decision(logger, venue.venue_id, False, good, "depleted")
                continue

            offer = venue.offer_for(good)
            if offer is None or offer.trade_volume <= 0:
                plan.rejected_venues[venue.venue_id] = "no_supply"
                log_venue_decision(logger, venue.venue_id, False, good, "no_supply")
                continue

            try:
                self.validator.check(good, offer.purchase_price, venue.venue_id)
            except PriceOutOfBandError as e:
                plan.rejected_venues[venue.venue_id] = "price_out_of_band"
                log_venue_decision(
                    logger, venue.venue_id, False, good, "price_out_of_band",
                    context={"price": offer.purchase_price, "accepted_range": e.accepted_range}
                )
                continue

            deliverable = min(offer.trade_volume, residual)
            for size in split_into_batches(deliverable, info.transaction_limit):
                sequence += 1
                plan.batches.append(PurchaseBatch(
                    batch_id=f"{batch_prefix}{venue.venue_id}:{good}:{sequence}",
                    venue_id=venue.venue_id,
                    venue_system=venue.system,
                    good=good,
                    units=size,
                    expected_unit_price=offer.purchase_price,
                ))

            plan.sourcing.append(VenueSourcing(
                venue_id=venue.venue_id,
                offered_volume=offer.trade_volume,
                units_sourced=deliverable,
                unit_price=offer.purchase_price,
            ))
            residual -= deliverable

            log_venue_decision(
                logger, venue.venue_id, True, good,
                "partial_supply" if residual > 0 else "full_supply",
                context={
                    "price": offer.purchase_price,
                    "offered_volume": offer.trade_volume,
                    "units_sourced": deliverable,
                    "residual": residual,
                }
            )
            if residual <= 0:
                break

        logger.info(
            "Batch plan built",
            good=good,
            units_needed=plan.units_needed,
            units_planned=plan.units_planned,
            batch_count=len(plan.batches),
            shortfall=plan.shortfall,
            transaction_limit=info.transaction_limit
        )
        return plan
