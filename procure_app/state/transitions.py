"""
Lifecycle transitions for procurement plans and vehicle allocations.

Every status change goes through this module so illegal moves fail loudly
with ``StateTransitionError`` and legal ones leave an audit log entry.
"""

from typing import Any, Optional

from ..data.models import (
    AllocationState,
    PlanStatus,
    ProcurementPlan,
    ShipAllocation,
)
from ..errors import StateTransitionError
from ..logging.config import get_execution_logger, log_state_transition

state_logger = get_execution_logger(__name__)


PLAN_TRANSITIONS: dict[PlanStatus, frozenset] = {
    PlanStatus.PLANNING: frozenset({
        PlanStatus.EXECUTING,
        PlanStatus.COMPLETED,
        PlanStatus.PARTIAL,
        PlanStatus.FAILED,
    }),
    # Back to PLANNING for a reassignment pass
    PlanStatus.EXECUTING: frozenset({
        PlanStatus.PLANNING,
        PlanStatus.COMPLETED,
        PlanStatus.PARTIAL,
        PlanStatus.FAILED,
    }),
    PlanStatus.COMPLETED: frozenset(),
    PlanStatus.PARTIAL: frozenset(),
    PlanStatus.FAILED: frozenset(),
}

ALLOCATION_TRANSITIONS: dict[AllocationState, frozenset] = {
    # PENDING -> FAILED when the plan is abandoned before the vehicle starts
    AllocationState.PENDING: frozenset({
        AllocationState.IN_PROGRESS,
        AllocationState.FAILED,
    }),
    AllocationState.IN_PROGRESS: frozenset({
        AllocationState.COMPLETED,
        AllocationState.PARTIAL,
        AllocationState.FAILED,
    }),
    AllocationState.COMPLETED: frozenset(),
    AllocationState.PARTIAL: frozenset(),
    AllocationState.FAILED: frozenset(),
}


def can_transition_plan(current: PlanStatus, target: PlanStatus) -> bool:
    return target in PLAN_TRANSITIONS.get(current, frozenset())


def can_transition_allocation(current: AllocationState, target: AllocationState) -> bool:
    return target in ALLOCATION_TRANSITIONS.get(current, frozenset())


def transition_plan(
    plan: ProcurementPlan,
    target: PlanStatus,
    trigger: str,
    context: Optional[dict[str, Any]] = None
) -> None:
    """
    Move ``plan`` to ``target`` status.

    Args:
        plan: Plan to update in place
        target: New status
        trigger: What caused the change, for the audit log
        context: Extra fields to log

    Raises:
        StateTransitionError: If the move is not allowed from the current status
    """
    current = plan.status
    if not can_transition_plan(current, target):
        raise StateTransitionError(
            f"Invalid plan transition from {current.value} to {target.value}",
            current_state=current.value,
            attempted_transition=target.value,
            context={"plan_id": plan.plan_id, "trigger": trigger},
        )

    plan.status = target
    log_state_transition(
        state_logger, plan.plan_id, current.value, target.value, trigger, context
    )


def transition_allocation(
    allocation: ShipAllocation,
    target: AllocationState,
    trigger: str,
    context: Optional[dict[str, Any]] = None
) -> None:
    """Move ``allocation`` to ``target`` state; raises on illegal moves."""
    current = allocation.state
    if not can_transition_allocation(current, target):
        raise StateTransitionError(
            f"Invalid allocation transition from {current.value} to {target.value}",
            current_state=current.value,
            attempted_transition=target.value,
            context={
                "allocation_id": allocation.allocation_id,
                "vehicle_id": allocation.vehicle_id,
                "trigger": trigger,
            },
        )

    allocation.state = target
    log_state_transition(
        state_logger, allocation.allocation_id, current.value, target.value, trigger,
        {"vehicle_id": allocation.vehicle_id, **(context or {})}
    )
