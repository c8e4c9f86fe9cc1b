"""Plan and allocation lifecycle management."""

from .transitions import (
    ALLOCATION_TRANSITIONS,
    PLAN_TRANSITIONS,
    can_transition_allocation,
    can_transition_plan,
    transition_allocation,
    transition_plan,
)

__all__ = [
    "ALLOCATION_TRANSITIONS",
    "PLAN_TRANSITIONS",
    "can_transition_allocation",
    "can_transition_plan",
    "transition_allocation",
    "transition_plan",
]
