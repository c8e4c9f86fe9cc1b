"""Audit archive for finished procurement plans."""

from .plan_archive import ArchivedPlan, PlanArchive

__all__ = ["ArchivedPlan", "PlanArchive"]
