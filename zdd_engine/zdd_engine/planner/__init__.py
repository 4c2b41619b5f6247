"""Checksum, comparison, planning and validation."""

from zdd_engine.planner.checksum import calculate_checksum
from zdd_engine.planner.comparator import compare_deployments
from zdd_engine.planner.plan_builder import build_plan, deployment_tasks, plan_for
from zdd_engine.planner.validation import validate_plan, validate_unique_ids

__all__ = [
    "build_plan",
    "calculate_checksum",
    "compare_deployments",
    "deployment_tasks",
    "plan_for",
    "validate_plan",
    "validate_unique_ids",
]
