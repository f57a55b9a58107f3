"""Core assignment and lifecycle engine components."""

from __future__ import annotations

# NOTE: keep imports explicit for export clarity.
from .capacity import CapacityConfig, CapacityRow, CapacitySlot, CapacityStore
from .evaluations import (
    EvaluationStatus,
    TaskStatus,
    evaluations_complete,
    is_interview_evaluation_complete,
    is_task_evaluation_complete,
)
from .lifecycle import InterviewLifecycle, LifecycleConfig, TaskEdit
from .matching import Assignment, MatchingEngine
from .reports import InterviewSnapshot
from .roles import holds_both_roles, require_roles, roles_of

__all__ = [
    "Assignment",
    "CapacityConfig",
    "CapacityRow",
    "CapacitySlot",
    "CapacityStore",
    "EvaluationStatus",
    "InterviewLifecycle",
    "InterviewSnapshot",
    "LifecycleConfig",
    "MatchingEngine",
    "TaskEdit",
    "TaskStatus",
    "evaluations_complete",
    "holds_both_roles",
    "is_interview_evaluation_complete",
    "is_task_evaluation_complete",
    "require_roles",
    "roles_of",
]
