"""Persistent store contract and the in-process implementation."""

from __future__ import annotations

from contextlib import AbstractContextManager
from typing import Any, Protocol, runtime_checkable

from ..schemas import (
    Authority,
    Interview,
    InterviewEvaluation,
    InterviewRole,
    Referral,
    RolePreference,
    Specialization,
    Task,
    TaskEvaluation,
)
from .errors import ConstraintViolation, RecordNotFound, StoreError
from .memory import MemoryStore


@runtime_checkable
class InterviewStore(Protocol):
    """Relational store contract consumed by the engine.

    Implementations must raise :class:`RecordNotFound` and
    :class:`ConstraintViolation` for the two recoverable failure kinds and
    return detached copies of records.
    """

    def transaction(self) -> AbstractContextManager[Any]:
        """Serializable unit of work; rolled back when the block raises."""

    def register_reviewer(self, reviewer_id: str) -> None: ...

    def reviewer_exists(self, reviewer_id: str) -> bool: ...

    def delete_reviewer(self, reviewer_id: str) -> list[RolePreference]: ...

    def upsert_role_preference(self, preference: RolePreference) -> RolePreference: ...

    def get_role_preference(self, reviewer_id: str, specialization: Specialization) -> RolePreference: ...

    def delete_role_preference(self, reviewer_id: str, specialization: Specialization) -> RolePreference: ...

    def list_role_preferences(
        self,
        *,
        reviewer_id: str | None = None,
        specialization: Specialization | None = None,
        max_authority: Authority | None = None,
        willing_to_interview: bool | None = None,
        exclude_reviewer_id: str | None = None,
    ) -> list[RolePreference]: ...

    def create_referral(self, referral: Referral) -> Referral: ...

    def get_referral(self, candidate_id: str) -> Referral: ...

    def list_referrals(self) -> list[Referral]: ...

    def delete_referral(self, candidate_id: str) -> Referral: ...

    def create_interview(self, **fields: Any) -> Interview: ...

    def get_interview(self, interview_id: int) -> Interview: ...

    def find_interview(self, candidate_id: str, specialization: Specialization) -> Interview | None: ...

    def find_interview_by_thread(self, thread_ref: str) -> Interview | None: ...

    def list_interviews(
        self,
        *,
        specialization: Specialization | None = None,
        reviewer_id: str | None = None,
        complete: bool | None = None,
    ) -> list[Interview]: ...

    def update_interview(self, interview_id: int, **changes: Any) -> Interview: ...

    def compare_and_set_interview(
        self,
        interview_id: int,
        expected: dict[str, Any],
        changes: dict[str, Any],
    ) -> bool: ...

    def create_task(self, interview_id: int, name: str, hiring_manager_id: str, application_manager_id: str) -> Task: ...

    def get_task(self, interview_id: int, name: str) -> Task: ...

    def list_tasks(self, interview_id: int) -> list[Task]: ...

    def update_task_work(self, interview_id: int, name: str, work: str | None) -> Task: ...

    def delete_task(self, interview_id: int, name: str) -> Task: ...

    def get_task_evaluation(self, evaluation_id: int) -> TaskEvaluation: ...

    def update_task_evaluation(self, evaluation_id: int, *, passed: bool | None, report: str | None) -> TaskEvaluation: ...

    def upsert_interview_evaluation(self, interview_id: int, role: InterviewRole, reviewer_id: str) -> InterviewEvaluation: ...

    def get_interview_evaluation(self, interview_id: int, role: InterviewRole) -> InterviewEvaluation | None: ...

    def update_interview_evaluation(
        self,
        interview_id: int,
        role: InterviewRole,
        *,
        passed: bool | None,
        score: int | None,
        report: str | None,
    ) -> InterviewEvaluation: ...


__all__ = [
    "InterviewStore",
    "MemoryStore",
    "StoreError",
    "RecordNotFound",
    "ConstraintViolation",
]
