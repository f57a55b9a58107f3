"""Tiered, capacity-constrained selection of interview reviewers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

import structlog

from ..errors import NoCapacityError
from ..schemas import Authority, InterviewRole, Specialization
from .capacity import CapacitySlot, CapacityStore

TierType = Literal["ideal", "review_only"]


@dataclass(slots=True, frozen=True)
class Assignment:
    """Reviewers chosen for a new interview."""

    hiring_manager_id: str
    application_manager_id: str
    tier: TierType

    @property
    def single_reviewer(self) -> bool:
        return self.hiring_manager_id == self.application_manager_id


class MatchingEngine:
    """Pick a (Hiring Manager, Application Manager) pair for a specialization.

    Tier A takes a hiring manager who is willing to interview and lets them
    hold both roles. Tier B falls back to a review-only hiring manager paired
    with a separate application manager. Within a tier the least loaded
    reviewer wins, ties broken by reviewer id.

    The engine only reads; callers that create the interview must run
    :meth:`assign` and the write inside one store transaction.
    """

    def __init__(self, capacity: CapacityStore) -> None:
        self._capacity = capacity
        self._logger = structlog.get_logger(__name__)

    def assign(self, specialization: Specialization, exclude_reviewer_id: str | None = None) -> Assignment:
        ideal = self._first(
            specialization,
            max_authority=Authority.HIRING_MANAGER,
            willing_to_interview=True,
            exclude_reviewer_id=exclude_reviewer_id,
        )
        if ideal is not None:
            return self._log(
                specialization,
                Assignment(ideal.reviewer_id, ideal.reviewer_id, "ideal"),
            )

        review_only = self._first(
            specialization,
            max_authority=Authority.HIRING_MANAGER,
            willing_to_interview=False,
            exclude_reviewer_id=exclude_reviewer_id,
        )
        if review_only is None:
            self._logger.warning(
                "matching.no_capacity",
                specialization=specialization.value,
                role=InterviewRole.HIRING_MANAGER.value,
            )
            raise NoCapacityError(InterviewRole.HIRING_MANAGER, specialization)

        application_manager = self._first(
            specialization,
            max_authority=Authority.APPLICATION_MANAGER,
            willing_to_interview=True,
            exclude_reviewer_id=exclude_reviewer_id,
        )
        if application_manager is None:
            self._logger.warning(
                "matching.no_capacity",
                specialization=specialization.value,
                role=InterviewRole.APPLICATION_MANAGER.value,
            )
            raise NoCapacityError(InterviewRole.APPLICATION_MANAGER, specialization)

        return self._log(
            specialization,
            Assignment(review_only.reviewer_id, application_manager.reviewer_id, "review_only"),
        )

    def _first(
        self,
        specialization: Specialization,
        *,
        max_authority: Authority,
        willing_to_interview: bool,
        exclude_reviewer_id: str | None,
    ) -> CapacitySlot | None:
        slots = self._capacity.candidates(
            specialization,
            max_authority=max_authority,
            willing_to_interview=willing_to_interview,
            exclude_reviewer_id=exclude_reviewer_id,
        )
        return slots[0] if slots else None

    def _log(self, specialization: Specialization, assignment: Assignment) -> Assignment:
        self._logger.info(
            "matching.assigned",
            specialization=specialization.value,
            hiring_manager_id=assignment.hiring_manager_id,
            application_manager_id=assignment.application_manager_id,
            tier=assignment.tier,
        )
        return assignment
