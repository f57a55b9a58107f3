"""Per-reviewer, per-specialization workload accounting."""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass

import structlog

from ..errors import ArgumentError, CredentialsError
from ..schemas import Authority, Interview, RolePreference, Specialization
from ..store import InterviewStore, RecordNotFound

QUEUE_MAX_LIMIT = 5


@dataclass
class CapacityConfig:
    """Configuration for workload accounting.

    ``count_closed_interviews`` keeps closed interviews in a reviewer's
    workload, so slots are never freed by closing.
    """

    count_closed_interviews: bool = False


@dataclass(slots=True)
class CapacitySlot:
    """A reviewer that can still take an interview."""

    reviewer_id: str
    queue_max: int
    workload: int

    @property
    def spare(self) -> int:
        return self.queue_max - self.workload


@dataclass(slots=True)
class CapacityRow:
    """One line of a reviewer's capacity summary."""

    specialization: Specialization
    queue_max: int
    max_authority: Authority
    willing_to_interview: bool
    open_interviews: int
    total_interviews: int


class CapacityStore:
    """Role preferences plus live workload counts derived from the interview set."""

    def __init__(self, store: InterviewStore, *, config: CapacityConfig | None = None) -> None:
        self._store = store
        self._config = config or CapacityConfig()
        self._logger = structlog.get_logger(__name__)

    @property
    def counts_closed_interviews(self) -> bool:
        return self._config.count_closed_interviews

    def _counted(self, specialization: Specialization, reviewer_id: str | None = None) -> list[Interview]:
        complete = None if self._config.count_closed_interviews else False
        return self._store.list_interviews(
            specialization=specialization,
            reviewer_id=reviewer_id,
            complete=complete,
        )

    def workload(self, reviewer_id: str, specialization: Specialization) -> int:
        # An interview where the reviewer holds both roles counts once.
        return len({interview.id for interview in self._counted(specialization, reviewer_id)})

    def has_capacity(self, preference: RolePreference) -> bool:
        return self.workload(preference.reviewer_id, preference.specialization) < preference.queue_max

    def workloads(self, specialization: Specialization) -> dict[str, int]:
        assigned: dict[str, set[int]] = defaultdict(set)
        for interview in self._counted(specialization):
            assigned[interview.hiring_manager_id].add(interview.id)
            assigned[interview.application_manager_id].add(interview.id)
        return {reviewer_id: len(ids) for reviewer_id, ids in assigned.items()}

    def candidates(
        self,
        specialization: Specialization,
        *,
        max_authority: Authority,
        willing_to_interview: bool,
        exclude_reviewer_id: str | None = None,
    ) -> list[CapacitySlot]:
        """Reviewers matching the filter with spare capacity, least loaded first."""
        preferences = self._store.list_role_preferences(
            specialization=specialization,
            max_authority=max_authority,
            willing_to_interview=willing_to_interview,
            exclude_reviewer_id=exclude_reviewer_id,
        )
        loads = self.workloads(specialization)
        slots = [
            CapacitySlot(
                reviewer_id=pref.reviewer_id,
                queue_max=pref.queue_max,
                workload=loads.get(pref.reviewer_id, 0),
            )
            for pref in preferences
        ]
        eligible = [slot for slot in slots if slot.workload < slot.queue_max]
        eligible.sort(key=lambda slot: (slot.workload, slot.reviewer_id))
        return eligible

    def configure(
        self,
        reviewer_id: str,
        specialization: Specialization,
        *,
        willing_to_interview: bool,
        queue_max: int | None = None,
        max_authority: Authority | None = None,
    ) -> RolePreference:
        """Create or update the caller's own preference for a specialization."""
        queue_max = QUEUE_MAX_LIMIT if queue_max is None else queue_max
        if not 1 <= queue_max <= QUEUE_MAX_LIMIT:
            raise ArgumentError(f"Queue max must be between 1 and {QUEUE_MAX_LIMIT}!")
        if not self._store.reviewer_exists(reviewer_id):
            raise CredentialsError("You aren't an evaluator!", f"reviewer_id={reviewer_id}")

        with self._store.transaction():
            if max_authority is None:
                try:
                    current = self._store.get_role_preference(reviewer_id, specialization)
                    max_authority = current.max_authority
                except RecordNotFound:
                    max_authority = Authority.NONE
            preference = self._store.upsert_role_preference(
                RolePreference(
                    reviewer_id=reviewer_id,
                    specialization=specialization,
                    queue_max=queue_max,
                    willing_to_interview=willing_to_interview,
                    max_authority=max_authority,
                )
            )
        self._logger.info(
            "capacity.configured",
            reviewer_id=reviewer_id,
            specialization=specialization.value,
            queue_max=queue_max,
            willing_to_interview=willing_to_interview,
        )
        return preference

    def remove(self, reviewer_id: str, specialization: Specialization) -> RolePreference:
        try:
            removed = self._store.delete_role_preference(reviewer_id, specialization)
        except RecordNotFound as exc:
            raise ArgumentError("This role is not configured!", str(exc)) from exc
        self._logger.info("capacity.removed", reviewer_id=reviewer_id, specialization=specialization.value)
        return removed

    def grant_authority(
        self,
        reviewer_id: str,
        specialization: Specialization,
        authority: Authority,
    ) -> RolePreference:
        """Admin path: register the reviewer if needed and set its maximum role."""
        with self._store.transaction():
            self._store.register_reviewer(reviewer_id)
            try:
                preference = self._store.get_role_preference(reviewer_id, specialization)
                preference.max_authority = authority
            except RecordNotFound:
                preference = RolePreference(
                    reviewer_id=reviewer_id,
                    specialization=specialization,
                    queue_max=QUEUE_MAX_LIMIT,
                    willing_to_interview=True,
                    max_authority=authority,
                )
            preference = self._store.upsert_role_preference(preference)
        self._logger.info(
            "capacity.authority_granted",
            reviewer_id=reviewer_id,
            specialization=specialization.value,
            authority=authority.value,
        )
        return preference

    def remove_reviewer(self, reviewer_id: str) -> list[RolePreference]:
        try:
            removed = self._store.delete_reviewer(reviewer_id)
        except RecordNotFound as exc:
            raise ArgumentError("This user isn't an evaluator!", str(exc)) from exc
        self._logger.info("capacity.reviewer_removed", reviewer_id=reviewer_id, preferences=len(removed))
        return removed

    def summary(self, reviewer_id: str) -> list[CapacityRow]:
        if not self._store.reviewer_exists(reviewer_id):
            raise CredentialsError("Could not verify you as an evaluator!", f"reviewer_id={reviewer_id}")
        rows: list[CapacityRow] = []
        preferences = self._store.list_role_preferences(reviewer_id=reviewer_id)
        for pref in sorted(preferences, key=lambda p: p.specialization.value):
            interviews = self._store.list_interviews(specialization=pref.specialization, reviewer_id=reviewer_id)
            rows.append(
                CapacityRow(
                    specialization=pref.specialization,
                    queue_max=pref.queue_max,
                    max_authority=pref.max_authority,
                    willing_to_interview=pref.willing_to_interview,
                    open_interviews=sum(1 for interview in interviews if not interview.complete),
                    total_interviews=len(interviews),
                )
            )
        return rows
