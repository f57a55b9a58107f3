"""In-process store guarded by a re-entrant lock.

Every public method runs under the same lock, and :meth:`MemoryStore.transaction`
holds it for a whole block so that a read-check-write sequence cannot interleave
with another handler. A failing block restores the tables it started with.
"""

from __future__ import annotations

import copy
import threading
from contextlib import contextmanager
from typing import Any, Iterator

import pendulum
import structlog

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
from .errors import ConstraintViolation, RecordNotFound

_TABLES = (
    "_reviewers",
    "_preferences",
    "_referrals",
    "_interviews",
    "_tasks",
    "_task_evaluations",
    "_interview_evaluations",
    "_counters",
)


class MemoryStore:
    """Dictionary-backed implementation of :class:`~hiringpanel.store.InterviewStore`."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._reviewers: set[str] = set()
        self._preferences: dict[tuple[str, Specialization], RolePreference] = {}
        self._referrals: dict[str, Referral] = {}
        self._interviews: dict[int, Interview] = {}
        self._tasks: dict[tuple[int, str], Task] = {}
        self._task_evaluations: dict[int, TaskEvaluation] = {}
        self._interview_evaluations: dict[tuple[int, InterviewRole], InterviewEvaluation] = {}
        self._counters: dict[str, int] = {"interview": 0, "task_evaluation": 0}
        self._logger = structlog.get_logger(__name__)

    @contextmanager
    def transaction(self) -> Iterator["MemoryStore"]:
        with self._lock:
            snapshot = {name: copy.deepcopy(getattr(self, name)) for name in _TABLES}
            try:
                yield self
            except BaseException:
                for name, table in snapshot.items():
                    setattr(self, name, table)
                self._logger.debug("store.rolled_back")
                raise

    # Reviewers -----------------------------------------------------------

    def register_reviewer(self, reviewer_id: str) -> None:
        with self._lock:
            self._reviewers.add(reviewer_id)

    def reviewer_exists(self, reviewer_id: str) -> bool:
        with self._lock:
            return reviewer_id in self._reviewers

    def delete_reviewer(self, reviewer_id: str) -> list[RolePreference]:
        with self._lock:
            if reviewer_id not in self._reviewers:
                raise RecordNotFound("reviewer", reviewer_id)
            self._reviewers.discard(reviewer_id)
            removed = [key for key in self._preferences if key[0] == reviewer_id]
            return [self._preferences.pop(key) for key in removed]

    def upsert_role_preference(self, preference: RolePreference) -> RolePreference:
        with self._lock:
            if preference.reviewer_id not in self._reviewers:
                raise RecordNotFound("reviewer", preference.reviewer_id)
            key = (preference.reviewer_id, preference.specialization)
            self._preferences[key] = preference.model_copy(deep=True)
            return preference.model_copy(deep=True)

    def get_role_preference(self, reviewer_id: str, specialization: Specialization) -> RolePreference:
        with self._lock:
            try:
                return self._preferences[(reviewer_id, specialization)].model_copy(deep=True)
            except KeyError as exc:
                raise RecordNotFound("role_preference", (reviewer_id, specialization)) from exc

    def delete_role_preference(self, reviewer_id: str, specialization: Specialization) -> RolePreference:
        with self._lock:
            try:
                return self._preferences.pop((reviewer_id, specialization))
            except KeyError as exc:
                raise RecordNotFound("role_preference", (reviewer_id, specialization)) from exc

    def list_role_preferences(
        self,
        *,
        reviewer_id: str | None = None,
        specialization: Specialization | None = None,
        max_authority: Authority | None = None,
        willing_to_interview: bool | None = None,
        exclude_reviewer_id: str | None = None,
    ) -> list[RolePreference]:
        with self._lock:
            matches = [
                pref
                for pref in self._preferences.values()
                if (reviewer_id is None or pref.reviewer_id == reviewer_id)
                and (specialization is None or pref.specialization == specialization)
                and (max_authority is None or pref.max_authority == max_authority)
                and (willing_to_interview is None or pref.willing_to_interview == willing_to_interview)
                and (exclude_reviewer_id is None or pref.reviewer_id != exclude_reviewer_id)
            ]
            return [pref.model_copy(deep=True) for pref in matches]

    # Referrals -----------------------------------------------------------

    def create_referral(self, referral: Referral) -> Referral:
        with self._lock:
            if referral.candidate_id in self._referrals:
                raise ConstraintViolation("referral", referral.candidate_id)
            self._referrals[referral.candidate_id] = referral.model_copy(deep=True)
            return referral.model_copy(deep=True)

    def get_referral(self, candidate_id: str) -> Referral:
        with self._lock:
            try:
                return self._referrals[candidate_id].model_copy(deep=True)
            except KeyError as exc:
                raise RecordNotFound("referral", candidate_id) from exc

    def list_referrals(self) -> list[Referral]:
        with self._lock:
            return [referral.model_copy(deep=True) for referral in self._referrals.values()]

    def delete_referral(self, candidate_id: str) -> Referral:
        with self._lock:
            try:
                return self._referrals.pop(candidate_id)
            except KeyError as exc:
                raise RecordNotFound("referral", candidate_id) from exc

    # Interviews ----------------------------------------------------------

    def create_interview(self, **fields: Any) -> Interview:
        with self._lock:
            candidate_id = fields["candidate_id"]
            specialization = fields["specialization"]
            if self.find_interview(candidate_id, specialization) is not None:
                raise ConstraintViolation("interview", (candidate_id, specialization))
            thread_ref = fields.get("thread_ref")
            if thread_ref is not None and self.find_interview_by_thread(thread_ref) is not None:
                raise ConstraintViolation("interview.thread_ref", thread_ref)
            self._counters["interview"] += 1
            interview = Interview(id=self._counters["interview"], **fields)
            self._interviews[interview.id] = interview
            return interview.model_copy(deep=True)

    def get_interview(self, interview_id: int) -> Interview:
        with self._lock:
            try:
                return self._interviews[interview_id].model_copy(deep=True)
            except KeyError as exc:
                raise RecordNotFound("interview", interview_id) from exc

    def find_interview(self, candidate_id: str, specialization: Specialization) -> Interview | None:
        with self._lock:
            for interview in self._interviews.values():
                if interview.candidate_id == candidate_id and interview.specialization == specialization:
                    return interview.model_copy(deep=True)
            return None

    def find_interview_by_thread(self, thread_ref: str) -> Interview | None:
        with self._lock:
            for interview in self._interviews.values():
                if interview.thread_ref == thread_ref:
                    return interview.model_copy(deep=True)
            return None

    def list_interviews(
        self,
        *,
        specialization: Specialization | None = None,
        reviewer_id: str | None = None,
        complete: bool | None = None,
    ) -> list[Interview]:
        with self._lock:
            matches = [
                interview
                for interview in self._interviews.values()
                if (specialization is None or interview.specialization == specialization)
                and (
                    reviewer_id is None
                    or reviewer_id in (interview.hiring_manager_id, interview.application_manager_id)
                )
                and (complete is None or interview.complete == complete)
            ]
            return [interview.model_copy(deep=True) for interview in sorted(matches, key=lambda i: i.id)]

    def update_interview(self, interview_id: int, **changes: Any) -> Interview:
        with self._lock:
            current = self._interviews.get(interview_id)
            if current is None:
                raise RecordNotFound("interview", interview_id)
            thread_ref = changes.get("thread_ref")
            if thread_ref is not None:
                owner = self.find_interview_by_thread(thread_ref)
                if owner is not None and owner.id != interview_id:
                    raise ConstraintViolation("interview.thread_ref", thread_ref)
            updated = current.model_copy(update=changes, deep=True)
            self._interviews[interview_id] = updated
            return updated.model_copy(deep=True)

    def compare_and_set_interview(
        self,
        interview_id: int,
        expected: dict[str, Any],
        changes: dict[str, Any],
    ) -> bool:
        with self._lock:
            current = self._interviews.get(interview_id)
            if current is None:
                return False
            if any(getattr(current, field) != value for field, value in expected.items()):
                return False
            self._interviews[interview_id] = current.model_copy(update=changes, deep=True)
            return True

    # Tasks ---------------------------------------------------------------

    def create_task(
        self,
        interview_id: int,
        name: str,
        hiring_manager_id: str,
        application_manager_id: str,
    ) -> Task:
        with self._lock:
            if interview_id not in self._interviews:
                raise RecordNotFound("interview", interview_id)
            if (interview_id, name) in self._tasks:
                raise ConstraintViolation("task", (interview_id, name))
            hm_evaluation = self._new_task_evaluation(
                interview_id, name, InterviewRole.HIRING_MANAGER, hiring_manager_id
            )
            am_evaluation = self._new_task_evaluation(
                interview_id, name, InterviewRole.APPLICATION_MANAGER, application_manager_id
            )
            task = Task(
                interview_id=interview_id,
                name=name,
                hm_evaluation_id=hm_evaluation.id,
                am_evaluation_id=am_evaluation.id,
            )
            self._tasks[(interview_id, name)] = task
            return task.model_copy(deep=True)

    def _new_task_evaluation(
        self,
        interview_id: int,
        task_name: str,
        role: InterviewRole,
        reviewer_id: str,
    ) -> TaskEvaluation:
        self._counters["task_evaluation"] += 1
        evaluation = TaskEvaluation(
            id=self._counters["task_evaluation"],
            interview_id=interview_id,
            task_name=task_name,
            role=role,
            reviewer_id=reviewer_id,
        )
        self._task_evaluations[evaluation.id] = evaluation
        return evaluation

    def get_task(self, interview_id: int, name: str) -> Task:
        with self._lock:
            try:
                return self._tasks[(interview_id, name)].model_copy(deep=True)
            except KeyError as exc:
                raise RecordNotFound("task", (interview_id, name)) from exc

    def list_tasks(self, interview_id: int) -> list[Task]:
        with self._lock:
            tasks = [task for (owner, _), task in self._tasks.items() if owner == interview_id]
            return [task.model_copy(deep=True) for task in sorted(tasks, key=lambda t: t.name)]

    def update_task_work(self, interview_id: int, name: str, work: str | None) -> Task:
        with self._lock:
            task = self._tasks.get((interview_id, name))
            if task is None:
                raise RecordNotFound("task", (interview_id, name))
            task.work = work
            return task.model_copy(deep=True)

    def delete_task(self, interview_id: int, name: str) -> Task:
        with self._lock:
            try:
                task = self._tasks.pop((interview_id, name))
            except KeyError as exc:
                raise RecordNotFound("task", (interview_id, name)) from exc
            for evaluation_id in (task.hm_evaluation_id, task.am_evaluation_id):
                self._task_evaluations.pop(evaluation_id, None)
            return task

    # Task evaluations ----------------------------------------------------

    def get_task_evaluation(self, evaluation_id: int) -> TaskEvaluation:
        with self._lock:
            try:
                return self._task_evaluations[evaluation_id].model_copy(deep=True)
            except KeyError as exc:
                raise RecordNotFound("task_evaluation", evaluation_id) from exc

    def update_task_evaluation(
        self,
        evaluation_id: int,
        *,
        passed: bool | None,
        report: str | None,
    ) -> TaskEvaluation:
        with self._lock:
            evaluation = self._task_evaluations.get(evaluation_id)
            if evaluation is None:
                raise RecordNotFound("task_evaluation", evaluation_id)
            updated = TaskEvaluation.model_validate({**evaluation.model_dump(), "passed": passed, "report": report})
            self._task_evaluations[evaluation_id] = updated
            return updated.model_copy(deep=True)

    # Interview evaluations -----------------------------------------------

    def upsert_interview_evaluation(
        self,
        interview_id: int,
        role: InterviewRole,
        reviewer_id: str,
    ) -> InterviewEvaluation:
        with self._lock:
            if interview_id not in self._interviews:
                raise RecordNotFound("interview", interview_id)
            key = (interview_id, role)
            evaluation = self._interview_evaluations.get(key)
            if evaluation is None:
                evaluation = InterviewEvaluation(interview_id=interview_id, role=role, reviewer_id=reviewer_id)
                self._interview_evaluations[key] = evaluation
            return evaluation.model_copy(deep=True)

    def get_interview_evaluation(self, interview_id: int, role: InterviewRole) -> InterviewEvaluation | None:
        with self._lock:
            evaluation = self._interview_evaluations.get((interview_id, role))
            return evaluation.model_copy(deep=True) if evaluation else None

    def update_interview_evaluation(
        self,
        interview_id: int,
        role: InterviewRole,
        *,
        passed: bool | None,
        score: int | None,
        report: str | None,
    ) -> InterviewEvaluation:
        with self._lock:
            key = (interview_id, role)
            current = self._interview_evaluations.get(key)
            if current is None:
                raise RecordNotFound("interview_evaluation", key)
            updated = InterviewEvaluation.model_validate(
                {**current.model_dump(), "passed": passed, "score": score, "report": report}
            )
            self._interview_evaluations[key] = updated
            return updated.model_copy(deep=True)

    # Snapshots -----------------------------------------------------------

    def dump(self) -> dict[str, Any]:
        """Serializable view of every table, used for audit output."""
        with self._lock:
            return {
                "generated_at": pendulum.now().to_iso8601_string(),
                "reviewers": sorted(self._reviewers),
                "role_preferences": [p.model_dump(mode="json") for p in self._preferences.values()],
                "referrals": [r.model_dump(mode="json") for r in self._referrals.values()],
                "interviews": [i.model_dump(mode="json") for i in self._interviews.values()],
                "tasks": [t.model_dump(mode="json") for t in self._tasks.values()],
                "task_evaluations": [e.model_dump(mode="json") for e in self._task_evaluations.values()],
                "interview_evaluations": [e.model_dump(mode="json") for e in self._interview_evaluations.values()],
            }
