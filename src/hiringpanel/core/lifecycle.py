"""Interview lifecycle state machine.

An interview moves OPEN -> TASKS_FINALIZED -> EVALUATED -> CLOSED -> DECIDED.
Tasks can only change while the interview is OPEN, interview evaluations only
after the tasks are finalized, and the hire decision only after closing.
Flag transitions are compare-and-set writes so two handlers racing on the same
interview cannot both succeed.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable

import pendulum
import structlog
from rapidfuzz import fuzz, process

from ..errors import ArgumentError, ContextError, CredentialsError, InternalError
from ..schemas import (
    Interview,
    InterviewEvaluation,
    InterviewPhase,
    InterviewRole,
    Task,
    TaskEvaluation,
    parse_role,
)
from ..store import InterviewStore, RecordNotFound
from .evaluations import (
    MAX_REPORT_LENGTH,
    EvaluationStatus,
    evaluations_complete,
    parse_approval,
    parse_rating,
    task_status,
    validate_report,
    validate_task_name,
    validate_work,
)
from .reports import InterviewSnapshot, render_interview_summary
from .roles import holds_both_roles, require_role, require_roles


@dataclass
class LifecycleConfig:
    """Limits applied to reviewer input."""

    max_work_length: int = 1500
    max_report_length: int = MAX_REPORT_LENGTH
    admin_id: str | None = None


@dataclass(slots=True)
class TaskEdit:
    """Result of opening a task for editing."""

    task: Task
    created: bool
    evaluations: list[TaskEvaluation] = field(default_factory=list)


class InterviewLifecycle:
    """Guards every mutation of an interview by its current phase."""

    def __init__(
        self,
        store: InterviewStore,
        *,
        config: LifecycleConfig | None = None,
        now_provider: Callable[[], pendulum.DateTime] | None = None,
    ) -> None:
        self._store = store
        self._config = config or LifecycleConfig()
        self._now = now_provider or pendulum.now
        self._logger = structlog.get_logger(__name__)

    # Queries -------------------------------------------------------------

    def is_admin(self, caller_id: str) -> bool:
        return self._config.admin_id is not None and caller_id == self._config.admin_id

    def interview(self, interview_id: int) -> Interview:
        try:
            return self._store.get_interview(interview_id)
        except RecordNotFound as exc:
            raise ContextError("Failed to find this interview!", str(exc)) from exc

    def interview_for_thread(self, thread_ref: str) -> Interview:
        interview = self._store.find_interview_by_thread(thread_ref)
        if interview is None:
            raise ContextError(
                "Failed to find the interview that corresponds with this thread!",
                f"thread_ref={thread_ref}",
            )
        return interview

    def evaluation_status(self, interview: Interview) -> EvaluationStatus:
        return evaluations_complete(
            interview,
            self._store.get_interview_evaluation(interview.id, InterviewRole.HIRING_MANAGER),
            self._store.get_interview_evaluation(interview.id, InterviewRole.APPLICATION_MANAGER),
        )

    def evaluations_complete(self, interview_id: int) -> bool:
        return self.evaluation_status(self.interview(interview_id)).complete

    def phase(self, interview: Interview) -> InterviewPhase:
        if interview.complete:
            return InterviewPhase.DECIDED if interview.hire_decision is not None else InterviewPhase.CLOSED
        if not interview.tasks_finalized:
            return InterviewPhase.OPEN
        if self.evaluation_status(interview).complete:
            return InterviewPhase.EVALUATED
        return InterviewPhase.TASKS_FINALIZED

    def snapshot(self, interview_id: int) -> InterviewSnapshot:
        with self._store.transaction():
            interview = self.interview(interview_id)
            tasks = self._store.list_tasks(interview_id)
            task_evaluations: dict[int, TaskEvaluation] = {}
            for task in tasks:
                for evaluation_id in (task.hm_evaluation_id, task.am_evaluation_id):
                    task_evaluations[evaluation_id] = self._store.get_task_evaluation(evaluation_id)
            hm_evaluation = self._store.get_interview_evaluation(interview_id, InterviewRole.HIRING_MANAGER)
            am_evaluation = self._store.get_interview_evaluation(interview_id, InterviewRole.APPLICATION_MANAGER)

        dual_role = holds_both_roles(interview)
        status = evaluations_complete(interview, hm_evaluation, am_evaluation)
        return InterviewSnapshot(
            interview=interview,
            phase=self.phase(interview),
            tasks=tasks,
            task_evaluations=task_evaluations,
            hm_evaluation=hm_evaluation,
            am_evaluation=am_evaluation,
            task_statuses=[
                task_status(
                    task,
                    task_evaluations.get(task.hm_evaluation_id),
                    task_evaluations.get(task.am_evaluation_id),
                    dual_role=dual_role,
                )
                for task in tasks
            ],
            evaluation_status=status,
        )

    def work(self, caller_id: str, interview_id: int, name: str) -> str | None:
        interview = self.interview(interview_id)
        require_roles(caller_id, interview)
        return self._task(interview, name).work

    # Task sub-workflow ---------------------------------------------------

    def create_or_update_task(self, caller_id: str, interview_id: int, name: str) -> TaskEdit:
        name = validate_task_name(name)
        with self._store.transaction():
            interview = self.interview(interview_id)
            roles = require_roles(caller_id, interview)
            self._require_open(interview)
            try:
                task = self._store.get_task(interview_id, name)
                created = False
            except RecordNotFound:
                if InterviewRole.APPLICATION_MANAGER not in roles:
                    raise CredentialsError(
                        "Only the application manager can create tasks!",
                        f"caller_id={caller_id} interview_id={interview_id}",
                    )
                task = self._store.create_task(
                    interview_id,
                    name,
                    interview.hiring_manager_id,
                    interview.application_manager_id,
                )
                created = True
            evaluations = [
                self._checked_task_evaluation(task, role)
                for role in self._review_roles(interview, roles)
            ]
        self._logger.info(
            "lifecycle.task_opened",
            interview_id=interview_id,
            task=name,
            created=created,
            caller_id=caller_id,
        )
        return TaskEdit(task=task, created=created, evaluations=evaluations)

    def set_work(self, caller_id: str, interview_id: int, name: str, work: str | None) -> Task:
        work = validate_work(work, max_length=self._config.max_work_length)
        with self._store.transaction():
            interview = self.interview(interview_id)
            require_roles(caller_id, interview)
            self._require_open(interview)
            task = self._store.update_task_work(interview_id, self._task(interview, name).name, work)
        self._logger.info("lifecycle.work_set", interview_id=interview_id, task=task.name, length=len(work or ""))
        return task

    def delete_task(self, caller_id: str, interview_id: int, name: str) -> Task:
        with self._store.transaction():
            interview = self.interview(interview_id)
            require_roles(caller_id, interview)
            self._require_open(interview)
            task = self._store.delete_task(interview_id, self._task(interview, name).name)
        self._logger.info("lifecycle.task_deleted", interview_id=interview_id, task=task.name, caller_id=caller_id)
        return task

    def submit_task_evaluation(
        self,
        caller_id: str,
        interview_id: int,
        name: str,
        *,
        approval: str | bool | None,
        report: str | None,
        role: InterviewRole | str | None = None,
    ) -> TaskEvaluation:
        passed = parse_approval(approval)
        report = validate_report(report, max_length=self._config.max_report_length)
        with self._store.transaction():
            interview = self.interview(interview_id)
            role = self._acting_role(caller_id, interview, role)
            self._require_open(interview)
            task = self._task(interview, name)
            evaluation = self._checked_task_evaluation(task, role)
            updated = self._store.update_task_evaluation(evaluation.id, passed=passed, report=report)
        self._logger.info(
            "lifecycle.task_evaluated",
            interview_id=interview_id,
            task=task.name,
            role=role.value,
            passed=passed,
        )
        return updated

    # Phase transitions ---------------------------------------------------

    def finalize_tasks(self, caller_id: str, interview_id: int) -> Interview:
        with self._store.transaction():
            interview = self.interview(interview_id)
            require_roles(caller_id, interview)
            self._require_not_closed(interview)
            if not self._store.compare_and_set_interview(
                interview_id,
                {"tasks_finalized": False, "complete": False},
                {"tasks_finalized": True},
            ):
                raise ContextError("Tasks have already been finalized!", f"interview_id={interview_id}")
            interview = self._store.get_interview(interview_id)
        self._logger.info("lifecycle.tasks_finalized", interview_id=interview_id, caller_id=caller_id)
        return interview

    def request_evaluation(self, caller_id: str, interview_id: int) -> list[InterviewEvaluation]:
        """Create (or return existing) interview evaluations for the caller's roles."""
        with self._store.transaction():
            interview = self.interview(interview_id)
            roles = require_roles(caller_id, interview)
            self._require_evaluable(interview)
            evaluations = [
                self._store.upsert_interview_evaluation(interview_id, role, caller_id)
                for role in self._review_roles(interview, roles)
            ]
        self._logger.info(
            "lifecycle.evaluation_requested",
            interview_id=interview_id,
            roles=sorted(evaluation.role.value for evaluation in evaluations),
        )
        return evaluations

    def submit_interview_evaluation(
        self,
        caller_id: str,
        interview_id: int,
        *,
        approval: str | bool | None,
        score: str | int | None,
        report: str | None,
        role: InterviewRole | str | None = None,
    ) -> InterviewEvaluation:
        passed = parse_approval(approval)
        rating = parse_rating(score)
        report = validate_report(report, max_length=self._config.max_report_length)
        with self._store.transaction():
            interview = self.interview(interview_id)
            role = self._acting_role(caller_id, interview, role)
            self._require_evaluable(interview)
            self._store.upsert_interview_evaluation(interview_id, role, caller_id)
            evaluation = self._store.update_interview_evaluation(
                interview_id,
                role,
                passed=passed,
                score=rating,
                report=report,
            )
        self._logger.info(
            "lifecycle.interview_evaluated",
            interview_id=interview_id,
            role=role.value,
            passed=passed,
            score=rating,
        )
        return evaluation

    def close(
        self,
        caller_id: str,
        interview_id: int,
        *,
        names: dict[str, str] | None = None,
    ) -> Interview:
        with self._store.transaction():
            interview = self.interview(interview_id)
            require_roles(caller_id, interview)
            self._require_not_closed(interview)
            if not interview.tasks_finalized:
                raise ContextError("Tasks must be finalized before closing the interview!")
            status = self.evaluation_status(interview)
            if not status.complete:
                raise ContextError(
                    "Both interview evaluations must be complete before closing the interview!",
                    f"hm_complete={status.hm_complete} am_complete={status.am_complete}",
                )
            closed_at = self._now()
            snapshot = self.snapshot(interview_id)
            snapshot.interview = snapshot.interview.model_copy(update={"closed_at": closed_at})
            summary = render_interview_summary(snapshot, names=names)
            if not self._store.compare_and_set_interview(
                interview_id,
                {"tasks_finalized": True, "complete": False},
                {"complete": True, "closed_at": closed_at, "summary": summary},
            ):
                raise ContextError("This interview has already been closed!", f"interview_id={interview_id}")
            interview = self._store.get_interview(interview_id)
        self._logger.info("lifecycle.closed", interview_id=interview_id, caller_id=caller_id)
        return interview

    def decide_hire(self, caller_id: str, interview_id: int, decision: bool) -> Interview:
        if not self.is_admin(caller_id):
            raise CredentialsError("Only the administrator can make hiring decisions!", f"caller_id={caller_id}")
        with self._store.transaction():
            interview = self.interview(interview_id)
            if not interview.complete:
                raise ContextError("The interview must be closed before a hiring decision is made!")
            previous = interview.hire_decision
            interview = self._store.update_interview(interview_id, hire_decision=decision)
        self._logger.info(
            "lifecycle.hire_decided",
            interview_id=interview_id,
            decision=decision,
            revised=previous is not None,
        )
        return interview

    # Guards --------------------------------------------------------------

    @staticmethod
    def _require_not_closed(interview: Interview) -> None:
        if interview.complete:
            raise ContextError("Can't perform this action as this interview has been closed!")

    def _require_open(self, interview: Interview) -> None:
        self._require_not_closed(interview)
        if interview.tasks_finalized:
            raise ContextError("Tasks have been finalized and can no longer be changed!")

    def _require_evaluable(self, interview: Interview) -> None:
        self._require_not_closed(interview)
        if not interview.tasks_finalized:
            raise ContextError("Tasks must be finalized before evaluating the interview!")

    @staticmethod
    def _acting_role(caller_id: str, interview: Interview, role: InterviewRole | str | None) -> InterviewRole:
        if role is not None:
            role = parse_role(role)
            require_role(caller_id, interview, role)
            return role
        roles = require_roles(caller_id, interview)
        if InterviewRole.HIRING_MANAGER in roles:
            return InterviewRole.HIRING_MANAGER
        return InterviewRole.APPLICATION_MANAGER

    @staticmethod
    def _review_roles(interview: Interview, roles: frozenset[InterviewRole]) -> list[InterviewRole]:
        if holds_both_roles(interview):
            return [InterviewRole.HIRING_MANAGER]
        return sorted(roles, key=lambda role: role.value, reverse=True)

    def _task(self, interview: Interview, name: str) -> Task:
        name = (name or "").strip()
        try:
            return self._store.get_task(interview.id, name)
        except RecordNotFound as exc:
            message = "Task isn't registered!"
            names = [task.name for task in self._store.list_tasks(interview.id)]
            match = process.extractOne(name, names, scorer=fuzz.ratio, score_cutoff=60) if names else None
            if match:
                message = f"Task isn't registered! Did you mean '{match[0]}'?"
            raise ArgumentError(message, str(exc)) from exc

    def _checked_task_evaluation(self, task: Task, role: InterviewRole) -> TaskEvaluation:
        evaluation_id = task.hm_evaluation_id if role == InterviewRole.HIRING_MANAGER else task.am_evaluation_id
        evaluation = self._store.get_task_evaluation(evaluation_id)
        if (
            evaluation.interview_id != task.interview_id
            or evaluation.task_name != task.name
            or evaluation.role != role
        ):
            raise InternalError(
                "Task does not match up with task evaluation!",
                f"task={task.model_dump()} evaluation={evaluation.model_dump()}",
            )
        return evaluation
