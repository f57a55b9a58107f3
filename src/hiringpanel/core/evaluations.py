"""Completeness predicates and input validation for task and interview reviews."""

from __future__ import annotations

from dataclasses import dataclass

from ..errors import ArgumentError
from ..schemas import Interview, InterviewEvaluation, Task, TaskEvaluation
from .roles import holds_both_roles

MAX_REPORT_LENGTH = 1500
TASK_NAME_MIN = 2
TASK_NAME_MAX = 14
SCORE_MIN = 1
SCORE_MAX = 10


@dataclass(slots=True, frozen=True)
class EvaluationStatus:
    hm_complete: bool
    am_complete: bool

    @property
    def complete(self) -> bool:
        return self.hm_complete and self.am_complete


@dataclass(slots=True, frozen=True)
class TaskStatus:
    """Row of the task list."""

    name: str
    work_submitted: bool
    am_review_complete: bool
    hm_review_complete: bool

    @property
    def complete(self) -> bool:
        return self.work_submitted and self.am_review_complete and self.hm_review_complete


def is_task_evaluation_complete(evaluation: TaskEvaluation | None) -> bool:
    # A lone placeholder character does not count as a report.
    return (
        evaluation is not None
        and evaluation.passed is not None
        and evaluation.report is not None
        and len(evaluation.report) > 1
    )


def is_interview_evaluation_complete(evaluation: InterviewEvaluation | None) -> bool:
    return (
        evaluation is not None
        and evaluation.passed is not None
        and evaluation.score is not None
        and bool(evaluation.report)
    )


def evaluations_complete(
    interview: Interview,
    hm_evaluation: InterviewEvaluation | None,
    am_evaluation: InterviewEvaluation | None,
) -> EvaluationStatus:
    """Dual-role interviews only need the hiring manager evaluation."""
    hm_complete = is_interview_evaluation_complete(hm_evaluation)
    if holds_both_roles(interview):
        am_complete = hm_complete
    else:
        am_complete = is_interview_evaluation_complete(am_evaluation)
    return EvaluationStatus(hm_complete=hm_complete, am_complete=am_complete)


def task_status(
    task: Task,
    hm_evaluation: TaskEvaluation | None,
    am_evaluation: TaskEvaluation | None,
    *,
    dual_role: bool,
) -> TaskStatus:
    hm_done = is_task_evaluation_complete(hm_evaluation)
    am_done = (dual_role and hm_done) or is_task_evaluation_complete(am_evaluation)
    return TaskStatus(
        name=task.name,
        work_submitted=bool(task.work),
        am_review_complete=am_done,
        hm_review_complete=hm_done,
    )


def parse_approval(value: str | bool | None) -> bool | None:
    """``y``/``n`` in any case; blank leaves the verdict unset."""
    if value is None or isinstance(value, bool):
        return value
    normalized = value.strip().lower()
    if normalized == "y":
        return True
    if normalized == "n":
        return False
    if normalized == "":
        return None
    raise ArgumentError("Approval input must be y or n!", f"value={value!r}")


def parse_rating(value: str | int | None) -> int | None:
    if value is None:
        return None
    if isinstance(value, str):
        if not value.strip():
            return None
        try:
            value = int(value.strip())
        except ValueError as exc:
            raise ArgumentError("Evaluee rating must be between 1 and 10!", f"value={value!r}") from exc
    if isinstance(value, bool) or not isinstance(value, int) or not SCORE_MIN <= value <= SCORE_MAX:
        raise ArgumentError("Evaluee rating must be between 1 and 10!", f"value={value!r}")
    return value


def validate_report(report: str | None, *, max_length: int = MAX_REPORT_LENGTH) -> str | None:
    if report is not None and len(report) > max_length:
        raise ArgumentError("Reasoning is too long!", f"length={len(report)} max={max_length}")
    return report


def validate_task_name(name: str | None) -> str:
    if name is None or not TASK_NAME_MIN <= len(name.strip()) <= TASK_NAME_MAX:
        raise ArgumentError(
            f"Task name must be between {TASK_NAME_MIN} and {TASK_NAME_MAX} characters!",
            f"name={name!r}",
        )
    return name.strip()


def validate_work(work: str | None, *, max_length: int) -> str | None:
    if work is not None and len(work) > max_length:
        raise ArgumentError("Work is too long!", f"length={len(work)} max={max_length}")
    return work or None
