"""Text renderings of interviews, task lists and reviewer capacity."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Mapping

from ..schemas import Interview, InterviewEvaluation, InterviewPhase, Referral, Task, TaskEvaluation
from .capacity import CapacityRow
from .evaluations import EvaluationStatus, TaskStatus
from .roles import holds_both_roles


@dataclass(slots=True)
class InterviewSnapshot:
    """Everything needed to describe an interview at one instant."""

    interview: Interview
    phase: InterviewPhase
    tasks: list[Task] = field(default_factory=list)
    task_evaluations: dict[int, TaskEvaluation] = field(default_factory=dict)
    hm_evaluation: InterviewEvaluation | None = None
    am_evaluation: InterviewEvaluation | None = None
    task_statuses: list[TaskStatus] = field(default_factory=list)
    evaluation_status: EvaluationStatus | None = None


def yes_or_no(value: bool | None) -> str:
    return "yes" if value else "no"


def code_block(text: str) -> str:
    return f"```\n{text}\n```"


def render_task_list(statuses: Iterable[TaskStatus]) -> str:
    lines = [
        "Name".ljust(15) + " | Complete | App Mgr Review | Hiring Mgr Review",
    ]
    for status in statuses:
        lines.append(
            status.name.ljust(15)
            + " | "
            + yes_or_no(status.work_submitted).ljust(8)
            + " | "
            + yes_or_no(status.am_review_complete).ljust(14)
            + " | "
            + yes_or_no(status.hm_review_complete)
        )
    return "\n".join(lines) + "\n"


def render_evaluation_status(status: EvaluationStatus) -> str:
    hm = "complete" if status.hm_complete else "incomplete"
    am = "complete" if status.am_complete else "incomplete"
    return f"Hiring Manager Evaluation:      {hm}\nApplication Manager Evaluation: {am}\n"


def render_status(snapshot: InterviewSnapshot) -> str:
    interview = snapshot.interview
    text = f"Interview #{interview.id} ({interview.specialization.display_name}): {snapshot.phase.value}\n"
    text += code_block(render_task_list(snapshot.task_statuses)) + "\n"
    if snapshot.evaluation_status is not None:
        text += render_evaluation_status(snapshot.evaluation_status)
    return text


def _task_evaluation_section(title: str, evaluation: TaskEvaluation | None) -> str:
    passed = evaluation.passed if evaluation else None
    report = (evaluation.report if evaluation else None) or ""
    return f"#### {title}\nPass:   {yes_or_no(passed)}\nReport: \n{code_block(report)}\n"


def _interview_evaluation_section(title: str, evaluation: InterviewEvaluation | None) -> str:
    passed = evaluation.passed if evaluation else None
    report = (evaluation.report if evaluation else None) or ""
    score = (evaluation.score if evaluation else None) or 0
    return f"### {title}\nPass:   {yes_or_no(passed)}\nReport: \n{code_block(report)}\nScore:  {score}\n"


def render_interview_summary(
    snapshot: InterviewSnapshot,
    *,
    names: Mapping[str, str] | None = None,
) -> str:
    """Markdown summary stored when an interview closes.

    ``names`` maps opaque ids to display names when the transport can resolve
    them; unresolved ids are printed as-is.
    """
    names = names or {}
    interview = snapshot.interview
    dual_role = holds_both_roles(interview)

    def label(user_id: str) -> str:
        return names.get(user_id, user_id)

    text = f"# Interview #{interview.id}\n"
    text += (
        f"Application Manager: {label(interview.application_manager_id)}\n"
        f"Hiring Manager:      {label(interview.hiring_manager_id)}\n"
        f"Evaluee:             {label(interview.candidate_id)}\n"
        f"Role:                {interview.specialization.value}\n"
        f"Created:             {interview.created_at.isoformat()}\n"
    )
    if interview.closed_at is not None:
        text += f"Closed:              {interview.closed_at.isoformat()}\n"

    text += "## Tasks\n"
    for task in snapshot.tasks:
        text += f"### {task.name}\n"
        text += f"work:\n{code_block(task.work or '')}\n"
        text += _task_evaluation_section(
            "Hiring Manager Evaluation",
            snapshot.task_evaluations.get(task.hm_evaluation_id),
        )
        if not dual_role:
            text += _task_evaluation_section(
                "Application Manager Evaluation",
                snapshot.task_evaluations.get(task.am_evaluation_id),
            )

    text += "## Interview Evaluations\n"
    text += _interview_evaluation_section("Hiring Manager Evaluation", snapshot.hm_evaluation)
    if not dual_role:
        text += _interview_evaluation_section("Application Manager Evaluation", snapshot.am_evaluation)
    return text


def render_capacity_table(rows: Iterable[CapacityRow]) -> str:
    header = "  " + "Role".ljust(15) + " | Queue Max | Interview Role      | Interview? | #Evals"
    lines = [header, "-" * len(header)]
    for row in rows:
        lines.append(
            "  "
            + row.specialization.value.ljust(15)
            + " | "
            + str(row.queue_max).ljust(9)
            + " | "
            + row.max_authority.value.ljust(19)
            + " | "
            + yes_or_no(row.willing_to_interview).ljust(10)
            + " | "
            + f"{row.open_interviews}/{row.total_interviews}"
        )
    return "\n".join(lines) + "\n"


def render_phase_counts(counts: Mapping[InterviewPhase, int]) -> str:
    return "\n".join(f"{phase.value.ljust(16)} {counts.get(phase, 0)}" for phase in InterviewPhase) + "\n"


def render_referral_table(referrals: Iterable[Referral]) -> str:
    lines = ["| id | Candidate   | Role       | Rating |", "| -- | ----------- | ---------- | ------ |"]
    for index, referral in enumerate(referrals):
        roles = ", ".join(sorted(item.value for item in referral.specializations))
        lines.append(
            f"| {str(index).rjust(2)} | {(referral.candidate_name or referral.candidate_id).ljust(11)} "
            f"| {roles.ljust(10)} | {str(referral.rating).ljust(6)} |"
        )
    return "\n".join(lines) + "\n"
