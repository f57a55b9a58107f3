"""Externally-facing hiring workflow operations.

Each public method returns an :class:`~hiringpanel.errors.Outcome`. Collaborator
failures (store, transport) are translated into the error taxonomy here and
never escape to the caller.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Iterable, TypeVar

import structlog

from .core import CapacityStore, InterviewLifecycle, MatchingEngine
from .core.reports import (
    code_block,
    render_capacity_table,
    render_interview_summary,
    render_phase_counts,
    render_referral_table,
    render_status,
    render_task_list,
)
from .core.roles import require_roles
from .errors import (
    ArgumentError,
    ContextError,
    CredentialsError,
    HiringPanelError,
    InternalDataError,
    InternalError,
    Outcome,
    TransportError,
)
from .schemas import (
    InterviewPhase,
    InterviewRole,
    Referral,
    parse_authority,
    parse_specialization,
)
from .store import ConstraintViolation, InterviewStore, StoreError
from .transport import TIMED_OUT, Prompt, Transport, TransportFailure, confirm

T = TypeVar("T")


@dataclass
class ServiceConfig:
    """Out-of-band settings for the service layer."""

    admin_id: str | None = None
    hiring_channel: str = "hiring"
    prompt_timeout_seconds: float = 5 * 60
    decision_timeout_seconds: float = 60 * 60


class HiringService:
    """Coordinates referrals, reviewer assignment and interview lifecycle."""

    def __init__(
        self,
        *,
        store: InterviewStore,
        transport: Transport,
        capacity: CapacityStore,
        matching: MatchingEngine,
        lifecycle: InterviewLifecycle,
        config: ServiceConfig | None = None,
    ) -> None:
        self._store = store
        self._transport = transport
        self._capacity = capacity
        self._matching = matching
        self._lifecycle = lifecycle
        self._config = config or ServiceConfig()
        self._logger = structlog.get_logger(__name__)

    # Plumbing ------------------------------------------------------------

    def is_admin(self, caller_id: str) -> bool:
        return self._config.admin_id is not None and caller_id == self._config.admin_id

    def _run(self, operation: str, action: Callable[[], Outcome], **context: Any) -> Outcome:
        try:
            return action()
        except HiringPanelError as exc:
            return self._reject(operation, exc, context)
        except TransportFailure as exc:
            return self._reject(operation, TransportError("Chat platform request failed!", str(exc)), context)
        except StoreError as exc:
            return self._reject(operation, InternalDataError("Database error!", repr(exc)), context)
        except Exception as exc:
            return self._reject(operation, InternalError("Unhandled failure!", repr(exc)), context)

    def _reject(self, operation: str, error: HiringPanelError, context: dict[str, Any]) -> Outcome:
        if error.kind.internal:
            self._logger.error(
                "service.internal_error",
                operation=operation,
                kind=error.kind.value,
                error=error.message,
                detail=error.detail,
                **context,
            )
        else:
            self._logger.info(
                "service.rejected",
                operation=operation,
                kind=error.kind.value,
                error=error.message,
                **context,
            )
        return Outcome.failure(error)

    def _transport_call(self, message: str, call: Callable[..., T], *args: Any) -> T:
        try:
            return call(*args)
        except TransportFailure as exc:
            raise TransportError(message, str(exc)) from exc

    def _notify(self, target: str, content: str, warnings: list[str]) -> None:
        """Best-effort message after state has been committed."""
        try:
            self._transport.send_message(target, content)
        except TransportFailure as exc:
            self._logger.warning("service.notify_failed", target=target, error=str(exc))
            warnings.append(f"Could not notify {target}")

    def _require_reviewer(self, caller_id: str) -> None:
        if not self._store.reviewer_exists(caller_id):
            raise CredentialsError("You must be an evaluator to do that!", f"caller_id={caller_id}")

    def _require_admin(self, caller_id: str) -> None:
        if not self.is_admin(caller_id):
            raise CredentialsError("Only the administrator can do that!", f"caller_id={caller_id}")

    # Referrals -----------------------------------------------------------

    def refer(
        self,
        referrer_id: str,
        candidate_id: str,
        specializations: Iterable[str],
        *,
        candidate_name: str | None = None,
        rating: int = 3,
        notes: str = "",
    ) -> Outcome:
        def action() -> Outcome:
            parsed = {parse_specialization(value) for value in specializations}
            if not parsed:
                raise ArgumentError("At least one role is required!")
            if not 1 <= rating <= 5:
                raise ArgumentError(f"{rating} not in range 1 - 5")
            referral = Referral(
                candidate_id=candidate_id,
                candidate_name=candidate_name,
                referrer_id=referrer_id,
                specializations=parsed,
                rating=rating,
                notes=notes,
            )
            try:
                referral = self._store.create_referral(referral)
            except ConstraintViolation as exc:
                raise ContextError(f"{candidate_name or candidate_id} has already been referred", str(exc)) from exc
            self._logger.info(
                "referral.created",
                candidate_id=candidate_id,
                referrer_id=referrer_id,
                specializations=sorted(item.value for item in parsed),
            )
            return Outcome.success("Referral recorded", referral)

        return self._run("refer", action, candidate_id=candidate_id)

    def delete_referral(self, caller_id: str, candidate_id: str) -> Outcome:
        def action() -> Outcome:
            self._require_admin(caller_id)
            try:
                referral = self._store.delete_referral(candidate_id)
            except StoreError as exc:
                raise ContextError("This entry does not exist.", str(exc)) from exc
            return Outcome.success("Referral deleted", referral)

        return self._run("delete_referral", action, candidate_id=candidate_id)

    def view_referrals(self, caller_id: str, candidate_id: str | None = None) -> Outcome:
        """List every referral, or only the one for ``candidate_id``."""

        def action() -> Outcome:
            if not self.is_admin(caller_id):
                self._require_reviewer(caller_id)
            if candidate_id is None:
                referrals = sorted(self._store.list_referrals(), key=lambda item: item.created_at)
            else:
                try:
                    referrals = [self._store.get_referral(candidate_id)]
                except StoreError as exc:
                    raise ContextError("This entry does not exist.", str(exc)) from exc
            return Outcome.success(code_block(render_referral_table(referrals)), referrals)

        return self._run("view_referrals", action, candidate_id=candidate_id)

    # Reviewer configuration ---------------------------------------------

    def configure_reviewer(
        self,
        reviewer_id: str,
        specialization: str,
        *,
        willing: bool,
        queue_max: int | None = None,
        can_interview: bool = False,
    ) -> Outcome:
        def action() -> Outcome:
            parsed = parse_specialization(specialization)
            if willing:
                self._capacity.configure(
                    reviewer_id,
                    parsed,
                    willing_to_interview=can_interview,
                    queue_max=queue_max,
                )
                message = "Updated your evaluator profile!"
            else:
                self._capacity.remove(reviewer_id, parsed)
                message = "Removed role from your evaluator profile!"
            rows = self._capacity.summary(reviewer_id)
            return Outcome.success(message + "\n" + code_block(render_capacity_table(rows)), rows)

        return self._run("configure_reviewer", action, reviewer_id=reviewer_id)

    def remove_role(self, reviewer_id: str, specialization: str) -> Outcome:
        return self.configure_reviewer(reviewer_id, specialization, willing=False)

    def reviewer_summary(self, reviewer_id: str) -> Outcome:
        def action() -> Outcome:
            rows = self._capacity.summary(reviewer_id)
            return Outcome.success(code_block(render_capacity_table(rows)), rows)

        return self._run("reviewer_summary", action, reviewer_id=reviewer_id)

    def grant_authority(self, caller_id: str, reviewer_id: str, specialization: str, authority: str) -> Outcome:
        def action() -> Outcome:
            self._require_admin(caller_id)
            preference = self._capacity.grant_authority(
                reviewer_id,
                parse_specialization(specialization),
                parse_authority(authority),
            )
            return Outcome.success("Done", preference)

        return self._run("grant_authority", action, reviewer_id=reviewer_id)

    def remove_reviewer(self, caller_id: str, reviewer_id: str) -> Outcome:
        def action() -> Outcome:
            self._require_admin(caller_id)
            removed = self._capacity.remove_reviewer(reviewer_id)
            return Outcome.success("Done", removed)

        return self._run("remove_reviewer", action, reviewer_id=reviewer_id)

    # Interview creation --------------------------------------------------

    def start_interview(self, caller_id: str, candidate_id: str, specialization: str) -> Outcome:
        """Match reviewers and provision the interview thread as one unit.

        If any step fails the interview record is rolled back. A thread that
        was already created on the platform is reported in the log.
        """

        def action() -> Outcome:
            self._require_reviewer(caller_id)
            parsed = parse_specialization(specialization)
            try:
                referral = self._store.get_referral(candidate_id)
            except StoreError as exc:
                raise ContextError(
                    "Failed to find referral for this user! Perhaps this user hasn't been referred",
                    str(exc),
                ) from exc
            if parsed not in referral.specializations:
                raise ArgumentError("The referred developer isn't available for this role!")

            thread_ref: str | None = None
            try:
                with self._store.transaction():
                    if self._store.find_interview(candidate_id, parsed) is not None:
                        raise ContextError(
                            "Looks like an evaluation has already been created for this developer and role!"
                        )
                    assignment = self._matching.assign(parsed, referral.referrer_id)
                    try:
                        interview = self._store.create_interview(
                            specialization=parsed,
                            candidate_id=candidate_id,
                            hiring_manager_id=assignment.hiring_manager_id,
                            application_manager_id=assignment.application_manager_id,
                        )
                    except ConstraintViolation as exc:
                        raise ContextError(
                            "Looks like an evaluation has already been created for this developer and role!",
                            str(exc),
                        ) from exc
                    thread_ref = self._transport_call(
                        "Failed to create thread!",
                        self._transport.create_thread,
                        self._config.hiring_channel,
                        f"{parsed.value.lower()}-{candidate_id}-{interview.id}",
                    )
                    members = [candidate_id, assignment.hiring_manager_id]
                    if not assignment.single_reviewer:
                        members.append(assignment.application_manager_id)
                    for member in members:
                        self._transport_call(
                            "Failed to set up interview thread!",
                            self._transport.add_member,
                            thread_ref,
                            member,
                        )
                    interview = self._store.update_interview(interview.id, thread_ref=thread_ref)
            except Exception:
                if thread_ref is not None:
                    self._logger.warning("service.thread_orphaned", thread_ref=thread_ref, candidate_id=candidate_id)
                raise

            warnings: list[str] = []
            self._notify(
                thread_ref,
                f"Welcome to your evaluation, {referral.candidate_name or candidate_id}!\n"
                f"Role:                {parsed.display_name}\n"
                f"Hiring Manager:      {interview.hiring_manager_id}\n"
                f"Application Manager: {interview.application_manager_id}",
                warnings,
            )
            outcome = Outcome.success("Successfully created interview", interview)
            outcome.extras["warnings"] = warnings
            return outcome

        return self._run("start_interview", action, candidate_id=candidate_id, specialization=specialization)

    def locate(self, thread_ref: str) -> Outcome:
        def action() -> Outcome:
            interview = self._lifecycle.interview_for_thread(thread_ref)
            return Outcome.success(f"Interview #{interview.id}", interview)

        return self._run("locate", action, thread_ref=thread_ref)

    # Tasks ---------------------------------------------------------------

    def create_or_update_task(self, caller_id: str, interview_id: int, name: str) -> Outcome:
        def action() -> Outcome:
            self._require_reviewer(caller_id)
            edit = self._lifecycle.create_or_update_task(caller_id, interview_id, name)
            message = f"Created task {edit.task.name}" if edit.created else f"Opened task {edit.task.name}"
            return Outcome.success(message, edit)

        return self._run("create_or_update_task", action, interview_id=interview_id, task=name)

    def set_work(self, caller_id: str, interview_id: int, name: str, work: str | None) -> Outcome:
        def action() -> Outcome:
            self._require_reviewer(caller_id)
            task = self._lifecycle.set_work(caller_id, interview_id, name, work)
            return Outcome.success("Work updated", task)

        return self._run("set_work", action, interview_id=interview_id, task=name)

    def show_work(self, caller_id: str, interview_id: int, name: str) -> Outcome:
        def action() -> Outcome:
            self._require_reviewer(caller_id)
            work = self._lifecycle.work(caller_id, interview_id, name)
            return Outcome.success(code_block(work or ""), work)

        return self._run("show_work", action, interview_id=interview_id, task=name)

    def delete_task(self, caller_id: str, interview_id: int, name: str) -> Outcome:
        def action() -> Outcome:
            self._require_reviewer(caller_id)
            task = self._lifecycle.delete_task(caller_id, interview_id, name)
            return Outcome.success(f"Deleted task {task.name}", task)

        return self._run("delete_task", action, interview_id=interview_id, task=name)

    def review_task(
        self,
        caller_id: str,
        interview_id: int,
        name: str,
        *,
        approval: str | bool | None,
        report: str | None,
        role: InterviewRole | str | None = None,
    ) -> Outcome:
        def action() -> Outcome:
            self._require_reviewer(caller_id)
            evaluation = self._lifecycle.submit_task_evaluation(
                caller_id,
                interview_id,
                name,
                approval=approval,
                report=report,
                role=role,
            )
            return Outcome.success("Report submitted", evaluation)

        return self._run("review_task", action, interview_id=interview_id, task=name)

    def evaluate_task(self, caller_id: str, interview_id: int, name: str) -> Outcome:
        """Open the task for the caller and collect their review through a form."""

        def action() -> Outcome:
            self._require_reviewer(caller_id)
            edit = self._lifecycle.create_or_update_task(caller_id, interview_id, name)
            for evaluation in edit.evaluations:
                prompt = Prompt(
                    self._transport,
                    caller_id,
                    edit.task.name,
                    timeout=self._config.prompt_timeout_seconds,
                    options={
                        "form": "task_evaluation",
                        "approval": _yn(evaluation.passed),
                        "report": evaluation.report or "",
                    },
                )
                response = prompt.wait()
                if response is TIMED_OUT:
                    return Outcome.timed_out()
                self._lifecycle.submit_task_evaluation(
                    caller_id,
                    interview_id,
                    edit.task.name,
                    approval=_field(response, "approval"),
                    report=_field(response, "report"),
                    role=evaluation.role,
                )
            return Outcome.success("Report submitted", edit.task)

        return self._run("evaluate_task", action, interview_id=interview_id, task=name)

    def task_list(self, caller_id: str, interview_id: int) -> Outcome:
        def action() -> Outcome:
            self._require_participant(caller_id, interview_id)
            snapshot = self._lifecycle.snapshot(interview_id)
            return Outcome.success(code_block(render_task_list(snapshot.task_statuses)), snapshot.task_statuses)

        return self._run("task_list", action, interview_id=interview_id)

    def status(self, caller_id: str, interview_id: int) -> Outcome:
        def action() -> Outcome:
            self._require_participant(caller_id, interview_id)
            snapshot = self._lifecycle.snapshot(interview_id)
            return Outcome.success(render_status(snapshot), snapshot)

        return self._run("status", action, interview_id=interview_id)

    def _require_participant(self, caller_id: str, interview_id: int) -> None:
        if self.is_admin(caller_id):
            return
        self._require_reviewer(caller_id)
        require_roles(caller_id, self._lifecycle.interview(interview_id))

    # Phase transitions ---------------------------------------------------

    def finalize_tasks(self, caller_id: str, interview_id: int) -> Outcome:
        def action() -> Outcome:
            self._require_reviewer(caller_id)
            with self._store.transaction():
                interview = self._lifecycle.finalize_tasks(caller_id, interview_id)
                if interview.thread_ref is not None:
                    self._transport_call(
                        "Failed to remove the evaluee from the interview thread!",
                        self._transport.remove_member,
                        interview.thread_ref,
                        interview.candidate_id,
                        "Tasks finalized",
                    )
            return Outcome.success("Tasks finalized", interview)

        return self._run("finalize_tasks", action, interview_id=interview_id)

    def review_interview(
        self,
        caller_id: str,
        interview_id: int,
        *,
        approval: str | bool | None,
        score: str | int | None,
        report: str | None,
        role: InterviewRole | str | None = None,
    ) -> Outcome:
        def action() -> Outcome:
            self._require_reviewer(caller_id)
            evaluation = self._lifecycle.submit_interview_evaluation(
                caller_id,
                interview_id,
                approval=approval,
                score=score,
                report=report,
                role=role,
            )
            return Outcome.success("Report submitted", evaluation)

        return self._run("review_interview", action, interview_id=interview_id)

    def evaluate_interview(self, caller_id: str, interview_id: int) -> Outcome:
        """Create the caller's interview evaluations and collect them through a form."""

        def action() -> Outcome:
            self._require_reviewer(caller_id)
            evaluations = self._lifecycle.request_evaluation(caller_id, interview_id)
            for evaluation in evaluations:
                prompt = Prompt(
                    self._transport,
                    caller_id,
                    "Interview Evaluation",
                    timeout=self._config.prompt_timeout_seconds,
                    options={
                        "form": "interview_evaluation",
                        "approval": _yn(evaluation.passed),
                        "score": "" if evaluation.score is None else str(evaluation.score),
                        "report": evaluation.report or "",
                    },
                )
                response = prompt.wait()
                if response is TIMED_OUT:
                    return Outcome.timed_out()
                self._lifecycle.submit_interview_evaluation(
                    caller_id,
                    interview_id,
                    approval=_field(response, "approval"),
                    score=_field(response, "score"),
                    report=_field(response, "report"),
                    role=evaluation.role,
                )
            return Outcome.success("Evaluation complete", evaluations)

        return self._run("evaluate_interview", action, interview_id=interview_id)

    def close_interview(self, caller_id: str, interview_id: int) -> Outcome:
        def action() -> Outcome:
            self._require_reviewer(caller_id)
            interview = self._lifecycle.close(caller_id, interview_id)
            warnings: list[str] = []
            if interview.thread_ref is not None:
                self._notify(interview.thread_ref, "This interview has been closed.", warnings)
            if self._config.admin_id is not None:
                self._notify(
                    self._config.admin_id,
                    f"Interview #{interview.id} is ready for a hiring decision.\n{interview.summary}",
                    warnings,
                )
            outcome = Outcome.success("Interview closed", interview)
            outcome.extras["warnings"] = warnings
            return outcome

        return self._run("close_interview", action, interview_id=interview_id)

    def decide_hire(self, caller_id: str, interview_id: int) -> Outcome:
        """Ask the administrator for a yes/no hiring decision and record it."""

        def action() -> Outcome:
            self._require_admin(caller_id)
            interview = self._lifecycle.interview(interview_id)
            if not interview.complete:
                raise ContextError("The interview must be closed before a hiring decision is made!")
            answer = confirm(
                self._transport,
                caller_id,
                f"Hire {interview.candidate_id} as {interview.specialization.display_name}? (y/n)",
                timeout=self._config.decision_timeout_seconds,
            )
            if answer is TIMED_OUT:
                return Outcome.timed_out()
            interview = self._lifecycle.decide_hire(caller_id, interview_id, answer)
            return Outcome.success("Hired" if answer else "Not hired", interview)

        return self._run("decide_hire", action, interview_id=interview_id)

    # Reporting -----------------------------------------------------------

    def generate_report(self, caller_id: str, interview_id: int) -> Outcome:
        def action() -> Outcome:
            self._require_participant(caller_id, interview_id)
            interview = self._lifecycle.interview(interview_id)
            if interview.summary:
                return Outcome.success(interview.summary, interview.summary)
            summary = render_interview_summary(self._lifecycle.snapshot(interview_id))
            return Outcome.success(summary, summary)

        return self._run("generate_report", action, interview_id=interview_id)

    def status_counts(self) -> Outcome:
        def action() -> Outcome:
            counts = {phase: 0 for phase in InterviewPhase}
            for interview in self._store.list_interviews():
                counts[self._lifecycle.phase(interview)] += 1
            return Outcome.success(render_phase_counts(counts), counts)

        return self._run("status_counts", action)


def _yn(value: bool | None) -> str:
    if value is None:
        return ""
    return "y" if value else "n"


def _field(response: Any, name: str) -> Any:
    if not isinstance(response, dict):
        raise ArgumentError("Unexpected form response!", f"response={response!r}")
    return response.get(name)
