from __future__ import annotations

import pytest
from structlog.testing import capture_logs

from hiringpanel.core import CapacityConfig, CapacityStore, InterviewLifecycle, LifecycleConfig, MatchingEngine
from hiringpanel.errors import GENERIC_FAILURE_MESSAGE, ErrorKind
from hiringpanel.schemas import InterviewPhase, InterviewRole
from hiringpanel.service import HiringService, ServiceConfig
from hiringpanel.store import MemoryStore, StoreError
from hiringpanel.transport import ScriptedTransport

ADMIN = "admin"


def build_service(
    transport: ScriptedTransport | None = None,
    *,
    count_closed: bool = False,
) -> tuple[HiringService, MemoryStore, ScriptedTransport]:
    store = MemoryStore()
    transport = transport or ScriptedTransport()
    capacity = CapacityStore(store, config=CapacityConfig(count_closed_interviews=count_closed))
    service = HiringService(
        store=store,
        transport=transport,
        capacity=capacity,
        matching=MatchingEngine(capacity),
        lifecycle=InterviewLifecycle(store, config=LifecycleConfig(admin_id=ADMIN)),
        config=ServiceConfig(admin_id=ADMIN),
    )
    return service, store, transport


def add_reviewer(
    service: HiringService,
    reviewer_id: str,
    authority: str,
    *,
    interviews: bool = True,
    queue_max: int = 5,
    specialization: str = "programmer",
) -> None:
    assert service.grant_authority(ADMIN, reviewer_id, specialization, authority).ok
    outcome = service.configure_reviewer(
        reviewer_id,
        specialization,
        willing=True,
        queue_max=queue_max,
        can_interview=interviews,
    )
    assert outcome.ok, outcome.message


def build_panel(transport: ScriptedTransport | None = None) -> tuple[HiringService, MemoryStore, ScriptedTransport]:
    service, store, transport = build_service(transport)
    add_reviewer(service, "hm", "HIRING_MANAGER", interviews=False)
    add_reviewer(service, "am", "APPLICATION_MANAGER")
    assert service.refer("referrer", "cand", ["PROGRAMMER"], candidate_name="Casey").ok
    return service, store, transport


def test_full_interview_round_trip():
    service, store, transport = build_panel()

    started = service.start_interview("hm", "cand", "programmer")
    assert started.ok, started.message
    interview = started.payload
    assert (interview.hiring_manager_id, interview.application_manager_id) == ("hm", "am")
    assert transport.members(interview.thread_ref) == {"cand", "hm", "am"}
    assert service.locate(interview.thread_ref).payload.id == interview.id

    assert service.create_or_update_task("am", interview.id, "level").message == "Created task level"
    assert service.set_work("am", interview.id, "level", "https://example.com/level").ok
    assert service.review_task("am", interview.id, "level", approval="y", report="Clean layout").ok
    assert service.review_task("hm", interview.id, "level", approval="y", report="Good pacing").ok

    finalized = service.finalize_tasks("am", interview.id)
    assert finalized.ok
    assert transport.members(interview.thread_ref) == {"hm", "am"}
    assert transport.removals[-1][1:] == ("cand", "Tasks finalized")
    assert service.set_work("am", interview.id, "level", "late").kind is ErrorKind.CONTEXT_ERROR
    assert service.finalize_tasks("am", interview.id).kind is ErrorKind.CONTEXT_ERROR

    assert service.review_interview("hm", interview.id, approval="y", score="8", report="Strong").ok
    early = service.close_interview("hm", interview.id)
    assert early.kind is ErrorKind.CONTEXT_ERROR
    assert service.review_interview("am", interview.id, approval="n", score=4, report="Slow").ok

    closed = service.close_interview("am", interview.id)
    assert closed.ok
    assert "# Interview #1" in closed.payload.summary
    assert any("ready for a hiring decision" in message for message in transport.sent_to(ADMIN))

    transport.answer(ADMIN, "yes")
    decided = service.decide_hire(ADMIN, interview.id)
    assert decided.ok
    assert store.get_interview(interview.id).hire_decision is True

    counts = service.status_counts().payload
    assert counts[InterviewPhase.DECIDED] == 1
    assert service.generate_report("hm", interview.id).message == closed.payload.summary


def test_tier_a_reviewer_runs_interview_alone_through_prompts():
    service, store, transport = build_service()
    add_reviewer(service, "solo", "HIRING_MANAGER")
    service.refer("referrer", "cand", ["programmer"])
    interview = service.start_interview("solo", "cand", "PROGRAMMER").payload
    assert transport.members(interview.thread_ref) == {"cand", "solo"}

    transport.answer("solo", {"approval": "y", "report": "Nice work"})
    assert service.evaluate_task("solo", interview.id, "level").ok
    assert service.task_list("solo", interview.id).payload[0].complete is False
    service.set_work("solo", interview.id, "level", "link")
    assert service.task_list("solo", interview.id).payload[0].complete is True

    service.finalize_tasks("solo", interview.id)
    transport.answer("solo", {"approval": "y", "score": "9", "report": "Hire"})
    assert service.evaluate_interview("solo", interview.id).ok
    assert service.close_interview("solo", interview.id).ok


def test_prompt_timeout_leaves_state_untouched():
    service, store, transport = build_service()
    add_reviewer(service, "solo", "HIRING_MANAGER")
    service.refer("referrer", "cand", ["programmer"])
    interview = service.start_interview("solo", "cand", "programmer").payload

    outcome = service.evaluate_task("solo", interview.id, "level")

    assert outcome.kind is ErrorKind.TIMED_OUT
    assert transport.sent_to("solo")[-1] == "Timed out"
    task = store.get_task(interview.id, "level")
    assert store.get_task_evaluation(task.hm_evaluation_id).report is None


def test_hire_decision_times_out_without_answer():
    service, store, _ = build_panel()
    interview = service.start_interview("hm", "cand", "programmer").payload
    service.finalize_tasks("hm", interview.id)
    service.review_interview("hm", interview.id, approval="y", score=8, report="ok")
    service.review_interview("am", interview.id, approval="y", score=8, report="ok")
    service.close_interview("hm", interview.id)

    outcome = service.decide_hire(ADMIN, interview.id)

    assert outcome.kind is ErrorKind.TIMED_OUT
    assert store.get_interview(interview.id).hire_decision is None
    assert service.decide_hire("hm", interview.id).kind is ErrorKind.CREDENTIALS_ERROR


def test_duplicate_interview_is_rejected():
    service, store, _ = build_panel()
    assert service.start_interview("hm", "cand", "programmer").ok

    again = service.start_interview("hm", "cand", "programmer")

    assert again.kind is ErrorKind.CONTEXT_ERROR
    assert len(store.list_interviews()) == 1


@pytest.mark.parametrize("failing", ["create_thread", "add_member"])
def test_transport_failure_rolls_back_interview(failing):
    service, store, transport = build_panel(ScriptedTransport(failing={failing}))

    outcome = service.start_interview("hm", "cand", "programmer")

    assert outcome.kind is ErrorKind.TRANSPORT_ERROR
    assert store.list_interviews() == []

    transport.failing.clear()
    retried = service.start_interview("hm", "cand", "programmer")
    assert retried.ok
    assert retried.payload.id == 1


def test_finalize_rolls_back_when_candidate_cannot_be_removed():
    service, store, transport = build_panel()
    interview = service.start_interview("hm", "cand", "programmer").payload
    transport.failing.add("remove_member")

    outcome = service.finalize_tasks("hm", interview.id)

    assert outcome.kind is ErrorKind.TRANSPORT_ERROR
    assert store.get_interview(interview.id).tasks_finalized is False


def test_capacity_exhaustion_and_referrer_exclusion():
    service, store, _ = build_service()
    add_reviewer(service, "hm", "HIRING_MANAGER", queue_max=1)
    service.refer("hm", "self-referred", ["programmer"])
    service.refer("other", "c1", ["programmer"])
    service.refer("other", "c2", ["programmer"])

    excluded = service.start_interview("hm", "self-referred", "programmer")
    assert excluded.kind is ErrorKind.CONTEXT_ERROR
    assert "hiring manager" in excluded.message

    assert service.start_interview("hm", "c1", "programmer").ok
    assert service.start_interview("hm", "c2", "programmer").kind is ErrorKind.CONTEXT_ERROR


def test_closing_frees_capacity_unless_configured_otherwise():
    for count_closed, expected in ((False, True), (True, False)):
        service, _, _ = build_service(count_closed=count_closed)
        add_reviewer(service, "solo", "HIRING_MANAGER", queue_max=1)
        service.refer("other", "c1", ["programmer"])
        service.refer("other", "c2", ["programmer"])
        interview = service.start_interview("solo", "c1", "programmer").payload
        service.finalize_tasks("solo", interview.id)
        service.review_interview("solo", interview.id, approval="n", score=3, report="no")
        assert service.close_interview("solo", interview.id).ok

        assert service.start_interview("solo", "c2", "programmer").ok is expected


def test_referral_validation():
    service, _, _ = build_service()

    assert service.refer("r", "c", ["builder"], rating=6).kind is ErrorKind.ARGUMENT_ERROR
    assert service.refer("r", "c", ["juggler"]).kind is ErrorKind.ARGUMENT_ERROR
    assert service.refer("r", "c", ["builder"]).ok
    assert service.refer("r", "c", ["animator"]).kind is ErrorKind.CONTEXT_ERROR
    assert service.delete_referral("r", "c").kind is ErrorKind.CREDENTIALS_ERROR
    assert service.delete_referral(ADMIN, "c").ok


def test_start_interview_requires_referral_for_the_role():
    service, _, _ = build_panel()

    assert service.start_interview("hm", "nobody", "programmer").kind is ErrorKind.CONTEXT_ERROR
    assert service.start_interview("hm", "cand", "builder").kind is ErrorKind.ARGUMENT_ERROR
    assert service.start_interview("stranger", "cand", "programmer").kind is ErrorKind.CREDENTIALS_ERROR


def test_reviewer_configuration_messages():
    service, _, _ = build_service()
    add_reviewer(service, "hm", "HIRING_MANAGER")

    summary = service.reviewer_summary("hm")
    assert summary.ok
    assert "0/0" in summary.message
    assert service.configure_reviewer("hm", "builder", willing=False).message == "This role is not configured!"
    assert service.configure_reviewer("hm", "builder", willing=True).ok
    assert service.remove_role("hm", "builder").message.startswith("Removed role")
    assert service.configure_reviewer("hm", "programmer", willing=True, queue_max=9).kind is ErrorKind.ARGUMENT_ERROR
    assert service.remove_reviewer(ADMIN, "hm").ok
    assert service.reviewer_summary("hm").kind is ErrorKind.CREDENTIALS_ERROR


def test_store_failures_are_reported_generically():
    service, store, _ = build_panel()

    def broken(*args, **kwargs):
        raise RuntimeError("disk on fire")

    store.list_interviews = broken

    crashed = service.status_counts()
    assert crashed.kind is ErrorKind.INTERNAL_ERROR
    assert "disk on fire" not in crashed.message

    def failing(*args, **kwargs):
        raise StoreError("connection lost")

    store.list_interviews = failing
    outcome = service.status_counts()
    assert outcome.kind is ErrorKind.INTERNAL_DATA_ERROR
    assert outcome.message == GENERIC_FAILURE_MESSAGE


def test_fractional_scores_are_rejected():
    service, store, _ = build_panel()
    interview = service.start_interview("hm", "cand", "programmer").payload
    service.finalize_tasks("hm", interview.id)

    for score in (8.5, "8.5"):
        outcome = service.review_interview("hm", interview.id, approval="y", score=score, report="Strong")
        assert outcome.kind is ErrorKind.ARGUMENT_ERROR
        assert "between 1 and 10" in outcome.message

    stored = store.get_interview_evaluation(interview.id, InterviewRole.HIRING_MANAGER)
    assert stored is None or stored.score is None


def test_role_may_be_passed_as_text():
    service, store, _ = build_panel()
    interview = service.start_interview("hm", "cand", "programmer").payload
    service.create_or_update_task("am", interview.id, "level")

    outcome = service.review_task(
        "hm", interview.id, "level", approval="y", report="good", role="HIRING_MANAGER"
    )

    assert outcome.ok, outcome.message
    assert outcome.payload.role is InterviewRole.HIRING_MANAGER
    unknown = service.review_task("hm", interview.id, "level", approval="y", report="good", role="boss")
    assert unknown.kind is ErrorKind.ARGUMENT_ERROR


def test_padded_task_names_round_trip_through_the_service():
    service, _, _ = build_panel()
    interview = service.start_interview("hm", "cand", "programmer").payload

    assert service.create_or_update_task("am", interview.id, " algo1 ").message == "Created task algo1"
    assert service.set_work("am", interview.id, " algo1 ", "https://example.com/algo1").ok
    assert service.review_task("am", interview.id, " algo1 ", approval="y", report="tidy").ok
    assert service.delete_task("am", interview.id, " algo1 ").ok
    assert service.task_list("am", interview.id).payload == []


def test_view_referrals_lists_all_or_one():
    service, _, _ = build_panel()
    assert service.refer("referrer", "cand-2", ["builder"], rating=5).ok

    listing = service.view_referrals("hm")
    assert listing.ok
    assert [referral.candidate_id for referral in listing.payload] == ["cand", "cand-2"]
    assert "Casey" in listing.message
    assert "BUILDER" in listing.message

    single = service.view_referrals(ADMIN, "cand-2")
    assert [referral.candidate_id for referral in single.payload] == ["cand-2"]
    assert "Casey" not in single.message

    assert service.view_referrals("hm", "nobody").kind is ErrorKind.CONTEXT_ERROR
    assert service.view_referrals("stranger").kind is ErrorKind.CREDENTIALS_ERROR


def test_store_failure_after_thread_creation_rolls_back_and_logs_orphan():
    service, store, transport = build_panel()

    def failing(*args, **kwargs):
        raise StoreError("write failed")

    store.update_interview = failing

    with capture_logs() as logs:
        outcome = service.start_interview("hm", "cand", "programmer")

    assert outcome.kind is ErrorKind.INTERNAL_DATA_ERROR
    assert store.list_interviews() == []
    assert any(entry["event"] == "service.thread_orphaned" for entry in logs)
