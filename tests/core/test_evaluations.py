from __future__ import annotations

import pytest

from hiringpanel.core import evaluations_complete, is_task_evaluation_complete
from hiringpanel.core.evaluations import (
    parse_approval,
    parse_rating,
    task_status,
    validate_report,
    validate_task_name,
)
from hiringpanel.errors import ArgumentError
from hiringpanel.schemas import (
    Interview,
    InterviewEvaluation,
    InterviewRole,
    Specialization,
    Task,
    TaskEvaluation,
)


def build_interview(hm: str = "hm", am: str = "am") -> Interview:
    return Interview(
        id=1,
        specialization=Specialization.ICON_ARTIST,
        candidate_id="cand",
        hiring_manager_id=hm,
        application_manager_id=am,
    )


def build_task_evaluation(**kwargs) -> TaskEvaluation:
    defaults = {
        "id": 1,
        "interview_id": 1,
        "task_name": "icons",
        "role": InterviewRole.HIRING_MANAGER,
        "reviewer_id": "hm",
    }
    defaults.update(kwargs)
    return TaskEvaluation(**defaults)


def build_interview_evaluation(role: InterviewRole, **kwargs) -> InterviewEvaluation:
    defaults = {"interview_id": 1, "role": role, "reviewer_id": "x"}
    defaults.update(kwargs)
    return InterviewEvaluation(**defaults)


@pytest.mark.parametrize(
    ("value", "expected"),
    [("y", True), ("N", False), (" ", None), (None, None), (True, True)],
)
def test_parse_approval(value, expected):
    assert parse_approval(value) is expected


def test_parse_approval_rejects_other_words():
    with pytest.raises(ArgumentError):
        parse_approval("maybe")


def test_parse_rating_bounds():
    assert parse_rating("7") == 7
    assert parse_rating("") is None
    for bad in ("0", "11", "seven", 12, 8.5, "8.5", True):
        with pytest.raises(ArgumentError):
            parse_rating(bad)


def test_single_character_report_is_not_complete():
    assert not is_task_evaluation_complete(build_task_evaluation(passed=True, report="."))
    assert is_task_evaluation_complete(build_task_evaluation(passed=False, report="ok"))
    assert not is_task_evaluation_complete(build_task_evaluation(report="missing verdict"))


def test_report_and_task_name_limits():
    assert validate_report("x" * 1500) == "x" * 1500
    with pytest.raises(ArgumentError):
        validate_report("x" * 1501)
    assert validate_task_name("  level  ") == "level"


def test_evaluations_complete_needs_both_roles():
    hm = build_interview_evaluation(InterviewRole.HIRING_MANAGER, passed=True, score=8, report="good")
    am_partial = build_interview_evaluation(InterviewRole.APPLICATION_MANAGER, passed=True)

    status = evaluations_complete(build_interview(), hm, am_partial)

    assert status.hm_complete
    assert not status.am_complete
    assert not status.complete


def test_dual_role_mirrors_hiring_manager_completion():
    hm = build_interview_evaluation(InterviewRole.HIRING_MANAGER, passed=False, score=2, report="weak")

    assert evaluations_complete(build_interview("solo", "solo"), hm, None).complete
    assert not evaluations_complete(build_interview("solo", "solo"), None, None).complete


def test_task_status_rows():
    task = Task(interview_id=1, name="icons", work="link", hm_evaluation_id=1, am_evaluation_id=2)
    hm = build_task_evaluation(passed=True, report="nice")
    am = build_task_evaluation(id=2, role=InterviewRole.APPLICATION_MANAGER, reviewer_id="am")

    status = task_status(task, hm, am, dual_role=False)
    dual = task_status(task, hm, None, dual_role=True)

    assert (status.work_submitted, status.hm_review_complete, status.am_review_complete) == (True, True, False)
    assert not status.complete
    assert dual.complete
