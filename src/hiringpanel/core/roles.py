"""Which interview roles a reviewer holds on an interview."""

from __future__ import annotations

from ..errors import CredentialsError
from ..schemas import Interview, InterviewRole


def roles_of(reviewer_id: str, interview: Interview) -> frozenset[InterviewRole]:
    roles: set[InterviewRole] = set()
    if reviewer_id == interview.hiring_manager_id:
        roles.add(InterviewRole.HIRING_MANAGER)
    if reviewer_id == interview.application_manager_id:
        roles.add(InterviewRole.APPLICATION_MANAGER)
    return frozenset(roles)


def require_roles(reviewer_id: str, interview: Interview) -> frozenset[InterviewRole]:
    """Return the caller's roles, rejecting callers that hold none."""
    roles = roles_of(reviewer_id, interview)
    if not roles:
        raise CredentialsError(
            "It seems that you aren't the application manager nor the hiring manager for this interview!",
            f"reviewer_id={reviewer_id} interview_id={interview.id}",
        )
    return roles


def require_role(reviewer_id: str, interview: Interview, role: InterviewRole) -> frozenset[InterviewRole]:
    roles = require_roles(reviewer_id, interview)
    if role not in roles:
        raise CredentialsError(
            f"You need to be the {role.display_name} for this interview to do that!",
            f"reviewer_id={reviewer_id} interview_id={interview.id} role={role.value}",
        )
    return roles


def holds_both_roles(interview: Interview) -> bool:
    return interview.hiring_manager_id == interview.application_manager_id
