"""Pydantic schema definitions for the hiring workflow."""

from __future__ import annotations

from .records import (
    Authority,
    Interview,
    InterviewEvaluation,
    InterviewPhase,
    InterviewRole,
    Referral,
    RolePreference,
    Specialization,
    Task,
    TaskEvaluation,
    parse_authority,
    parse_role,
    parse_specialization,
)

__all__ = [
    "Authority",
    "Interview",
    "InterviewEvaluation",
    "InterviewPhase",
    "InterviewRole",
    "Referral",
    "RolePreference",
    "Specialization",
    "Task",
    "TaskEvaluation",
    "parse_authority",
    "parse_role",
    "parse_specialization",
]
