"""Pydantic records for reviewers, referrals, interviews and evaluations."""

from __future__ import annotations

from datetime import datetime
from enum import Enum

import pendulum
from pydantic import BaseModel, ConfigDict, Field

from ..errors import ArgumentError

_ACRONYMS = {"UI", "VFX"}


def _english(name: str) -> str:
    words = name.replace("_", " ").split(" ")
    return " ".join(word.upper() if word.upper() in _ACRONYMS else word.capitalize() for word in words)


class Specialization(str, Enum):
    """Skill category an interview targets."""

    BUILDER = "BUILDER"
    PROGRAMMER = "PROGRAMMER"
    ANIMATOR = "ANIMATOR"
    UI_ARTIST = "UI_ARTIST"
    ICON_ARTIST = "ICON_ARTIST"
    VFX_ARTIST = "VFX_ARTIST"

    @property
    def display_name(self) -> str:
        return _english(self.value)


class Authority(str, Enum):
    """Highest interview role a reviewer may be given for a specialization."""

    HIRING_MANAGER = "HIRING_MANAGER"
    APPLICATION_MANAGER = "APPLICATION_MANAGER"
    NONE = "NONE"


class InterviewRole(str, Enum):
    HIRING_MANAGER = "HIRING_MANAGER"
    APPLICATION_MANAGER = "APPLICATION_MANAGER"

    @property
    def display_name(self) -> str:
        return _english(self.value).lower()


class InterviewPhase(str, Enum):
    OPEN = "OPEN"
    TASKS_FINALIZED = "TASKS_FINALIZED"
    EVALUATED = "EVALUATED"
    CLOSED = "CLOSED"
    DECIDED = "DECIDED"


def parse_specialization(value: str | Specialization | None) -> Specialization:
    """Parse user input such as ``"ui artist"`` or ``"VFX-ARTIST"``."""
    if isinstance(value, Specialization):
        return value
    if not value or not value.strip():
        raise ArgumentError("A specialization is required!")
    normalized = value.strip().upper().replace("-", "_").replace(" ", "_")
    try:
        return Specialization(normalized)
    except ValueError as exc:
        choices = ", ".join(item.value for item in Specialization)
        raise ArgumentError(f"{value} not in [{choices}]") from exc


def parse_authority(value: str | Authority | None) -> Authority:
    if isinstance(value, Authority):
        return value
    if value is None:
        return Authority.NONE
    try:
        return Authority(value.strip().upper())
    except ValueError as exc:
        raise ArgumentError(f"Unknown interview role: {value}") from exc


def parse_role(value: str | InterviewRole) -> InterviewRole:
    if isinstance(value, InterviewRole):
        return value
    try:
        return InterviewRole(str(value).strip().upper().replace(" ", "_"))
    except ValueError as exc:
        raise ArgumentError(f"Unknown interview role: {value}") from exc


class RolePreference(BaseModel):
    """Capacity and willingness of a reviewer for one specialization."""

    reviewer_id: str
    specialization: Specialization
    queue_max: int = Field(default=5, ge=1, le=5)
    willing_to_interview: bool = False
    max_authority: Authority = Authority.NONE

    model_config = ConfigDict(extra="forbid")


class Referral(BaseModel):
    """A candidate proposed by a referrer."""

    candidate_id: str
    candidate_name: str | None = None
    referrer_id: str
    specializations: set[Specialization] = Field(min_length=1)
    rating: int = Field(default=3, ge=1, le=5)
    notes: str = ""
    created_at: datetime = Field(default_factory=pendulum.now)

    model_config = ConfigDict(extra="forbid")


class Interview(BaseModel):
    """Central workflow entity, one per (candidate, specialization)."""

    id: int
    specialization: Specialization
    candidate_id: str
    hiring_manager_id: str
    application_manager_id: str
    thread_ref: str | None = None
    tasks_finalized: bool = False
    complete: bool = False
    hire_decision: bool | None = None
    summary: str | None = None
    created_at: datetime = Field(default_factory=pendulum.now)
    closed_at: datetime | None = None

    model_config = ConfigDict(extra="forbid")


class TaskEvaluation(BaseModel):
    """One reviewer's verdict on one task."""

    id: int
    interview_id: int
    task_name: str
    role: InterviewRole
    reviewer_id: str
    passed: bool | None = None
    report: str | None = None

    model_config = ConfigDict(extra="forbid")


class Task(BaseModel):
    """A unit of evaluatable work inside an interview."""

    interview_id: int
    name: str
    work: str | None = None
    hm_evaluation_id: int
    am_evaluation_id: int

    model_config = ConfigDict(extra="forbid")


class InterviewEvaluation(BaseModel):
    """Interview-level verdict of the HM or the AM."""

    interview_id: int
    role: InterviewRole
    reviewer_id: str
    passed: bool | None = None
    score: int | None = Field(default=None, ge=1, le=10)
    report: str | None = None

    model_config = ConfigDict(extra="forbid")
