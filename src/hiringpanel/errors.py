"""Error taxonomy shared by the engine and the service layer."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorKind(str, Enum):
    ARGUMENT_ERROR = "ARGUMENT_ERROR"
    CREDENTIALS_ERROR = "CREDENTIALS_ERROR"
    CONTEXT_ERROR = "CONTEXT_ERROR"
    INTERNAL_DATA_ERROR = "INTERNAL_DATA_ERROR"
    TRANSPORT_ERROR = "TRANSPORT_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"
    TIMED_OUT = "TIMED_OUT"

    @property
    def internal(self) -> bool:
        """Internal failures are logged in full and shown to users generically."""
        return self in (ErrorKind.INTERNAL_ERROR, ErrorKind.INTERNAL_DATA_ERROR)


class HiringPanelError(Exception):
    """Base class for errors surfaced to callers.

    ``message`` is short and safe to show to a user, ``detail`` is for logs only.
    """

    kind: ErrorKind = ErrorKind.INTERNAL_ERROR

    def __init__(self, message: str, detail: str = "") -> None:
        super().__init__(message)
        self.message = message
        self.detail = detail

    def __str__(self) -> str:
        return self.message


class ArgumentError(HiringPanelError):
    kind = ErrorKind.ARGUMENT_ERROR


class CredentialsError(HiringPanelError):
    kind = ErrorKind.CREDENTIALS_ERROR


class ContextError(HiringPanelError):
    kind = ErrorKind.CONTEXT_ERROR


class NoCapacityError(ContextError):
    """No reviewer with spare capacity could fill ``role``."""

    def __init__(self, role: Any, specialization: Any) -> None:
        role_name = getattr(role, "display_name", str(role))
        super().__init__(
            f"Failed to find a free {role_name} for this role!",
            f"role={role} specialization={specialization}",
        )
        self.role = role
        self.specialization = specialization


class InternalDataError(HiringPanelError):
    kind = ErrorKind.INTERNAL_DATA_ERROR


class TransportError(HiringPanelError):
    kind = ErrorKind.TRANSPORT_ERROR


class InternalError(HiringPanelError):
    kind = ErrorKind.INTERNAL_ERROR


GENERIC_FAILURE_MESSAGE = "Something went wrong on our side. The incident has been logged."


@dataclass(slots=True)
class Outcome:
    """Result of an externally-facing operation."""

    ok: bool
    message: str
    kind: ErrorKind | None = None
    payload: Any = None
    extras: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def success(cls, message: str, payload: Any = None) -> "Outcome":
        return cls(ok=True, message=message, payload=payload)

    @classmethod
    def failure(cls, error: HiringPanelError) -> "Outcome":
        message = GENERIC_FAILURE_MESSAGE if error.kind.internal else error.message
        return cls(ok=False, message=message, kind=error.kind)

    @classmethod
    def timed_out(cls, message: str = "Timed out") -> "Outcome":
        return cls(ok=False, message=message, kind=ErrorKind.TIMED_OUT)


__all__ = [
    "ErrorKind",
    "HiringPanelError",
    "ArgumentError",
    "CredentialsError",
    "ContextError",
    "NoCapacityError",
    "InternalDataError",
    "TransportError",
    "InternalError",
    "Outcome",
    "GENERIC_FAILURE_MESSAGE",
]
