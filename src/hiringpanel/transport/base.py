"""Transport contract types."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable


class TransportFailure(Exception):
    """Raised by transport implementations when the chat platform call fails."""


class _TimedOut:
    _instance: "_TimedOut | None" = None

    def __new__(cls) -> "_TimedOut":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:  # pragma: no cover - trivial
        return "TIMED_OUT"

    def __bool__(self) -> bool:
        return False


TIMED_OUT = _TimedOut()


@dataclass(slots=True)
class PromptHandle:
    """Opaque reference to a prompt waiting for a human answer."""

    prompt_id: str
    target: str
    content: str
    options: dict[str, Any] = field(default_factory=dict)


@runtime_checkable
class Transport(Protocol):
    """Chat/collaboration platform contract.

    Every method may raise :class:`TransportFailure`.
    """

    def send_message(self, target: str, content: str) -> None:
        """Post a plain message to a user or thread."""

    def send_prompt(self, target: str, content: str, options: dict[str, Any]) -> PromptHandle:
        """Post an interactive prompt (buttons, form, select menu)."""

    def await_response(self, handle: PromptHandle, timeout: float) -> Any:
        """Block until the prompt is answered or ``timeout`` seconds pass (``TIMED_OUT``)."""

    def create_thread(self, channel: str, name: str) -> str:
        """Create a private collaboration thread and return its reference."""

    def add_member(self, thread_ref: str, user_id: str) -> None:
        """Invite a user into a thread."""

    def remove_member(self, thread_ref: str, user_id: str, reason: str) -> None:
        """Remove a user from a thread."""


