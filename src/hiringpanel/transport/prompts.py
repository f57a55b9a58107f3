"""Interactive steps that wait for a human with a deadline."""

from __future__ import annotations

from enum import Enum
from typing import Any, Callable

import pendulum
import structlog

from ..errors import ArgumentError
from .base import TIMED_OUT, PromptHandle, Transport

TIMED_OUT_MESSAGE = "Timed out"


class PromptState(str, Enum):
    CREATED = "CREATED"
    PENDING = "PENDING"
    ANSWERED = "ANSWERED"
    TIMED_OUT = "TIMED_OUT"


class Prompt:
    """A prompt that resolves exactly once, to an answer or to a timeout.

    On timeout a single "timed out" notice is posted to the target; later
    calls to :meth:`wait` return ``TIMED_OUT`` without posting again.
    """

    def __init__(
        self,
        transport: Transport,
        target: str,
        content: str,
        *,
        timeout: float,
        options: dict[str, Any] | None = None,
        now_provider: Callable[[], pendulum.DateTime] | None = None,
    ) -> None:
        self._transport = transport
        self._target = target
        self._content = content
        self._options = options or {}
        self._timeout = timeout
        self._now = now_provider or pendulum.now
        self._handle: PromptHandle | None = None
        self._deadline: pendulum.DateTime | None = None
        self._answer: Any = None
        self.state = PromptState.CREATED
        self._logger = structlog.get_logger(__name__)

    @property
    def deadline(self) -> pendulum.DateTime | None:
        return self._deadline

    def send(self) -> "Prompt":
        if self.state is not PromptState.CREATED:
            return self
        self._handle = self._transport.send_prompt(self._target, self._content, self._options)
        self._deadline = self._now().add(seconds=self._timeout)
        self.state = PromptState.PENDING
        return self

    def wait(self) -> Any:
        if self.state is PromptState.CREATED:
            self.send()
        if self.state is PromptState.ANSWERED:
            return self._answer
        if self.state is PromptState.TIMED_OUT:
            return TIMED_OUT

        remaining = (self._deadline - self._now()).total_seconds()
        response = TIMED_OUT if remaining <= 0 else self._transport.await_response(self._handle, remaining)
        if response is TIMED_OUT:
            self._expire()
            return TIMED_OUT
        self._answer = response
        self.state = PromptState.ANSWERED
        return response

    def _expire(self) -> None:
        self.state = PromptState.TIMED_OUT
        self._logger.info("prompt.timed_out", target=self._target, prompt_id=self._handle.prompt_id)
        self._transport.send_message(self._target, TIMED_OUT_MESSAGE)


def parse_confirmation(response: Any) -> bool:
    if isinstance(response, bool):
        return response
    normalized = str(response).strip().lower()
    if normalized in {"y", "yes"}:
        return True
    if normalized in {"n", "no"}:
        return False
    raise ArgumentError("Answer must be yes or no!", f"response={response!r}")


def confirm(
    transport: Transport,
    target: str,
    question: str,
    *,
    timeout: float,
    now_provider: Callable[[], pendulum.DateTime] | None = None,
) -> Any:
    """Ask a yes/no question; returns a bool or ``TIMED_OUT``."""
    prompt = Prompt(
        transport,
        target,
        question,
        timeout=timeout,
        options={"choices": ["yes", "no"]},
        now_provider=now_provider,
    )
    response = prompt.wait()
    if response is TIMED_OUT:
        return TIMED_OUT
    return parse_confirmation(response)
