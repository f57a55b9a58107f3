"""In-memory transport with pre-queued answers."""

from __future__ import annotations

import itertools
from collections import defaultdict, deque
from dataclasses import dataclass
from typing import Any

from .base import TIMED_OUT, PromptHandle, TransportFailure


@dataclass(slots=True)
class SentMessage:
    target: str
    content: str
    options: dict[str, Any] | None = None


class ScriptedTransport:
    """Transport double that replays queued answers per target.

    A prompt whose target has no queued answer times out immediately.
    Operation names listed in ``failing`` raise :class:`TransportFailure`.
    """

    def __init__(self, *, failing: set[str] | None = None) -> None:
        self.failing: set[str] = set(failing or ())
        self.messages: list[SentMessage] = []
        self.threads: dict[str, dict[str, Any]] = {}
        self.removals: list[tuple[str, str, str]] = []
        self._answers: dict[str, deque[Any]] = defaultdict(deque)
        self._ids = itertools.count(1)

    def answer(self, target: str, *responses: Any) -> "ScriptedTransport":
        self._answers[target].extend(responses)
        return self

    def _check(self, operation: str) -> None:
        if operation in self.failing:
            raise TransportFailure(f"{operation} failed")

    def send_message(self, target: str, content: str) -> None:
        self._check("send_message")
        self.messages.append(SentMessage(target, content))

    def send_prompt(self, target: str, content: str, options: dict[str, Any]) -> PromptHandle:
        self._check("send_prompt")
        self.messages.append(SentMessage(target, content, dict(options)))
        return PromptHandle(prompt_id=f"prompt-{next(self._ids)}", target=target, content=content, options=dict(options))

    def await_response(self, handle: PromptHandle, timeout: float) -> Any:
        self._check("await_response")
        queue = self._answers.get(handle.target)
        if not queue:
            return TIMED_OUT
        return queue.popleft()

    def create_thread(self, channel: str, name: str) -> str:
        self._check("create_thread")
        thread_ref = f"{channel}/{name}#{next(self._ids)}"
        self.threads[thread_ref] = {"channel": channel, "name": name, "members": set()}
        return thread_ref

    def add_member(self, thread_ref: str, user_id: str) -> None:
        self._check("add_member")
        self.threads[thread_ref]["members"].add(user_id)

    def remove_member(self, thread_ref: str, user_id: str, reason: str) -> None:
        self._check("remove_member")
        self.threads[thread_ref]["members"].discard(user_id)
        self.removals.append((thread_ref, user_id, reason))

    def members(self, thread_ref: str) -> set[str]:
        return set(self.threads[thread_ref]["members"])

    def sent_to(self, target: str) -> list[str]:
        return [message.content for message in self.messages if message.target == target]
