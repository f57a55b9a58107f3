"""Chat transport contract consumed by the service layer."""

from __future__ import annotations

from .base import TIMED_OUT, PromptHandle, Transport, TransportFailure
from .prompts import Prompt, PromptState, confirm
from .scripted import ScriptedTransport

__all__ = [
    "TIMED_OUT",
    "Prompt",
    "PromptHandle",
    "PromptState",
    "ScriptedTransport",
    "Transport",
    "TransportFailure",
    "confirm",
]
