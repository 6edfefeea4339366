"""Collaborator contracts: chat transport and moderation gate."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Protocol

from langchain_core.messages import BaseMessage


class ChatTransport(Protocol):
    """Sends role-tagged messages to a chat endpoint and returns the raw reply.

    Implementations own connection handling and HTTP-level retries, and raise
    :class:`chat_proxy.errors.TransportError` once those are exhausted.
    """

    def complete(
        self,
        messages: Sequence[BaseMessage],
        *,
        model: str,
        temperature: float,
        max_tokens: int,
    ) -> str:
        """Return the assistant's raw text for ``messages``."""


@dataclass(frozen=True, slots=True)
class ModerationResult:
    flagged: bool
    categories: tuple[str, ...] = field(default=())


class Moderation(Protocol):
    """Content-moderation gate consulted before any transport call."""

    def moderate(self, text: str) -> ModerationResult:
        """Classify ``text``; a flagged result blocks the call."""
