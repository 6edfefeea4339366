"""Moderation gates: the OpenAI moderation endpoint and a rule-based fallback."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any

import openai

from chat_proxy.errors import TransportError
from chat_proxy.transport.base import ModerationResult

logger = logging.getLogger(__name__)


class OpenAIModeration:
    """Moderation backed by the OpenAI ``moderations`` endpoint."""

    def __init__(self, client: Any | None = None, *, model: str = "omni-moderation-latest") -> None:
        self._client = client or openai.OpenAI()
        self.model = model

    def moderate(self, text: str) -> ModerationResult:
        try:
            response = self._client.moderations.create(input=text, model=self.model)
        except openai.OpenAIError as exc:
            raise TransportError(f"Moderation request failed: {exc}") from exc
        if not response.results:
            return ModerationResult(flagged=False)
        result = response.results[0]
        categories = result.categories.model_dump()
        flagged_categories = tuple(sorted(name for name, hit in categories.items() if hit))
        return ModerationResult(flagged=bool(result.flagged), categories=flagged_categories)


class KeywordModeration:
    """Deterministic substring gate for offline use.

    Matching is case-insensitive and trivially bypassed by rewording; it is a
    stand-in for a classifier, not a replacement.
    """

    def __init__(self, blocked_patterns: Iterable[str]) -> None:
        self.blocked_patterns = tuple(pattern.lower() for pattern in blocked_patterns if pattern)

    def moderate(self, text: str) -> ModerationResult:
        lowered = text.lower()
        hits = tuple(pattern for pattern in self.blocked_patterns if pattern in lowered)
        if hits:
            logger.debug("Keyword moderation matched %d pattern(s)", len(hits))
        return ModerationResult(flagged=bool(hits), categories=hits)
