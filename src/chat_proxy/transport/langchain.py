"""Chat transport over LangChain chat models."""

from __future__ import annotations

import os
from collections.abc import Sequence
from typing import Any

from langchain_core.language_models import BaseChatModel
from langchain_core.messages import BaseMessage

from chat_proxy.errors import TransportError


def create_chat_model() -> BaseChatModel | None:
    """OpenAI chat model from the environment, or ``None`` without an API key."""
    api_key = os.getenv("OPENAI_API_KEY")
    if not api_key:
        return None

    from langchain_openai import ChatOpenAI

    return ChatOpenAI(model=os.getenv("OPENAI_MODEL", "gpt-4o-mini"), max_retries=3)


class LangChainTransport:
    """Adapts any LangChain chat model to the ``ChatTransport`` contract.

    Retries and backoff are left to the wrapped model's client; whatever it
    finally raises is re-raised as :class:`TransportError`.
    """

    def __init__(self, llm: BaseChatModel) -> None:
        self.llm = llm

    def complete(
        self,
        messages: Sequence[BaseMessage],
        *,
        model: str,
        temperature: float,
        max_tokens: int,
    ) -> str:
        try:
            response = self.llm.invoke(
                list(messages),
                model=model,
                temperature=temperature,
                max_tokens=max_tokens,
            )
        except Exception as exc:
            raise TransportError(f"Chat request failed: {exc}") from exc
        return _message_text(response)


def _message_text(message: Any) -> str:
    content = getattr(message, "content", message)
    if isinstance(content, list):
        parts: list[str] = []
        for item in content:
            if isinstance(item, dict) and "text" in item:
                parts.append(str(item["text"]))
            else:
                parts.append(str(item))
        return "".join(parts)
    return str(content)
