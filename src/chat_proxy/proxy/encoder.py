"""Protocol message encoding for proxied calls."""

from __future__ import annotations

import json
from collections.abc import Mapping, Sequence
from typing import Any

from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage
from pydantic_core import to_json

from chat_proxy.types import CallExample, ProxyRequest

PROTOCOL_PREAMBLE = """
You are a JSON-RPC service.
Respond only with a single JSON value that matches the response schema.
Do not include explaining text outside the JSON.
All input parameters are optional.
Outputs are based on inputs; fill any missing information with plausible values.
You will respond to the following method:
""".strip()

_ROLES = {"system": "system", "human": "user", "ai": "assistant"}


def public_members(value: Any) -> Any:
    members = getattr(value, "__dict__", None)
    if members is None:
        return str(value)
    return {name: item for name, item in members.items() if not name.startswith("_")}


def argument_literal(value: Any) -> str:
    """JSON literal text for one argument value."""
    return to_json(value, fallback=public_members).decode("utf-8")


def arguments_to_text(arguments: Mapping[str, str]) -> str:
    """Render an argument map of literals as a JSON object, one entry per line."""
    return "{" + ",\n".join(f'"{name}": {literal}' for name, literal in arguments.items()) + "}"


class CallEncoder:
    """Builds the ordered message sequence for one call.

    Order is fixed: a system message with the protocol preamble and method
    schema, then a user/assistant pair per example, then the current call.
    """

    def __init__(self, preamble: str = PROTOCOL_PREAMBLE) -> None:
        self.preamble = preamble

    def system_prompt(self, schema: str) -> str:
        return f"{self.preamble}\n\n{schema}".strip()

    def example_messages(self, examples: Sequence[CallExample]) -> list[BaseMessage]:
        messages: list[BaseMessage] = []
        for example in examples:
            messages.append(HumanMessage(content=arguments_to_text(example.arguments)))
            messages.append(AIMessage(content=example.response))
        return messages

    def encode(
        self,
        request: ProxyRequest,
        examples: Sequence[CallExample] = (),
    ) -> list[BaseMessage]:
        return [
            SystemMessage(content=self.system_prompt(request.schema)),
            *self.example_messages(examples),
            HumanMessage(content=arguments_to_text(request.arguments)),
        ]

    @staticmethod
    def payload(
        messages: Sequence[BaseMessage],
        *,
        model: str,
        temperature: float,
        max_tokens: int,
    ) -> str:
        """Serialized request body, used for moderation and input-length accounting."""
        return json.dumps(
            {
                "model": model,
                "messages": [
                    {"role": _ROLES.get(message.type, message.type), "content": message.content}
                    for message in messages
                ],
                "max_tokens": max_tokens,
                "temperature": temperature,
            },
            ensure_ascii=False,
        )
