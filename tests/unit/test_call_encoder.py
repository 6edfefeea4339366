import json

from langchain_core.messages import AIMessage, HumanMessage, SystemMessage

from chat_proxy.proxy.encoder import (
    PROTOCOL_PREAMBLE,
    CallEncoder,
    argument_literal,
    arguments_to_text,
)
from chat_proxy.types import CallExample, ProxyRequest


class Tag:
    def __init__(self, label: str) -> None:
        self.label = label
        self._hidden = True


def test_argument_literals_are_json() -> None:
    assert argument_literal("Oslo") == '"Oslo"'
    assert argument_literal(3) == "3"
    assert argument_literal(None) == "null"
    assert argument_literal(["a", "b"]) == '["a","b"]'
    assert argument_literal(Tag("x")) == '{"label":"x"}'


def test_arguments_render_one_entry_per_line() -> None:
    assert arguments_to_text({"city": '"Oslo"', "days": "3"}) == '{"city": "Oslo",\n"days": 3}'
    assert arguments_to_text({}) == "{}"


def test_message_order_system_examples_then_call() -> None:
    request = ProxyRequest(method_name="forecast", schema="operationId: forecast", arguments={"city": '"Oslo"'})
    examples = [CallExample(arguments={"city": '"Rome"'}, response='{"city": "Rome"}')]

    messages = CallEncoder().encode(request, examples)

    assert [type(message) for message in messages] == [SystemMessage, HumanMessage, AIMessage, HumanMessage]
    assert messages[0].content == f"{PROTOCOL_PREAMBLE}\n\noperationId: forecast"
    assert messages[1].content == '{"city": "Rome"}'
    assert messages[2].content == '{"city": "Rome"}'
    assert messages[3].content == '{"city": "Oslo"}'


def test_payload_is_role_tagged_json() -> None:
    request = ProxyRequest(method_name="m", schema="operationId: m")
    messages = CallEncoder().encode(request)

    payload = json.loads(CallEncoder.payload(messages, model="test-model", temperature=0.2, max_tokens=64))

    assert payload["model"] == "test-model"
    assert payload["max_tokens"] == 64
    assert payload["temperature"] == 0.2
    assert [message["role"] for message in payload["messages"]] == ["system", "user"]
    assert payload["messages"][1]["content"] == "{}"
