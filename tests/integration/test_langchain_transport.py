import pytest
from langchain_core.language_models.fake_chat_models import FakeListChatModel
from langchain_core.messages import AIMessage, HumanMessage, SystemMessage

from chat_proxy.errors import TransportError
from chat_proxy.transport.langchain import LangChainTransport, _message_text, create_chat_model


class FailingModel:
    def invoke(self, messages, **kwargs):  # type: ignore[no-untyped-def]
        raise RuntimeError("rate limited")


def test_transport_returns_model_text() -> None:
    transport = LangChainTransport(FakeListChatModel(responses=['{"ok": true}']))

    reply = transport.complete(
        [SystemMessage(content="system"), HumanMessage(content="{}")],
        model="fake",
        temperature=0.0,
        max_tokens=16,
    )

    assert reply == '{"ok": true}'


def test_model_failures_become_transport_errors() -> None:
    transport = LangChainTransport(FailingModel())  # type: ignore[arg-type]

    with pytest.raises(TransportError, match="rate limited"):
        transport.complete([HumanMessage(content="{}")], model="fake", temperature=0.0, max_tokens=16)


def test_list_content_is_flattened() -> None:
    message = AIMessage(content=[{"type": "text", "text": '{"a": '}, "1}"])

    assert _message_text(message) == '{"a": 1}'


def test_chat_model_requires_api_key(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)

    assert create_chat_model() is None
