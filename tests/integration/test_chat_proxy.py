from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Protocol

import pytest

from chat_proxy import ChatProxy, ProxyConfig, ProxyDispatcher, SchemaError


@dataclass
class Recipe:
    title: str
    minutes: int


class Recipes(Protocol):
    def suggest(self, ingredients: list[str], servings: int = 2) -> Recipe:
        """Suggest one recipe using the given ingredients."""
        ...

    def rename(self, recipe: Recipe) -> str: ...


class Translator(ABC):
    @abstractmethod
    def translate(self, text: str, language: str) -> str: ...


class RecordingTransport:
    def __init__(self, reply: str) -> None:
        self.reply = reply
        self.messages: list = []

    def complete(self, messages, *, model, temperature, max_tokens) -> str:  # type: ignore[no-untyped-def]
        self.messages.append(list(messages))
        return self.reply


def _proxy(interface, reply: str) -> tuple[ChatProxy, RecordingTransport]:  # type: ignore[no-untyped-def]
    transport = RecordingTransport(reply)
    dispatcher = ProxyDispatcher(transport, config=ProxyConfig(moderated=False))
    return ChatProxy(interface, dispatcher), transport


def test_protocol_proxy_forwards_arguments_with_defaults() -> None:
    proxy, transport = _proxy(Recipes, '{"title": "Pancakes", "minutes": 20}')
    recipes = proxy.create()

    recipe = recipes.suggest(["eggs", "flour"])

    assert recipe == Recipe(title="Pancakes", minutes=20)
    assert Recipes in type(recipes).__mro__
    assert transport.messages[0][-1].content == '{"ingredients": ["eggs","flour"],\n"servings": 2}'
    assert recipes.suggest.__doc__ == "Suggest one recipe using the given ingredients."
    assert "chat proxy" in repr(recipes)


def test_abc_proxy_is_instantiable() -> None:
    proxy, _ = _proxy(Translator, "Bonjour")
    translator = proxy.create()

    assert isinstance(translator, Translator)
    assert translator.translate("Hello", language="French") == "Bonjour"


def test_bad_arguments_raise_type_error_before_dispatch() -> None:
    proxy, transport = _proxy(Translator, "Bonjour")

    with pytest.raises(TypeError):
        proxy.create().translate("Hello", "French", "extra")

    assert transport.messages == []


def test_call_by_name_and_schema() -> None:
    proxy, _ = _proxy(Recipes, '"Quick Pancakes"')

    assert proxy.call("rename", {"recipe": Recipe(title="Pancakes", minutes=20)}) == "Quick Pancakes"
    assert proxy.schema("suggest").startswith("operationId: suggest")
    with pytest.raises(KeyError):
        proxy.schema("unknown")


def test_add_example_from_typed_result() -> None:
    proxy, transport = _proxy(Recipes, '{"title": "Omelette", "minutes": 10}')
    proxy.add_example("suggest", Recipe(title="Toast", minutes=3), ingredients=["bread"])

    proxy.create().suggest(["eggs"], servings=1)

    messages = transport.messages[0]
    assert messages[1].content == '{"ingredients": ["bread"]}'
    assert messages[2].content == '{"title":"Toast","minutes":3}'
    with pytest.raises(ValueError):
        proxy.add_example("suggest", Recipe(title="Toast", minutes=3), bread=True)


def test_interface_without_methods_is_rejected() -> None:
    class Nothing(Protocol):
        pass

    proxy_dispatcher = ProxyDispatcher(RecordingTransport(""), config=ProxyConfig(moderated=False))
    with pytest.raises(SchemaError):
        ChatProxy(Nothing, proxy_dispatcher)
