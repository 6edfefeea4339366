"""Typed proxies: interface classes whose methods are answered by a chat model."""

from __future__ import annotations

import functools
import inspect
from collections.abc import Callable
from typing import Any, Generic, TypeVar, cast

from pydantic_core import to_json

from chat_proxy.describe.signatures import interface_signatures, public_functions
from chat_proxy.proxy.dispatcher import ProxyDispatcher
from chat_proxy.proxy.encoder import argument_literal, public_members
from chat_proxy.types import CallExample, MethodSignature

T = TypeVar("T")


class ChatProxy(Generic[T]):
    """Binds an interface class to a dispatcher.

    Signatures are derived once, when the proxy is built. ``create`` returns
    an instance of a generated subclass of the interface in which every
    public method is an adapter that forwards its bound arguments to
    :meth:`ProxyDispatcher.call`.

    Example:
        class Recipes(Protocol):
            def suggest(self, ingredients: list[str]) -> Recipe: ...

        recipes = ChatProxy(Recipes, dispatcher).create()
        recipe = recipes.suggest(["eggs", "flour"])
    """

    def __init__(self, interface: type[T], dispatcher: ProxyDispatcher) -> None:
        self.interface = interface
        self.dispatcher = dispatcher
        self.signatures: dict[str, MethodSignature] = interface_signatures(interface)
        self._functions = public_functions(interface)
        for signature in self.signatures.values():
            dispatcher.schema_for(signature)

    def signature(self, method: str) -> MethodSignature:
        signature = self.signatures.get(method)
        if signature is None:
            raise KeyError(f"Unknown method: {method}")
        return signature

    def schema(self, method: str) -> str:
        return self.dispatcher.schema_for(self.signature(method))

    def call(self, method: str, arguments: dict[str, Any]) -> Any:
        """Dispatch by method name, e.g. from a deserialized HTTP request."""
        return self.dispatcher.call(self.signature(method), arguments)

    def add_example(self, method: str, result: Any, **arguments: Any) -> None:
        """Record a few-shot example from a typed result and its arguments."""
        signature = self.signature(method)
        self.dispatcher.add_example(
            signature,
            CallExample(
                arguments={name: argument_literal(value) for name, value in arguments.items()},
                response=to_json(result, fallback=public_members).decode("utf-8"),
            ),
        )

    def create(self) -> T:
        adapters = {
            name: self._adapter(name, signature) for name, signature in self.signatures.items()
        }
        adapters["__repr__"] = lambda _self: f"<{self.interface.__qualname__} chat proxy>"
        metaclass = type(self.interface)
        generated = metaclass(f"{self.interface.__name__}ChatProxy", (self.interface,), adapters)
        generated.__abstractmethods__ = frozenset()
        return cast(T, object.__new__(generated))

    def _adapter(self, name: str, signature: MethodSignature) -> Callable[..., Any]:
        original = self._functions[name]
        bind = inspect.signature(original).bind
        dispatcher = self.dispatcher

        @functools.wraps(original)
        def adapter(proxy_self: Any, *args: Any, **kwargs: Any) -> Any:
            bound = bind(proxy_self, *args, **kwargs)
            bound.apply_defaults()
            arguments = {
                key: value
                for key, value in bound.arguments.items()
                if key not in ("self", "cls")
            }
            return dispatcher.call(signature, arguments)

        adapter.__isabstractmethod__ = False
        return adapter
