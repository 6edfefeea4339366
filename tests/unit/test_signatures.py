from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Annotated, Protocol

import pytest

from chat_proxy.describe.signatures import (
    Description,
    interface_signatures,
    method_signature,
    public_functions,
    split_annotated,
)
from chat_proxy.errors import SchemaError


class Planner(Protocol):
    def plan(self, goal: Annotated[str, Description("What to achieve")], steps: int = 3) -> list[str]:
        """Break a goal into steps."""
        ...

    def _internal(self) -> None: ...

    @staticmethod
    def helper() -> int:
        return 1


class BasePlanner(ABC):
    @abstractmethod
    def plan(self, goal: str) -> list[str]: ...


class ExtendedPlanner(BasePlanner):
    def estimate(self, goal: str) -> float:
        return 0.0


def test_split_annotated_returns_description() -> None:
    assert split_annotated(Annotated[int, Description("count")]) == (int, "count")
    assert split_annotated(int) == (int, None)


def test_method_signature_from_protocol_method() -> None:
    signature = method_signature(Planner.plan)

    assert signature.name == "plan"
    assert signature.description == "Break a goal into steps."
    assert signature.return_type == list[str]
    assert [spec.name for spec in signature.parameters] == ["goal", "steps"]
    assert signature.parameter("goal").description == "What to achieve"
    assert signature.parameter("goal").required is True
    assert signature.parameter("steps").required is False
    with pytest.raises(KeyError):
        signature.parameter("missing")


def test_public_functions_skip_private_and_static_members() -> None:
    assert list(public_functions(Planner)) == ["plan"]
    assert list(public_functions(ExtendedPlanner)) == ["plan", "estimate"]


def test_unannotated_and_variadic_parameters_rejected() -> None:
    def untyped(self, value) -> int:  # type: ignore[no-untyped-def]
        return 0

    def variadic(self, *values: int) -> int:
        return 0

    def no_return(self, value: int):  # type: ignore[no-untyped-def]
        return value

    for func in (untyped, variadic, no_return):
        with pytest.raises(SchemaError):
            method_signature(func)


def test_interface_without_methods_rejected() -> None:
    class Empty(Protocol):
        pass

    with pytest.raises(SchemaError):
        interface_signatures(Empty)
