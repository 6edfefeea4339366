from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from pathlib import Path
from typing import Annotated, Literal, Optional
from uuid import UUID

import pytest
from pydantic import BaseModel, Field

from chat_proxy.config import DescriberConfig
from chat_proxy.describe.describer import PRIMITIVES, TypeDescriber, type_name
from chat_proxy.describe.nodes import OpaqueNode, PrimitiveNode
from chat_proxy.describe.signatures import Description, method_signature
from chat_proxy.errors import SchemaError


class DataClassExample(BaseModel):
    a: int = Field(description="This is an integer")
    b: str | None = None
    c: list[str] = Field(default_factory=list)
    d: dict[str, int] = Field(default_factory=dict)


@dataclass
class Coordinates:
    lat: Annotated[float, Description("Latitude in degrees")]
    lon: float = field(default=0.0, metadata={"description": "Longitude in degrees"})


class TreeNode(BaseModel):
    label: str
    child: TreeNode | None = None


@dataclass
class LinkedItem:
    value: int
    next: Optional[LinkedItem] = None


class Point(BaseModel):
    x: int
    y: int


class Segment(BaseModel):
    start: Point
    end: Point


class Outer(BaseModel):
    count: int
    inner: Point


class Color(Enum):
    RED = "red"
    GREEN = "green"


class Account:
    owner: str
    _secret: str

    def __init__(self, owner: str) -> None:
        self.owner = owner

    @property
    def display_name(self) -> str:
        """Name shown to the user."""
        return self.owner.title()

    def deposit(self, amount: float) -> float:
        """Add funds and return the new balance."""
        return amount


def method_example(p1: Annotated[int, Description("This is a parameter")], p2: str) -> str:
    """This is a method"""
    return p2 * p1


def move(point: Point, dx: int) -> Point:
    return point


@pytest.mark.parametrize("tp", [int, float, bool, str, bytes, Decimal, datetime, date, UUID])
def test_primitives_render_leaf_nodes(tp: type) -> None:
    describer = TypeDescriber()

    node = describer.describe_node(tp)

    assert isinstance(node, PrimitiveNode)
    assert node.children == ()
    assert describer.describe(tp) == f"type: {PRIMITIVES[tp]}"


def test_describe_pydantic_model_properties() -> None:
    description = TypeDescriber().describe(DataClassExample)

    assert description == "\n".join(
        [
            "type: object",
            f"class: {type_name(DataClassExample)}",
            "properties:",
            "  a:",
            "    description: This is an integer",
            "    type: int",
            "  b:",
            "    type: string",
            "  c:",
            "    type: array",
            "    items:",
            "      type: string",
            "  d:",
            "    type: map",
            "    keys:",
            "      type: string",
            "    values:",
            "      type: int",
        ]
    )


def test_dataclass_descriptions_from_annotated_and_metadata() -> None:
    description = TypeDescriber().describe(Coordinates)

    assert "  lat:\n    description: Latitude in degrees\n    type: float" in description
    assert "  lon:\n    description: Longitude in degrees\n    type: float" in description


def test_self_referential_model_terminates_with_opaque_node() -> None:
    described: set[str] = set()

    description = TypeDescriber().describe(TreeNode, 10, described)

    assert description == "\n".join(
        [
            "type: object",
            f"class: {type_name(TreeNode)}",
            "properties:",
            "  label:",
            "    type: string",
            "  child:",
            "    type: object",
            f"    class: {type_name(TreeNode)}",
        ]
    )
    assert type_name(TreeNode) in described


def test_self_referential_dataclass_terminates() -> None:
    node = TypeDescriber().describe_node(LinkedItem)

    child = node.properties[1].node
    assert isinstance(child, OpaqueNode)
    assert child.class_name == type_name(LinkedItem)


def test_described_types_track_multiple_calls() -> None:
    describer = TypeDescriber()
    described: set[str] = set()

    describer.describe(Point, 10, described)
    second = describer.describe(Point, 10, described)

    assert second == f"type: object\nclass: {type_name(Point)}"
    assert described == {type_name(Point)}


def test_repeated_sibling_type_is_expanded_once() -> None:
    node = TypeDescriber().describe_node(Segment)

    start, end = (prop.node for prop in node.properties)
    assert start.properties
    assert isinstance(end, OpaqueNode)


def test_depth_exhaustion_renders_opaque_objects_but_keeps_primitives() -> None:
    description = TypeDescriber().describe(Outer, max_depth=1)

    assert "  count:\n    type: int" in description
    assert f"  inner:\n    type: object\n    class: {type_name(Point)}" in description
    assert "properties:\n      x" not in description


def test_describe_is_deterministic() -> None:
    describer = TypeDescriber()

    assert describer.describe(Segment) == describer.describe(Segment)
    assert TypeDescriber().describe(Segment) == describer.describe(Segment)


def test_enum_and_literal_render_choices() -> None:
    describer = TypeDescriber()

    assert describer.describe(Color) == "type: string\nenum: [red, green]"
    assert describer.describe(Literal["asc", "desc"]) == "type: string\nenum: [asc, desc]"


def test_sequence_and_tuple_types() -> None:
    describer = TypeDescriber()

    assert describer.describe(tuple[int, ...]) == "type: array\nitems:\n  type: int"
    assert describer.describe(set[str]) == "type: array\nitems:\n  type: string"
    with pytest.raises(SchemaError):
        describer.describe(tuple[int, str])


def test_unsupported_union_raises_schema_error() -> None:
    with pytest.raises(SchemaError):
        TypeDescriber().describe(int | str)


def test_registered_primitive_is_not_expanded() -> None:
    describer = TypeDescriber()
    describer.register_primitive(Path, "path")

    assert describer.describe(Path) == "type: path"


def test_abbreviated_types_render_opaque() -> None:
    config = DescriberConfig(abbreviated=frozenset({type_name(Point)}))

    assert TypeDescriber(config).describe(Point) == f"type: object\nclass: {type_name(Point)}"


def test_describe_method_operation() -> None:
    description = TypeDescriber().describe_method(method_signature(method_example))

    assert description == "\n".join(
        [
            "operationId: method_example",
            "description: This is a method",
            "parameters:",
            "  - name: p1",
            "    description: This is a parameter",
            "    type: int",
            "  - name: p2",
            "    type: string",
            "responses:",
            "  application/json:",
            "    schema:",
            "      type: string",
        ]
    )


def test_response_is_expanded_before_parameters() -> None:
    description = TypeDescriber().describe_method(method_signature(move))

    parameters, responses = description.split("responses:")
    assert f"- name: point\n    type: object\n    class: {type_name(Point)}\n" in parameters
    assert "properties:" not in parameters
    assert "properties:" in responses


def test_plain_class_members_and_methods() -> None:
    describer = TypeDescriber(DescriberConfig(include_methods=True))

    description = describer.describe(Account)

    assert description == "\n".join(
        [
            "type: object",
            f"class: {type_name(Account)}",
            "properties:",
            "  owner:",
            "    type: string",
            "  display_name:",
            "    description: Name shown to the user.",
            "    type: string",
            "methods:",
            "  deposit:",
            "    operationId: deposit",
            "    description: Add funds and return the new balance.",
            "    parameters:",
            "      - name: amount",
            "        type: float",
            "    responses:",
            "      application/json:",
            "        schema:",
            "          type: float",
        ]
    )


def test_methods_are_excluded_by_default() -> None:
    assert "methods:" not in TypeDescriber().describe(Account)
