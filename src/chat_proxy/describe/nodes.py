"""Schema node types and their YAML rendering.

Rendering is deterministic: a node tree always produces the same text, and
members keep declaration order. The text is embedded verbatim in prompts and
keys the example bank, so any change here changes both.
"""

from __future__ import annotations

from dataclasses import dataclass, field


def _indent(text: str, prefix: str = "  ") -> str:
    return text.replace("\n", "\n" + prefix)


def _single_line(text: str) -> str:
    return text.strip().replace("\n", "\\n")


class TypeNode:
    """Base class of every schema node."""

    def to_yaml(self) -> str:
        raise NotImplementedError

    @property
    def children(self) -> tuple["TypeNode", ...]:
        return ()


@dataclass(frozen=True, slots=True)
class PrimitiveNode(TypeNode):
    name: str
    choices: tuple[str, ...] = ()

    def to_yaml(self) -> str:
        if self.choices:
            return f"type: {self.name}\nenum: [{', '.join(self.choices)}]"
        return f"type: {self.name}"


@dataclass(frozen=True, slots=True)
class OpaqueNode(TypeNode):
    """A type that was already expanded, is abbreviated, or is past the depth limit."""

    class_name: str

    def to_yaml(self) -> str:
        return f"type: object\nclass: {self.class_name}"


@dataclass(frozen=True, slots=True)
class ArrayNode(TypeNode):
    items: TypeNode

    @property
    def children(self) -> tuple[TypeNode, ...]:
        return (self.items,)

    def to_yaml(self) -> str:
        return f"type: array\nitems:\n  {_indent(self.items.to_yaml())}"


@dataclass(frozen=True, slots=True)
class MapNode(TypeNode):
    keys: TypeNode
    values: TypeNode

    @property
    def children(self) -> tuple[TypeNode, ...]:
        return (self.keys, self.values)

    def to_yaml(self) -> str:
        return (
            f"type: map\nkeys:\n  {_indent(self.keys.to_yaml())}"
            f"\nvalues:\n  {_indent(self.values.to_yaml())}"
        )


@dataclass(frozen=True, slots=True)
class PropertyNode(TypeNode):
    name: str
    node: TypeNode
    description: str | None = None

    @property
    def children(self) -> tuple[TypeNode, ...]:
        return (self.node,)

    def to_yaml(self) -> str:
        lines = [f"{self.name}:"]
        if self.description:
            lines.append(f"  description: {_single_line(self.description)}")
        lines.append(f"  {_indent(self.node.to_yaml())}")
        return "\n".join(lines)


@dataclass(frozen=True, slots=True)
class ParameterNode(TypeNode):
    name: str
    node: TypeNode
    description: str | None = None

    @property
    def children(self) -> tuple[TypeNode, ...]:
        return (self.node,)

    def to_yaml(self) -> str:
        lines = [f"- name: {self.name}"]
        if self.description:
            lines.append(f"  description: {_single_line(self.description)}")
        lines.append(f"  {_indent(self.node.to_yaml())}")
        return "\n".join(lines)


@dataclass(frozen=True, slots=True)
class OperationNode(TypeNode):
    name: str
    response: TypeNode
    parameters: tuple[ParameterNode, ...] = ()
    description: str | None = None

    @property
    def children(self) -> tuple[TypeNode, ...]:
        return (*self.parameters, self.response)

    def to_yaml(self) -> str:
        lines = [f"operationId: {self.name}"]
        if self.description:
            lines.append(f"description: {_single_line(self.description)}")
        if self.parameters:
            body = "\n".join(parameter.to_yaml() for parameter in self.parameters)
            lines.append(f"parameters:\n  {_indent(body)}")
        lines.append(
            "responses:\n  application/json:\n    schema:\n      "
            + _indent(self.response.to_yaml(), "      ")
        )
        return "\n".join(lines)


@dataclass(frozen=True, slots=True)
class ObjectNode(TypeNode):
    class_name: str
    properties: tuple[PropertyNode, ...] = ()
    methods: tuple[tuple[str, OperationNode], ...] = field(default=())

    @property
    def children(self) -> tuple[TypeNode, ...]:
        return (*self.properties, *(operation for _, operation in self.methods))

    def to_yaml(self) -> str:
        lines = ["type: object", f"class: {self.class_name}"]
        if self.properties:
            body = "\n".join(prop.to_yaml() for prop in self.properties)
            lines.append(f"properties:\n  {_indent(body)}")
        if self.methods:
            body = "\n".join(
                f"{name}:\n  {_indent(operation.to_yaml())}" for name, operation in self.methods
            )
            lines.append(f"methods:\n  {_indent(body)}")
        return "\n".join(lines)
