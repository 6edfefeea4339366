"""Recursive YAML schema describer for arbitrary Python types."""

from __future__ import annotations

import collections.abc
import dataclasses
import enum
import types
import typing
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from typing import Any, Literal, Union, get_args, get_origin
from uuid import UUID

from pydantic import BaseModel, PydanticUndefinedAnnotation, PydanticUserError

from chat_proxy.config import DescriberConfig
from chat_proxy.describe.nodes import (
    ArrayNode,
    MapNode,
    ObjectNode,
    OpaqueNode,
    OperationNode,
    ParameterNode,
    PrimitiveNode,
    PropertyNode,
    TypeNode,
)
from chat_proxy.describe.signatures import (
    Description,
    method_signature,
    public_functions,
    resolve_hints,
    split_annotated,
)
from chat_proxy.errors import SchemaError
from chat_proxy.types import MethodSignature

PRIMITIVES: dict[Any, str] = {
    int: "int",
    float: "float",
    bool: "boolean",
    str: "string",
    bytes: "bytes",
    Decimal: "decimal",
    datetime: "datetime",
    date: "date",
    time: "time",
    timedelta: "duration",
    UUID: "uuid",
    Any: "any",
    type(None): "null",
}

SEQUENCE_ORIGINS = (
    list,
    tuple,
    set,
    frozenset,
    collections.abc.Sequence,
    collections.abc.MutableSequence,
    collections.abc.Set,
    collections.abc.MutableSet,
    collections.abc.Iterable,
    collections.abc.Collection,
)
MAPPING_ORIGINS = (dict, collections.abc.Mapping, collections.abc.MutableMapping)


def is_class(tp: Any) -> bool:
    return isinstance(tp, type) and get_origin(tp) is None


def type_name(tp: Any) -> str:
    """Stable, fully qualified display name for a type."""
    if is_class(tp):
        return f"{tp.__module__}.{tp.__qualname__}"
    return str(tp).replace("typing.", "")


def unwrap_optional(tp: Any) -> Any:
    """Return ``T`` for ``Optional[T]``; other unions are rejected."""
    origin = get_origin(tp)
    if origin is Union or origin is types.UnionType:
        members = [arg for arg in get_args(tp) if arg is not type(None)]
        if len(members) != 1:
            raise SchemaError(f"Unsupported union type: {type_name(tp)}")
        return members[0]
    return tp


def item_type(tp: Any) -> Any:
    """Element type of a sequence annotation; bare sequences hold ``Any``."""
    args = get_args(tp)
    if not args:
        return Any
    if get_origin(tp) is tuple:
        if len(args) == 2 and args[1] is Ellipsis:
            return args[0]
        if len(set(args)) != 1:
            raise SchemaError(f"Heterogeneous tuple is not supported: {type_name(tp)}")
    return args[0]


class TypeDescriber:
    """Renders a type graph as a compact YAML schema for prompts.

    Only public data members become properties: pydantic model fields,
    dataclass fields, or annotated attributes and properties of plain classes.
    A type is expanded at most once per top-level ``describe`` call; repeated
    types and anything beyond ``max_depth`` render as opaque ``class`` nodes.
    """

    def __init__(
        self,
        config: DescriberConfig | None = None,
        *,
        primitives: dict[Any, str] | None = None,
    ) -> None:
        self.config = config or DescriberConfig()
        self._primitives = dict(PRIMITIVES)
        if primitives:
            self._primitives.update(primitives)

    def register_primitive(self, tp: Any, name: str) -> None:
        """Render ``tp`` as a leaf ``type: name`` instead of expanding it."""
        self._primitives[tp] = name

    def describe(
        self,
        tp: Any,
        max_depth: int | None = None,
        described_types: set[str] | None = None,
    ) -> str:
        return self.describe_node(tp, max_depth, described_types).to_yaml()

    def describe_node(
        self,
        tp: Any,
        max_depth: int | None = None,
        described_types: set[str] | None = None,
    ) -> TypeNode:
        depth = self.config.max_depth if max_depth is None else max_depth
        described = set() if described_types is None else described_types
        bare, _ = split_annotated(tp)
        return self._node(bare, depth, described)

    def describe_method(
        self,
        signature: MethodSignature,
        max_depth: int | None = None,
        described_types: set[str] | None = None,
    ) -> str:
        """Schema text for one proxied method; used verbatim in the system prompt."""
        depth = self.config.max_depth if max_depth is None else max_depth
        described = set() if described_types is None else described_types
        return self._operation(signature, depth, described).to_yaml()

    def _node(self, tp: Any, depth: int, described: set[str]) -> TypeNode:
        tp = unwrap_optional(split_annotated(tp)[0])
        if tp in self._primitives:
            return PrimitiveNode(self._primitives[tp])
        if is_class(tp) and issubclass(tp, enum.Enum):
            return PrimitiveNode("string", tuple(str(member.value) for member in tp))
        origin = get_origin(tp)
        if origin is Literal:
            return PrimitiveNode("string", tuple(str(arg) for arg in get_args(tp)))
        if depth <= 0:
            return OpaqueNode(type_name(tp))
        if origin in SEQUENCE_ORIGINS or tp in SEQUENCE_ORIGINS:
            return ArrayNode(self._node(item_type(tp), depth - 1, described))
        if origin in MAPPING_ORIGINS or tp in MAPPING_ORIGINS:
            key_type, value_type = get_args(tp) or (Any, Any)
            return MapNode(
                keys=self._node(key_type, depth - 1, described),
                values=self._node(value_type, depth - 1, described),
            )
        if is_class(tp):
            return self._object(tp, depth, described)
        raise SchemaError(f"Cannot describe {type_name(tp)}")

    def _object(self, tp: type, depth: int, described: set[str]) -> TypeNode:
        name = type_name(tp)
        if name in described or name in self.config.abbreviated:
            return OpaqueNode(name)
        described.add(name)
        properties = tuple(
            PropertyNode(member, self._node(annotation, depth - 1, described), description)
            for member, annotation, description in data_members(tp)
        )
        methods: tuple[tuple[str, OperationNode], ...] = ()
        if self.config.include_methods:
            methods = tuple(
                (attr, self._operation(method_signature(func, name=attr), depth - 1, described))
                for attr, func in public_functions(tp).items()
            )
        return ObjectNode(name, properties, methods)

    def _operation(self, signature: MethodSignature, depth: int, described: set[str]) -> OperationNode:
        # Response first, so a type shared with a parameter is expanded in the response.
        response = self._node(signature.return_type, depth - 1, described)
        parameters = tuple(
            ParameterNode(spec.name, self._node(spec.annotation, depth - 1, described), spec.description)
            for spec in signature.parameters
        )
        return OperationNode(
            name=signature.name,
            response=response,
            parameters=parameters,
            description=signature.description,
        )


def data_members(tp: type) -> list[tuple[str, Any, str | None]]:
    """Public data members of ``tp`` as ``(name, annotation, description)`` in declaration order."""
    if issubclass(tp, BaseModel):
        if not tp.__pydantic_complete__:
            try:
                tp.model_rebuild()
            except (PydanticUndefinedAnnotation, PydanticUserError) as exc:
                raise SchemaError(f"Cannot resolve fields of {type_name(tp)}: {exc}") from exc
        members = []
        for name, info in tp.model_fields.items():
            description = info.description or next(
                (item.text for item in info.metadata if isinstance(item, Description)), None
            )
            members.append((name, info.annotation, description))
        return members

    if dataclasses.is_dataclass(tp):
        hints = resolve_hints(tp)
        members = []
        for item in dataclasses.fields(tp):
            if item.name.startswith("_"):
                continue
            annotation, description = split_annotated(hints[item.name])
            description = item.metadata.get("description", description)
            members.append((item.name, annotation, description))
        return members

    hints = resolve_hints(tp)
    members = []
    for name, annotation in hints.items():
        if name.startswith("_") or get_origin(annotation) is typing.ClassVar:
            continue
        bare, description = split_annotated(annotation)
        members.append((name, bare, description))
    for klass in reversed(tp.__mro__):
        if klass is object:
            continue
        for name, value in vars(klass).items():
            if name.startswith("_") or not isinstance(value, property) or value.fget is None:
                continue
            returns = resolve_hints(value.fget).get("return")
            if returns is None or any(existing == name for existing, _, _ in members):
                continue
            bare, description = split_annotated(returns)
            members.append((name, bare, description or value.__doc__))
    return members
