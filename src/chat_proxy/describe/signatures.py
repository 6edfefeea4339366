"""Method signature derivation for proxied interfaces."""

from __future__ import annotations

import inspect
from collections.abc import Callable
from dataclasses import dataclass
from typing import Annotated, Any, get_args, get_origin, get_type_hints

from chat_proxy.errors import SchemaError
from chat_proxy.types import MethodSignature, ParameterSpec


@dataclass(frozen=True, slots=True)
class Description:
    """Free-text documentation attached through ``Annotated[T, Description(...)]``."""

    text: str


def split_annotated(annotation: Any) -> tuple[Any, str | None]:
    """Strip ``Annotated`` metadata, returning the bare type and any description."""
    description: str | None = None
    while get_origin(annotation) is Annotated:
        base, *metadata = get_args(annotation)
        for item in metadata:
            if isinstance(item, Description) and description is None:
                description = item.text
        annotation = base
    return annotation, description


def resolve_hints(target: Any) -> dict[str, Any]:
    try:
        return get_type_hints(target, include_extras=True)
    except (NameError, TypeError) as exc:
        raise SchemaError(f"Cannot resolve annotations of {target!r}: {exc}") from exc


def method_signature(func: Callable[..., Any], *, name: str | None = None) -> MethodSignature:
    """Derive a :class:`MethodSignature` from a function's annotations and docstring.

    Every parameter other than ``self``/``cls`` must be annotated, as must the
    return type. Variadic parameters are rejected.
    """

    hints = resolve_hints(func)
    method_name = name or func.__name__
    parameters: list[ParameterSpec] = []
    for parameter in inspect.signature(func).parameters.values():
        if parameter.name in ("self", "cls"):
            continue
        if parameter.kind in (parameter.VAR_POSITIONAL, parameter.VAR_KEYWORD):
            raise SchemaError(f"{method_name}: variadic parameter {parameter.name} is not supported")
        if parameter.name not in hints:
            raise SchemaError(f"{method_name}: parameter {parameter.name} is not annotated")
        annotation, description = split_annotated(hints[parameter.name])
        parameters.append(
            ParameterSpec(
                name=parameter.name,
                annotation=annotation,
                description=description,
                required=parameter.default is inspect.Parameter.empty,
            )
        )
    if "return" not in hints:
        raise SchemaError(f"{method_name}: return type is not annotated")
    return_type, _ = split_annotated(hints["return"])
    return MethodSignature(
        name=method_name,
        parameters=tuple(parameters),
        return_type=return_type,
        description=inspect.getdoc(func),
    )


def public_functions(cls: type) -> dict[str, Callable[..., Any]]:
    """Public functions declared by ``cls`` and its own bases, in declaration order.

    Members inherited from ``object`` and from library base classes such as
    pydantic's ``BaseModel`` are not included.
    """

    functions: dict[str, Callable[..., Any]] = {}
    for klass in reversed(cls.__mro__):
        if klass is object or klass.__module__.split(".")[0] in ("pydantic", "typing", "abc"):
            continue
        for attr, value in vars(klass).items():
            if attr.startswith("_"):
                continue
            if isinstance(value, (staticmethod, classmethod)):
                continue
            if inspect.isfunction(value):
                functions[attr] = value
    return functions


def interface_signatures(cls: type) -> dict[str, MethodSignature]:
    """Registration step: derive the signature of every public method of an interface."""
    signatures = {
        attr: method_signature(func, name=attr) for attr, func in public_functions(cls).items()
    }
    if not signatures:
        raise SchemaError(f"{cls.__qualname__} declares no public methods")
    return signatures
