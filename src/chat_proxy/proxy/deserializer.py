"""Parsing of extracted reply text into a method's declared return type."""

from __future__ import annotations

import dataclasses
import json
from functools import lru_cache
from typing import Any, Protocol, get_args, get_origin, runtime_checkable

from pydantic import BaseModel, PydanticSchemaGenerationError, TypeAdapter, ValidationError

from chat_proxy.describe.describer import (
    MAPPING_ORIGINS,
    SEQUENCE_ORIGINS,
    data_members,
    is_class,
    item_type,
    type_name,
    unwrap_optional,
)
from chat_proxy.errors import DeserializationError, SchemaError


@runtime_checkable
class ValidatedObject(Protocol):
    """Return types may implement this to reject semantically invalid replies."""

    def validation_error(self) -> str | None:
        """Return a message describing what is wrong, or ``None`` if valid."""


@lru_cache(maxsize=256)
def _adapter(tp: Any) -> TypeAdapter[Any] | None:
    try:
        return TypeAdapter(tp)
    except PydanticSchemaGenerationError:
        return None


def adapter_for(tp: Any) -> TypeAdapter[Any] | None:
    """Pydantic adapter for ``tp``; ``None`` when plain classes inside it are built by hand."""
    return _adapter(tp)


def _is_optional(annotation: Any) -> bool:
    return unwrap_optional(annotation) is not annotation


def ensure_deserializable(tp: Any, _seen: set[Any] | None = None) -> None:
    """Raise :class:`SchemaError` unless replies can be converted into ``tp``.

    Run at registration so an unsupported return type fails before any model call.
    """
    seen = set() if _seen is None else _seen
    target = unwrap_optional(tp)
    if target is type(None) or target is str or target in seen or adapter_for(target) is not None:
        return
    seen.add(target)
    origin = get_origin(target)
    if origin in SEQUENCE_ORIGINS:
        ensure_deserializable(item_type(target), seen)
    elif origin in MAPPING_ORIGINS:
        for arg in get_args(target):
            ensure_deserializable(arg, seen)
    elif is_class(target):
        for _, annotation, _ in data_members(target):
            ensure_deserializable(annotation, seen)
    else:
        raise SchemaError(f"Cannot deserialize into {type_name(target)}")


def _has_members(tp: Any) -> bool:
    return is_class(tp) and (
        issubclass(tp, BaseModel) or dataclasses.is_dataclass(tp) or adapter_for(tp) is None
    )


class ResultDeserializer:
    """Turns the structured substring of a reply into a typed value.

    With ``validation`` enabled, object replies must carry every required
    member and no top-level keys beyond the members the describer enumerates
    for the type, and ``ValidatedObject`` results must report no error. Every
    failure surfaces as :class:`DeserializationError`.
    """

    def __init__(self, *, validation: bool = True) -> None:
        self.validation = validation

    def deserialize(self, text: str, return_type: Any) -> Any:
        target = unwrap_optional(return_type)
        if target is type(None):
            return None
        if target is str:
            return self._string(text)

        try:
            payload = json.loads(text)
        except json.JSONDecodeError as exc:
            raise DeserializationError(text, f"Reply is not valid JSON: {exc}") from exc

        if payload is None and target is not return_type:
            return None
        if self.validation and isinstance(payload, dict) and _has_members(target):
            self._check_shape(text, payload, target)

        result = self._convert(text, payload, target)
        if self.validation and isinstance(result, ValidatedObject):
            error = result.validation_error()
            if error:
                raise DeserializationError(text, f"Validation failed: {error}")
        return result

    def _string(self, text: str) -> str:
        stripped = text.strip()
        if stripped.startswith('"'):
            try:
                value = json.loads(stripped)
            except json.JSONDecodeError:
                return text
            if isinstance(value, str):
                return value
        return text

    def _convert(self, text: str, payload: Any, annotation: Any) -> Any:
        if payload is None and _is_optional(annotation):
            return None
        target = unwrap_optional(annotation)
        adapter = adapter_for(target)
        if adapter is None:
            return self._build_nested(text, payload, target)
        try:
            return adapter.validate_python(payload)
        except ValidationError as exc:
            raise DeserializationError(text, f"Reply does not match {target!r}: {exc}") from exc

    def _build_nested(self, text: str, payload: Any, target: Any) -> Any:
        origin = get_origin(target)
        if origin in SEQUENCE_ORIGINS:
            if not isinstance(payload, list):
                raise DeserializationError(text, f"Expected an array for {type_name(target)}")
            items = [self._convert(text, item, item_type(target)) for item in payload]
            if origin in (tuple, set, frozenset):
                return origin(items)
            return items
        if origin in MAPPING_ORIGINS:
            if not isinstance(payload, dict):
                raise DeserializationError(text, f"Expected an object for {type_name(target)}")
            key_type, value_type = get_args(target)
            return {
                self._convert(text, key, key_type): self._convert(text, value, value_type)
                for key, value in payload.items()
            }
        if is_class(target):
            return self._build_plain(text, payload, target)
        raise SchemaError(f"Cannot deserialize into {type_name(target)}")

    def _build_plain(self, text: str, payload: Any, target: type) -> Any:
        if not isinstance(payload, dict):
            raise DeserializationError(text, f"Expected an object for {target.__qualname__}")
        kwargs = {}
        for name, annotation, _ in data_members(target):
            if name in payload and not isinstance(getattr(target, name, None), property):
                kwargs[name] = self._convert(text, payload[name], annotation)
        try:
            return target(**kwargs)
        except TypeError as exc:
            raise DeserializationError(text, f"Cannot construct {target.__qualname__}: {exc}") from exc

    def _check_shape(self, text: str, payload: dict[str, Any], target: type) -> None:
        expected = {name for name, _, _ in data_members(target)}
        if issubclass(target, BaseModel):
            expected |= {info.alias for info in target.model_fields.values() if info.alias}
        unexpected = sorted(set(payload) - expected)
        if unexpected:
            raise DeserializationError(text, f"Unexpected field(s): {', '.join(unexpected)}")
        missing = sorted(name for name in required_members(target) if name not in payload)
        if missing:
            raise DeserializationError(text, f"Missing required field(s): {', '.join(missing)}")


def required_members(tp: type) -> list[str]:
    """Members that carry no default and therefore must appear in a reply."""
    if issubclass(tp, BaseModel):
        return [info.alias or name for name, info in tp.model_fields.items() if info.is_required()]
    if dataclasses.is_dataclass(tp):
        return [
            item.name
            for item in dataclasses.fields(tp)
            if item.init
            and item.default is dataclasses.MISSING
            and item.default_factory is dataclasses.MISSING
        ]
    return [name for name, _, _ in data_members(tp) if not hasattr(tp, name)]
