"""Shared domain models."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True, slots=True)
class ParameterSpec:
    """One declared parameter of a proxied method."""

    name: str
    annotation: Any
    description: str | None = None
    required: bool = True


@dataclass(frozen=True, slots=True)
class MethodSignature:
    """Immutable description of a proxied method, derived once per interface."""

    name: str
    parameters: tuple[ParameterSpec, ...]
    return_type: Any
    description: str | None = None

    def parameter(self, name: str) -> ParameterSpec:
        for spec in self.parameters:
            if spec.name == name:
                return spec
        raise KeyError(f"Unknown parameter for {self.name}: {name}")


@dataclass(frozen=True, slots=True)
class CallExample:
    """A caller-supplied few-shot pair: argument literals and the expected reply."""

    arguments: dict[str, str]
    response: str


@dataclass(slots=True)
class ProxyRequest:
    """The current call: method name, schema text and argument literals."""

    method_name: str
    schema: str
    arguments: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class Extraction:
    """Structured substring isolated from a raw reply plus what was discarded."""

    text: str
    prefix: str = ""
    suffix: str = ""


@dataclass(slots=True)
class CallTrace:
    """Trace record for one dispatched call, including its retries."""

    trace_id: str
    timestamp_utc: str
    method: str
    attempts: int
    latency_ms: float
    input_length: int
    output_length: int
    prefix_length: int
    suffix_length: int
    succeeded: bool
    error: str | None = None
