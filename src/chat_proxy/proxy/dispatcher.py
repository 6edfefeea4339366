"""Call orchestration: encode, moderate, transport, extract, deserialize, retry."""

from __future__ import annotations

import logging
import threading
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from langchain_core.messages import BaseMessage

from chat_proxy.config import ProxyConfig
from chat_proxy.describe.describer import TypeDescriber
from chat_proxy.errors import (
    DeserializationError,
    ExtractionError,
    ModerationError,
    ProxyCallError,
)
from chat_proxy.obs.tracing import Timer, TraceStore
from chat_proxy.proxy.deserializer import ResultDeserializer, ensure_deserializable
from chat_proxy.proxy.encoder import CallEncoder, argument_literal
from chat_proxy.proxy.extractor import ResponseExtractor
from chat_proxy.proxy.metrics import ProxyMetrics
from chat_proxy.transport.base import ChatTransport, Moderation
from chat_proxy.types import CallExample, Extraction, MethodSignature, ProxyRequest

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class _CallState:
    attempts: int = 0
    input_length: int = 0
    output_length: int = 0
    prefix_length: int = 0
    suffix_length: int = 0
    last_response: str = ""


class ProxyDispatcher:
    """Fulfils typed method calls by querying a chat model.

    A dispatcher is safe to share between threads. Per-call state lives on
    the calling thread's stack; the only shared mutable state is the
    ``metrics`` counters, the write-once schema cache and the example bank.
    """

    def __init__(
        self,
        transport: ChatTransport,
        *,
        moderation: Moderation | None = None,
        config: ProxyConfig | None = None,
        describer: TypeDescriber | None = None,
        encoder: CallEncoder | None = None,
        extractor: ResponseExtractor | None = None,
        deserializer: ResultDeserializer | None = None,
        trace_store: TraceStore | None = None,
    ) -> None:
        self.config = config or ProxyConfig()
        if self.config.moderated and moderation is None:
            raise ValueError("A moderation gate is required when config.moderated is set")
        self.transport = transport
        self.moderation = moderation
        self.describer = describer or TypeDescriber()
        self.encoder = encoder or CallEncoder()
        self.extractor = extractor or ResponseExtractor()
        self.deserializer = deserializer or ResultDeserializer(validation=self.config.validation)
        self.trace_store = trace_store
        self.metrics = ProxyMetrics()
        self._schemas: dict[MethodSignature, str] = {}
        self._examples: dict[str, list[CallExample]] = {}
        self._examples_lock = threading.Lock()

    def schema_for(self, signature: MethodSignature) -> str:
        """Schema text of ``signature``; computed once, then served from cache.

        The first lookup also checks that replies can be converted into the
        return type, so unsupported types fail before any model call.
        """
        schema = self._schemas.get(signature)
        if schema is None:
            ensure_deserializable(signature.return_type)
            schema = self.describer.describe_method(signature)
            self._schemas[signature] = schema
        return schema

    def register_primitive(self, tp: Any, name: str) -> None:
        """Render ``tp`` as a leaf ``type: name`` in every schema from now on.

        Cached schemas are recomputed and banked examples move to the new
        schema text of their method.
        """
        with self._examples_lock:
            self.describer.register_primitive(tp, name)
            previous, self._schemas = self._schemas, {}
            moved = [
                (signature, self._examples.pop(schema, [])) for signature, schema in previous.items()
            ]
            for signature, examples in moved:
                schema = self.schema_for(signature)
                if examples:
                    self._examples.setdefault(schema, []).extend(examples)

    def add_example(self, signature: MethodSignature, example: CallExample) -> None:
        """Register a few-shot example, banked under the method's schema text."""
        unknown = set(example.arguments) - {spec.name for spec in signature.parameters}
        if unknown:
            raise ValueError(f"Unknown argument(s) for {signature.name}: {', '.join(sorted(unknown))}")
        with self._examples_lock:
            self._examples.setdefault(self.schema_for(signature), []).append(example)

    def examples_for(self, signature: MethodSignature) -> tuple[CallExample, ...]:
        with self._examples_lock:
            return tuple(self._examples.get(self.schema_for(signature), ()))

    def request_for(self, signature: MethodSignature, arguments: Mapping[str, Any]) -> ProxyRequest:
        """Render argument values as literals in declaration order."""
        declared = [spec.name for spec in signature.parameters]
        unexpected = sorted(set(arguments) - set(declared))
        if unexpected:
            raise TypeError(f"{signature.name}() got unexpected argument(s): {', '.join(unexpected)}")
        return ProxyRequest(
            method_name=signature.name,
            schema=self.schema_for(signature),
            arguments={name: argument_literal(arguments[name]) for name in declared if name in arguments},
        )

    def encode(
        self,
        request: ProxyRequest,
        examples: Sequence[CallExample] = (),
    ) -> tuple[list[BaseMessage], str]:
        """Message sequence and serialized payload for one attempt."""
        messages = self.encoder.encode(request, examples)
        payload = self.encoder.payload(
            messages,
            model=self.config.model,
            temperature=self.config.temperature,
            max_tokens=self.config.max_tokens,
        )
        return messages, payload

    def call(self, signature: MethodSignature, arguments: Mapping[str, Any]) -> Any:
        """Run one proxied call, retrying with fresh model calls on unusable replies.

        Raises:
            ModerationError: the payload was flagged; nothing was sent.
            TransportError: the transport gave up.
            ProxyCallError: every attempt produced a reply that failed to deserialize.
        """

        request = self.request_for(signature, arguments)
        examples = self.examples_for(signature)
        state = _CallState()
        self.metrics.add(calls=1)
        error: str | None = None
        try:
            with Timer() as timer:
                return self._run(signature, request, examples, state)
        except Exception as exc:
            error = f"{type(exc).__name__}: {exc}"
            raise
        finally:
            if self.trace_store is not None:
                self.trace_store.create_record(
                    method=signature.name,
                    attempts=state.attempts,
                    latency_ms=timer.elapsed_ms,
                    input_length=state.input_length,
                    output_length=state.output_length,
                    prefix_length=state.prefix_length,
                    suffix_length=state.suffix_length,
                    error=error,
                )

    def _run(
        self,
        signature: MethodSignature,
        request: ProxyRequest,
        examples: Sequence[CallExample],
        state: _CallState,
    ) -> Any:
        level = logging.INFO if self.config.verbose else logging.DEBUG
        max_attempts = self.config.deserializer_retries + 1
        last_error: DeserializationError | None = None

        for attempt in range(1, max_attempts + 1):
            messages, payload = self.encode(request, examples)
            self._moderate(payload)
            logger.log(level, "%s attempt %d/%d request: %s", signature.name, attempt, max_attempts, request)

            state.attempts = attempt
            raw = self.transport.complete(
                messages,
                model=self.config.model,
                temperature=self.config.temperature,
                max_tokens=self.config.max_tokens,
            )
            self.metrics.add(attempts=1)
            logger.log(level, "%s attempt %d response: %s", signature.name, attempt, raw)

            extraction = self._extract(raw)
            self.metrics.add(prefix_length=len(extraction.prefix), suffix_length=len(extraction.suffix))
            logger.log(
                level,
                "%s attempt %d discarded %d prefix and %d suffix chars",
                signature.name,
                attempt,
                len(extraction.prefix),
                len(extraction.suffix),
            )
            state.prefix_length += len(extraction.prefix)
            state.suffix_length += len(extraction.suffix)
            state.last_response = raw

            try:
                result = self.deserializer.deserialize(extraction.text, signature.return_type)
            except DeserializationError as exc:
                last_error = exc
                self.metrics.add(deserialization_failures=1)
                logger.warning(
                    "%s attempt %d/%d returned an unusable reply: %s",
                    signature.name,
                    attempt,
                    max_attempts,
                    exc.reason,
                )
                continue

            state.input_length = len(payload)
            state.output_length = len(raw)
            self.metrics.add(
                input_length=len(payload),
                output_length=len(raw),
                schema_length=len(request.schema),
                examples_length=sum(
                    len(str(message.content)) for message in self.encoder.example_messages(examples)
                ),
            )
            return result

        logger.error("%s failed after %d attempt(s)", signature.name, max_attempts)
        raise ProxyCallError(signature.name, max_attempts, state.last_response) from last_error

    def _moderate(self, payload: str) -> None:
        if not self.config.moderated or self.moderation is None:
            return
        self.metrics.add(moderation_checks=1)
        result = self.moderation.moderate(payload)
        if result.flagged:
            logger.warning("Moderation flagged request: %s", ", ".join(result.categories) or "unspecified")
            raise ModerationError(list(result.categories))

    def _extract(self, raw: str) -> Extraction:
        try:
            return self.extractor.extract(raw, strict=True)
        except ExtractionError as exc:
            logger.debug("No structured delimiters in reply; deserializing raw text")
            return Extraction(text=exc.text)
