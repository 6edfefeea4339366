"""Error taxonomy for the chat proxy."""

from __future__ import annotations


class ProxyError(Exception):
    """Base class for every error raised by the proxy core."""


class SchemaError(ProxyError):
    """A type or member cannot be described."""


class ModerationError(ProxyError):
    """The outgoing payload was flagged by the moderation gate."""

    def __init__(self, categories: list[str] | None = None) -> None:
        self.categories = list(categories or [])
        reason = ", ".join(self.categories) or "unspecified"
        super().__init__(f"Moderation flagged this request due to {reason}")


class TransportError(ProxyError):
    """The chat endpoint could not be reached or returned an error."""


class ExtractionError(ProxyError):
    """No structured delimiters were found in a reply."""

    def __init__(self, text: str) -> None:
        self.text = text
        super().__init__("No structured value delimiters found in reply")


class DeserializationError(ProxyError):
    """A reply could not be parsed or validated into the declared return type."""

    def __init__(self, text: str, reason: str) -> None:
        self.text = text
        self.reason = reason
        super().__init__(reason)


class ProxyCallError(ProxyError):
    """Every attempt of a call produced an unusable reply."""

    def __init__(self, method: str, attempts: int, last_response: str) -> None:
        self.method = method
        self.attempts = attempts
        self.last_response = last_response
        super().__init__(
            f"{method}: no valid response after {attempts} attempt(s); "
            f"last response: {last_response[:320]!r}"
        )
