"""Typed chat proxy package."""

from .config import DescriberConfig, ProxyConfig
from .describe.describer import TypeDescriber
from .describe.signatures import Description
from .errors import (
    DeserializationError,
    ExtractionError,
    ModerationError,
    ProxyCallError,
    ProxyError,
    SchemaError,
    TransportError,
)
from .proxy.dispatcher import ProxyDispatcher
from .proxy.interface import ChatProxy

__all__ = [
    "ChatProxy",
    "DescriberConfig",
    "Description",
    "DeserializationError",
    "ExtractionError",
    "ModerationError",
    "ProxyCallError",
    "ProxyConfig",
    "ProxyDispatcher",
    "ProxyError",
    "SchemaError",
    "TransportError",
    "TypeDescriber",
]
