"""Heuristic isolation of the structured value in a free-text reply."""

from __future__ import annotations

from chat_proxy.errors import ExtractionError
from chat_proxy.types import Extraction

_OPENERS = "{["
_CLOSERS = "}]"


class ResponseExtractor:
    """Trims prose around the outermost brace/bracket pair.

    This is not a parser. The start is the earliest ``{`` or ``[`` and the end
    is the last ``}`` or ``]`` after it, so delimiters inside quoted strings or
    trailing prose can move either boundary.
    """

    def extract(self, text: str, *, strict: bool = False) -> Extraction:
        starts = [index for index in (text.find(char) for char in _OPENERS) if index >= 0]
        if not starts:
            if strict:
                raise ExtractionError(text)
            return Extraction(text=text)

        start = min(starts)
        prefix, body = text[:start], text[start:]
        end = max(body.rfind(char) for char in _CLOSERS)
        if end < 0:
            return Extraction(text=body, prefix=prefix)
        return Extraction(text=body[: end + 1], prefix=prefix, suffix=body[end + 1 :])
