"""Enumerations for chunki18n type-safe constants.

Uses StrEnum (Python 3.11+) for automatic string conversion.
StrEnum members are strings themselves, so configuration can be written
either as ``FallbackMode.KEY`` or as the plain string ``"key"``.

Python 3.13+.
"""

from enum import StrEnum


class FallbackMode(StrEnum):
    """Built-in policies for a key missing from the active translations.

    StrEnum provides automatic string conversion: str(FallbackMode.KEY) == "key"
    """

    FALLBACK = "fallback"
    """Render the fallback text authored at the call site (or the key)."""

    KEY = "key"
    """Render the key itself."""

    THROW = "throw"
    """Raise MissingTranslationError."""


class ConsistencyLevel(StrEnum):
    """How the key store reacts to one key carrying different metadata."""

    OFF = "off"
    """No checking."""

    WARN = "warn"
    """Log a warning once per (key, field) and continue."""

    ERROR = "error"
    """Log an error and fail the build step when it asks for violations."""


class MetaField(StrEnum):
    """Metadata fields compared by the consistency check."""

    FALLBACK = "fallback"
    DESCRIPTION = "description"
    VARIABLES = "variables"


class PartType(StrEnum):
    """Type tag of a formatted message part."""

    TEXT = "text"
    STRING = "string"
    NUMBER = "number"
    DATETIME = "datetime"
    MARKUP = "markup"
    BIDI_ISOLATION = "bidiIsolation"
    FALLBACK = "fallback"


class MarkupKind(StrEnum):
    """Kind of markup placeholder."""

    OPEN = "open"
    """{#tag}"""

    CLOSE = "close"
    """{/tag}"""

    STANDALONE = "standalone"
    """{#tag/}"""


class NodeKind(StrEnum):
    """Closed set of node kinds a UI layer may return from rich handlers.

    Only ELEMENT nodes take part in list identity; the renderer assigns a
    synthetic key to an ELEMENT that has none.
    """

    ELEMENT = "element"
    FRAGMENT = "fragment"
    TEXT = "text"


__all__ = [
    "ConsistencyLevel",
    "FallbackMode",
    "MarkupKind",
    "MetaField",
    "NodeKind",
    "PartType",
]
