"""Formatted message parts.

A compiled message formats either to a string or to a sequence of typed
parts; the part sequence is what the rich-markup renderer consumes.

Python 3.13+. Zero external dependencies.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import ClassVar

from chunki18n.enums import MarkupKind, PartType

__all__ = [
    "BidiIsolationPart",
    "FallbackPart",
    "MarkupPart",
    "MessagePart",
    "TextPart",
    "ValuePart",
    "part_text",
]


@dataclass(frozen=True, slots=True)
class TextPart:
    """Literal text from the pattern."""

    type: ClassVar[PartType] = PartType.TEXT
    value: str


@dataclass(frozen=True, slots=True)
class ValuePart:
    """A formatted expression value.

    Attributes:
        type: STRING, NUMBER or DATETIME
        value: Locale-formatted text
        source: Expression source used in fallback output ($name, |literal|)
    """

    type: PartType
    value: str
    source: str


@dataclass(frozen=True, slots=True)
class MarkupPart:
    """Markup open, close or standalone tag."""

    type: ClassVar[PartType] = PartType.MARKUP
    kind: MarkupKind
    name: str
    options: Mapping[str, str] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class BidiIsolationPart:
    """Unicode isolation control (FSI or PDI) around a placeholder."""

    type: ClassVar[PartType] = PartType.BIDI_ISOLATION
    value: str


@dataclass(frozen=True, slots=True)
class FallbackPart:
    """Placeholder that could not be resolved; renders as {source}."""

    type: ClassVar[PartType] = PartType.FALLBACK
    source: str

    @property
    def value(self) -> str:
        """Visible fallback representation."""
        return f"{{{self.source}}}"


type MessagePart = TextPart | ValuePart | MarkupPart | BidiIsolationPart | FallbackPart


def part_text(part: MessagePart) -> str:
    """Text contributed by a part to string output (markup contributes none)."""
    if isinstance(part, MarkupPart):
        return ""
    return part.value
