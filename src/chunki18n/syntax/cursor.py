"""Immutable cursor infrastructure for message template parsing.

Every advance() returns a NEW cursor, so a parse loop that forgets to
reassign its cursor stops instead of spinning forever.

Python 3.13+. Zero external dependencies.
"""

from dataclasses import dataclass

from chunki18n.diagnostics import MessageSyntaxError

__all__ = ["WHITESPACE", "Cursor", "ParseResult"]

# MF2 whitespace: space, tab, CR, LF and ideographic space.
WHITESPACE: frozenset[str] = frozenset((" ", "\t", "\r", "\n", "　"))


@dataclass(frozen=True, slots=True)
class Cursor:
    """Immutable source position tracker.

    Example:
        >>> cursor = Cursor("{$x}", 0)
        >>> cursor.current
        '{'
        >>> cursor.advance().current
        '$'
        >>> cursor.current  # Original unchanged
        '{'
    """

    source: str
    pos: int

    @property
    def is_eof(self) -> bool:
        """True if position >= source length."""
        return self.pos >= len(self.source)

    @property
    def current(self) -> str:
        """Current character.

        Raises:
            MessageSyntaxError: If at end of input
        """
        if self.is_eof:
            raise self.error("Unexpected end of message")
        return self.source[self.pos]

    def peek(self, offset: int = 0) -> str | None:
        """Character at position + offset, or None if beyond EOF."""
        target_pos = self.pos + offset
        if target_pos >= len(self.source):
            return None
        return self.source[target_pos]

    def advance(self, count: int = 1) -> "Cursor":
        """Return new cursor advanced by count positions."""
        return Cursor(self.source, min(self.pos + count, len(self.source)))

    def slice_to(self, end_pos: int) -> str:
        """Source substring from current position to end_pos."""
        return self.source[self.pos : end_pos]

    def starts_with(self, text: str) -> bool:
        """True if the remaining source begins with text."""
        return self.source.startswith(text, self.pos)

    def skip_whitespace(self) -> "Cursor":
        """Return cursor advanced past consecutive MF2 whitespace."""
        c = self
        while not c.is_eof and c.current in WHITESPACE:
            c = c.advance()
        return c

    def expect(self, char: str) -> "Cursor":
        """Consume a required character.

        Raises:
            MessageSyntaxError: If the current character differs
        """
        if self.is_eof or self.current != char:
            raise self.error(f"Expected '{char}'")
        return self.advance()

    def error(self, message: str) -> MessageSyntaxError:
        """Build a syntax error located at this cursor."""
        return MessageSyntaxError(message, self.pos)


@dataclass(frozen=True, slots=True)
class ParseResult[T]:
    """Parsed value paired with the cursor after it.

    Example:
        >>> result = ParseResult("x", Cursor("$x", 2))
        >>> result.value
        'x'
        >>> result.cursor.is_eof
        True
    """

    value: T
    cursor: Cursor
