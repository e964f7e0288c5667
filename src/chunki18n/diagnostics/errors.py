"""chunki18n exception hierarchy.

Translation problems are contained by default: template syntax errors
degrade to raw-text output, formatting failures render a visible fallback,
missing keys go through the configured fallback policy. Only the types
below that a caller explicitly opts into (``throw`` fallback policy,
``error`` consistency level) escape to application code.

Python 3.13+. Zero external dependencies.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from chunki18n.extraction.types import ConsistencyViolation

__all__ = [
    "ConsistencyError",
    "FormattingError",
    "I18nConfigurationError",
    "I18nError",
    "ManifestError",
    "MessageSyntaxError",
    "MissingTranslationError",
]


class I18nError(Exception):
    """Base exception for all chunki18n errors."""


class I18nConfigurationError(I18nError, ValueError):
    """Invalid configuration, raised synchronously by ``configure()``.

    Also raised when an operation needs configuration that was never given.
    """


class MessageSyntaxError(I18nError):
    """Template syntax error.

    Raised by the message parser and caught at the compiler boundary,
    where the template degrades to a raw-text echo.

    Attributes:
        position: Character offset where parsing failed
    """

    def __init__(self, message: str, position: int) -> None:
        """Initialize MessageSyntaxError.

        Args:
            message: Human-readable description
            position: Character offset in the template
        """
        super().__init__(f"{message} at position {position}")
        self.position = position


class FormattingError(I18nError):
    """Raised when a locale-aware formatting function fails.

    The error carries a fallback_value that is rendered in place of the
    expression so that output stays usable.

    Attributes:
        fallback_value: String to use in output when formatting fails
    """

    def __init__(self, message: str, fallback_value: str) -> None:
        """Initialize FormattingError.

        Args:
            message: Error message
            fallback_value: Value to use in output when formatting fails
        """
        super().__init__(message)
        self.fallback_value = fallback_value


class MissingTranslationError(I18nError, LookupError):
    """No translation for a key under the ``throw`` fallback policy.

    Attributes:
        key: The translation key that was requested
    """

    def __init__(self, key: str) -> None:
        """Initialize MissingTranslationError.

        Args:
            key: Missing translation key
        """
        super().__init__(f"Missing translation for key: {key}")
        self.key = key


class ConsistencyError(I18nError):
    """One or more keys carry conflicting metadata across call sites.

    Attributes:
        violations: The (key, field) mismatches, in detection order
    """

    def __init__(self, violations: tuple[ConsistencyViolation, ...]) -> None:
        """Initialize ConsistencyError.

        Args:
            violations: Detected violations (at least one)
        """
        lines = "\n".join(f"  - {violation.describe()}" for violation in violations)
        super().__init__(f"{len(violations)} inconsistent translation key(s):\n{lines}")
        self.violations = violations


class ManifestError(I18nError):
    """A serialized extraction manifest could not be read."""
