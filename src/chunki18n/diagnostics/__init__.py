"""Error types for chunki18n.

Python 3.13+. Zero external dependencies.
"""

from .errors import (
    ConsistencyError,
    FormattingError,
    I18nConfigurationError,
    I18nError,
    ManifestError,
    MessageSyntaxError,
    MissingTranslationError,
)

__all__ = [
    "ConsistencyError",
    "FormattingError",
    "I18nConfigurationError",
    "I18nError",
    "ManifestError",
    "MessageSyntaxError",
    "MissingTranslationError",
]
