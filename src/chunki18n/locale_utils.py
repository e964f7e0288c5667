"""Locale utilities for BCP-47 to POSIX conversion and Babel lookup.

Configured locales are kept exactly as the application spells them
(they appear in URLs and in the client bootstrap script). Babel needs the
POSIX form, so normalization happens only at the Babel boundary.

Python 3.13+.
"""

from __future__ import annotations

import functools
import logging
from typing import TYPE_CHECKING

from chunki18n.constants import FALLBACK_BABEL_LOCALE, MAX_LOCALE_CACHE_SIZE

if TYPE_CHECKING:
    from babel import Locale

__all__ = [
    "get_babel_locale",
    "normalize_locale",
    "resolve_babel_locale",
]

logger = logging.getLogger(__name__)


def normalize_locale(locale_code: str) -> str:
    """Convert BCP-47 locale code to POSIX format for Babel.

    Example:
        >>> normalize_locale("en-US")
        'en_US'
        >>> normalize_locale("en")
        'en'
    """
    return locale_code.replace("-", "_")


@functools.lru_cache(maxsize=MAX_LOCALE_CACHE_SIZE)
def get_babel_locale(locale_code: str) -> Locale:
    """Get a Babel Locale object with caching.

    Thread-safe via lru_cache internal locking.

    Raises:
        babel.core.UnknownLocaleError: If locale is not recognized
        ValueError: If locale format is invalid
    """
    # Lazy import: Babel loads CLDR data at import time; defer until needed
    from babel import Locale  # noqa: PLC0415

    return Locale.parse(normalize_locale(locale_code))


@functools.lru_cache(maxsize=MAX_LOCALE_CACHE_SIZE)
def resolve_babel_locale(locale_code: str) -> Locale:
    """Get a Babel Locale, falling back to en_US data for unknown locales.

    Formatting must never fail because a configured locale has no CLDR
    data, so this logs a warning (once per locale, via the cache) and
    formats with en_US rules instead.
    """
    from babel import UnknownLocaleError  # noqa: PLC0415

    try:
        return get_babel_locale(locale_code)
    except (UnknownLocaleError, ValueError) as e:
        logger.warning(
            "Unknown locale '%s': %s. Falling back to %s", locale_code, e, FALLBACK_BABEL_LOCALE
        )
        return get_babel_locale(FALLBACK_BABEL_LOCALE)
