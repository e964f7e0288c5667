"""Process-wide engine and the ``t()`` entry point.

Application code calls ``t()`` anywhere; the request context installed at
request entry decides the locale and translations. The shared engine is
configured once at startup:

    >>> from chunki18n import i18n, t
    >>> t("greeting", "Hello!")  # outside any request: call-site text
    'Hello!'

Python 3.13+.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from chunki18n.meta import TranslationMeta
from chunki18n.runtime.engine import I18n
from chunki18n.runtime.rich_text import RichChild, TagHandler

__all__ = ["get_locale", "i18n", "rich", "t"]

i18n = I18n()
"""Shared engine for the process."""


def t(
    key: str,
    meta: TranslationMeta | str | None = None,
    values: Mapping[str, Any] | None = None,
) -> str:
    """Translate key in the active request.

    Args:
        key: Translation key
        meta: Call-site fallback text or TranslationMeta
        values: Variables referenced by the template

    Returns:
        Formatted string

    Raises:
        MissingTranslationError: Missing key under the ``throw`` policy
    """
    return i18n.translate(key, meta, values)


def rich(
    key: str,
    meta: TranslationMeta | str | None = None,
    components: Mapping[str, TagHandler] | None = None,
    values: Mapping[str, Any] | None = None,
) -> list[RichChild]:
    """Translate key and render its markup tags through components."""
    return i18n.rich(key, meta, components, values)


def get_locale() -> str:
    """Locale of the active request, else the configured default."""
    return i18n.get_locale()
