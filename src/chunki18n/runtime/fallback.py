"""Fallback policy for keys missing from the active translations.

Python 3.13+.
"""

from __future__ import annotations

from collections.abc import Callable

from chunki18n.diagnostics import MissingTranslationError
from chunki18n.enums import FallbackMode
from chunki18n.meta import TranslationMeta

__all__ = ["FallbackBehavior", "apply_fallback", "normalize_fallback"]

type FallbackBehavior = FallbackMode | Callable[[str, TranslationMeta], str]


def normalize_fallback(fallback: FallbackBehavior | str) -> FallbackBehavior:
    """Coerce a plain string policy ("key", "fallback", "throw") to FallbackMode.

    Raises:
        ValueError: If the string names no policy
    """
    if callable(fallback):
        return fallback
    return FallbackMode(fallback)


def apply_fallback(key: str, meta: TranslationMeta, fallback: FallbackBehavior) -> str:
    """Resolve the template text to use for a missing key.

    Returns:
        ``key`` under KEY; the call-site fallback (or the key when it is
        empty) under FALLBACK; the callable's result for a custom policy

    Raises:
        MissingTranslationError: Under THROW
    """
    if callable(fallback):
        return fallback(key, meta)
    match fallback:
        case FallbackMode.KEY:
            return key
        case FallbackMode.THROW:
            raise MissingTranslationError(key)
        case _:
            return meta.fallback or key
