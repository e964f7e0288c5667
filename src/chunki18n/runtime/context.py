"""Request-scoped translation context.

Exactly one I18nContext is active per logical request. It is installed
by request-entry code through ``request_context`` (or ``run_with_context``)
and read by ``t()`` through ``get_context``; intermediate callers never see
it. A ContextVar gives every thread and asyncio task its own slot, so
concurrent requests never share a context.

Python 3.13+.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator, Mapping
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from chunki18n.runtime.compiler import CompiledTranslation
    from chunki18n.runtime.fallback import FallbackBehavior

__all__ = ["I18nContext", "get_context", "request_context", "run_with_context"]

_current_context: ContextVar[I18nContext | None] = ContextVar("chunki18n_context", default=None)


@dataclass(frozen=True, slots=True)
class I18nContext:
    """Translation state for one request.

    Attributes:
        locale: Locale the request renders in
        translations: Compiled translations shared with the engine (read-only)
        fallback: Policy applied to keys missing from ``translations``

    Resolved fallbacks are memoized per context, so a missing key compiles
    once per request without touching the shared translation table.
    """

    locale: str
    translations: Mapping[str, CompiledTranslation]
    fallback: FallbackBehavior
    _resolved: dict[str, CompiledTranslation] = field(
        default_factory=dict, repr=False, compare=False
    )

    def __post_init__(self) -> None:
        if not isinstance(self.translations, MappingProxyType):
            object.__setattr__(self, "translations", MappingProxyType(dict(self.translations)))

    def lookup(self, key: str) -> CompiledTranslation | None:
        """Compiled translation for key, including fallbacks resolved earlier."""
        compiled = self.translations.get(key)
        if compiled is None:
            compiled = self._resolved.get(key)
        return compiled

    def remember(self, key: str, compiled: CompiledTranslation) -> None:
        """Memoize a resolved fallback for the rest of the request."""
        self._resolved[key] = compiled


def get_context() -> I18nContext | None:
    """The active request context, or None outside any request."""
    return _current_context.get()


@contextmanager
def request_context(context: I18nContext) -> Iterator[I18nContext]:
    """Install a context for the duration of the block.

    Example:
        >>> ctx = I18nContext("de", {}, "key")
        >>> with request_context(ctx):
        ...     get_context() is ctx
        True
        >>> get_context() is None
        True
    """
    token = _current_context.set(context)
    try:
        yield context
    finally:
        _current_context.reset(token)


def run_with_context[**P, R](
    context: I18nContext, fn: Callable[P, R], /, *args: P.args, **kwargs: P.kwargs
) -> R:
    """Call fn with context active and return its result."""
    with request_context(context):
        return fn(*args, **kwargs)
