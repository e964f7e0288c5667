"""Runtime package.

Provides the message compiler, built-in formatting functions, the
rich-markup renderer, request contexts and the I18n engine.
Depends on syntax package for parsing.

Python 3.13+.
"""

from .compiler import (
    CompiledMessage,
    CompiledTranslation,
    RawMessage,
    clear_message_cache,
    compile_message,
    compile_translations,
    format_message_to_parts,
    get_message_cache_stats,
)
from .context import I18nContext, get_context, request_context, run_with_context
from .engine import I18n, I18nConfig
from .fallback import FallbackBehavior, apply_fallback
from .parts import (
    BidiIsolationPart,
    FallbackPart,
    MarkupPart,
    MessagePart,
    TextPart,
    ValuePart,
)
from .plural_rules import select_ordinal_category, select_plural_category
from .rich_text import Element, RichNode, parts_to_nodes
from .translate import get_locale, i18n, rich, t

__all__ = [
    "BidiIsolationPart",
    "CompiledMessage",
    "CompiledTranslation",
    "Element",
    "FallbackBehavior",
    "FallbackPart",
    "I18n",
    "I18nConfig",
    "I18nContext",
    "MarkupPart",
    "MessagePart",
    "RawMessage",
    "RichNode",
    "TextPart",
    "ValuePart",
    "apply_fallback",
    "clear_message_cache",
    "compile_message",
    "compile_translations",
    "format_message_to_parts",
    "get_context",
    "get_locale",
    "get_message_cache_stats",
    "i18n",
    "parts_to_nodes",
    "request_context",
    "rich",
    "run_with_context",
    "select_ordinal_category",
    "select_plural_category",
    "t",
]
