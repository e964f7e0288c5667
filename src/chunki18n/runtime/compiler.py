"""Message compiler - turns a template and locale into a reusable formatter.

Compilation parses once; formatting walks the parsed message with the
caller's values, evaluates declarations, selects a variant, and emits
typed parts. String output is the concatenation of the parts' text.

Containment rules:
    - A template that fails to parse compiles to a RawMessage that echoes
      the template text, so the failure is visible but never raised
    - An unresolved variable or failing function renders the MF2 fallback
      representation ({$name}, {|literal|}, {:function}) and logs at debug

Thread Safety:
    Compiled messages are immutable. Each format call builds its own
    resolution state. The shared MessageCache is internally locked.

Python 3.13+. Indirect dependency: Babel (via functions).
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable

from chunki18n.constants import LOG_TRUNCATE_WARNING
from chunki18n.diagnostics import FormattingError, MessageSyntaxError
from chunki18n.enums import PartType
from chunki18n.runtime.cache import MessageCache
from chunki18n.runtime.functions import (
    BUILTIN_FUNCTIONS,
    FormattedValue,
    format_default,
    match_key,
    string_function,
)
from chunki18n.runtime.parts import (
    BidiIsolationPart,
    FallbackPart,
    MarkupPart,
    MessagePart,
    TextPart,
    ValuePart,
    part_text,
)
from chunki18n.syntax.ast import (
    CatchallKey,
    Expression,
    Literal,
    Markup,
    Message,
    Option,
    Pattern,
    PatternMessage,
    Text,
    VariableRef,
    Variant,
)
from chunki18n.syntax.parser import parse_message

__all__ = [
    "CompiledMessage",
    "CompiledTranslation",
    "RawMessage",
    "clear_message_cache",
    "compile_message",
    "compile_translations",
    "format_message_to_parts",
    "get_message_cache_stats",
]

logger = logging.getLogger(__name__)

# Unicode bidirectional isolation characters per Unicode TR9.
UNICODE_FSI: str = "\u2068"  # U+2068 FIRST STRONG ISOLATE
UNICODE_PDI: str = "\u2069"  # U+2069 POP DIRECTIONAL ISOLATE

type MessageValues = Mapping[str, Any]


@runtime_checkable
class CompiledTranslation(Protocol):
    """A reusable formatter for one (locale, template) pair."""

    locale: str
    template: str

    def __call__(self, values: MessageValues | None = None) -> str: ...

    def format_to_parts(self, values: MessageValues | None = None) -> tuple[MessagePart, ...]: ...


@dataclass(frozen=True, slots=True)
class RawMessage:
    """Constant formatter that echoes a template which failed to parse."""

    locale: str
    template: str

    def __call__(self, values: MessageValues | None = None) -> str:  # noqa: ARG002
        return self.template

    def format(self, values: MessageValues | None = None) -> str:
        """Return the raw template text."""
        return self(values)

    def format_to_parts(self, values: MessageValues | None = None) -> tuple[MessagePart, ...]:  # noqa: ARG002
        """Return the raw template text as a single text part."""
        return (TextPart(self.template),) if self.template else ()


@dataclass(frozen=True, slots=True)
class _Unresolved:
    """Binding for a declaration whose expression could not be resolved."""

    source: str


class CompiledMessage:
    """Formatter for a parsed message.

    Call it (or ``format``) for a string; use ``format_to_parts`` for the
    typed part sequence consumed by the rich-markup renderer.

    Example:
        >>> greet = compile_message("en", "Hello {$name}!", use_isolating=False)
        >>> greet({"name": "Sam"})
        'Hello Sam!'
    """

    __slots__ = ("locale", "message", "template", "use_isolating")

    def __init__(self, locale: str, template: str, message: Message, *, use_isolating: bool) -> None:
        self.locale = locale
        self.template = template
        self.message = message
        self.use_isolating = use_isolating

    def __call__(self, values: MessageValues | None = None) -> str:
        return "".join(part_text(part) for part in self.format_to_parts(values))

    def format(self, values: MessageValues | None = None) -> str:
        """Format to a string."""
        return self(values)

    def format_to_parts(self, values: MessageValues | None = None) -> tuple[MessagePart, ...]:
        """Format to typed parts."""
        return _Resolution(self, values or {}).run()

    def __repr__(self) -> str:
        return f"CompiledMessage(locale={self.locale!r}, template={self.template!r})"


class _Resolution:
    """Per-call resolution state: variable environment and emitted parts."""

    __slots__ = ("_env", "_message", "_parts")

    def __init__(self, message: CompiledMessage, values: MessageValues) -> None:
        self._message = message
        self._env: dict[str, Any] = dict(values)
        self._parts: list[MessagePart] = []

    @property
    def _locale(self) -> str:
        return self._message.locale

    def run(self) -> tuple[MessagePart, ...]:
        message = self._message.message
        for declaration in message.declarations:
            self._env[declaration.name] = self._evaluate(declaration.value)
        if isinstance(message, PatternMessage):
            pattern = message.pattern
        else:
            pattern = self._select(message.selectors, message.variants)
        self._emit_pattern(pattern)
        return tuple(self._parts)

    # ------------------------------------------------------------------
    # Expressions
    # ------------------------------------------------------------------

    def _evaluate(self, expression: Expression) -> FormattedValue | _Unresolved:
        arg = expression.arg
        function = expression.function

        if isinstance(arg, VariableRef):
            source = f"${arg.name}"
            if arg.name not in self._env:
                logger.debug("Unresolved variable: $%s", arg.name)
                return _Unresolved(source)
            operand = self._env[arg.name]
            if isinstance(operand, _Unresolved):
                return _Unresolved(source)
        elif isinstance(arg, Literal):
            source = f"|{arg.value}|"
            operand = arg.value
        else:
            # Function-only expressions take no operand
            return _Unresolved(_expression_source(expression))

        if function is None:
            if isinstance(arg, Literal):
                return string_function(self._locale, operand, {})
            try:
                return format_default(self._locale, operand)
            except FormattingError as e:
                logger.debug("Formatting %s failed: %s", source, e)
                return _Unresolved(source)

        implementation = BUILTIN_FUNCTIONS.get(function.name)
        if implementation is None:
            logger.debug("Unknown function :%s in %s", function.name, source)
            return _Unresolved(source)
        options = self._resolve_options(function.options)
        if options is None:
            return _Unresolved(source)
        try:
            return implementation(self._locale, operand, options)
        except FormattingError as e:
            logger.debug("Function :%s failed for %s: %s", function.name, source, e)
            return _Unresolved(source)

    def _resolve_options(self, options: tuple[Option, ...]) -> dict[str, Any] | None:
        resolved: dict[str, Any] = {}
        for option in options:
            if isinstance(option.value, Literal):
                resolved[option.name] = option.value.value
                continue
            value = self._env.get(option.value.name)
            if value is None or isinstance(value, _Unresolved):
                logger.debug("Unresolved option variable: $%s", option.value.name)
                return None
            resolved[option.name] = value.value if isinstance(value, FormattedValue) else value
        return resolved

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------

    def _selector_value(self, selector: VariableRef) -> FormattedValue | None:
        value = self._env.get(selector.name)
        if isinstance(value, FormattedValue):
            return value
        if value is None or isinstance(value, _Unresolved):
            logger.debug("Unresolved selector: $%s", selector.name)
            return None
        # Unannotated selectors match by string
        return string_function(self._locale, value, {})

    def _select(self, selectors: tuple[VariableRef, ...], variants: tuple[Variant, ...]) -> Pattern:
        values = [self._selector_value(selector) for selector in selectors]
        best: tuple[int, ...] | None = None
        chosen: Pattern = ()
        for variant in variants:
            ranks: list[int] = []
            for key, value in zip(variant.keys, values, strict=True):
                if isinstance(key, CatchallKey):
                    ranks.append(2)
                    continue
                rank = None if value is None else match_key(self._locale, value, key.value)
                if rank is None:
                    break
                ranks.append(rank)
            else:
                candidate = tuple(ranks)
                # Strict comparison keeps the earliest variant on ties
                if best is None or candidate < best:
                    best = candidate
                    chosen = variant.value
        return chosen

    # ------------------------------------------------------------------
    # Patterns
    # ------------------------------------------------------------------

    def _emit_pattern(self, pattern: Pattern) -> None:
        for element in pattern:
            if isinstance(element, Text):
                self._parts.append(TextPart(element.value))
            elif isinstance(element, Markup):
                options = self._resolve_options(element.options) or {}
                self._parts.append(
                    MarkupPart(
                        element.kind,
                        element.name,
                        {name: str(value) for name, value in options.items()},
                    )
                )
            else:
                self._emit_expression(element)

    def _emit_expression(self, expression: Expression) -> None:
        result = self._evaluate(expression)
        part: MessagePart
        if isinstance(result, _Unresolved):
            part = FallbackPart(result.source)
        else:
            source = _expression_source(expression)
            part_type = result.kind if result.kind in _VALUE_KINDS else PartType.STRING
            part = ValuePart(part_type, result.formatted, source)
        if self._message.use_isolating:
            self._parts.append(BidiIsolationPart(UNICODE_FSI))
            self._parts.append(part)
            self._parts.append(BidiIsolationPart(UNICODE_PDI))
        else:
            self._parts.append(part)


_VALUE_KINDS = frozenset({PartType.STRING, PartType.NUMBER, PartType.DATETIME})


def _expression_source(expression: Expression) -> str:
    if isinstance(expression.arg, VariableRef):
        return f"${expression.arg.name}"
    if isinstance(expression.arg, Literal):
        return f"|{expression.arg.value}|"
    return f":{expression.function.name}" if expression.function else ""


# ============================================================================
# MODULE-LEVEL API
# ============================================================================

_message_cache = MessageCache()


def _truncate(template: str) -> str:
    if len(template) <= LOG_TRUNCATE_WARNING:
        return template
    return template[:LOG_TRUNCATE_WARNING] + "..."


def compile_message(
    locale: str, template: str, *, use_isolating: bool = True
) -> CompiledTranslation:
    """Compile a template for a locale, reusing a cached result when present.

    Never raises for bad templates: a parse failure is logged as a warning
    and yields a RawMessage echoing the template.

    Args:
        locale: Locale code (BCP-47 or POSIX)
        template: MessageFormat 2 template text
        use_isolating: Wrap placeholders in Unicode FSI/PDI marks

    Returns:
        Compiled formatter (CompiledMessage or RawMessage)

    Example:
        >>> compile_message("en", "Oops {", use_isolating=False)()
        'Oops {'
    """
    cached = _message_cache.get(locale, template, use_isolating)
    if cached is not None:
        return cached

    compiled: CompiledTranslation
    try:
        message = parse_message(template)
    except MessageSyntaxError as e:
        logger.warning(
            "Failed to compile message for locale %s: %s; template: %r",
            locale,
            e,
            _truncate(template),
        )
        compiled = RawMessage(locale, template)
    else:
        compiled = CompiledMessage(locale, template, message, use_isolating=use_isolating)

    _message_cache.put(locale, template, use_isolating, compiled)
    return compiled


def compile_translations(
    locale: str, translations: Mapping[str, str], *, use_isolating: bool = True
) -> dict[str, CompiledTranslation]:
    """Compile every entry of a key -> template map."""
    return {
        key: compile_message(locale, template, use_isolating=use_isolating)
        for key, template in translations.items()
    }


def format_message_to_parts(
    locale: str,
    template: str,
    values: MessageValues | None = None,
    *,
    use_isolating: bool = True,
) -> tuple[MessagePart, ...]:
    """Compile (cached) and format a template to typed parts."""
    return compile_message(locale, template, use_isolating=use_isolating).format_to_parts(values)


def clear_message_cache() -> None:
    """Drop every cached compiled message."""
    _message_cache.clear()


def get_message_cache_stats() -> dict[str, int | float]:
    """Statistics of the shared compiled-message cache."""
    return _message_cache.get_stats()
