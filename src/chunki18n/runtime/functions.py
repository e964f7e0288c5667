"""MessageFormat 2 formatting functions backed by Babel.

Implements :string, :number, :integer, :percent, :currency, :date, :time,
:datetime and :unit. Every function has the signature::

    fn(locale, operand, options) -> FormattedValue

where ``options`` maps MF2 option names (camelCase, as written in the
template) to resolved values. Functions raise FormattingError on bad input;
the compiler catches it and renders the MF2 fallback representation.

Architecture:
    - Locale data comes from Babel via resolve_babel_locale (cached,
      en_US fallback for unknown locales)
    - Number patterns are built from MF2 digit options, then handed to
      babel.numbers.format_decimal
    - FormattedValue keeps the operand next to its formatted text so that
      .match can select on the numeric value rather than the string

Python 3.13+. Uses Babel for i18n.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from datetime import date, datetime, time
from decimal import Decimal, InvalidOperation
from typing import Any

from babel import dates as babel_dates
from babel import numbers as babel_numbers
from babel import units as babel_units

from chunki18n.diagnostics import FormattingError
from chunki18n.enums import PartType
from chunki18n.locale_utils import resolve_babel_locale
from chunki18n.runtime.plural_rules import select_ordinal_category, select_plural_category

__all__ = [
    "BUILTIN_FUNCTIONS",
    "FormattedValue",
    "MessageFunction",
    "format_default",
    "match_key",
]

_DATE_STYLES = frozenset({"short", "medium", "long", "full"})
_UNIT_DISPLAYS = frozenset({"short", "long", "narrow"})
_SELECT_MODES = frozenset({"plural", "ordinal", "exact"})
_NO_GROUPING = frozenset({"never", "false"})


@dataclass(frozen=True, slots=True)
class FormattedValue:
    """Result of applying a formatting function to an operand.

    Attributes:
        kind: STRING, NUMBER or DATETIME
        value: Operand after coercion (Decimal for numbers)
        formatted: Locale-formatted text
        function: Name of the function that produced it
        options: Options it was produced with (inherited by .local chains)
    """

    kind: PartType
    value: Any
    formatted: str
    function: str
    options: Mapping[str, Any] = field(default_factory=dict)


type MessageFunction = Callable[[str, Any, Mapping[str, Any]], FormattedValue]


# ============================================================================
# OPERAND AND OPTION COERCION
# ============================================================================


def _unwrap(operand: Any) -> Any:
    return operand.value if isinstance(operand, FormattedValue) else operand


def _inherited_options(operand: Any, options: Mapping[str, Any]) -> dict[str, Any]:
    # .local $x = {$n :number minimumFractionDigits=2} then {$x :number}
    # keeps the digit options of the first annotation.
    merged: dict[str, Any] = {}
    if isinstance(operand, FormattedValue) and operand.kind is PartType.NUMBER:
        merged.update(operand.options)
    merged.update(options)
    return merged


def _to_decimal(operand: Any, function: str) -> Decimal:
    value = _unwrap(operand)
    if isinstance(value, bool):
        msg = f":{function} requires a numeric operand, got bool"
        raise FormattingError(msg, fallback_value=str(value))
    if isinstance(value, Decimal):
        return value
    if isinstance(value, int):
        return Decimal(value)
    if isinstance(value, float):
        return Decimal(repr(value))
    if isinstance(value, str):
        try:
            result = Decimal(value.strip())
        except InvalidOperation as e:
            msg = f":{function} requires a numeric operand, got '{value}'"
            raise FormattingError(msg, fallback_value=value) from e
        if not result.is_finite():
            msg = f":{function} requires a finite number, got '{value}'"
            raise FormattingError(msg, fallback_value=value)
        return result
    msg = f":{function} requires a numeric operand, got {type(value).__name__}"
    raise FormattingError(msg, fallback_value=str(value))


def _int_option(options: Mapping[str, Any], name: str, default: int) -> int:
    raw = options.get(name)
    if raw is None:
        return default
    try:
        result = int(str(_unwrap(raw)))
    except ValueError as e:
        msg = f"Option {name} must be a non-negative integer, got '{raw}'"
        raise FormattingError(msg, fallback_value=str(raw)) from e
    if result < 0:
        msg = f"Option {name} must be a non-negative integer, got '{raw}'"
        raise FormattingError(msg, fallback_value=str(raw))
    return result


def _str_option(options: Mapping[str, Any], name: str, default: str | None = None) -> str | None:
    raw = options.get(name)
    if raw is None:
        return default
    return str(_unwrap(raw))


def _to_datetime(operand: Any, function: str) -> date | time:
    value = _unwrap(operand)
    if isinstance(value, (date, time)):
        return value
    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value)
        except ValueError as e:
            msg = f":{function} requires an ISO 8601 operand, got '{value}'"
            raise FormattingError(msg, fallback_value=value) from e
    msg = f":{function} requires a date/time operand, got {type(value).__name__}"
    raise FormattingError(msg, fallback_value=str(value))


def _style(options: Mapping[str, Any], name: str, default: str | None) -> str | None:
    style = _str_option(options, name, default)
    if style is not None and style not in _DATE_STYLES:
        msg = f"Option {name} must be one of short, medium, long, full; got '{style}'"
        raise FormattingError(msg, fallback_value=style)
    return style


# ============================================================================
# NUMBERS
# ============================================================================


def _number_pattern(minimum: int, maximum: int, *, grouping: bool) -> str:
    integer_part = "#,##0" if grouping else "0"
    if maximum == 0:
        return integer_part
    return f"{integer_part}.{'0' * minimum}{'#' * (maximum - minimum)}"


def _format_number(
    locale: str, value: Decimal, options: Mapping[str, Any], function: str, *, default_max: int
) -> str:
    minimum = _int_option(options, "minimumFractionDigits", 0)
    maximum = max(_int_option(options, "maximumFractionDigits", max(default_max, minimum)), minimum)
    grouping = _str_option(options, "useGrouping", "auto") not in _NO_GROUPING
    pattern = _number_pattern(minimum, maximum, grouping=grouping)
    try:
        return str(
            babel_numbers.format_decimal(value, format=pattern, locale=resolve_babel_locale(locale))
        )
    except (ValueError, TypeError, InvalidOperation) as e:
        msg = f":{function} formatting failed for '{value}': {e}"
        raise FormattingError(msg, fallback_value=str(value)) from e


def _check_select(options: Mapping[str, Any]) -> None:
    select = _str_option(options, "select")
    if select is not None and select not in _SELECT_MODES:
        msg = f"Option select must be plural, ordinal or exact; got '{select}'"
        raise FormattingError(msg, fallback_value=select)


def number_function(locale: str, operand: Any, options: Mapping[str, Any]) -> FormattedValue:
    """:number - locale-formatted decimal.

    Options: minimumFractionDigits, maximumFractionDigits (default 3),
    useGrouping (auto/always/never), select (plural/ordinal/exact).

    Examples:
        >>> number_function("en", 1234.5, {}).formatted
        '1,234.5'
        >>> number_function("de", 1234.5, {"minimumFractionDigits": "2"}).formatted
        '1.234,50'
    """
    options = _inherited_options(operand, options)
    _check_select(options)
    value = _to_decimal(operand, "number")
    formatted = _format_number(locale, value, options, "number", default_max=3)
    return FormattedValue(PartType.NUMBER, value, formatted, "number", options)


def integer_function(locale: str, operand: Any, options: Mapping[str, Any]) -> FormattedValue:
    """:integer - number rounded to an integer (half-even)."""
    options = {**_inherited_options(operand, options), "maximumFractionDigits": 0}
    options.pop("minimumFractionDigits", None)
    _check_select(options)
    value = _to_decimal(operand, "integer").to_integral_value()
    formatted = _format_number(locale, value, options, "integer", default_max=0)
    return FormattedValue(PartType.NUMBER, value, formatted, "integer", options)


def percent_function(locale: str, operand: Any, options: Mapping[str, Any]) -> FormattedValue:
    """:percent - operand scaled by 100 with the locale's percent sign.

    Example:
        >>> percent_function("en", "0.25", {}).formatted
        '25%'
    """
    value = _to_decimal(operand, "percent")
    try:
        formatted = str(
            babel_numbers.format_percent(value, locale=resolve_babel_locale(locale))
        )
    except (ValueError, TypeError, InvalidOperation) as e:
        msg = f":percent formatting failed for '{value}': {e}"
        raise FormattingError(msg, fallback_value=str(value)) from e
    return FormattedValue(PartType.NUMBER, value, formatted, "percent", dict(options))


def currency_function(locale: str, operand: Any, options: Mapping[str, Any]) -> FormattedValue:
    """:currency - monetary amount with ISO 4217 currency.

    Options: currency (required), currencyDisplay (symbol/code/name).
    Currency-specific decimal places come from CLDR (JPY 0, BHD 3, ...).

    Example:
        >>> currency_function("en_US", 123.45, {"currency": "EUR"}).formatted
        '€123.45'
    """
    value = _to_decimal(operand, "currency")
    currency = _str_option(options, "currency")
    if not currency:
        msg = ":currency requires a currency option"
        raise FormattingError(msg, fallback_value=str(value))
    display = _str_option(options, "currencyDisplay", "symbol")
    babel_locale = resolve_babel_locale(locale)
    try:
        if display == "name":
            formatted = babel_numbers.format_currency(
                value, currency, locale=babel_locale, format_type="name"
            )
        elif display == "code":
            # Double currency sign selects the ISO code per CLDR
            standard = babel_locale.currency_formats["standard"].pattern
            formatted = babel_numbers.format_currency(
                value, currency, format=standard.replace("\xa4", "\xa4\xa4"), locale=babel_locale,
                currency_digits=True,
            )
        else:
            formatted = babel_numbers.format_currency(value, currency, locale=babel_locale)
    except (ValueError, TypeError, KeyError, InvalidOperation) as e:
        msg = f":currency formatting failed for '{currency} {value}': {e}"
        raise FormattingError(msg, fallback_value=f"{currency} {value}") from e
    return FormattedValue(PartType.NUMBER, value, str(formatted), "currency", dict(options))


def unit_function(locale: str, operand: Any, options: Mapping[str, Any]) -> FormattedValue:
    """:unit - measurement with a CLDR unit.

    Options: unit (required, e.g. "length-kilometer" or "kilometer"),
    unitDisplay (short/long/narrow, default short).

    Example:
        >>> unit_function("en", 12, {"unit": "length-kilometer", "unitDisplay": "long"}).formatted
        '12 kilometers'
    """
    value = _to_decimal(operand, "unit")
    unit = _str_option(options, "unit")
    if not unit:
        msg = ":unit requires a unit option"
        raise FormattingError(msg, fallback_value=str(value))
    display = _str_option(options, "unitDisplay", "short")
    if display not in _UNIT_DISPLAYS:
        msg = f"Option unitDisplay must be short, long or narrow; got '{display}'"
        raise FormattingError(msg, fallback_value=str(value))
    try:
        formatted = babel_units.format_unit(
            value, unit, length=display, locale=resolve_babel_locale(locale)
        )
    except (ValueError, TypeError, KeyError, InvalidOperation) as e:
        # babel.units.UnknownUnitError subclasses ValueError
        msg = f":unit formatting failed for '{value} {unit}': {e}"
        raise FormattingError(msg, fallback_value=f"{value} {unit}") from e
    return FormattedValue(PartType.NUMBER, value, str(formatted), "unit", dict(options))


# ============================================================================
# DATES AND TIMES
# ============================================================================


def _format_date_part(value: date | time, style: str, locale: str) -> str:
    if isinstance(value, time):
        msg = f"Cannot format a time value as a date: {value.isoformat()}"
        raise FormattingError(msg, fallback_value=value.isoformat())
    return str(babel_dates.format_date(value, format=style, locale=resolve_babel_locale(locale)))


def _format_time_part(value: date | time, style: str, locale: str) -> str:
    if not isinstance(value, (datetime, time)):
        msg = f"Cannot format a date value as a time: {value.isoformat()}"
        raise FormattingError(msg, fallback_value=value.isoformat())
    return str(babel_dates.format_time(value, format=style, locale=resolve_babel_locale(locale)))


def date_function(locale: str, operand: Any, options: Mapping[str, Any]) -> FormattedValue:
    """:date - date portion only. Option: style (default medium).

    Example:
        >>> date_function("en_US", "2025-10-27", {"style": "short"}).formatted
        '10/27/25'
    """
    value = _to_datetime(operand, "date")
    style = _style(options, "style", "medium") or "medium"
    formatted = _guard_datetime(value, lambda: _format_date_part(value, style, locale))
    return FormattedValue(PartType.DATETIME, value, formatted, "date", dict(options))


def time_function(locale: str, operand: Any, options: Mapping[str, Any]) -> FormattedValue:
    """:time - time portion only. Option: style (default short)."""
    value = _to_datetime(operand, "time")
    style = _style(options, "style", "short") or "short"
    formatted = _guard_datetime(value, lambda: _format_time_part(value, style, locale))
    return FormattedValue(PartType.DATETIME, value, formatted, "time", dict(options))


def datetime_function(locale: str, operand: Any, options: Mapping[str, Any]) -> FormattedValue:
    """:datetime - date and/or time.

    Options: dateStyle, timeStyle. With neither given, formats a medium
    date and short time (date only for plain date operands). Date and time
    are combined with the locale's CLDR dateTimeFormat for the date style.
    """
    value = _to_datetime(operand, "datetime")
    date_style = _style(options, "dateStyle", None)
    time_style = _style(options, "timeStyle", None)
    if date_style is None and time_style is None:
        date_style = "medium"
        time_style = "short" if isinstance(value, datetime) else None
    if isinstance(value, time):
        date_style = None
        time_style = time_style or "short"

    def render() -> str:
        if date_style is None:
            return _format_time_part(value, time_style or "short", locale)
        date_str = _format_date_part(value, date_style, locale)
        if time_style is None:
            return date_str
        time_str = _format_time_part(value, time_style, locale)
        formats = resolve_babel_locale(locale).datetime_formats
        combining = formats.get(date_style) or formats.get("medium") or "{1} {0}"
        return str(combining).format(time_str, date_str)

    formatted = _guard_datetime(value, render)
    return FormattedValue(PartType.DATETIME, value, formatted, "datetime", dict(options))


def _guard_datetime(value: date | time, render: Callable[[], str]) -> str:
    try:
        return render()
    except (ValueError, OverflowError, KeyError, AttributeError) as e:
        msg = f"Date/time formatting failed for '{value}': {e}"
        raise FormattingError(msg, fallback_value=value.isoformat()) from e


# ============================================================================
# STRINGS
# ============================================================================


def string_function(locale: str, operand: Any, options: Mapping[str, Any]) -> FormattedValue:  # noqa: ARG001
    """:string - the operand's string form; selects by exact string match."""
    if isinstance(operand, FormattedValue):
        text = operand.formatted
    elif operand is None:
        text = ""
    else:
        text = str(operand)
    return FormattedValue(PartType.STRING, text, text, "string", dict(options))


BUILTIN_FUNCTIONS: Mapping[str, MessageFunction] = {
    "string": string_function,
    "number": number_function,
    "integer": integer_function,
    "percent": percent_function,
    "currency": currency_function,
    "date": date_function,
    "time": time_function,
    "datetime": datetime_function,
    "unit": unit_function,
}


def format_default(locale: str, operand: Any) -> FormattedValue:
    """Format an unannotated placeholder value.

    Numbers format as :number, dates and datetimes as :datetime (date only
    for plain dates), everything else as :string.
    """
    if isinstance(operand, FormattedValue):
        return operand
    if isinstance(operand, (int, float, Decimal)) and not isinstance(operand, bool):
        return number_function(locale, operand, {})
    if isinstance(operand, (date, time)):
        return datetime_function(locale, operand, {})
    return string_function(locale, operand, {})


# ============================================================================
# SELECTION
# ============================================================================


def match_key(locale: str, selector: FormattedValue, key: str) -> int | None:
    """Rank how well a variant key matches a selector value.

    Returns:
        0 for an exact match, 1 for a plural/ordinal category match,
        None when the key does not match (the caller ranks '*' last)

    Examples:
        >>> one = number_function("en", 1, {})
        >>> match_key("en", one, "1"), match_key("en", one, "one"), match_key("en", one, "few")
        (0, 1, None)
    """
    if selector.kind is not PartType.NUMBER:
        return 0 if key == selector.formatted else None

    try:
        if Decimal(key) == selector.value:
            return 0
    except InvalidOperation:
        pass

    select = _str_option(selector.options, "select", "plural")
    if select == "exact":
        return None
    if select == "ordinal":
        category = select_ordinal_category(selector.value, locale)
    else:
        category = select_plural_category(selector.value, locale)
    return 1 if key == category else None
