"""CLDR plural rules implementation using Babel.

Provides plural and ordinal category selection for all locales using
Babel's CLDR data.

Python 3.13+. Depends on Babel for CLDR data.

Reference: https://www.unicode.org/cldr/charts/47/supplemental/language_plural_rules.html
"""

from decimal import Decimal

from chunki18n.locale_utils import resolve_babel_locale

__all__ = ["select_ordinal_category", "select_plural_category"]


def select_plural_category(n: int | float | Decimal, locale: str) -> str:
    """Select CLDR cardinal plural category for number.

    Args:
        n: Number to categorize
        locale: Locale code (e.g., "lv_LV", "en-US", "ar-SA")

    Returns:
        Plural category: "zero", "one", "two", "few", "many", or "other"

    Examples:
        >>> select_plural_category(1, "en")
        'one'
        >>> select_plural_category(5, "ru")
        'many'
        >>> select_plural_category(42, "ja")
        'other'
    """
    return resolve_babel_locale(locale).plural_form(n)


def select_ordinal_category(n: int | float | Decimal, locale: str) -> str:
    """Select CLDR ordinal category for number.

    Examples:
        >>> select_ordinal_category(2, "en")
        'two'
        >>> select_ordinal_category(11, "en")
        'other'
    """
    return resolve_babel_locale(locale).ordinal_form(n)
