"""Accept-Language negotiation against configured locales.

Python 3.13+. External dependency: Babel.
"""

from __future__ import annotations

from collections.abc import Iterable

from babel.core import negotiate_locale

__all__ = ["detect_locale", "parse_accept_language"]


def parse_accept_language(header: str) -> list[str]:
    """Language tags of an Accept-Language header, best first.

    Entries with ``q=0``, an unparsable weight, or the ``*`` wildcard are
    dropped. Equal weights keep header order.

    Example:
        >>> parse_accept_language("de-CH;q=0.8, fr, en;q=0.9, *;q=0.1")
        ['fr', 'en', 'de-CH']
    """
    weighted: list[tuple[float, str]] = []
    for entry in header.split(","):
        tag, *params = entry.strip().split(";")
        tag = tag.strip()
        if not tag or tag == "*":
            continue
        quality = 1.0
        for param in params:
            name, _, value = param.strip().partition("=")
            if name.strip().lower() == "q":
                try:
                    quality = float(value)
                except ValueError:
                    quality = 0.0
        if quality > 0:
            weighted.append((quality, tag))
    weighted.sort(key=lambda item: item[0], reverse=True)
    return [tag for _, tag in weighted]


def detect_locale(accept_language: str | None, locales: Iterable[str]) -> str | None:
    """Best configured locale for an Accept-Language header.

    Each preferred tag is tried in weight order against the configured
    locales: exact match (case-insensitive), then Babel's locale aliases,
    then the primary language subtag.

    Args:
        accept_language: Raw header value (None or empty: no preference)
        locales: Configured locale identifiers

    Returns:
        The matching configured locale as written in ``locales``, or None

    Example:
        >>> detect_locale("de-CH,de;q=0.9,en;q=0.8", ["en", "de"])
        'de'
        >>> detect_locale("ja", ["en", "de"]) is None
        True
    """
    if not accept_language:
        return None
    canonical = {locale.replace("_", "-").lower(): locale for locale in locales}
    preferred = [tag.replace("_", "-").lower() for tag in parse_accept_language(accept_language)]
    match = negotiate_locale(preferred, list(canonical), sep="-")
    if match is None:
        return None
    return canonical.get(match.lower())
