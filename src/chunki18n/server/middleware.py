"""Chunk payload endpoint.

Framework-neutral: ``handle_chunk_request`` maps a request path to a
ChunkResponse (or None when the path belongs to someone else) and the
host framework turns that into its own response object. Mount it before
session or auth handling; chunk payloads are static and public.

Path scheme::

    {prefix}/{locale}/{chunk_name}.{hash}.js

The hash segment only busts caches; the current payload is served for
any hash value.

Python 3.13+.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from chunki18n.constants import CHUNK_EXTENSION, DEFAULT_CHUNK_PREFIX, IMMUTABLE_CACHE_CONTROL
from chunki18n.runtime.engine import I18n

__all__ = ["ChunkResponse", "handle_chunk_request", "parse_chunk_path"]

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ChunkResponse:
    """HTTP response for a chunk request."""

    status: int
    body: bytes
    headers: dict[str, str] = field(default_factory=dict)


def parse_chunk_path(pathname: str, prefix: str = DEFAULT_CHUNK_PREFIX) -> tuple[str, str] | None:
    """Split a chunk URL path into (locale, chunk_name).

    Returns:
        None if the path is not a chunk payload path

    Examples:
        >>> parse_chunk_path("/_i18n/de/Cart.C_sxtxbl.bzh6rx01.js")
        ('de', 'Cart.C_sxtxbl')
        >>> parse_chunk_path("/_i18n/de/Cart.js") is None
        True
    """
    base = prefix.rstrip("/") + "/"
    if not pathname.startswith(base):
        return None
    locale, slash, rest = pathname[len(base) :].partition("/")
    if not slash or not locale or not rest.endswith(CHUNK_EXTENSION):
        return None
    chunk_name, dot, _hash = rest.removesuffix(CHUNK_EXTENSION).rpartition(".")
    if not dot or not chunk_name:
        return None
    return locale, chunk_name


def _not_found(what: str, name: str) -> ChunkResponse:
    return ChunkResponse(
        status=404,
        body=f"/* {what} not found: {name} */".encode(),
        headers={"Content-Type": "application/javascript"},
    )


def handle_chunk_request(engine: I18n, pathname: str) -> ChunkResponse | None:
    """Serve the translation payload of one chunk.

    Args:
        engine: Configured engine
        pathname: Request path (no query string)

    Returns:
        200 with the payload, 404 for an unknown locale or chunk, or None
        when pathname is not under the engine's chunk prefix

    Raises:
        I18nConfigurationError: If the engine is not configured
    """
    config = engine.get_config()
    parsed = parse_chunk_path(pathname, config.chunk_prefix)
    if parsed is None:
        return None
    locale, chunk_name = parsed

    if locale not in config.locales:
        logger.debug("Chunk request for unknown locale %s", locale)
        return _not_found("locale", locale)

    body = engine.get_chunk_body(locale, chunk_name)
    if body is None:
        logger.debug("Chunk request for unknown chunk %s", chunk_name)
        return _not_found("chunk", chunk_name)

    return ChunkResponse(
        status=200,
        body=body,
        headers={
            "Content-Type": "text/javascript; charset=utf-8",
            "Content-Length": str(len(body)),
            "Cache-Control": IMMUTABLE_CACHE_CONTROL,
        },
    )
