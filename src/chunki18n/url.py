"""Chunk naming and chunk payload URLs.

Shared by the build-time manifest builder (which names chunks) and the
request-time chunk endpoint (which serves them), so both halves agree on
one naming scheme.

Python 3.13+. Zero external dependencies.
"""

from chunki18n.constants import CHUNK_EXTENSION, DEFAULT_CHUNK_PREFIX

__all__ = ["build_chunk_url", "chunk_id_to_name", "component_url_to_chunk_name"]


def chunk_id_to_name(chunk_id: str) -> str:
    """Convert a bundler chunk ID or file name to a chunk name.

    Strips directories and the ``.js`` extension.

    Examples:
        >>> chunk_id_to_name("_astro/Cart.C_sxtxbl.js")
        'Cart.C_sxtxbl'
        >>> chunk_id_to_name("Cart.C_sxtxbl")
        'Cart.C_sxtxbl'
    """
    name = chunk_id.rsplit("/", 1)[-1]
    return name.removesuffix(CHUNK_EXTENSION)


def component_url_to_chunk_name(component_url: str) -> str:
    """Chunk name of a component script URL.

    Example:
        >>> component_url_to_chunk_name("/_astro/Cart.C_sxtxbl.js")
        'Cart.C_sxtxbl'
    """
    return chunk_id_to_name(component_url.split("?", 1)[0])


def build_chunk_url(
    locale: str, chunk_id: str, content_hash: str, prefix: str = DEFAULT_CHUNK_PREFIX
) -> str:
    """URL path of a chunk's translation payload.

    Example:
        >>> build_chunk_url("en", "_astro/Cart.C_sxtxbl", "bzh6rx01")
        '/_i18n/en/Cart.C_sxtxbl.bzh6rx01.js'
    """
    return f"{prefix.rstrip('/')}/{locale}/{chunk_id_to_name(chunk_id)}.{content_hash}{CHUNK_EXTENSION}"
