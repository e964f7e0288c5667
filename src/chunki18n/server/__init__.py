"""Request-side helpers: chunk endpoint and locale detection.

Python 3.13+.
"""

from .locale import detect_locale, parse_accept_language
from .middleware import ChunkResponse, handle_chunk_request, parse_chunk_path

__all__ = [
    "ChunkResponse",
    "detect_locale",
    "handle_chunk_request",
    "parse_accept_language",
    "parse_chunk_path",
]
