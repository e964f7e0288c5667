"""Shared constants for chunki18n.

Centralizes configuration constants used across the syntax, runtime,
extraction and server packages. Placing them here avoids circular imports
between the build-time and request-time halves of the library.

Constants are grouped by domain:
- Depth limits: Recursion protection for the message parser
- Cache limits: Memory bounds for caching subsystems
- Chunk delivery: URL scheme and hashing for translation payloads

Python 3.13+. Zero external dependencies.
"""

# ruff: noqa: RUF022 - __all__ organized by category for readability
__all__ = [
    # Depth limits
    "MAX_DEPTH",
    # Cache limits
    "DEFAULT_CACHE_SIZE",
    "MAX_LOCALE_CACHE_SIZE",
    # Locales
    "DEFAULT_LOCALE",
    "FALLBACK_BABEL_LOCALE",
    # Chunk delivery
    "CHUNK_EXTENSION",
    "CHUNK_HASH_LENGTH",
    "CLIENT_GLOBAL",
    "DEFAULT_CHUNK_PREFIX",
    "IMMUTABLE_CACHE_CONTROL",
    # Extraction
    "DEFAULT_TRANSLATE_FUNCTIONS",
    # Logging
    "LOG_TRUNCATE_WARNING",
]

# ============================================================================
# DEPTH LIMITS
# ============================================================================

# Maximum nesting for markup frames and declaration chains.
# Real messages rarely exceed 3 levels; anything past 100 is malformed input.
MAX_DEPTH: int = 100

# ============================================================================
# CACHE LIMITS
# ============================================================================

# Default maximum compiled messages kept per process.
# Each entry is one (locale, template) pair; a typical UI has a few thousand.
DEFAULT_CACHE_SIZE: int = 4096

# Maximum cached Babel Locale objects.
MAX_LOCALE_CACHE_SIZE: int = 128

# ============================================================================
# LOCALES
# ============================================================================

# Locale used when translating outside any request and before configure().
DEFAULT_LOCALE: str = "en"

# CLDR data used when a configured locale is unknown to Babel.
FALLBACK_BABEL_LOCALE: str = "en_US"

# ============================================================================
# CHUNK DELIVERY
# ============================================================================

# Path prefix under which per-chunk translation payloads are served.
DEFAULT_CHUNK_PREFIX: str = "/_i18n"

# Extension of chunk payload files (and of bundler output chunks).
CHUNK_EXTENSION: str = ".js"

# Length of the hex content hash used for cache busting.
CHUNK_HASH_LENGTH: int = 8

# Client-side global that receives translations.
CLIENT_GLOBAL: str = "window.__i18n__"

# Chunk payloads are content addressed, so they never change under one URL.
IMMUTABLE_CACHE_CONTROL: str = "public, max-age=31536000, immutable"

# ============================================================================
# EXTRACTION
# ============================================================================

# Function names recognized as translation call sites.
DEFAULT_TRANSLATE_FUNCTIONS: tuple[str, ...] = ("t",)

# ============================================================================
# LOGGING
# ============================================================================

# Templates longer than this are truncated in warnings.
LOG_TRUNCATE_WARNING: int = 100
