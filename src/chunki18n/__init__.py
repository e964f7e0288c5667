"""chunki18n - chunked translation delivery with MessageFormat 2 templates.

Build time: extract every ``t()`` call site, map the bundler's chunks to
the keys they use and flatten the chunk import graph into a manifest.
Request time: resolve keys against per-locale compiled translations with a
configurable fallback policy and serve each chunk's translations as a
content-hashed, cache-forever payload.

Public API:
    i18n - Shared I18n engine (configure, set_translations, ...)
    t - Translate a key in the active request
    rich - Translate a key and render its markup tags to nodes
    get_locale - Locale of the active request
    I18n, I18nConfig - Engine class and its validated configuration
    compile_message - Compile an MF2 template for a locale
    request_context - Install an I18nContext for a request
    TranslationMeta - Call-site metadata (fallback, description, variables)

Exceptions:
    I18nError - Base exception class
    I18nConfigurationError - Invalid configure() input
    MissingTranslationError - Missing key under the throw policy
    ConsistencyError - Metadata drift under the error consistency level

Submodules:
    chunki18n.syntax - MF2 parser and AST
    chunki18n.extraction - Key store, extractor, manifest builder, hashes
    chunki18n.server - Chunk endpoint and Accept-Language detection
"""

from .diagnostics import (
    ConsistencyError,
    I18nConfigurationError,
    I18nError,
    MissingTranslationError,
)
from .enums import ConsistencyLevel, FallbackMode
from .meta import TranslationMeta, VariableDef
from .runtime import (
    I18n,
    I18nConfig,
    I18nContext,
    compile_message,
    get_locale,
    i18n,
    request_context,
    rich,
    run_with_context,
    t,
)

# Version information - Auto-populated from package metadata
# SINGLE SOURCE OF TRUTH: pyproject.toml [project] version
from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as _get_version

try:
    __version__ = _get_version("chunki18n")
except PackageNotFoundError:
    # Development mode: package not installed yet
    __version__ = "0.0.0+dev"

__all__ = [
    "ConsistencyError",
    "ConsistencyLevel",
    "FallbackMode",
    "I18n",
    "I18nConfig",
    "I18nConfigurationError",
    "I18nContext",
    "I18nError",
    "MissingTranslationError",
    "TranslationMeta",
    "VariableDef",
    "__version__",
    "compile_message",
    "get_locale",
    "i18n",
    "request_context",
    "rich",
    "run_with_context",
    "t",
]
