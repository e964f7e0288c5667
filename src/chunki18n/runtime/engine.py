"""I18n - runtime resolution engine.

One engine instance holds every locale-indexed layer for a process:

    raw        locale -> translations as supplied by ``set_translations``
    merged     raw plus manifest fallbacks for keys missing from raw
               (fallback policy only), computed lazily
    compiled   merged entries compiled to formatters, computed lazily
    hashes     chunk -> content hash, computed eagerly on every
               ``set_translations``
    scripts    bootstrap script per locale, computed lazily
    bodies     encoded chunk payload per (locale, chunk), computed lazily

Thread Safety:
    Many requests read concurrently; ``set_translations``, ``clear`` and
    ``configure`` write rarely. All layers sit behind one RWLock. A writer
    publishes new raw data, fresh hashes and the invalidation of every
    dependent layer in a single write section, so no reader can pair new
    raw data with a stale compiled layer.

    Lazy layers are computed outside the lock. Each locale carries a
    generation counter bumped by every write for that locale; a computed
    layer is stored only if the generation it was computed from is still
    current, so a slow reader never resurrects invalidated data.

Python 3.13+.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any

from chunki18n.constants import DEFAULT_CHUNK_PREFIX, DEFAULT_LOCALE
from chunki18n.diagnostics import I18nConfigurationError
from chunki18n.enums import FallbackMode
from chunki18n.extraction.hash import compute_all_chunk_hashes
from chunki18n.extraction.manifest import ManifestProvider
from chunki18n.extraction.types import ExtractionManifest
from chunki18n.meta import TranslationMeta, normalize_meta
from chunki18n.runtime.compiler import CompiledTranslation, compile_message, compile_translations
from chunki18n.runtime.context import I18nContext, get_context
from chunki18n.runtime.fallback import FallbackBehavior, apply_fallback, normalize_fallback
from chunki18n.runtime.rich_text import RichChild, TagHandler, parts_to_nodes
from chunki18n.runtime.rwlock import RWLock
from chunki18n.runtime.script import build_chunk_body, build_client_script

__all__ = ["I18n", "I18nConfig"]

logger = logging.getLogger(__name__)

_EMPTY: Mapping[str, str] = MappingProxyType({})
_EMPTY_MANIFEST = ExtractionManifest()


@dataclass(frozen=True, slots=True)
class I18nConfig:
    """Validated engine configuration.

    Attributes:
        locales: Supported locale identifiers (non-empty, unique, no
            surrounding whitespace)
        default_locale: Locale used outside requests (default: first of
            ``locales``)
        fallback: Policy for keys missing from a request's translations
        use_isolating: Wrap placeables in Unicode FSI/PDI marks
        chunk_prefix: URL path prefix of chunk payloads

    Raises:
        I18nConfigurationError: On any invalid field
    """

    locales: tuple[str, ...]
    default_locale: str | None = None
    fallback: FallbackBehavior = FallbackMode.FALLBACK
    use_isolating: bool = True
    chunk_prefix: str = DEFAULT_CHUNK_PREFIX

    def __post_init__(self) -> None:
        if isinstance(self.locales, str):
            msg = "i18n.configure(): locales must be a sequence of locale identifiers"
            raise I18nConfigurationError(msg)
        locales = tuple(self.locales)
        object.__setattr__(self, "locales", locales)

        if not locales:
            msg = "i18n.configure(): locales array is required and must not be empty"
            raise I18nConfigurationError(msg)
        for locale in locales:
            if not isinstance(locale, str):
                msg = f"i18n.configure(): locale {locale!r} must be a string"
                raise I18nConfigurationError(msg)
            if not locale:
                msg = "i18n.configure(): locale cannot be empty"
                raise I18nConfigurationError(msg)
            if locale != locale.strip():
                msg = f'i18n.configure(): locale "{locale}" has leading or trailing whitespace'
                raise I18nConfigurationError(msg)
        if len(set(locales)) != len(locales):
            msg = "i18n.configure(): locales array contains duplicates"
            raise I18nConfigurationError(msg)

        default = self.default_locale
        if default is not None:
            if not isinstance(default, str):
                msg = f"i18n.configure(): defaultLocale {default!r} must be a string"
                raise I18nConfigurationError(msg)
            if not default:
                msg = "i18n.configure(): defaultLocale cannot be empty"
                raise I18nConfigurationError(msg)
            if default != default.strip():
                msg = f'i18n.configure(): defaultLocale "{default}" has leading or trailing whitespace'
                raise I18nConfigurationError(msg)
            if default not in locales:
                msg = f'i18n.configure(): defaultLocale "{default}" is not in locales array'
                raise I18nConfigurationError(msg)

        try:
            object.__setattr__(self, "fallback", normalize_fallback(self.fallback))
        except ValueError as e:
            msg = f"i18n.configure(): unknown fallback policy {self.fallback!r}"
            raise I18nConfigurationError(msg) from e

    @property
    def resolved_default_locale(self) -> str:
        """``default_locale`` or the first configured locale."""
        return self.default_locale if self.default_locale is not None else self.locales[0]


class I18n:
    """Translation service for one process.

    Tests construct isolated instances; applications normally share the
    module-level instance in ``chunki18n.runtime.translate``.

    Example:
        >>> engine = I18n()
        >>> engine.configure(locales=["en", "de"], fallback="key")
        >>> engine.set_translations("de", {"cart.title": "Warenkorb"})
        >>> ctx = engine.create_context("de")
        >>> from chunki18n.runtime.context import request_context
        >>> with request_context(ctx):
        ...     engine.translate("cart.title")
        'Warenkorb'
    """

    __slots__ = (
        "_bodies",
        "_compiled",
        "_config",
        "_generations",
        "_hashes",
        "_lock",
        "_manifest_provider",
        "_merged",
        "_raw",
        "_scripts",
    )

    def __init__(self) -> None:
        """Create an unconfigured engine with empty caches."""
        self._config: I18nConfig | None = None
        self._manifest_provider: ManifestProvider | None = None
        self._lock = RWLock()
        self._generations: dict[str, int] = {}
        self._raw: dict[str, Mapping[str, str]] = {}
        self._merged: dict[str, Mapping[str, str]] = {}
        self._compiled: dict[str, Mapping[str, CompiledTranslation]] = {}
        self._hashes: dict[str, dict[str, str]] = {}
        self._scripts: dict[str, str] = {}
        self._bodies: dict[tuple[str, str], bytes] = {}

    def __repr__(self) -> str:
        locales = self._config.locales if self._config is not None else ()
        return f"I18n(locales={list(locales)!r}, loaded={sorted(self._raw)!r})"

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    def configure(
        self,
        config: I18nConfig | None = None,
        /,
        *,
        manifest: ManifestProvider | ExtractionManifest | None = None,
        **kwargs: Any,
    ) -> None:
        """Validate and install configuration.

        Accepts an I18nConfig or its fields as keywords. Reconfiguring keeps
        raw translations but rebuilds every derived layer.

        Args:
            config: Complete configuration [positional-only]
            manifest: Zero-argument callable returning the current
                ExtractionManifest (live in development), or a frozen
                manifest. Keeps the previous provider when omitted; an
                empty manifest is used if none was ever given.
            **kwargs: I18nConfig fields when ``config`` is omitted

        Raises:
            I18nConfigurationError: On invalid configuration
        """
        if config is None:
            try:
                config = I18nConfig(**kwargs)
            except TypeError as e:
                msg = f"i18n.configure(): {e}"
                raise I18nConfigurationError(msg) from e
        elif kwargs:
            msg = "i18n.configure(): pass either an I18nConfig or keyword fields, not both"
            raise I18nConfigurationError(msg)

        provider: ManifestProvider | None
        if isinstance(manifest, ExtractionManifest):
            frozen = manifest
            provider = lambda: frozen  # noqa: E731
        else:
            provider = manifest

        if provider is None:
            provider = self._manifest_provider or (lambda: _EMPTY_MANIFEST)
        chunks = provider().chunks
        with self._lock.read():
            raw = dict(self._raw)
        hashes: dict[str, dict[str, str]] = {}
        if chunks:
            hashes = {
                locale: compute_all_chunk_hashes(translations, chunks)
                for locale, translations in raw.items()
            }

        # Derived layers depend on the fallback policy, isolation and
        # manifest; they are dropped in the same write as the new config.
        with self._lock.write():
            self._config = config
            self._manifest_provider = provider
            for locale, translations in self._raw.items():
                self._invalidate(locale)
                if not chunks:
                    continue
                if translations is not raw.get(locale):
                    # Published after the snapshot above
                    hashes[locale] = compute_all_chunk_hashes(translations, chunks)
                self._hashes[locale] = hashes[locale]

        logger.info(
            "i18n configured: locales=%s, default=%s, fallback=%s",
            ",".join(config.locales),
            config.resolved_default_locale,
            config.fallback,
        )

    def is_configured(self) -> bool:
        """Whether ``configure`` has succeeded."""
        return self._config is not None

    def get_config(self) -> I18nConfig:
        """Active configuration.

        Raises:
            I18nConfigurationError: If not configured
        """
        config = self._config
        if config is None:
            msg = "i18n not configured. Call i18n.configure() first."
            raise I18nConfigurationError(msg)
        return config

    def get_manifest(self) -> ExtractionManifest:
        """Current extraction manifest (keys, chunks, imports).

        Raises:
            I18nConfigurationError: If not configured
        """
        provider = self._manifest_provider
        if provider is None:
            msg = "i18n manifest not initialized. Call i18n.configure() first."
            raise I18nConfigurationError(msg)
        return provider()

    def _manifest_or_empty(self) -> ExtractionManifest:
        provider = self._manifest_provider
        return provider() if provider is not None else _EMPTY_MANIFEST

    def _use_isolating(self) -> bool:
        config = self._config
        return config.use_isolating if config is not None else True

    # ------------------------------------------------------------------
    # Translation layers
    # ------------------------------------------------------------------

    def _invalidate(self, locale: str) -> None:
        # Write lock held
        self._generations[locale] = self._generations.get(locale, 0) + 1
        self._merged.pop(locale, None)
        self._compiled.pop(locale, None)
        self._hashes.pop(locale, None)
        self._scripts.pop(locale, None)
        for cache_key in [k for k in self._bodies if k[0] == locale]:
            del self._bodies[cache_key]

    def set_translations(self, locale: str, raw: Mapping[str, str]) -> None:
        """Publish the raw translations of a locale.

        Invalidates every derived layer of the locale and recomputes its
        chunk hashes in the same step.

        Raises:
            I18nConfigurationError: If not configured
        """
        published: Mapping[str, str] = MappingProxyType(dict(raw))
        chunks = self.get_manifest().chunks
        hashes = compute_all_chunk_hashes(published, chunks) if chunks else None

        with self._lock.write():
            self._invalidate(locale)
            self._raw[locale] = published
            if hashes is not None:
                self._hashes[locale] = hashes

        logger.debug(
            "Translations set for %s: %d keys, %d chunk hashes",
            locale,
            len(published),
            len(hashes) if hashes else 0,
        )

    def get_translations(self, locale: str) -> Mapping[str, str]:
        """Raw translations merged with manifest fallbacks (read-only).

        Fallback texts are merged only under the ``fallback`` policy; other
        policies see exactly the raw translations.
        """
        with self._lock.read():
            cached = self._merged.get(locale)
            if cached is not None:
                return cached
            raw = self._raw.get(locale, _EMPTY)
            generation = self._generations.get(locale, 0)
            config = self._config

        merged: Mapping[str, str] = raw
        policy = config.fallback if config is not None else FallbackMode.FALLBACK
        if policy is FallbackMode.FALLBACK:
            keys = self._manifest_or_empty().keys
            missing = {
                item.key: item.meta.fallback
                for item in keys
                if item.key not in raw and item.meta.fallback
            }
            if missing:
                merged = MappingProxyType({**raw, **missing})

        with self._lock.write():
            if self._generations.get(locale, 0) == generation:
                merged = self._merged.setdefault(locale, merged)
        logger.debug("Merged translations cached for %s: %d keys", locale, len(merged))
        return merged

    def get_compiled_translations(self, locale: str) -> Mapping[str, CompiledTranslation]:
        """Compiled formatters for every merged translation (read-only)."""
        with self._lock.read():
            cached = self._compiled.get(locale)
            if cached is not None:
                return cached
            generation = self._generations.get(locale, 0)

        compiled: Mapping[str, CompiledTranslation] = MappingProxyType(
            compile_translations(
                locale, self.get_translations(locale), use_isolating=self._use_isolating()
            )
        )

        with self._lock.write():
            if self._generations.get(locale, 0) == generation:
                compiled = self._compiled.setdefault(locale, compiled)
        logger.debug("Compiled translations cached for %s: %d keys", locale, len(compiled))
        return compiled

    def get_hashes(self, locale: str) -> dict[str, str]:
        """Chunk -> content hash for a locale (empty without chunks)."""
        with self._lock.read():
            return dict(self._hashes.get(locale, {}))

    def get_chunk_body(self, locale: str, chunk_name: str) -> bytes | None:
        """Encoded payload of one chunk, or None for an unknown chunk.

        Raises:
            I18nConfigurationError: If not configured
        """
        keys = self.get_manifest().chunks.get(chunk_name)
        if keys is None:
            return None

        cache_key = (locale, chunk_name)
        with self._lock.read():
            cached = self._bodies.get(cache_key)
            if cached is not None:
                return cached
            generation = self._generations.get(locale, 0)

        body = build_chunk_body(chunk_name, self.get_translations(locale), keys)

        with self._lock.write():
            if self._generations.get(locale, 0) == generation:
                body = self._bodies.setdefault(cache_key, body)
        return body

    def get_client_script(self, locale: str) -> str:
        """Inline bootstrap script for pages rendered in a locale.

        Raises:
            I18nConfigurationError: If not configured
        """
        with self._lock.read():
            cached = self._scripts.get(locale)
            if cached is not None:
                return cached
            generation = self._generations.get(locale, 0)

        manifest = self.get_manifest()
        if manifest.chunks:
            script = build_client_script(
                locale, hashes=self.get_hashes(locale), imports=manifest.imports
            )
        else:
            script = build_client_script(
                locale, hashes={}, imports={}, translations=self.get_translations(locale)
            )

        with self._lock.write():
            if self._generations.get(locale, 0) == generation:
                script = self._scripts.setdefault(locale, script)
        return script

    def clear(self, locales: str | Iterable[str] | None = None) -> None:
        """Drop every layer of the given locale(s), or of all configured ones."""
        if locales is None:
            targets = list(self._config.locales) if self._config is not None else []
        elif isinstance(locales, str):
            targets = [locales]
        else:
            targets = list(locales)

        with self._lock.write():
            for locale in targets:
                self._invalidate(locale)
                self._raw.pop(locale, None)
        logger.debug("Cleared translations for %s", ",".join(targets) or "<none>")

    # ------------------------------------------------------------------
    # Request-time resolution
    # ------------------------------------------------------------------

    def create_context(self, locale: str) -> I18nContext:
        """Request context for a locale, sharing the compiled layer.

        Raises:
            I18nConfigurationError: If not configured
        """
        while True:
            config = self.get_config()
            translations = self.get_compiled_translations(locale)
            # Retry if a reconfigure landed between the two reads
            if self._config is config:
                return I18nContext(
                    locale=locale, translations=translations, fallback=config.fallback
                )

    def get_locale(self) -> str:
        """Context locale, else the configured default, else ``"en"``."""
        context = get_context()
        if context is not None:
            return context.locale
        config = self._config
        return config.resolved_default_locale if config is not None else DEFAULT_LOCALE

    def _resolve(self, key: str, meta: TranslationMeta) -> CompiledTranslation:
        context = get_context()
        if context is None:
            # Outside any request: compile the call-site text under the
            # default locale; the compiled-message cache keys it.
            return compile_message(
                self.get_locale(), meta.fallback or key, use_isolating=self._use_isolating()
            )

        compiled = context.lookup(key)
        if compiled is None:
            text = apply_fallback(key, meta, context.fallback)
            compiled = compile_message(context.locale, text, use_isolating=self._use_isolating())
            context.remember(key, compiled)
        return compiled

    def translate(
        self,
        key: str,
        meta: TranslationMeta | str | None = None,
        values: Mapping[str, Any] | None = None,
    ) -> str:
        """Format the translation of key for the active request.

        Args:
            key: Translation key
            meta: Call-site fallback text or TranslationMeta
            values: Variables referenced by the template

        Returns:
            Formatted string

        Raises:
            MissingTranslationError: Missing key under the ``throw`` policy
        """
        return self._resolve(key, normalize_meta(meta))(values)

    def rich(
        self,
        key: str,
        meta: TranslationMeta | str | None = None,
        components: Mapping[str, TagHandler] | None = None,
        values: Mapping[str, Any] | None = None,
    ) -> list[RichChild]:
        """Resolve key like ``translate`` and render its markup to nodes.

        Raises:
            MissingTranslationError: Missing key under the ``throw`` policy
        """
        compiled = self._resolve(key, normalize_meta(meta))
        return parts_to_nodes(compiled.format_to_parts(values), components)
