"""Tests for the I18n runtime engine.

Covers configuration validation, layered caches and their invalidation,
request-context resolution under each fallback policy, client payloads,
and concurrent readers during translation updates.
"""

import logging
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass

import pytest

from chunki18n import (
    FallbackMode,
    I18n,
    I18nConfig,
    I18nConfigurationError,
    MissingTranslationError,
    TranslationMeta,
    get_locale,
    request_context,
    run_with_context,
    t,
)
from chunki18n.extraction import ExtractedKey, ExtractionManifest, compute_chunk_hash
from chunki18n.runtime.context import get_context

MANIFEST = ExtractionManifest(
    keys=(
        ExtractedKey("greet", TranslationMeta("Hello {$name}"), ("app.py:1",)),
        ExtractedKey("cart.title", TranslationMeta("Cart"), ("cart.py:1",)),
        ExtractedKey("cart.total", TranslationMeta("Total"), ("cart.py:2",)),
        ExtractedKey("price", TranslationMeta("Price"), ("price.py:1",)),
    ),
    chunks={"Cart.C1": ("cart.title", "cart.total"), "Price.P1": ("price",)},
    imports={"Cart.C1": ("Price.P1",)},
)


def make_engine(
    manifest: ExtractionManifest | None = MANIFEST, **config: object
) -> I18n:
    engine = I18n()
    config.setdefault("locales", ["en", "de"])
    config.setdefault("use_isolating", False)
    engine.configure(manifest=manifest, **config)
    return engine


@dataclass(frozen=True)
class Tagged:
    children: list[object]


# ============================================================================
# CONFIGURATION
# ============================================================================


class TestConfiguration:
    """configure() validation and state."""

    @pytest.mark.parametrize(
        ("kwargs", "message"),
        [
            ({"locales": []}, "locales array is required and must not be empty"),
            ({"locales": ["en", ""]}, "locale cannot be empty"),
            ({"locales": [" en"]}, 'locale " en" has leading or trailing whitespace'),
            ({"locales": ["en", "en"]}, "locales array contains duplicates"),
            ({"locales": ["en"], "default_locale": ""}, "defaultLocale cannot be empty"),
            ({"locales": ["en"], "default_locale": "en "}, "has leading or trailing whitespace"),
            ({"locales": ["en"], "default_locale": "de"}, 'defaultLocale "de" is not in locales array'),
            ({"locales": ["en"], "fallback": "loud"}, "unknown fallback policy"),
            ({"locales": "en"}, "must be a sequence"),
            ({"locales": ["en", 1]}, "locale 1 must be a string"),
            ({"locales": ["en"], "default_locale": 1}, "defaultLocale 1 must be a string"),
            ({"locales": ["en"], "bogus": 1}, "bogus"),
            ({}, "locales"),
        ],
    )
    def test_invalid_config(self, kwargs: dict[str, object], message: str) -> None:
        """Each invalid configuration raises with a descriptive message."""
        engine = I18n()
        with pytest.raises(I18nConfigurationError) as exc_info:
            engine.configure(**kwargs)
        assert message in str(exc_info.value)
        assert str(exc_info.value).startswith("i18n.configure():")
        assert not engine.is_configured()

    def test_configuration_error_is_value_error(self) -> None:
        """Callers may catch ValueError."""
        with pytest.raises(ValueError):
            I18nConfig(locales=())

    def test_defaults(self) -> None:
        """Default locale is the first locale; fallback policy normalized."""
        config = I18nConfig(locales=["en", "de"], fallback="key")
        assert config.locales == ("en", "de")
        assert config.resolved_default_locale == "en"
        assert config.fallback is FallbackMode.KEY
        assert config.use_isolating is True
        assert config.chunk_prefix == "/_i18n"

    def test_config_object_and_kwargs_exclusive(self) -> None:
        """Passing both forms is rejected."""
        with pytest.raises(I18nConfigurationError, match="not both"):
            I18n().configure(I18nConfig(locales=["en"]), locales=["de"])

    def test_config_object(self) -> None:
        """A prebuilt config is installed as is."""
        engine = I18n()
        config = I18nConfig(locales=["fr"])
        engine.configure(config)
        assert engine.get_config() is config
        assert engine.get_manifest() == ExtractionManifest()

    def test_unconfigured(self) -> None:
        """Operations needing configuration raise."""
        engine = I18n()
        assert not engine.is_configured()
        with pytest.raises(I18nConfigurationError, match="not configured"):
            engine.get_config()
        with pytest.raises(I18nConfigurationError, match="manifest not initialized"):
            engine.get_manifest()
        with pytest.raises(I18nConfigurationError):
            engine.set_translations("en", {})
        with pytest.raises(I18nConfigurationError):
            engine.create_context("en")

    def test_configure_logs(self, caplog: pytest.LogCaptureFixture) -> None:
        """Successful configuration is logged at info."""
        with caplog.at_level(logging.INFO, logger="chunki18n.runtime.engine"):
            make_engine()
        assert "i18n configured: locales=en,de, default=en, fallback=fallback" in caplog.text

    def test_live_manifest_provider(self) -> None:
        """A callable manifest is consulted on every use."""
        current = [ExtractionManifest()]
        engine = I18n()
        engine.configure(locales=["en"], manifest=lambda: current[0])
        assert engine.get_manifest().chunks == {}
        current[0] = MANIFEST
        assert engine.get_manifest() is MANIFEST

    def test_reconfigure_keeps_manifest_and_raw(self) -> None:
        """Reconfiguring without a manifest keeps the previous one and rebuilds layers."""
        engine = make_engine(fallback="key")
        engine.set_translations("de", {"cart.title": "Warenkorb"})
        assert "greet" not in engine.get_translations("de")

        engine.configure(locales=["en", "de"], fallback="fallback", use_isolating=False)
        assert engine.get_manifest() is MANIFEST
        assert engine.get_translations("de")["greet"] == "Hello {$name}"
        assert engine.get_translations("de")["cart.title"] == "Warenkorb"

    def test_reconfigure_rehashes_for_new_manifest(self) -> None:
        """Hashes follow a manifest swapped in by configure()."""
        engine = make_engine()
        engine.set_translations("de", {"cart.title": "Warenkorb", "price": "Preis"})
        assert set(engine.get_hashes("de")) == {"Cart.C1", "Price.P1"}

        swapped = ExtractionManifest(chunks={"Price.P1": ("price",)})
        engine.configure(locales=["en", "de"], manifest=swapped)
        assert engine.get_hashes("de") == {
            "Price.P1": compute_chunk_hash({"cart.title": "Warenkorb", "price": "Preis"}, ["price"])
        }

        engine.configure(locales=["en", "de"], manifest=ExtractionManifest())
        assert engine.get_hashes("de") == {}


# ============================================================================
# LAYERS
# ============================================================================


class TestTranslationLayers:
    """Raw, merged, compiled and hash layers."""

    def test_merged_under_fallback_policy(self) -> None:
        """Manifest fallbacks fill keys missing from raw."""
        engine = make_engine()
        engine.set_translations("de", {"cart.title": "Warenkorb"})
        merged = engine.get_translations("de")
        assert merged["cart.title"] == "Warenkorb"
        assert merged["cart.total"] == "Total"
        assert merged["greet"] == "Hello {$name}"

    @pytest.mark.parametrize("policy", ["key", "throw"])
    def test_raw_only_under_other_policies(self, policy: str) -> None:
        """KEY and THROW see exactly the raw translations."""
        engine = make_engine(fallback=policy)
        engine.set_translations("de", {"cart.title": "Warenkorb"})
        assert dict(engine.get_translations("de")) == {"cart.title": "Warenkorb"}

    def test_empty_translation_is_not_overridden(self) -> None:
        """A key present in raw keeps its value even when empty."""
        engine = make_engine()
        engine.set_translations("de", {"cart.title": ""})
        assert engine.get_translations("de")["cart.title"] == ""

    def test_layers_are_read_only_and_cached(self) -> None:
        """Repeated reads return the same read-only mapping."""
        engine = make_engine()
        engine.set_translations("de", {"a": "A"})
        first = engine.get_translations("de")
        assert engine.get_translations("de") is first
        assert engine.get_compiled_translations("de") is engine.get_compiled_translations("de")
        with pytest.raises(TypeError):
            first["a"] = "B"  # type: ignore[index]

    def test_set_translations_copies_input(self) -> None:
        """Mutating the caller's dict after publishing has no effect."""
        engine = make_engine(fallback="key")
        source = {"a": "A"}
        engine.set_translations("de", source)
        source["a"] = "changed"
        assert engine.get_translations("de")["a"] == "A"

    def test_set_translations_invalidates(self) -> None:
        """New raw data replaces every derived layer."""
        engine = make_engine()
        engine.set_translations("de", {"cart.title": "Warenkorb"})
        compiled = engine.get_compiled_translations("de")
        script = engine.get_client_script("de")
        body = engine.get_chunk_body("de", "Cart.C1")

        engine.set_translations("de", {"cart.title": "Einkaufswagen"})
        assert engine.get_compiled_translations("de") is not compiled
        assert engine.get_compiled_translations("de")["cart.title"]() == "Einkaufswagen"
        assert engine.get_client_script("de") != script
        assert engine.get_chunk_body("de", "Cart.C1") != body

    def test_other_locales_untouched(self) -> None:
        """Writing one locale keeps the other's layers."""
        engine = make_engine()
        engine.set_translations("en", {"a": "A"})
        english = engine.get_compiled_translations("en")
        engine.set_translations("de", {"a": "Ä"})
        assert engine.get_compiled_translations("en") is english

    def test_hashes_cover_raw_chunk_keys(self) -> None:
        """Hashes are computed per chunk from the raw translations."""
        engine = make_engine()
        raw = {"cart.title": "Warenkorb", "price": "Preis"}
        engine.set_translations("de", raw)
        assert engine.get_hashes("de") == {
            "Cart.C1": compute_chunk_hash(raw, ("cart.title", "cart.total")),
            "Price.P1": compute_chunk_hash(raw, ("price",)),
        }

    def test_hashes_change_only_with_chunk_content(self) -> None:
        """Editing one chunk's key leaves the other chunk's hash alone."""
        engine = make_engine()
        engine.set_translations("de", {"cart.title": "A", "price": "P"})
        before = engine.get_hashes("de")
        engine.set_translations("de", {"cart.title": "B", "price": "P"})
        after = engine.get_hashes("de")
        assert before["Cart.C1"] != after["Cart.C1"]
        assert before["Price.P1"] == after["Price.P1"]

    def test_no_hashes_without_chunks(self) -> None:
        """A manifest without chunks yields no hashes."""
        engine = make_engine(manifest=None)
        engine.set_translations("en", {"a": "A"})
        assert engine.get_hashes("en") == {}

    def test_clear_one_locale(self) -> None:
        """clear drops raw data and derived layers of the named locale."""
        engine = make_engine(fallback="key")
        engine.set_translations("en", {"a": "A"})
        engine.set_translations("de", {"a": "Ä"})
        engine.clear("de")
        assert dict(engine.get_translations("de")) == {}
        assert engine.get_hashes("de") == {}
        assert dict(engine.get_translations("en")) == {"a": "A"}

    def test_clear_all(self) -> None:
        """clear() with no argument drops every configured locale."""
        engine = make_engine(fallback="key")
        engine.set_translations("en", {"a": "A"})
        engine.set_translations("de", {"a": "Ä"})
        engine.clear()
        assert dict(engine.get_translations("en")) == {}
        assert dict(engine.get_translations("de")) == {}


# ============================================================================
# CLIENT PAYLOADS
# ============================================================================


class TestClientPayloads:
    """Chunk bodies and bootstrap scripts."""

    def test_chunk_body_includes_merged_fallbacks(self) -> None:
        """Bodies serve the merged layer for the chunk's keys."""
        engine = make_engine()
        engine.set_translations("de", {"cart.title": "Warenkorb"})
        body = engine.get_chunk_body("de", "Cart.C1")
        assert body is not None
        assert b'{"cart.title":"Warenkorb","cart.total":"Total"}' in body
        assert engine.get_chunk_body("de", "Cart.C1") is body

    def test_unknown_chunk(self) -> None:
        """Chunks missing from the manifest have no body."""
        assert make_engine().get_chunk_body("de", "Nope.X") is None

    def test_client_script_chunk_mode(self) -> None:
        """With chunks, the script carries hashes and imports only."""
        engine = make_engine()
        engine.set_translations("de", {"cart.title": "Warenkorb"})
        hashes = engine.get_hashes("de")
        script = engine.get_client_script("de")
        assert script == (
            '(()=>{var a="Cart.C1",b="Price.P1";'
            f'window.__i18n__={{locale:"de",hashes:{{[a]:"{hashes["Cart.C1"]}",[b]:"{hashes["Price.P1"]}"}},'
            "imports:{[a]:[b]},translations:{}};})();"
        )
        assert engine.get_client_script("de") is script

    def test_client_script_inline_mode(self) -> None:
        """Without chunks, every translation is inlined."""
        engine = make_engine(manifest=None)
        engine.set_translations("en", {"a": "A"})
        assert engine.get_client_script("en") == (
            'window.__i18n__={"locale":"en","hashes":{},"imports":{},"translations":{"a":"A"}};'
        )


# ============================================================================
# REQUEST-TIME RESOLUTION
# ============================================================================


class TestResolution:
    """translate() and rich() inside and outside request contexts."""

    def test_translation_found(self) -> None:
        """Compiled translation is formatted with values."""
        engine = make_engine()
        engine.set_translations("de", {"greet": "Hallo {$name}"})
        with request_context(engine.create_context("de")):
            assert engine.translate("greet", values={"name": "Sam"}) == "Hallo Sam"
            assert engine.get_locale() == "de"

    def test_fallback_policy_uses_manifest_text(self) -> None:
        """Missing key renders the manifest fallback under FALLBACK."""
        engine = make_engine()
        engine.set_translations("de", {})
        with request_context(engine.create_context("de")):
            assert engine.translate("greet", values={"name": "Sam"}) == "Hello Sam"

    def test_fallback_policy_uses_call_site_text(self) -> None:
        """Keys unknown to the manifest fall back to the call-site text, then the key."""
        engine = make_engine()
        with request_context(engine.create_context("de")):
            assert engine.translate("new.key", "Brand new") == "Brand new"
            assert engine.translate("other.key") == "other.key"

    def test_key_policy(self) -> None:
        """KEY renders the key itself."""
        engine = make_engine(fallback="key")
        engine.set_translations("de", {})
        with request_context(engine.create_context("de")):
            assert engine.translate("greet", "Hello {$name}", {"name": "Sam"}) == "greet"

    def test_throw_policy(self) -> None:
        """THROW raises MissingTranslationError naming the key."""
        engine = make_engine(fallback="throw")
        engine.set_translations("de", {})
        with request_context(engine.create_context("de")):
            with pytest.raises(MissingTranslationError, match="Missing translation for key: greet") as exc_info:
                engine.translate("greet")
        assert exc_info.value.key == "greet"

    def test_custom_policy(self) -> None:
        """A callable policy receives the key and normalized meta."""
        seen: list[tuple[str, TranslationMeta]] = []

        def policy(key: str, meta: TranslationMeta) -> str:
            seen.append((key, meta))
            return f"[{key}]"

        engine = make_engine(fallback=policy)
        with request_context(engine.create_context("de")):
            assert engine.translate("x", "X") == "[x]"
            assert engine.translate("x", "X") == "[x]"
        assert seen == [("x", TranslationMeta("X"))]

    def test_resolved_fallback_memoized_per_context(self) -> None:
        """A missing key resolves once per request and never leaks into shared state."""
        engine = make_engine(fallback="key")
        context = engine.create_context("de")
        with request_context(context):
            engine.translate("missing")
        assert context.lookup("missing") is not None
        assert "missing" not in engine.get_compiled_translations("de")
        assert engine.create_context("de").lookup("missing") is None

    def test_outside_context_uses_call_site_text(self) -> None:
        """No context: call-site text under the default locale."""
        engine = make_engine(default_locale="de")
        assert engine.get_locale() == "de"
        assert engine.translate("n", "{$n :number}", {"n": 1234.5}) == "1.234,5"
        assert engine.translate("bare") == "bare"

    def test_unconfigured_engine_outside_context(self) -> None:
        """An unconfigured engine still renders call-site text in English."""
        engine = I18n()
        assert engine.get_locale() == "en"
        assert engine.translate("k", "{$n :number}", {"n": 1234.5}) == "\u20681,234.5\u2069"

    def test_isolation_follows_config(self) -> None:
        """use_isolating=True wraps placeables."""
        engine = make_engine(use_isolating=True)
        engine.set_translations("de", {"greet": "Hallo {$name}"})
        with request_context(engine.create_context("de")):
            assert engine.translate("greet", values={"name": "Sam"}) == "Hallo \u2068Sam\u2069"

    def test_contexts_are_isolated_across_threads(self) -> None:
        """Concurrent requests in different locales never see each other's context."""
        engine = make_engine()
        engine.set_translations("en", {"cart.title": "Cart"})
        engine.set_translations("de", {"cart.title": "Warenkorb"})

        def handle(locale: str) -> tuple[str, str]:
            return locale, run_with_context(
                engine.create_context(locale), engine.translate, "cart.title"
            )

        with ThreadPoolExecutor(max_workers=8) as executor:
            results = list(executor.map(handle, ["en", "de"] * 50))
        expected = {"en": "Cart", "de": "Warenkorb"}
        assert all(expected[locale] == text for locale, text in results)
        assert get_context() is None

    def test_rich(self) -> None:
        """rich() renders markup through handlers."""
        engine = make_engine()
        engine.set_translations("en", {"terms": "Read {#link}Terms{/link}"})
        with request_context(engine.create_context("en")):
            assert engine.rich("terms", components={"link": Tagged}) == ["Read ", Tagged(["Terms"])]
            assert engine.rich("terms") == ["Read ", "Terms"]


class TestModuleFunctions:
    """t(), rich() and get_locale() on the shared engine."""

    def test_t_outside_context(self) -> None:
        """Call-site text is returned outside requests."""
        assert t("greeting", "Hello!") == "Hello!"

    def test_t_inside_context(self) -> None:
        """t() reads the active context, whichever engine built it."""
        engine = make_engine()
        engine.set_translations("de", {"greeting": "Hallo!"})
        with request_context(engine.create_context("de")):
            assert t("greeting", "Hello!") == "Hallo!"
            assert get_locale() == "de"


class TestConcurrency:
    """Readers racing a writer."""

    def test_readers_see_consistent_snapshots(self) -> None:
        """Every read observes one complete published version."""
        engine = make_engine(fallback="key")
        versions = [{"cart.title": f"v{i}", "price": f"p{i}"} for i in range(20)]
        engine.set_translations("de", versions[0])

        def write() -> None:
            for version in versions[1:]:
                engine.set_translations("de", version)

        def read() -> list[tuple[str, str]]:
            seen = []
            for _ in range(50):
                translations = engine.get_translations("de")
                seen.append((translations["cart.title"], translations["price"]))
            return seen

        tasks: list[Callable[[], object]] = [write] + [read] * 4
        with ThreadPoolExecutor(max_workers=5) as executor:
            futures = [executor.submit(task) for task in tasks]
            results = [future.result() for future in futures]

        for seen in results[1:]:
            assert isinstance(seen, list)
            for title, price in seen:
                assert title[1:] == price[1:]
        assert engine.get_translations("de")["cart.title"] == "v19"

    def test_contexts_pair_policy_with_its_layer(self) -> None:
        """A context never mixes one configuration's policy with another's layer."""
        engine = make_engine(fallback="key")
        engine.set_translations("de", {"cart.title": "Warenkorb"})

        def reconfigure() -> None:
            for i in range(40):
                policy = "fallback" if i % 2 == 0 else "key"
                engine.configure(locales=["en", "de"], fallback=policy, use_isolating=False)

        def read() -> list[tuple[object, bool]]:
            seen = []
            for _ in range(100):
                ctx = engine.create_context("de")
                seen.append((ctx.fallback, "greet" in ctx.translations))
            return seen

        tasks: list[Callable[[], object]] = [reconfigure] + [read] * 4
        with ThreadPoolExecutor(max_workers=5) as executor:
            futures = [executor.submit(task) for task in tasks]
            results = [future.result() for future in futures]

        for seen in results[1:]:
            assert isinstance(seen, list)
            for policy, has_fallback_text in seen:
                assert has_fallback_text == (policy is FallbackMode.FALLBACK)
