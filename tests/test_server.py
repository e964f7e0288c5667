"""Tests for the chunk payload endpoint and Accept-Language negotiation."""

import pytest
from hypothesis import given
from hypothesis import strategies as st

from chunki18n import I18n, I18nConfigurationError
from chunki18n.extraction import ExtractionManifest
from chunki18n.server import (
    detect_locale,
    handle_chunk_request,
    parse_accept_language,
    parse_chunk_path,
)

MANIFEST = ExtractionManifest(chunks={"Cart.C_sxtxbl": ("cart.title",)})


@pytest.fixture
def engine() -> I18n:
    engine = I18n()
    engine.configure(locales=["en", "de"], manifest=MANIFEST, fallback="key")
    engine.set_translations("de", {"cart.title": "Warenkorb"})
    return engine


class TestParseChunkPath:
    """URL path parsing."""

    @pytest.mark.parametrize(
        ("path", "expected"),
        [
            ("/_i18n/de/Cart.C_sxtxbl.bzh6rx01.js", ("de", "Cart.C_sxtxbl")),
            ("/_i18n/en-US/Price.js.0000.js", ("en-US", "Price.js")),
            ("/_i18n/de/Cart.js", None),
            ("/_i18n/de/Cart.C1.h.css", None),
            ("/_i18n/Cart.C1.h.js", None),
            ("/_i18n//Cart.C1.h.js", None),
            ("/_i18n/de/.h.js", None),
            ("/static/de/Cart.C1.h.js", None),
            ("/_i18nx/de/Cart.C1.h.js", None),
        ],
    )
    def test_paths(self, path: str, expected: tuple[str, str] | None) -> None:
        """Only {prefix}/{locale}/{name}.{hash}.js paths parse."""
        assert parse_chunk_path(path) == expected

    def test_custom_prefix(self) -> None:
        """Prefix with or without trailing slash."""
        assert parse_chunk_path("/i18n/de/A.h.js", "/i18n/") == ("de", "A")
        assert parse_chunk_path("/i18n/de/A.h.js", "/i18n") == ("de", "A")


class TestHandleChunkRequest:
    """Chunk endpoint responses."""

    def test_serves_payload(self, engine: I18n) -> None:
        """Known locale and chunk return the immutable payload."""
        response = handle_chunk_request(engine, "/_i18n/de/Cart.C_sxtxbl.anyhash0.js")
        assert response is not None
        assert response.status == 200
        assert response.body == engine.get_chunk_body("de", "Cart.C_sxtxbl")
        assert b'"cart.title":"Warenkorb"' in response.body
        assert response.headers == {
            "Content-Type": "text/javascript; charset=utf-8",
            "Content-Length": str(len(response.body)),
            "Cache-Control": "public, max-age=31536000, immutable",
        }

    def test_unknown_chunk(self, engine: I18n) -> None:
        """Unknown chunk is a 404 with a JS comment body."""
        response = handle_chunk_request(engine, "/_i18n/de/Missing.X.h.js")
        assert response is not None
        assert response.status == 404
        assert response.body == b"/* chunk not found: Missing.X */"
        assert response.headers["Content-Type"] == "application/javascript"

    def test_unknown_locale(self, engine: I18n) -> None:
        """Unconfigured locale is a 404."""
        response = handle_chunk_request(engine, "/_i18n/fr/Cart.C_sxtxbl.h.js")
        assert response is not None
        assert response.status == 404
        assert response.body == b"/* locale not found: fr */"

    def test_other_paths_pass_through(self, engine: I18n) -> None:
        """Paths outside the prefix are not handled."""
        assert handle_chunk_request(engine, "/cart") is None

    def test_configured_prefix(self) -> None:
        """The engine's chunk_prefix decides the mount point."""
        engine = I18n()
        engine.configure(locales=["de"], manifest=MANIFEST, chunk_prefix="/assets/t")
        assert handle_chunk_request(engine, "/_i18n/de/Cart.C_sxtxbl.h.js") is None
        response = handle_chunk_request(engine, "/assets/t/de/Cart.C_sxtxbl.h.js")
        assert response is not None
        assert response.status == 200

    def test_requires_configuration(self) -> None:
        """An unconfigured engine cannot serve chunks."""
        with pytest.raises(I18nConfigurationError):
            handle_chunk_request(I18n(), "/_i18n/de/A.h.js")


class TestAcceptLanguage:
    """Header parsing and negotiation."""

    def test_parse_orders_by_weight(self) -> None:
        """Tags are sorted by q; wildcard and q=0 are dropped."""
        header = "de-CH;q=0.8, fr, en;q=0.9, *;q=0.1, it;q=0, es;q=bad"
        assert parse_accept_language(header) == ["fr", "en", "de-CH"]

    def test_parse_keeps_order_on_ties(self) -> None:
        """Equal weights keep header order."""
        assert parse_accept_language("b, a, c") == ["b", "a", "c"]

    def test_parse_empty(self) -> None:
        """Empty header has no preferences."""
        assert parse_accept_language("") == []

    @pytest.mark.parametrize(
        ("header", "locales", "expected"),
        [
            ("de-CH,de;q=0.9,en;q=0.8", ["en", "de"], "de"),
            ("fr, en;q=0.5", ["en", "de"], "en"),
            ("EN-us", ["en-US", "de"], "en-US"),
            ("pt-BR", ["pt_BR", "en"], "pt_BR"),
            ("ja", ["en", "de"], None),
            ("", ["en"], None),
            (None, ["en"], None),
        ],
    )
    def test_detect_locale(self, header: str | None, locales: list[str], expected: str | None) -> None:
        """Best configured locale, spelled as configured."""
        assert detect_locale(header, locales) == expected

    @given(st.lists(st.sampled_from(["en", "de", "fr", "de-AT", "ja"]), max_size=5))
    def test_detect_returns_configured_locale(self, tags: list[str]) -> None:
        """Any result is one of the configured locales."""
        locales = ["en", "de"]
        result = detect_locale(", ".join(tags), locales)
        assert result is None or result in locales
