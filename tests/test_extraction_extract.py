"""Tests for the Python call-site extractor and parallel scanning."""

import logging
import textwrap

import pytest

from chunki18n.extraction import KeyStore, Occurrence, PythonCallExtractor, scan_sources
from chunki18n.extraction.extract import ExtractResult
from chunki18n.meta import TranslationMeta, VariableDef


def extract(source: str, file: str = "views.py") -> ExtractResult:
    return PythonCallExtractor().extract(file, textwrap.dedent(source))


class TestStaticMeta:
    """Metadata that can be read from the source."""

    def test_string_meta(self) -> None:
        """Second positional string is the fallback."""
        result = extract('title = t("cart.title", "Cart")')
        assert result.occurrences == (
            Occurrence("cart.title", TranslationMeta("Cart"), "views.py", 1),
        )
        assert result.warnings == ()

    def test_no_meta(self) -> None:
        """A call with only a key has an empty fallback."""
        (occurrence,) = extract('t("k")').occurrences
        assert occurrence.meta == TranslationMeta()

    def test_dict_meta(self) -> None:
        """fallback, description and variables are read from a dict literal."""
        result = extract(
            """
            total = t(
                "cart.total",
                {
                    "fallback": "Total: {$amount}",
                    "description": "Cart footer",
                    "variables": {"amount": {"fallback": "$0", "description": "Sum"}},
                },
            )
            """
        )
        (occurrence,) = result.occurrences
        assert occurrence.line == 2
        assert occurrence.meta == TranslationMeta(
            fallback="Total: {$amount}",
            description="Cart footer",
            variables={"amount": VariableDef("$0", "Sum")},
        )

    def test_meta_keyword(self) -> None:
        """meta= keyword is accepted like the positional form."""
        (occurrence,) = extract('t("k", meta="Hi")').occurrences
        assert occurrence.meta.fallback == "Hi"

    def test_constant_fstring(self) -> None:
        """An f-string without placeholders is static."""
        (occurrence,) = extract('t("k", f"Plain")').occurrences
        assert occurrence.meta.fallback == "Plain"

    def test_nested_calls_found(self) -> None:
        """Calls inside other expressions are visited."""
        result = extract('print(t("a", "A"), [t("b", "B")])')
        assert [o.key for o in result.occurrences] == ["a", "b"]

    def test_other_functions_ignored(self) -> None:
        """Only configured names count; dynamic keys are skipped."""
        result = extract('gettext("a", "A")\nt(key_var, "B")\nobj.t("c", "C")')
        assert result.occurrences == ()

    def test_custom_function_names(self) -> None:
        """Extractor can recognize other names."""
        extractor = PythonCallExtractor(function_names=("_", "t"))
        result = extractor.extract("m.py", '_("a", "A")\nt("b", "B")')
        assert [o.key for o in result.occurrences] == ["a", "b"]


class TestDynamicMeta:
    """Metadata that cannot be read statically produces warnings."""

    def test_fstring_with_placeholder(self, caplog: pytest.LogCaptureFixture) -> None:
        """f-string fallback is dropped with a warning."""
        with caplog.at_level(logging.WARNING, logger="chunki18n.extraction.extract"):
            result = extract('t("k", f"Hi {name}")')
        (occurrence,) = result.occurrences
        assert occurrence.meta.fallback == ""
        (warning,) = result.warnings
        assert "f-string" in warning
        assert warning.endswith("views.py:1")
        assert warning in caplog.text

    def test_spread_in_meta(self) -> None:
        """** entries are skipped with a warning; static fields survive."""
        result = extract('t("k", {**base, "fallback": "Hi"})')
        assert result.occurrences[0].meta.fallback == "Hi"
        assert any("** spread" in w for w in result.warnings)

    def test_spread_in_variables(self) -> None:
        """** inside variables warns."""
        result = extract('t("k", {"fallback": "x", "variables": {**more}})')
        assert any("variables contains ** spread" in w for w in result.warnings)
        assert result.occurrences[0].meta.variables is None

    def test_non_literal_meta(self) -> None:
        """A name as meta warns and yields an empty fallback."""
        result = extract('t("k", label)')
        assert result.occurrences[0].meta == TranslationMeta()
        assert len(result.warnings) == 1

    def test_non_literal_fallback_field(self) -> None:
        """A computed fallback value warns."""
        result = extract('t("k", {"fallback": make()})')
        assert "fallback is not a static string" in result.warnings[0]

    def test_syntax_error(self) -> None:
        """Unparsable source yields one warning and no occurrences."""
        result = extract("def broken(:\n", file="bad.py")
        assert result.occurrences == ()
        (warning,) = result.warnings
        assert warning.startswith("cannot parse bad.py")


class TestScanSources:
    """scan_sources folds extraction results into a KeyStore."""

    SOURCES = {
        "a.py": 't("a", "A")',
        "b.py": "x = 1",
        "c.py": 't("c", "C")\nt("a", "A")',
    }

    def test_serial_and_threaded_agree(self) -> None:
        """Thread pool output equals one-at-a-time output."""
        threaded = scan_sources(self.SOURCES, max_workers=4)
        serial = KeyStore()
        for file, text in self.SOURCES.items():
            scan_sources({file: text}, store=serial)
        assert threaded.extracted_keys == serial.extracted_keys
        assert [k.key for k in threaded.extracted_keys] == ["a", "c"]

    def test_files_without_keys_not_recorded(self) -> None:
        """Only files yielding occurrences are added."""
        store = scan_sources(self.SOURCES)
        assert set(store.file_to_keys) == {"a.py", "c.py"}

    def test_marker_prefilter(self) -> None:
        """Sources without the marker are skipped."""
        store = scan_sources({"a.py": 't("a")', "b.py": '# i18n\nt("b")'}, marker="i18n")
        assert [k.key for k in store.extracted_keys] == ["b"]

    def test_pairs_accepted(self) -> None:
        """An iterable of (file, text) pairs works like a mapping."""
        store = scan_sources([("a.py", 't("a")'), ("b.py", 't("b")')])
        assert store.unique_key_count == 2

    def test_existing_store_is_updated(self) -> None:
        """Rescanning a file replaces its previous keys."""
        store = scan_sources({"a.py": 't("old")'})
        same = scan_sources({"a.py": 't("new")'}, store=store)
        assert same is store
        assert [k.key for k in store.extracted_keys] == ["new"]

    def test_rescan_without_calls_drops_keys(self) -> None:
        """A known file whose calls were all removed loses its old keys."""
        store = scan_sources({"a.py": 't("hello", "Hi")', "b.py": 't("bye")'})
        scan_sources({"a.py": "x = 1", "c.py": "y = 2"}, store=store)
        assert [k.key for k in store.extracted_keys] == ["bye"]
        assert store.file_to_keys["a.py"] == ()
        assert "c.py" not in store.file_to_keys

    def test_marker_files_without_keys_recorded(self) -> None:
        """Sources matching the marker count as performing extraction."""
        store = scan_sources(
            {
                "a.py": 'from chunki18n import t\nt("hello", "Hi")',
                "b.py": "from chunki18n import t\nimport a",
                "c.py": "import a",
            },
            marker="chunki18n",
        )
        assert store.files_with_i18n == {"a.py", "b.py"}
        assert store.file_to_keys["b.py"] == ()

    def test_custom_extractor(self) -> None:
        """Any object with extract(file, source) can be used."""

        class LineExtractor:
            def extract(self, file: str, source: str) -> ExtractResult:
                return ExtractResult(
                    tuple(
                        Occurrence(line, TranslationMeta(), file, number)
                        for number, line in enumerate(source.splitlines(), start=1)
                    )
                )

        store = scan_sources({"keys.txt": "one\ntwo"}, LineExtractor())
        assert [k.key for k in store.extracted_keys] == ["one", "two"]

    def test_logs_summary(self, caplog: pytest.LogCaptureFixture) -> None:
        """Scanning logs file and key counts."""
        with caplog.at_level(logging.INFO, logger="chunki18n.extraction.scan"):
            scan_sources(self.SOURCES)
        assert "scanned 3 files, found 2 keys" in caplog.text
