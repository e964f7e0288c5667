"""Translation call-site extraction.

An extractor turns one source text into Occurrences: every call to a
translate function whose first argument is a string literal, with the
metadata authored in its second argument.

The second argument may be:
    - a string literal: ``t("cart.title", "Cart")``
    - a dict literal: ``t("cart.total", {"fallback": "Total: {$amount}",
      "description": "...", "variables": {"amount": {"fallback": "$0"}}})``

Anything that cannot be read statically (f-strings with placeholders,
``**spread`` entries, names, calls) is reported as a warning and treated
as ``fallback=""`` or a skipped field. It is never silently dropped.

PythonCallExtractor implements this for Python sources with the ``ast``
module; any object with the same ``extract`` method can stand in for it
(KeyExtractor protocol).

Python 3.13+.
"""

from __future__ import annotations

import ast
import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol

from chunki18n.constants import DEFAULT_TRANSLATE_FUNCTIONS
from chunki18n.extraction.types import Occurrence
from chunki18n.meta import TranslationMeta, VariableDef

__all__ = ["ExtractResult", "KeyExtractor", "PythonCallExtractor"]

logger = logging.getLogger(__name__)

_META_KEYWORD = "meta"

type _Warn = Callable[[str], None]


@dataclass(frozen=True, slots=True)
class ExtractResult:
    """Occurrences found in one file plus any extraction warnings."""

    occurrences: tuple[Occurrence, ...] = ()
    warnings: tuple[str, ...] = ()


class KeyExtractor(Protocol):
    """Front end that finds translation call sites in one source text."""

    def extract(self, file: str, source: str) -> ExtractResult: ...


def _static_string(node: ast.expr) -> str | None:
    if isinstance(node, ast.Constant) and isinstance(node.value, str):
        return node.value
    # f"..." without placeholders is still a constant
    if isinstance(node, ast.JoinedStr) and all(
        isinstance(value, ast.Constant) for value in node.values
    ):
        return "".join(str(value.value) for value in node.values)  # type: ignore[attr-defined]
    return None


class _CallCollector(ast.NodeVisitor):
    """Collect translate calls from one module."""

    def __init__(self, file: str, function_names: frozenset[str]) -> None:
        self.file = file
        self.function_names = function_names
        self.occurrences: list[Occurrence] = []
        self.warnings: list[str] = []

    def visit_Call(self, node: ast.Call) -> None:  # noqa: N802
        if isinstance(node.func, ast.Name) and node.func.id in self.function_names and node.args:
            key = _static_string(node.args[0])
            if key is not None:
                self._collect(node, key)
        self.generic_visit(node)

    def _collect(self, node: ast.Call, key: str) -> None:
        line = node.lineno

        def warn(message: str) -> None:
            text = f"{message} at {self.file}:{line}"
            logger.warning("%s", text)
            self.warnings.append(text)

        meta_node: ast.expr | None = node.args[1] if len(node.args) >= 2 else None
        if meta_node is None:
            meta_node = next(
                (kw.value for kw in node.keywords if kw.arg == _META_KEYWORD), None
            )
        meta = TranslationMeta() if meta_node is None else self._meta(meta_node, warn)
        self.occurrences.append(Occurrence(key=key, meta=meta, file=self.file, line=line))

    def _meta(self, node: ast.expr, warn: _Warn) -> TranslationMeta:
        text = _static_string(node)
        if text is not None:
            return TranslationMeta(fallback=text)

        if isinstance(node, ast.JoinedStr):
            warn("t() meta contains f-string with placeholders - cannot extract statically")
            return TranslationMeta()

        if not isinstance(node, ast.Dict):
            warn("t() meta is not a static string or dict - cannot extract")
            return TranslationMeta()

        fallback = ""
        description: str | None = None
        variables: dict[str, VariableDef] | None = None
        for key_node, value_node in zip(node.keys, node.values, strict=True):
            if key_node is None:
                warn("t() meta contains ** spread - cannot extract statically")
                continue
            name = _static_string(key_node)
            if name == "fallback":
                value = _static_string(value_node)
                if value is None:
                    warn("t() fallback is not a static string - cannot extract")
                else:
                    fallback = value
            elif name == "description":
                value = _static_string(value_node)
                if value is None:
                    warn("t() description is not a static string - cannot extract")
                else:
                    description = value
            elif name == "variables" and isinstance(value_node, ast.Dict):
                variables = _variables(value_node, warn)
        return TranslationMeta(fallback=fallback, description=description, variables=variables)


def _variables(node: ast.Dict, warn: _Warn) -> dict[str, VariableDef] | None:
    result: dict[str, VariableDef] = {}
    for key_node, value_node in zip(node.keys, node.values, strict=True):
        if key_node is None:
            warn("t() variables contains ** spread - cannot extract statically")
            continue
        name = _static_string(key_node)
        if name is None or not isinstance(value_node, ast.Dict):
            continue
        props: dict[str, str] = {}
        for prop_key, prop_value in zip(value_node.keys, value_node.values, strict=True):
            if prop_key is None:
                warn(f't() variable "{name}" contains ** spread - cannot extract statically')
                continue
            prop = _static_string(prop_key)
            if prop not in ("fallback", "description"):
                continue
            value = _static_string(prop_value)
            if value is None:
                warn(f't() variable "{name}.{prop}" is not a static string - cannot extract')
            else:
                props[prop] = value
        result[name] = VariableDef(
            fallback=props.get("fallback"), description=props.get("description")
        )
    return result or None


class PythonCallExtractor:
    """Extract translate calls from Python source with the ``ast`` module.

    Only direct calls by bare name are recognized (``t(...)``); the
    function is assumed not to be aliased or reassigned.

    Example:
        >>> result = PythonCallExtractor().extract("views.py", 'title = t("cart.title", "Cart")')
        >>> result.occurrences[0].key, result.occurrences[0].meta.fallback
        ('cart.title', 'Cart')
    """

    __slots__ = ("_function_names",)

    def __init__(self, function_names: tuple[str, ...] = DEFAULT_TRANSLATE_FUNCTIONS) -> None:
        """Initialize extractor.

        Args:
            function_names: Names recognized as translate functions
        """
        self._function_names = frozenset(function_names)

    def extract(self, file: str, source: str) -> ExtractResult:
        """Find every translate call in source.

        A source that does not parse yields no occurrences and one warning.
        """
        try:
            tree = ast.parse(source, filename=file)
        except (SyntaxError, ValueError) as e:
            message = f"cannot parse {file}: {e}"
            logger.warning("%s", message)
            return ExtractResult(warnings=(message,))

        collector = _CallCollector(file, self._function_names)
        collector.visit(tree)
        return ExtractResult(tuple(collector.occurrences), tuple(collector.warnings))
