"""Extraction data model.

Occurrences are produced per call site by an extractor, folded into
ExtractedKeys by the KeyStore, and frozen together with the chunk maps
into an ExtractionManifest - the record the runtime consults.

Manifest JSON shape (versionless)::

    {
      "keys": [{"key": ..., "meta": {"fallback": ..., ...}, "files": ["a.py:10"]}],
      "chunks": {"Cart.C_sxtxbl": ["cart.title", ...]},
      "imports": {"Cart.C_sxtxbl": ["Price.Bx9"]}
    }

Python 3.13+. Zero external dependencies.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from chunki18n.diagnostics import ManifestError
from chunki18n.meta import TranslationMeta

__all__ = [
    "ChunkManifest",
    "ConsistencyViolation",
    "ExtractedKey",
    "ExtractionManifest",
    "ImportsManifest",
    "Occurrence",
]

type ChunkManifest = Mapping[str, tuple[str, ...]]
type ImportsManifest = Mapping[str, tuple[str, ...]]


@dataclass(frozen=True, slots=True)
class Occurrence:
    """One translation call site found by one extraction pass."""

    key: str
    meta: TranslationMeta
    file: str
    line: int

    @property
    def location(self) -> str:
        """``file:line`` label."""
        return f"{self.file}:{self.line}"


@dataclass(frozen=True, slots=True)
class ExtractedKey:
    """All live occurrences of one key, deduplicated.

    Attributes:
        key: Translation key
        meta: Metadata of the most recently added occurrence
        files: Distinct ``file:line`` locations in insertion order
    """

    key: str
    meta: TranslationMeta
    files: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the manifest JSON shape."""
        return {"key": self.key, "meta": self.meta.to_dict(), "files": list(self.files)}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ExtractedKey:
        """Build from the manifest JSON shape."""
        return cls(
            key=data["key"],
            meta=TranslationMeta.from_dict(data.get("meta") or {}),
            files=tuple(data.get("files") or ()),
        )


@dataclass(frozen=True, slots=True)
class ConsistencyViolation:
    """A key whose metadata field differs from its first-seen occurrence.

    Attributes:
        key: Translation key
        field: "fallback", "description" or "variables"
        first_value, first_location: First-seen occurrence
        conflicting_value, conflicting_location: Occurrence that differs
    """

    key: str
    field: str
    first_value: str
    first_location: str
    conflicting_value: str
    conflicting_location: str

    def describe(self) -> str:
        """One-line human-readable description."""
        return (
            f'key "{self.key}" has inconsistent {self.field}: '
            f"{self.first_value!r} at {self.first_location} vs "
            f"{self.conflicting_value!r} at {self.conflicting_location}"
        )


@dataclass(frozen=True, slots=True)
class ExtractionManifest:
    """Extracted keys plus chunk mappings, consulted by the runtime engine.

    Attributes:
        keys: One entry per distinct key
        chunks: Chunk name -> keys used by modules in that chunk
        imports: Chunk name -> flattened translating descendant chunks
    """

    keys: tuple[ExtractedKey, ...] = ()
    chunks: ChunkManifest = field(default_factory=dict)
    imports: ImportsManifest = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the manifest JSON shape."""
        return {
            "keys": [key.to_dict() for key in self.keys],
            "chunks": {name: list(keys) for name, keys in self.chunks.items()},
            "imports": {name: list(deps) for name, deps in self.imports.items()},
        }

    def to_json(self) -> str:
        """Serialize to compact JSON."""
        return json.dumps(self.to_dict(), ensure_ascii=False, separators=(",", ":"))

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ExtractionManifest:
        """Build from the manifest JSON shape.

        Raises:
            ManifestError: If the shape is wrong
        """
        try:
            return cls(
                keys=tuple(ExtractedKey.from_dict(entry) for entry in data.get("keys", ())),
                chunks={name: tuple(keys) for name, keys in data.get("chunks", {}).items()},
                imports={name: tuple(deps) for name, deps in data.get("imports", {}).items()},
            )
        except (KeyError, TypeError, AttributeError) as e:
            msg = f"Malformed extraction manifest: {e}"
            raise ManifestError(msg) from e

    @classmethod
    def from_json(cls, text: str) -> ExtractionManifest:
        """Parse a JSON manifest.

        Raises:
            ManifestError: If the text is not JSON or has the wrong shape
        """
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            msg = f"Extraction manifest is not valid JSON: {e}"
            raise ManifestError(msg) from e
        if not isinstance(data, dict):
            msg = "Extraction manifest must be a JSON object"
            raise ManifestError(msg)
        return cls.from_dict(data)
