"""Chunk manifest builder and manifest state.

Runs once after the bundler has finalized its output. From the bundler's
chunks (member modules and direct imports) and the KeyStore's per-file
keys it computes:

    chunks:  chunk name -> keys used by its member modules
    imports: chunk name -> every translating chunk it imports, directly
             or transitively (never itself)

A chunk *carries translations* when any member module performed
extraction, even with zero keys. Such a chunk may only import other
translating chunks, and must still be discoverable through the import
graph.

Flattening walks each chunk's descendants depth-first with a path-local
visited set: a chunk reached again on a different path is explored again,
while a chunk already on the current path (an import cycle) stops the
descent. Arbitrary cyclic graphs therefore terminate, and every
translating descendant reachable by some acyclic path is found.

Python 3.13+.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from enum import Enum, auto
from pathlib import Path

from chunki18n.diagnostics import ManifestError
from chunki18n.extraction.key_store import KeyStore
from chunki18n.extraction.types import ExtractedKey, ExtractionManifest
from chunki18n.url import chunk_id_to_name

__all__ = [
    "BundleChunk",
    "ChunkMapping",
    "ManifestProvider",
    "ManifestState",
    "build_chunk_manifest",
    "flatten_imports",
    "load_manifest",
    "write_manifest",
]

logger = logging.getLogger(__name__)

type ManifestProvider = Callable[[], ExtractionManifest]


@dataclass(frozen=True, slots=True)
class BundleChunk:
    """One output chunk as reported by the bundler.

    Attributes:
        file_name: Output file name (e.g. "_astro/Cart.C_sxtxbl.js")
        module_ids: Source modules placed in the chunk
        imports: File names of chunks it imports directly
    """

    file_name: str
    module_ids: tuple[str, ...] = ()
    imports: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class ChunkMapping:
    """Result of one manifest build."""

    chunks: dict[str, tuple[str, ...]] = field(default_factory=dict)
    imports: dict[str, tuple[str, ...]] = field(default_factory=dict)
    chunks_with_i18n: frozenset[str] = frozenset()


class _Visit(Enum):
    """DFS visitation state for iterative flattening."""

    ENTER = auto()  # First visit on this path
    EXIT = auto()  # Leaving the node; drop it from the path


def flatten_imports(
    root: str, direct_imports: Mapping[str, Iterable[str]], carriers: frozenset[str] | set[str]
) -> tuple[str, ...]:
    """Translating chunks reachable from root, in discovery order.

    Args:
        root: Chunk to flatten
        direct_imports: Chunk -> chunks it imports directly
        carriers: Chunks that carry translations

    Returns:
        Reachable carriers excluding root itself

    Example:
        >>> graph = {"A": ["B"], "B": ["C"], "C": ["A"]}
        >>> flatten_imports("A", graph, {"A", "C"})
        ('C',)
    """
    found: dict[str, None] = {}
    on_path: set[str] = set()
    stack: list[tuple[str, _Visit]] = [(root, _Visit.ENTER)]

    while stack:
        chunk, state = stack.pop()
        if state is _Visit.EXIT:
            on_path.discard(chunk)
            continue
        if chunk in on_path:
            # Cycle back onto the current path
            continue
        on_path.add(chunk)
        stack.append((chunk, _Visit.EXIT))
        children = list(direct_imports.get(chunk, ()))
        for child in children:
            if child in carriers and child != root:
                found[child] = None
        # Reversed so children are explored in import order
        stack.extend((child, _Visit.ENTER) for child in reversed(children))

    return tuple(found)


def build_chunk_manifest(store: KeyStore, bundle: Iterable[BundleChunk]) -> ChunkMapping:
    """Map chunks to keys and flatten the chunk import graph.

    Must run after extraction has seen every file: chunk membership has to
    be a closed snapshot.

    Args:
        store: Key store populated by extraction
        bundle: Every output chunk of the bundle

    Returns:
        ChunkMapping with chunks (only chunks with keys), imports (only
        chunks with a non-empty flattened set) and the carrier set

    Raises:
        ConsistencyError: If the store runs in ERROR mode and recorded
            metadata drift
    """
    store.raise_for_violations()

    file_to_keys = store.file_to_keys
    files_with_i18n = store.files_with_i18n

    chunks: dict[str, tuple[str, ...]] = {}
    carriers: set[str] = set()
    direct_imports: dict[str, tuple[str, ...]] = {}

    for chunk in bundle:
        name = chunk_id_to_name(chunk.file_name)
        keys: dict[str, None] = {}
        for module_id in chunk.module_ids:
            keys.update(dict.fromkeys(file_to_keys.get(module_id, ())))
            if module_id in files_with_i18n:
                carriers.add(name)
        if keys:
            chunks[name] = tuple(keys)
        direct_imports[name] = tuple(chunk_id_to_name(imported) for imported in chunk.imports)

    frozen_carriers = frozenset(carriers)
    imports: dict[str, tuple[str, ...]] = {}
    for name in direct_imports:
        flattened = flatten_imports(name, direct_imports, frozen_carriers)
        if flattened:
            imports[name] = flattened

    logger.info("manifest: %d chunks, %d keys", len(chunks), store.unique_key_count)
    return ChunkMapping(chunks=chunks, imports=imports, chunks_with_i18n=frozen_carriers)


class ManifestState:
    """Live manifest for development servers.

    Holds the key store being fed by extraction plus the chunk maps of the
    last build, and snapshots them as an ExtractionManifest on demand.
    Pass ``state.manifest`` to the engine as its manifest provider.
    """

    __slots__ = ("_chunks", "_imports", "project_root", "store")

    def __init__(self, store: KeyStore | None = None, project_root: str | os.PathLike[str] = "") -> None:
        self.store = store if store is not None else KeyStore()
        self.project_root = os.fspath(project_root)
        self._chunks: dict[str, tuple[str, ...]] = {}
        self._imports: dict[str, tuple[str, ...]] = {}

    def update_chunks(self, mapping: ChunkMapping) -> None:
        """Replace the chunk maps with those of a new build."""
        self._chunks = dict(mapping.chunks)
        self._imports = dict(mapping.imports)

    def build(self, bundle: Iterable[BundleChunk]) -> ChunkMapping:
        """Build the chunk maps from a bundle and keep them."""
        mapping = build_chunk_manifest(self.store, bundle)
        self.update_chunks(mapping)
        return mapping

    def _relative(self, location: str) -> str:
        path, sep, line = location.rpartition(":")
        if not sep or not line.isdigit():
            path, line = location, ""
        if self.project_root and os.path.isabs(path):
            path = os.path.relpath(path, self.project_root)
        return f"{path}:{line}" if line else path

    def manifest(self) -> ExtractionManifest:
        """Snapshot with file locations relative to the project root."""
        keys = tuple(
            ExtractedKey(
                key=extracted.key,
                meta=extracted.meta,
                files=tuple(self._relative(location) for location in extracted.files),
            )
            for extracted in self.store.extracted_keys
        )
        return ExtractionManifest(keys=keys, chunks=dict(self._chunks), imports=dict(self._imports))


def write_manifest(path: str | os.PathLike[str], manifest: ExtractionManifest) -> None:
    """Write a frozen manifest as JSON (UTF-8)."""
    Path(path).write_text(manifest.to_json(), encoding="utf-8")


def load_manifest(path: str | os.PathLike[str]) -> ExtractionManifest:
    """Read a frozen manifest written by ``write_manifest``.

    Raises:
        ManifestError: If the file cannot be read or is malformed
    """
    try:
        text = Path(path).read_text(encoding="utf-8")
    except OSError as e:
        msg = f"Cannot read extraction manifest {os.fspath(path)}: {e}"
        raise ManifestError(msg) from e
    return ExtractionManifest.from_json(text)
