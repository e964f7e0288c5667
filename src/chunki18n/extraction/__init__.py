"""Build-time extraction and chunk mapping.

Finds translate call sites, deduplicates them in a KeyStore, maps bundler
chunks to keys and flattens the chunk import graph into the manifest the
runtime engine serves from.

Python 3.13+.
"""

from .extract import ExtractResult, KeyExtractor, PythonCallExtractor
from .hash import compute_all_chunk_hashes, compute_chunk_hash
from .key_store import KeyStore
from .manifest import (
    BundleChunk,
    ChunkMapping,
    ManifestProvider,
    ManifestState,
    build_chunk_manifest,
    flatten_imports,
    load_manifest,
    write_manifest,
)
from .scan import scan_sources
from .types import (
    ChunkManifest,
    ConsistencyViolation,
    ExtractedKey,
    ExtractionManifest,
    ImportsManifest,
    Occurrence,
)

__all__ = [
    "BundleChunk",
    "ChunkManifest",
    "ChunkMapping",
    "ConsistencyViolation",
    "ExtractResult",
    "ExtractedKey",
    "ExtractionManifest",
    "ImportsManifest",
    "KeyExtractor",
    "KeyStore",
    "ManifestProvider",
    "ManifestState",
    "Occurrence",
    "PythonCallExtractor",
    "build_chunk_manifest",
    "compute_all_chunk_hashes",
    "compute_chunk_hash",
    "flatten_imports",
    "load_manifest",
    "scan_sources",
    "write_manifest",
]
