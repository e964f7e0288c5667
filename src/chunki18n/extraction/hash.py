"""Content hashes of per-chunk translation subsets.

A chunk's hash covers the supplied translations of its keys, serialized
canonically (keys sorted, compact separators), so it changes when and
only when one of those translations changes. It is used as a cache-busting
path segment and as a cheap changed/unchanged check.

Python 3.13+.
"""

import hashlib
import json
from collections.abc import Iterable, Mapping

from chunki18n.constants import CHUNK_HASH_LENGTH

__all__ = ["compute_all_chunk_hashes", "compute_chunk_hash"]


def compute_chunk_hash(translations: Mapping[str, str], keys: Iterable[str]) -> str:
    """Hash the translations of keys, ignoring keys without a translation.

    Example:
        >>> a = compute_chunk_hash({"x": "1", "y": "2"}, ["y", "x"])
        >>> a == compute_chunk_hash({"y": "2", "x": "1"}, ["x", "y"])
        True
        >>> len(a)
        8
    """
    relevant = {key: translations[key] for key in sorted(set(keys)) if translations.get(key)}
    canonical = json.dumps(relevant, ensure_ascii=False, separators=(",", ":"))
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()[:CHUNK_HASH_LENGTH]


def compute_all_chunk_hashes(
    translations: Mapping[str, str], chunks: Mapping[str, Iterable[str]]
) -> dict[str, str]:
    """Hash every chunk of a chunk manifest."""
    return {name: compute_chunk_hash(translations, keys) for name, keys in chunks.items()}
