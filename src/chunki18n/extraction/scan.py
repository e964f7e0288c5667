"""Parallel extraction over many source texts.

Each source is extracted independently in a worker thread; workers never
touch shared state. Results are folded into a KeyStore on the calling
thread afterward, so ``add_file_keys`` is only ever called from one place.

Python 3.13+.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from concurrent.futures import ThreadPoolExecutor

from chunki18n.enums import ConsistencyLevel
from chunki18n.extraction.extract import ExtractResult, KeyExtractor, PythonCallExtractor
from chunki18n.extraction.key_store import KeyStore

__all__ = ["scan_sources"]

logger = logging.getLogger(__name__)


def scan_sources(
    sources: Mapping[str, str] | Iterable[tuple[str, str]],
    extractor: KeyExtractor | None = None,
    *,
    marker: str | None = None,
    max_workers: int | None = None,
    consistency: ConsistencyLevel | str = ConsistencyLevel.WARN,
    store: KeyStore | None = None,
) -> KeyStore:
    """Extract every source and fold the results into a key store.

    Sources are recorded in the order they were given. A source is
    recorded when it yields occurrences, when the store already tracks
    it (so removing every call replaces its old keys), or when it
    matched ``marker`` (so key-less modules still mark their chunk as
    carrying translations).

    Args:
        sources: File identifier -> source text, or (file, text) pairs
        extractor: Front end to use (default: PythonCallExtractor)
        marker: Skip sources not containing this substring (cheap prefilter)
        max_workers: Thread pool size (default: executor default)
        consistency: Consistency level for a newly created store
        store: Existing store to fold into instead of a new one

    Returns:
        The populated KeyStore

    Example:
        >>> store = scan_sources({"a.py": 't("hi", "Hi")', "b.py": "x = 1"})
        >>> [k.key for k in store.extracted_keys]
        ['hi']
    """
    items = list(sources.items() if isinstance(sources, Mapping) else sources)
    if marker is not None:
        items = [(file, text) for file, text in items if marker in text]

    active = extractor if extractor is not None else PythonCallExtractor()
    target = store if store is not None else KeyStore(consistency=consistency)

    results: list[ExtractResult]
    if len(items) <= 1:
        results = [active.extract(file, text) for file, text in items]
    else:
        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            results = list(executor.map(lambda item: active.extract(*item), items))

    known = target.file_to_keys
    for (file, _), result in zip(items, results, strict=True):
        if result.occurrences or marker is not None or file in known:
            target.add_file_keys(file, result.occurrences)

    logger.info("scanned %d files, found %d keys", len(items), target.unique_key_count)
    return target
