"""Deduplicating store of extracted translation keys.

The store keeps every live call-site occurrence, attributed to the file
it came from. Re-extracting a file replaces that file's occurrences
wholesale; ``extracted_keys`` folds the live occurrences into one entry
per distinct key.

Metadata drift:
    The same key authored with different fallback text (or description,
    or variables) in two places is usually a copy-paste bug. Each new
    occurrence of a known key is compared with the first live occurrence
    of that key, and a mismatch is reported once per (key, field):

    - ConsistencyLevel.OFF: no checking
    - ConsistencyLevel.WARN: logged warning, extraction continues
    - ConsistencyLevel.ERROR: logged error, recorded as a violation;
      ``raise_for_violations()`` then fails the build step

    Note the asymmetry: reports compare against the *first* occurrence,
    while ``extracted_keys`` carries the *last* occurrence's metadata.

Thread Safety:
    Extraction itself runs in parallel without touching the store.
    ``add_file_keys`` and ``merge`` serialize on an internal lock, so
    writes for the same file never interleave.

Python 3.13+.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterable, Mapping
from types import MappingProxyType

from chunki18n.diagnostics import ConsistencyError
from chunki18n.enums import ConsistencyLevel, MetaField
from chunki18n.extraction.types import ConsistencyViolation, ExtractedKey, Occurrence
from chunki18n.meta import TranslationMeta

__all__ = ["KeyStore"]

logger = logging.getLogger(__name__)


def _field_value(meta: TranslationMeta, field: MetaField) -> str:
    match field:
        case MetaField.FALLBACK:
            return meta.fallback
        case MetaField.DESCRIPTION:
            return meta.description or ""
        case _:
            return meta.variables_signature()


class KeyStore:
    """Store for extracted keys with per-file replacement and merge.

    Example:
        >>> store = KeyStore()
        >>> store.add_file_keys("a.py", [Occurrence("hello", TranslationMeta("Hi"), "a.py", 10)])
        >>> [k.key for k in store.extracted_keys]
        ['hello']
        >>> store.add_file_keys("a.py", [])
        >>> store.extracted_keys
        ()
    """

    __slots__ = (
        "_by_key",
        "_consistency",
        "_file_keys",
        "_files_with_i18n",
        "_lock",
        "_occurrences",
        "_reported",
        "_violations",
    )

    def __init__(self, consistency: ConsistencyLevel | str = ConsistencyLevel.WARN) -> None:
        """Initialize an empty store.

        Args:
            consistency: Reaction to metadata drift (off, warn, error)
        """
        self._consistency = ConsistencyLevel(consistency)
        self._occurrences: list[Occurrence] = []
        self._by_key: dict[str, list[Occurrence]] = {}
        self._file_keys: dict[str, tuple[str, ...]] = {}
        self._files_with_i18n: set[str] = set()
        self._reported: set[tuple[str, MetaField]] = set()
        self._violations: list[ConsistencyViolation] = []
        self._lock = threading.Lock()

    @property
    def consistency(self) -> ConsistencyLevel:
        """Configured consistency level."""
        return self._consistency

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def add_file_keys(self, file: str, occurrences: Iterable[Occurrence]) -> None:
        """Replace every occurrence attributed to file with a new list.

        The file is recorded as performing extraction even when the list
        is empty, so chunks containing it still count as carrying
        translations.

        Args:
            file: Source file identifier
            occurrences: Call sites found in the file, in source order
        """
        new = list(occurrences)
        with self._lock:
            previous = self._file_keys.get(file)
            if previous is not None:
                self._drop_file(file)
                if len(previous) != len(new):
                    logger.debug("Keys in %s changed: %d -> %d", file, len(previous), len(new))

            self._files_with_i18n.add(file)
            self._append(new)
            self._file_keys[file] = tuple(o.key for o in new)

    def merge(self, other: KeyStore) -> None:
        """Fold another store into this one.

        File attributions from ``other`` win for files known to both;
        occurrence lists are concatenated and consistency-checked.
        """
        if other is self:
            return
        with other._lock:
            file_keys = dict(other._file_keys)
            files_with_i18n = set(other._files_with_i18n)
            occurrences = list(other._occurrences)
        with self._lock:
            self._file_keys.update(file_keys)
            self._files_with_i18n |= files_with_i18n
            self._append(occurrences)

    def _drop_file(self, file: str) -> None:
        # Lock held. Later occurrences of an affected key become its baseline.
        kept: list[Occurrence] = []
        stale: set[str] = set()
        for occurrence in self._occurrences:
            if occurrence.file == file:
                stale.add(occurrence.key)
            else:
                kept.append(occurrence)
        self._occurrences = kept
        for key in stale:
            remaining = [o for o in self._by_key[key] if o.file != file]
            if remaining:
                self._by_key[key] = remaining
            else:
                del self._by_key[key]

    def _append(self, incoming: list[Occurrence]) -> None:
        # Lock held. Each occurrence is checked against the first live
        # occurrence of its key, then indexed.
        for occurrence in incoming:
            bucket = self._by_key.setdefault(occurrence.key, [])
            if bucket and self._consistency is not ConsistencyLevel.OFF:
                self._check_consistency(bucket[0], occurrence)
            bucket.append(occurrence)
            self._occurrences.append(occurrence)

    def _check_consistency(self, first: Occurrence, occurrence: Occurrence) -> None:
        for field in MetaField:
            if (occurrence.key, field) in self._reported:
                continue
            expected = _field_value(first.meta, field)
            actual = _field_value(occurrence.meta, field)
            if expected == actual:
                continue
            self._reported.add((occurrence.key, field))
            self._report(
                ConsistencyViolation(
                    key=occurrence.key,
                    field=str(field),
                    first_value=expected,
                    first_location=first.location,
                    conflicting_value=actual,
                    conflicting_location=occurrence.location,
                )
            )

    def _report(self, violation: ConsistencyViolation) -> None:
        if self._consistency is ConsistencyLevel.ERROR:
            logger.error("Inconsistent translation metadata: %s", violation.describe())
            self._violations.append(violation)
        else:
            logger.warning("Inconsistent translation metadata: %s", violation.describe())

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    @property
    def extracted_keys(self) -> tuple[ExtractedKey, ...]:
        """One entry per distinct live key, in first-appearance order.

        Each entry carries the metadata of the last occurrence added for
        that key and every distinct ``file:line`` it was seen at.
        """
        with self._lock:
            occurrences = list(self._occurrences)

        metas: dict[str, TranslationMeta] = {}
        files: dict[str, dict[str, None]] = {}
        for occurrence in occurrences:
            metas[occurrence.key] = occurrence.meta
            files.setdefault(occurrence.key, {})[occurrence.location] = None
        return tuple(
            ExtractedKey(key=key, meta=meta, files=tuple(files[key]))
            for key, meta in metas.items()
        )

    @property
    def occurrences(self) -> tuple[Occurrence, ...]:
        """All live occurrences in insertion order."""
        with self._lock:
            return tuple(self._occurrences)

    @property
    def file_to_keys(self) -> Mapping[str, tuple[str, ...]]:
        """File -> keys it uses, in source order (snapshot)."""
        with self._lock:
            return MappingProxyType(dict(self._file_keys))

    @property
    def files_with_i18n(self) -> frozenset[str]:
        """Files that performed extraction, including those with no keys."""
        with self._lock:
            return frozenset(self._files_with_i18n)

    @property
    def unique_key_count(self) -> int:
        """Number of distinct live keys."""
        with self._lock:
            return len(self._by_key)

    @property
    def duplicate_count(self) -> int:
        """Live occurrences beyond the first of each key."""
        with self._lock:
            return len(self._occurrences) - len(self._by_key)

    @property
    def violations(self) -> tuple[ConsistencyViolation, ...]:
        """Violations recorded in ERROR mode, in detection order."""
        with self._lock:
            return tuple(self._violations)

    def raise_for_violations(self) -> None:
        """Fail the build step if ERROR mode recorded any violation.

        Raises:
            ConsistencyError: With every recorded violation
        """
        violations = self.violations
        if violations:
            raise ConsistencyError(violations)
