"""Readers-writer lock guarding the engine's per-locale cache layers.

Many in-flight requests read the raw, merged, compiled, hash, script and
chunk-payload layers concurrently; ``set_translations`` and ``clear`` write
them rarely. The lock allows:
- Multiple concurrent readers (lookups, payload synthesis)
- One exclusive writer (publishing new raw translations, invalidation)
- Writer preference, so a translation refresh is not starved by traffic
- Reentrant read acquisition from the same thread

Read-to-write upgrade, write-to-read downgrade and write reentrancy all
raise RuntimeError. Engine write paths are single-level operations.

Python 3.13+.
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Generator

__all__ = ["RWLock"]


class RWLock:
    """Readers-writer lock with writer preference.

    Example:
        >>> lock = RWLock()
        >>> with lock.read():
        ...     with lock.read():  # reentrant
        ...         pass
        >>> with lock.write():
        ...     pass
    """

    __slots__ = ("_active_writer", "_condition", "_reader_threads", "_waiting_writers")

    def __init__(self) -> None:
        """Initialize an unlocked RWLock."""
        self._condition = threading.Condition(threading.Lock())
        # Thread ID holding the write lock, if any.
        self._active_writer: int | None = None
        self._waiting_writers: int = 0
        # Reader thread ID -> reentrant acquisition depth.
        self._reader_threads: dict[int, int] = {}

    @contextmanager
    def read(self) -> Generator[None]:
        """Hold the shared lock for the duration of the block.

        Raises:
            RuntimeError: If the thread holds the write lock
        """
        self._acquire_read()
        try:
            yield
        finally:
            self._release_read()

    @contextmanager
    def write(self) -> Generator[None]:
        """Hold the exclusive lock for the duration of the block.

        Raises:
            RuntimeError: If the thread holds a read lock or the write lock
        """
        self._acquire_write()
        try:
            yield
        finally:
            self._release_write()

    def _acquire_read(self) -> None:
        thread_id = threading.get_ident()
        with self._condition:
            if thread_id in self._reader_threads:
                self._reader_threads[thread_id] += 1
                return
            if self._active_writer == thread_id:
                msg = "Cannot acquire read lock while holding write lock"
                raise RuntimeError(msg)
            while self._active_writer is not None or self._waiting_writers > 0:
                self._condition.wait()
            self._reader_threads[thread_id] = 1

    def _release_read(self) -> None:
        thread_id = threading.get_ident()
        with self._condition:
            depth = self._reader_threads.get(thread_id)
            if depth is None:
                msg = "Thread does not hold read lock"
                raise RuntimeError(msg)
            if depth > 1:
                self._reader_threads[thread_id] = depth - 1
                return
            del self._reader_threads[thread_id]
            if not self._reader_threads:
                self._condition.notify_all()

    def _acquire_write(self) -> None:
        thread_id = threading.get_ident()
        with self._condition:
            if thread_id in self._reader_threads:
                msg = "Cannot upgrade read lock to write lock"
                raise RuntimeError(msg)
            if self._active_writer == thread_id:
                msg = "Cannot acquire write lock: already holding write lock"
                raise RuntimeError(msg)
            self._waiting_writers += 1
            try:
                while self._reader_threads or self._active_writer is not None:
                    self._condition.wait()
                self._active_writer = thread_id
            finally:
                self._waiting_writers -= 1

    def _release_write(self) -> None:
        thread_id = threading.get_ident()
        with self._condition:
            if self._active_writer != thread_id:
                msg = "Thread does not hold write lock"
                raise RuntimeError(msg)
            self._active_writer = None
            self._condition.notify_all()

    @property
    def reader_count(self) -> int:
        """Number of distinct threads currently holding the read lock."""
        with self._condition:
            return len(self._reader_threads)

    @property
    def writer_active(self) -> bool:
        """True while some thread holds the write lock."""
        with self._condition:
            return self._active_writer is not None
