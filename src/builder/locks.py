"""
hotrun Named Locks.

Mutual exclusion keyed by name.
Requires Python 3.11+.
"""

import threading
from collections.abc import Iterator
from contextlib import contextmanager


class NamedLocker:
    """
    A registry of locks, one per name.

    Locks are created on first use and kept for the lifetime of the
    registry; the set of names is small (one per project).
    """

    def __init__(self) -> None:
        self._locks: dict[str, threading.Lock] = {}
        self._guard = threading.Lock()

    def _get(self, name: str) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(name)
            if lock is None:
                lock = self._locks[name] = threading.Lock()
            return lock

    @contextmanager
    def hold(self, name: str) -> Iterator[None]:
        """Hold the lock for name for the duration of the block."""
        lock = self._get(name)
        lock.acquire()
        try:
            yield
        finally:
            lock.release()

    def locked(self, name: str) -> bool:
        """Check if the lock for name is currently held."""
        with self._guard:
            lock = self._locks.get(name)
        return lock is not None and lock.locked()
