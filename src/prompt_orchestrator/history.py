"""Bounded, append-only history of completed orchestrations.

The store is shared by every run of one orchestrator. Appends are serialized
with a lock and readers always get a tuple snapshot, so a reader never
observes a partially applied eviction.
"""

from __future__ import annotations

from collections import deque
from collections.abc import Callable
import threading

from prompt_orchestrator.core.types import HistoryEntry

DEFAULT_CAPACITY = 100


class HistoryStore:
    """FIFO store holding at most ``capacity`` entries; oldest evicted first."""

    def __init__(self, capacity: int = DEFAULT_CAPACITY) -> None:
        """Create an empty store.

        Args:
            capacity: Maximum number of entries kept. Must be at least 1.
        """
        if not isinstance(capacity, int) or isinstance(capacity, bool) or capacity < 1:
            raise ValueError(f"capacity must be a positive integer, got {capacity!r}")
        self._capacity = capacity
        self._entries: deque[HistoryEntry] = deque()
        self._lock = threading.Lock()

    @property
    def capacity(self) -> int:
        """Maximum number of entries the store keeps."""
        return self._capacity

    def append(self, entry: HistoryEntry) -> None:
        """Add an entry at the tail, evicting from the head when over capacity."""
        with self._lock:
            self._entries.append(entry)
            while len(self._entries) > self._capacity:
                self._entries.popleft()

    def query(
        self, predicate: Callable[[HistoryEntry], bool] | None = None
    ) -> tuple[HistoryEntry, ...]:
        """Return a snapshot of the entries, oldest first, optionally filtered."""
        with self._lock:
            snapshot = tuple(self._entries)
        if predicate is None:
            return snapshot
        return tuple(e for e in snapshot if predicate(e))

    def high_scoring(self, threshold: float) -> tuple[HistoryEntry, ...]:
        """Entries whose score is at or above ``threshold``."""
        return self.query(lambda e: e.score >= threshold)

    def count(self, predicate: Callable[[HistoryEntry], bool] | None = None) -> int:
        """Number of entries matching ``predicate`` (all entries when None)."""
        return len(self.query(predicate))

    def resize(self, capacity: int) -> None:
        """Change the capacity, evicting the oldest entries if it shrinks."""
        if not isinstance(capacity, int) or isinstance(capacity, bool) or capacity < 1:
            raise ValueError(f"capacity must be a positive integer, got {capacity!r}")
        with self._lock:
            self._capacity = capacity
            while len(self._entries) > capacity:
                self._entries.popleft()

    def clear(self) -> None:
        """Drop every entry."""
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __repr__(self) -> str:
        return f"HistoryStore(size={len(self)}, capacity={self._capacity})"
