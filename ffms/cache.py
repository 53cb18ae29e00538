"""
In-memory flag cache.
"""

import threading
from dataclasses import dataclass
from typing import Dict, Iterable, Optional

from ffms.records import FlagRecord


@dataclass
class CacheStats:
    """Cache statistics."""

    hits: int = 0
    misses: int = 0
    updates: int = 0
    size: int = 0


class FlagCache:
    """
    Mapping of flag name to last-known state.

    Features:
    - Upsert-only mutation, so repeated loads merge instead of replacing
    - Copies handed out by snapshot(), never the live mapping
    - Lock-guarded, so reads are safe alongside channel updates
    - Hit/miss statistics
    """

    def __init__(self):
        self._flags: Dict[str, bool] = {}
        self._stats = CacheStats()
        self._lock = threading.Lock()

    def upsert(self, name: str, state: bool) -> bool:
        """
        Insert or replace a flag state.

        Args:
            name: Flag name
            state: Flag state

        Returns:
            True if the stored value changed
        """
        if not isinstance(name, str) or not name:
            raise TypeError(f"Flag name must be a non-empty string, got {name!r}")
        if type(state) is not bool:
            raise TypeError(f"Flag state must be a bool, got {state!r}")

        with self._lock:
            changed = self._flags.get(name) is not state
            self._flags[name] = state
            self._stats.updates += 1
            self._stats.size = len(self._flags)
        return changed

    def upsert_record(self, record: FlagRecord) -> bool:
        """Insert or replace a flag from a parsed record."""
        return self.upsert(record.name, record.state)

    def upsert_all(self, records: Iterable[FlagRecord]) -> int:
        """
        Merge a batch of records.

        Returns:
            Number of records applied
        """
        count = 0
        for record in records:
            self.upsert_record(record)
            count += 1
        return count

    def get(self, name: str) -> Optional[bool]:
        """
        Look up a flag.

        Args:
            name: Flag name

        Returns:
            The cached state, or None if the flag is unknown
        """
        with self._lock:
            state = self._flags.get(name)
            if state is None:
                self._stats.misses += 1
            else:
                self._stats.hits += 1
        return state

    def __contains__(self, name: object) -> bool:
        with self._lock:
            return name in self._flags

    def __len__(self) -> int:
        with self._lock:
            return len(self._flags)

    def snapshot(self) -> Dict[str, bool]:
        """Return a copy of all cached flags."""
        with self._lock:
            return dict(self._flags)

    def clear(self) -> None:
        """Clear all cached data."""
        with self._lock:
            self._flags.clear()
            self._stats.size = 0

    def get_stats(self) -> CacheStats:
        """Get cache statistics."""
        with self._lock:
            return CacheStats(
                hits=self._stats.hits,
                misses=self._stats.misses,
                updates=self._stats.updates,
                size=self._stats.size,
            )

    def get_hit_rate(self) -> float:
        """Get hit rate (hits / (hits + misses))."""
        stats = self.get_stats()
        total = stats.hits + stats.misses
        if total == 0:
            return 0.0
        return stats.hits / total
