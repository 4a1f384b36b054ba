"""
Accumulated spot store.

Spots from successive polls are merged by identity (call, freq, spotter),
aged out by the retention window and capped in size. Every mutation runs
under one lock, so readers see either the state before a poll or the state
after its merge and eviction, never anything in between.
"""

import logging
import threading
import time
from dataclasses import replace
from typing import Dict, Iterable, List, Optional, Tuple

from models import Spot

logger = logging.getLogger(__name__)

SpotKey = Tuple[str, str, str]


class SpotStore:
    """Thread-safe spot accumulator with retention and size cap."""

    def __init__(self, retention_minutes: int = 30, max_size: int = 200):
        if retention_minutes <= 0:
            raise ValueError("retention_minutes must be positive")
        if max_size <= 0:
            raise ValueError("max_size must be positive")
        self.retention_minutes = retention_minutes
        self.max_size = max_size
        self._spots: Dict[SpotKey, Spot] = {}
        self._lock = threading.RLock()
        self._issued_sequence = 0
        self._applied_sequence = 0
        self.last_merge: Optional[float] = None
        self.rejected_merges = 0

    @property
    def retention_seconds(self) -> float:
        return self.retention_minutes * 60

    def next_sequence(self) -> int:
        """Reserve a sequence number for a poll that is about to start."""
        with self._lock:
            self._issued_sequence += 1
            return self._issued_sequence

    @property
    def applied_sequence(self) -> int:
        return self._applied_sequence

    def merge(self, batch: Iterable[Spot], seq: int, now: Optional[float] = None) -> bool:
        """Merge one poll's batch, then evict.

        A batch whose ``seq`` is not newer than the last applied one came from
        a poll that finished late, and is discarded. Returns True if applied.
        """
        now = time.time() if now is None else now

        with self._lock:
            if seq <= self._applied_sequence:
                self.rejected_merges += 1
                logger.debug(f"Discarding out-of-order poll {seq} (applied {self._applied_sequence})")
                return False

            self._applied_sequence = seq
            for spot in batch:
                key = spot.key
                existing = self._spots.get(key)
                if existing is None:
                    self._spots[key] = replace(spot, last_seen=now)
                else:
                    existing.comment = spot.comment or existing.comment
                    existing.time = spot.time or existing.time
                    existing.source = spot.source or existing.source
                    existing.spotter_grid = spot.spotter_grid or existing.spotter_grid
                    existing.dx_grid = spot.dx_grid or existing.dx_grid
                    existing.last_seen = now

            self._evict_locked(now)
            self.last_merge = now
            return True

    def set_retention(self, minutes: int, now: Optional[float] = None) -> int:
        """Change the retention window and evict immediately.

        Returns the number of spots removed.
        """
        if minutes <= 0:
            raise ValueError("retention minutes must be positive")
        with self._lock:
            self.retention_minutes = minutes
            return self._evict_locked(time.time() if now is None else now)

    def evict(self, now: Optional[float] = None) -> int:
        with self._lock:
            return self._evict_locked(time.time() if now is None else now)

    def _evict_locked(self, now: float) -> int:
        cutoff = now - self.retention_seconds
        stale = [key for key, spot in self._spots.items() if spot.last_seen < cutoff]
        for key in stale:
            del self._spots[key]

        overflow = len(self._spots) - self.max_size
        if overflow > 0:
            oldest = sorted(self._spots.items(), key=lambda item: item[1].last_seen)[:overflow]
            for key, _ in oldest:
                del self._spots[key]

        removed = len(stale) + max(0, overflow)
        if removed:
            logger.debug(f"Evicted {removed} spots ({len(stale)} stale, {max(0, overflow)} over cap)")
        return removed

    def snapshot(self) -> List[Spot]:
        """Copies of the current spots, newest first."""
        with self._lock:
            spots = [replace(spot) for spot in self._spots.values()]
        spots.sort(key=lambda spot: spot.last_seen, reverse=True)
        return spots

    def stats(self) -> Dict:
        with self._lock:
            return {
                'total_spots': len(self._spots),
                'retention_minutes': self.retention_minutes,
                'max_size': self.max_size,
                'sequence': self._applied_sequence,
                'rejected_merges': self.rejected_merges,
                'last_merge': self.last_merge,
            }

    def clear(self):
        with self._lock:
            self._spots.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._spots)
