"""
RawSampleBuffer — FIFO of raw GPS fixes awaiting road-snapping.

push() may be called from the fix source's delivery context at any time,
including from another thread and while a drain is in progress. Every
operation holds one lock, so a drain is an all-or-nothing snapshot: a sample
pushed during a drain lands in the next drain, never the current one.

Backpressure: when max_size is set and the buffer is full, the oldest
samples are dropped and counted. max_size=None means unbounded.
"""

from __future__ import annotations

import logging
import threading
from collections import deque
from typing import Iterable

from services.safepath.geo.types import GeoPoint

logger = logging.getLogger(__name__)


class RawSampleBuffer:
    def __init__(self, max_size: int | None = None) -> None:
        if max_size is not None and max_size < 1:
            raise ValueError("max_size must be >= 1 or None")
        self._samples: deque[GeoPoint] = deque()
        self._lock = threading.Lock()
        self._max_size = max_size
        self._dropped = 0

    def __len__(self) -> int:
        with self._lock:
            return len(self._samples)

    @property
    def dropped_count(self) -> int:
        """Samples discarded by the backpressure bound since creation."""
        return self._dropped

    def push(self, sample: GeoPoint) -> None:
        with self._lock:
            self._samples.append(sample)
            self._enforce_bound()

    def drain_all(self) -> list[GeoPoint]:
        """Remove and return every queued sample in arrival order."""
        with self._lock:
            drained = list(self._samples)
            self._samples.clear()
        return drained

    def drain(self, limit: int) -> list[GeoPoint]:
        """Remove and return at most `limit` of the oldest samples."""
        if limit < 0:
            raise ValueError("limit must be >= 0")
        with self._lock:
            count = min(limit, len(self._samples))
            return [self._samples.popleft() for _ in range(count)]

    def requeue_front(self, samples: Iterable[GeoPoint]) -> None:
        """
        Put previously drained samples back ahead of everything queued since.

        Original order is preserved so a retried batch is resent exactly as
        it was first drained.
        """
        batch = list(samples)
        if not batch:
            return
        with self._lock:
            self._samples.extendleft(reversed(batch))
            self._enforce_bound()

    def clear(self) -> int:
        """Discard everything. Returns the number of samples discarded."""
        with self._lock:
            count = len(self._samples)
            self._samples.clear()
        return count

    def _enforce_bound(self) -> None:
        # Caller holds the lock
        if self._max_size is None:
            return
        overflow = len(self._samples) - self._max_size
        if overflow <= 0:
            return
        for _ in range(overflow):
            self._samples.popleft()
        self._dropped += overflow
        logger.warning(
            "Raw sample buffer full (max_size=%d); dropped %d oldest samples (total dropped=%d)",
            self._max_size,
            overflow,
            self._dropped,
        )
