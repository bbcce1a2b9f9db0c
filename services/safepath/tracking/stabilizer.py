"""
PathStabilizer — turns buffered raw fixes into a road-snapped path.

Each tick():
  1. No-op while a snap request is in flight (single-flight).
  2. Drain the buffer; an empty drain makes no network call.
  3. Request path = [seam] + drained samples, where the seam is the last
     point of the stabilized path. Resending it keeps consecutive snapped
     segments geometrically continuous.
  4. Non-empty result: splice it over the seam, path = path[:-1] + result.
  5. Empty result or any failure: requeue the drained samples at the front
     of the buffer and leave the path untouched, so nothing is lost.
  6. in_flight is cleared on every exit path.

The Roads API accepts at most 100 points per call, so one tick drains at most
max_points - len(seam) samples; the remainder stays queued, in order, for the
next tick.

reset() discards the buffer and path but does not cancel an in-flight call.
in_flight stays set until that call returns, and its result is dropped
because it belongs to the discarded path.

The stabilizer owns its state exclusively. Readers get snapshot() tuples,
never the live list. tick() never raises except on task cancellation.
"""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Awaitable, Callable

from services.safepath.geo.types import GeoPoint
from services.safepath.maps.client import SNAP_MAX_POINTS
from services.safepath.maps.errors import MapsTransportError
from services.safepath.tracking.buffer import RawSampleBuffer

logger = logging.getLogger(__name__)

SnapFn = Callable[[list[GeoPoint]], Awaitable[list[GeoPoint]]]


class TickOutcome(str, Enum):
    SKIPPED = "skipped"      # a snap request was already in flight
    IDLE = "idle"            # nothing buffered, no request made
    SNAPPED = "snapped"      # result spliced into the path
    REQUEUED = "requeued"    # empty result or failure, samples put back
    DISCARDED = "discarded"  # result arrived after reset()


class PathStabilizer:
    """
    Usage:
        stabilizer = PathStabilizer(snap_fn=maps.snap_to_roads)
        stabilizer.push(GeoPoint(12.97, 77.59))
        await stabilizer.tick()
        path = stabilizer.snapshot()
    """

    def __init__(
        self,
        snap_fn: SnapFn,
        buffer: RawSampleBuffer | None = None,
        max_points: int = SNAP_MAX_POINTS,
    ) -> None:
        if max_points < 2:
            # Room for the seam plus at least one new sample
            raise ValueError("max_points must be >= 2")
        self._snap_fn = snap_fn
        self._buffer = buffer if buffer is not None else RawSampleBuffer()
        self._max_points = max_points
        self._path: list[GeoPoint] = []
        self._in_flight = False
        self._generation = 0

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    @property
    def pending_count(self) -> int:
        return len(self._buffer)

    @property
    def dropped_count(self) -> int:
        return self._buffer.dropped_count

    def push(self, sample: GeoPoint) -> None:
        self._buffer.push(sample)

    def snapshot(self) -> tuple[GeoPoint, ...]:
        return tuple(self._path)

    def reset(self) -> None:
        """Discard the buffer and the stabilized path. An in-flight call is left to finish."""
        discarded = self._buffer.clear()
        self._path = []
        self._generation += 1
        logger.info(
            "Path stabilizer reset: discarded %d buffered samples (in_flight=%s)",
            discarded,
            self._in_flight,
        )

    async def tick(self) -> TickOutcome:
        if self._in_flight:
            return TickOutcome.SKIPPED

        seam = self._path[-1:]
        batch = self._buffer.drain(self._max_points - len(seam))
        if not batch:
            return TickOutcome.IDLE

        generation = self._generation
        self._in_flight = True
        try:
            try:
                snapped = await self._snap_fn([*seam, *batch])
            except asyncio.CancelledError:
                if generation == self._generation:
                    self._buffer.requeue_front(batch)
                raise
            except MapsTransportError as exc:
                logger.warning("Road snap failed for %d samples, requeueing: %s", len(batch), exc)
                snapped = []
            except Exception:
                logger.exception("Road snap raised unexpectedly for %d samples, requeueing", len(batch))
                snapped = []

            if generation != self._generation:
                logger.info("Dropping snap result for %d samples that arrived after reset", len(batch))
                return TickOutcome.DISCARDED

            if not snapped:
                self._buffer.requeue_front(batch)
                return TickOutcome.REQUEUED

            # Splice over the seam: path[:-1] + snapped
            self._path[len(self._path) - len(seam):] = snapped
            logger.debug(
                "Snapped %d samples into %d points; path length=%d",
                len(batch),
                len(snapped),
                len(self._path),
            )
            return TickOutcome.SNAPPED
        finally:
            self._in_flight = False
