"""
TrackingSession — the single owner that drives one PathStabilizer.

A session binds a fix source (on_fix / on_fix_error callbacks) to a
stabilizer and ticks it on a fixed cadence from an asyncio task. Fixes are
pushed synchronously and never wait on a pending snap call.

stop() ends the timer loop without cancelling a snap call already in
flight: the loop exits once the current tick returns, and the result of that
call is dropped because stop() has already discarded the session state.

TrackingSessionRegistry keeps live sessions by id for the HTTP surface.
A session with an idle TTL stops itself once no fix, flush or read has
touched it for that long. The registry evicts stopped or expired sessions
on lookup and before admitting new ones.
"""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from datetime import datetime, timezone
from typing import Any, Callable

from services.safepath.geo.types import GeoPoint
from services.safepath.tracking.stabilizer import PathStabilizer, TickOutcome

logger = logging.getLogger(__name__)

DEFAULT_SNAP_INTERVAL_S = 5.0


class TrackingCapacityError(Exception):
    """Raised when the registry already holds max_sessions live sessions."""


class TrackingSession:
    def __init__(
        self,
        stabilizer: PathStabilizer,
        interval_s: float = DEFAULT_SNAP_INTERVAL_S,
        session_id: str | None = None,
        idle_ttl_s: float | None = None,
    ) -> None:
        if interval_s <= 0:
            raise ValueError("interval_s must be > 0")
        if idle_ttl_s is not None and idle_ttl_s <= 0:
            raise ValueError("idle_ttl_s must be > 0")
        self.session_id = session_id or str(uuid.uuid4())
        self.created_at = datetime.now(timezone.utc)
        self._stabilizer = stabilizer
        self._interval_s = interval_s
        self._idle_ttl_s = idle_ttl_s
        self._last_seen = time.monotonic()
        self._stop_event = asyncio.Event()
        self._task: asyncio.Task | None = None
        self._stopped = False
        self.fix_errors = 0
        self.last_fix_error: str | None = None
        self.last_outcome: TickOutcome | None = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done() and not self._stopped

    @property
    def stopped(self) -> bool:
        return self._stopped

    @property
    def idle_s(self) -> float:
        """Seconds since a client last pushed, flushed or read this session."""
        return time.monotonic() - self._last_seen

    @property
    def expired(self) -> bool:
        return self._idle_ttl_s is not None and self.idle_s >= self._idle_ttl_s

    def touch(self) -> None:
        self._last_seen = time.monotonic()

    def start(self) -> None:
        if self._stopped:
            raise RuntimeError(f"Tracking session {self.session_id} was stopped")
        if self._task is not None:
            return
        self._task = asyncio.create_task(self._run(), name=f"tracking-{self.session_id}")
        logger.info("Tracking session %s started (interval=%.1fs)", self.session_id, self._interval_s)

    def stop(self) -> None:
        """Stop ticking and discard path state. Idempotent."""
        if self._stopped:
            return
        self._stopped = True
        self._stop_event.set()
        self._stabilizer.reset()
        logger.info("Tracking session %s stopped", self.session_id)

    async def aclose(self) -> None:
        """stop() and wait for the timer loop (and any in-flight tick) to finish."""
        self.stop()
        if self._task is not None:
            await self._task

    async def _run(self) -> None:
        while not self._stop_event.is_set():
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self._interval_s)
            except asyncio.TimeoutError:
                if self.expired:
                    logger.info("Tracking session %s idle for %.0fs, stopping", self.session_id, self.idle_s)
                    self.stop()
                    return
                await self._tick()

    async def _tick(self) -> TickOutcome | None:
        try:
            outcome = await self._stabilizer.tick()
        except asyncio.CancelledError:
            raise
        except Exception:
            # tick() absorbs snap failures; anything here is a bug, keep the loop alive
            logger.exception("Stabilizer tick failed for session %s", self.session_id)
            return None
        self.last_outcome = outcome
        return outcome

    # ------------------------------------------------------------------
    # Fix source callbacks
    # ------------------------------------------------------------------

    def on_fix(self, point: GeoPoint) -> bool:
        """Accept one raw fix. Returns False when the session is already stopped."""
        if self._stopped:
            logger.debug("Ignoring fix for stopped session %s", self.session_id)
            return False
        self.touch()
        self._stabilizer.push(point)
        return True

    def on_fix_error(self, message: str) -> None:
        self.touch()
        self.fix_errors += 1
        self.last_fix_error = message
        logger.warning("Fix source error for session %s: %s", self.session_id, message)

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def flush(self) -> TickOutcome:
        """On-demand tick. Respects single-flight like the timer does."""
        self.touch()
        outcome = await self._stabilizer.tick()
        self.last_outcome = outcome
        return outcome

    def recenter(self) -> None:
        """Discard in-memory path state and keep tracking."""
        self.touch()
        self._stabilizer.reset()

    def snapshot(self) -> tuple[GeoPoint, ...]:
        self.touch()
        return self._stabilizer.snapshot()

    def status(self) -> dict[str, Any]:
        return {
            "sessionId": self.session_id,
            "running": self.running,
            "inFlight": self._stabilizer.in_flight,
            "pending": self._stabilizer.pending_count,
            "dropped": self._stabilizer.dropped_count,
            "pathLength": len(self._stabilizer.snapshot()),
            "fixErrors": self.fix_errors,
            "lastFixError": self.last_fix_error,
            "lastOutcome": self.last_outcome.value if self.last_outcome else None,
        }


class TrackingSessionRegistry:
    """
    In-process registry of live tracking sessions.

    Usage:
        registry = TrackingSessionRegistry(lambda: PathStabilizer(maps.snap_to_roads))
        session = registry.create()
        registry.get(session.session_id).on_fix(point)
        registry.stop(session.session_id)
    """

    def __init__(
        self,
        stabilizer_factory: Callable[[], PathStabilizer],
        interval_s: float = DEFAULT_SNAP_INTERVAL_S,
        max_sessions: int = 500,
        idle_ttl_s: float | None = None,
    ) -> None:
        self._stabilizer_factory = stabilizer_factory
        self._interval_s = interval_s
        self._idle_ttl_s = idle_ttl_s
        self._max_sessions = max_sessions
        self._sessions: dict[str, TrackingSession] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def create(self, start: bool = True) -> TrackingSession:
        self.evict_idle()
        if len(self._sessions) >= self._max_sessions:
            raise TrackingCapacityError(f"max_sessions={self._max_sessions} reached")
        session = TrackingSession(
            self._stabilizer_factory(),
            interval_s=self._interval_s,
            idle_ttl_s=self._idle_ttl_s,
        )
        self._sessions[session.session_id] = session
        if start:
            session.start()
        return session

    def get(self, session_id: str) -> TrackingSession | None:
        session = self._sessions.get(session_id)
        if session is not None and (session.stopped or session.expired):
            self._evict(session)
            return None
        return session

    def evict_idle(self) -> int:
        """Drop sessions that stopped themselves or outlived the idle TTL."""
        idle = [s for s in self._sessions.values() if s.stopped or s.expired]
        for session in idle:
            self._evict(session)
        if idle:
            logger.info("Evicted %d idle tracking sessions", len(idle))
        return len(idle)

    def _evict(self, session: TrackingSession) -> None:
        self._sessions.pop(session.session_id, None)
        session.stop()

    def stop(self, session_id: str) -> bool:
        session = self._sessions.pop(session_id, None)
        if session is None:
            return False
        session.stop()
        return True

    async def stop_all(self) -> None:
        sessions = list(self._sessions.values())
        self._sessions.clear()
        for session in sessions:
            await session.aclose()
