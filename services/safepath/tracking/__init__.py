"""
Live path tracking package.

Raw fixes are buffered, batched through the road-snap service one request
at a time, and merged into a stabilized path owned by a single session.

Public API:
    from services.safepath.tracking import PathStabilizer, TrackingSession
"""

from services.safepath.tracking.buffer import RawSampleBuffer
from services.safepath.tracking.session import (
    TrackingCapacityError,
    TrackingSession,
    TrackingSessionRegistry,
)
from services.safepath.tracking.stabilizer import PathStabilizer, TickOutcome

__all__ = [
    "PathStabilizer",
    "RawSampleBuffer",
    "TickOutcome",
    "TrackingCapacityError",
    "TrackingSession",
    "TrackingSessionRegistry",
]
