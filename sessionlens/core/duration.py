"""Wall, idle and effective session duration."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

from .events import parse_events

IDLE_THRESHOLD_MS = 300_000


@dataclass
class DurationResult:
    """Duration figures derived from a session's activity timestamps."""

    wall_duration_ms: int = 0
    idle_gaps_ms: int = 0
    effective_duration_ms: int = 0
    effective_end_t: int = 0

    def to_dict(self) -> dict:
        return {
            "wall_duration_ms": self.wall_duration_ms,
            "idle_gaps_ms": self.idle_gaps_ms,
            "effective_duration_ms": self.effective_duration_ms,
            "effective_end_t": self.effective_end_t,
        }


def compute_effective_duration(
    timestamps: Iterable[int],
    idle_threshold_ms: int = IDLE_THRESHOLD_MS,
) -> DurationResult:
    """Split the wall-clock span of ``timestamps`` into active and idle time.

    A gap between consecutive (sorted) timestamps is idle only when it is
    strictly greater than ``idle_threshold_ms``. Every idle gap is subtracted
    from the wall duration wherever it occurs. ``effective_end_t`` is the last
    timestamp before a trailing run of idle gaps, so a session left open for
    hours after its final action ends at that action.

    Input order does not matter.
    """
    ordered = sorted(timestamps)
    if not ordered:
        return DurationResult()
    if len(ordered) == 1:
        return DurationResult(effective_end_t=ordered[0])

    gaps = [later - earlier for earlier, later in zip(ordered, ordered[1:])]
    wall = ordered[-1] - ordered[0]
    idle = sum(gap for gap in gaps if gap > idle_threshold_ms)

    end_index = len(ordered) - 1
    while end_index > 0 and gaps[end_index - 1] > idle_threshold_ms:
        end_index -= 1

    return DurationResult(
        wall_duration_ms=wall,
        idle_gaps_ms=idle,
        effective_duration_ms=max(0, wall - idle),
        effective_end_t=ordered[end_index],
    )


def compute_event_duration(
    events: Iterable[Any],
    idle_threshold_ms: int = IDLE_THRESHOLD_MS,
) -> DurationResult:
    """Effective duration over the timestamps of a session's hook events."""
    return compute_effective_duration((event.t for event in parse_events(events)), idle_threshold_ms)
