"""Tests for effective duration analysis."""

import random

from sessionlens.core.duration import (
    IDLE_THRESHOLD_MS,
    DurationResult,
    compute_effective_duration,
    compute_event_duration,
)


def test_empty_input():
    assert compute_effective_duration([]) == DurationResult(0, 0, 0, 0)


def test_single_timestamp():
    result = compute_effective_duration([1234])

    assert result.wall_duration_ms == 0
    assert result.effective_duration_ms == 0
    assert result.effective_end_t == 1234


def test_no_idle_gaps():
    result = compute_effective_duration([0, 60_000, 120_000])

    assert result.wall_duration_ms == 120_000
    assert result.idle_gaps_ms == 0
    assert result.effective_duration_ms == 120_000
    assert result.effective_end_t == 120_000


def test_idle_gap_in_the_middle():
    timestamps = [0, 10_000, 10_000 + 600_000, 10_000 + 600_000 + 5_000]

    result = compute_effective_duration(timestamps)

    assert result.wall_duration_ms == 615_000
    assert result.idle_gaps_ms == 600_000
    assert result.effective_duration_ms == 15_000
    assert result.idle_gaps_ms + result.effective_duration_ms == result.wall_duration_ms
    assert result.effective_end_t == 615_000


def test_gap_equal_to_threshold_is_not_idle():
    at_threshold = compute_effective_duration([0, IDLE_THRESHOLD_MS])
    over_threshold = compute_effective_duration([0, IDLE_THRESHOLD_MS + 1])

    assert at_threshold.idle_gaps_ms == 0
    assert over_threshold.idle_gaps_ms == IDLE_THRESHOLD_MS + 1


def test_trailing_idle_tail_moves_effective_end():
    hour = 3_600_000
    result = compute_effective_duration([0, 30_000, 60_000, 60_000 + hour, 60_000 + 2 * hour])

    assert result.effective_end_t == 60_000
    assert result.idle_gaps_ms == 2 * hour
    assert result.effective_duration_ms == 60_000


def test_order_independent():
    timestamps = [0, 1_000, 400_000, 401_000, 2_000_000, 2_000_500]
    shuffled = timestamps[:]
    random.Random(7).shuffle(shuffled)

    assert compute_effective_duration(shuffled) == compute_effective_duration(timestamps)


def test_custom_threshold():
    result = compute_effective_duration([0, 2_000, 3_000], idle_threshold_ms=1_500)

    assert result.idle_gaps_ms == 2_000
    assert result.effective_duration_ms == 1_000


def test_event_duration_uses_event_times():
    events = [
        {"t": 5_000, "event": "SessionStart"},
        {"t": 1_000, "event": "PreToolUse", "data": {"tool_name": "Read"}},
        {"t": 9_000, "event": "Stop"},
    ]

    result = compute_event_duration(events)

    assert result.wall_duration_ms == 8_000
    assert result.effective_end_t == 9_000


def test_to_dict():
    assert compute_effective_duration([0, 10]).to_dict() == {
        "wall_duration_ms": 10,
        "idle_gaps_ms": 0,
        "effective_duration_ms": 10,
        "effective_end_t": 10,
    }
