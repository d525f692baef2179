"""Tests for backtrack summaries and rendering."""

import pytest

from sessionlens.core.backtrack_report import (
    BacktrackAnalyzer,
    classify_severity,
    find_costliest,
    find_hot_files,
    group_by_type,
    summarize_backtracks,
    type_label,
)
from sessionlens.core.backtracks import BacktrackIncident


def _incident(type_="failure_retry", attempts=2, start_t=0, end_t=1_000, **kwargs):
    return BacktrackIncident(
        type=type_, tool_name=kwargs.pop("tool_name", "Bash"), attempts=attempts, start_t=start_t, end_t=end_t, **kwargs
    )


class TestSeverity:
    @pytest.mark.parametrize(
        "count,expected",
        [(0, "none"), (1, "LOW"), (2, "LOW"), (3, "MEDIUM"), (4, "MEDIUM"), (5, "HIGH"), (40, "HIGH")],
    )
    def test_step_function(self, count, expected):
        assert classify_severity(count) == expected

    def test_monotonic(self):
        order = ["none", "LOW", "MEDIUM", "HIGH"]
        ranks = [order.index(classify_severity(n)) for n in range(12)]

        assert ranks == sorted(ranks)


def test_type_label():
    assert type_label("failure_retry") == "Failure Retry"
    assert type_label("iteration_struggle") == "Iteration Struggle"
    assert type_label("debugging_loop") == "Debugging Loop"


def test_group_by_type_in_first_seen_order():
    incidents = [
        _incident("debugging_loop", attempts=4, end_t=3_000),
        _incident("failure_retry", attempts=2, end_t=1_000),
        _incident("debugging_loop", attempts=3, end_t=2_000),
    ]

    groups = group_by_type(incidents)

    assert [(g.type, g.count, g.total_attempts, g.total_ms) for g in groups] == [
        ("debugging_loop", 2, 7, 5_000),
        ("failure_retry", 1, 2, 1_000),
    ]
    assert groups[0].label == "Debugging Loop"


def test_hot_files():
    incidents = [
        _incident(file_path="a.py"),
        _incident(file_path="b.py"),
        _incident(file_path="b.py"),
        _incident(file_path="a.py"),
        _incident(file_path="b.py"),
        _incident(file_path="c.py"),
        _incident(),
    ]

    hot = find_hot_files(incidents)

    assert [(h.file_path, h.label) for h in hot] == [("b.py", "3x"), ("a.py", "2x")]


def test_costliest_first_wins_ties():
    first = _incident(attempts=5, error_message="first")
    incidents = [_incident(attempts=2), first, _incident(attempts=5, error_message="second")]

    assert find_costliest(incidents) is first
    assert find_costliest([]) is None


class TestSummary:
    def test_time_share_end_to_end(self):
        summary = summarize_backtracks([_incident(start_t=0, end_t=15_000)], duration_ms=60_000)

        assert summary.backtrack_ms == 15_000
        assert summary.time_percent == 25.0
        assert summary.time_percent_label == "25.0%"
        assert summary.severity == "LOW"

    def test_zero_duration(self):
        summary = summarize_backtracks([_incident()], duration_ms=0)

        assert summary.time_percent == 0
        assert summary.time_percent_label == "0.0%"

    def test_empty(self):
        summary = summarize_backtracks([], duration_ms=1_000)

        assert summary.severity == "none"
        assert summary.to_dict()["incident_count"] == 0
        assert "costliest" not in summary.to_dict()

    def test_accepts_dicts(self):
        summary = summarize_backtracks(
            [{"type": "debugging_loop", "tool_name": "Bash", "attempts": 3, "start_t": 0, "end_t": 10}],
            duration_ms=100,
        )

        assert summary.costliest.type == "debugging_loop"
        assert summary.time_percent_label == "10.0%"


class TestRendering:
    def test_summary_text(self):
        incidents = [
            _incident(attempts=2, start_t=0, end_t=15_000, file_path="src/a.py", error_message="exit 1"),
            _incident("iteration_struggle", attempts=4, tool_name="Edit", start_t=20_000, end_t=20_000, file_path="src/a.py"),
        ]

        text = BacktrackAnalyzer(incidents, duration_ms=60_000).render_summary("0123456789abcdef")

        assert text.splitlines()[0] == "Session 01234567 -- Backtrack Analysis"
        assert "Severity: LOW (2 backtracks, 25.0% of session time)" in text
        assert "  Failure Retry: 1 occurrences, 2 total attempts, 15s" in text
        assert "Hot files (2+ backtracks):\n  src/a.py (2x)" in text
        assert "  Iteration Struggle on Edit -- 4 attempts" in text
        assert text.endswith("15s spent backtracking out of 1m total (25.0%)")
        assert "\x1b[" not in text

    def test_summary_costliest_error(self):
        text = BacktrackAnalyzer([_incident(error_message="permission denied")], 1_000).render_summary("s")

        assert '  Error: "permission denied"' in text
        assert "Hot files" not in text

    def test_detail_blocks(self):
        incidents = [
            _incident(attempts=2, file_path="src/a.py", error_message="boom", command="make", tool_use_ids=["x", "y"]),
            _incident("debugging_loop", attempts=3),
        ]

        text = BacktrackAnalyzer(incidents).render_detail("abc")
        first, second = text.split("\n---\n")

        assert text.startswith("Session abc -- 2 Backtracks (Detail)\n\n#1 Failure Retry")
        assert "  File:       src/a.py" in first
        assert "  Error:      boom" in first
        assert "  Command:    make" in first
        assert "  Tool calls: 2" in first
        assert second.startswith("#2 Debugging Loop")
        assert "  Attempts:   3" in second
        assert "File:" not in second
        assert "Error:" not in second
        assert "Command:" not in second

    def test_detail_empty(self):
        assert BacktrackAnalyzer([]).render_detail("abc") == "Session abc -- 0 Backtracks (Detail)\n"
