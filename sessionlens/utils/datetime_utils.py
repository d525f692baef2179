"""Shared datetime utilities."""

from __future__ import annotations

from datetime import datetime, timezone


def ms_to_datetime(t: int) -> datetime:
    """Convert epoch milliseconds to an aware UTC datetime."""
    return datetime.fromtimestamp(t / 1000, tz=timezone.utc)


def ms_to_seconds(t: int, round_up: bool = False) -> int:
    """Convert epoch milliseconds to whole epoch seconds.

    Git stores commit times with one-second resolution, so window edges are
    floored (start) or ceiled (end) before comparing against them.
    """
    if round_up:
        return -(-t // 1000)
    return t // 1000


def to_git_date(t: int) -> str:
    """Format epoch milliseconds for git's ``--since``/``--until`` options.

    Uses the explicit ``+0000`` offset so git does not interpret the value
    in the local timezone.
    """
    return ms_to_datetime(t).strftime("%Y-%m-%d %H:%M:%S +0000")
