"""Shared utilities for sessionlens."""

from .datetime_utils import ms_to_datetime, ms_to_seconds, to_git_date
from .formatting import fmt_duration, fmt_time, truncate

__all__ = [
    "fmt_duration",
    "fmt_time",
    "ms_to_datetime",
    "ms_to_seconds",
    "to_git_date",
    "truncate",
]
