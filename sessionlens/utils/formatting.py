"""Plain-text formatting helpers for report rendering."""

from datetime import datetime


def fmt_duration(ms: int) -> str:
    """Format milliseconds as ``"3m05s"``, ``"3m"`` or ``"42s"``."""
    total_seconds = max(0, int(ms)) // 1000
    minutes, seconds = divmod(total_seconds, 60)
    if minutes > 0:
        return f"{minutes}m{seconds:02d}s" if seconds > 0 else f"{minutes}m"
    return f"{seconds}s"


def fmt_time(t: int) -> str:
    """Format epoch milliseconds as local ``HH:MM:SS``."""
    return datetime.fromtimestamp(t / 1000).strftime("%H:%M:%S")


def truncate(text: str, max_len: int) -> str:
    """Truncate text to max_len characters, ending with ``...`` when cut."""
    if len(text) <= max_len:
        return text
    return text[: max_len - 3] + "..."
