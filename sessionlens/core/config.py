"""Tunables shared by the distillation components."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass

logger = logging.getLogger(__name__)

ENV_PREFIX = "SESSIONLENS_"


def _env_int(name: str, default: int) -> int:
    value = os.environ.get(ENV_PREFIX + name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        logger.warning("Ignoring non-integer %s%s=%r", ENV_PREFIX, name, value)
        return default


@dataclass(frozen=True)
class DistillConfig:
    """Distillation limits and thresholds."""

    timeline_cap: int = 500
    idle_threshold_ms: int = 300_000
    commit_window_buffer_ms: int = 60_000
    git_timeout_seconds: int = 30

    @classmethod
    def from_dict(cls, data: dict) -> DistillConfig:
        return cls(
            timeline_cap=int(data.get("timeline_cap", 500) or 500),
            idle_threshold_ms=int(data.get("idle_threshold_ms", 300_000) or 300_000),
            commit_window_buffer_ms=int(data.get("commit_window_buffer_ms", 60_000) or 0),
            git_timeout_seconds=int(data.get("git_timeout_seconds", 30) or 30),
        )

    @classmethod
    def from_env(cls) -> DistillConfig:
        """Build a config from ``SESSIONLENS_*`` environment variables."""
        defaults = cls()
        return cls(
            timeline_cap=_env_int("TIMELINE_CAP", defaults.timeline_cap),
            idle_threshold_ms=_env_int("IDLE_THRESHOLD_MS", defaults.idle_threshold_ms),
            commit_window_buffer_ms=_env_int(
                "COMMIT_WINDOW_BUFFER_MS", defaults.commit_window_buffer_ms
            ),
            git_timeout_seconds=_env_int("GIT_TIMEOUT_SECONDS", defaults.git_timeout_seconds),
        )

    def to_dict(self) -> dict:
        return {
            "timeline_cap": self.timeline_cap,
            "idle_threshold_ms": self.idle_threshold_ms,
            "commit_window_buffer_ms": self.commit_window_buffer_ms,
            "git_timeout_seconds": self.git_timeout_seconds,
        }


DEFAULT_CONFIG = DistillConfig()
