"""Core distillation logic for sessionlens."""

from .agents import resolve_agent_name, short_agent_id
from .backtrack_report import (
    BacktrackAnalyzer,
    BacktrackSummary,
    BacktrackTypeGroup,
    HotFile,
    classify_severity,
    summarize_backtracks,
)
from .backtracks import BacktrackIncident, extract_backtracks
from .config import DEFAULT_CONFIG, DistillConfig
from .diff_correlator import (
    DiffCorrelator,
    DiffHunk,
    GitDiffResult,
    WorkingTreeChange,
    extract_git_diff,
    extract_net_changes,
    parse_numstat_output,
)
from .duration import DurationResult, compute_effective_duration, compute_event_duration
from .events import (
    HookEvent,
    LinkEvent,
    ReasoningNote,
    UserMessage,
    parse_event,
    parse_events,
    parse_links,
    parse_reasoning,
    parse_user_messages,
)
from .git_utils import GitCommandError, GitCommit, GitRepo
from .timeline import (
    AgentLifetime,
    Phase,
    TimelineBuilder,
    TimelineEntry,
    extract_agent_lifetimes,
    extract_timeline,
)

__all__ = [
    "DistillConfig",
    "DEFAULT_CONFIG",
    "HookEvent",
    "LinkEvent",
    "ReasoningNote",
    "UserMessage",
    "parse_event",
    "parse_events",
    "parse_links",
    "parse_reasoning",
    "parse_user_messages",
    "resolve_agent_name",
    "short_agent_id",
    "Phase",
    "TimelineBuilder",
    "TimelineEntry",
    "extract_timeline",
    "AgentLifetime",
    "extract_agent_lifetimes",
    "DurationResult",
    "compute_effective_duration",
    "compute_event_duration",
    "GitRepo",
    "GitCommit",
    "GitCommandError",
    "DiffCorrelator",
    "DiffHunk",
    "GitDiffResult",
    "WorkingTreeChange",
    "extract_git_diff",
    "extract_net_changes",
    "parse_numstat_output",
    "BacktrackIncident",
    "extract_backtracks",
    "BacktrackAnalyzer",
    "BacktrackSummary",
    "BacktrackTypeGroup",
    "HotFile",
    "classify_severity",
    "summarize_backtracks",
]
