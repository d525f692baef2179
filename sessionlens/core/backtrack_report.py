"""Backtrack severity, hot-file and cost summaries for a session."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field

from ..utils import fmt_duration, fmt_time, truncate
from .backtracks import BacktrackIncident, coerce_incidents

SEVERITY_NONE = "none"
SEVERITY_LOW = "LOW"
SEVERITY_MEDIUM = "MEDIUM"
SEVERITY_HIGH = "HIGH"

HOT_FILE_MIN_INCIDENTS = 2
COSTLIEST_ERROR_LIMIT = 80
DETAIL_TEXT_LIMIT = 120
SESSION_PREFIX_LEN = 8


def classify_severity(count: int) -> str:
    """Step function over incident count: 0 none, 1-2 LOW, 3-4 MEDIUM, 5+ HIGH."""
    if count <= 0:
        return SEVERITY_NONE
    if count >= 5:
        return SEVERITY_HIGH
    if count >= 3:
        return SEVERITY_MEDIUM
    return SEVERITY_LOW


def type_label(incident_type: str) -> str:
    """``failure_retry`` -> ``Failure Retry``."""
    return " ".join(word.capitalize() for word in incident_type.split("_") if word)


@dataclass
class BacktrackTypeGroup:
    """Aggregate figures for one incident type."""

    type: str
    count: int = 0
    total_attempts: int = 0
    total_ms: int = 0

    @property
    def label(self) -> str:
        return type_label(self.type)

    def to_dict(self) -> dict:
        return {
            "type": self.type,
            "label": self.label,
            "count": self.count,
            "total_attempts": self.total_attempts,
            "total_ms": self.total_ms,
        }


@dataclass
class HotFile:
    """A file involved in several backtrack incidents."""

    file_path: str
    count: int

    @property
    def label(self) -> str:
        return f"{self.count}x"

    def to_dict(self) -> dict:
        return {"file_path": self.file_path, "count": self.count, "label": self.label}


def total_backtrack_ms(incidents: Iterable[BacktrackIncident]) -> int:
    return sum(incident.duration_ms for incident in incidents)


def group_by_type(incidents: Iterable[BacktrackIncident]) -> list[BacktrackTypeGroup]:
    """Group incidents by type, in order of first appearance."""
    groups: dict[str, BacktrackTypeGroup] = {}
    for incident in incidents:
        group = groups.setdefault(incident.type, BacktrackTypeGroup(type=incident.type))
        group.count += 1
        group.total_attempts += incident.attempts
        group.total_ms += incident.duration_ms
    return list(groups.values())


def find_hot_files(incidents: Iterable[BacktrackIncident]) -> list[HotFile]:
    """Files with two or more incidents, most frequent first."""
    counts: dict[str, int] = {}
    for incident in incidents:
        if incident.file_path:
            counts[incident.file_path] = counts.get(incident.file_path, 0) + 1
    hot = [HotFile(path, count) for path, count in counts.items() if count >= HOT_FILE_MIN_INCIDENTS]
    # Stable sort keeps first-seen order among equal counts.
    hot.sort(key=lambda h: h.count, reverse=True)
    return hot


def find_costliest(incidents: Iterable[BacktrackIncident]) -> BacktrackIncident | None:
    """Incident with the most attempts; the earliest one wins ties."""
    costliest = None
    for incident in incidents:
        if costliest is None or incident.attempts > costliest.attempts:
            costliest = incident
    return costliest


@dataclass
class BacktrackSummary:
    """Severity and cost figures over all of a session's backtracks."""

    severity: str = SEVERITY_NONE
    incident_count: int = 0
    groups: list[BacktrackTypeGroup] = field(default_factory=list)
    hot_files: list[HotFile] = field(default_factory=list)
    costliest: BacktrackIncident | None = None
    backtrack_ms: int = 0
    duration_ms: int = 0
    time_percent: float = 0.0

    @property
    def time_percent_label(self) -> str:
        return f"{self.time_percent:.1f}%"

    def to_dict(self) -> dict:
        result = {
            "severity": self.severity,
            "incident_count": self.incident_count,
            "groups": [g.to_dict() for g in self.groups],
            "hot_files": [h.to_dict() for h in self.hot_files],
            "backtrack_ms": self.backtrack_ms,
            "duration_ms": self.duration_ms,
            "time_percent": round(self.time_percent, 1),
        }
        if self.costliest is not None:
            result["costliest"] = self.costliest.to_dict()
        return result


class BacktrackAnalyzer:
    """Summarize and render the backtrack incidents of one session."""

    def __init__(self, incidents: Iterable[BacktrackIncident | dict], duration_ms: int = 0):
        self.incidents = coerce_incidents(incidents)
        self.duration_ms = max(0, int(duration_ms or 0))

    def summarize(self) -> BacktrackSummary:
        backtrack_ms = total_backtrack_ms(self.incidents)
        percent = (backtrack_ms / self.duration_ms) * 100 if self.duration_ms > 0 else 0.0
        return BacktrackSummary(
            severity=classify_severity(len(self.incidents)),
            incident_count=len(self.incidents),
            groups=group_by_type(self.incidents),
            hot_files=find_hot_files(self.incidents),
            costliest=find_costliest(self.incidents),
            backtrack_ms=backtrack_ms,
            duration_ms=self.duration_ms,
            time_percent=percent,
        )

    def render_summary(self, session_id: str) -> str:
        summary = self.summarize()
        lines = [
            f"Session {session_id[:SESSION_PREFIX_LEN]} -- Backtrack Analysis",
            "",
            f"Severity: {summary.severity} ({summary.incident_count} backtracks, "
            f"{summary.time_percent_label} of session time)",
            "",
            "Breakdown by type:",
        ]
        for group in summary.groups:
            lines.append(
                f"  {group.label}: {group.count} occurrences, "
                f"{group.total_attempts} total attempts, {fmt_duration(group.total_ms)}"
            )

        if summary.hot_files:
            lines.extend(["", "Hot files (2+ backtracks):"])
            lines.extend(f"  {hot.file_path} ({hot.label})" for hot in summary.hot_files)

        costliest = summary.costliest
        if costliest is not None:
            lines.extend(
                [
                    "",
                    "Costliest backtrack:",
                    f"  {type_label(costliest.type)} on {costliest.tool_name} -- {costliest.attempts} attempts",
                ]
            )
            if costliest.error_message:
                lines.append(f'  Error: "{truncate(costliest.error_message, COSTLIEST_ERROR_LIMIT)}"')

        lines.extend(
            [
                "",
                f"{fmt_duration(summary.backtrack_ms)} spent backtracking out of "
                f"{fmt_duration(summary.duration_ms)} total ({summary.time_percent_label})",
            ]
        )
        return "\n".join(lines)

    def render_detail(self, session_id: str) -> str:
        header = f"Session {session_id[:SESSION_PREFIX_LEN]} -- {len(self.incidents)} Backtracks (Detail)"
        blocks = [_render_incident(incident, index) for index, incident in enumerate(self.incidents, start=1)]
        return "\n".join([header, "", "\n---\n".join(blocks)]) if blocks else header + "\n"


def _render_incident(incident: BacktrackIncident, number: int) -> str:
    lines = [
        f"#{number} {type_label(incident.type)}",
        f"  Tool:       {incident.tool_name}",
    ]
    if incident.file_path:
        lines.append(f"  File:       {incident.file_path}")
    lines.extend(
        [
            f"  Attempts:   {incident.attempts}",
            f"  Duration:   {fmt_duration(incident.duration_ms)}",
            f"  Time:       {fmt_time(incident.start_t)} - {fmt_time(incident.end_t)}",
        ]
    )
    if incident.error_message:
        lines.append(f"  Error:      {truncate(incident.error_message, DETAIL_TEXT_LIMIT)}")
    if incident.command:
        lines.append(f"  Command:    {truncate(incident.command, DETAIL_TEXT_LIMIT)}")
    lines.append(f"  Tool calls: {len(incident.tool_use_ids)}")
    return "\n".join(lines)


def summarize_backtracks(
    incidents: Iterable[BacktrackIncident | dict],
    duration_ms: int = 0,
) -> BacktrackSummary:
    """Severity, per-type groups, hot files, costliest incident and time share."""
    return BacktrackAnalyzer(incidents, duration_ms).summarize()
