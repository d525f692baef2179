"""Backtrack incidents and their detection from raw hook events."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any

from .events import EDIT_TOOLS, PostToolUseFailureEvent, PreToolUseEvent, parse_events

RETRY_LOOKAHEAD = 9
STRUGGLE_WINDOW_MS = 5 * 60 * 1000
STRUGGLE_MIN_EDITS = 4
LOOP_MAX_GAP_MS = 5 * 60 * 1000
LOOP_MAX_CHAIN = 50
LOOP_MIN_ATTEMPTS = 3
ERROR_MESSAGE_LIMIT = 500
COMMAND_LIMIT = 300


@dataclass
class BacktrackIncident:
    """A run of failed or retried tool calls on the same piece of work."""

    type: str
    tool_name: str
    attempts: int
    start_t: int
    end_t: int
    tool_use_ids: list[str] = field(default_factory=list)
    file_path: str | None = None
    error_message: str | None = None
    command: str | None = None

    @property
    def duration_ms(self) -> int:
        return self.end_t - self.start_t

    @classmethod
    def from_dict(cls, data: dict) -> BacktrackIncident:
        return cls(
            type=data.get("type", "failure_retry"),
            tool_name=data.get("tool_name", ""),
            attempts=int(data.get("attempts", 0) or 0),
            start_t=int(data.get("start_t", 0) or 0),
            end_t=int(data.get("end_t", 0) or 0),
            tool_use_ids=list(data.get("tool_use_ids") or []),
            file_path=data.get("file_path"),
            error_message=data.get("error_message"),
            command=data.get("command"),
        )

    def to_dict(self) -> dict:
        result: dict[str, Any] = {
            "type": self.type,
            "tool_name": self.tool_name,
            "attempts": self.attempts,
            "start_t": self.start_t,
            "end_t": self.end_t,
            "tool_use_ids": list(self.tool_use_ids),
        }
        for key in ("file_path", "error_message", "command"):
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        return result


def coerce_incidents(incidents: Iterable[BacktrackIncident | dict] | None) -> list[BacktrackIncident]:
    """Accept incident records or plain dicts."""
    return [
        item if isinstance(item, BacktrackIncident) else BacktrackIncident.from_dict(item)
        for item in incidents or ()
    ]


def _error_message(event: PostToolUseFailureEvent) -> str | None:
    error = event.data.error
    return error[:ERROR_MESSAGE_LIMIT] if error is not None else None


def _command(event: PreToolUseEvent | PostToolUseFailureEvent) -> str | None:
    command = event.data.command
    return command[:COMMAND_LIMIT] if command is not None else None


def _is_pre_tool(event, tool_name: str | None = None) -> bool:
    if not isinstance(event, PreToolUseEvent):
        return False
    return tool_name is None or event.data.tool_name == tool_name


def _find_failure_retries(events: list) -> list[BacktrackIncident]:
    """Failure followed closely by another call of the same tool."""
    incidents = []
    for i, fail in enumerate(events):
        if not isinstance(fail, PostToolUseFailureEvent) or fail.data.is_interrupt:
            continue
        tool_name = fail.data.tool_name or ""
        retry = next(
            (e for e in events[i + 1 : i + 1 + RETRY_LOOKAHEAD] if _is_pre_tool(e, tool_name)),
            None,
        )
        if retry is None:
            continue
        incidents.append(
            BacktrackIncident(
                type="failure_retry",
                tool_name=tool_name,
                attempts=2,
                start_t=fail.t,
                end_t=retry.t,
                tool_use_ids=[fail.data.tool_use_id or "", retry.data.tool_use_id or ""],
                file_path=fail.data.file_path,
                error_message=_error_message(fail),
                command=_command(fail),
            )
        )
    return incidents


def _find_iteration_struggles(events: list) -> list[BacktrackIncident]:
    """Same file edited repeatedly inside a short window."""
    edits_by_file: dict[str, list[PreToolUseEvent]] = {}
    for event in events:
        if isinstance(event, PreToolUseEvent) and event.data.tool_name in EDIT_TOOLS:
            file_path = event.data.file_path
            if file_path:
                edits_by_file.setdefault(file_path, []).append(event)

    incidents = []
    for file_path, edits in edits_by_file.items():
        for start in edits[: max(0, len(edits) - (STRUGGLE_MIN_EDITS - 1))]:
            window_end = start.t + STRUGGLE_WINDOW_MS
            window = [e for e in edits if start.t <= e.t <= window_end]
            if len(window) < STRUGGLE_MIN_EDITS:
                continue
            incidents.append(
                BacktrackIncident(
                    type="iteration_struggle",
                    tool_name="Edit",
                    attempts=len(window),
                    start_t=window[0].t,
                    end_t=window[-1].t,
                    tool_use_ids=[e.data.tool_use_id or "" for e in window],
                    file_path=file_path,
                )
            )
            break
    return incidents


def _find_debugging_loops(events: list) -> list[BacktrackIncident]:
    """A Bash failure followed by a chain of further Bash attempts."""
    bash = [
        (index, event)
        for index, event in enumerate(events)
        if isinstance(event, (PreToolUseEvent, PostToolUseFailureEvent))
        and event.data.tool_name == "Bash"
    ]

    incidents = []
    for position, (fail_index, fail) in enumerate(bash):
        if not isinstance(fail, PostToolUseFailureEvent) or fail.data.is_interrupt:
            continue

        chain: list[PreToolUseEvent] = []
        last_t = fail.t
        last_index = fail_index
        for index, event in bash[position + 1 :]:
            if len(chain) >= LOOP_MAX_CHAIN:
                break
            if event.t - last_t > LOOP_MAX_GAP_MS:
                break
            # The agent moved on to other work.
            if any(_is_pre_tool(e) and e.data.tool_name != "Bash" for e in events[last_index + 1 : index]):
                break
            if isinstance(event, PreToolUseEvent):
                chain.append(event)
            last_t = event.t
            last_index = index

        attempts = [fail.data.tool_use_id or ""] + [e.data.tool_use_id or "" for e in chain]
        if len(attempts) < LOOP_MIN_ATTEMPTS:
            continue
        incidents.append(
            BacktrackIncident(
                type="debugging_loop",
                tool_name="Bash",
                attempts=len(attempts),
                start_t=fail.t,
                end_t=chain[-1].t,
                tool_use_ids=attempts,
                error_message=_error_message(fail),
                command=_command(fail),
            )
        )
    return incidents


def extract_backtracks(events: Iterable[Any]) -> list[BacktrackIncident]:
    """Detect backtrack incidents in a session's hook event stream.

    Three patterns are recognised:

    - ``failure_retry``: a tool failure followed by a call of the same tool
      within the next few events.
    - ``iteration_struggle``: four or more edits of one file within five
      minutes.
    - ``debugging_loop``: a Bash failure followed by at least two more Bash
      calls without the agent switching tools or pausing for five minutes.

    Overlapping debugging loops keep only the earliest one, and retries or
    struggles whose calls are all covered by a loop are dropped.
    """
    parsed = parse_events(events)

    retries = _find_failure_retries(parsed)
    struggles = _find_iteration_struggles(parsed)
    loops = _find_debugging_loops(parsed)

    loop_id_sets = [set(loop.tool_use_ids) for loop in loops]
    deduped_loops = [
        loop
        for idx, loop in enumerate(loops)
        if not any(set(loop.tool_use_ids[1:]) <= loop_id_sets[other] for other in range(idx))
    ]

    loop_ids = {tool_use_id for loop in deduped_loops for tool_use_id in loop.tool_use_ids}
    deduped_retries = [r for r in retries if not set(r.tool_use_ids) <= loop_ids]
    deduped_struggles = [s for s in struggles if not set(s.tool_use_ids) <= loop_ids]

    return deduped_retries + deduped_struggles + deduped_loops
