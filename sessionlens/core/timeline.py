"""Session timeline aggregation.

Merges hook events, reasoning notes, user prompts, backtrack incidents,
phases and task links into one chronologically ordered, size-capped list of
``TimelineEntry`` records.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from .agents import resolve_agent_name, short_agent_id
from .backtracks import BacktrackIncident, coerce_incidents
from .config import DEFAULT_CONFIG, DistillConfig
from .events import (
    HookEvent,
    LinkEvent,
    PostToolUseFailureEvent,
    PreToolUseEvent,
    SpawnLink,
    StopLink,
    SubagentStartEvent,
    SubagentStopEvent,
    TaskCompletedEvent,
    TaskLink,
    TeammateIdleEvent,
    parse_events,
    parse_links,
    parse_reasoning,
    parse_user_messages,
)

logger = logging.getLogger(__name__)

TIMELINE_CAP = DEFAULT_CONFIG.timeline_cap
PREVIEW_LIMIT = 200

ENTRY_TYPES = (
    "tool_call",
    "failure",
    "thinking",
    "user_prompt",
    "backtrack",
    "phase_boundary",
    "teammate_idle",
    "task_complete",
    "agent_spawn",
    "agent_stop",
    "task_create",
    "task_assign",
)

# Low-frequency markers that survive capping unconditionally.
STRUCTURAL_TYPES = frozenset(
    {
        "phase_boundary",
        "user_prompt",
        "teammate_idle",
        "task_complete",
        "agent_spawn",
        "agent_stop",
        "task_create",
        "task_assign",
    }
)


@dataclass
class Phase:
    """A named, time-bounded stage of a session."""

    name: str
    start_t: int
    end_t: int
    tool_types: list[str] = field(default_factory=list)
    description: str = ""

    def contains(self, t: int) -> bool:
        return self.start_t <= t <= self.end_t

    @classmethod
    def from_dict(cls, data: dict) -> Phase:
        return cls(
            name=data.get("name", ""),
            start_t=int(data.get("start_t", 0) or 0),
            end_t=int(data.get("end_t", 0) or 0),
            tool_types=list(data.get("tool_types") or []),
            description=data.get("description", ""),
        )


@dataclass
class TimelineEntry:
    """One entry of a distilled session timeline."""

    t: int
    type: str
    tool_name: str | None = None
    tool_use_id: str | None = None
    agent_id: str | None = None
    agent_name: str | None = None
    task_id: str | None = None
    task_subject: str | None = None
    content_preview: str | None = None
    phase_index: int | None = None

    @property
    def is_structural(self) -> bool:
        return self.type in STRUCTURAL_TYPES

    def to_dict(self) -> dict:
        """Serialize, omitting unset optional fields."""
        result: dict[str, Any] = {"t": self.t, "type": self.type}
        for key in (
            "tool_name",
            "tool_use_id",
            "agent_id",
            "agent_name",
            "task_id",
            "task_subject",
            "content_preview",
            "phase_index",
        ):
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        return result


def _preview(text: str | None) -> str | None:
    return text[:PREVIEW_LIMIT] if text is not None else None


def _coerce_phases(phases: Iterable[Phase | dict] | None) -> list[Phase]:
    return [p if isinstance(p, Phase) else Phase.from_dict(p) for p in phases or ()]


# --- Source mappers ---


def _event_entry(event: HookEvent, name_map: Mapping[str, str] | None) -> TimelineEntry | None:
    if isinstance(event, PreToolUseEvent):
        return TimelineEntry(
            t=event.t,
            type="tool_call",
            tool_name=event.data.tool_name,
            tool_use_id=event.data.tool_use_id,
        )

    if isinstance(event, PostToolUseFailureEvent):
        return TimelineEntry(
            t=event.t,
            type="failure",
            tool_name=event.data.tool_name,
            tool_use_id=event.data.tool_use_id,
            content_preview=_preview(event.data.error),
        )

    if isinstance(event, TeammateIdleEvent):
        name = event.data.agent_name or event.data.agent_id or "unknown"
        return TimelineEntry(
            t=event.t,
            type="teammate_idle",
            agent_id=event.data.agent_id,
            agent_name=name,
            content_preview=f"{name} idle",
        )

    if isinstance(event, TaskCompletedEvent):
        subject = event.data.subject
        return TimelineEntry(
            t=event.t,
            type="task_complete",
            task_id=event.data.task_id,
            task_subject=subject,
            content_preview=f"Task completed: {subject or 'unknown'}",
        )

    if isinstance(event, SubagentStartEvent):
        agent_id = event.data.agent_id
        name = resolve_agent_name(agent_id, event.data.agent_name, name_map) or "agent"
        return TimelineEntry(
            t=event.t,
            type="agent_spawn",
            agent_id=agent_id,
            agent_name=name,
            content_preview=f"Spawned {name} ({event.data.agent_type or 'unknown'})",
        )

    if isinstance(event, SubagentStopEvent):
        agent_id = event.data.agent_id
        name = resolve_agent_name(agent_id, name_map=name_map, fallback=False)
        label = name or (short_agent_id(agent_id) if agent_id else "agent")
        return TimelineEntry(
            t=event.t,
            type="agent_stop",
            agent_id=agent_id,
            agent_name=name,
            content_preview=f"Stopped {label}",
        )

    return None


def _link_entry(link: LinkEvent, name_map: Mapping[str, str] | None) -> TimelineEntry | None:
    if not isinstance(link, TaskLink):
        return None

    label = link.subject or link.task_id
    if link.action == "create":
        creator = None
        if link.agent:
            creator = resolve_agent_name(link.agent, name_map=name_map, fallback=False) or link.agent
        return TimelineEntry(
            t=link.t,
            type="task_create",
            agent_name=creator,
            task_id=link.task_id or None,
            task_subject=link.subject,
            content_preview=f"Task created: {label}",
        )

    if link.action == "assign":
        return TimelineEntry(
            t=link.t,
            type="task_assign",
            agent_name=link.owner,
            task_id=link.task_id or None,
            task_subject=link.subject,
            content_preview=f"Task assigned to {link.owner or '?'}: {label}",
        )

    return None


def _backtrack_entry(incident: BacktrackIncident) -> TimelineEntry:
    return TimelineEntry(
        t=incident.start_t,
        type="backtrack",
        tool_name=incident.tool_name,
        content_preview=f"{incident.type}: {incident.attempts} attempts",
    )


# --- Agent ownership ---


@dataclass
class AgentLifetime:
    """Window during which a spawned agent was running."""

    agent_id: str
    start_t: int
    end_t: int
    agent_name: str | None = None
    agent_type: str | None = None

    def contains(self, t: int) -> bool:
        return self.start_t <= t <= self.end_t


def extract_agent_lifetimes(
    links: Iterable[Any],
    name_map: Mapping[str, str] | None = None,
) -> list[AgentLifetime]:
    """Agent lifetimes from spawn/stop links, ordered by start time.

    An agent without a stop link is treated as running until the latest
    link of the session.
    """
    parsed = parse_links(links)
    spawns = [link for link in parsed if isinstance(link, SpawnLink)]
    if not spawns:
        return []

    stops = {link.agent_id: link.t for link in parsed if isinstance(link, StopLink)}
    latest_t = max(link.t for link in parsed)
    lifetimes = [
        AgentLifetime(
            agent_id=spawn.agent_id,
            start_t=spawn.t,
            end_t=stops.get(spawn.agent_id, latest_t),
            agent_name=resolve_agent_name(spawn.agent_id, spawn.agent_name, name_map, fallback=False),
            agent_type=spawn.agent_type,
        )
        for spawn in spawns
    ]
    lifetimes.sort(key=lambda lifetime: lifetime.start_t)
    return lifetimes


def annotate_agent_ownership(entries: list[TimelineEntry], lifetimes: list[AgentLifetime]) -> None:
    """Attribute entries without an agent to the first lifetime covering their ``t``."""
    for entry in entries:
        if entry.agent_id or entry.agent_name:
            continue
        owner = next((lifetime for lifetime in lifetimes if lifetime.contains(entry.t)), None)
        if owner is not None:
            entry.agent_id = owner.agent_id
            entry.agent_name = owner.agent_name


# --- Phase index and capping ---


def phase_index_for(t: int, phases: list[Phase]) -> int | None:
    """Index of the first phase whose inclusive window contains ``t``."""
    for index, phase in enumerate(phases):
        if phase.contains(t):
            return index
    return None


def stride_sample(items: list, budget: int) -> list:
    """Pick ``budget`` items spread evenly across ``items``.

    Selects ``items[floor(i * n / budget)]`` for ``i`` in ``range(budget)``,
    so the first item is always kept and picks are spaced across the whole
    sequence rather than clustered at either end.
    """
    n = len(items)
    if budget <= 0:
        return []
    if n <= budget:
        return list(items)
    return [items[(i * n) // budget] for i in range(budget)]


def cap_entries(entries: list[TimelineEntry], cap: int = TIMELINE_CAP) -> list[TimelineEntry]:
    """Bound a chronologically sorted timeline without dropping structural entries."""
    if len(entries) <= cap:
        return entries

    structural = [e for e in entries if e.is_structural]
    high_volume = [e for e in entries if not e.is_structural]
    budget = max(0, cap - len(structural))
    if budget == 0:
        logger.debug(
            "Timeline has %d structural entries for a cap of %d; dropping all high-volume entries",
            len(structural),
            cap,
        )

    sampled = stride_sample(high_volume, budget)
    keep = {id(e) for e in structural} | {id(e) for e in sampled}
    logger.debug("Capped timeline from %d to %d entries", len(entries), len(keep))
    # Filtering the sorted input keeps chronological order and source order on ties.
    return [e for e in entries if id(e) in keep]


# --- Builder ---


class TimelineBuilder:
    """Build a capped chronological timeline for one session."""

    def __init__(self, config: DistillConfig | None = None):
        self.config = config or DEFAULT_CONFIG

    def build(
        self,
        events: Iterable[Any],
        reasoning: Iterable[Any] = (),
        user_messages: Iterable[Any] = (),
        backtracks: Iterable[BacktrackIncident | dict] = (),
        phases: Iterable[Phase | dict] = (),
        links: Iterable[Any] | None = None,
        name_map: Mapping[str, str] | None = None,
    ) -> list[TimelineEntry]:
        phase_list = _coerce_phases(phases)

        entries: list[TimelineEntry] = []
        for event in parse_events(events):
            entry = _event_entry(event, name_map)
            if entry is not None:
                entries.append(entry)

        for note in parse_reasoning(reasoning):
            entries.append(
                TimelineEntry(
                    t=note.t,
                    type="thinking",
                    tool_name=note.tool_name,
                    tool_use_id=note.tool_use_id,
                    content_preview=_preview(note.thinking),
                )
            )

        for message in parse_user_messages(user_messages):
            if message.message_type != "prompt":
                continue
            entries.append(
                TimelineEntry(t=message.t, type="user_prompt", content_preview=_preview(message.content))
            )

        entries.extend(_backtrack_entry(incident) for incident in coerce_incidents(backtracks))

        entries.extend(
            TimelineEntry(t=phase.start_t, type="phase_boundary", content_preview=phase.name, phase_index=index)
            for index, phase in enumerate(phase_list)
        )

        parsed_links = parse_links(links) if links is not None else []
        for link in parsed_links:
            entry = _link_entry(link, name_map)
            if entry is not None:
                entries.append(entry)

        # sorted() is stable, so equal timestamps keep source order.
        merged = sorted(entries, key=lambda e: e.t)
        capped = cap_entries(merged, self.config.timeline_cap)
        annotate_agent_ownership(capped, extract_agent_lifetimes(parsed_links, name_map))

        for entry in capped:
            if entry.type != "phase_boundary":
                entry.phase_index = phase_index_for(entry.t, phase_list)
        return capped


def extract_timeline(
    events: Iterable[Any],
    reasoning: Iterable[Any] = (),
    user_messages: Iterable[Any] = (),
    backtracks: Iterable[BacktrackIncident | dict] = (),
    phases: Iterable[Phase | dict] = (),
    links: Iterable[Any] | None = None,
    name_map: Mapping[str, str] | None = None,
    config: DistillConfig | None = None,
) -> list[TimelineEntry]:
    """Merge all session sources into a capped chronological timeline."""
    return TimelineBuilder(config).build(
        events,
        reasoning=reasoning,
        user_messages=user_messages,
        backtracks=backtracks,
        phases=phases,
        links=links,
        name_map=name_map,
    )
