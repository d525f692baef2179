"""Validated ingestion models for raw session records.

Hook events arrive as ``{t, event, sid, data, context?}`` mappings whose
``data`` payload depends on the event name. Each record is validated once
into a closed tagged union keyed on ``event`` so downstream code works with
typed payloads instead of ad-hoc dictionary lookups.

Payload string fields are lenient: a value of the wrong type is treated as
missing rather than rejecting the whole record.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import Annotated, Any, Literal, Union

from pydantic import (
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    TypeAdapter,
    ValidationError,
)

logger = logging.getLogger(__name__)

HOOK_EVENTS = (
    "SessionStart",
    "SessionEnd",
    "UserPromptSubmit",
    "PreToolUse",
    "PostToolUse",
    "PostToolUseFailure",
    "PermissionRequest",
    "Notification",
    "SubagentStart",
    "SubagentStop",
    "Stop",
    "TeammateIdle",
    "TaskCompleted",
    "PreCompact",
    "ConfigChange",
    "WorktreeCreate",
    "WorktreeRemove",
)

EDIT_TOOLS = frozenset({"Edit", "Write"})


def _str_or_none(value: Any) -> str | None:
    return value if isinstance(value, str) else None


def _mapping_or_none(value: Any) -> dict | None:
    return dict(value) if isinstance(value, Mapping) else None


def _truthy(value: Any) -> bool:
    return bool(value)


def _payload_or_empty(value: Any) -> Any:
    if isinstance(value, (Mapping, BaseModel)):
        return value
    return {}


LenientStr = Annotated[str | None, BeforeValidator(_str_or_none)]
LenientMapping = Annotated[dict[str, Any] | None, BeforeValidator(_mapping_or_none)]
LenientBool = Annotated[bool, BeforeValidator(_truthy)]


class _Record(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")


# --- Hook event payloads ---


class ToolPayload(_Record):
    """Payload shared by PreToolUse and PostToolUse."""

    tool_name: LenientStr = None
    tool_use_id: LenientStr = None
    tool_input: LenientMapping = None

    @property
    def file_path(self) -> str | None:
        """Target file of the call (``file_path``, else ``path``)."""
        if not self.tool_input:
            return None
        raw = self.tool_input.get("file_path")
        if raw is None:
            raw = self.tool_input.get("path")
        return raw if isinstance(raw, str) else None

    @property
    def command(self) -> str | None:
        if not self.tool_input:
            return None
        raw = self.tool_input.get("command")
        return raw if isinstance(raw, str) else None


class ToolFailurePayload(ToolPayload):
    """Payload of PostToolUseFailure."""

    error: LenientStr = None
    is_interrupt: LenientBool = False


class AgentPayload(_Record):
    """Payload of SubagentStart / SubagentStop."""

    agent_id: LenientStr = None
    agent_type: LenientStr = None
    agent_name: LenientStr = None


class TeammateIdlePayload(_Record):
    agent_id: LenientStr = None
    agent_name: LenientStr = None


class TaskCompletedPayload(_Record):
    task_id: LenientStr = None
    subject: LenientStr = None


class SessionStartContext(_Record):
    """Metadata captured when the session started."""

    project_dir: LenientStr = None
    cwd: LenientStr = None
    git_branch: LenientStr = None
    git_remote: LenientStr = None
    git_commit: LenientStr = None
    git_worktree: LenientStr = None
    team_name: LenientStr = None
    model: LenientStr = None
    agent_type: LenientStr = None
    source: LenientStr = None
    trigger: LenientStr = None


# --- Hook events ---


class _HookEvent(_Record):
    t: int
    sid: str = ""
    context: SessionStartContext | None = None


class PreToolUseEvent(_HookEvent):
    event: Literal["PreToolUse"]
    data: Annotated[ToolPayload, BeforeValidator(_payload_or_empty)] = Field(
        default_factory=ToolPayload
    )


class PostToolUseEvent(_HookEvent):
    event: Literal["PostToolUse"]
    data: Annotated[ToolPayload, BeforeValidator(_payload_or_empty)] = Field(
        default_factory=ToolPayload
    )


class PostToolUseFailureEvent(_HookEvent):
    event: Literal["PostToolUseFailure"]
    data: Annotated[ToolFailurePayload, BeforeValidator(_payload_or_empty)] = Field(
        default_factory=ToolFailurePayload
    )


class SubagentStartEvent(_HookEvent):
    event: Literal["SubagentStart"]
    data: Annotated[AgentPayload, BeforeValidator(_payload_or_empty)] = Field(
        default_factory=AgentPayload
    )


class SubagentStopEvent(_HookEvent):
    event: Literal["SubagentStop"]
    data: Annotated[AgentPayload, BeforeValidator(_payload_or_empty)] = Field(
        default_factory=AgentPayload
    )


class TeammateIdleEvent(_HookEvent):
    event: Literal["TeammateIdle"]
    data: Annotated[TeammateIdlePayload, BeforeValidator(_payload_or_empty)] = Field(
        default_factory=TeammateIdlePayload
    )


class TaskCompletedEvent(_HookEvent):
    event: Literal["TaskCompleted"]
    data: Annotated[TaskCompletedPayload, BeforeValidator(_payload_or_empty)] = Field(
        default_factory=TaskCompletedPayload
    )


class OtherHookEvent(_HookEvent):
    """Lifecycle events without a typed payload."""

    event: Literal[
        "SessionStart",
        "SessionEnd",
        "UserPromptSubmit",
        "PermissionRequest",
        "Notification",
        "Stop",
        "PreCompact",
        "ConfigChange",
        "WorktreeCreate",
        "WorktreeRemove",
    ]
    data: Annotated[dict[str, Any], BeforeValidator(_payload_or_empty)] = Field(
        default_factory=dict
    )


HookEvent = Annotated[
    Union[
        PreToolUseEvent,
        PostToolUseEvent,
        PostToolUseFailureEvent,
        SubagentStartEvent,
        SubagentStopEvent,
        TeammateIdleEvent,
        TaskCompletedEvent,
        OtherHookEvent,
    ],
    Field(discriminator="event"),
]


# --- Link events ---


class TaskLink(_Record):
    """Task lifecycle link (create / assign / status_change)."""

    type: Literal["task"]
    t: int
    action: str
    task_id: str = ""
    session_id: LenientStr = None
    agent: LenientStr = None
    subject: LenientStr = None
    owner: LenientStr = None
    status: LenientStr = None


class SpawnLink(_Record):
    type: Literal["spawn"]
    t: int
    parent_session: str = ""
    agent_id: str = ""
    agent_type: LenientStr = None
    agent_name: LenientStr = None


class StopLink(_Record):
    type: Literal["stop"]
    t: int
    parent_session: str = ""
    agent_id: str = ""
    transcript_path: LenientStr = None


class OtherLink(_Record):
    """Coordination links without a timeline mapping."""

    model_config = ConfigDict(frozen=True, extra="allow")

    type: Literal[
        "msg_send",
        "team",
        "teammate_idle",
        "task_complete",
        "session_end",
        "config_change",
        "worktree_create",
        "worktree_remove",
    ]
    t: int


LinkEvent = Annotated[
    Union[TaskLink, SpawnLink, StopLink, OtherLink],
    Field(discriminator="type"),
]


# --- Transcript records ---


class ReasoningNote(_Record):
    """A thinking block extracted from the transcript."""

    t: int
    thinking: str = ""
    intent: str = "general"
    tool_use_id: LenientStr = None
    tool_name: LenientStr = None


class UserMessage(_Record):
    """A user-side transcript message."""

    t: int
    content: str = ""
    is_tool_result: bool = False
    message_type: LenientStr = None


_event_adapter = TypeAdapter(HookEvent)
_link_adapter = TypeAdapter(LinkEvent)
_reasoning_adapter = TypeAdapter(ReasoningNote)
_user_message_adapter = TypeAdapter(UserMessage)


def _parse_all(records: Iterable[Any], adapter: TypeAdapter, parsed: tuple, label: str) -> list:
    result = []
    for index, raw in enumerate(records or ()):
        if isinstance(raw, parsed):
            result.append(raw)
            continue
        try:
            result.append(adapter.validate_python(raw))
        except ValidationError as e:
            logger.warning(
                "Skipping invalid %s record #%d: %d validation error(s)",
                label,
                index,
                e.error_count(),
            )
            logger.debug("Invalid %s record #%d: %s", label, index, e)
    return result


def parse_event(raw: Any):
    """Validate one raw event mapping; raises ``pydantic.ValidationError``."""
    if isinstance(raw, _HookEvent):
        return raw
    return _event_adapter.validate_python(raw)


def parse_events(records: Iterable[Any]) -> list:
    """Validate raw event mappings, skipping records that fail validation."""
    return _parse_all(records, _event_adapter, (_HookEvent,), "event")


def parse_links(records: Iterable[Any]) -> list:
    """Validate raw link mappings, skipping records that fail validation."""
    return _parse_all(records, _link_adapter, (TaskLink, SpawnLink, StopLink, OtherLink), "link")


def parse_reasoning(records: Iterable[Any]) -> list[ReasoningNote]:
    return _parse_all(records, _reasoning_adapter, (ReasoningNote,), "reasoning")


def parse_user_messages(records: Iterable[Any]) -> list[UserMessage]:
    return _parse_all(records, _user_message_adapter, (UserMessage,), "user message")
