"""Tests for ingestion models."""

import logging

import pytest
from pydantic import ValidationError

from sessionlens.core.events import (
    HOOK_EVENTS,
    OtherHookEvent,
    PostToolUseFailureEvent,
    PreToolUseEvent,
    StopLink,
    SubagentStartEvent,
    TaskLink,
    parse_event,
    parse_events,
    parse_links,
    parse_reasoning,
    parse_user_messages,
)


class TestHookEvents:
    def test_dispatch_on_event_name(self):
        event = parse_event(
            {"t": 1, "event": "PreToolUse", "sid": "s", "data": {"tool_name": "Edit", "tool_input": {"file_path": "a.py"}}}
        )

        assert isinstance(event, PreToolUseEvent)
        assert event.data.tool_name == "Edit"
        assert event.data.file_path == "a.py"

    def test_every_hook_name_is_accepted(self):
        events = parse_events({"t": i, "event": name} for i, name in enumerate(HOOK_EVENTS))

        assert len(events) == len(HOOK_EVENTS) == 17

    def test_lenient_payload_fields(self):
        event = parse_event(
            {
                "t": 1,
                "event": "PostToolUseFailure",
                "data": {"tool_name": 42, "error": ["not", "text"], "tool_input": "oops", "is_interrupt": 1},
            }
        )

        assert isinstance(event, PostToolUseFailureEvent)
        assert event.data.tool_name is None
        assert event.data.error is None
        assert event.data.tool_input is None
        assert event.data.is_interrupt is True

    def test_non_mapping_data_becomes_empty_payload(self):
        event = parse_event({"t": 1, "event": "SubagentStart", "data": "garbage"})

        assert isinstance(event, SubagentStartEvent)
        assert event.data.agent_id is None

    def test_path_fallback_and_command(self):
        event = parse_event(
            {"t": 1, "event": "PreToolUse", "data": {"tool_name": "Bash", "tool_input": {"path": "src", "command": "ls"}}}
        )

        assert event.data.file_path == "src"
        assert event.data.command == "ls"

    def test_session_start_context(self):
        event = parse_event(
            {"t": 1, "event": "SessionStart", "context": {"git_commit": "abc", "git_branch": "main", "extra": 1}}
        )

        assert isinstance(event, OtherHookEvent)
        assert event.context.git_commit == "abc"

    def test_unknown_event_raises(self):
        with pytest.raises(ValidationError):
            parse_event({"t": 1, "event": "Bogus"})

    def test_parsed_models_pass_through(self):
        event = parse_event({"t": 1, "event": "Stop"})

        assert parse_events([event])[0] is event

    def test_invalid_records_are_logged_and_skipped(self, caplog):
        with caplog.at_level(logging.WARNING, logger="sessionlens.core.events"):
            events = parse_events([{"event": "Stop"}, {"t": 2, "event": "Stop"}])

        assert len(events) == 1
        assert "Skipping invalid event record #0" in caplog.text


class TestLinks:
    def test_task_link(self):
        links = parse_links(
            [
                {"type": "task", "t": 1, "action": "create", "task_id": "3", "session_id": "s", "subject": "Plan"},
                {"type": "spawn", "t": 2, "parent_session": "s", "agent_id": "a"},
                {"type": "msg_send", "t": 3, "from": "lead", "to": "dev", "summary": "hi"},
                {"type": "unknown", "t": 4},
            ]
        )

        assert len(links) == 3
        assert isinstance(links[0], TaskLink)
        assert links[0].subject == "Plan"
        assert links[2].type == "msg_send"

    def test_stop_link(self):
        links = parse_links([{"type": "stop", "t": 5, "parent_session": "s", "agent_id": "a1"}])

        assert isinstance(links[0], StopLink)
        assert links[0].agent_id == "a1"


def test_reasoning_defaults():
    notes = parse_reasoning([{"t": 1, "thinking": "consider options"}])

    assert notes[0].intent == "general"
    assert notes[0].tool_use_id is None


def test_user_messages():
    messages = parse_user_messages([{"t": 1, "content": "hello", "message_type": "prompt"}, {"content": "no t"}])

    assert len(messages) == 1
    assert messages[0].is_tool_result is False
