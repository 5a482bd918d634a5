"""Pytest fixtures for transcript-lens tests."""

import json
import tempfile
from datetime import datetime, timezone
from pathlib import Path

import pytest

FIXED_NOW = datetime(2025, 6, 1, 12, 0, 0, tzinfo=timezone.utc)


def to_jsonl(records: list) -> str:
    """Serialize records (dicts or raw strings) as JSONL text."""
    return "\n".join(r if isinstance(r, str) else json.dumps(r) for r in records) + "\n"


@pytest.fixture
def jsonl():
    """Helper that serializes a list of records as JSONL text."""
    return to_jsonl


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def fixed_clock():
    """A clock that always returns FIXED_NOW."""
    return lambda: FIXED_NOW


@pytest.fixture
def claude_records():
    """A short Claude Code session: question, tool call, tool result, answer."""
    return [
        {
            "type": "user",
            "uuid": "msg-001",
            "parentUuid": None,
            "sessionId": "claude-session-1",
            "timestamp": "2025-01-15T10:00:00Z",
            "message": {"role": "user", "content": "List the files please"},
        },
        {
            "type": "assistant",
            "uuid": "msg-002",
            "parentUuid": "msg-001",
            "sessionId": "claude-session-1",
            "requestId": "req-1",
            "timestamp": "2025-01-15T10:00:05Z",
            "message": {
                "role": "assistant",
                "content": [
                    {"type": "text", "text": "Let me look."},
                    {"type": "tool_use", "id": "toolu_1", "name": "Bash", "input": {"command": "ls"}},
                    {"type": "tool_use", "id": "toolu_2", "name": "Read", "input": {"file_path": "a.py"}},
                ],
            },
        },
        {
            "type": "user",
            "uuid": "msg-003",
            "parentUuid": "msg-002",
            "sessionId": "claude-session-1",
            "timestamp": "2025-01-15T10:00:07Z",
            "message": {
                "role": "user",
                "content": [
                    {"type": "tool_result", "tool_use_id": "toolu_1", "content": "a.py\nb.py"},
                    {"type": "tool_result", "tool_use_id": "toolu_2", "content": "print('hi')"},
                ],
            },
        },
        {
            "type": "assistant",
            "uuid": "msg-004",
            "parentUuid": "msg-003",
            "sessionId": "claude-session-1",
            "timestamp": "2025-01-15T10:00:10Z",
            "message": {"role": "assistant", "content": [{"type": "text", "text": "There are two files."}]},
        },
    ]


@pytest.fixture
def claude_jsonl(claude_records):
    return to_jsonl(claude_records)


@pytest.fixture
def claude_session_file(temp_dir, claude_jsonl):
    """Write the Claude session to a JSONL file."""
    session_file = temp_dir / "claude-session.jsonl"
    session_file.write_text(claude_jsonl, encoding="utf-8")
    return session_file


@pytest.fixture
def gemini_records():
    return [
        {
            "type": "user",
            "sessionId": "gemini-session-1",
            "timestamp": "2025-02-01T09:00:00Z",
            "message": {"role": "user", "content": "Explain this function"},
            "cwd": "/work/project",
        },
        {
            "type": "gemini",
            "uuid": "g-2",
            "sessionId": "gemini-session-1",
            "timestamp": "2025-02-01T09:00:04Z",
            "gemini_model": "gemini-2.5-pro",
            "gemini_thoughts": [{"subject": "Reading", "description": "Looking at the code"}],
            "gemini_tokens": {"input": 120, "output": 40},
            "message": {"role": "assistant", "content": "It adds two numbers."},
        },
    ]


@pytest.fixture
def copilot_records():
    return [
        {"type": "user", "id": "u-1", "timestamp": "2025-03-01T08:00:00Z", "text": "run the tests"},
        {
            "type": "tool_call_requested",
            "callId": "c0",
            "name": "bash",
            "arguments": {"command": "pytest"},
            "timestamp": "2025-03-01T08:00:01Z",
            "toolTitle": "Run tests",
            "intentionSummary": "Running the test suite",
        },
        {
            "type": "tool_call_completed",
            "callId": "c1",
            "name": "bash",
            "arguments": {"command": "pytest -q"},
            "result": {"type": "success", "log": "done"},
            "timestamp": "2025-03-01T08:00:05Z",
        },
        {"type": "copilot", "id": "a-1", "timestamp": "2025-03-01T08:00:06Z", "text": "All tests pass."},
    ]


@pytest.fixture
def codex_records():
    return [
        {
            "timestamp": "2025-04-01T07:00:00.000Z",
            "type": "session_meta",
            "payload": {"id": "codex-session-1", "cwd": "/work", "originator": "codex_cli_rs"},
        },
        {
            "timestamp": "2025-04-01T07:00:01.000Z",
            "type": "turn_context",
            "payload": {"cwd": "/work", "model": "gpt-5"},
        },
        {
            "timestamp": "2025-04-01T07:00:02.000Z",
            "type": "response_item",
            "payload": {
                "type": "message",
                "role": "user",
                "content": [{"type": "input_text", "text": "fix the bug"}],
            },
        },
        {
            "timestamp": "2025-04-01T07:00:03.000Z",
            "type": "response_item",
            "payload": {"type": "reasoning", "summary": [{"type": "summary_text", "text": "thinking"}]},
        },
        {
            "timestamp": "2025-04-01T07:00:04.000Z",
            "type": "response_item",
            "payload": {
                "type": "function_call",
                "name": "shell",
                "arguments": "{\"command\": [\"ls\"]}",
                "call_id": "call_1",
            },
        },
        {
            "timestamp": "2025-04-01T07:00:05.000Z",
            "type": "response_item",
            "payload": {
                "type": "function_call_output",
                "call_id": "call_1",
                "output": "{\"output\": \"a.py\", \"metadata\": {\"exit_code\": 0}}",
            },
        },
        {
            "timestamp": "2025-04-01T07:00:06.000Z",
            "type": "event_msg",
            "payload": {"type": "agent_message", "message": "Fixed."},
        },
        {
            "timestamp": "2025-04-01T07:00:06.500Z",
            "type": "response_item",
            "payload": {
                "type": "message",
                "role": "assistant",
                "content": [{"type": "output_text", "text": "Fixed."}],
            },
        },
    ]


@pytest.fixture
def opencode_records():
    return [
        {
            "sessionId": "oc-session-1",
            "timestamp": "2025-05-01T06:00:00Z",
            "type": "user",
            "message": {"role": "user", "content": "add a test"},
        },
        {
            "sessionId": "oc-session-1",
            "timestamp": "2025-05-01T06:00:02Z",
            "type": "assistant",
            "message": {
                "role": "assistant",
                "content": [
                    {"type": "text", "text": "Writing it now."},
                    {"type": "tool_use", "id": "oc-tool-1", "name": "write", "input": {"path": "t.py"}},
                ],
            },
        },
        {
            "sessionId": "oc-session-1",
            "timestamp": "2025-05-01T06:00:03Z",
            "type": "tool_result",
            "message": {
                "role": "tool",
                "content": [{"type": "tool_result", "tool_use_id": "oc-tool-1", "content": "ok"}],
            },
        },
    ]
