"""Data models for transcript-lens."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Literal

# A single content fragment, kept as the provider's own dict
# ("text", "tool_use", "tool_result", "thinking", "image", ...).
ContentPart = dict[str, Any]

MessageType = Literal[
    "user",
    "assistant",
    "tool_use",
    "tool_result",
    "command",
    "command_output",
    "interruption",
    "compact",
    "meta",
]

MESSAGE_TYPES: tuple[str, ...] = (
    "user",
    "assistant",
    "tool_use",
    "tool_result",
    "command",
    "command_output",
    "interruption",
    "compact",
    "meta",
)


def is_text_part(part: Any) -> bool:
    return isinstance(part, dict) and part.get("type") == "text" and isinstance(part.get("text"), str)


def is_tool_use_part(part: Any) -> bool:
    return (
        isinstance(part, dict)
        and part.get("type") == "tool_use"
        and isinstance(part.get("id"), str)
        and isinstance(part.get("name"), str)
    )


def is_tool_result_part(part: Any) -> bool:
    return (
        isinstance(part, dict)
        and part.get("type") == "tool_result"
        and isinstance(part.get("tool_use_id"), str)
    )


@dataclass
class StructuredContent:
    """Message content that carries tool blocks alongside its text."""

    text: str = ""
    tool_uses: list[ContentPart] = field(default_factory=list)
    tool_results: list[ContentPart] = field(default_factory=list)
    structured: list[Any] = field(default_factory=list)

    @classmethod
    def for_tool_use(cls, tool_use: ContentPart) -> "StructuredContent":
        return cls(tool_uses=[tool_use], structured=[tool_use])

    @classmethod
    def for_tool_result(cls, tool_result: ContentPart) -> "StructuredContent":
        return cls(tool_results=[tool_result], structured=[tool_result])

    def to_dict(self) -> dict[str, Any]:
        return {
            "text": self.text,
            "toolUses": self.tool_uses,
            "toolResults": self.tool_results,
            "structured": self.structured,
        }


@dataclass(frozen=True)
class ParsedMessage:
    """A single normalized message within a session.

    ``parent_id`` and ``linked_to`` are weak references by id: a split
    tool_use points at the message it came from, a tool_result points at
    the tool_use it answers.
    """

    id: str
    timestamp: datetime
    type: MessageType
    content: str | StructuredContent
    metadata: dict[str, Any] = field(default_factory=dict)
    parent_id: str | None = None
    linked_to: str | None = None

    @property
    def text(self) -> str:
        if isinstance(self.content, StructuredContent):
            return self.content.text
        return self.content

    @property
    def tool_uses(self) -> list[ContentPart]:
        if isinstance(self.content, StructuredContent):
            return self.content.tool_uses
        return []

    @property
    def tool_results(self) -> list[ContentPart]:
        if isinstance(self.content, StructuredContent):
            return self.content.tool_results
        return []

    def to_dict(self) -> dict[str, Any]:
        content = self.content.to_dict() if isinstance(self.content, StructuredContent) else self.content
        return {
            "id": self.id,
            "timestamp": self.timestamp.isoformat(),
            "type": self.type,
            "content": content,
            "metadata": self.metadata,
            "parentId": self.parent_id,
            "linkedTo": self.linked_to,
        }


@dataclass(frozen=True)
class ParsedSession:
    """A complete parsed session (one JSONL transcript).

    ``duration`` is in milliseconds and never negative.
    """

    session_id: str
    provider: str
    messages: list[ParsedMessage]
    start_time: datetime
    end_time: datetime
    duration: int
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self, include_messages: bool = True) -> dict[str, Any]:
        data: dict[str, Any] = {
            "sessionId": self.session_id,
            "provider": self.provider,
            "startTime": self.start_time.isoformat(),
            "endTime": self.end_time.isoformat(),
            "duration": self.duration,
            "metadata": self.metadata,
        }
        if include_messages:
            data["messages"] = [m.to_dict() for m in self.messages]
        return data
