"""Canonical JSONL parser.

Canonical lines are a provider-neutral, Claude-like shape that converters
write for any provider::

    {"type": "assistant", "uuid": "...", "sessionId": "...", "timestamp": "...",
     "provider": "opencode", "cwd": "...", "gitBranch": "...",
     "message": {"role": "assistant", "content": [...], "model": "...", "usage": {...}}}

This parser is not registered by default; register it on a ParserRegistry
to parse converted sessions.
"""

from datetime import datetime
from typing import Any

from transcript_lens.models import (
    MessageType,
    ParsedMessage,
    StructuredContent,
    is_text_part,
    is_tool_use_part,
)
from transcript_lens.parsers.base import BaseParser, RawLogMessage, clean_metadata, sniff_records

CANONICAL_TYPES = ("user", "assistant", "meta")
COMPACT_COMMAND_TAG = "<command-name>/compact</command-name>"

# A bare "/compact" longer than this is treated as ordinary text
COMPACT_MAX_CHARS = 50


def is_valid_tool_result(part: Any) -> bool:
    """Tool results written without a tool_use_id or content are dropped."""
    return (
        isinstance(part, dict)
        and part.get("type") == "tool_result"
        and isinstance(part.get("tool_use_id"), str)
        and part["tool_use_id"] != ""
        and part.get("content") is not None
        and part.get("content") != ""
    )


class CanonicalParser(BaseParser):
    name = "canonical"
    provider_name = "canonical"

    def can_parse(self, jsonl_content: str) -> bool:
        for record in sniff_records(jsonl_content):
            message = record.get("message")
            if (
                record.get("uuid")
                and record.get("sessionId")
                and isinstance(message, dict)
                and message.get("role")
                and record.get("type") in CANONICAL_TYPES
            ):
                return True
        return False

    def parse_message(self, raw_message: RawLogMessage, index: int = 0) -> list[ParsedMessage]:
        uuid = raw_message.get("uuid")
        message = raw_message.get("message")
        if not isinstance(uuid, str) or not uuid or not raw_message.get("type") or not isinstance(message, dict):
            return []

        timestamp = self.parse_timestamp(raw_message.get("timestamp"))
        if timestamp is None:
            return []

        content = message.get("content")
        if isinstance(content, list):
            return self._structured_messages(raw_message, content, timestamp)

        text = content if isinstance(content, str) else ""
        return [
            ParsedMessage(
                id=uuid,
                timestamp=timestamp,
                type=self._message_type(raw_message, text),
                content=text,
                metadata=self._metadata(raw_message),
                parent_id=raw_message.get("parentUuid"),
            )
        ]

    def is_compact_content(self, content: str) -> bool:
        stripped = content.strip()
        return COMPACT_COMMAND_TAG in content or (
            stripped.startswith("/compact") and len(stripped) < COMPACT_MAX_CHARS
        )

    def _message_type(self, raw_message: RawLogMessage, content: str | list[Any]) -> MessageType:
        raw_type = raw_message.get("type")
        if raw_type == "assistant":
            return "assistant"
        if raw_type != "user":
            return "meta"

        if isinstance(content, list):
            if any(isinstance(part, dict) and part.get("type") == "tool_result" for part in content):
                return "tool_result"
            return "user"

        if self.is_compact_content(content):
            return "compact"
        if self.is_interruption_content(content):
            return "interruption"
        if self.is_command_content(content):
            return "command"
        return "user"

    def _metadata(self, raw_message: RawLogMessage) -> dict[str, Any]:
        message = raw_message["message"]
        return clean_metadata(
            {
                "role": message.get("role"),
                "sessionId": raw_message.get("sessionId"),
                "provider": raw_message.get("provider"),
                "cwd": raw_message.get("cwd"),
                "gitBranch": raw_message.get("gitBranch"),
                "version": raw_message.get("version"),
                "model": message.get("model"),
                "usage": message.get("usage"),
                "providerMetadata": raw_message.get("providerMetadata"),
                "requestId": raw_message.get("requestId"),
                "isMeta": raw_message.get("isMeta"),
                "isSidechain": raw_message.get("isSidechain"),
                "userType": raw_message.get("userType"),
            }
        )

    def _structured_messages(
        self,
        raw_message: RawLogMessage,
        parts: list[Any],
        timestamp: datetime,
    ) -> list[ParsedMessage]:
        raw_type = raw_message.get("type")
        has_tool_uses = any(isinstance(part, dict) and part.get("type") == "tool_use" for part in parts)
        if raw_type == "assistant" and has_tool_uses:
            return self._split_assistant_with_tools(raw_message, parts, timestamp)

        has_tool_results = any(isinstance(part, dict) and part.get("type") == "tool_result" for part in parts)
        if raw_type == "user" and has_tool_results:
            return self._split_tool_results(raw_message, parts, timestamp)

        kept = [
            part
            for part in parts
            if not (isinstance(part, dict) and part.get("type") == "tool_result") or is_valid_tool_result(part)
        ]
        text_parts = [part for part in kept if is_text_part(part)]
        structured = StructuredContent(
            text="\n".join(part["text"] for part in text_parts),
            tool_uses=[part for part in kept if is_tool_use_part(part)],
            tool_results=[part for part in kept if is_valid_tool_result(part)],
            structured=kept,
        )

        # Tool blocks with no text are carried by the split messages
        if not text_parts and (structured.tool_uses or structured.tool_results):
            return []

        metadata = self._metadata(raw_message)
        metadata.update(
            {
                "hasToolUses": bool(structured.tool_uses),
                "hasToolResults": bool(structured.tool_results),
                "toolCount": len(structured.tool_uses),
                "resultCount": len(structured.tool_results),
            }
        )
        return [
            ParsedMessage(
                id=raw_message["uuid"],
                timestamp=timestamp,
                type=self._message_type(raw_message, parts),
                content=structured,
                metadata=metadata,
                parent_id=raw_message.get("parentUuid"),
            )
        ]

    def _split_assistant_with_tools(
        self,
        raw_message: RawLogMessage,
        parts: list[Any],
        timestamp: datetime,
    ) -> list[ParsedMessage]:
        uuid = raw_message["uuid"]
        messages: list[ParsedMessage] = []

        text = "\n".join(part["text"] for part in parts if is_text_part(part)).strip()
        if text:
            messages.append(
                ParsedMessage(
                    id=uuid,
                    timestamp=timestamp,
                    type="assistant",
                    content=text,
                    metadata=self._metadata(raw_message),
                    parent_id=raw_message.get("parentUuid"),
                )
            )

        for tool_use in filter(is_tool_use_part, parts):
            messages.append(
                ParsedMessage(
                    id=f"{uuid}-tool-{tool_use['id']}",
                    timestamp=timestamp,
                    type="tool_use",
                    content=StructuredContent.for_tool_use(tool_use),
                    metadata=clean_metadata(
                        {
                            "role": "tool",
                            "sessionId": raw_message.get("sessionId"),
                            "provider": raw_message.get("provider"),
                            "toolUseId": tool_use["id"],
                            "toolName": tool_use["name"],
                            "hasToolUses": True,
                            "toolCount": 1,
                        }
                    ),
                    parent_id=uuid,
                )
            )

        return messages

    def _split_tool_results(
        self,
        raw_message: RawLogMessage,
        parts: list[Any],
        timestamp: datetime,
    ) -> list[ParsedMessage]:
        uuid = raw_message["uuid"]
        usage = raw_message["message"].get("usage")

        return [
            ParsedMessage(
                id=f"{uuid}-result-{part['tool_use_id']}",
                timestamp=timestamp,
                type="tool_result",
                content=StructuredContent.for_tool_result(part),
                metadata=clean_metadata(
                    {
                        "role": "tool",
                        "sessionId": raw_message.get("sessionId"),
                        "provider": raw_message.get("provider"),
                        "isSidechain": raw_message.get("isSidechain"),
                        "isError": bool(part.get("is_error", False)),
                        "hasToolResults": True,
                        "resultCount": 1,
                        "usage": usage,
                    }
                ),
                parent_id=raw_message.get("parentUuid"),
                linked_to=part["tool_use_id"],
            )
            for part in parts
            if is_valid_tool_result(part)
        ]
