"""OpenCode session parser."""

from datetime import datetime
from typing import Any

from transcript_lens.models import (
    MessageType,
    ParsedMessage,
    StructuredContent,
    is_text_part,
    is_tool_result_part,
    is_tool_use_part,
)
from transcript_lens.parsers.base import (
    BaseParser,
    RawLogMessage,
    clean_metadata,
    epoch_ms,
    message_role,
    sniff_records,
    structured_from_parts,
    text_of_parts,
)

OPENCODE_TYPES = ("user", "assistant", "tool_use", "tool_result")


class OpenCodeParser(BaseParser):
    name = "opencode"
    provider_name = "opencode"

    def can_parse(self, jsonl_content: str) -> bool:
        for record in sniff_records(jsonl_content):
            if (
                record.get("sessionId")
                and record.get("timestamp")
                and record.get("message")
                and record.get("type") in OPENCODE_TYPES
            ):
                return True
        return False

    def parse_message(self, raw_message: RawLogMessage, index: int = 0) -> list[ParsedMessage]:
        timestamp = self.parse_timestamp(raw_message.get("timestamp"))
        if timestamp is None:
            return []

        raw_type = raw_message.get("type")
        message_type: MessageType = raw_type if raw_type in OPENCODE_TYPES else "meta"
        message = raw_message.get("message")
        content = message.get("content") if isinstance(message, dict) else None
        session_id = raw_message.get("sessionId")
        base_id = f"{session_id or self.name}-{epoch_ms(timestamp)}"
        first_part = content[0] if isinstance(content, list) and content else None

        if message_type == "tool_use" and is_tool_use_part(first_part):
            return [self._tool_use_message(first_part, base_id, session_id, timestamp, 0)]

        if message_type == "tool_result" and is_tool_result_part(first_part):
            return [
                ParsedMessage(
                    id=f"{base_id}-result-{first_part['tool_use_id']}",
                    timestamp=timestamp,
                    type="tool_result",
                    content=StructuredContent.for_tool_result(first_part),
                    metadata=clean_metadata(
                        {
                            "sessionId": session_id,
                            "hasToolResults": True,
                            "resultCount": 1,
                        }
                    ),
                    linked_to=first_part["tool_use_id"],
                )
            ]

        if message_type == "assistant" and isinstance(content, list) and any(map(is_tool_use_part, content)):
            return self._split_assistant_with_tools(raw_message, content, base_id, timestamp, index)

        return [
            ParsedMessage(
                id=f"{base_id}-{index}",
                timestamp=timestamp,
                type=message_type,
                content=_process_content(content),
                metadata=clean_metadata({"sessionId": session_id, "role": message_role(raw_message)}),
            )
        ]

    def _tool_use_message(
        self,
        tool_use: dict[str, Any],
        base_id: str,
        session_id: str | None,
        timestamp: datetime,
        position: int,
        parent_id: str | None = None,
    ) -> ParsedMessage:
        return ParsedMessage(
            id=tool_use["id"] or f"{base_id}-tool-{position}",
            timestamp=timestamp,
            type="tool_use",
            content=StructuredContent.for_tool_use(tool_use),
            metadata=clean_metadata(
                {
                    "sessionId": session_id,
                    "toolUseId": tool_use["id"],
                    "toolName": tool_use["name"],
                    "hasToolUses": True,
                    "toolCount": 1,
                }
            ),
            parent_id=parent_id,
        )

    def _split_assistant_with_tools(
        self,
        raw_message: RawLogMessage,
        parts: list[Any],
        base_id: str,
        timestamp: datetime,
        index: int,
    ) -> list[ParsedMessage]:
        session_id = raw_message.get("sessionId")
        message_id = f"{base_id}-{index}"
        messages: list[ParsedMessage] = []

        if any(map(is_text_part, parts)):
            messages.append(
                ParsedMessage(
                    id=message_id,
                    timestamp=timestamp,
                    type="assistant",
                    content=text_of_parts(parts),
                    metadata=clean_metadata({"sessionId": session_id, "role": message_role(raw_message)}),
                )
            )

        tool_uses = [part for part in parts if is_tool_use_part(part)]
        for position, tool_use in enumerate(tool_uses):
            messages.append(
                self._tool_use_message(tool_use, base_id, session_id, timestamp, position, parent_id=message_id)
            )

        return messages


def _process_content(content: Any) -> str | StructuredContent:
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        return structured_from_parts(content)
    return ""
