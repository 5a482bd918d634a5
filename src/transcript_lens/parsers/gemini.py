"""Gemini CLI session parser."""

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
    message_role,
    sniff_records,
    structured_from_parts,
    text_of_parts,
)

_TYPE_MAP: dict[str, MessageType] = {
    "user": "user",
    "gemini": "assistant",
    "assistant": "assistant",
    "tool_use": "tool_use",
    "tool_result": "tool_result",
}


class GeminiParser(BaseParser):
    name = "gemini-code"
    provider_name = "gemini-code"

    def can_parse(self, jsonl_content: str) -> bool:
        for record in sniff_records(jsonl_content):
            if record.get("gemini_model") or "gemini_thoughts" in record or record.get("type") == "gemini":
                return True
        return False

    def parse_message(self, raw_message: RawLogMessage, index: int = 0) -> list[ParsedMessage]:
        timestamp = self.parse_timestamp(raw_message.get("timestamp"))
        if timestamp is None:
            return []

        raw_type = raw_message.get("type")
        message_type = _TYPE_MAP.get(raw_type, "meta") if isinstance(raw_type, str) else "meta"
        message = raw_message.get("message")
        content = message.get("content") if isinstance(message, dict) else None
        uuid = raw_message.get("uuid")
        message_id = uuid if isinstance(uuid, str) and uuid else self.generate_message_id(index, timestamp)

        if isinstance(content, list):
            if any(map(is_tool_use_part, content)):
                return self._split_tool_uses(raw_message, message_id, message_type, content, timestamp)
            if any(map(is_tool_result_part, content)):
                return self._split_tool_results(raw_message, message_id, content, timestamp)

        return [
            ParsedMessage(
                id=message_id,
                timestamp=timestamp,
                type=message_type,
                content=self._process_content(content),
                metadata=self._gemini_metadata(raw_message, message_type),
            )
        ]

    def _gemini_metadata(self, raw_message: RawLogMessage, message_type: MessageType) -> dict[str, Any]:
        return clean_metadata(
            {
                "sessionId": raw_message.get("sessionId"),
                "model": raw_message.get("gemini_model"),
                "thoughts": raw_message.get("gemini_thoughts"),
                "tokens": raw_message.get("gemini_tokens"),
                "cwd": raw_message.get("cwd"),
                "role": message_role(raw_message) or message_type,
            }
        )

    def _split_tool_uses(
        self,
        raw_message: RawLogMessage,
        message_id: str,
        message_type: MessageType,
        parts: list[Any],
        timestamp: datetime,
    ) -> list[ParsedMessage]:
        messages: list[ParsedMessage] = []

        if any(map(is_text_part, parts)):
            text_type: MessageType = "assistant" if message_type == "tool_use" else message_type
            messages.append(
                ParsedMessage(
                    id=message_id,
                    timestamp=timestamp,
                    type=text_type,
                    content=text_of_parts(parts),
                    metadata=self._gemini_metadata(raw_message, text_type),
                )
            )

        tool_uses = [part for part in parts if is_tool_use_part(part)]
        for position, tool_use in enumerate(tool_uses):
            messages.append(
                ParsedMessage(
                    id=tool_use["id"] or f"{message_id}-tool-{position}",
                    timestamp=timestamp,
                    type="tool_use",
                    content=StructuredContent.for_tool_use(tool_use),
                    metadata=clean_metadata(
                        {
                            "sessionId": raw_message.get("sessionId"),
                            "toolUseId": tool_use["id"],
                            "toolName": tool_use["name"],
                            "hasToolUses": True,
                            "toolCount": 1,
                        }
                    ),
                    parent_id=message_id,
                )
            )

        return messages

    def _split_tool_results(
        self,
        raw_message: RawLogMessage,
        message_id: str,
        parts: list[Any],
        timestamp: datetime,
    ) -> list[ParsedMessage]:
        return [
            ParsedMessage(
                id=f"{message_id}-result-{part['tool_use_id']}",
                timestamp=timestamp,
                type="tool_result",
                content=StructuredContent.for_tool_result(part),
                metadata=clean_metadata(
                    {
                        "sessionId": raw_message.get("sessionId"),
                        "hasToolResults": True,
                        "resultCount": 1,
                    }
                ),
                linked_to=part["tool_use_id"],
            )
            for part in parts
            if is_tool_result_part(part)
        ]

    def _process_content(self, content: Any) -> str | StructuredContent:
        if isinstance(content, str):
            return content
        if isinstance(content, list):
            return structured_from_parts(content)
        wrapper = self.parse_parts_content(content)
        if wrapper is not None:
            return structured_from_parts(wrapper["parts"])
        return ""
