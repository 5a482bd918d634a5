"""Claude Code session parser.

Raw lines look like::

    {"type": "assistant", "uuid": "...", "parentUuid": "...", "sessionId": "...",
     "timestamp": "...", "message": {"role": "assistant", "content": [...]}}

Assistant lines that call tools are split into a text message plus one
tool_use message per call; user lines carrying tool results become one
tool_result message per result.
"""

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

LOCAL_COMMAND_OUTPUT_TAG = "<local-command-stdout>"
COMPACT_SUBTYPES = ("compact_boundary", "microcompact_boundary")


class ClaudeCodeParser(BaseParser):
    name = "claude-code"
    provider_name = "claude-code"

    def can_parse(self, jsonl_content: str) -> bool:
        for record in sniff_records(jsonl_content):
            if (
                record.get("uuid")
                and record.get("timestamp")
                and record.get("message")
                and record.get("type") in ("user", "assistant")
            ):
                return True
        return False

    def parse_message(self, raw_message: RawLogMessage, index: int = 0) -> list[ParsedMessage]:
        if raw_message.get("isMeta"):
            return []

        timestamp = self.parse_timestamp(raw_message.get("timestamp"))
        if timestamp is None:
            return []

        message = raw_message.get("message")
        if not isinstance(message, dict):
            message = {}
        content = message.get("content")
        if content is None:
            content = raw_message.get("content")

        message_type = self._message_type(raw_message, content)

        if message_type == "assistant" and isinstance(content, list) and any(map(is_tool_use_part, content)):
            return self._split_assistant_with_tools(raw_message, content, timestamp, index)

        if message_type == "tool_result" and isinstance(content, list):
            return self._split_tool_results(raw_message, content, timestamp, index)

        return [self._single_message(raw_message, message_type, content, timestamp, index)]

    def _message_type(self, raw_message: RawLogMessage, content: Any) -> MessageType:
        raw_type = raw_message.get("type")

        if raw_type == "assistant":
            return "assistant"

        if raw_type == "system" and raw_message.get("subtype") in COMPACT_SUBTYPES:
            return "compact"

        if raw_type != "user":
            return "meta"

        if isinstance(content, list) and any(map(is_tool_result_part, content)):
            return "tool_result"

        if isinstance(content, str):
            if LOCAL_COMMAND_OUTPUT_TAG in content:
                return "command_output"
            if self.is_interruption_content(content):
                return "interruption"
            if self.is_command_content(content):
                return "command"
            return "user"

        parts = content if isinstance(content, list) else None
        if parts is None:
            wrapper = self.parse_parts_content(content)
            parts = wrapper["parts"] if wrapper is not None else None
        if parts:
            return self._classify_parts(parts)
        return "user"

    def _classify_parts(self, parts: list[Any]) -> MessageType:
        """Classify a user message from its parts.

        Empty text parts are ignored; every other part must be text carrying
        the same marker for the message to be reclassified.
        """
        if not all(isinstance(part, dict) and part.get("type") == "text" for part in parts):
            return "user"

        texts = [part["text"] for part in parts if is_text_part(part) and part["text"].strip()]
        if not texts:
            return "user"
        if all(map(self.is_interruption_content, texts)):
            return "interruption"
        if all(map(self.is_command_content, texts)):
            return "command"
        return "user"

    def _message_id(self, raw_message: RawLogMessage, index: int, timestamp: datetime) -> str:
        uuid = raw_message.get("uuid")
        if isinstance(uuid, str) and uuid:
            return uuid
        return self.generate_message_id(index, timestamp)

    def _split_assistant_with_tools(
        self,
        raw_message: RawLogMessage,
        parts: list[Any],
        timestamp: datetime,
        index: int,
    ) -> list[ParsedMessage]:
        message_id = self._message_id(raw_message, index, timestamp)
        role = message_role(raw_message) or "assistant"
        session_id = raw_message.get("sessionId")
        messages: list[ParsedMessage] = []

        if any(map(is_text_part, parts)):
            messages.append(
                ParsedMessage(
                    id=message_id,
                    timestamp=timestamp,
                    type="assistant",
                    content=text_of_parts(parts),
                    metadata=clean_metadata(
                        {
                            "role": role,
                            "sessionId": session_id,
                            "userType": raw_message.get("userType"),
                            "requestId": raw_message.get("requestId"),
                        }
                    ),
                    parent_id=raw_message.get("parentUuid"),
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
                            "role": "tool",
                            "sessionId": session_id,
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
        parts: list[Any],
        timestamp: datetime,
        index: int,
    ) -> list[ParsedMessage]:
        message_id = self._message_id(raw_message, index, timestamp)
        session_id = raw_message.get("sessionId")

        return [
            ParsedMessage(
                id=f"{message_id}-result-{part['tool_use_id']}",
                timestamp=timestamp,
                type="tool_result",
                content=StructuredContent.for_tool_result(part),
                metadata=clean_metadata(
                    {
                        "role": "tool",
                        "sessionId": session_id,
                        "isError": bool(part.get("is_error", False)),
                        "hasToolResults": True,
                        "resultCount": 1,
                    }
                ),
                parent_id=raw_message.get("parentUuid"),
                linked_to=part["tool_use_id"],
            )
            for part in parts
            if is_tool_result_part(part)
        ]

    def _single_message(
        self,
        raw_message: RawLogMessage,
        message_type: MessageType,
        content: Any,
        timestamp: datetime,
        index: int,
    ) -> ParsedMessage:
        parsed_content: str | StructuredContent
        if isinstance(content, str):
            parsed_content = content
        elif isinstance(content, list):
            parsed_content = structured_from_parts(content)
        else:
            wrapper = self.parse_parts_content(content)
            parsed_content = structured_from_parts(wrapper["parts"]) if wrapper is not None else ""

        structured = isinstance(parsed_content, StructuredContent)
        tool_count = len(parsed_content.tool_uses) if structured else 0
        result_count = len(parsed_content.tool_results) if structured else 0
        role = message_role(raw_message) or message_type

        return ParsedMessage(
            id=self._message_id(raw_message, index, timestamp),
            timestamp=timestamp,
            type=message_type,
            content=parsed_content,
            metadata=clean_metadata(
                {
                    "role": role,
                    "parentUuid": raw_message.get("parentUuid"),
                    "requestId": raw_message.get("requestId"),
                    "userType": raw_message.get("userType"),
                    "sessionId": raw_message.get("sessionId"),
                    "subtype": raw_message.get("subtype"),
                    "level": raw_message.get("level"),
                    "hasToolUses": tool_count > 0,
                    "hasToolResults": result_count > 0,
                    "toolCount": tool_count,
                    "resultCount": result_count,
                }
            ),
            parent_id=raw_message.get("parentUuid"),
        )
