"""GitHub Copilot CLI session parser.

Copilot logs a completed tool call as a single ``tool_call_completed``
entry holding both the request and its result, so that entry is expanded
into a tool_use message and a linked tool_result message.
"""

from datetime import datetime
from typing import Any

from transcript_lens.models import MessageType, ParsedMessage, StructuredContent
from transcript_lens.parsers.base import (
    BaseParser,
    RawLogMessage,
    clean_metadata,
    decode_arguments,
    epoch_ms,
    sniff_records,
)

COPILOT_ENTRY_TYPES = ("user", "copilot", "info", "tool_call_requested", "tool_call_completed")

_TYPE_MAP: dict[str, MessageType] = {
    "user": "user",
    "copilot": "assistant",
    "info": "assistant",
    "tool_call_requested": "tool_use",
    "tool_call_completed": "tool_result",
}


class CopilotParser(BaseParser):
    name = "github-copilot"
    provider_name = "github-copilot"
    fallback_session_prefix = "copilot-"

    def can_parse(self, jsonl_content: str) -> bool:
        return any(record.get("type") in COPILOT_ENTRY_TYPES for record in sniff_records(jsonl_content))

    def extract_session_id(self, raw_message: RawLogMessage) -> str | None:
        # Copilot entries carry no session id; parse_session synthesizes one.
        return None

    def parse_message(self, raw_message: RawLogMessage, index: int = 0) -> list[ParsedMessage]:
        timestamp = self.parse_timestamp(raw_message.get("timestamp"))
        if timestamp is None:
            return []

        entry_type = raw_message.get("type")

        if entry_type == "tool_call_requested":
            return [self._tool_use_message(raw_message, timestamp, requested=True)]

        if entry_type == "tool_call_completed":
            tool_use = self._tool_use_message(raw_message, timestamp)
            return [tool_use, self._tool_result_message(raw_message, tool_use.id, timestamp)]

        message_type = _TYPE_MAP.get(entry_type, "meta") if isinstance(entry_type, str) else "meta"
        raw_id = raw_message.get("id")
        text = raw_message.get("text")

        return [
            ParsedMessage(
                id=raw_id if isinstance(raw_id, str) and raw_id else f"msg-{epoch_ms(timestamp)}-{index}",
                timestamp=timestamp,
                type=message_type,
                content=text if isinstance(text, str) else "",
                metadata={"entryType": entry_type},
            )
        ]

    def _tool_id(self, raw_message: RawLogMessage, timestamp: datetime) -> str:
        call_id = raw_message.get("callId")
        if isinstance(call_id, str) and call_id:
            return call_id
        return f"tool-{epoch_ms(timestamp)}"

    def _tool_use_message(
        self,
        raw_message: RawLogMessage,
        timestamp: datetime,
        requested: bool = False,
    ) -> ParsedMessage:
        """Build the tool_use side of a call.

        The completed entry for a call repeats its callId, so the requested
        side gets a suffixed message id and the completed side keeps the bare
        callId its tool_result links to.
        """
        tool_id = self._tool_id(raw_message, timestamp)
        name = raw_message.get("name")
        tool_use = {
            "type": "tool_use",
            "id": tool_id,
            "name": name if isinstance(name, str) and name else "unknown",
            "input": decode_arguments(raw_message.get("arguments")),
        }
        return ParsedMessage(
            id=f"{tool_id}-requested" if requested else tool_id,
            timestamp=timestamp,
            type="tool_use",
            content=StructuredContent.for_tool_use(tool_use),
            metadata=clean_metadata(
                {
                    "toolTitle": raw_message.get("toolTitle"),
                    "intentionSummary": raw_message.get("intentionSummary"),
                    "toolName": tool_use["name"],
                    "toolUseId": tool_id,
                    "hasToolUses": True,
                    "toolCount": 1,
                }
            ),
        )

    def _tool_result_message(
        self,
        raw_message: RawLogMessage,
        tool_use_id: str,
        timestamp: datetime,
    ) -> ParsedMessage:
        result = raw_message.get("result")
        tool_result = {
            "type": "tool_result",
            "tool_use_id": tool_use_id,
            "content": _result_content(result),
        }
        return ParsedMessage(
            id=f"result-{tool_use_id}",
            timestamp=timestamp,
            type="tool_result",
            content=StructuredContent.for_tool_result(tool_result),
            metadata=clean_metadata(
                {
                    "toolName": raw_message.get("name"),
                    "resultType": result.get("type") if isinstance(result, dict) else None,
                    "hasToolResults": True,
                    "resultCount": 1,
                }
            ),
            linked_to=tool_use_id,
        )


def _result_content(result: Any) -> Any:
    if isinstance(result, dict) and "log" in result:
        return result["log"]
    return result
