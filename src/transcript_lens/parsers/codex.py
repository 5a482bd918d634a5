"""Codex CLI session parser.

Every line is an envelope ``{"timestamp", "type", "payload"}``. Only
``response_item`` envelopes produce messages; ``session_meta`` supplies
the session id and the rest (``event_msg``, ``turn_context``) repeat or
describe what the response items already carry.
"""

from datetime import datetime
from typing import Any

from transcript_lens.models import MessageType, ParsedMessage, StructuredContent
from transcript_lens.parsers.base import (
    BaseParser,
    RawLogMessage,
    clean_metadata,
    decode_arguments,
    load_json_line,
    sniff_records,
)

ENVELOPE_TYPES = ("session_meta", "response_item", "event_msg", "turn_context")

# Text-bearing parts of a ``message`` payload
TEXT_PART_TYPES = ("input_text", "output_text", "text")

_ROLE_MAP: dict[str, MessageType] = {
    "user": "user",
    "assistant": "assistant",
}


class CodexParser(BaseParser):
    name = "codex"
    provider_name = "codex"
    fallback_session_prefix = "codex_"

    def can_parse(self, jsonl_content: str) -> bool:
        for record in sniff_records(jsonl_content):
            if record.get("type") in ENVELOPE_TYPES and isinstance(record.get("payload"), dict):
                return True
        return False

    def extract_session_id(self, raw_message: RawLogMessage) -> str | None:
        payload = raw_message.get("payload")
        if raw_message.get("type") == "session_meta" and isinstance(payload, dict):
            session_id = payload.get("id")
            if isinstance(session_id, str) and session_id:
                return session_id
        return super().extract_session_id(raw_message)

    def parse_message(self, raw_message: RawLogMessage, index: int = 0) -> list[ParsedMessage]:
        timestamp = self.parse_timestamp(raw_message.get("timestamp"))
        if timestamp is None or raw_message.get("type") != "response_item":
            return []

        payload = raw_message.get("payload")
        if not isinstance(payload, dict):
            return []

        payload_type = payload.get("type")
        if payload_type == "message":
            message = self._message(payload, timestamp, index)
        elif payload_type == "function_call":
            message = self._function_call(payload, timestamp)
        elif payload_type == "function_call_output":
            message = self._function_call_output(payload, timestamp)
        else:
            # reasoning and anything newer is not part of the conversation
            return []

        return [message] if message is not None else []

    def _message(self, payload: dict[str, Any], timestamp: datetime, index: int) -> ParsedMessage | None:
        role = payload.get("role")
        if not isinstance(role, str) or not role:
            return None

        parts = payload.get("content")
        if not isinstance(parts, list):
            parts = []
        text = "\n".join(
            part["text"]
            for part in parts
            if isinstance(part, dict) and part.get("type") in TEXT_PART_TYPES and isinstance(part.get("text"), str)
        )

        payload_id = payload.get("id")
        return ParsedMessage(
            id=payload_id if isinstance(payload_id, str) and payload_id else self.generate_message_id(index, timestamp),
            timestamp=timestamp,
            type=_ROLE_MAP.get(role, "meta"),
            content=StructuredContent(text=text, structured=parts),
            metadata={"role": role, "payloadType": "message"},
        )

    def _function_call(self, payload: dict[str, Any], timestamp: datetime) -> ParsedMessage | None:
        name = payload.get("name")
        call_id = payload.get("call_id")
        if not isinstance(name, str) or not name or not isinstance(call_id, str) or not call_id:
            return None

        tool_use = {
            "type": "tool_use",
            "id": call_id,
            "name": name,
            "input": decode_arguments(payload.get("arguments")),
        }
        return ParsedMessage(
            id=call_id,
            timestamp=timestamp,
            type="tool_use",
            content=StructuredContent.for_tool_use(tool_use),
            metadata={
                "toolName": name,
                "toolUseId": call_id,
                "payloadType": "function_call",
                "hasToolUses": True,
                "toolCount": 1,
            },
        )

    def _function_call_output(self, payload: dict[str, Any], timestamp: datetime) -> ParsedMessage | None:
        call_id = payload.get("call_id")
        if not isinstance(call_id, str) or not call_id:
            return None

        output = payload.get("output")
        if isinstance(output, str):
            decoded, error = load_json_line(output)
            if error is None:
                output = decoded

        tool_result = {"type": "tool_result", "tool_use_id": call_id, "content": output}
        return ParsedMessage(
            id=f"tool_result_{call_id}",
            timestamp=timestamp,
            type="tool_result",
            content=StructuredContent.for_tool_result(tool_result),
            metadata=clean_metadata(
                {
                    "payloadType": "function_call_output",
                    "exitCode": _exit_code(output),
                    "hasToolResults": True,
                    "resultCount": 1,
                }
            ),
            linked_to=call_id,
        )


def _exit_code(output: Any) -> int | None:
    if isinstance(output, dict):
        metadata = output.get("metadata")
        if isinstance(metadata, dict) and isinstance(metadata.get("exit_code"), int):
            return metadata["exit_code"]
    return None
