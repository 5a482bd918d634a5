"""Session-level views over parsed messages."""

from collections import Counter
from dataclasses import dataclass
from typing import Any

from transcript_lens.config import INTERRUPTION_MARKERS
from transcript_lens.models import ContentPart, ParsedMessage, ParsedSession
from transcript_lens.parsers.base import epoch_ms


@dataclass
class ResponseTime:
    """A user message and the assistant message that answered it."""

    user_message: ParsedMessage
    assistant_message: ParsedMessage
    response_ms: int


@dataclass
class ToolPair:
    tool_use: ParsedMessage
    tool_result: ParsedMessage | None = None

    @property
    def completed(self) -> bool:
        return self.tool_result is not None


def extract_tool_uses(session: ParsedSession) -> list[ContentPart]:
    """All tool-use blocks in message order."""
    return [tool_use for message in session.messages for tool_use in message.tool_uses]


def extract_tool_results(session: ParsedSession) -> list[ContentPart]:
    """All tool-result blocks in message order."""
    return [result for message in session.messages for result in message.tool_results]


def find_interruptions(session: ParsedSession) -> list[ParsedMessage]:
    """Messages where the user interrupted the assistant."""
    interruptions: list[ParsedMessage] = []
    for message in session.messages:
        if message.type == "interruption":
            interruptions.append(message)
        elif message.type == "user" and any(marker in message.text for marker in INTERRUPTION_MARKERS):
            interruptions.append(message)
    return interruptions


def calculate_response_times(session: ParsedSession) -> list[ResponseTime]:
    """Time from each user message to an assistant message that directly follows it."""
    response_times: list[ResponseTime] = []
    messages = session.messages

    for current, following in zip(messages, messages[1:]):
        if current.type == "user" and following.type == "assistant":
            response_times.append(
                ResponseTime(
                    user_message=current,
                    assistant_message=following,
                    response_ms=epoch_ms(following.timestamp) - epoch_ms(current.timestamp),
                )
            )

    return response_times


def _call_id(message: ParsedMessage) -> str:
    tool_uses = message.tool_uses
    if tool_uses and tool_uses[0].get("id"):
        return tool_uses[0]["id"]
    return message.id


def pair_tool_calls(session: ParsedSession) -> list[ToolPair]:
    """Match each tool call with the tool_result linked to it.

    Calls are keyed by their tool-use block id, so a call logged once when
    requested and again when completed yields a single pair. The message
    whose id is the call id itself is preferred as the pair's tool_use.
    """
    results_by_link: dict[str, ParsedMessage] = {}
    for message in session.messages:
        if message.type == "tool_result" and message.linked_to and message.linked_to not in results_by_link:
            results_by_link[message.linked_to] = message

    pairs: dict[str, ToolPair] = {}
    for message in session.messages:
        if message.type != "tool_use":
            continue
        call_id = _call_id(message)
        if call_id not in pairs or message.id == call_id:
            result = results_by_link.get(call_id) or results_by_link.get(message.id)
            pairs[call_id] = ToolPair(tool_use=message, tool_result=result)
    return list(pairs.values())


def summarize_session(session: ParsedSession) -> dict[str, Any]:
    type_counts = Counter(message.type for message in session.messages)
    pairs = pair_tool_calls(session)
    return {
        "sessionId": session.session_id,
        "provider": session.provider,
        "startTime": session.start_time.isoformat(),
        "endTime": session.end_time.isoformat(),
        "durationMs": session.duration,
        "messageCount": session.metadata.get("messageCount", len(session.messages)),
        "lineCount": session.metadata.get("lineCount", 0),
        "skippedLineCount": session.metadata.get("skippedLineCount", 0),
        "messageTypes": dict(sorted(type_counts.items())),
        "toolCalls": len(pairs),
        "unansweredToolCalls": sum(1 for pair in pairs if not pair.completed),
        "interruptions": len(find_interruptions(session)),
    }
