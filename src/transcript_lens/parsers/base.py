"""Shared parsing logic for provider session parsers.

Every provider parser turns one JSONL line into zero or more
ParsedMessages. The line splitting, timestamp bounds, session id lookup
and skip policy live here so providers only deal with their own shapes.
"""

import json
import logging
import re
from abc import ABC, abstractmethod
from collections.abc import Callable, Iterator
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Protocol, runtime_checkable

from transcript_lens.config import (
    COMMAND_TAG,
    DEFAULT_SESSION_PREFIX,
    DETECTION_LINE_LIMIT,
    INTERRUPTION_MARKERS,
    VALIDATION_LINE_LIMIT,
)
from transcript_lens.exceptions import EmptyContentError, InvalidContentError
from transcript_lens.models import (
    ContentPart,
    ParsedMessage,
    ParsedSession,
    StructuredContent,
    is_text_part,
    is_tool_result_part,
    is_tool_use_part,
)

logger = logging.getLogger(__name__)

# One decoded JSONL line, in the provider's own shape
RawLogMessage = dict[str, Any]
Clock = Callable[[], datetime]

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_ONE_MS = timedelta(milliseconds=1)

# fromisoformat on 3.10 accepts only 3 or 6 fractional digits
_FRACTION = re.compile(r"\.(\d+)")


def utc_now() -> datetime:
    return datetime.now(tz=timezone.utc)


def epoch_ms(value: datetime) -> int:
    """Milliseconds since the Unix epoch for an aware datetime."""
    return (value - _EPOCH) // _ONE_MS


def split_lines(content: str) -> list[str]:
    """Split JSONL text into its non-blank lines."""
    return [line for line in content.split("\n") if line.strip()]


def load_json_line(line: str) -> tuple[Any | None, str | None]:
    try:
        return json.loads(line), None
    except json.JSONDecodeError as exc:
        return None, str(exc)


def sniff_records(content: str, limit: int = DETECTION_LINE_LIMIT) -> Iterator[RawLogMessage]:
    """Yield the JSON objects among the first ``limit`` non-blank lines."""
    if not isinstance(content, str):
        return
    for line in split_lines(content)[:limit]:
        record, error = load_json_line(line)
        if error is None and isinstance(record, dict):
            yield record


def decode_arguments(value: Any) -> dict[str, Any]:
    """Decode tool-call arguments into a dict; anything unusable becomes {}."""
    if isinstance(value, dict):
        return value
    if isinstance(value, str):
        decoded, error = load_json_line(value)
        if error is None and isinstance(decoded, dict):
            return decoded
    return {}


def text_of_parts(parts: list[Any]) -> str:
    return "\n".join(part["text"] for part in parts if is_text_part(part))


def message_role(raw_message: RawLogMessage) -> str | None:
    message = raw_message.get("message")
    if isinstance(message, dict) and isinstance(message.get("role"), str):
        return message["role"]
    return None


def clean_metadata(values: dict[str, Any]) -> dict[str, Any]:
    """Drop keys whose value is None."""
    return {key: value for key, value in values.items() if value is not None}


def structured_from_parts(parts: list[Any]) -> StructuredContent:
    return StructuredContent(
        text=text_of_parts(parts),
        tool_uses=[part for part in parts if is_tool_use_part(part)],
        tool_results=[part for part in parts if is_tool_result_part(part)],
        structured=parts,
    )


@runtime_checkable
class SessionParser(Protocol):
    name: str
    provider_name: str

    def can_parse(self, jsonl_content: str) -> bool: ...

    def parse_session(self, jsonl_content: str) -> ParsedSession: ...

    def parse_message(self, raw_message: RawLogMessage, index: int = 0) -> list[ParsedMessage]: ...


@dataclass
class LineResult:
    """Outcome of one JSONL line: its messages, or why it was skipped."""

    messages: list[ParsedMessage] = field(default_factory=list)
    timestamp: datetime | None = None
    session_id: str | None = None
    skip_reason: str | None = None

    @property
    def skipped(self) -> bool:
        return self.skip_reason is not None


class BaseParser(ABC):
    """Template for provider parsers.

    Subclasses set ``name`` and ``provider_name`` and implement
    ``can_parse`` and ``parse_message``. Parsers hold no per-session state,
    so one instance can parse any number of sessions.
    """

    name: str
    provider_name: str
    fallback_session_prefix: str = DEFAULT_SESSION_PREFIX

    def __init__(self, clock: Clock | None = None):
        self._clock = clock or utc_now

    def now(self) -> datetime:
        return self._clock()

    def parse_session(self, jsonl_content: str) -> ParsedSession:
        """Parse JSONL content into a ParsedSession.

        Raises:
            EmptyContentError: content is empty or blank.
            InvalidContentError: none of the first lines is valid JSON.
        """
        lines = self.validate_content(jsonl_content)

        messages: list[ParsedMessage] = []
        session_id = ""
        start_time: datetime | None = None
        end_time: datetime | None = None
        skipped = 0

        for index, line in enumerate(lines):
            result = self.parse_line(line, index)

            if not session_id and result.session_id:
                session_id = result.session_id

            if result.timestamp is not None:
                if start_time is None or result.timestamp < start_time:
                    start_time = result.timestamp
                if end_time is None or result.timestamp > end_time:
                    end_time = result.timestamp

            if result.skipped:
                skipped += 1
                logger.debug("%s: skipping line %d: %s", self.name, index + 1, result.skip_reason)
                continue

            messages.extend(result.messages)

        now = self.now()
        if not session_id:
            session_id = f"{self.fallback_session_prefix}{epoch_ms(now)}"
        if start_time is None or end_time is None:
            start_time = end_time = now

        logger.debug(
            "%s: parsed %d messages from %d lines, skipped %d",
            self.name,
            len(messages),
            len(lines),
            skipped,
        )

        return ParsedSession(
            session_id=session_id,
            provider=self.provider_name,
            messages=messages,
            start_time=start_time,
            end_time=end_time,
            duration=epoch_ms(end_time) - epoch_ms(start_time),
            metadata={
                "messageCount": len(messages),
                "lineCount": len(lines),
                "skippedLineCount": skipped,
            },
        )

    def parse_line(self, line: str, index: int) -> LineResult:
        """Parse one line, turning every failure into a skip."""
        record, error = load_json_line(line)
        if error is not None:
            return LineResult(skip_reason=f"invalid json ({error})")
        if not isinstance(record, dict):
            return LineResult(skip_reason="not a JSON object")

        session_id = self.extract_session_id(record)

        timestamp = self.parse_timestamp(record.get("timestamp"))
        if timestamp is None:
            return LineResult(session_id=session_id, skip_reason="missing or invalid timestamp")

        try:
            parsed = self.parse_message(record, index)
        except Exception as exc:
            return LineResult(
                timestamp=timestamp,
                session_id=session_id,
                skip_reason=f"{type(exc).__name__}: {exc}",
            )
        return LineResult(messages=parsed, timestamp=timestamp, session_id=session_id)

    @abstractmethod
    def can_parse(self, jsonl_content: str) -> bool:
        """Check whether the first lines look like this provider's format."""

    @abstractmethod
    def parse_message(self, raw_message: RawLogMessage, index: int = 0) -> list[ParsedMessage]:
        """Turn one raw line into zero or more messages.

        ``index`` is the line's position among the non-blank lines and is
        only used to build fallback ids.
        """

    def validate_content(self, content: str) -> list[str]:
        """Return the non-blank lines of ``content`` or raise if it is unusable."""
        if not isinstance(content, str) or not content.strip():
            raise EmptyContentError()

        lines = split_lines(content)
        sample = lines[:VALIDATION_LINE_LIMIT]
        if not any(load_json_line(line)[1] is None for line in sample):
            raise InvalidContentError(len(sample))
        return lines

    def extract_session_id(self, raw_message: RawLogMessage) -> str | None:
        for key in ("sessionId", "sessionID"):
            value = raw_message.get(key)
            if isinstance(value, str) and value:
                return value
        return None

    @staticmethod
    def parse_timestamp(value: Any) -> datetime | None:
        """Parse an ISO-8601 string or epoch milliseconds into an aware UTC datetime.

        Returns None for missing or unparsable values.
        """
        if not value or isinstance(value, bool):
            return None
        if isinstance(value, (int, float)):
            try:
                return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
            except (OverflowError, OSError, ValueError):
                return None
        if not isinstance(value, str):
            return None

        text = value.strip()
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        text = _FRACTION.sub(lambda match: "." + match.group(1)[:6].ljust(6, "0"), text, count=1)
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed.astimezone(timezone.utc)

    def generate_message_id(self, index: int, timestamp: datetime | None = None) -> str:
        moment = timestamp if timestamp is not None else self.now()
        return f"msg_{epoch_ms(moment)}_{index}"

    def parse_parts_content(self, content: Any) -> dict[str, Any] | None:
        """Return a ``{"parts": [...]}`` wrapper, decoding it from JSON text if needed."""
        if isinstance(content, str):
            try:
                content = json.loads(content)
            except json.JSONDecodeError:
                return None
        if isinstance(content, dict) and isinstance(content.get("parts"), list):
            return content
        return None

    def extract_text_from_parts(self, parts: list[ContentPart]) -> str:
        return "\n".join(part["text"] for part in parts if is_text_part(part) and part["text"])

    def extract_text_content(self, content: Any) -> str:
        if isinstance(content, str):
            return content
        if isinstance(content, list):
            return " ".join(
                part["text"] if is_text_part(part) else ""
                for part in content
                if isinstance(part, dict) and part.get("type") == "text"
            )
        parts_content = self.parse_parts_content(content)
        if parts_content is not None:
            return self.extract_text_from_parts(parts_content["parts"])
        return ""

    def is_interruption_content(self, content: Any) -> bool:
        text = self.extract_text_content(content)
        return any(marker in text for marker in INTERRUPTION_MARKERS)

    def is_command_content(self, content: Any) -> bool:
        text = self.extract_text_content(content)
        return text.startswith("/") or COMMAND_TAG in text
