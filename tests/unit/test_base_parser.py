"""Tests for the shared parser template."""

from datetime import datetime, timedelta, timezone

import pytest

from transcript_lens.exceptions import EmptyContentError, InvalidContentError
from transcript_lens.models import ParsedMessage
from transcript_lens.parsers import (
    BaseParser,
    CanonicalParser,
    ClaudeCodeParser,
    CodexParser,
    CopilotParser,
    GeminiParser,
    OpenCodeParser,
    SessionParser,
)
from transcript_lens.parsers.base import decode_arguments, epoch_ms, split_lines

ALL_PARSERS = [CanonicalParser, ClaudeCodeParser, GeminiParser, CopilotParser, CodexParser, OpenCodeParser]


class RecordingParser(BaseParser):
    """Turns every line into one user message; raises on lines marked ``boom``."""

    name = "recording"
    provider_name = "recording"

    def can_parse(self, jsonl_content: str) -> bool:
        return True

    def parse_message(self, raw_message, index=0):
        if raw_message.get("boom"):
            raise KeyError("boom")
        timestamp = self.parse_timestamp(raw_message.get("timestamp"))
        return [
            ParsedMessage(
                id=self.generate_message_id(index, timestamp),
                timestamp=timestamp,
                type="user",
                content=raw_message.get("text", ""),
            )
        ]


@pytest.mark.parametrize("parser_cls", ALL_PARSERS)
@pytest.mark.parametrize("content", ["", "   ", "\n\n  \n"])
def test_empty_content_raises(parser_cls, content):
    """Every parser rejects empty or blank content."""
    with pytest.raises(EmptyContentError, match="Content is empty"):
        parser_cls().parse_session(content)


@pytest.mark.parametrize("parser_cls", ALL_PARSERS)
def test_parsers_satisfy_protocol(parser_cls):
    parser = parser_cls()
    assert isinstance(parser, SessionParser)
    assert parser.name
    assert parser.provider_name


def test_no_valid_json_in_first_lines_raises():
    content = "not json\n{broken\nstill not json\n" + '{"timestamp": "2025-01-01T00:00:00Z"}\n'
    with pytest.raises(InvalidContentError) as exc_info:
        RecordingParser().parse_session(content)
    assert exc_info.value.checked_lines == 3
    assert "first 3 lines" in str(exc_info.value)


def test_one_valid_line_in_sample_is_enough(jsonl):
    content = jsonl(["garbage", {"timestamp": "2025-01-01T00:00:00Z", "text": "hi"}])
    session = RecordingParser().parse_session(content)

    assert len(session.messages) == 1
    assert session.metadata["lineCount"] == 2
    assert session.metadata["skippedLineCount"] == 1


def test_malformed_line_is_skipped(claude_records, jsonl):
    """A corrupt line in the middle drops only that line."""
    clean = ClaudeCodeParser().parse_session(jsonl(claude_records))
    corrupted = ClaudeCodeParser().parse_session(
        jsonl(claude_records[:2] + ['{"type": "user", "uuid": '] + claude_records[2:])
    )

    assert [m.id for m in corrupted.messages] == [m.id for m in clean.messages]
    assert corrupted.metadata["skippedLineCount"] == 1
    assert corrupted.metadata["lineCount"] == clean.metadata["lineCount"] + 1


def test_non_object_lines_are_skipped(jsonl):
    content = jsonl([{"timestamp": "2025-01-01T00:00:00Z"}, "[1, 2, 3]", "42"])
    session = RecordingParser().parse_session(content)

    assert len(session.messages) == 1
    assert session.metadata["skippedLineCount"] == 2


def test_parse_message_errors_are_skipped(jsonl):
    content = jsonl(
        [
            {"timestamp": "2025-01-01T00:00:00Z", "text": "first"},
            {"timestamp": "2025-01-01T00:00:05Z", "boom": True},
            {"timestamp": "2025-01-01T00:00:10Z", "text": "last"},
        ]
    )
    session = RecordingParser().parse_session(content)

    assert [m.text for m in session.messages] == ["first", "last"]
    assert session.metadata["skippedLineCount"] == 1
    # The failing line still contributes its timestamp to the bounds
    assert session.duration == 10_000


def test_session_bounds_and_duration(claude_records, jsonl):
    session = ClaudeCodeParser().parse_session(jsonl(claude_records))

    assert session.start_time == datetime(2025, 1, 15, 10, 0, 0, tzinfo=timezone.utc)
    assert session.end_time == datetime(2025, 1, 15, 10, 0, 10, tzinfo=timezone.utc)
    assert session.duration == 10_000


def test_out_of_order_lines_keep_file_order(jsonl):
    content = jsonl(
        [
            {"timestamp": "2025-01-01T00:00:30Z", "text": "b"},
            {"timestamp": "2025-01-01T00:00:00Z", "text": "a"},
            {"timestamp": "2025-01-01T00:01:00Z", "text": "c"},
        ]
    )
    session = RecordingParser().parse_session(content)

    assert [m.text for m in session.messages] == ["b", "a", "c"]
    assert session.start_time == datetime(2025, 1, 1, 0, 0, 0, tzinfo=timezone.utc)
    assert session.end_time == datetime(2025, 1, 1, 0, 1, 0, tzinfo=timezone.utc)
    assert session.duration == 60_000


def test_no_timestamps_falls_back_to_now(fixed_clock, jsonl):
    session = RecordingParser(clock=fixed_clock).parse_session(jsonl([{"text": "x"}, {"text": "y"}]))

    assert session.messages == []
    assert session.start_time == fixed_clock()
    assert session.end_time == fixed_clock()
    assert session.duration == 0


def test_fallback_session_id_uses_clock(fixed_clock, jsonl):
    session = RecordingParser(clock=fixed_clock).parse_session(
        jsonl([{"timestamp": "2025-01-01T00:00:00Z", "text": "x"}])
    )
    assert session.session_id == f"session_{epoch_ms(fixed_clock())}"


def test_first_session_id_wins(jsonl):
    content = jsonl(
        [
            {"timestamp": "2025-01-01T00:00:00Z"},
            {"timestamp": "2025-01-01T00:00:01Z", "sessionID": "first"},
            {"timestamp": "2025-01-01T00:00:02Z", "sessionId": "second"},
        ]
    )
    assert RecordingParser().parse_session(content).session_id == "first"


def test_parse_is_repeatable(claude_records, fixed_clock, jsonl):
    """The same content parses to equal sessions, with no state kept between calls."""
    parser = ClaudeCodeParser(clock=fixed_clock)
    content = jsonl(claude_records)

    assert parser.parse_session(content) == parser.parse_session(content)


def test_crlf_line_endings(claude_records, jsonl):
    content = jsonl(claude_records).replace("\n", "\r\n")
    session = ClaudeCodeParser().parse_session(content)
    assert session.metadata["skippedLineCount"] == 0
    assert len(session.messages) == 7


@pytest.mark.parametrize(
    "value, expected",
    [
        ("2025-01-15T10:00:00Z", datetime(2025, 1, 15, 10, 0, 0, tzinfo=timezone.utc)),
        ("2025-01-15T10:00:00.250Z", datetime(2025, 1, 15, 10, 0, 0, 250000, tzinfo=timezone.utc)),
        ("2025-01-15T12:00:00+02:00", datetime(2025, 1, 15, 10, 0, 0, tzinfo=timezone.utc)),
        ("2025-01-15T10:00:00", datetime(2025, 1, 15, 10, 0, 0, tzinfo=timezone.utc)),
        ("2025-01-15T10:00:00.12Z", datetime(2025, 1, 15, 10, 0, 0, 120000, tzinfo=timezone.utc)),
        ("2025-01-15T10:00:00.1234567Z", datetime(2025, 1, 15, 10, 0, 0, 123456, tzinfo=timezone.utc)),
        ("2025-01-15T10:00:00.5+01:00", datetime(2025, 1, 15, 9, 0, 0, 500000, tzinfo=timezone.utc)),
        (1736935200000, datetime(2025, 1, 15, 10, 0, 0, tzinfo=timezone.utc)),
    ],
)
def test_parse_timestamp_valid(value, expected):
    parsed = BaseParser.parse_timestamp(value)
    assert parsed == expected
    assert parsed.utcoffset() == timedelta(0)


@pytest.mark.parametrize("value", [None, "", "yesterday", "2025-13-45T00:00:00Z", True, {}, []])
def test_parse_timestamp_invalid(value):
    assert BaseParser.parse_timestamp(value) is None


def test_generate_message_id(fixed_clock):
    parser = RecordingParser(clock=fixed_clock)
    moment = datetime(2025, 1, 1, 0, 0, 0, tzinfo=timezone.utc)

    assert parser.generate_message_id(3, moment) == f"msg_{epoch_ms(moment)}_3"
    assert parser.generate_message_id(0) == f"msg_{epoch_ms(fixed_clock())}_0"


def test_epoch_ms():
    assert epoch_ms(datetime(1970, 1, 1, tzinfo=timezone.utc)) == 0
    assert epoch_ms(datetime(1970, 1, 1, 0, 0, 1, 500000, tzinfo=timezone.utc)) == 1500


def test_split_lines_drops_blank_lines():
    assert split_lines('{"a": 1}\n\n   \n{"b": 2}\n') == ['{"a": 1}', '{"b": 2}']


def test_decode_arguments():
    assert decode_arguments({"a": 1}) == {"a": 1}
    assert decode_arguments('{"a": 1}') == {"a": 1}
    assert decode_arguments("not json") == {}
    assert decode_arguments("[1, 2]") == {}
    assert decode_arguments(None) == {}


def test_parse_parts_content():
    parser = RecordingParser()
    wrapper = {"parts": [{"type": "text", "text": "hi"}]}

    assert parser.parse_parts_content(wrapper) == wrapper
    assert parser.parse_parts_content('{"parts": [{"type": "text", "text": "hi"}]}') == wrapper
    assert parser.parse_parts_content("plain text") is None
    assert parser.parse_parts_content({"parts": "nope"}) is None


def test_extract_text_content():
    parser = RecordingParser()

    assert parser.extract_text_content("hello") == "hello"
    assert parser.extract_text_content([{"type": "text", "text": "a"}, {"type": "image"}, {"type": "text", "text": "b"}]) == "a b"
    assert parser.extract_text_content({"parts": [{"type": "text", "text": "x"}, {"type": "text", "text": ""}]}) == "x"
    assert parser.extract_text_content(None) == ""


def test_interruption_and_command_detection():
    parser = RecordingParser()

    assert parser.is_interruption_content("[Request interrupted by user]")
    assert parser.is_interruption_content([{"type": "text", "text": "[Request interrupted by user for tool use]"}])
    assert not parser.is_interruption_content("please continue")

    assert parser.is_command_content("/clear")
    assert parser.is_command_content("<command-name>/model</command-name>")
    assert not parser.is_command_content("run the tests")


def test_duration_uses_whole_millisecond_timestamps(jsonl):
    content = jsonl(
        [
            {"timestamp": "2025-01-01T00:00:00.000900Z", "text": "a"},
            {"timestamp": "2025-01-01T00:00:01.000100Z", "text": "b"},
        ]
    )
    session = RecordingParser().parse_session(content)

    assert session.duration == epoch_ms(session.end_time) - epoch_ms(session.start_time)
    assert session.duration == 1000
