"""Provider session parsers."""

from transcript_lens.parsers.base import BaseParser, LineResult, RawLogMessage, SessionParser
from transcript_lens.parsers.canonical import CanonicalParser
from transcript_lens.parsers.claude_code import ClaudeCodeParser
from transcript_lens.parsers.codex import CodexParser
from transcript_lens.parsers.copilot import CopilotParser
from transcript_lens.parsers.gemini import GeminiParser
from transcript_lens.parsers.opencode import OpenCodeParser
from transcript_lens.parsers.registry import ParserRegistry, parse_session, parser_registry

__all__ = [
    "BaseParser",
    "CanonicalParser",
    "ClaudeCodeParser",
    "CodexParser",
    "CopilotParser",
    "GeminiParser",
    "LineResult",
    "OpenCodeParser",
    "ParserRegistry",
    "RawLogMessage",
    "SessionParser",
    "parse_session",
    "parser_registry",
]
