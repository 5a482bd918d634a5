"""Parser registry: name lookup and content-based detection."""

import logging

from transcript_lens.exceptions import UnsupportedProviderError
from transcript_lens.models import ParsedSession
from transcript_lens.parsers.base import SessionParser
from transcript_lens.parsers.claude_code import ClaudeCodeParser
from transcript_lens.parsers.codex import CodexParser
from transcript_lens.parsers.copilot import CopilotParser
from transcript_lens.parsers.gemini import GeminiParser
from transcript_lens.parsers.opencode import OpenCodeParser

logger = logging.getLogger(__name__)

# Short names pointing at a canonical provider name
ALIASES = {
    "claude": "claude-code",
    "gemini": "gemini-code",
    "copilot": "github-copilot",
}


class ParserRegistry:
    """Holds parser instances keyed by name.

    Lookup and detection both walk the parsers in registration order, so
    the order parsers are registered in decides ties.
    """

    def __init__(self, register_defaults: bool = True):
        self._parsers: dict[str, SessionParser] = {}
        if register_defaults:
            for parser in (
                ClaudeCodeParser(),
                GeminiParser(),
                CopilotParser(),
                CodexParser(),
                OpenCodeParser(),
            ):
                self.register(parser)
            for alias, target in ALIASES.items():
                self.add_alias(alias, target)

    def register(self, parser: SessionParser) -> None:
        self._parsers[parser.name] = parser
        if parser.provider_name != parser.name:
            self._parsers[parser.provider_name] = parser

    def add_alias(self, alias: str, target: str) -> None:
        parser = self._parsers.get(target)
        if parser is None:
            raise KeyError(f"Cannot alias {alias!r}: no parser registered as {target!r}")
        self._parsers[alias] = parser

    def get_parser(self, provider: str) -> SessionParser | None:
        """Look up a parser by provider name.

        Exact (case-insensitive, trimmed) matches win. Otherwise the first
        registered name that contains, or is contained in, the requested
        name is returned. That fallback is best effort: short names can
        match more than one parser.
        """
        normalized = provider.lower().strip() if isinstance(provider, str) else ""
        if not normalized:
            return None

        exact = self._parsers.get(normalized)
        if exact is not None:
            return exact

        for name, parser in self._parsers.items():
            if normalized in name or name in normalized:
                logger.debug("Provider %r matched parser %r by substring", provider, name)
                return parser
        return None

    def detect_parser(self, jsonl_content: str) -> SessionParser | None:
        """Return the first registered parser whose ``can_parse`` accepts the content."""
        for parser in self.parsers():
            if parser.can_parse(jsonl_content):
                return parser
        return None

    def parsers(self) -> list[SessionParser]:
        """Unique parser instances in registration order."""
        unique: list[SessionParser] = []
        for parser in self._parsers.values():
            if not any(parser is seen for seen in unique):
                unique.append(parser)
        return unique

    def registered_providers(self) -> list[str]:
        return [parser.provider_name for parser in self.parsers()]

    def names(self) -> list[str]:
        """Every registered key, aliases included."""
        return list(self._parsers)

    def has_parser(self, provider: str) -> bool:
        return self.get_parser(provider) is not None


parser_registry = ParserRegistry()


def parse_session(jsonl_content: str, provider: str | None = None) -> ParsedSession:
    """Parse a session with the named parser, or the detected one if no name is given.

    Raises:
        UnsupportedProviderError: no parser matches.
        SessionParseError: the content itself is unusable.
    """
    if provider:
        parser = parser_registry.get_parser(provider)
    else:
        parser = parser_registry.detect_parser(jsonl_content)
    if parser is None:
        raise UnsupportedProviderError(provider)
    return parser.parse_session(jsonl_content)
