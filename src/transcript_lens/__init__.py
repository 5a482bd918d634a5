"""Normalize AI coding-assistant session logs into one message model."""

__version__ = "0.1.0"

from transcript_lens.exceptions import (  # noqa: E402
    EmptyContentError,
    InvalidContentError,
    SessionParseError,
    UnsupportedProviderError,
)
from transcript_lens.models import ParsedMessage, ParsedSession, StructuredContent  # noqa: E402
from transcript_lens.parsers import ParserRegistry, parse_session, parser_registry  # noqa: E402

__all__ = [
    "EmptyContentError",
    "InvalidContentError",
    "ParsedMessage",
    "ParsedSession",
    "ParserRegistry",
    "SessionParseError",
    "StructuredContent",
    "UnsupportedProviderError",
    "__version__",
    "parse_session",
    "parser_registry",
]
