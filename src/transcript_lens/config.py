"""Configuration and logging setup for transcript-lens."""

import logging
import os

from rich.console import Console
from rich.logging import RichHandler

LOGGER_NAME = "transcript_lens"
LOG_LEVEL_ENV = "TRANSCRIPT_LENS_LOG_LEVEL"

# Content validation checks this many non-blank lines for valid JSON
VALIDATION_LINE_LIMIT = 3

# Format detection sniffs this many non-blank lines
DETECTION_LINE_LIMIT = 5

DEFAULT_SESSION_PREFIX = "session_"

INTERRUPTION_MARKERS = (
    "[Request interrupted by user]",
    "Request interrupted by user",
)

COMMAND_TAG = "<command-name>"


def _env_level(default: int = logging.WARNING) -> int:
    value = os.getenv(LOG_LEVEL_ENV)
    if not value:
        return default
    level = logging.getLevelName(value.strip().upper())
    return level if isinstance(level, int) else default


def configure_logging(level: int | str | None = None) -> logging.Logger:
    """Attach a rich handler to the package logger.

    Safe to call more than once; later calls only change the level.
    """
    logger = logging.getLogger(LOGGER_NAME)
    if level is None:
        level = _env_level()
    elif isinstance(level, str):
        resolved = logging.getLevelName(level.strip().upper())
        level = resolved if isinstance(resolved, int) else logging.WARNING

    logger.setLevel(level)
    if logger.handlers:
        return logger

    handler = RichHandler(console=Console(stderr=True), show_path=False)
    handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(handler)
    logger.propagate = False
    return logger
