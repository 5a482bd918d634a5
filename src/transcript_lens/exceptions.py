"""Exceptions raised by transcript-lens."""


class SessionParseError(ValueError):
    """Raised when a whole session cannot be parsed."""


class EmptyContentError(SessionParseError):
    def __init__(self, message: str | None = None):
        self.message = message or "Content is empty"
        super().__init__(self.message)


class InvalidContentError(SessionParseError):
    def __init__(self, checked_lines: int):
        self.checked_lines = checked_lines
        self.message = f"No valid JSON lines found in the first {checked_lines} lines"
        super().__init__(self.message)


class UnsupportedProviderError(ValueError):
    """Raised when no parser matches a provider name or content."""

    def __init__(self, provider: str | None = None):
        self.provider = provider
        if provider:
            self.message = f"No parser registered for provider: {provider}"
        else:
            self.message = "Could not detect a parser for the given content"
        super().__init__(self.message)
