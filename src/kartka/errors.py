"""Exceptions raised by kartka."""

from __future__ import annotations


class KartkaError(Exception):
    """Base class for every error surfaced to the command line."""


class ConfigError(KartkaError):
    """Configuration file is missing or invalid."""


class IoError(KartkaError):
    """A directory or file could not be accessed."""


class OcrError(KartkaError):
    """Text extraction failed for a page."""


class ExternalToolError(KartkaError):
    """An external tool failed, timed out, or could not be started."""

    def __init__(self, tool: str, message: str) -> None:
        super().__init__(f"{tool}: {message}")
        self.tool = tool


class ParseError(KartkaError):
    """Structured output from the search tool could not be parsed."""


class DuplicateIdentifierError(KartkaError):
    """A record with the same identifier already exists in the store."""

    def __init__(self, identifier: str) -> None:
        super().__init__(f"record already exists: {identifier}")
        self.identifier = identifier


class InvalidIdentifierError(KartkaError):
    """Identifier cannot be used as a file name inside the store."""


class EmptyBatchError(KartkaError):
    """The scan directory holds no pages to process."""
