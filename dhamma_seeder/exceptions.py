"""
Exception types raised by the seeder.
"""

from typing import Any, Optional


class SeederError(Exception):
    """Base class for all seeder errors."""


class ConfigurationError(SeederError):
    """A required setting is missing or invalid."""


class SourceError(SeederError):
    """The SQLite source could not be opened or read."""


class BatchWriteError(SeederError):
    """A batch write failed on every retry attempt."""

    def __init__(self, message: str, attempts: int, last_error: Optional[BaseException] = None):
        super().__init__(message)
        self.attempts = attempts
        self.last_error = last_error


class ReferenceSeedError(SeederError):
    """A reference table batch could not be written.

    Content rows point at reference ids, so the run cannot continue.
    """


class QuotaExceededError(SeederError):
    """The daily write quota would be exceeded by the next batch."""

    def __init__(self, message: str, state: Any = None, stats: Any = None):
        super().__init__(message)
        self.state = state
        self.stats = stats
