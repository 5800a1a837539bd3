# src/taskmind/core/errors.py

from __future__ import annotations


class TaskmindError(RuntimeError):
    """Base error for the classification pipeline."""


class OracleError(TaskmindError):
    """The classifier oracle could not produce a verdict for a record."""


class TransientOracleError(OracleError):
    """Timeout, network failure, rate limit or auth failure on the oracle call."""


class MalformedOracleResponse(OracleError):
    def __init__(self, message: str, raw: str | None = None) -> None:
        super().__init__(message)
        self.raw = raw


class OracleConfigError(TaskmindError):
    """The oracle cannot be constructed (missing API key / model list)."""


class PersistenceError(TaskmindError):
    """A SQLite read or write failed."""


class RecordUpdateError(PersistenceError):
    """Reading a log before classification, or marking it classified, failed; the log stays pending."""

    def __init__(self, message: str, log_id: int) -> None:
        super().__init__(message)
        self.log_id = log_id
