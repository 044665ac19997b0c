"""
Error taxonomy for the activity sync engine.

``ConfigurationError``, ``TransportError`` and ``PurgeStalledError`` halt a run, except
that a ``TransportError`` from a bulk write only counts that batch as errors.
``MappingSkip`` is local to a single source row and only ever counted.
"""

from __future__ import annotations


class ActivitySyncError(RuntimeError):
    """Base error for activity sync failures."""


class ConfigurationError(ActivitySyncError):
    """Raised when required connection settings are missing before any stage runs."""


class TransportError(ActivitySyncError):
    """Raised when a feed answers with a non-success status or cannot be reached."""

    def __init__(self, message: str, *, source: str, status_code: int | None = None, body: str | None = None):
        super().__init__(message)
        self.source = source
        self.status_code = status_code
        self.body = body

    def as_dict(self) -> dict[str, object]:
        return {
            "type": type(self).__name__,
            "message": str(self),
            "source": self.source,
            "status_code": self.status_code,
            "body": self.body,
        }


class PurgeStalledError(ActivitySyncError):
    """Raised when a purge page deletes nothing, which would otherwise loop forever."""

    def __init__(self, message: str, *, failures: list[object] | None = None):
        super().__init__(message)
        self.failures = list(failures or [])

    def as_dict(self) -> dict[str, object]:
        return {
            "type": type(self).__name__,
            "message": str(self),
            "failures": self.failures,
        }


class MappingSkip(ActivitySyncError):
    """Raised by the mapper when a row cannot become an activity record."""

    UNMATCHED_CONTACT = "unmatched_contact"
    INVALID_TIMESTAMP = "invalid_timestamp"

    def __init__(self, reason: str):
        super().__init__(f"Row skipped: {reason}")
        self.reason = reason


__all__ = [
    "ActivitySyncError",
    "ConfigurationError",
    "MappingSkip",
    "PurgeStalledError",
    "TransportError",
]
