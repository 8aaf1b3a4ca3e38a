"""Typed error taxonomy for the bulk email ingester.

Every fallible stage raises a subclass of :class:`IngestError` that carries
its :class:`ErrorKind` from the point of origin, so outcome classification
never has to inspect message text.
"""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    """Failure classification reported to the remote ingestion service."""

    PARSE_ERROR = "parse_error"
    VALIDATION = "validation"
    STORAGE = "storage"
    UNKNOWN = "unknown"

    @property
    def retryable(self) -> bool:
        return self is not ErrorKind.PARSE_ERROR

    @classmethod
    def from_remote(cls, value: object) -> ErrorKind:
        """Map an ``error_type`` value from a gateway response to a kind."""
        if not isinstance(value, str):
            return cls.UNKNOWN
        try:
            return cls(value.strip().lower())
        except ValueError:
            return cls.UNKNOWN


class IngestError(Exception):
    """Base class for all ingestion failures."""

    kind: ErrorKind = ErrorKind.UNKNOWN

    def __init__(self, message: str, *, kind: ErrorKind | None = None) -> None:
        super().__init__(message)
        if kind is not None:
            self.kind = kind

    @property
    def retryable(self) -> bool:
        return self.kind.retryable


class DiscoveryError(IngestError):
    """The input path is missing or holds no matching files."""


class ParseError(IngestError):
    """An input file could not be parsed as an email message."""

    kind = ErrorKind.PARSE_ERROR


class SubmissionError(IngestError):
    """A call to the remote ingestion gateway failed."""

    def __init__(
        self,
        message: str,
        *,
        kind: ErrorKind | None = None,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message, kind=kind)
        self.status_code = status_code


class JobError(IngestError):
    """The ingest job could not be created on the remote service."""
