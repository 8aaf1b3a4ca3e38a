"""Bulk email ingestion: discover local .eml files and submit them to the
remote ingestion gateway with bounded concurrency.

Public API re-exported here for convenience::

    from eml_ingest import EmailIngestConfig, EmailIngester, IngestClient
"""

from .client import IngestClient
from .config import EmailIngestConfig, GatewayConfig, RetryConfig
from .contentid import ContentType, is_valid_content_id, new_content_id, parse_content_id
from .discovery import discover_email_files
from .engine import EmailIngester
from .errors import (
    DiscoveryError,
    ErrorKind,
    IngestError,
    JobError,
    ParseError,
    SubmissionError,
)
from .interface import IngestGateway
from .jobs import JobController
from .logging import setup_logging
from .models import FileError, RunResult
from .outcomes import Outcome, OutcomeRecorder, OutcomeStatus
from .parser import MimeParser, ParsedEmail
from .progress import ProgressSnapshot, ProgressTracker

__all__ = [
    "ContentType",
    "DiscoveryError",
    "EmailIngestConfig",
    "EmailIngester",
    "ErrorKind",
    "FileError",
    "GatewayConfig",
    "IngestClient",
    "IngestError",
    "IngestGateway",
    "JobController",
    "JobError",
    "MimeParser",
    "Outcome",
    "OutcomeRecorder",
    "OutcomeStatus",
    "ParseError",
    "ParsedEmail",
    "ProgressSnapshot",
    "ProgressTracker",
    "RetryConfig",
    "RunResult",
    "SubmissionError",
    "discover_email_files",
    "is_valid_content_id",
    "new_content_id",
    "parse_content_id",
    "setup_logging",
]
