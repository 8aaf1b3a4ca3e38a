"""Per-file outcomes and the collector-side recorder that accounts for them."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path

import structlog

from .errors import ErrorKind, IngestError
from .interface import IngestGateway
from .models import FileError, RecordIngestErrorRequest, RunResult, UpdateJobProgressRequest
from .progress import ProgressSnapshot, ProgressTracker

logger = structlog.get_logger()


class OutcomeStatus(str, Enum):
    IMPORTED = "imported"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass(frozen=True)
class Outcome:
    """Result of processing one discovered file.

    ``stage`` names where a failure happened (``parsing`` or
    ``ingesting``) and prefixes the recorded error message.
    """

    file_path: Path
    status: OutcomeStatus
    content_id: str = ""
    source_id: str = ""
    error: BaseException | None = None
    stage: str = ""
    cancelled: bool = False

    @classmethod
    def imported(cls, file_path: Path, *, content_id: str = "", source_id: str = "") -> Outcome:
        return cls(file_path, OutcomeStatus.IMPORTED, content_id=content_id, source_id=source_id)

    @classmethod
    def duplicate(cls, file_path: Path, *, content_id: str = "", source_id: str = "") -> Outcome:
        return cls(file_path, OutcomeStatus.SKIPPED, content_id=content_id, source_id=source_id)

    @classmethod
    def skipped_on_cancel(cls, file_path: Path) -> Outcome:
        return cls(file_path, OutcomeStatus.SKIPPED, cancelled=True)

    @classmethod
    def failed(cls, file_path: Path, error: BaseException, *, stage: str) -> Outcome:
        return cls(file_path, OutcomeStatus.FAILED, error=error, stage=stage)

    @property
    def error_message(self) -> str:
        if self.error is None:
            return ""
        return f"{self.stage}: {self.error}" if self.stage else str(self.error)


def classify_error(error: BaseException | None) -> ErrorKind:
    """Read the kind a typed error carries; anything foreign is ``unknown``."""
    if isinstance(error, IngestError):
        return error.kind
    return ErrorKind.UNKNOWN


class OutcomeRecorder:
    """Accounts for outcomes on the progress tracker and run result.

    Only the collector calls :meth:`record`, so the :class:`RunResult`
    it appends to needs no lock.  Error reports and progress updates go
    to the gateway best-effort: their failures are logged and never
    change local counts.  With ``gateway=None`` (dry-run) nothing is
    sent remotely.
    """

    def __init__(
        self,
        *,
        progress: ProgressTracker,
        result: RunResult,
        gateway: IngestGateway | None = None,
        progress_update_interval: int = 10,
    ) -> None:
        self._progress = progress
        self._result = result
        self._gateway = gateway
        self._interval = max(progress_update_interval, 1)
        self._reported = ProgressSnapshot(progress.total_files, 0, 0, 0, 0)

    def record(self, outcome: Outcome) -> ProgressSnapshot:
        if outcome.status is OutcomeStatus.IMPORTED:
            self._progress.record_imported()
            if outcome.content_id:
                self._result.content_ids.append(outcome.content_id)
        elif outcome.status is OutcomeStatus.SKIPPED:
            self._progress.record_skipped()
        else:
            self._progress.record_failed()
            self._record_failure(outcome)

        snapshot = self._progress.snapshot()
        if (
            snapshot.processed_count % self._interval == 0
            or snapshot.processed_count == snapshot.total_files
        ):
            self._send_progress(snapshot)
        return snapshot

    def _record_failure(self, outcome: Outcome) -> None:
        kind = classify_error(outcome.error)
        message = outcome.error_message
        self._result.errors.append(
            FileError(
                file_path=str(outcome.file_path),
                error=message,
                kind=kind,
                retryable=kind.retryable,
            )
        )
        logger.warning(
            "item_failed",
            file=str(outcome.file_path),
            error_kind=kind.value,
            error=message,
        )

        if self._gateway is None:
            return
        try:
            self._gateway.record_ingest_error(
                RecordIngestErrorRequest(
                    job_id=self._result.job_id,
                    file_path=str(outcome.file_path),
                    error_type=kind,
                    error_message=message,
                    is_retryable=kind.retryable,
                )
            )
        except Exception as exc:
            logger.warning(
                "record_error_failed",
                job_id=self._result.job_id,
                file=str(outcome.file_path),
                error=str(exc),
            )

    def _send_progress(self, snapshot: ProgressSnapshot) -> None:
        if self._gateway is None:
            return
        previous = self._reported
        try:
            self._gateway.update_job_progress(
                UpdateJobProgressRequest(
                    job_id=self._result.job_id,
                    processed_delta=snapshot.processed_count - previous.processed_count,
                    imported_delta=snapshot.imported_count - previous.imported_count,
                    skipped_delta=snapshot.skipped_count - previous.skipped_count,
                    failed_delta=snapshot.failed_count - previous.failed_count,
                )
            )
        except Exception as exc:
            # Unsent deltas roll into the next update.
            logger.warning("progress_update_failed", job_id=self._result.job_id, error=str(exc))
            return
        self._reported = snapshot
