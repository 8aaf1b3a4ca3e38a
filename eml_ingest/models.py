"""Data models exchanged with the ingestion gateway, plus the run result."""

from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum

from pydantic import BaseModel, Field

from .errors import ErrorKind


class Platform(str, Enum):
    """Where the ingested files came from."""

    LOCAL = "local"


class JobStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


# ----------------------------------------------------------------------
# Job lifecycle
# ----------------------------------------------------------------------


class CreateJobRequest(BaseModel):
    tenant_id: str = Field(description="Tenant that owns the job")
    name: str = Field(description="Human-readable job name")
    platform: Platform = Field(default=Platform.LOCAL, description="Source platform")
    total_files: int = Field(ge=0, description="Number of files discovered for this run")
    source_path: str = Field(description="Path the files were discovered under")
    metadata: dict[str, str] = Field(
        default_factory=dict,
        description="Free-form job metadata (source tag, labels)",
    )


class IngestJob(BaseModel):
    """Remote-side job record; the ingester only relies on ``id``."""

    id: str = Field(description="Authoritative job identifier")
    tenant_id: str = Field(default="", description="Owning tenant")
    total_files: int = Field(default=0, description="Total files announced at creation")
    status: JobStatus = Field(default=JobStatus.PENDING, description="Job status")


class UpdateJobProgressRequest(BaseModel):
    job_id: str = Field(description="Job being updated")
    processed_delta: int = Field(default=0, ge=0)
    imported_delta: int = Field(default=0, ge=0)
    skipped_delta: int = Field(default=0, ge=0)
    failed_delta: int = Field(default=0, ge=0)


class RecordIngestErrorRequest(BaseModel):
    job_id: str = Field(description="Job the failed file belongs to")
    tenant_id: str = Field(default="", description="Empty lets the gateway infer it from the job")
    file_path: str = Field(description="Absolute path of the failed file")
    error_type: ErrorKind = Field(description="Classification of the failure")
    error_message: str = Field(description="Error text")
    is_retryable: bool = Field(description="Whether retrying the file may succeed")


class CompleteJobRequest(BaseModel):
    job_id: str
    success: bool = Field(description="True when no file failed")
    error_message: str = Field(default="", description="Optional run-level error message")


# ----------------------------------------------------------------------
# Email submission
# ----------------------------------------------------------------------


class EmailAddress(BaseModel):
    name: str = ""
    address: str


class AttachmentMetadata(BaseModel):
    filename: str
    mime_type: str
    size_bytes: int = Field(ge=0)
    is_inline: bool = Field(default=False, description="Shown in the body rather than attached")


class IngestEmailRequest(BaseModel):
    """One parsed email submitted under a job."""

    tenant_id: str
    job_id: str
    content_id: str = Field(description="Locally minted idempotency key")
    message_id: str
    content_hash: str = Field(description="SHA-256 of the raw message, used for remote dedup")
    subject: str = ""
    body_plain: str = ""
    body_html: str = ""
    source_system: str = "manual_eml"
    source_tag: str
    labels: list[str] = Field(default_factory=list)
    in_reply_to: str = ""
    references: list[str] = Field(default_factory=list)
    from_address: EmailAddress | None = None
    to: list[EmailAddress] = Field(default_factory=list)
    cc: list[EmailAddress] = Field(default_factory=list)
    bcc: list[EmailAddress] = Field(default_factory=list)
    sent_at: datetime | None = None
    received_at: datetime | None = None
    attachments: list[AttachmentMetadata] = Field(default_factory=list)
    headers: dict[str, str] = Field(default_factory=dict)


class IngestEmailResponse(BaseModel):
    content_id: str = ""
    source_id: str = ""
    was_duplicate: bool = False
    existing_source_id: str = ""


# ----------------------------------------------------------------------
# Run result
# ----------------------------------------------------------------------


class FileError(BaseModel):
    """A per-file failure recorded on the run result."""

    file_path: str
    error: str
    kind: ErrorKind = ErrorKind.UNKNOWN
    retryable: bool = True


class RunResult(BaseModel):
    """Aggregate result of one ingest invocation.

    Written only by the collector that drains outcomes; treat as frozen
    once :meth:`finish` has been called.
    """

    job_id: str
    total_files: int
    imported_count: int = 0
    skipped_count: int = 0
    failed_count: int = 0
    started_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    completed_at: datetime | None = None
    success: bool = False
    cancelled: bool = False
    dry_run: bool = False
    errors: list[FileError] = Field(default_factory=list)
    content_ids: list[str] = Field(default_factory=list)

    @property
    def processed_count(self) -> int:
        return self.imported_count + self.skipped_count + self.failed_count

    @property
    def duration_seconds(self) -> float:
        end = self.completed_at or datetime.now(UTC)
        return max((end - self.started_at).total_seconds(), 0.0)

    def finish(self, *, imported: int, skipped: int, failed: int, cancelled: bool = False) -> None:
        self.imported_count = imported
        self.skipped_count = skipped
        self.failed_count = failed
        self.cancelled = cancelled
        self.success = failed == 0
        self.completed_at = datetime.now(UTC)

    def summary(self) -> dict[str, object]:
        """Machine-readable summary used for JSON and YAML output."""
        summary: dict[str, object] = {
            "job_id": self.job_id,
            "total_files": self.total_files,
            "imported": self.imported_count,
            "skipped": self.skipped_count,
            "failed": self.failed_count,
            "success": self.success,
            "started_at": self.started_at.isoformat(),
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
        }
        if self.content_ids:
            summary["content_ids"] = list(self.content_ids)
        return summary
