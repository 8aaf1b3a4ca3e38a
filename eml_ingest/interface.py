"""IngestGateway: the ABC for the remote ingestion service."""

from __future__ import annotations

import abc

from .models import (
    CompleteJobRequest,
    CreateJobRequest,
    IngestEmailRequest,
    IngestEmailResponse,
    IngestJob,
    RecordIngestErrorRequest,
    UpdateJobProgressRequest,
)


class IngestGateway(abc.ABC):
    """Abstract interface for the remote side of an ingest run.

    The engine only talks to this interface.  :class:`~eml_ingest.client.IngestClient`
    implements it over HTTP; tests substitute an in-memory stub.

    Implementations must be safe to call from several worker threads at
    once, and raise :class:`~eml_ingest.errors.SubmissionError` on failure.
    """

    @abc.abstractmethod
    def create_job(self, request: CreateJobRequest) -> IngestJob:
        """Create a batch job and return the authoritative record."""
        ...

    @abc.abstractmethod
    def ingest_email(self, request: IngestEmailRequest) -> IngestEmailResponse:
        """Submit one parsed email.  Duplicate detection is remote-side."""
        ...

    @abc.abstractmethod
    def update_job_progress(self, request: UpdateJobProgressRequest) -> None:
        ...

    @abc.abstractmethod
    def record_ingest_error(self, request: RecordIngestErrorRequest) -> None:
        ...

    @abc.abstractmethod
    def complete_job(self, request: CompleteJobRequest) -> None:
        """Mark the job finished.  Called exactly once per run."""
        ...
