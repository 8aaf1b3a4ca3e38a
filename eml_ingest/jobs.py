"""JobController: creates or resumes the remote ingest job and finalizes it."""

from __future__ import annotations

import structlog

from .config import EmailIngestConfig
from .errors import IngestError, JobError
from .interface import IngestGateway
from .models import CompleteJobRequest, CreateJobRequest, RunResult

logger = structlog.get_logger()


class JobController:
    """Owns the job ID for one run.

    :meth:`open` establishes the ID exactly once: a fresh ID from the
    gateway, or the caller's resume ID passed through unchanged.

    Resuming does not track which files the earlier run already
    submitted; every discovered file is submitted again and the remote
    duplicate detection is the only backstop.
    """

    def __init__(self, gateway: IngestGateway, config: EmailIngestConfig) -> None:
        self._gateway = gateway
        self._config = config
        self._job_id: str | None = None

    @property
    def job_id(self) -> str | None:
        return self._job_id

    def open(self, *, total_files: int, source_path: str) -> str:
        if self._job_id is not None:
            raise RuntimeError(f"job already established: {self._job_id}")

        if self._config.resume_job_id:
            self._job_id = self._config.resume_job_id
            logger.info(
                "job_resumed",
                job_id=self._job_id,
                total_files=total_files,
                note="previously processed files are submitted again",
            )
            return self._job_id

        request = CreateJobRequest(
            tenant_id=self._config.tenant_id,
            name=f"Email ingest: {self._config.source_tag}",
            total_files=total_files,
            source_path=source_path,
            metadata={
                "source_tag": self._config.source_tag,
                "labels": ",".join(self._config.labels),
            },
        )
        try:
            job = self._gateway.create_job(request)
        except IngestError as exc:
            raise JobError(f"creating ingest job: {exc}", kind=exc.kind) from exc

        self._job_id = job.id
        logger.info("job_created", job_id=job.id, total_files=total_files)
        return job.id

    def finalize(self, result: RunResult, *, error_message: str = "") -> None:
        """Send the single completion call; failures are only logged.

        Files are already durably submitted at this point, so a failed
        completion never fails the run.
        """
        if self._job_id is None:
            raise RuntimeError("finalize called before open")
        try:
            self._gateway.complete_job(
                CompleteJobRequest(
                    job_id=self._job_id,
                    success=result.success,
                    error_message=error_message,
                )
            )
        except Exception as exc:
            logger.warning("job_complete_failed", job_id=self._job_id, error=str(exc))
            return
        logger.info("job_completed", job_id=self._job_id, success=result.success)
