"""EmailIngester: discovers, parses and submits ``.eml`` files in bulk.

A run goes: discovery -> job create/resume -> parse + content ID +
submit per file (sequentially or on a worker pool) -> outcome recording
-> job finalize.  Per-file failures never abort the run; only discovery
and job creation failures are fatal.
"""

from __future__ import annotations

import os
import queue
import threading
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path

import structlog

from .config import EmailIngestConfig
from .contentid import ContentType, new_content_id
from .discovery import discover_email_files
from .errors import IngestError, ParseError
from .interface import IngestGateway
from .jobs import JobController
from .models import RunResult
from .outcomes import Outcome, OutcomeRecorder
from .parser import MimeParser, ParsedEmail
from .progress import ProgressSnapshot, ProgressTracker
from .submission import build_ingest_request

logger = structlog.get_logger()

DRY_RUN_JOB_ID = "dry-run"

ProgressCallback = Callable[[ProgressSnapshot], None]
PreviewCallback = Callable[[Path, ParsedEmail], None]


@dataclass
class _Run:
    """State shared by the scheduler and collector for one run."""

    job_id: str
    progress: ProgressTracker
    recorder: OutcomeRecorder
    cancel: threading.Event
    on_progress: ProgressCallback | None


class EmailIngester:
    """Runs one bulk ingest per :meth:`run` call.

    The config is read-only and all per-run state lives on the stack of
    :meth:`run`, so one ingester (or several) can run scenarios back to
    back in the same process.
    """

    def __init__(
        self,
        config: EmailIngestConfig,
        gateway: IngestGateway | None = None,
        *,
        parser: MimeParser | None = None,
        id_factory: Callable[[ContentType], str] = new_content_id,
    ) -> None:
        self._config = config
        self._gateway = gateway
        self._parser = parser or MimeParser()
        self._new_id = id_factory

    def run(
        self,
        path: str | os.PathLike[str],
        *,
        cancel_event: threading.Event | None = None,
        on_progress: ProgressCallback | None = None,
        on_preview: PreviewCallback | None = None,
    ) -> RunResult:
        """Ingest every ``.eml`` file under *path* and return the result.

        Raises :class:`~eml_ingest.errors.DiscoveryError` when nothing is
        found and :class:`~eml_ingest.errors.JobError` when the job cannot
        be created.  Setting *cancel_event* stops new files from starting;
        those files are recorded as skipped and the job is still finalized.
        """
        files = discover_email_files(path)
        cancel = cancel_event or threading.Event()
        log = logger.bind(path=str(path), source_tag=self._config.source_tag)
        log.info("email_files_found", count=len(files))

        if self._config.dry_run:
            return self._run_dry(files, cancel, on_progress, on_preview)

        if self._gateway is None:
            raise ValueError("a gateway is required unless dry_run is set")

        jobs = JobController(self._gateway, self._config)
        job_id = jobs.open(total_files=len(files), source_path=str(path))

        progress = ProgressTracker(len(files))
        result = RunResult(job_id=job_id, total_files=len(files))
        run = _Run(
            job_id=job_id,
            progress=progress,
            recorder=OutcomeRecorder(
                progress=progress,
                result=result,
                gateway=self._gateway,
                progress_update_interval=self._config.progress_update_interval,
            ),
            cancel=cancel,
            on_progress=on_progress,
        )

        if self._config.concurrency == 1:
            self._process_sequential(files, run)
        else:
            self._process_parallel(files, run)

        snapshot = progress.snapshot()
        result.finish(
            imported=snapshot.imported_count,
            skipped=snapshot.skipped_count,
            failed=snapshot.failed_count,
            cancelled=cancel.is_set(),
        )
        jobs.finalize(result, error_message="run cancelled" if result.cancelled else "")

        log.info(
            "ingest_run_finished",
            job_id=job_id,
            imported=result.imported_count,
            skipped=result.skipped_count,
            failed=result.failed_count,
            cancelled=result.cancelled,
        )
        return result

    # ------------------------------------------------------------------
    # Scheduling
    # ------------------------------------------------------------------

    def _process_sequential(self, files: list[Path], run: _Run) -> None:
        """Process files one at a time in discovery order."""
        for path in files:
            if run.cancel.is_set():
                outcome = Outcome.skipped_on_cancel(path)
            else:
                run.progress.set_current_file(path)
                outcome = self._process_file(path, run.job_id)
            self._collect(run, outcome)

    def _process_parallel(self, files: list[Path], run: _Run) -> None:
        """Fan files out to a fixed pool of workers; this thread collects.

        The work queue is filled up front (it is sized to hold every file),
        and each worker posts a ``None`` sentinel when it runs dry.  Outcomes
        are recorded in completion order by the calling thread only.
        """
        work: queue.Queue[Path] = queue.Queue(maxsize=len(files))
        for path in files:
            work.put_nowait(path)
        results: queue.Queue[Outcome | None] = queue.Queue()

        workers = self._config.concurrency
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="eml-ingest") as pool:
            futures = [
                pool.submit(self._worker, work, results, run) for _ in range(workers)
            ]

            active = workers
            while active:
                outcome = results.get()
                if outcome is None:
                    active -= 1
                    continue
                self._collect(run, outcome)

            for future in futures:
                future.result()

    def _worker(
        self,
        work: queue.Queue[Path],
        results: queue.Queue[Outcome | None],
        run: _Run,
    ) -> None:
        try:
            while True:
                try:
                    path = work.get_nowait()
                except queue.Empty:
                    return
                if run.cancel.is_set():
                    results.put(Outcome.skipped_on_cancel(path))
                    continue
                run.progress.set_current_file(path)
                results.put(self._process_file(path, run.job_id))
        finally:
            results.put(None)

    def _collect(self, run: _Run, outcome: Outcome) -> None:
        snapshot = run.recorder.record(outcome)
        if run.on_progress is not None:
            run.on_progress(snapshot)

    # ------------------------------------------------------------------
    # Per-file work
    # ------------------------------------------------------------------

    def _process_file(self, path: Path, job_id: str) -> Outcome:
        """Parse, mint a content ID and submit one file."""
        assert self._gateway is not None

        try:
            parsed = self._parser.parse_file(path)
        except ParseError as exc:
            return Outcome.failed(path, exc, stage="parsing")

        # Minted before submission; discarded if the submit fails.
        content_id = self._new_id(ContentType.EMAIL)

        try:
            request = build_ingest_request(
                parsed,
                config=self._config,
                job_id=job_id,
                content_id=content_id,
            )
            response = self._gateway.ingest_email(request)
        except IngestError as exc:
            return Outcome.failed(path, exc, stage="ingesting")
        except Exception as exc:
            logger.exception("item_submit_crashed", file=str(path))
            return Outcome.failed(path, exc, stage="ingesting")

        if response.was_duplicate:
            logger.debug("item_duplicate", file=str(path), existing=response.existing_source_id)
            return Outcome.duplicate(
                path,
                content_id=response.content_id,
                source_id=response.existing_source_id,
            )

        logger.debug("item_imported", file=str(path), content_id=response.content_id)
        return Outcome.imported(
            path,
            content_id=response.content_id or content_id,
            source_id=response.source_id,
        )

    # ------------------------------------------------------------------
    # Dry run
    # ------------------------------------------------------------------

    def _run_dry(
        self,
        files: list[Path],
        cancel: threading.Event,
        on_progress: ProgressCallback | None,
        on_preview: PreviewCallback | None,
    ) -> RunResult:
        """Parse every file without creating a job or contacting the gateway.

        Parsed files count as imported for display only; no content IDs
        are minted.
        """
        progress = ProgressTracker(len(files))
        result = RunResult(job_id=DRY_RUN_JOB_ID, total_files=len(files), dry_run=True)
        run = _Run(
            job_id=DRY_RUN_JOB_ID,
            progress=progress,
            recorder=OutcomeRecorder(progress=progress, result=result, gateway=None),
            cancel=cancel,
            on_progress=on_progress,
        )

        for path in files:
            if cancel.is_set():
                self._collect(run, Outcome.skipped_on_cancel(path))
                continue

            progress.set_current_file(path)
            try:
                parsed = self._parser.parse_file(path)
            except ParseError as exc:
                self._collect(run, Outcome.failed(path, exc, stage="parsing"))
                continue

            if on_preview is not None:
                on_preview(path, parsed)
            self._collect(run, Outcome.imported(path))

        snapshot = progress.snapshot()
        result.finish(
            imported=snapshot.imported_count,
            skipped=snapshot.skipped_count,
            failed=snapshot.failed_count,
            cancelled=cancel.is_set(),
        )
        logger.info(
            "dry_run_finished",
            total=result.total_files,
            parsed=result.imported_count,
            failed=result.failed_count,
        )
        return result
