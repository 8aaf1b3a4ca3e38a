"""Shared test fixtures for the eml_ingest test suite."""

from __future__ import annotations

import logging
import threading
from email import encoders
from email.mime.base import MIMEBase
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from pathlib import Path

import pytest
from pydantic import BaseModel

from eml_ingest.config import EmailIngestConfig, GatewayConfig, RetryConfig
from eml_ingest.errors import SubmissionError
from eml_ingest.interface import IngestGateway
from eml_ingest.models import (
    CompleteJobRequest,
    CreateJobRequest,
    IngestEmailRequest,
    IngestEmailResponse,
    IngestJob,
    RecordIngestErrorRequest,
    UpdateJobProgressRequest,
)

MALFORMED_EML = b"this is not an email message\nit has no header block at all\n"


# ------------------------------------------------------------------
# Sample EML builders
# ------------------------------------------------------------------


def build_plain_email(
    *,
    subject: str = "Test Subject",
    from_addr: str = "sender@example.com",
    to_addr: str = "recipient@example.com",
    body: str = "Hello, World!",
    message_id: str | None = "<test-001@example.com>",
    date: str | None = "Sun, 01 Jun 2025 12:00:00 +0000",
    cc: str | None = None,
    bcc: str | None = None,
    extra_headers: dict[str, str] | None = None,
) -> bytes:
    """Build a simple plain-text email as raw bytes."""
    msg = MIMEText(body, "plain")
    msg["Subject"] = subject
    msg["From"] = from_addr
    msg["To"] = to_addr
    if message_id:
        msg["Message-ID"] = message_id
    if date:
        msg["Date"] = date
    if cc:
        msg["Cc"] = cc
    if bcc:
        msg["Bcc"] = bcc
    for name, value in (extra_headers or {}).items():
        msg[name] = value
    return msg.as_bytes()


def build_multipart_email(
    *,
    body_text: str = "Plain body",
    body_html: str = "<p>HTML body</p>",
    attachments: list[tuple[str, str, bytes]] | None = None,
) -> bytes:
    """Build a multipart email with text, HTML, and optional attachments."""
    msg = MIMEMultipart("mixed")
    msg["Subject"] = "Multipart Email"
    msg["From"] = "Sender Name <sender@example.com>"
    msg["To"] = "recipient@example.com"
    msg["Message-ID"] = "<multi-001@example.com>"
    msg["Date"] = "Sun, 01 Jun 2025 12:00:00 +0000"

    alt = MIMEMultipart("alternative")
    alt.attach(MIMEText(body_text, "plain"))
    alt.attach(MIMEText(body_html, "html"))
    msg.attach(alt)

    for filename, content_type, payload in attachments or []:
        maintype, subtype = content_type.split("/", 1)
        part = MIMEBase(maintype, subtype)
        part.set_payload(payload)
        encoders.encode_base64(part)
        part.add_header("Content-Disposition", "attachment", filename=filename)
        msg.attach(part)

    return msg.as_bytes()


def write_emails(directory: Path, count: int, *, malformed: set[int] | None = None) -> list[Path]:
    """Write *count* distinct emails named ``email-NN.eml``; return their paths."""
    directory.mkdir(parents=True, exist_ok=True)
    paths = []
    for i in range(1, count + 1):
        path = directory / f"email-{i:02d}.eml"
        if malformed and i in malformed:
            path.write_bytes(MALFORMED_EML)
        else:
            path.write_bytes(
                build_plain_email(
                    subject=f"Message {i}",
                    message_id=f"<msg-{i:02d}@example.com>",
                    body=f"Body of message {i}",
                )
            )
        paths.append(path)
    return paths


# ------------------------------------------------------------------
# Stub gateway
# ------------------------------------------------------------------


class StubGateway(IngestGateway):
    """In-memory gateway that records every call.

    Thread-safe, since parallel runs call ``ingest_email`` from workers.
    With ``detect_duplicates`` set, a second submission of the same
    content hash is answered with ``was_duplicate=True``.
    """

    def __init__(self, *, job_id: str = "job-001", detect_duplicates: bool = False) -> None:
        self.job_id = job_id
        self.detect_duplicates = detect_duplicates
        self.submit_errors: dict[str, Exception] = {}
        self.fail_create: Exception | None = None
        self.fail_record_error = False
        self.fail_progress = False
        self.fail_complete = False
        self.calls: list[tuple[str, BaseModel]] = []
        self._sources: dict[str, str] = {}
        self._lock = threading.Lock()

    def __enter__(self) -> StubGateway:
        return self

    def __exit__(self, *exc_info: object) -> None:
        return None

    def _record(self, name: str, request: BaseModel) -> None:
        with self._lock:
            self.calls.append((name, request))

    def calls_to(self, name: str) -> list:
        with self._lock:
            return [request for call, request in self.calls if call == name]

    def create_job(self, request: CreateJobRequest) -> IngestJob:
        self._record("create_job", request)
        if self.fail_create is not None:
            raise self.fail_create
        return IngestJob(id=self.job_id, tenant_id=request.tenant_id, total_files=request.total_files)

    def ingest_email(self, request: IngestEmailRequest) -> IngestEmailResponse:
        self._record("ingest_email", request)
        error = self.submit_errors.get(request.message_id)
        if error is not None:
            raise error
        with self._lock:
            existing = self._sources.get(request.content_hash)
            if existing is not None and self.detect_duplicates:
                return IngestEmailResponse(
                    content_id=request.content_id,
                    was_duplicate=True,
                    existing_source_id=existing,
                )
            source_id = f"src-{len(self._sources) + 1}"
            self._sources.setdefault(request.content_hash, source_id)
        return IngestEmailResponse(content_id=request.content_id, source_id=source_id)

    def update_job_progress(self, request: UpdateJobProgressRequest) -> None:
        self._record("update_job_progress", request)
        if self.fail_progress:
            raise SubmissionError("progress endpoint unavailable")

    def record_ingest_error(self, request: RecordIngestErrorRequest) -> None:
        self._record("record_ingest_error", request)
        if self.fail_record_error:
            raise SubmissionError("error endpoint unavailable")

    def complete_job(self, request: CompleteJobRequest) -> None:
        self._record("complete_job", request)
        if self.fail_complete:
            raise SubmissionError("complete endpoint unavailable")


# ------------------------------------------------------------------
# Fixtures
# ------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _restore_root_logging():
    """``setup_logging`` replaces root handlers; put them back after each test."""
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def gateway() -> StubGateway:
    return StubGateway()


@pytest.fixture
def gateway_config() -> GatewayConfig:
    return GatewayConfig(base_url="http://gateway.test", timeout_seconds=5.0)


@pytest.fixture
def retry_config() -> RetryConfig:
    return RetryConfig(
        max_attempts=3,
        initial_wait_seconds=0.001,
        max_wait_seconds=0.01,
        multiplier=1.0,
    )


@pytest.fixture
def config_factory(gateway_config: GatewayConfig, retry_config: RetryConfig):
    """Factory to create EmailIngestConfig instances with overrides."""

    def _make(**overrides) -> EmailIngestConfig:
        defaults: dict[str, object] = dict(
            source_tag="archive",
            tenant_id="tenant-a",
            labels=["project-a"],
            concurrency=1,
            gateway=gateway_config,
            retry=retry_config,
        )
        defaults.update(overrides)
        return EmailIngestConfig(**defaults)

    return _make


@pytest.fixture
def email_dir(tmp_path: Path) -> Path:
    """Directory with three well-formed emails."""
    directory = tmp_path / "mail"
    write_emails(directory, 3)
    return directory


@pytest.fixture
def mixed_dir(tmp_path: Path) -> Path:
    """Directory with three emails where the second is malformed."""
    directory = tmp_path / "mixed"
    write_emails(directory, 3, malformed={2})
    return directory


@pytest.fixture
def plain_eml_bytes() -> bytes:
    return build_plain_email()


@pytest.fixture
def multipart_eml_bytes() -> bytes:
    return build_multipart_email(
        attachments=[
            ("report.pdf", "application/pdf", b"%PDF-1.4 fake pdf content"),
            ("data.csv", "text/csv", b"col1,col2\na,b\n"),
        ],
    )
