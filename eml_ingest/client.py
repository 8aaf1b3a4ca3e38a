"""Synchronous HTTP client for the ingestion gateway with optional mTLS."""

from __future__ import annotations

import ssl
from types import TracebackType

import httpx
import structlog
from pydantic import BaseModel
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from .config import GatewayConfig, RetryConfig
from .errors import ErrorKind, SubmissionError
from .interface import IngestGateway
from .models import (
    CompleteJobRequest,
    CreateJobRequest,
    IngestEmailRequest,
    IngestEmailResponse,
    IngestJob,
    RecordIngestErrorRequest,
    UpdateJobProgressRequest,
)

logger = structlog.get_logger()


class IngestClient(IngestGateway):
    """Talks to the ingestion gateway over HTTP/JSON.

    One :class:`httpx.Client` is shared by all worker threads.  Job
    create/complete calls are retried on transport errors; per-email
    submissions are not.  Every failure surfaces as
    :class:`SubmissionError`, with its kind taken from the response
    body's ``error_type`` field when the gateway supplies one.
    """

    def __init__(
        self,
        config: GatewayConfig,
        retry_config: RetryConfig | None = None,
        *,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._config = config
        self._retry_config = retry_config or RetryConfig()
        self._transport = transport
        self._client: httpx.Client | None = None

    def start(self) -> None:
        verify: ssl.SSLContext | bool = True

        if self._config.mtls_cert_path and self._config.mtls_key_path:
            verify = ssl.create_default_context(cafile=self._config.mtls_ca_path)
            verify.load_cert_chain(
                certfile=self._config.mtls_cert_path,
                keyfile=self._config.mtls_key_path,
            )
        elif self._config.mtls_ca_path:
            verify = ssl.create_default_context(cafile=self._config.mtls_ca_path)

        headers = {"Accept": "application/json"}
        if self._config.api_token is not None:
            headers["Authorization"] = f"Bearer {self._config.api_token.get_secret_value()}"

        self._client = httpx.Client(
            base_url=self._config.base_url,
            timeout=httpx.Timeout(self._config.timeout_seconds),
            verify=verify,
            headers=headers,
            transport=self._transport,
        )
        logger.info("ingest_client_started", base_url=self._config.base_url)

    def stop(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None
            logger.info("ingest_client_stopped")

    def __enter__(self) -> IngestClient:
        self.start()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.stop()

    # ------------------------------------------------------------------
    # IngestGateway
    # ------------------------------------------------------------------

    def create_job(self, request: CreateJobRequest) -> IngestJob:
        response = self._post("/v1/ingest/jobs", request, retry=True)
        body = _json(response)
        job = body.get("job", body) if isinstance(body, dict) else body
        try:
            return IngestJob.model_validate(job)
        except ValueError as exc:
            raise SubmissionError(f"create job: unexpected response: {exc}") from exc

    def ingest_email(self, request: IngestEmailRequest) -> IngestEmailResponse:
        response = self._post("/v1/ingest/emails", request)
        try:
            return IngestEmailResponse.model_validate(_json(response))
        except ValueError as exc:
            raise SubmissionError(f"ingest email: unexpected response: {exc}") from exc

    def update_job_progress(self, request: UpdateJobProgressRequest) -> None:
        self._post(f"/v1/ingest/jobs/{request.job_id}/progress", request)

    def record_ingest_error(self, request: RecordIngestErrorRequest) -> None:
        self._post(f"/v1/ingest/jobs/{request.job_id}/errors", request)

    def complete_job(self, request: CompleteJobRequest) -> None:
        self._post(f"/v1/ingest/jobs/{request.job_id}/complete", request, retry=True)

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    def _post(self, path: str, payload: BaseModel, *, retry: bool = False) -> httpx.Response:
        if self._client is None:
            raise AssertionError("Client not started")
        client = self._client

        def _send() -> httpx.Response:
            return client.post(
                path,
                content=payload.model_dump_json(),
                headers={"Content-Type": "application/json"},
            )

        if retry:
            _send = self._lifecycle_retry()(_send)

        try:
            response = _send()
        except httpx.HTTPError as exc:
            raise SubmissionError(f"POST {path}: {exc}") from exc

        _raise_for_status(response)
        logger.debug("gateway_call", path=path, status_code=response.status_code)
        return response

    def _lifecycle_retry(self):
        cfg = self._retry_config
        return retry(
            stop=stop_after_attempt(cfg.max_attempts),
            wait=wait_exponential(
                multiplier=cfg.multiplier,
                min=cfg.initial_wait_seconds,
                max=cfg.max_wait_seconds,
            ),
            retry=retry_if_exception_type(httpx.TransportError),
            reraise=True,
        )


def _raise_for_status(response: httpx.Response) -> None:
    if response.is_success:
        return

    kind = ErrorKind.UNKNOWN
    detail = response.text
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        kind = ErrorKind.from_remote(body.get("error_type"))
        detail = str(body.get("message") or body.get("detail") or detail)

    raise SubmissionError(
        f"POST {response.request.url.path}: {response.status_code} {detail}".rstrip(),
        kind=kind,
        status_code=response.status_code,
    )


def _json(response: httpx.Response) -> object:
    if not response.content:
        return {}
    try:
        return response.json()
    except ValueError as exc:
        raise SubmissionError(f"POST {response.request.url.path}: invalid JSON response") from exc
