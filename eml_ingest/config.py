"""Ingester configuration loaded from environment variables.

Uses pydantic-settings so every field can be overridden via env vars.
A config object is built once per invocation and handed to the engine;
:class:`EmailIngestConfig` is frozen so a run can never change it.
"""

from __future__ import annotations

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings


class GatewayConfig(BaseSettings):
    """Remote ingestion gateway HTTP client settings."""

    model_config = {"env_prefix": "INGEST_API_", "frozen": True}

    base_url: str = Field(
        default="http://localhost:8080",
        description="Base URL of the ingestion gateway",
    )
    timeout_seconds: float = Field(default=30.0, description="HTTP request timeout")
    api_token: SecretStr | None = Field(
        default=None,
        description="Bearer token sent with every request",
    )
    mtls_cert_path: str | None = Field(
        default=None,
        description="Path to client certificate for mTLS",
    )
    mtls_key_path: str | None = Field(
        default=None,
        description="Path to client private key for mTLS",
    )
    mtls_ca_path: str | None = Field(
        default=None,
        description="Path to CA bundle for mTLS verification",
    )


class RetryConfig(BaseSettings):
    """Retry / backoff settings for job lifecycle calls, driven by Tenacity."""

    model_config = {"env_prefix": "RETRY_", "frozen": True}

    max_attempts: int = Field(default=3, ge=1, description="Maximum attempts per call")
    initial_wait_seconds: float = Field(
        default=0.5,
        description="Initial backoff wait in seconds",
    )
    max_wait_seconds: float = Field(
        default=10.0,
        description="Maximum backoff wait in seconds",
    )
    multiplier: float = Field(default=2.0, description="Exponential backoff multiplier")


class EmailIngestConfig(BaseSettings):
    """Options for one bulk email ingest run.

    Nested configs are populated from their own env-var prefixes.
    """

    model_config = {"env_prefix": "EMAIL_INGEST_", "frozen": True}

    source_tag: str = Field(min_length=1, description="Source tag identifier (e.g. outlook-2024)")
    tenant_id: str = Field(default="default", description="Tenant that owns the ingested content")
    labels: list[str] = Field(default_factory=list, description="Labels applied to every email")
    concurrency: int = Field(
        default=4,
        ge=1,
        description="Number of concurrent workers (1 processes files sequentially)",
    )
    dry_run: bool = Field(default=False, description="Parse only, never contact the gateway")
    resume_job_id: str | None = Field(
        default=None,
        description="Existing job ID to continue instead of creating a new job",
    )
    progress_update_interval: int = Field(
        default=10,
        ge=1,
        description="Send a remote progress update every N processed files",
    )

    gateway: GatewayConfig = Field(default_factory=GatewayConfig)
    retry: RetryConfig = Field(default_factory=RetryConfig)
