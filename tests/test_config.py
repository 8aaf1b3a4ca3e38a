"""Tests for eml_ingest.config."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from eml_ingest.config import EmailIngestConfig, GatewayConfig, RetryConfig


class TestGatewayConfig:
    def test_defaults(self):
        cfg = GatewayConfig()
        assert cfg.base_url == "http://localhost:8080"
        assert cfg.timeout_seconds == 30.0
        assert cfg.api_token is None
        assert cfg.mtls_cert_path is None

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("INGEST_API_BASE_URL", "https://ingest.internal:8443")
        monkeypatch.setenv("INGEST_API_API_TOKEN", "tok")
        cfg = GatewayConfig()
        assert cfg.base_url == "https://ingest.internal:8443"
        assert cfg.api_token is not None
        assert cfg.api_token.get_secret_value() == "tok"
        assert "tok" not in repr(cfg)


class TestRetryConfig:
    def test_defaults(self):
        cfg = RetryConfig()
        assert cfg.max_attempts == 3
        assert cfg.initial_wait_seconds == 0.5
        assert cfg.max_wait_seconds == 10.0
        assert cfg.multiplier == 2.0

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("RETRY_MAX_ATTEMPTS", "7")
        assert RetryConfig().max_attempts == 7

    def test_at_least_one_attempt(self):
        with pytest.raises(ValidationError):
            RetryConfig(max_attempts=0)


class TestEmailIngestConfig:
    def test_defaults(self):
        cfg = EmailIngestConfig(source_tag="outlook-2024")
        assert cfg.tenant_id == "default"
        assert cfg.labels == []
        assert cfg.concurrency == 4
        assert cfg.dry_run is False
        assert cfg.resume_job_id is None
        assert cfg.progress_update_interval == 10
        assert isinstance(cfg.gateway, GatewayConfig)
        assert isinstance(cfg.retry, RetryConfig)

    def test_source_tag_required(self):
        with pytest.raises(ValidationError):
            EmailIngestConfig()
        with pytest.raises(ValidationError):
            EmailIngestConfig(source_tag="")

    @pytest.mark.parametrize("concurrency", [0, -3])
    def test_concurrency_must_be_positive(self, concurrency):
        with pytest.raises(ValidationError):
            EmailIngestConfig(source_tag="x", concurrency=concurrency)

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("EMAIL_INGEST_SOURCE_TAG", "env-tag")
        monkeypatch.setenv("EMAIL_INGEST_TENANT_ID", "tenant-env")
        monkeypatch.setenv("EMAIL_INGEST_LABELS", '["a", "b"]')
        monkeypatch.setenv("EMAIL_INGEST_CONCURRENCY", "8")
        cfg = EmailIngestConfig()
        assert cfg.source_tag == "env-tag"
        assert cfg.tenant_id == "tenant-env"
        assert cfg.labels == ["a", "b"]
        assert cfg.concurrency == 8

    def test_nested_configs_read_own_prefix(self, monkeypatch):
        monkeypatch.setenv("INGEST_API_BASE_URL", "http://elsewhere:9000")
        monkeypatch.setenv("RETRY_MAX_ATTEMPTS", "5")
        cfg = EmailIngestConfig(source_tag="x")
        assert cfg.gateway.base_url == "http://elsewhere:9000"
        assert cfg.retry.max_attempts == 5

    def test_frozen(self):
        cfg = EmailIngestConfig(source_tag="x")
        with pytest.raises(ValidationError):
            cfg.concurrency = 2
