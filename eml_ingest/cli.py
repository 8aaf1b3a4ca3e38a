"""Command-line interface: ``eml-ingest email <path>``."""

from __future__ import annotations

import threading
from pathlib import Path
from typing import Optional

import typer
from pydantic import ValidationError
from rich.console import Console

from .client import IngestClient
from .config import EmailIngestConfig
from .engine import EmailIngester
from .errors import IngestError
from .logging import setup_logging
from .models import RunResult
from .report import OutputFormat, ProgressPrinter, print_preview, render_result
from .shutdown import cancel_on_signals

app = typer.Typer(help="Bulk ingestion of local email files.", no_args_is_help=True)


@app.callback()
def main() -> None:
    """Ingest local content into the ingestion platform."""


@app.command("email")
def ingest_email(
    path: Path = typer.Argument(..., help="An .eml file, or a directory to walk recursively"),
    source: str = typer.Option(..., "--source", "-s", help="Source tag identifier"),
    labels: Optional[str] = typer.Option(None, "--labels", "-l", help="Comma-separated labels to apply"),
    concurrency: int = typer.Option(4, "--concurrency", "-w", min=1, help="Number of concurrent workers"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Preview import without persisting"),
    resume: Optional[str] = typer.Option(None, "--resume", help="Resume an interrupted job by ID"),
    tenant: Optional[str] = typer.Option(None, "--tenant", help="Tenant ID (default: EMAIL_INGEST_TENANT_ID or 'default')"),
    output: OutputFormat = typer.Option(OutputFormat.TEXT, "--output", "-o", help="Result format"),
    log_level: str = typer.Option("WARNING", "--log-level", help="Log level for stderr logging"),
    json_logs: bool = typer.Option(False, "--json-logs", help="Emit logs as JSON lines"),
) -> None:
    """Ingest RFC 5322 email files (.eml).

    Examples:
        eml-ingest email ./emails/ --source outlook-2024
        eml-ingest email ./backup/ -s backup --labels project-a,important -w 8
        eml-ingest email ./emails/ -s test --dry-run
        eml-ingest email ./emails/ -s backup --resume job-abc123
    """
    console = Console(highlight=False)
    err_console = Console(stderr=True, highlight=False)
    try:
        setup_logging(json=json_logs, level=log_level)
    except ValueError as exc:
        err_console.print(f"Invalid options: {exc}", markup=False)
        raise typer.Exit(2) from exc

    overrides: dict[str, object] = {}
    if tenant:
        overrides["tenant_id"] = tenant
    try:
        config = EmailIngestConfig(
            source_tag=source,
            labels=[label.strip() for label in (labels or "").split(",") if label.strip()],
            concurrency=concurrency,
            dry_run=dry_run,
            resume_job_id=resume or None,
            **overrides,
        )
    except ValidationError as exc:
        err_console.print(f"Invalid options: {exc}", markup=False)
        raise typer.Exit(2) from exc

    text = output is OutputFormat.TEXT
    if text:
        _print_header(console, path, config)

    try:
        result = _run(config, path, console if text else None)
    except IngestError as exc:
        err_console.print(f"Error: {exc}", markup=False)
        raise typer.Exit(1) from exc

    render_result(console, result, output)

    if result.failed_count > 0 and not result.dry_run:
        err_console.print(f"{result.failed_count} files failed to import")
        raise typer.Exit(1)


def _run(config: EmailIngestConfig, path: Path, console: Console | None) -> RunResult:
    cancel = threading.Event()
    printer = ProgressPrinter(console) if console is not None else None

    def _preview(file_path: Path, parsed) -> None:
        if console is not None:
            print_preview(console, file_path, parsed)

    with cancel_on_signals(cancel):
        if config.dry_run:
            return EmailIngester(config).run(path, cancel_event=cancel, on_preview=_preview)

        try:
            with IngestClient(config.gateway, config.retry) as gateway:
                return EmailIngester(config, gateway).run(
                    path,
                    cancel_event=cancel,
                    on_progress=printer,
                )
        finally:
            if printer is not None:
                printer.close()


def _print_header(console: Console, path: Path, config: EmailIngestConfig) -> None:
    console.print(f"Email Ingest: {path}", markup=False)
    console.print(f"  Source:      {config.source_tag}", markup=False)
    console.print(f"  Tenant:      {config.tenant_id}", markup=False)
    console.print(f"  Concurrency: {config.concurrency} workers")
    if config.labels:
        console.print(f"  Labels:      {', '.join(config.labels)}", markup=False)
    if config.dry_run:
        console.print("  Mode:        DRY RUN (no changes will be made)")
    if config.resume_job_id:
        console.print(f"  Resuming:    {config.resume_job_id}", markup=False)
    console.print("  Path type:   " + ("directory (recursive)" if path.is_dir() else "single file"))
    console.print()
