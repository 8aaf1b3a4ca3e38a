"""Rendering of live progress and final results for the CLI."""

from __future__ import annotations

import json
from enum import Enum
from pathlib import Path

import yaml
from rich.console import Console

from .models import RunResult
from .parser import ParsedEmail
from .progress import ProgressSnapshot

MAX_LISTED = 10


class OutputFormat(str, Enum):
    TEXT = "text"
    JSON = "json"
    YAML = "yaml"


def format_duration(seconds: float) -> str:
    """Compact human duration, e.g. ``45s``, ``3m12s``, ``1h05m``."""
    total = int(max(seconds, 0))
    if total < 60:
        return f"{total}s"
    minutes, secs = divmod(total, 60)
    if minutes < 60:
        return f"{minutes}m{secs:02d}s"
    hours, minutes = divmod(minutes, 60)
    return f"{hours}h{minutes:02d}m"


def truncate(value: str, limit: int) -> str:
    if len(value) <= limit:
        return value
    if limit <= 3:
        return value[:limit]
    return value[: limit - 3] + "..."


def format_progress_line(snapshot: ProgressSnapshot) -> str:
    eta = ""
    if snapshot.estimated_remaining_seconds is not None:
        eta = f" ETA: {format_duration(snapshot.estimated_remaining_seconds)}"
    return (
        f"[{snapshot.percent_complete():3.0f}%] "
        f"{snapshot.processed_count}/{snapshot.total_files} files "
        f"(imported: {snapshot.imported_count}, skipped: {snapshot.skipped_count}, "
        f"failed: {snapshot.failed_count}){eta}"
    )


class ProgressPrinter:
    """Rewrites a single progress line in place on a terminal."""

    def __init__(self, console: Console) -> None:
        self._console = console
        self._printed = False

    def __call__(self, snapshot: ProgressSnapshot) -> None:
        if snapshot.processed_count == 0:
            return
        self._console.file.write("\r  " + format_progress_line(snapshot) + "   ")
        self._console.file.flush()
        self._printed = True

    def close(self) -> None:
        if self._printed:
            self._console.file.write("\n")
            self._printed = False


def print_preview(console: Console, path: Path, parsed: ParsedEmail) -> None:
    console.print(f"  [DRY RUN] Would import: {path.name}", highlight=False, markup=False)
    console.print(f"            Subject: {truncate(parsed.subject, 60)}", highlight=False, markup=False)
    sender = parsed.from_address.email if parsed.from_address else ""
    console.print(f"            From: {sender}", highlight=False, markup=False)
    console.print(f"            Date: {parsed.date.isoformat()}", highlight=False)
    if parsed.has_attachments:
        console.print(f"            Attachments: {len(parsed.attachments)}", highlight=False)
    console.print()


def render_result(console: Console, result: RunResult, fmt: OutputFormat) -> None:
    if fmt is OutputFormat.JSON:
        console.file.write(json.dumps(result.summary(), indent=2) + "\n")
    elif fmt is OutputFormat.YAML:
        console.file.write(yaml.safe_dump(result.summary(), sort_keys=False))
    else:
        render_text(console, result)


def render_text(console: Console, result: RunResult) -> None:
    duration = result.duration_seconds

    title = "Dry Run Complete" if result.dry_run else "Ingest Complete"
    console.print(title)
    console.print("=" * 50)
    console.print(f"  Job ID:        {result.job_id}", highlight=False)
    console.print(f"  Total Files:   {result.total_files}", highlight=False)
    console.print(f"  Imported:      [green]{result.imported_count}[/green]")
    console.print(f"  Skipped:       [yellow]{result.skipped_count}[/yellow] (duplicates)")
    console.print(f"  Failed:        [red]{result.failed_count}[/red]")
    console.print(f"  Duration:      {format_duration(duration)}", highlight=False)
    if result.total_files > 0 and duration > 0:
        console.print(f"  Rate:          {result.total_files / duration:.1f} files/sec", highlight=False)

    if result.cancelled:
        console.print("\n  Status:        [yellow]CANCELLED[/yellow]")
    elif result.success:
        console.print("\n  Status:        [green]SUCCESS[/green]")
    else:
        console.print("\n  Status:        [red]FAILED[/red]")

    if result.content_ids:
        console.print("\nContent IDs:")
        for content_id in result.content_ids[:MAX_LISTED]:
            console.print(f"  - {content_id}", highlight=False)
        if len(result.content_ids) > MAX_LISTED:
            console.print(f"  ... and {len(result.content_ids) - MAX_LISTED} more")

    if result.errors:
        console.print("\nErrors:")
        for error in result.errors[:MAX_LISTED]:
            console.print(
                f"  - {truncate(error.file_path, 40)}: {error.error}",
                highlight=False,
                markup=False,
            )
        if len(result.errors) > MAX_LISTED:
            console.print(f"  ... and {len(result.errors) - MAX_LISTED} more errors")
