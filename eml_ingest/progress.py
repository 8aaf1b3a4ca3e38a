"""Thread-safe progress accounting for an ingest run."""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class ProgressSnapshot:
    """An immutable read of the progress counters at one point in time."""

    total_files: int
    processed_count: int
    imported_count: int
    skipped_count: int
    failed_count: int
    estimated_remaining_seconds: float | None = None
    current_file: str = ""

    def percent_complete(self) -> float:
        if self.total_files == 0:
            return 0.0
        return min(self.processed_count / self.total_files * 100, 100.0)


class ProgressTracker:
    """Processed/imported/skipped/failed counters guarded by one lock.

    ``processed`` is only ever bumped together with exactly one of the
    other three counters, so every snapshot satisfies
    ``processed == imported + skipped + failed``.
    """

    def __init__(self, total_files: int, *, clock=time.monotonic) -> None:
        self._lock = threading.Lock()
        self._clock = clock
        self._total = total_files
        self._processed = 0
        self._imported = 0
        self._skipped = 0
        self._failed = 0
        self._current_file = ""
        self._started = clock()

    @property
    def total_files(self) -> int:
        return self._total

    def record_imported(self) -> None:
        with self._lock:
            self._imported += 1
            self._processed += 1

    def record_skipped(self) -> None:
        with self._lock:
            self._skipped += 1
            self._processed += 1

    def record_failed(self) -> None:
        with self._lock:
            self._failed += 1
            self._processed += 1

    def set_current_file(self, path: str | Path) -> None:
        """Advisory only; shown in live displays, never used for accounting."""
        with self._lock:
            self._current_file = str(path)

    def snapshot(self) -> ProgressSnapshot:
        with self._lock:
            eta: float | None = None
            if self._processed > 0:
                elapsed = max(self._clock() - self._started, 0.0)
                remaining = max(self._total - self._processed, 0)
                eta = elapsed / self._processed * remaining
            return ProgressSnapshot(
                total_files=self._total,
                processed_count=self._processed,
                imported_count=self._imported,
                skipped_count=self._skipped,
                failed_count=self._failed,
                estimated_remaining_seconds=eta,
                current_file=self._current_file,
            )
