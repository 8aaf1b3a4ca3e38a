"""Tests for eml_ingest.progress."""

from __future__ import annotations

import threading

import pytest

from eml_ingest.progress import ProgressSnapshot, ProgressTracker


class FakeClock:
    def __init__(self, start: float = 100.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class TestPercentComplete:
    def test_zero_total_is_zero_percent(self):
        assert ProgressSnapshot(0, 0, 0, 0, 0).percent_complete() == 0.0

    def test_fraction(self):
        assert ProgressSnapshot(10, 3, 3, 0, 0).percent_complete() == pytest.approx(30.0)

    def test_capped_at_hundred(self):
        assert ProgressSnapshot(2, 5, 5, 0, 0).percent_complete() == 100.0


class TestProgressTracker:
    def test_initial_snapshot(self):
        snap = ProgressTracker(5).snapshot()
        assert (snap.total_files, snap.processed_count) == (5, 0)
        assert snap.estimated_remaining_seconds is None
        assert snap.current_file == ""

    def test_each_record_bumps_processed(self):
        tracker = ProgressTracker(3)
        tracker.record_imported()
        tracker.record_skipped()
        tracker.record_failed()

        snap = tracker.snapshot()
        assert (snap.imported_count, snap.skipped_count, snap.failed_count) == (1, 1, 1)
        assert snap.processed_count == 3
        assert snap.percent_complete() == 100.0

    def test_eta_from_average_rate(self):
        clock = FakeClock()
        tracker = ProgressTracker(10, clock=clock)

        clock.advance(4.0)
        tracker.record_imported()
        tracker.record_imported()

        # 2s per item, 8 items left
        assert tracker.snapshot().estimated_remaining_seconds == pytest.approx(16.0)

    def test_eta_zero_when_done(self):
        clock = FakeClock()
        tracker = ProgressTracker(1, clock=clock)
        clock.advance(3.0)
        tracker.record_failed()
        assert tracker.snapshot().estimated_remaining_seconds == 0.0

    def test_current_file_is_advisory(self, tmp_path):
        tracker = ProgressTracker(1)
        tracker.set_current_file(tmp_path / "a.eml")
        snap = tracker.snapshot()
        assert snap.current_file.endswith("a.eml")
        assert snap.processed_count == 0

    def test_concurrent_updates_keep_totals_consistent(self):
        tracker = ProgressTracker(4000)
        seen: list[ProgressSnapshot] = []
        barrier = threading.Barrier(4)

        def work(record) -> None:
            barrier.wait()
            for _ in range(1000):
                record()
                seen.append(tracker.snapshot())

        threads = [
            threading.Thread(target=work, args=(fn,))
            for fn in (
                tracker.record_imported,
                tracker.record_skipped,
                tracker.record_failed,
                tracker.record_imported,
            )
        ]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        final = tracker.snapshot()
        assert final.processed_count == 4000
        assert (final.imported_count, final.skipped_count, final.failed_count) == (2000, 1000, 1000)
        for snap in seen:
            assert snap.processed_count == (
                snap.imported_count + snap.skipped_count + snap.failed_count
            )
