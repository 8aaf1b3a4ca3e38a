"""Graceful cancellation via SIGTERM / SIGINT."""

from __future__ import annotations

import signal
import threading
from collections.abc import Iterator
from contextlib import contextmanager

import structlog

logger = structlog.get_logger()


@contextmanager
def cancel_on_signals(cancel_event: threading.Event) -> Iterator[threading.Event]:
    """Set *cancel_event* on SIGTERM or SIGINT while the block runs.

    Must be entered from the main thread.  Files already being submitted
    finish normally; files not yet started are skipped.  The previous
    handlers are restored on exit.
    """

    def _handle(signum: int, frame: object) -> None:
        sig = signal.Signals(signum)
        if cancel_event.is_set():
            logger.warning("shutdown_signal_repeated", signal=sig.name)
            return
        logger.warning("shutdown_signal_received", signal=sig.name)
        cancel_event.set()

    previous = {sig: signal.signal(sig, _handle) for sig in (signal.SIGTERM, signal.SIGINT)}
    try:
        yield cancel_event
    finally:
        for sig, handler in previous.items():
            signal.signal(sig, handler)
