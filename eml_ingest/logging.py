"""structlog configuration for the ingester CLI."""

from __future__ import annotations

import logging
import sys
from typing import TextIO

import structlog

# Per-request INFO lines from the HTTP stack would drown out run events.
_NOISY_LOGGERS = ("httpx", "httpcore")


def _timestamped() -> list[structlog.types.Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]


def setup_logging(
    *,
    json: bool = False,
    level: str = "WARNING",
    stream: TextIO | None = None,
) -> None:
    """Route structlog and stdlib records through one root handler.

    Parameters
    ----------
    json:
        Emit JSON lines instead of the console renderer.
    level:
        Root log level name, case-insensitive.
    stream:
        Where log lines go.  Defaults to ``sys.stderr`` so results printed
        on stdout stay machine-readable.
    """
    out = stream if stream is not None else sys.stderr
    root_level = logging.getLevelName(level.upper())
    if not isinstance(root_level, int):
        raise ValueError(f"unknown log level: {level!r}")

    if json:
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=out.isatty())

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            *_timestamped(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(out)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=_timestamped(),
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                renderer,
            ],
        )
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(root_level)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(root_level, logging.WARNING))
