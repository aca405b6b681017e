"""
General utility functions for the CLI application.

Holds the shared Rich console used for user-facing output and the structlog
setup used by library modules for diagnostics. The two never mix: structlog
renders to stderr (or a file), Rich prints results to stdout.
"""

import logging
import sys
from pathlib import Path

import structlog
from rich.console import Console

console: Console = Console()

_LEVEL_MAP = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARN": logging.WARNING,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
}


def configure_logging(
    *,
    level: str = "WARNING",
    json_format: bool = False,
    log_file: Path | None = None,
) -> None:
    """
    Route structlog events through stdlib logging.

    Library modules call `structlog.get_logger(__name__)` and log dotted events
    with key/value fields. This wires those events to a single handler with
    either a human-readable console renderer or a JSON renderer.

    Args:
        level: Minimum level name ("DEBUG", "INFO", "WARNING", "ERROR").
            Unknown names fall back to INFO.
        json_format: Render one JSON object per line instead of key=value text.
        log_file: Append to this file instead of writing to stderr.
    """
    default_level = _LEVEL_MAP.get(level.upper(), logging.INFO)

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="%Y-%m-%d %H:%M:%S", key="timestamp"),
    ]

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(default_level),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        # Don't cache - allows reconfiguration between CLI invocations and tests
        cache_logger_on_first_use=False,
    )

    handler: logging.Handler
    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(log_file, mode="a")
    else:
        handler = logging.StreamHandler(sys.stderr)

    if json_format:
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(
            colors=log_file is None and sys.stderr.isatty(),
            pad_event_to=0,
            pad_level=False,
        )

    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processor=renderer,
            foreign_pre_chain=shared_processors,
        )
    )
    handler.setLevel(default_level)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(default_level)
    root_logger.addHandler(handler)
