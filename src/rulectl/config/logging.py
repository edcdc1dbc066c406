"""Diagnostics for rulectl commands, on stderr.

stdout carries command results only, so every log record goes to one
stderr handler, formatted by structlog. ``--verbose`` opens the
``rulectl`` loggers (resolution counts, plugin loading, telemetry spans)
down to DEBUG. ``--log-json`` switches to one JSON object per line.
"""

from __future__ import annotations

import logging
import sys

import structlog

# Libraries rulectl drives. Their records stay at WARNING even in verbose mode.
QUIET_LOGGERS: tuple[str, ...] = ("pluggy", "ruamel", "networkx", "rich", "markdown_it")


def _shared_processors() -> list[structlog.types.Processor]:
    """Processors for both structlog and stdlib (``logger.debug("%d", n)``) records."""
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]


def _renderer(log_json: bool) -> structlog.types.Processor:
    if log_json:
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())


def configure_logging(*, verbose: bool = False, log_json: bool = False) -> None:
    """Install the stderr handler and set the rulectl log levels.

    Calling it again replaces the handler rather than adding one.
    """
    shared = _shared_processors()
    structlog.configure(
        processors=[*shared, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=shared,
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, _renderer(log_json)],
        )
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(logging.WARNING)

    logging.getLogger("rulectl").setLevel(logging.DEBUG if verbose else logging.WARNING)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
