"""Shared structlog configuration for the API process.

structlog events and stdlib records (uvicorn, SQLAlchemy, botocore) go
through the same ProcessorFormatter, so every line has one shape: a console
rendering in development, JSON lines everywhere else.
"""

from __future__ import annotations

import logging
import sys

import structlog

from archimatch.config import settings

_SHARED_PROCESSORS: list[structlog.types.Processor] = [
    structlog.contextvars.merge_contextvars,
    structlog.stdlib.add_log_level,
    structlog.stdlib.add_logger_name,
    structlog.processors.TimeStamper(fmt="iso"),
]

# Libraries that are chatty at INFO.
_QUIET_LOGGERS = ("botocore", "boto3", "urllib3", "sqlalchemy.engine", "aiosqlite")


def _renderers() -> list[structlog.types.Processor]:
    if settings.environment == "development":
        return [structlog.dev.ConsoleRenderer()]
    return [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]


def _file_handler(path: str) -> logging.Handler | None:
    """Open the optional JSON log file. A bad path never stops the API."""
    try:
        handler = logging.FileHandler(path, encoding="utf-8")
    except OSError as exc:
        print(
            f"WARNING: Could not open log file {path!r}: {exc}. Logging to stdout only.",
            file=sys.stderr,
        )
        return None
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=_SHARED_PROCESSORS,
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                structlog.processors.format_exc_info,
                structlog.processors.JSONRenderer(),
            ],
        )
    )
    return handler


def configure_logging() -> None:
    """Configure structlog and route stdlib logging through it.

    When LOG_FILE is set, records are also appended to that file as JSON
    lines regardless of the environment.
    """
    level = logging.getLevelName(settings.log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    structlog.configure(
        processors=[
            *_SHARED_PROCESSORS,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=_SHARED_PROCESSORS,
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                *_renderers(),
            ],
        )
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(console)
    if settings.log_file:
        file_handler = _file_handler(settings.log_file)
        if file_handler is not None:
            root.addHandler(file_handler)
    root.setLevel(level)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))
