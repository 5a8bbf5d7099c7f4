"""Structured logging with structlog."""

from __future__ import annotations

import logging
import sys

import structlog

from http_lifecycle.config import get_settings


def configure_logging(level: str | None = None, fmt: str | None = None) -> None:
    """Configure stdlib logging and structlog.

    Args:
        level: Log level name. Defaults to ``Settings.log_level``.
        fmt: ``"json"`` or ``"console"``. Defaults to ``Settings.log_format``.
    """
    settings = get_settings()
    level = (level or settings.log_level).upper()
    fmt = fmt or settings.log_format

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=getattr(logging, level),
        force=True,
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_logger_name,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )

    if fmt == "json":
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())
    formatter = structlog.stdlib.ProcessorFormatter(processor=renderer)

    for handler in logging.root.handlers:
        handler.setFormatter(formatter)
