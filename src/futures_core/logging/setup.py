"""Structured logging setup with structlog."""

from __future__ import annotations

import logging
import sys
from typing import Any, TextIO

import structlog

# Third-party loggers that log every request at INFO
_NOISY_LOGGERS = ("httpx", "httpcore", "websockets")

# Event keys whose values never reach a log line
SECRET_KEYS = frozenset({"api_key", "api_secret", "bot_token", "signature"})
REDACTED = "***"


def redact_secrets(logger: Any, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """Mask credentials bound to an event, e.g. when a config section is logged."""
    for key in SECRET_KEYS & event_dict.keys():
        if event_dict[key]:
            event_dict[key] = REDACTED
    return event_dict


def setup_logging(
    level: str = "INFO",
    log_format: str = "json",
    stream: TextIO | None = None,
) -> None:
    """Configure structlog for the bot.

    Every line carries ISO UTC timestamp, level and logger name, plus any
    contextvars bound for the running cycle (see ``bind_cycle``).

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        log_format: "json" for production, "console" for development.
        stream: Output stream, stderr by default.
    """
    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        redact_secrets,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if log_format == "console":
        renderer: structlog.types.Processor = structlog.dev.ConsoleRenderer()
    else:
        renderer = structlog.processors.JSONRenderer()

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    ))

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str | None = None, **initial_context) -> structlog.stdlib.BoundLogger:
    """Get a structlog logger, optionally pre-bound with context."""
    logger = structlog.get_logger(name)
    if initial_context:
        logger = logger.bind(**initial_context)
    return logger


def bind_cycle(cycle: int) -> None:
    """Tag every log line emitted in the current task with the cycle number."""
    structlog.contextvars.bind_contextvars(cycle=cycle)
