"""Structured logging."""

from futures_core.logging.setup import bind_cycle, get_logger, setup_logging

__all__ = ["bind_cycle", "get_logger", "setup_logging"]
