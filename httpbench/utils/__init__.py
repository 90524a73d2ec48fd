"""Utilities for httpbench."""

from .logging import setup_logging, get_logger, LoggerMixin

__all__ = [
    "setup_logging",
    "get_logger",
    "LoggerMixin"
]
