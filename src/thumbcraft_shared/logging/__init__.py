"""Structured logging module."""

from .config import (
    LogContext,
    ServiceStamp,
    bind_context,
    configure_logging,
    current_context,
    get_logger,
    unbind_context,
)

__all__ = [
    "LogContext",
    "ServiceStamp",
    "bind_context",
    "configure_logging",
    "current_context",
    "get_logger",
    "unbind_context",
]
