"""Middleware components for the API."""

from .correlation import CorrelationIdMiddleware, get_correlation_id

__all__ = ["CorrelationIdMiddleware", "get_correlation_id"]
