"""Correlation ID middleware for request tracing."""

import re
import time
import uuid
from typing import Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from thumbcraft_shared.logging import bind_context, get_logger, unbind_context

logger = get_logger(__name__)

CORRELATION_ID_HEADER = "X-Correlation-ID"
# Client-supplied ids end up in every log line; anything else is replaced.
_ACCEPTED_ID = re.compile(r"^[A-Za-z0-9._-]{1,128}$")
_BOUND_KEYS = ("correlation_id", "http_method", "http_path")


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """Tags each request with a correlation id, in logs and on the response."""

    def __init__(
        self,
        app: ASGIApp,
        header_name: str = CORRELATION_ID_HEADER,
        generator: Callable[[], str] = lambda: str(uuid.uuid4()),
    ):
        super().__init__(app)
        self.header_name = header_name
        self.generator = generator

    def _resolve(self, request: Request) -> str:
        supplied = request.headers.get(self.header_name, "")
        return supplied if _ACCEPTED_ID.match(supplied) else self.generator()

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Response],
    ) -> Response:
        correlation_id = self._resolve(request)
        request.state.correlation_id = correlation_id
        bind_context(
            correlation_id=correlation_id,
            http_method=request.method,
            http_path=request.url.path,
        )

        started = time.perf_counter()
        try:
            response = await call_next(request)
            response.headers[self.header_name] = correlation_id
            logger.info(
                "Request finished",
                status_code=response.status_code,
                duration_ms=round((time.perf_counter() - started) * 1000, 1),
            )
            return response
        finally:
            unbind_context(*_BOUND_KEYS)


def get_correlation_id(request: Request) -> str | None:
    """Correlation id of the request, when the middleware has run."""
    return getattr(request.state, "correlation_id", None)
