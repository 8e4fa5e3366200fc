"""structlog setup shared by the API and its services.

Request-scoped values (correlation id, owner id, batch ids) live in
structlog's contextvars, so any logger picks them up without being passed
around explicitly.
"""

import logging
import sys
from typing import Any

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

# SDK loggers that emit one line per HTTP round trip at INFO.
CHATTY_LIBRARY_LOGGERS = (
    "azure.core.pipeline.policies.http_logging_policy",
    "azure.identity",
    "httpx",
    "openai",
)


class ServiceStamp:
    """Processor stamping every event with the service name and version."""

    def __init__(self, service: str = "thumbcraft", version: str = "0.1.0"):
        self.service = service
        self.version = version

    def __call__(self, logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
        event_dict.setdefault("service", self.service)
        event_dict.setdefault("version", self.version)
        return event_dict


def _processors(json_format: bool, stamp: ServiceStamp) -> list[Processor]:
    chain: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
        stamp,
    ]
    if json_format:
        # ensure_ascii off so Arabic titles and overlay text stay readable
        chain += [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(ensure_ascii=False),
        ]
    else:
        chain.append(structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty()))
    return chain


def configure_logging(
    level: str = "INFO",
    json_format: bool = True,
    service_name: str | None = None,
    service_version: str | None = None,
) -> None:
    """Configure structlog on top of stdlib logging.

    Args:
        level: Root level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        json_format: One JSON object per line when True, colored console
            output otherwise.
        service_name: Value of the ``service`` key on every event.
        service_version: Value of the ``version`` key on every event.
    """
    stamp = ServiceStamp()
    if service_name:
        stamp.service = service_name
    if service_version:
        stamp.version = service_version

    root_level = logging.getLevelName(level.upper())
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=root_level, force=True)

    library_level = root_level if root_level == logging.DEBUG else logging.WARNING
    for name in CHATTY_LIBRARY_LOGGERS:
        logging.getLogger(name).setLevel(library_level)

    structlog.configure(
        processors=_processors(json_format, stamp),
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


class LogContext:
    """Bind values into the log context for the duration of a ``with`` block.

    Usage:
        with LogContext(owner_id=user.sub, session_id=str(session_id)):
            logger.info("Persisted concepts")
    """

    def __init__(self, **values: Any):
        self._values = values

    def __enter__(self) -> "LogContext":
        structlog.contextvars.bind_contextvars(**self._values)
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        structlog.contextvars.unbind_contextvars(*self._values)


def bind_context(**values: Any) -> None:
    structlog.contextvars.bind_contextvars(**values)


def unbind_context(*keys: str) -> None:
    structlog.contextvars.unbind_contextvars(*keys)


def current_context() -> dict[str, Any]:
    """Values bound for the current request or task."""
    return structlog.contextvars.get_contextvars()
