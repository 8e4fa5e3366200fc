"""FastAPI application factory and main entry point."""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from tenacity import AsyncRetrying, stop_after_attempt, wait_fixed

from thumbcraft_shared.blob import get_blob_client
from thumbcraft_shared.config import get_settings
from thumbcraft_shared.db import get_db
from thumbcraft_shared.genai import GenAIConfigurationError, GenAIError, UpstreamParseError
from thumbcraft_shared.logging import configure_logging, get_logger

from . import __version__
from .errors import StudioError
from .middleware import CorrelationIdMiddleware, get_correlation_id
from .models.base import ErrorResponse
from .routes import auth, concepts, gallery, generate, health, profile, upload

logger = get_logger(__name__)

DB_INIT_ATTEMPTS = 30
DB_INIT_DELAY_SECONDS = 2


async def _init_database() -> bool:
    """Connect and create tables, retrying while the database starts up."""
    try:
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(DB_INIT_ATTEMPTS),
            wait=wait_fixed(DB_INIT_DELAY_SECONDS),
            before_sleep=lambda state: logger.warning(
                "Database initialization failed, retrying",
                attempt=state.attempt_number,
                max_attempts=DB_INIT_ATTEMPTS,
                error=str(state.outcome.exception()),
            ),
            reraise=True,
        ):
            with attempt:
                db = get_db()
                await db.connect()
                await db.create_tables()
    except Exception as e:
        # Requests then fail individually and /health reports "degraded".
        logger.error("Failed to initialize database", attempts=DB_INIT_ATTEMPTS, error=str(e))
        return False
    return True


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Connect the database on startup; release storage and database on shutdown."""
    settings = get_settings()
    logger.info(
        "Starting application",
        service=settings.service_name,
        version=settings.service_version,
        environment=settings.environment,
        reference_container=settings.storage.reference_container,
        thumbnail_container=settings.storage.thumbnail_container,
    )

    app.state.db_initialized = await _init_database()

    yield

    logger.info("Shutting down application")
    await get_db().close()
    get_blob_client().close()


def _error_response(
    request: Request,
    status_code: int,
    message: str,
    details: list[dict] | None = None,
) -> JSONResponse:
    correlation_id = get_correlation_id(request)
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse.body(message, correlation_id, details),
        headers={"X-Correlation-ID": correlation_id} if correlation_id else {},
    )


async def studio_error_handler(request: Request, exc: StudioError) -> JSONResponse:
    """Map the request-level error taxonomy to its status code."""
    if exc.status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
        logger.error("Request failed", path=request.url.path, error=exc.message)
    else:
        logger.info(
            "Request rejected",
            path=request.url.path,
            status_code=exc.status_code,
            error=exc.message,
        )
    return _error_response(request, exc.status_code, exc.message)


async def genai_error_handler(request: Request, exc: GenAIError) -> JSONResponse:
    """Model API failures that abort a whole request."""
    logger.error(
        "Model API request failed",
        path=request.url.path,
        error_type=type(exc).__name__,
        error=str(exc),
    )
    return _error_response(request, status.HTTP_500_INTERNAL_SERVER_ERROR, str(exc))


async def http_exception_handler(
    request: Request,
    exc: StarletteHTTPException,
) -> JSONResponse:
    """Handle HTTP exceptions."""
    return _error_response(request, exc.status_code, str(exc.detail))


async def validation_exception_handler(
    request: Request,
    exc: RequestValidationError,
) -> JSONResponse:
    """Report malformed requests as 400 with per-field details."""
    errors = [
        {
            "field": ".".join(str(loc) for loc in error["loc"]),
            "message": error["msg"],
            "type": error["type"],
        }
        for error in exc.errors()
    ]
    return _error_response(request, status.HTTP_400_BAD_REQUEST, "Invalid request", errors)


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Log unexpected exceptions; the caller only sees a generic message."""
    logger.exception(
        "Unhandled exception",
        path=request.url.path,
        method=request.method,
    )
    return _error_response(
        request, status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal Server Error"
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(StudioError, studio_error_handler)
    app.add_exception_handler(UpstreamParseError, genai_error_handler)
    app.add_exception_handler(GenAIConfigurationError, genai_error_handler)
    app.add_exception_handler(GenAIError, genai_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)


def include_routers(app: FastAPI) -> None:
    app.include_router(health.router, tags=["Health"])
    app.include_router(auth.router)
    app.include_router(upload.router)
    app.include_router(concepts.router)
    app.include_router(generate.router)
    app.include_router(gallery.router)
    app.include_router(profile.router)


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Returns:
        Configured FastAPI application instance.
    """
    settings = get_settings()

    configure_logging(
        level=settings.logging.level,
        json_format=settings.logging.json_format,
        service_name=settings.service_name,
        service_version=settings.service_version,
    )

    app = FastAPI(
        title="Thumbcraft API",
        description="AI-generated YouTube thumbnails from reference photos and video titles",
        version=__version__,
        docs_url="/docs" if settings.api.debug else None,
        redoc_url="/redoc" if settings.api.debug else None,
        openapi_url="/openapi.json" if settings.api.debug else None,
        lifespan=lifespan,
    )

    # First added = last executed
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.api.cors_origins,
        allow_origin_regex=settings.api.cors_origin_regex,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Correlation-ID", "Content-Disposition"],
    )
    app.add_middleware(CorrelationIdMiddleware)

    register_exception_handlers(app)
    include_routers(app)

    return app


app = create_app()
