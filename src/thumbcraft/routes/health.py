"""Health check endpoints."""

from datetime import datetime, timezone
from typing import Literal

from fastapi import APIRouter, Request
from pydantic import BaseModel, Field

from thumbcraft_shared.config import get_settings
from thumbcraft_shared.db import get_db

router = APIRouter()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class HealthStatus(BaseModel):
    """Health check response model."""

    status: Literal["healthy", "degraded", "unhealthy"] = Field(
        description="Overall health status"
    )
    timestamp: datetime = Field(
        default_factory=_utcnow,
        description="Current server timestamp (UTC)",
    )
    version: str = Field(description="Service version")
    checks: dict[str, bool] = Field(
        default_factory=dict,
        description="Individual component health checks",
    )


@router.get(
    "/health",
    response_model=HealthStatus,
    summary="Health Check",
    description="Check if the service is running and which dependencies are configured",
)
async def health_check(request: Request) -> HealthStatus:
    """Liveness probe with dependency status.

    Storage and model API are reported but never degrade the status; only
    the database does.
    """
    settings = get_settings()
    checks = {"api": True}
    overall_status = "healthy"

    db_initialized = getattr(request.app.state, "db_initialized", False)
    checks["database"] = db_initialized
    if db_initialized:
        try:
            await get_db().ping()
            checks["database_connection"] = True
        except Exception:
            checks["database_connection"] = False
            overall_status = "degraded"
    else:
        overall_status = "degraded"

    checks["blob_storage"] = bool(
        settings.storage.connection_string
        or (settings.storage.use_managed_identity and settings.storage.account_url)
    )
    checks["genai"] = bool(settings.genai.api_key)

    return HealthStatus(
        status=overall_status,
        version=request.app.version,
        checks=checks,
    )


@router.get(
    "/health/live",
    summary="Liveness Check",
    description="Simple liveness check - returns 200 if service is alive",
)
async def liveness_check() -> dict[str, str]:
    return {"status": "ok"}
