"""Health check endpoints."""

from datetime import datetime, timezone

from fastapi import APIRouter
from pydantic import BaseModel

from asset_catalog.api.dependencies import Materializer
from asset_catalog.config import get_settings
from asset_catalog.errors import ErrorKind

router = APIRouter()
settings = get_settings()


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    timestamp: str
    version: str = settings.api_version
    environment: str = settings.environment


class ReadinessResponse(BaseModel):
    """Readiness check response."""

    status: str
    timestamp: str
    checks: dict[str, str]


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Basic health check - is the service running."""
    return HealthResponse(
        status="healthy",
        timestamp=datetime.now(timezone.utc).isoformat(),
    )


@router.get("/health/ready", response_model=ReadinessResponse)
async def readiness_check(materializer: Materializer) -> ReadinessResponse:
    """Readiness check: flat-file tables load and which sources are available."""
    checks: dict[str, str] = {}

    errors = await materializer.load_errors()
    load_errors = [e for e in errors if e.kind == ErrorKind.LOAD]
    if load_errors:
        checks["tables"] = f"degraded: {len(load_errors)} table(s) failed to load"
    else:
        checks["tables"] = "ok"

    # The warehouse is optional; readiness does not open a connection
    checks["warehouse"] = "configured" if materializer.fetcher is not None else "not_configured"

    all_ok = checks["tables"] == "ok"

    return ReadinessResponse(
        status="ready" if all_ok else "not_ready",
        timestamp=datetime.now(timezone.utc).isoformat(),
        checks=checks,
    )


@router.get("/health/live")
async def liveness_check() -> dict[str, str]:
    """Liveness check - is the process alive."""
    return {
        "status": "alive",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
