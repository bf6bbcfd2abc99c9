"""Warehouse connection test endpoint."""

from fastapi import APIRouter

from asset_catalog.api.dependencies import Materializer
from asset_catalog.models import ConnectionTestResult

router = APIRouter(prefix="/connections", tags=["connections"])


@router.post("/test", response_model=ConnectionTestResult)
async def test_warehouse_connection(materializer: Materializer) -> ConnectionTestResult:
    """Probe the configured warehouse with a trivial query."""
    if materializer.fetcher is None:
        return ConnectionTestResult(
            success=False,
            message=f"{materializer.warehouse_source_name} is not configured",
            details="Set SNOWFLAKE_ACCOUNT and SNOWFLAKE_USER to enable live warehouse assets.",
            error_kind="connect_error",
        )
    return await materializer.fetcher.test_connection()
