"""Data asset endpoints."""

from typing import Any, Optional

from fastapi import APIRouter, Query

from asset_catalog.api.dependencies import Materializer
from asset_catalog.models import DataAsset, LineageEdge

router = APIRouter(prefix="/assets", tags=["assets"])


@router.get("", response_model=list[DataAsset])
async def list_assets(
    materializer: Materializer,
    source: Optional[str] = Query(
        None,
        description="Source selector: omit for all flat-file assets, 'Snowflake' for live "
        "warehouse tables, or a flat-file source name such as 'Hive'",
    ),
) -> list[DataAsset]:
    """List data assets for a source."""
    return await materializer.get_all(source)


@router.get("/{asset_id}", response_model=DataAsset)
async def get_asset(
    asset_id: str,
    materializer: Materializer,
    source: Optional[str] = Query(None, description="Restrict the lookup to one source"),
) -> DataAsset:
    """Get one data asset by id (flat-file id or database.schema.table)."""
    return await materializer.get_by_id(asset_id, source)


@router.get("/{asset_id}/lineage", response_model=list[LineageEdge])
async def get_asset_lineage(asset_id: str, materializer: Materializer) -> list[LineageEdge]:
    """Direct upstream and downstream dependencies of an asset."""
    return await materializer.get_lineage(asset_id)


@router.get("/{asset_id}/sample")
async def get_asset_sample(
    asset_id: str,
    materializer: Materializer,
    limit: int = Query(5, ge=1, le=100, description="Maximum rows; warehouse samples are capped at 5"),
) -> list[dict[str, Any]]:
    """A small sample of rows from an asset."""
    return await materializer.get_sample(asset_id, limit)
