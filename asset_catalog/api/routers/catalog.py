"""Catalog cache and load status endpoints."""

from fastapi import APIRouter

from asset_catalog.api.dependencies import Materializer
from asset_catalog.logging_config import get_logger
from asset_catalog.models import CatalogStatus

router = APIRouter(prefix="/catalog", tags=["catalog"])
logger = get_logger(__name__)


@router.get("/status", response_model=CatalogStatus)
async def catalog_status(materializer: Materializer) -> CatalogStatus:
    """Row counts per flat-file table and the issues recorded while loading."""
    return await materializer.status()


@router.post("/cache/clear")
async def clear_catalog_cache(materializer: Materializer) -> dict[str, str]:
    """Drop the cached flat-file tables; the next request re-reads them."""
    materializer.clear_cache()
    logger.info("Catalog cache cleared via API")
    return {"status": "cleared"}
