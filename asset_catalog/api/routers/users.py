"""Read-only user and bookmark endpoints."""

from fastapi import APIRouter

from asset_catalog.api.dependencies import Materializer
from asset_catalog.models import UserProfile

router = APIRouter(prefix="/users", tags=["users"])


@router.get("", response_model=list[UserProfile])
async def list_users(materializer: Materializer) -> list[UserProfile]:
    """List catalog users."""
    return await materializer.list_users()


@router.get("/{user_id}/bookmarks")
async def get_user_bookmarks(user_id: str, materializer: Materializer) -> dict[str, list[str]]:
    """Asset ids a user has bookmarked."""
    return {"assetIds": await materializer.get_bookmarked_asset_ids(user_id)}
