"""FastAPI dependencies for dependency injection."""

from typing import Annotated, Optional

from fastapi import Depends

from asset_catalog.config import get_settings
from asset_catalog.services import AssetMaterializer

_materializer: Optional[AssetMaterializer] = None


def get_materializer() -> AssetMaterializer:
    """Process-wide materializer, built from settings on first use."""
    global _materializer
    if _materializer is None:
        _materializer = AssetMaterializer.from_settings(get_settings())
    return _materializer


def reset_materializer() -> None:
    """Forget the process-wide materializer so the next request rebuilds it."""
    global _materializer
    _materializer = None


Materializer = Annotated[AssetMaterializer, Depends(get_materializer)]
