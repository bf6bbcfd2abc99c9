"""Canonical models exposed by the catalog."""

from asset_catalog.models.asset import (
    CanonicalModel,
    ColumnSchema,
    DataAsset,
    LineageEdge,
    render_schema_for_ai,
)
from asset_catalog.models.catalog import CatalogStatus, UserProfile
from asset_catalog.models.connection import ConnectionTestResult

__all__ = [
    "CanonicalModel",
    "CatalogStatus",
    "ColumnSchema",
    "ConnectionTestResult",
    "DataAsset",
    "LineageEdge",
    "UserProfile",
    "render_schema_for_ai",
]
