"""Business logic services."""

from asset_catalog.services.materializer import AssetMaterializer, lineage_edge_from_row

__all__ = [
    "AssetMaterializer",
    "lineage_edge_from_row",
]
