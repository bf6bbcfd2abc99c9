"""API routers for the asset catalog."""

from asset_catalog.api.routers import assets, catalog, connections, health, users

__all__ = [
    "assets",
    "catalog",
    "connections",
    "health",
    "users",
]
