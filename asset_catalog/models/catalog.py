"""Read-only user records and catalog status reports."""

from typing import Any, Optional

from pydantic import Field

from asset_catalog.models.asset import CanonicalModel


class UserProfile(CanonicalModel):
    """A catalog user from the flat-file users table."""

    id: str
    username: str
    email: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class CatalogStatus(CanonicalModel):
    """Row counts per flat-file table and the issues recorded while loading them."""

    tables_path: str
    loaded: bool
    warehouse_configured: bool
    warehouse_source_name: str
    row_counts: dict[str, int] = Field(default_factory=dict)
    load_error_count: int = 0
    parse_error_count: int = 0
    issues: list[dict[str, Any]] = Field(default_factory=list)
