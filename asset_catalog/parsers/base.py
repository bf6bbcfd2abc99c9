"""Typed row records for the flat-file tables and the loaded table set."""

from dataclasses import dataclass, field
from typing import Any, Optional

from asset_catalog.errors import CatalogError, ErrorSeverity, LoadError, ParseError


@dataclass(frozen=True)
class AssetRow:
    """Row of the assets table after coercion."""

    id: str
    source: str
    name: str
    location: str

    # Counts
    declared_column_count: Optional[int] = None
    sample_record_count: Optional[int] = None

    # Documentation
    description: Optional[str] = None
    owner: Optional[str] = None
    is_sensitive: bool = False

    # Timestamps (ISO-8601)
    last_modified: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    # AI / exploration helpers
    raw_schema_for_ai: str = ""
    raw_query: Optional[str] = None
    csv_path: Optional[str] = None

    # Embedded JSON sample rows
    sample_data: Optional[list[dict[str, Any]]] = None


@dataclass(frozen=True)
class ColumnRow:
    """Row of the column schemas table."""

    data_asset_id: str
    column_name: str
    data_type: str
    is_nullable: bool = True
    description: Optional[str] = None


@dataclass(frozen=True)
class TagRow:
    id: str
    name: str


@dataclass(frozen=True)
class AssetTagRow:
    data_asset_id: str
    tag_id: str


@dataclass(frozen=True)
class GlossaryTermRow:
    id: str
    name: str


@dataclass(frozen=True)
class AssetTermRow:
    data_asset_id: str
    term_id: str


@dataclass(frozen=True)
class LineageRow:
    """Row of the raw lineage table; ids may point outside the catalog."""

    referenced_object_id: str
    referencing_object_id: str
    referenced_database: Optional[str] = None
    referenced_schema: Optional[str] = None
    referenced_object_name: Optional[str] = None
    referenced_object_domain: Optional[str] = None
    referencing_database: Optional[str] = None
    referencing_schema: Optional[str] = None
    referencing_object_name: Optional[str] = None
    referencing_object_domain: Optional[str] = None
    dependency_type: Optional[str] = None


@dataclass(frozen=True)
class UserRow:
    id: str
    username: str
    email: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


@dataclass(frozen=True)
class BookmarkRow:
    user_id: str
    data_asset_id: str
    bookmarked_at: Optional[str] = None


TABLE_NAMES = (
    "assets",
    "columns",
    "tags",
    "asset_tags",
    "glossary_terms",
    "asset_terms",
    "lineage",
    "users",
    "bookmarks",
)


@dataclass
class TableSet:
    """All nine flat-file tables, parsed into typed rows."""

    assets: list[AssetRow] = field(default_factory=list)
    columns: list[ColumnRow] = field(default_factory=list)
    tags: list[TagRow] = field(default_factory=list)
    asset_tags: list[AssetTagRow] = field(default_factory=list)
    glossary_terms: list[GlossaryTermRow] = field(default_factory=list)
    asset_terms: list[AssetTermRow] = field(default_factory=list)
    lineage: list[LineageRow] = field(default_factory=list)
    users: list[UserRow] = field(default_factory=list)
    bookmarks: list[BookmarkRow] = field(default_factory=list)
    errors: list[CatalogError] = field(default_factory=list)

    @property
    def load_errors(self) -> list[CatalogError]:
        """Tables that could not be read at all."""
        return [e for e in self.errors if isinstance(e, LoadError)]

    @property
    def parse_errors(self) -> list[CatalogError]:
        """Fields or rows that were coerced to a default."""
        return [e for e in self.errors if isinstance(e, ParseError)]

    @property
    def has_errors(self) -> bool:
        """Check if there are any ERROR-level issues."""
        return any(e.severity == ErrorSeverity.ERROR for e in self.errors)

    def summary(self) -> dict[str, Any]:
        """Row counts per table plus issue counts."""
        counts: dict[str, Any] = {name: len(getattr(self, name)) for name in TABLE_NAMES}
        counts["load_errors"] = len(self.load_errors)
        counts["parse_errors"] = len(self.parse_errors)
        return counts
