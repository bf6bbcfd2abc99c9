"""Readers for the flat-file tables and the Snowflake warehouse."""

from asset_catalog.parsers.base import (
    TABLE_NAMES,
    AssetRow,
    AssetTagRow,
    AssetTermRow,
    BookmarkRow,
    ColumnRow,
    GlossaryTermRow,
    LineageRow,
    TableSet,
    TagRow,
    UserRow,
)
from asset_catalog.parsers.coercion import FieldCoercer
from asset_catalog.parsers.join_resolver import JoinResolver, ResolvedRelations
from asset_catalog.parsers.table_store import DEFAULT_TABLE_FILES, TableStore
from asset_catalog.parsers.snowflake_config import SnowflakeConfig
from asset_catalog.parsers.snowflake_fetcher import (
    ConnectionState,
    SnowflakeSession,
    WarehouseMetadataFetcher,
    split_asset_id,
)

__all__ = [
    # Flat-file rows
    "TABLE_NAMES",
    "AssetRow",
    "AssetTagRow",
    "AssetTermRow",
    "BookmarkRow",
    "ColumnRow",
    "GlossaryTermRow",
    "LineageRow",
    "TableSet",
    "TagRow",
    "UserRow",
    # Flat-file loading
    "DEFAULT_TABLE_FILES",
    "FieldCoercer",
    "JoinResolver",
    "ResolvedRelations",
    "TableStore",
    # Snowflake
    "ConnectionState",
    "SnowflakeConfig",
    "SnowflakeSession",
    "WarehouseMetadataFetcher",
    "split_asset_id",
]
