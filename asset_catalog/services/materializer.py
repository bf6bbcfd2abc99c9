"""Single entry point that turns either backing source into canonical assets."""

from typing import TYPE_CHECKING, Any, Optional

from asset_catalog.errors import CatalogError, ConnectError, NotFoundError
from asset_catalog.logging_config import get_logger
from asset_catalog.models import (
    CatalogStatus,
    ColumnSchema,
    DataAsset,
    LineageEdge,
    UserProfile,
    render_schema_for_ai,
)
from asset_catalog.parsers import (
    AssetRow,
    FieldCoercer,
    JoinResolver,
    LineageRow,
    TableSet,
    TableStore,
    WarehouseMetadataFetcher,
    split_asset_id,
)

if TYPE_CHECKING:
    from asset_catalog.config import Settings

logger = get_logger(__name__)

WAREHOUSE_SELECTOR = "warehouse"


def lineage_edge_from_row(row: LineageRow) -> LineageEdge:
    """Canonical edge for one raw lineage table row."""
    return LineageEdge(
        referenced_object_id=row.referenced_object_id,
        referencing_object_id=row.referencing_object_id,
        referenced_domain=row.referenced_object_domain,
        referencing_domain=row.referencing_object_domain,
        dependency_type=row.dependency_type,
        referenced_database=row.referenced_database,
        referenced_schema=row.referenced_schema,
        referenced_object_name=row.referenced_object_name,
        referencing_database=row.referencing_database,
        referencing_schema=row.referencing_schema,
        referencing_object_name=row.referencing_object_name,
    )


class _LoadedTables:
    """A TableSet plus the indexes built over it."""

    def __init__(self, table_set: TableSet):
        self.table_set = table_set
        self.resolver = JoinResolver(table_set)
        self.assets_by_id: dict[str, AssetRow] = {}
        for row in table_set.assets:
            if row.id in self.assets_by_id:
                logger.warning("Duplicate asset id in assets table, keeping first", asset_id=row.id)
                continue
            self.assets_by_id[row.id] = row


class AssetMaterializer:
    """
    Dispatches catalog requests to the flat-file tables or the live warehouse.

    Flat-file records are rebuilt per call from the cached tables, so output
    is identical across calls until ``clear_cache()``. Warehouse records are
    fetched per request and never cached.
    """

    def __init__(
        self,
        table_store: TableStore,
        fetcher: Optional[WarehouseMetadataFetcher] = None,
        warehouse_source_name: str = "Snowflake",
    ):
        self.table_store = table_store
        self.fetcher = fetcher
        self.warehouse_source_name = warehouse_source_name
        self._loaded: Optional[_LoadedTables] = None

    @classmethod
    def from_settings(cls, settings: "Settings") -> "AssetMaterializer":
        """Wire a materializer from application settings."""
        table_store = TableStore(settings.tables_path, settings.table_files())
        fetcher = None
        if settings.warehouse_configured:
            fetcher = WarehouseMetadataFetcher(settings.snowflake_config())
        return cls(table_store, fetcher, warehouse_source_name=settings.warehouse_source_name)

    # Source selection

    def is_warehouse_selector(self, source: Optional[str]) -> bool:
        """Check if a source selector names the live warehouse."""
        if source is None:
            return False
        selector = source.strip().lower()
        return selector in (self.warehouse_source_name.lower(), WAREHOUSE_SELECTOR)

    def _require_fetcher(self) -> WarehouseMetadataFetcher:
        if self.fetcher is None:
            raise ConnectError(
                f"{self.warehouse_source_name} is not configured",
                detail="Set SNOWFLAKE_ACCOUNT and SNOWFLAKE_USER to enable live warehouse assets.",
            )
        return self.fetcher

    async def _tables(self) -> _LoadedTables:
        table_set = await self.table_store.load()
        loaded = self._loaded
        if loaded is None or loaded.table_set is not table_set:
            loaded = _LoadedTables(table_set)
            self._loaded = loaded
        return loaded

    # Assets

    async def get_all(self, source: Optional[str] = None) -> list[DataAsset]:
        """
        List assets for a source selector.

        ``None`` lists every flat-file asset; the warehouse source name (or
        ``"warehouse"``) lists live warehouse tables; anything else filters the
        flat-file assets by their ``source`` column, case-insensitively.
        """
        if source is not None and not source.strip():
            source = None

        if self.is_warehouse_selector(source):
            return await self._require_fetcher().list_assets()

        loaded = await self._tables()
        rows = loaded.table_set.assets
        if source is not None:
            wanted = source.strip().lower()
            rows = [row for row in rows if row.source.lower() == wanted]

        assets = [self._materialize(row, loaded.resolver) for row in rows]
        logger.debug("Materialized flat-file assets", source=source, count=len(assets))
        return assets

    async def get_by_id(self, asset_id: str, source: Optional[str] = None) -> DataAsset:
        """
        One asset by id.

        Flat-file ids are looked up first; a ``database.schema.table`` id is
        then resolved against the live warehouse when one is configured.

        Raises:
            NotFoundError: if neither source knows the id
        """
        if source is not None and not source.strip():
            source = None

        if not self.is_warehouse_selector(source):
            loaded = await self._tables()
            row = loaded.assets_by_id.get(self._normalize_id(asset_id))
            if row is not None and (source is None or row.source.lower() == source.strip().lower()):
                return self._materialize(row, loaded.resolver)

        parts = split_asset_id(asset_id)
        if parts is not None and self.fetcher is not None and (
            source is None or self.is_warehouse_selector(source)
        ):
            return await self.fetcher.get_asset_detail(*parts)

        raise NotFoundError("Asset", asset_id)

    async def get_lineage(self, asset_id: str) -> list[LineageEdge]:
        """
        Upstream and downstream edges touching an asset.

        Raises:
            NotFoundError: if the id is unknown to every source
        """
        loaded = await self._tables()
        normalized = self._normalize_id(asset_id)
        if normalized in loaded.assets_by_id:
            return self._edges(loaded.resolver.resolve_asset(normalized).lineage)

        parts = split_asset_id(asset_id)
        if parts is not None and self.fetcher is not None:
            return await self.fetcher.get_lineage(*parts)

        # Referents outside the catalog still have their edges
        rows = loaded.resolver.resolve_asset(normalized).lineage
        if rows:
            return self._edges(rows)
        raise NotFoundError("Asset", asset_id)

    async def get_sample(self, asset_id: str, limit: int = 5) -> list[dict[str, Any]]:
        """
        A bounded sample of rows for an asset.

        Raises:
            NotFoundError: if the id is unknown to every source
        """
        limit = max(1, int(limit))
        loaded = await self._tables()
        row = loaded.assets_by_id.get(self._normalize_id(asset_id))
        if row is not None:
            return list(row.sample_data or [])[:limit]

        parts = split_asset_id(asset_id)
        if parts is not None and self.fetcher is not None:
            return await self.fetcher.get_sample(*parts, limit=limit)

        raise NotFoundError("Asset", asset_id)

    # Cache and diagnostics

    def clear_cache(self) -> None:
        """Drop the cached flat-file tables and their indexes."""
        self.table_store.clear_cache()
        self._loaded = None

    async def load_errors(self) -> list[CatalogError]:
        """Non-fatal load and parse issues collected by the last table load."""
        loaded = await self._tables()
        return list(loaded.table_set.errors)

    async def status(self) -> CatalogStatus:
        """Row counts and recorded issues for the flat-file tables."""
        loaded = await self._tables()
        summary = loaded.table_set.summary()
        load_error_count = summary.pop("load_errors")
        parse_error_count = summary.pop("parse_errors")
        return CatalogStatus(
            tables_path=str(self.table_store.tables_path),
            loaded=self.table_store.is_loaded,
            warehouse_configured=self.fetcher is not None,
            warehouse_source_name=self.warehouse_source_name,
            row_counts=summary,
            load_error_count=load_error_count,
            parse_error_count=parse_error_count,
            issues=[e.to_dict() for e in loaded.table_set.errors],
        )

    # Users and bookmarks (read-only)

    async def list_users(self) -> list[UserProfile]:
        """Every user in the users table, in table order."""
        loaded = await self._tables()
        return [
            UserProfile(
                id=u.id,
                username=u.username,
                email=u.email,
                created_at=u.created_at,
                updated_at=u.updated_at,
            )
            for u in loaded.table_set.users
        ]

    async def get_bookmarked_asset_ids(self, user_id: str) -> list[str]:
        """
        Asset ids a user has bookmarked.

        Raises:
            NotFoundError: if the user has no user row and no bookmarks
        """
        loaded = await self._tables()
        normalized = self._normalize_id(user_id)
        asset_ids = loaded.resolver.bookmarked_asset_ids(normalized)
        if not asset_ids and not any(u.id == normalized for u in loaded.table_set.users):
            raise NotFoundError("User", user_id)
        return asset_ids

    # Record building

    @staticmethod
    def _normalize_id(value: str) -> str:
        return FieldCoercer("request").key(value) or value

    @staticmethod
    def _edges(rows: list[LineageRow]) -> list[LineageEdge]:
        edges: list[LineageEdge] = []
        seen: set[tuple[str, str, Optional[str]]] = set()
        for row in rows:
            edge = lineage_edge_from_row(row)
            if edge.edge_key() in seen:
                continue
            seen.add(edge.edge_key())
            edges.append(edge)
        return edges

    def _materialize(self, row: AssetRow, resolver: JoinResolver) -> DataAsset:
        relations = resolver.resolve_asset(row.id)
        columns = [
            ColumnSchema(
                column_name=c.column_name,
                data_type=c.data_type,
                is_nullable=c.is_nullable,
                description=c.description,
            )
            for c in relations.columns
        ]
        if row.declared_column_count is not None and row.declared_column_count != len(columns):
            logger.debug(
                "Declared column count differs from column rows, using column rows",
                asset_id=row.id,
                declared=row.declared_column_count,
                actual=len(columns),
            )

        return DataAsset(
            id=row.id,
            source=row.source,
            name=row.name,
            location=row.location,
            column_count=len(columns),
            sample_record_count=row.sample_record_count,
            description=row.description,
            owner=row.owner,
            is_sensitive=row.is_sensitive,
            last_modified=row.last_modified,
            created_at=row.created_at,
            updated_at=row.updated_at,
            columns=columns,
            tags=relations.tags,
            business_glossary_terms=relations.glossary_terms,
            lineage=self._edges(relations.lineage),
            raw_schema_for_ai=row.raw_schema_for_ai or render_schema_for_ai(columns),
            raw_query=row.raw_query,
            sample_data=row.sample_data,
        )
