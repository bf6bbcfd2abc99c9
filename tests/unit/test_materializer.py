"""Unit tests for the asset materializer."""

from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

from asset_catalog.errors import ConnectError, NotFoundError
from asset_catalog.models import DataAsset, LineageEdge
from asset_catalog.parsers import TableStore, WarehouseMetadataFetcher
from asset_catalog.services import AssetMaterializer


class TestGetAll:
    @pytest.mark.asyncio
    async def test_lists_every_flat_file_asset_in_table_order(self, materializer: AssetMaterializer):
        assets = await materializer.get_all()

        assert [a.id for a in assets] == ["a1", "a2", "a3"]
        assert all(isinstance(a, DataAsset) for a in assets)

    @pytest.mark.asyncio
    async def test_output_is_identical_across_calls(self, materializer: AssetMaterializer):
        first = await materializer.get_all()
        second = await materializer.get_all()

        assert [a.model_dump_json(by_alias=True) for a in first] == [
            a.model_dump_json(by_alias=True) for a in second
        ]

    @pytest.mark.asyncio
    async def test_column_count_matches_schema(self, materializer: AssetMaterializer):
        for asset in await materializer.get_all():
            assert asset.column_count == len(asset.columns)

    @pytest.mark.asyncio
    async def test_source_filter_is_case_insensitive(self, materializer: AssetMaterializer):
        assets = await materializer.get_all("hive")

        assert [a.id for a in assets] == ["a1"]

    @pytest.mark.asyncio
    async def test_unknown_source_yields_empty_list(self, materializer: AssetMaterializer):
        assert await materializer.get_all("Oracle") == []

    @pytest.mark.asyncio
    async def test_blank_source_means_all(self, materializer: AssetMaterializer):
        assert len(await materializer.get_all("  ")) == 3

    @pytest.mark.asyncio
    async def test_warehouse_selector_without_fetcher(self, materializer: AssetMaterializer):
        with pytest.raises(ConnectError):
            await materializer.get_all("Snowflake")

    @pytest.mark.asyncio
    async def test_warehouse_selector_uses_fetcher(self, table_store: TableStore):
        fetcher = MagicMock(spec=WarehouseMetadataFetcher)
        fetcher.list_assets = AsyncMock(return_value=[])
        materializer = AssetMaterializer(table_store, fetcher)

        assert await materializer.get_all("warehouse") == []
        fetcher.list_assets.assert_awaited_once()
        assert table_store.load_count == 0


class TestMaterializedRecord:
    @pytest.mark.asyncio
    async def test_customers_record(self, materializer: AssetMaterializer):
        asset = await materializer.get_by_id("a1")

        assert asset.source == "Hive"
        assert asset.column_count == 3
        assert asset.tags == ["pii", "finance"]
        assert asset.business_glossary_terms == ["Customer"]
        assert asset.is_sensitive is True
        assert asset.raw_schema_for_ai == "id:INT, name:STRING, email:STRING"
        assert asset.last_modified == "2024-01-15T10:00:00+00:00"
        assert asset.created_at == "2023-06-01"
        assert len(asset.sample_data) == 3

    @pytest.mark.asyncio
    async def test_camel_case_serialization(self, materializer: AssetMaterializer):
        data = (await materializer.get_by_id("a1")).model_dump(by_alias=True)

        assert data["columnCount"] == 3
        assert data["isSensitive"] is True
        assert data["rawSchemaForAI"] == "id:INT, name:STRING, email:STRING"
        assert data["schema"][0]["columnName"] == "id"
        assert data["businessGlossaryTerms"] == ["Customer"]
        assert data["lineage"][0]["referencedObjectId"] == "RAW.LANDING.CUSTOMERS_RAW"

    @pytest.mark.asyncio
    async def test_malformed_fields_use_defaults(self, materializer: AssetMaterializer):
        asset = await materializer.get_by_id("a2")

        # Declared 5 columns, only 2 column rows exist
        assert asset.column_count == 2
        assert asset.is_sensitive is False
        assert asset.sample_data is None
        assert asset.tags == ["marketing"]
        assert asset.business_glossary_terms == ["Revenue", "Customer"]

    @pytest.mark.asyncio
    async def test_asset_without_columns_keeps_stored_schema_text(self, materializer: AssetMaterializer):
        asset = await materializer.get_by_id("a3")

        assert asset.column_count == 0
        assert asset.columns == []
        assert asset.raw_schema_for_ai == "sku:STRING"
        assert asset.sample_record_count is None

    @pytest.mark.asyncio
    async def test_lineage_is_ordered_and_self_edge_kept_once(self, materializer: AssetMaterializer):
        asset = await materializer.get_by_id("a1")

        assert [(e.referenced_object_id, e.referencing_object_id) for e in asset.lineage] == [
            ("RAW.LANDING.CUSTOMERS_RAW", "a1"),
            ("a1", "a2"),
            ("a1", "a1"),
        ]


class TestGetById:
    @pytest.mark.asyncio
    async def test_unknown_id(self, materializer: AssetMaterializer):
        with pytest.raises(NotFoundError) as exc_info:
            await materializer.get_by_id("missing")

        assert exc_info.value.identifier == "missing"

    @pytest.mark.asyncio
    async def test_source_mismatch_is_not_found(self, materializer: AssetMaterializer):
        with pytest.raises(NotFoundError):
            await materializer.get_by_id("a1", source="ADLS")

    @pytest.mark.asyncio
    async def test_qualified_id_goes_to_fetcher(self, table_store: TableStore):
        expected = DataAsset(id="DB.S.T", source="Snowflake", name="T", location="DB.S.T")
        fetcher = MagicMock(spec=WarehouseMetadataFetcher)
        fetcher.get_asset_detail = AsyncMock(return_value=expected)
        materializer = AssetMaterializer(table_store, fetcher)

        asset = await materializer.get_by_id("DB.S.T")

        assert asset is expected
        fetcher.get_asset_detail.assert_awaited_once_with("DB", "S", "T")

    @pytest.mark.asyncio
    async def test_numeric_ids_join_across_encodings(self, tmp_path: Path):
        (tmp_path / "data_assets.csv").write_text("id,source,name,location\n7,Hive,seven,/7\n")
        (tmp_path / "tags.csv").write_text("id,name\n1,pii\n")
        (tmp_path / "data_asset_tags.csv").write_text("data_asset_id,tag_id\n007,1.0\n")
        materializer = AssetMaterializer(TableStore(tmp_path))

        asset = await materializer.get_by_id("7.0")

        assert asset.id == "7"
        assert asset.tags == ["pii"]


class TestLineage:
    @pytest.mark.asyncio
    async def test_catalog_asset(self, materializer: AssetMaterializer):
        edges = await materializer.get_lineage("a2")

        assert all(isinstance(e, LineageEdge) for e in edges)
        assert [(e.referenced_object_id, e.referencing_domain) for e in edges] == [
            ("a1", "TABLE"),
            ("a3", "VIEW"),
        ]

    @pytest.mark.asyncio
    async def test_external_referent(self, materializer: AssetMaterializer):
        edges = await materializer.get_lineage("RAW.LANDING.CUSTOMERS_RAW")

        assert len(edges) == 1
        assert edges[0].referencing_object_id == "a1"

    @pytest.mark.asyncio
    async def test_unknown_id(self, materializer: AssetMaterializer):
        with pytest.raises(NotFoundError):
            await materializer.get_lineage("ghost")


class TestSample:
    @pytest.mark.asyncio
    async def test_limit_applies(self, materializer: AssetMaterializer):
        rows = await materializer.get_sample("a1", limit=2)

        assert rows == [{"id": 1, "name": "Ann"}, {"id": 2, "name": "Bob"}]

    @pytest.mark.asyncio
    async def test_missing_sample_is_empty(self, materializer: AssetMaterializer):
        assert await materializer.get_sample("a2") == []

    @pytest.mark.asyncio
    async def test_unknown_id(self, materializer: AssetMaterializer):
        with pytest.raises(NotFoundError):
            await materializer.get_sample("ghost")


class TestCacheAndStatus:
    @pytest.mark.asyncio
    async def test_clear_cache_picks_up_changes(self, materializer: AssetMaterializer, tables_dir: Path):
        await materializer.get_all()
        with open(tables_dir / "data_assets.csv", "a") as f:
            f.write("a4,Hive,events,/events,,,,,false,,,,,,,\n")

        assert len(await materializer.get_all()) == 3

        materializer.clear_cache()

        assert len(await materializer.get_all()) == 4
        assert materializer.table_store.load_count == 2

    @pytest.mark.asyncio
    async def test_status(self, materializer: AssetMaterializer):
        status = await materializer.status()

        assert status.loaded is True
        assert status.warehouse_configured is False
        assert status.row_counts["assets"] == 3
        assert status.load_error_count == 0
        assert status.parse_error_count == 2
        assert {issue["kind"] for issue in status.issues} == {"parse_error"}

    @pytest.mark.asyncio
    async def test_load_errors_are_reported_not_raised(self, tables_dir: Path):
        (tables_dir / "column_schemas.csv").unlink()
        materializer = AssetMaterializer(TableStore(tables_dir))

        asset = await materializer.get_by_id("a1")
        errors = await materializer.load_errors()

        assert asset.columns == []
        assert [e.location for e in errors if e.kind.value == "load_error"] == ["columns"]


class TestUsers:
    @pytest.mark.asyncio
    async def test_list_users(self, materializer: AssetMaterializer):
        users = await materializer.list_users()

        assert [u.username for u in users] == ["alice", "bob"]
        assert users[0].created_at == "2023-01-01T00:00:00+00:00"

    @pytest.mark.asyncio
    async def test_bookmarks(self, materializer: AssetMaterializer):
        assert await materializer.get_bookmarked_asset_ids("u1") == ["a1", "a3"]
        assert await materializer.get_bookmarked_asset_ids("u2") == []

    @pytest.mark.asyncio
    async def test_unknown_user(self, materializer: AssetMaterializer):
        with pytest.raises(NotFoundError):
            await materializer.get_bookmarked_asset_ids("u9")
