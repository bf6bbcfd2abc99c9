"""Integration tests for the command-line interface."""

import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from asset_catalog.cli.main import app
from asset_catalog.config import Settings

runner = CliRunner()


@pytest.fixture(autouse=True)
def unconfigured_settings(monkeypatch, tables_dir: Path) -> Settings:
    """Settings with no warehouse, pointing at the fixture tables."""
    settings = Settings(
        _env_file=None,
        tables_path=str(tables_dir),
        snowflake_account=None,
        snowflake_user=None,
    )
    monkeypatch.setattr("asset_catalog.cli.main.get_settings", lambda: settings)
    return settings


class TestAssetsCommands:
    def test_list_json(self):
        result = runner.invoke(app, ["assets", "list", "--json"])

        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert [a["id"] for a in data] == ["a1", "a2", "a3"]
        assert data[0]["columnCount"] == 3

    def test_list_table(self):
        result = runner.invoke(app, ["assets", "list"])

        assert result.exit_code == 0
        assert "customers" in result.stdout
        assert "3 of 3 shown" in result.stdout

    def test_list_by_source_and_limit(self):
        result = runner.invoke(app, ["assets", "list", "--source", "hive", "--json"])
        assert [a["id"] for a in json.loads(result.stdout)] == ["a1"]

        result = runner.invoke(app, ["assets", "list", "-n", "2", "--json"])
        assert len(json.loads(result.stdout)) == 2

    def test_explicit_tables_path(self, tmp_path: Path):
        (tmp_path / "data_assets.csv").write_text("id,source,name,location\nz9,Hive,solo,/z\n")

        result = runner.invoke(app, ["assets", "list", "--json", "--tables-path", str(tmp_path)])

        assert result.exit_code == 0
        assert [a["id"] for a in json.loads(result.stdout)] == ["z9"]

    def test_show(self):
        result = runner.invoke(app, ["assets", "show", "a1", "--json"])

        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["tags"] == ["pii", "finance"]
        assert data["schema"][2]["columnName"] == "email"

    def test_show_human_readable(self):
        result = runner.invoke(app, ["assets", "show", "a2"])

        assert result.exit_code == 0
        assert "orders" in result.stdout
        assert "marketing" in result.stdout

    def test_show_unknown_asset(self):
        result = runner.invoke(app, ["assets", "show", "nope"])

        assert result.exit_code == 1
        assert "Asset not found: nope" in result.stdout

    def test_warehouse_source_without_configuration(self):
        result = runner.invoke(app, ["assets", "list", "--source", "Snowflake"])

        assert result.exit_code == 1
        assert "not configured" in result.stdout

    def test_lineage(self):
        result = runner.invoke(app, ["assets", "lineage", "a1"])

        assert result.exit_code == 0
        assert "Upstream (2)" in result.stdout
        assert "Downstream (2)" in result.stdout
        assert "RAW.LANDING.CUSTOMERS_RAW" in result.stdout

    def test_sample(self):
        result = runner.invoke(app, ["assets", "sample", "a1", "--limit", "2"])

        assert result.exit_code == 0
        assert json.loads(result.stdout) == [{"id": 1, "name": "Ann"}, {"id": 2, "name": "Bob"}]

    def test_sample_missing(self):
        result = runner.invoke(app, ["assets", "sample", "a3"])

        assert result.exit_code == 0
        assert "No sample data available." in result.stdout


class TestTablesCommands:
    def test_status(self):
        result = runner.invoke(app, ["tables", "status"])

        assert result.exit_code == 0
        assert "Load errors: 0" in result.stdout
        assert "Parse issues: 2" in result.stdout
        assert "assets:2:is_sensitive" in result.stdout

    def test_status_without_issues(self):
        result = runner.invoke(app, ["tables", "status", "--no-issues"])

        assert result.exit_code == 0
        assert "assets:2:is_sensitive" not in result.stdout

    def test_status_fails_on_load_errors(self, tables_dir: Path):
        (tables_dir / "users.csv").unlink()

        result = runner.invoke(app, ["tables", "status"])

        assert result.exit_code == 1
        assert "Load errors: 1" in result.stdout


class TestWarehouseCommands:
    def test_unconfigured(self):
        result = runner.invoke(app, ["warehouse", "test"])

        assert result.exit_code == 1
        assert "Snowflake is not configured" in result.stdout
