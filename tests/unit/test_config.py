"""Unit tests for application and warehouse configuration."""

from pathlib import Path

import pytest

from asset_catalog.config import ConfigurationError, Settings, validate_config
from asset_catalog.parsers import SnowflakeConfig


def make_settings(**overrides) -> Settings:
    values = {"snowflake_account": None, "snowflake_user": None, "snowflake_authenticator": None}
    values.update(overrides)
    return Settings(_env_file=None, **values)


class TestSettings:
    def test_defaults(self):
        settings = make_settings()

        assert settings.api_prefix == "/api/v1"
        assert settings.warehouse_source_name == "Snowflake"
        assert settings.warehouse_configured is False

    def test_table_files_cover_every_table(self):
        files = make_settings(tags_file="labels.csv").table_files()

        assert len(files) == 9
        assert files["tags"] == "labels.csv"
        assert files["lineage"] == "data_asset_lineage_raw.csv"

    def test_username_alias(self, monkeypatch):
        monkeypatch.setenv("SNOWFLAKE_USERNAME", "loader")
        monkeypatch.delenv("SNOWFLAKE_USER", raising=False)

        settings = Settings(_env_file=None, snowflake_account="acct")

        assert settings.snowflake_user == "loader"
        assert settings.warehouse_configured is True

    def test_snowflake_config_is_built_from_settings(self):
        settings = make_settings(
            snowflake_account="acct",
            snowflake_user="loader",
            snowflake_password="secret",
            snowflake_database="ANALYTICS",
            snowflake_private_key_path="",
            warehouse_source_name="Warehouse",
        )

        config = settings.snowflake_config()

        assert config.account == "acct"
        assert config.database == "ANALYTICS"
        assert config.private_key_path is None
        assert config.source_name == "Warehouse"


class TestStartupValidation:
    def test_unconfigured_warehouse_is_a_warning(self):
        issues = make_settings().validate_for_startup()

        assert any("Snowflake account/user not configured" in i for i in issues)
        assert not any(i.startswith("CRITICAL") for i in issues)

    def test_browser_authenticator_is_flagged(self):
        issues = make_settings(
            snowflake_account="acct", snowflake_user="u", snowflake_authenticator="externalbrowser"
        ).validate_for_startup()

        assert any("externalbrowser" in i for i in issues)

    def test_strict_mode_raises_on_critical(self):
        settings = make_settings(snowflake_column_count_concurrency=0)

        with pytest.raises(ConfigurationError) as exc_info:
            validate_config(settings, strict=True)

        assert len(exc_info.value.issues) == 1

    def test_non_strict_mode_only_logs(self):
        validate_config(make_settings(snowflake_column_count_concurrency=0))


class TestSnowflakeConfig:
    def test_from_dict_converts_paths_and_lists(self, tmp_path: Path):
        key_file = tmp_path / "rsa_key.p8"
        key_file.write_text("unused")

        config = SnowflakeConfig.from_dict(
            {
                "account": "acct",
                "user": "u",
                "private_key_path": str(key_file),
                "excluded_schemas": "INFORMATION_SCHEMA, STAGING",
            }
        )

        assert config.private_key_path == key_file
        assert config.excluded_schemas == ["INFORMATION_SCHEMA", "STAGING"]
        assert config.validate() == []

    def test_requires_credentials(self):
        errors = SnowflakeConfig(account="", user="u").validate()

        assert "account is required" in errors
        assert "Either password or private_key_path must be provided" in errors

    def test_missing_key_file(self, tmp_path: Path):
        config = SnowflakeConfig(account="a", user="u", private_key_path=tmp_path / "missing.p8")

        assert any("does not exist" in e for e in config.validate())

    @pytest.mark.parametrize("authenticator", ["externalbrowser", "EXTERNALBROWSER", " ExternalBrowser "])
    def test_interactive_authenticator(self, authenticator):
        config = SnowflakeConfig(account="a", user="u", authenticator=authenticator)

        assert config.is_interactive_auth is True
        assert any("requires a browser" in e for e in config.validate())

    def test_key_pair_authenticator_is_headless(self):
        config = SnowflakeConfig(account="a", user="u", authenticator="SNOWFLAKE_JWT")

        assert config.is_interactive_auth is False

    @pytest.mark.parametrize(
        "account,region,expected",
        [
            ("acct", "US-EAST-1", "us-east-1"),
            ("acct", "GLOBAL", None),
            ("acct", None, None),
            ("acct.eu-west-1", "US-EAST-1", None),
        ],
    )
    def test_effective_region(self, account, region, expected):
        assert SnowflakeConfig(account=account, user="u", region=region).effective_region == expected

    def test_limits_are_validated(self):
        config = SnowflakeConfig(account="a", user="u", password="p", sample_row_cap=0, stream_batch_size=0)

        errors = config.validate()

        assert "sample_row_cap must be at least 1" in errors
        assert "stream_batch_size must be at least 1" in errors

    def test_sample_cap_has_a_ceiling(self):
        config = SnowflakeConfig(account="a", user="u", password="p", sample_row_cap=6)

        assert config.validate() == ["sample_row_cap must not exceed 5"]
