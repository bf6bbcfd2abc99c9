"""Application configuration using Pydantic settings."""

from functools import lru_cache
from typing import TYPE_CHECKING, List, Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

if TYPE_CHECKING:
    from asset_catalog.parsers.snowflake_config import SnowflakeConfig


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # API
    api_prefix: str = "/api/v1"
    api_title: str = "Data Asset Catalog"
    api_version: str = "0.1.0"
    cors_origins: List[str] = ["*"]

    # Flat-file tables
    tables_path: str = "public/db_mock_data"
    assets_file: str = "data_assets.csv"
    columns_file: str = "column_schemas.csv"
    tags_file: str = "tags.csv"
    asset_tags_file: str = "data_asset_tags.csv"
    glossary_terms_file: str = "business_glossary_terms.csv"
    asset_terms_file: str = "data_asset_business_glossary_terms.csv"
    lineage_file: str = "data_asset_lineage_raw.csv"
    users_file: str = "users.csv"
    bookmarks_file: str = "bookmarked_data_assets.csv"

    # Warehouse (Snowflake) connection, read from SNOWFLAKE_* variables
    snowflake_account: Optional[str] = None
    snowflake_user: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("snowflake_user", "snowflake_username"),
    )
    snowflake_password: Optional[str] = None
    snowflake_warehouse: Optional[str] = None
    snowflake_database: Optional[str] = None
    snowflake_schema: Optional[str] = None
    snowflake_role: Optional[str] = None
    snowflake_region: Optional[str] = None
    snowflake_authenticator: Optional[str] = None
    snowflake_private_key_path: Optional[str] = None
    snowflake_query_timeout_seconds: int = 120
    snowflake_connect_retries: int = 2
    snowflake_column_count_concurrency: int = 1

    # Source naming
    warehouse_source_name: str = "Snowflake"

    # Application
    environment: str = "development"
    log_level: str = "INFO"
    debug: bool = False

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.environment == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.environment == "production"

    @property
    def warehouse_configured(self) -> bool:
        """Check if enough Snowflake settings are present to attempt a connection."""
        return bool(self.snowflake_account and self.snowflake_user)

    def table_files(self) -> dict[str, str]:
        """Map logical table names to file names under tables_path."""
        return {
            "assets": self.assets_file,
            "columns": self.columns_file,
            "tags": self.tags_file,
            "asset_tags": self.asset_tags_file,
            "glossary_terms": self.glossary_terms_file,
            "asset_terms": self.asset_terms_file,
            "lineage": self.lineage_file,
            "users": self.users_file,
            "bookmarks": self.bookmarks_file,
        }

    def snowflake_config(self) -> "SnowflakeConfig":
        """Build the opaque connection config handed to the warehouse fetcher."""
        from asset_catalog.parsers.snowflake_config import SnowflakeConfig

        config: dict = {
            "account": self.snowflake_account or "",
            "user": self.snowflake_user or "",
            "password": self.snowflake_password,
            "warehouse": self.snowflake_warehouse or "",
            "database": self.snowflake_database,
            "schema": self.snowflake_schema,
            "role": self.snowflake_role,
            "region": self.snowflake_region,
            "authenticator": self.snowflake_authenticator,
            "private_key_path": self.snowflake_private_key_path,
            "query_timeout_seconds": self.snowflake_query_timeout_seconds,
            "connect_retries": self.snowflake_connect_retries,
            "column_count_concurrency": self.snowflake_column_count_concurrency,
            "source_name": self.warehouse_source_name,
        }
        return SnowflakeConfig.from_dict(config)

    def validate_for_startup(self) -> list[str]:
        """
        Validate configuration for production readiness.

        Returns a list of warnings/errors. Empty list means all validations passed.
        """
        issues: list[str] = []

        if self.is_production and "*" in self.cors_origins:
            issues.append(
                "WARNING: CORS allows all origins (*) in production. "
                "Consider restricting to specific origins."
            )

        if not self.warehouse_configured:
            issues.append(
                "WARNING: Snowflake account/user not configured. "
                "Live warehouse assets will be unavailable."
            )
        elif (self.snowflake_authenticator or "").upper() == "EXTERNALBROWSER":
            issues.append(
                "WARNING: SNOWFLAKE_AUTHENTICATOR=externalbrowser is not supported "
                "for server-side connections. Warehouse requests will fail."
            )

        if self.snowflake_column_count_concurrency < 1:
            issues.append(
                "CRITICAL: SNOWFLAKE_COLUMN_COUNT_CONCURRENCY must be at least 1."
            )

        return issues


class ConfigurationError(Exception):
    """Raised when configuration validation fails."""

    def __init__(self, issues: list[str]):
        self.issues = issues
        message = "Configuration validation failed:\n" + "\n".join(f"  - {i}" for i in issues)
        super().__init__(message)


def validate_config(settings: Settings, strict: bool = False) -> None:
    """
    Validate configuration and log/raise issues.

    Args:
        settings: Settings instance to validate
        strict: If True, raise ConfigurationError on any critical issues

    Raises:
        ConfigurationError: If strict=True and critical issues found
    """
    from asset_catalog.logging_config import get_logger

    logger = get_logger(__name__)

    issues = settings.validate_for_startup()

    critical_issues = [i for i in issues if i.startswith("CRITICAL")]
    warnings = [i for i in issues if i.startswith("WARNING")]

    for warning in warnings:
        logger.warning(warning.replace("WARNING: ", ""))

    for critical in critical_issues:
        logger.error(critical.replace("CRITICAL: ", ""))

    if strict and critical_issues:
        raise ConfigurationError(critical_issues)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
