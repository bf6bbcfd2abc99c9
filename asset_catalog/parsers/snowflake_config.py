"""Configuration for the Snowflake metadata fetcher."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

INTERACTIVE_AUTHENTICATORS = {"EXTERNALBROWSER"}

# Warehouse samples never exceed this many rows
MAX_SAMPLE_ROWS = 5


@dataclass
class SnowflakeConfig:
    """Connection and query options for the warehouse source."""

    # Connection (required)
    account: str
    user: str
    warehouse: str = ""
    role: Optional[str] = None
    region: Optional[str] = None

    # Authentication (one required)
    password: Optional[str] = None
    private_key_path: Optional[Path] = None
    authenticator: Optional[str] = None

    # Scope
    database: Optional[str] = None
    schema: Optional[str] = None
    excluded_schemas: list[str] = field(default_factory=lambda: ["INFORMATION_SCHEMA", "PUBLIC"])
    table_types: list[str] = field(default_factory=lambda: ["BASE TABLE", "VIEW"])

    # Limits
    lineage_limit: int = 20
    sample_row_cap: int = MAX_SAMPLE_ROWS
    stream_batch_size: int = 500
    stream_buffer_size: int = 4

    # Performance
    query_timeout_seconds: int = 120
    connect_retries: int = 2
    connect_retry_delay_seconds: float = 1.0
    column_count_concurrency: int = 1

    # Canonical source name stamped on every asset
    source_name: str = "Snowflake"

    @classmethod
    def from_dict(cls, config: dict[str, Any]) -> "SnowflakeConfig":
        """Create config from dictionary."""
        config = dict(config)
        if config.get("private_key_path") and isinstance(config["private_key_path"], str):
            config["private_key_path"] = Path(config["private_key_path"])
        elif "private_key_path" in config and not config["private_key_path"]:
            config["private_key_path"] = None

        for key in ("excluded_schemas", "table_types"):
            if key in config and isinstance(config[key], str):
                config[key] = [v.strip() for v in config[key].split(",") if v.strip()]

        return cls(**config)

    @property
    def is_interactive_auth(self) -> bool:
        """Check if the authenticator needs a browser, which a server cannot open."""
        return (self.authenticator or "").strip().upper() in INTERACTIVE_AUTHENTICATORS

    @property
    def effective_region(self) -> Optional[str]:
        """
        Region to pass to the connector, if any.

        Only used when the account identifier carries no region of its own
        (no ``.``) and the region is not the ``GLOBAL`` placeholder.
        """
        if not self.region or self.region.strip().upper() == "GLOBAL":
            return None
        if "." in self.account:
            return None
        return self.region.strip().lower()

    def validate(self) -> list[str]:
        """Validate configuration and return list of errors."""
        errors = []

        # Required fields
        if not self.account:
            errors.append("account is required")
        if not self.user:
            errors.append("user is required")

        # Authentication
        if self.is_interactive_auth:
            errors.append(
                f"authenticator '{self.authenticator}' requires a browser and is not supported"
            )
        elif not self.password and not self.private_key_path and not self.authenticator:
            errors.append("Either password or private_key_path must be provided")

        if self.private_key_path:
            if not isinstance(self.private_key_path, Path):
                errors.append("private_key_path must be a Path object")
            elif not self.private_key_path.exists():
                errors.append(f"private_key_path does not exist: {self.private_key_path}")

        # Limits
        if self.lineage_limit < 1:
            errors.append("lineage_limit must be at least 1")
        if self.sample_row_cap < 1:
            errors.append("sample_row_cap must be at least 1")
        elif self.sample_row_cap > MAX_SAMPLE_ROWS:
            errors.append(f"sample_row_cap must not exceed {MAX_SAMPLE_ROWS}")
        if self.stream_batch_size < 1:
            errors.append("stream_batch_size must be at least 1")
        if self.stream_buffer_size < 1:
            errors.append("stream_buffer_size must be at least 1")

        # Performance
        if self.query_timeout_seconds < 1:
            errors.append("query_timeout_seconds must be at least 1")
        if self.connect_retries < 0:
            errors.append("connect_retries must not be negative")
        if self.connect_retry_delay_seconds < 0:
            errors.append("connect_retry_delay_seconds must not be negative")
        if self.column_count_concurrency < 1:
            errors.append("column_count_concurrency must be at least 1")

        return errors
