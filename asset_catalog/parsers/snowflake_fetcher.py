"""Snowflake metadata fetcher for INFORMATION_SCHEMA and ACCOUNT_USAGE."""

import asyncio
import logging
import time
from contextlib import asynccontextmanager
from enum import Enum
from pathlib import Path
from typing import Any, AsyncIterator, Callable, Optional

import snowflake.connector
from cryptography.hazmat.backends import default_backend
from cryptography.hazmat.primitives import serialization

from asset_catalog.errors import (
    CatalogError,
    ConnectError,
    NotFoundError,
    QueryError,
    UnsupportedAuthError,
)
from asset_catalog.models import (
    ColumnSchema,
    ConnectionTestResult,
    DataAsset,
    LineageEdge,
    render_schema_for_ai,
)
from asset_catalog.parsers import snowflake_queries
from asset_catalog.parsers.coercion import FieldCoercer
from asset_catalog.parsers.snowflake_config import SnowflakeConfig
from asset_catalog.parsers.snowflake_queries import qualified_name, quote_identifier
from asset_catalog.parsers.snowflake_stream import collect_rows
from asset_catalog.utils.retry import (
    is_permission_error,
    is_retryable_snowflake_error,
    retry_with_exponential_backoff,
)

logger = logging.getLogger(__name__)

RAW_QUERY_ROW_LIMIT = 100


class ConnectionState(str, Enum):
    """Lifecycle of one scoped warehouse connection."""

    IDLE = "idle"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    QUERYING = "querying"
    STREAMING = "streaming"
    DONE = "done"
    STREAM_ERROR = "stream_error"
    CLOSING = "closing"
    CLOSED = "closed"


def _format_connection_error(error: Exception) -> str:
    """Format connection error with helpful context."""
    error_str = str(error)

    if "account" in error_str.lower() and "not found" in error_str.lower():
        return f"{error_str}. Check that the account identifier is correct (format: orgname-accountname)."
    elif "authentication" in error_str.lower() or "password" in error_str.lower():
        return f"{error_str}. Verify credentials and check if MFA is required."
    elif "warehouse" in error_str.lower():
        return f"{error_str}. Ensure the warehouse exists and is accessible."
    elif "role" in error_str.lower():
        return f"{error_str}. Verify the role exists and the user has been granted it."
    else:
        return error_str


def _load_private_key(key_path: Path) -> bytes:
    """Load private key for key-pair authentication."""
    with open(key_path, "rb") as key_file:
        private_key = serialization.load_pem_private_key(
            key_file.read(), password=None, backend=default_backend()
        )

    # Serialize to DER format for Snowflake connector
    return private_key.private_bytes(
        encoding=serialization.Encoding.DER,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    )


def build_connection_params(config: SnowflakeConfig) -> dict[str, Any]:
    """
    Translate the config into ``snowflake.connector.connect`` keyword arguments.

    Raises:
        ConnectError: if the private key cannot be loaded
    """
    account = config.account
    region = config.effective_region
    if region:
        account = f"{account}.{region}"

    params: dict[str, Any] = {"account": account, "user": config.user}
    for key in ("warehouse", "role", "database", "schema"):
        value = getattr(config, key)
        if value:
            params[key] = value

    if config.private_key_path:
        try:
            params["private_key"] = _load_private_key(config.private_key_path)
        except (OSError, ValueError, TypeError) as e:
            raise ConnectError(
                "Failed to load Snowflake private key",
                detail=str(e),
                context={"private_key_path": str(config.private_key_path)},
            ) from e
        logger.info("Using key-pair authentication")
    elif config.password:
        params["password"] = config.password
        logger.info("Using password authentication")

    if config.authenticator:
        params["authenticator"] = config.authenticator

    return params


def _close_quietly(connection: Any) -> None:
    try:
        connection.close()
    except Exception as e:
        logger.warning(f"Error closing Snowflake connection: {e}")


class SnowflakeSession:
    """
    One scoped warehouse connection and its state.

    Created and owned by ``WarehouseMetadataFetcher.connect()``; callers only
    run queries through it.
    """

    def __init__(self, config: SnowflakeConfig, connect_fn: Callable[..., Any]):
        self.config = config
        self._connect_fn = connect_fn
        self.connection: Optional[Any] = None
        self.state = ConnectionState.IDLE
        self.history: list[ConnectionState] = [ConnectionState.IDLE]
        self._late_closes: set[asyncio.Future[None]] = set()

    def _transition(self, state: ConnectionState) -> None:
        self.state = state
        self.history.append(state)

    async def open(self) -> None:
        """
        Establish the connection, retrying transient failures.

        Raises:
            ConnectError: if the connection could not be established
        """
        self._transition(ConnectionState.CONNECTING)
        params = build_connection_params(self.config)

        connect_with_retry = retry_with_exponential_backoff(
            max_retries=self.config.connect_retries,
            base_delay=self.config.connect_retry_delay_seconds,
            should_retry=is_retryable_snowflake_error,
        )(self._open_once)

        logger.info(f"Connecting to Snowflake account: {params['account']}")
        try:
            self.connection = await connect_with_retry(params)
        except Exception as e:
            error_message = _format_connection_error(e)
            logger.error(f"Failed to connect to Snowflake: {error_message}")
            if is_permission_error(e):
                error_message = (
                    f"Permission denied: {error_message}. "
                    f"Ensure the user has appropriate roles and privileges."
                )
            raise ConnectError.from_driver_error(
                e,
                f"Failed to connect to Snowflake: {error_message}",
                context={"account": params["account"], "user": self.config.user},
            ) from e

        self._transition(ConnectionState.CONNECTED)
        logger.info("Snowflake connection established successfully")

    async def _open_once(self, params: dict[str, Any]) -> Any:
        attempt = asyncio.ensure_future(asyncio.to_thread(self._connect_fn, **params))
        try:
            return await asyncio.shield(attempt)
        except asyncio.CancelledError:
            # The worker thread cannot be interrupted; close whatever it returns.
            attempt.add_done_callback(self._close_late_connection)
            raise

    def _close_late_connection(self, attempt: "asyncio.Future[Any]") -> None:
        if attempt.cancelled() or attempt.exception() is not None:
            return
        logger.warning("Closing Snowflake connection that completed after the caller stopped waiting")
        closing = asyncio.ensure_future(asyncio.to_thread(_close_quietly, attempt.result()))
        self._late_closes.add(closing)
        closing.add_done_callback(self._late_closes.discard)

    async def execute(
        self,
        sql: str,
        params: Optional[dict[str, Any]] = None,
        lowercase_keys: bool = True,
    ) -> list[dict[str, Any]]:
        """
        Run one statement and stream its rows back as dicts.

        Raises:
            QueryError: if the warehouse rejected the statement
            QueryTimeoutError: if the statement timeout fired
            StreamError: if row delivery failed part-way
        """
        if self.connection is None:
            raise ConnectError("Snowflake connection is not open")

        self._transition(ConnectionState.QUERYING)
        cursor = self.connection.cursor()
        try:
            try:
                await asyncio.to_thread(
                    cursor.execute, sql, params, timeout=self.config.query_timeout_seconds
                )
            except Exception as e:
                logger.error(f"Snowflake query failed: {e}")
                raise QueryError.from_driver_error(e) from e

            description = cursor.description or []
            columns = [desc[0].lower() if lowercase_keys else desc[0] for desc in description]

            self._transition(ConnectionState.STREAMING)
            batch_size = self.config.stream_batch_size
            try:
                rows = await collect_rows(
                    lambda: cursor.fetchmany(batch_size),
                    buffer_size=self.config.stream_buffer_size,
                )
            except CatalogError:
                self._transition(ConnectionState.STREAM_ERROR)
                raise
            self._transition(ConnectionState.DONE)

            return [dict(zip(columns, row)) for row in rows]
        finally:
            cursor.close()

    def abandon(self) -> None:
        """Settle a session whose connection never came up. Nothing is closed."""
        self._transition(ConnectionState.CLOSING)
        self.connection = None
        self._transition(ConnectionState.CLOSED)

    async def close(self) -> None:
        """Close the connection if it reports itself up."""
        self._transition(ConnectionState.CLOSING)
        connection, self.connection = self.connection, None
        if connection is not None and not connection.is_closed():
            try:
                await asyncio.to_thread(connection.close)
                logger.info("Snowflake connection closed")
            except Exception as e:
                logger.warning(f"Error closing Snowflake connection: {e}")
        self._transition(ConnectionState.CLOSED)


class WarehouseMetadataFetcher:
    """Reads live catalog metadata, lineage and samples from Snowflake."""

    def __init__(
        self,
        config: SnowflakeConfig,
        connector: Optional[Callable[..., Any]] = None,
    ) -> None:
        self.config = config
        self._connector = connector
        self.last_session: Optional[SnowflakeSession] = None

    @property
    def source_name(self) -> str:
        return self.config.source_name

    @asynccontextmanager
    async def connect(self) -> AsyncIterator[SnowflakeSession]:
        """
        Open a scoped connection that is always released.

        Raises:
            UnsupportedAuthError: for browser-based authenticators, before any connect attempt
            ConnectError: if the config is invalid or the warehouse is unreachable
        """
        if self.config.is_interactive_auth:
            raise UnsupportedAuthError(
                f"Authenticator '{self.config.authenticator}' opens a browser and cannot be "
                "used by a server-side connection",
                detail="Use password or key-pair authentication instead.",
                context={"authenticator": self.config.authenticator},
            )

        validation_errors = self.config.validate()
        if validation_errors:
            raise ConnectError(
                "Invalid Snowflake configuration",
                detail="; ".join(validation_errors),
                context={"errors": validation_errors},
            )

        session = SnowflakeSession(self.config, self._connector or snowflake.connector.connect)
        self.last_session = session
        try:
            await session.open()
        except BaseException:
            session.abandon()
            raise

        try:
            yield session
        finally:
            await session.close()

    async def list_assets(self, database: Optional[str] = None) -> list[DataAsset]:
        """
        List tables and views of one database as catalog assets.

        ``columnCount`` comes from a per-table count query; ``schema`` stays
        empty on this path.
        """
        database = database or self.config.database
        if not database:
            raise ConnectError("Snowflake database is not configured")

        start = time.time()
        schema_filter = snowflake_queries.in_filter(
            "t.TABLE_SCHEMA", self.config.excluded_schemas, negate=True
        )
        if self.config.schema:
            schema_filter += " " + snowflake_queries.in_filter("t.TABLE_SCHEMA", [self.config.schema])
        query = snowflake_queries.QUERY_TABLES.format(
            database=quote_identifier(database),
            schema_filter=schema_filter,
            type_filter=snowflake_queries.in_filter("t.TABLE_TYPE", self.config.table_types),
        )

        async with self.connect() as session:
            tables = await session.execute(query, {"database": database})
            counts = await self._column_counts(session, tables)

        coercer = FieldCoercer("snowflake")
        assets = [
            self._build_list_asset(row, count, coercer.at_row(index))
            for index, (row, count) in enumerate(zip(tables, counts), start=1)
        ]
        logger.info(
            f"Listed {len(assets)} Snowflake assets from {database} in {time.time() - start:.2f}s"
        )
        return assets

    async def _column_counts(
        self, session: SnowflakeSession, tables: list[dict[str, Any]]
    ) -> list[int]:
        """One count query per table, at most ``column_count_concurrency`` in flight."""
        semaphore = asyncio.Semaphore(self.config.column_count_concurrency)
        coercer = FieldCoercer("snowflake")

        async def count(row: dict[str, Any]) -> int:
            database, schema, table = row["table_catalog"], row["table_schema"], row["table_name"]
            query = snowflake_queries.QUERY_COLUMN_COUNT.format(database=quote_identifier(database))
            async with semaphore:
                result = await session.execute(
                    query, {"database": database, "schema": schema, "table": table}
                )
            if not result:
                return 0
            return coercer.integer(result[0].get("column_count"), "column_count", default=0) or 0

        try:
            async with asyncio.TaskGroup() as group:
                tasks = [group.create_task(count(row)) for row in tables]
        except* CatalogError as failures:
            # Siblings are cancelled and settled before the connection is released
            raise failures.exceptions[0] from None
        return [task.result() for task in tasks]

    def _build_list_asset(
        self, row: dict[str, Any], column_count: int, coercer: FieldCoercer
    ) -> DataAsset:
        database, schema, table = row["table_catalog"], row["table_schema"], row["table_name"]
        fqn = f"{database}.{schema}.{table}"
        last_modified = coercer.iso_datetime(row.get("last_modified"), "last_modified")
        return DataAsset(
            id=fqn,
            source=self.source_name,
            name=table,
            location=fqn,
            column_count=column_count,
            sample_record_count=coercer.integer(row.get("row_count"), "row_count"),
            description=coercer.text(row.get("description")),
            owner=coercer.text(row.get("owner")),
            is_sensitive=False,
            last_modified=last_modified,
            created_at=coercer.iso_datetime(row.get("created"), "created"),
            updated_at=last_modified,
            raw_schema_for_ai="",
            raw_query=self._raw_query(database, schema, table),
        )

    async def get_asset_detail(self, database: str, schema: str, table: str) -> DataAsset:
        """
        Full record for one table, including its ordered column schema.

        Raises:
            NotFoundError: if the table does not exist or is not visible to the role
        """
        fqn = f"{database}.{schema}.{table}"
        bind = {"database": database, "schema": schema, "table": table}
        db_ident = quote_identifier(database)

        async with self.connect() as session:
            details = await session.execute(
                snowflake_queries.QUERY_TABLE_DETAIL.format(database=db_ident), bind
            )
            if not details:
                raise NotFoundError("Asset", fqn)
            column_rows = await session.execute(
                snowflake_queries.QUERY_COLUMNS.format(database=db_ident), bind
            )

        coercer = FieldCoercer("snowflake")
        detail = details[0]
        columns = [
            ColumnSchema(
                column_name=str(c["column_name"]),
                data_type=coercer.text(c.get("data_type")) or "UNKNOWN",
                is_nullable=str(c.get("is_nullable") or "").upper() == "YES",
                description=coercer.text(c.get("description")),
            )
            for c in column_rows
        ]
        last_modified = coercer.iso_datetime(detail.get("last_modified"), "last_modified")

        return DataAsset(
            id=fqn,
            source=self.source_name,
            name=table,
            location=fqn,
            column_count=len(columns),
            sample_record_count=coercer.integer(detail.get("row_count"), "row_count"),
            description=coercer.text(detail.get("description")),
            owner=coercer.text(detail.get("owner")),
            is_sensitive=False,
            last_modified=last_modified,
            created_at=coercer.iso_datetime(detail.get("created"), "created"),
            updated_at=last_modified,
            columns=columns,
            raw_schema_for_ai=render_schema_for_ai(columns),
            raw_query=self._raw_query(database, schema, table),
        )

    async def get_lineage(self, database: str, schema: str, table: str) -> list[LineageEdge]:
        """Direct upstream and downstream dependencies of one object, de-duplicated."""
        query = snowflake_queries.QUERY_LINEAGE.format(limit=int(self.config.lineage_limit))
        bind = {"database": database, "schema": schema, "table": table}

        async with self.connect() as session:
            try:
                rows = await session.execute(query, bind)
            except QueryError as e:
                if is_permission_error(e) or "does not exist or not authorized" in (e.detail or ""):
                    e.context.setdefault(
                        "hint",
                        "Access to SNOWFLAKE.ACCOUNT_USAGE.OBJECT_DEPENDENCIES might be missing",
                    )
                raise

        edges: list[LineageEdge] = []
        seen: set[tuple[str, str, Optional[str]]] = set()
        for row in rows:
            edge = LineageEdge(
                referenced_object_id=self._object_id(row, "referenced"),
                referencing_object_id=self._object_id(row, "referencing"),
                referenced_domain=row.get("referenced_object_domain"),
                referencing_domain=row.get("referencing_object_domain"),
                dependency_type=row.get("dependency_type"),
                referenced_database=row.get("referenced_database"),
                referenced_schema=row.get("referenced_schema"),
                referenced_object_name=row.get("referenced_object_name"),
                referencing_database=row.get("referencing_database"),
                referencing_schema=row.get("referencing_schema"),
                referencing_object_name=row.get("referencing_object_name"),
            )
            if edge.edge_key() in seen:
                continue
            seen.add(edge.edge_key())
            edges.append(edge)
        return edges

    async def get_sample(
        self, database: str, schema: str, table: str, limit: int = 5
    ) -> list[dict[str, Any]]:
        """Up to ``sample_row_cap`` rows, JSON-safe, column names as the warehouse reports them."""
        limit = max(1, min(int(limit), self.config.sample_row_cap))
        query = snowflake_queries.QUERY_SAMPLE.format(
            fqn=qualified_name(database, schema, table), limit=limit
        )

        async with self.connect() as session:
            rows = await session.execute(query, lowercase_keys=False)

        coercer = FieldCoercer("snowflake")
        return [coercer.json_row(row) for row in rows[:limit]]

    async def test_connection(self) -> ConnectionTestResult:
        """Probe the warehouse with a trivial query. Never raises for warehouse failures."""
        try:
            async with self.connect() as session:
                rows = await session.execute(snowflake_queries.QUERY_TEST_CONNECTION)
        except CatalogError as e:
            logger.warning(f"Snowflake connection test failed: {e.message}")
            return ConnectionTestResult(
                success=False,
                message=e.message,
                details=e.detail,
                error_kind=e.kind.value,
            )

        coercer = FieldCoercer("snowflake")
        data = coercer.json_row(rows[0]) if rows else {}
        return ConnectionTestResult(
            success=True,
            message=f"Successfully connected to Snowflake account {self.config.account}",
            details=f"Query returned {len(rows)} row(s)",
            data=data,
        )

    @staticmethod
    def _object_id(row: dict[str, Any], side: str) -> str:
        return ".".join(
            str(row.get(f"{side}_{part}") or "")
            for part in ("database", "schema", "object_name")
        )

    @staticmethod
    def _raw_query(database: str, schema: str, table: str) -> str:
        return f"SELECT * FROM {qualified_name(database, schema, table)} LIMIT {RAW_QUERY_ROW_LIMIT};"


def split_asset_id(asset_id: str) -> Optional[tuple[str, str, str]]:
    """Split a ``database.schema.table`` id, or return None if it is not one."""
    parts = asset_id.split(".")
    if len(parts) != 3 or not all(p.strip() for p in parts):
        return None
    return parts[0], parts[1], parts[2]
