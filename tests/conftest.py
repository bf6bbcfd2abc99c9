"""Pytest configuration and fixtures."""

import shutil
from collections.abc import AsyncGenerator
from pathlib import Path
from typing import Any, Optional
from unittest.mock import MagicMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from asset_catalog.api.dependencies import get_materializer
from asset_catalog.api.main import app
from asset_catalog.parsers import SnowflakeConfig, TableStore, WarehouseMetadataFetcher
from asset_catalog.services import AssetMaterializer

FIXTURES_DIR = Path(__file__).parent / "fixtures" / "tables"


class FakeCursor:
    """
    Scripted stand-in for a Snowflake cursor.

    ``results`` maps a SQL substring to ``(column_names, rows)``; the first
    matching entry answers ``execute``. ``fail_after`` makes ``fetchmany``
    raise ``fetch_error`` once that many rows have been handed out.
    """

    def __init__(
        self,
        results: Optional[list[tuple[str, list[str], list[tuple]]]] = None,
        execute_error: Optional[Exception] = None,
        fail_after: Optional[int] = None,
        fetch_error: Optional[Exception] = None,
    ):
        self.results = results or []
        self.execute_error = execute_error
        self.fail_after = fail_after
        self.fetch_error = fetch_error or RuntimeError("network failure mid-result")
        self.description: Optional[list[tuple]] = None
        self.executed: list[tuple[str, Any]] = []
        self.closed = False
        self._rows: list[tuple] = []
        self._delivered = 0

    def execute(self, sql: str, params: Any = None, timeout: Optional[int] = None):
        self.executed.append((sql, params))
        if self.execute_error is not None:
            raise self.execute_error
        for fragment, columns, rows in self.results:
            if fragment in sql:
                self.description = [(c,) for c in columns]
                self._rows = list(rows)
                self._delivered = 0
                return self
        self.description = []
        self._rows = []
        return self

    def fetchmany(self, size: int) -> list[tuple]:
        if self.fail_after is not None and self._delivered >= self.fail_after:
            raise self.fetch_error
        if self.fail_after is not None:
            size = min(size, self.fail_after - self._delivered)
        batch, self._rows = self._rows[:size], self._rows[size:]
        self._delivered += len(batch)
        return batch

    def close(self) -> None:
        self.closed = True


def make_connection(cursor: FakeCursor) -> MagicMock:
    """A connection mock that reports itself up and hands out ``cursor``."""
    connection = MagicMock()
    connection.cursor.return_value = cursor
    connection.is_closed.return_value = False
    return connection


@pytest.fixture
def tables_dir(tmp_path: Path) -> Path:
    """A private copy of the fixture tables that tests may modify."""
    target = tmp_path / "tables"
    shutil.copytree(FIXTURES_DIR, target)
    return target


@pytest.fixture
def table_store(tables_dir: Path) -> TableStore:
    return TableStore(tables_dir)


@pytest.fixture
def materializer(table_store: TableStore) -> AssetMaterializer:
    return AssetMaterializer(table_store)


@pytest.fixture
def snowflake_config() -> SnowflakeConfig:
    return SnowflakeConfig(
        account="test_account",
        user="test_user",
        password="test-password",
        warehouse="COMPUTE_WH",
        database="ANALYTICS",
        connect_retries=0,
        connect_retry_delay_seconds=0,
    )


@pytest.fixture
def fake_cursor() -> type[FakeCursor]:
    return FakeCursor


@pytest.fixture
def fetcher_factory(snowflake_config: SnowflakeConfig):
    """Build a fetcher whose connector returns a connection around ``cursor``."""

    def factory(cursor: FakeCursor, config: Optional[SnowflakeConfig] = None):
        connection = make_connection(cursor)
        connector = MagicMock(return_value=connection)
        fetcher = WarehouseMetadataFetcher(config or snowflake_config, connector=connector)
        return fetcher, connector, connection

    return factory


@pytest_asyncio.fixture
async def client(materializer: AssetMaterializer) -> AsyncGenerator[AsyncClient, None]:
    """Create test HTTP client backed by the fixture tables."""
    app.dependency_overrides[get_materializer] = lambda: materializer
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac
    app.dependency_overrides.clear()
