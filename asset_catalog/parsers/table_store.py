"""Loader and cache for the normalized flat-file tables."""

import asyncio
import csv
import time
from pathlib import Path
from typing import Any, Callable, Optional, Union

from asset_catalog.errors import LoadError, ParseError
from asset_catalog.logging_config import get_logger
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

logger = get_logger(__name__)

DEFAULT_TABLE_FILES = {
    "assets": "data_assets.csv",
    "columns": "column_schemas.csv",
    "tags": "tags.csv",
    "asset_tags": "data_asset_tags.csv",
    "glossary_terms": "business_glossary_terms.csv",
    "asset_terms": "data_asset_business_glossary_terms.csv",
    "lineage": "data_asset_lineage_raw.csv",
    "users": "users.csv",
    "bookmarks": "bookmarked_data_assets.csv",
}

UNKNOWN_SOURCE = "Unknown"

RawRow = dict[str, Any]


class _MissingKey(Exception):
    """A row lacks a value it cannot exist without."""


def _require(row: RawRow, c: FieldCoercer, name: str, as_key: bool = True) -> str:
    value = c.key(row.get(name)) if as_key else c.text(row.get(name))
    if value is None:
        raise _MissingKey(name)
    return value


def _parse_asset(row: RawRow, c: FieldCoercer) -> AssetRow:
    asset_id = _require(row, c, "id")
    source = c.text(row.get("source"))
    if source is None:
        c.record("source", f"Missing source, using '{UNKNOWN_SOURCE}'", row.get("source"))
        source = UNKNOWN_SOURCE
    return AssetRow(
        id=asset_id,
        source=source,
        name=c.text(row.get("name")) or asset_id,
        location=c.text(row.get("location")) or "",
        declared_column_count=c.integer(row.get("column_count"), "column_count"),
        sample_record_count=c.integer(row.get("sample_record_count"), "sample_record_count"),
        description=c.text(row.get("description")),
        owner=c.text(row.get("owner")),
        is_sensitive=c.boolean(row.get("is_sensitive"), "is_sensitive"),
        last_modified=c.iso_datetime(row.get("last_modified"), "last_modified"),
        created_at=c.iso_datetime(row.get("created_at"), "created_at"),
        updated_at=c.iso_datetime(row.get("updated_at"), "updated_at"),
        raw_schema_for_ai=c.text(row.get("raw_schema_for_ai")) or "",
        raw_query=c.text(row.get("raw_query")),
        csv_path=c.text(row.get("csv_path")),
        sample_data=c.json_rows(row.get("pg_mocked_sample_data"), "pg_mocked_sample_data"),
    )


def _parse_column(row: RawRow, c: FieldCoercer) -> ColumnRow:
    return ColumnRow(
        data_asset_id=_require(row, c, "data_asset_id"),
        column_name=_require(row, c, "column_name", as_key=False),
        data_type=c.text(row.get("data_type")) or "UNKNOWN",
        is_nullable=c.boolean(row.get("is_nullable"), "is_nullable", default=True),
        description=c.text(row.get("description")),
    )


def _parse_tag(row: RawRow, c: FieldCoercer) -> TagRow:
    return TagRow(id=_require(row, c, "id"), name=_require(row, c, "name", as_key=False))


def _parse_asset_tag(row: RawRow, c: FieldCoercer) -> AssetTagRow:
    return AssetTagRow(
        data_asset_id=_require(row, c, "data_asset_id"),
        tag_id=_require(row, c, "tag_id"),
    )


def _parse_glossary_term(row: RawRow, c: FieldCoercer) -> GlossaryTermRow:
    return GlossaryTermRow(id=_require(row, c, "id"), name=_require(row, c, "name", as_key=False))


def _parse_asset_term(row: RawRow, c: FieldCoercer) -> AssetTermRow:
    return AssetTermRow(
        data_asset_id=_require(row, c, "data_asset_id"),
        term_id=_require(row, c, "term_id"),
    )


def _parse_lineage(row: RawRow, c: FieldCoercer) -> LineageRow:
    return LineageRow(
        referenced_object_id=_require(row, c, "referenced_object_id"),
        referencing_object_id=_require(row, c, "referencing_object_id"),
        referenced_database=c.text(row.get("referenced_database")),
        referenced_schema=c.text(row.get("referenced_schema")),
        referenced_object_name=c.text(row.get("referenced_object_name")),
        referenced_object_domain=c.text(row.get("referenced_object_domain")),
        referencing_database=c.text(row.get("referencing_database")),
        referencing_schema=c.text(row.get("referencing_schema")),
        referencing_object_name=c.text(row.get("referencing_object_name")),
        referencing_object_domain=c.text(row.get("referencing_object_domain")),
        dependency_type=c.text(row.get("dependency_type")),
    )


def _parse_user(row: RawRow, c: FieldCoercer) -> UserRow:
    user_id = _require(row, c, "id")
    return UserRow(
        id=user_id,
        username=c.text(row.get("username")) or user_id,
        email=c.text(row.get("email")),
        created_at=c.iso_datetime(row.get("created_at"), "created_at"),
        updated_at=c.iso_datetime(row.get("updated_at"), "updated_at"),
    )


def _parse_bookmark(row: RawRow, c: FieldCoercer) -> BookmarkRow:
    return BookmarkRow(
        user_id=_require(row, c, "user_id"),
        data_asset_id=_require(row, c, "data_asset_id"),
        bookmarked_at=c.iso_datetime(row.get("bookmarked_at"), "bookmarked_at"),
    )


ROW_PARSERS: dict[str, Callable[[RawRow, FieldCoercer], Any]] = {
    "assets": _parse_asset,
    "columns": _parse_column,
    "tags": _parse_tag,
    "asset_tags": _parse_asset_tag,
    "glossary_terms": _parse_glossary_term,
    "asset_terms": _parse_asset_term,
    "lineage": _parse_lineage,
    "users": _parse_user,
    "bookmarks": _parse_bookmark,
}


def read_table(path: Path) -> list[RawRow]:
    """
    Read a header-first CSV file into dicts keyed by lower-cased header names.

    Raises:
        OSError, UnicodeDecodeError, csv.Error: if the file cannot be read
    """
    with open(path, newline="", encoding="utf-8-sig") as f:
        reader = csv.DictReader(f, restkey="__extra__")
        if reader.fieldnames is None:
            return []
        rows = []
        for raw in reader:
            if not any(v for k, v in raw.items() if k != "__extra__"):
                continue
            rows.append(
                {(k.strip().lower() if k != "__extra__" else k): v for k, v in raw.items() if k is not None}
            )
        return rows


class TableStore:
    """
    Loads the nine flat-file tables once and caches the result.

    Concurrent ``load()`` calls during an in-flight load wait for that load
    instead of reading the files again. The cached ``TableSet`` is swapped in
    whole; readers see either the previous value or the complete new one.
    """

    def __init__(
        self,
        tables_path: Union[str, Path],
        table_files: Optional[dict[str, str]] = None,
    ) -> None:
        self.tables_path = Path(tables_path)
        self.table_files = {**DEFAULT_TABLE_FILES, **(table_files or {})}
        self._cache: Optional[TableSet] = None
        self._generation = 0
        self._lock = asyncio.Lock()
        self.load_count = 0

    @property
    def is_loaded(self) -> bool:
        return self._cache is not None

    async def load(self) -> TableSet:
        """Return the cached tables, reading them from disk on first use."""
        cached = self._cache
        if cached is not None:
            return cached

        async with self._lock:
            while self._cache is None:
                generation = self._generation
                table_set = await asyncio.to_thread(self._read_all)
                self.load_count += 1
                if generation == self._generation:
                    self._cache = table_set
                else:
                    logger.info("Cache cleared during load, reading tables again")
            return self._cache

    def clear_cache(self) -> None:
        """Force the next ``load()`` to re-read the files."""
        self._generation += 1
        self._cache = None
        logger.info("Flat-file table cache cleared", tables_path=str(self.tables_path))

    def _read_all(self) -> TableSet:
        start = time.time()
        table_set = TableSet()
        for table in TABLE_NAMES:
            rows = self._load_table(table, table_set.errors)
            setattr(table_set, table, rows)

        logger.info(
            "Flat-file tables loaded",
            tables_path=str(self.tables_path),
            duration_seconds=round(time.time() - start, 3),
            **table_set.summary(),
        )
        return table_set

    def _load_table(self, table: str, errors: list) -> list[Any]:
        path = self.tables_path / self.table_files[table]
        try:
            raw_rows = read_table(path)
        except FileNotFoundError:
            errors.append(
                LoadError(f"Table file not found: {path.name}", location=table, context={"path": str(path)})
            )
            logger.warning("Table file not found, treating as empty", table=table, path=str(path))
            return []
        except (OSError, UnicodeDecodeError, csv.Error) as e:
            errors.append(
                LoadError(
                    f"Failed to read table {table}",
                    detail=str(e),
                    location=table,
                    context={"path": str(path)},
                )
            )
            logger.error("Failed to read table, treating as empty", table=table, path=str(path), error=str(e))
            return []

        parser = ROW_PARSERS[table]
        coercer = FieldCoercer(table, errors)
        parsed = []
        for index, raw in enumerate(raw_rows, start=1):
            coercer.at_row(index)
            if raw.get("__extra__"):
                coercer.record("__row__", "Row has more fields than the header", raw["__extra__"])
            elif any(v is None for k, v in raw.items() if k != "__extra__"):
                coercer.record("__row__", "Row has fewer fields than the header", None)
            try:
                parsed.append(parser(raw, coercer))
            except _MissingKey as e:
                errors.append(
                    ParseError(
                        f"Row skipped: missing required field '{e}'",
                        location=f"{table}:{index}",
                        context={"table": table, "row": index, "field": str(e)},
                    )
                )
                logger.warning("Skipped row without required field", table=table, row=index, field=str(e))
        return parsed
