"""SQL query templates for Snowflake catalog queries.

Identifiers are substituted with ``quote_identifier``; values are bound with
the connector's default ``pyformat`` parameters.
"""

# Tables and views of one database, excluding meta schemas
QUERY_TABLES = """
SELECT
    t.TABLE_CATALOG,
    t.TABLE_SCHEMA,
    t.TABLE_NAME,
    t.TABLE_TYPE,
    t.COMMENT AS description,
    t.CREATED,
    t.LAST_ALTERED AS last_modified,
    t.ROW_COUNT,
    t.BYTES,
    t.TABLE_OWNER AS owner
FROM {database}.INFORMATION_SCHEMA.TABLES t
WHERE t.TABLE_CATALOG = %(database)s
  {schema_filter}
  {type_filter}
ORDER BY t.TABLE_SCHEMA, t.TABLE_NAME
"""

# Number of columns of one table
QUERY_COLUMN_COUNT = """
SELECT COUNT(*) AS column_count
FROM {database}.INFORMATION_SCHEMA.COLUMNS
WHERE TABLE_CATALOG = %(database)s
  AND TABLE_SCHEMA = %(schema)s
  AND TABLE_NAME = %(table)s
"""

# Descriptive metadata of one table
QUERY_TABLE_DETAIL = """
SELECT
    t.TABLE_TYPE,
    t.COMMENT AS description,
    t.CREATED,
    t.LAST_ALTERED AS last_modified,
    t.ROW_COUNT,
    t.BYTES,
    t.TABLE_OWNER AS owner
FROM {database}.INFORMATION_SCHEMA.TABLES t
WHERE t.TABLE_CATALOG = %(database)s
  AND t.TABLE_SCHEMA = %(schema)s
  AND t.TABLE_NAME = %(table)s
"""

# Columns of one table in ordinal order
QUERY_COLUMNS = """
SELECT
    COLUMN_NAME,
    DATA_TYPE,
    IS_NULLABLE,
    COMMENT AS description
FROM {database}.INFORMATION_SCHEMA.COLUMNS
WHERE TABLE_CATALOG = %(database)s
  AND TABLE_SCHEMA = %(schema)s
  AND TABLE_NAME = %(table)s
ORDER BY ORDINAL_POSITION
"""

# Direct dependencies to and from one object, both directions in one pass
QUERY_LINEAGE = """
SELECT
    REFERENCED_DATABASE,
    REFERENCED_SCHEMA_NAME AS referenced_schema,
    REFERENCED_OBJECT_NAME,
    REFERENCED_OBJECT_DOMAIN,
    REFERENCING_DATABASE,
    REFERENCING_SCHEMA_NAME AS referencing_schema,
    REFERENCING_OBJECT_NAME,
    REFERENCING_OBJECT_DOMAIN,
    DEPENDENCY_TYPE
FROM SNOWFLAKE.ACCOUNT_USAGE.OBJECT_DEPENDENCIES
WHERE (
        REFERENCED_DATABASE = %(database)s
        AND REFERENCED_SCHEMA_NAME = %(schema)s
        AND REFERENCED_OBJECT_NAME = %(table)s
        AND REFERENCED_OBJECT_DOMAIN IN ('TABLE', 'VIEW')
    ) OR (
        REFERENCING_DATABASE = %(database)s
        AND REFERENCING_SCHEMA_NAME = %(schema)s
        AND REFERENCING_OBJECT_NAME = %(table)s
        AND REFERENCING_OBJECT_DOMAIN IN ('TABLE', 'VIEW')
    )
LIMIT {limit}
"""

# Bounded sample of rows
QUERY_SAMPLE = """
SELECT * FROM {fqn} LIMIT {limit}
"""

# Test connection
QUERY_TEST_CONNECTION = """
SELECT CURRENT_TIMESTAMP() AS current_time, CURRENT_ROLE() AS current_role, CURRENT_WAREHOUSE() AS current_warehouse
"""


def quote_identifier(name: str) -> str:
    """Quote a Snowflake identifier, doubling embedded quotes."""
    return '"' + str(name).replace('"', '""') + '"'


def quote_literal(value: str) -> str:
    """Quote a string literal for IN-lists built from configuration."""
    return "'" + str(value).replace("'", "''") + "'"


def qualified_name(database: str, schema: str, table: str) -> str:
    """Fully-qualified, quoted ``"db"."schema"."table"`` name."""
    return ".".join(quote_identifier(part) for part in (database, schema, table))


def in_filter(column: str, values: list[str], negate: bool = False) -> str:
    """``AND column [NOT] IN (...)`` clause, or empty when there are no values."""
    if not values:
        return ""
    op = "NOT IN" if negate else "IN"
    return f"AND {column} {op} ({', '.join(quote_literal(v) for v in values)})"
