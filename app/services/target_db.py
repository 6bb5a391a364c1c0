"""
Short-lived access to caller-specified PostgreSQL targets.

Each operation builds its own engine capped at one connection, runs in
autocommit and disposes the engine afterwards. Nothing is pooled across requests.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import date, datetime, time
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import URL, Connection, Engine
from sqlalchemy.exc import DBAPIError, OperationalError

from app.schemas.connection import ConnectionDescriptor
from app.schemas.sql import ColumnInfo, FieldInfo, QueryResult, TableData, WalLevelStatus

logger = logging.getLogger(__name__)

DEFAULT_CONNECT_TIMEOUT_SEC = 10
TABLE_NAME_UNSAFE = re.compile(r"[^a-zA-Z0-9_]")

LIST_TABLES_SQL = """
SELECT table_name
FROM information_schema.tables
WHERE table_schema = 'public' AND table_type = 'BASE TABLE'
ORDER BY table_name
"""

# format_type keeps declared types (varchar(40), text[], enums) that
# information_schema reports as "ARRAY" or "USER-DEFINED".
TABLE_COLUMNS_SQL = """
SELECT a.attname AS column_name,
       pg_catalog.format_type(a.atttypid, a.atttypmod) AS data_type,
       CASE WHEN a.attnotnull THEN 'NO' ELSE 'YES' END AS is_nullable,
       pg_catalog.pg_get_expr(d.adbin, d.adrelid) AS column_default
FROM pg_catalog.pg_attribute a
JOIN pg_catalog.pg_class c ON c.oid = a.attrelid
JOIN pg_catalog.pg_namespace n ON n.oid = c.relnamespace
LEFT JOIN pg_catalog.pg_attrdef d ON d.adrelid = a.attrelid AND d.adnum = a.attnum
WHERE n.nspname = 'public' AND c.relname = :table_name AND a.attnum > 0 AND NOT a.attisdropped
ORDER BY a.attnum
"""

WAL_RESTART_NOTE = (
    "wal_level changed to logical. Restart the database for the change to take effect."
)


class TargetDatabaseError(Exception):
    """Connection (502) or statement (400) failure against a target database."""

    def __init__(self, message: str, status_code: int = 400) -> None:
        self.message = message
        self.status_code = status_code
        super().__init__(message)


def driver_message(exc: DBAPIError) -> str:
    """Driver's own error text without SQLAlchemy's statement dump."""
    return str(exc.orig or exc).strip()


def build_engine(
    conn: ConnectionDescriptor,
    connect_timeout: int = DEFAULT_CONNECT_TIMEOUT_SEC,
    sslmode: str | None = None,
) -> Engine:
    url = URL.create(
        "postgresql+psycopg2",
        username=conn.user,
        password=conn.password or None,
        host=conn.host,
        port=conn.port,
        database=conn.database,
    )
    return create_engine(
        url,
        pool_size=1,
        max_overflow=0,
        connect_args={
            "connect_timeout": connect_timeout,
            "sslmode": sslmode or ("disable" if conn.is_local else "prefer"),
        },
    )


@contextmanager
def target_connection(
    conn: ConnectionDescriptor,
    connect_timeout: int = DEFAULT_CONNECT_TIMEOUT_SEC,
    sslmode: str | None = None,
) -> Iterator[Connection]:
    """
    Open one autocommit connection; statement errors raised inside the block
    become TargetDatabaseError(400), connection failures TargetDatabaseError(502).
    """
    engine = build_engine(conn, connect_timeout, sslmode)
    try:
        try:
            connection = engine.connect().execution_options(isolation_level="AUTOCOMMIT")
        except OperationalError as e:
            logger.warning(
                "Target database connection failed",
                extra={"host": conn.host, "port": conn.port, "database": conn.database},
            )
            raise TargetDatabaseError(f"Could not connect to database: {driver_message(e)}", 502) from e
        try:
            yield connection
        except DBAPIError as e:
            raise TargetDatabaseError(driver_message(e), 400) from e
        finally:
            connection.close()
    finally:
        engine.dispose()


def to_jsonable(value: Any) -> Any:
    """Driver values that the JSON encoder cannot take as-is become strings."""
    if isinstance(value, (bytes, bytearray, memoryview)):
        return "\\x" + bytes(value).hex()
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    if isinstance(value, (Decimal, UUID)):
        return str(value)
    return value


def _rows(result: Any) -> list[dict[str, Any]]:
    return [{k: to_jsonable(v) for k, v in row._mapping.items()} for row in result]


def run_sql(connection: Connection, sql: str) -> QueryResult:
    """Execute raw SQL text (possibly several statements); the last statement's result is returned."""
    captured: dict[str, Any] = {}

    # Results without rows close their cursor before exec_driver_sql returns,
    # so the command tag and column metadata are read while it is still open.
    def capture(conn, cursor, statement, parameters, context, executemany) -> None:
        captured["status"] = getattr(cursor, "statusmessage", None) or ""
        captured["description"] = cursor.description

    event.listen(connection, "after_cursor_execute", capture)
    try:
        result = connection.exec_driver_sql(sql, execution_options={"no_parameters": True})
    finally:
        event.remove(connection, "after_cursor_execute", capture)
    status = captured.get("status", "")
    command = status.split(" ", 1)[0] if status else ""
    if result.returns_rows:
        fields = [FieldInfo(name=d[0], type_code=d[1]) for d in (captured.get("description") or [])]
        rows = _rows(result)
        return QueryResult(rows=rows, row_count=len(rows), fields=fields, command=command)
    return QueryResult(rows=[], row_count=max(result.rowcount, 0), fields=[], command=command)


def execute_query(
    conn: ConnectionDescriptor,
    sql: str,
    connect_timeout: int = DEFAULT_CONNECT_TIMEOUT_SEC,
) -> QueryResult:
    with target_connection(conn, connect_timeout) as connection:
        result = run_sql(connection, sql)
    logger.info(
        "Query executed",
        extra={"host": conn.host, "database": conn.database, "command": result.command, "row_count": result.row_count},
    )
    return result


def fetch_tables(connection: Connection) -> list[str]:
    return [row[0] for row in connection.execute(text(LIST_TABLES_SQL))]


def fetch_columns(connection: Connection, table_name: str) -> list[dict[str, Any]]:
    result = connection.execute(text(TABLE_COLUMNS_SQL), {"table_name": table_name})
    return [dict(row._mapping) for row in result]


def list_tables(conn: ConnectionDescriptor, connect_timeout: int = DEFAULT_CONNECT_TIMEOUT_SEC) -> list[str]:
    """Public-schema base tables, alphabetical."""
    with target_connection(conn, connect_timeout) as connection:
        return fetch_tables(connection)


def get_table_columns(
    conn: ConnectionDescriptor,
    table_name: str,
    connect_timeout: int = DEFAULT_CONNECT_TIMEOUT_SEC,
) -> list[ColumnInfo]:
    with target_connection(conn, connect_timeout) as connection:
        columns = fetch_columns(connection, table_name)
    return [
        ColumnInfo(name=c["column_name"], type=c["data_type"], nullable=c["is_nullable"] == "YES")
        for c in columns
    ]


def sanitize_table_name(table_name: str) -> str:
    safe = TABLE_NAME_UNSAFE.sub("", table_name or "")
    if not safe:
        raise TargetDatabaseError("Invalid table name", 400)
    return safe


def count_rows(connection: Connection, table_name: str) -> int:
    safe = sanitize_table_name(table_name)
    return int(connection.execute(text(f'SELECT COUNT(*) FROM "{safe}"')).scalar_one())


def count_table_rows(
    conn: ConnectionDescriptor,
    table_name: str,
    connect_timeout: int = DEFAULT_CONNECT_TIMEOUT_SEC,
) -> int:
    with target_connection(conn, connect_timeout) as connection:
        return count_rows(connection, table_name)


def get_table_data(
    conn: ConnectionDescriptor,
    table_name: str,
    limit: int = 50,
    offset: int = 0,
    connect_timeout: int = DEFAULT_CONNECT_TIMEOUT_SEC,
) -> TableData:
    """One page of rows plus the total count and column metadata."""
    safe = sanitize_table_name(table_name)
    with target_connection(conn, connect_timeout) as connection:
        result = connection.execute(
            text(f'SELECT * FROM "{safe}" LIMIT :limit OFFSET :offset'),
            {"limit": limit, "offset": offset},
        )
        rows = _rows(result)
        total = count_rows(connection, safe)
        columns = fetch_columns(connection, safe)
    return TableData(
        rows=rows,
        total_count=total,
        columns=[
            ColumnInfo(name=c["column_name"], type=c["data_type"], nullable=c["is_nullable"] == "YES")
            for c in columns
        ],
    )


def check_wal_level(conn: ConnectionDescriptor, connect_timeout: int = DEFAULT_CONNECT_TIMEOUT_SEC) -> WalLevelStatus:
    """Realtime change feeds need wal_level=logical."""
    with target_connection(conn, connect_timeout) as connection:
        level = str(connection.exec_driver_sql("SHOW wal_level").scalar_one())
    return WalLevelStatus(wal_level=level, is_realtime_ready=level == "logical")


def enable_logical_wal(conn: ConnectionDescriptor, connect_timeout: int = DEFAULT_CONNECT_TIMEOUT_SEC) -> str:
    """ALTER SYSTEM needs superuser; the new level applies after a restart."""
    with target_connection(conn, connect_timeout) as connection:
        connection.exec_driver_sql("ALTER SYSTEM SET wal_level = 'logical'")
    logger.info("wal_level set to logical", extra={"host": conn.host, "database": conn.database})
    return WAL_RESTART_NOTE
