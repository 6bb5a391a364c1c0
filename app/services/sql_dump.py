"""Plain-SQL dump and best-effort restore for PostgreSQL targets."""

from __future__ import annotations

import json
import logging
import math
import re
from dataclasses import dataclass, field
from datetime import date, datetime, time, timezone
from decimal import Decimal
from typing import Any

import sqlparse
from sqlalchemy import text
from sqlalchemy.exc import DBAPIError

from app.schemas.connection import ConnectionDescriptor
from app.schemas.sql import ImportResult
from app.services.target_db import (
    DEFAULT_CONNECT_TIMEOUT_SEC,
    driver_message,
    fetch_columns,
    fetch_tables,
    target_connection,
)

logger = logging.getLogger(__name__)

MAX_SAMPLE_ERRORS = 5
# Errors quoted in the all-failed message.
MAX_REPORTED_ERRORS = 3

# Sequence in a serial-style default, e.g. nextval('todos_id_seq'::regclass).
NEXTVAL_DEFAULT = re.compile(r"nextval\('((?:[^']|'')+)'::regclass\)")

DUMP_PREAMBLE = (
    "SET statement_timeout = 0;\n"
    "SET lock_timeout = 0;\n"
    "SET client_encoding = 'UTF8';\n"
    "SET standard_conforming_strings = on;\n"
)


@dataclass
class TableDump:
    name: str
    columns: list[dict[str, Any]]
    rows: list[dict[str, Any]] = field(default_factory=list)


def quote_ident(name: str) -> str:
    return '"' + name.replace('"', '""') + '"'


def _quote(value: str) -> str:
    return "'" + value.replace("'", "''") + "'"


def _array_element(value: Any) -> str:
    if value is None:
        return "NULL"
    if isinstance(value, list):
        return array_literal(value)
    if isinstance(value, bool):
        return "t" if value else "f"
    if isinstance(value, (int, Decimal)) or (isinstance(value, float) and math.isfinite(value)):
        return str(value)
    if isinstance(value, (datetime, date, time)):
        raw = value.isoformat()
    elif isinstance(value, dict):
        raw = json.dumps(value, default=str)
    elif isinstance(value, (bytes, bytearray, memoryview)):
        raw = "\\x" + bytes(value).hex()
    else:
        raw = str(value)
    return '"' + raw.replace("\\", "\\\\").replace('"', '\\"') + '"'


def array_literal(values: list[Any]) -> str:
    """PostgreSQL array text form, e.g. {"a","b c",NULL}; nested lists nest."""
    return "{" + ",".join(_array_element(v) for v in values) + "}"


def is_array_type(data_type: str | None) -> bool:
    return bool(data_type) and data_type.endswith("]")


def sql_literal(value: Any, data_type: str | None = None) -> str:
    """
    NULL, quoted string, quoted ISO date, bare number.

    Lists going into array columns become a cast array literal; other
    containers (json/jsonb values) become quoted JSON.
    """
    if value is None:
        return "NULL"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, str):
        return _quote(value)
    if isinstance(value, (datetime, date, time)):
        return _quote(value.isoformat())
    if isinstance(value, list) and is_array_type(data_type):
        return f"{_quote(array_literal(value))}::{data_type}"
    if isinstance(value, (dict, list)):
        return _quote(json.dumps(value, default=str))
    if isinstance(value, (bytes, bytearray, memoryview)):
        return _quote("\\x" + bytes(value).hex())
    if isinstance(value, float) and not math.isfinite(value):
        return _quote(str(value))
    if isinstance(value, (int, float, Decimal)):
        return str(value)
    return _quote(str(value))


def render_create_table(table: TableDump) -> str:
    lines = []
    for col in table.columns:
        line = f"  {quote_ident(col['column_name'])} {col['data_type']}"
        if col.get("column_default"):
            line += f" DEFAULT {col['column_default']}"
        if col.get("is_nullable") == "NO":
            line += " NOT NULL"
        lines.append(line)
    return f"CREATE TABLE {quote_ident(table.name)} (\n" + ",\n".join(lines) + "\n);\n"


def _unquote_literal(value: str) -> str:
    return value.replace("''", "'")


def owned_sequences(table: TableDump) -> list[tuple[str, str]]:
    """(sequence as written in the default, column) for every nextval() default."""
    found = []
    for col in table.columns:
        match = NEXTVAL_DEFAULT.search(col.get("column_default") or "")
        if match:
            found.append((match.group(1), col["column_name"]))
    return found


def render_sequences(table: TableDump) -> str:
    # DROP TABLE ... CASCADE takes owned sequences with it; recreate them first.
    return "".join(
        f"CREATE SEQUENCE IF NOT EXISTS {_unquote_literal(sequence)};\n"
        for sequence, _ in owned_sequences(table)
    )


def render_sequence_ownership(table: TableDump) -> str:
    return "".join(
        f"ALTER SEQUENCE {_unquote_literal(sequence)} "
        f"OWNED BY {quote_ident(table.name)}.{quote_ident(column)};\n"
        for sequence, column in owned_sequences(table)
    )


def render_setvals(table: TableDump) -> str:
    """Move each sequence past the restored rows so new inserts do not collide."""
    out = []
    for sequence, column in owned_sequences(table):
        col = quote_ident(column)
        out.append(
            f"SELECT setval('{sequence}', COALESCE(MAX({col}), 1), MAX({col}) IS NOT NULL) "
            f"FROM {quote_ident(table.name)};\n"
        )
    return "".join(out)


def render_inserts(table: TableDump) -> str:
    if not table.rows:
        return ""
    types = {col["column_name"]: col.get("data_type") for col in table.columns}
    column_names = list(table.rows[0].keys())
    column_list = ", ".join(quote_ident(c) for c in column_names)
    out = []
    for row in table.rows:
        values = ", ".join(sql_literal(row[c], types.get(c)) for c in column_names)
        out.append(f"INSERT INTO {quote_ident(table.name)} ({column_list}) VALUES ({values});\n")
    return "".join(out) + "\n"


def render_dump(
    database: str,
    host: str,
    port: int,
    tables: list[TableDump],
    generated_at: datetime | None = None,
) -> str:
    generated_at = generated_at or datetime.now(timezone.utc)
    parts = [
        "-- PostgreSQL Database Dump\n"
        f"-- Generated: {generated_at.isoformat()}\n"
        f"-- Database: {database}\n"
        f"-- Host: {host}:{port}\n\n",
        DUMP_PREAMBLE,
        "\n",
    ]
    for table in tables:
        parts.append(f"-- Table: {table.name}\n")
        parts.append(f"DROP TABLE IF EXISTS {quote_ident(table.name)} CASCADE;\n")
        parts.append(render_sequences(table))
        parts.append(render_create_table(table))
        parts.append(render_sequence_ownership(table))
        parts.append("\n")
        parts.append(render_inserts(table))
        parts.append(render_setvals(table))
    return "".join(parts)


def export_database(
    conn: ConnectionDescriptor,
    connect_timeout: int = DEFAULT_CONNECT_TIMEOUT_SEC,
) -> str:
    """Dump every public base table (schema then data) as plain SQL."""
    tables: list[TableDump] = []
    with target_connection(conn, connect_timeout) as connection:
        for name in fetch_tables(connection):
            columns = fetch_columns(connection, name)
            rows = [dict(r._mapping) for r in connection.execute(text(f"SELECT * FROM {quote_ident(name)}"))]
            tables.append(TableDump(name=name, columns=columns, rows=rows))
    logger.info(
        "Database exported",
        extra={"host": conn.host, "database": conn.database, "table_count": len(tables)},
    )
    return render_dump(conn.database, conn.host or "", conn.port, tables)


def split_statements(sql_text: str) -> list[str]:
    """
    Split a script into statements.

    Semicolons inside string literals and dollar-quoted bodies do not split.
    Blank and comment-only fragments are dropped.
    """
    statements = []
    for raw in sqlparse.split(sql_text):
        stmt = raw.strip()
        if not stmt:
            continue
        if not sqlparse.format(stmt, strip_comments=True).strip().rstrip(";").strip():
            continue
        statements.append(stmt)
    return statements


def import_sql(
    conn: ConnectionDescriptor,
    sql_text: str,
    connect_timeout: int = DEFAULT_CONNECT_TIMEOUT_SEC,
) -> ImportResult:
    """Run each statement independently; failures are counted, never rolled back."""
    statements = split_statements(sql_text)
    result = ImportResult(statements_total=len(statements))
    with target_connection(conn, connect_timeout) as connection:
        for stmt in statements:
            try:
                connection.exec_driver_sql(stmt, execution_options={"no_parameters": True})
            except DBAPIError as e:
                result.statements_failed += 1
                if len(result.sample_errors) < MAX_SAMPLE_ERRORS:
                    result.sample_errors.append(driver_message(e))
            else:
                result.statements_succeeded += 1
    logger.info(
        "SQL import finished",
        extra={
            "host": conn.host,
            "database": conn.database,
            "succeeded": result.statements_succeeded,
            "failed": result.statements_failed,
        },
    )
    return result


def all_failed(result: ImportResult) -> bool:
    return result.statements_failed > 0 and result.statements_succeeded == 0


def import_failure_message(result: ImportResult) -> str:
    return "Import failed: " + ", ".join(result.sample_errors[:MAX_REPORTED_ERRORS])


def import_summary(result: ImportResult) -> str:
    message = f"{result.statements_succeeded} statements executed"
    if result.statements_failed:
        message += f", {result.statements_failed} errors skipped"
    return message
