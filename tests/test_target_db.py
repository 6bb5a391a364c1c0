"""Unit tests for the raw SQL executor, run on an in-memory SQLite connection."""

import sqlite3
import unittest

from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from app.services.target_db import TargetDatabaseError, run_sql, sanitize_table_name


class StatusCursor(sqlite3.Cursor):
    """Reports a command tag like psycopg2's statusmessage, and only while the cursor is open."""

    _status = None
    _closed = False

    def execute(self, sql, parameters=()):
        result = super().execute(sql, parameters)
        self._status = f"{sql.split(None, 1)[0].upper()} {max(self.rowcount, 0)}"
        return result

    def close(self):
        self._closed = True
        super().close()

    @property
    def statusmessage(self):
        return None if self._closed else self._status


class StatusConnection(sqlite3.Connection):
    def cursor(self, factory=StatusCursor):
        return super().cursor(factory)


def status_connection() -> sqlite3.Connection:
    return sqlite3.connect(":memory:", factory=StatusConnection, check_same_thread=False)


class TestRunSql(unittest.TestCase):
    def setUp(self) -> None:
        self.engine = create_engine("sqlite://", creator=status_connection, poolclass=StaticPool)
        self.connection = self.engine.connect()
        self.connection.exec_driver_sql("CREATE TABLE t (v INTEGER)")

    def tearDown(self) -> None:
        self.connection.close()
        self.engine.dispose()

    def test_command_tag_kept_when_no_rows_come_back(self) -> None:
        inserted = run_sql(self.connection, "INSERT INTO t VALUES (1), (2)")
        self.assertEqual((inserted.command, inserted.row_count, inserted.rows), ("INSERT", 2, []))
        updated = run_sql(self.connection, "UPDATE t SET v = v + 1")
        self.assertEqual((updated.command, updated.row_count), ("UPDATE", 2))
        created = run_sql(self.connection, "CREATE TABLE u (w TEXT)")
        self.assertEqual((created.command, created.row_count), ("CREATE", 0))

    def test_rows_and_fields(self) -> None:
        run_sql(self.connection, "INSERT INTO t VALUES (1), (2)")
        result = run_sql(self.connection, "SELECT v FROM t ORDER BY v")
        self.assertEqual(result.command, "SELECT")
        self.assertEqual(result.rows, [{"v": 1}, {"v": 2}])
        self.assertEqual(result.row_count, 2)
        self.assertEqual([f.name for f in result.fields], ["v"])


class TestSanitizeTableName(unittest.TestCase):
    def test_strips_unsafe_characters(self) -> None:
        self.assertEqual(sanitize_table_name('todos"; DROP TABLE x'), "todosDROPTABLEx")

    def test_empty_after_sanitising_rejected(self) -> None:
        with self.assertRaises(TargetDatabaseError) as ctx:
            sanitize_table_name('";')
        self.assertEqual(ctx.exception.status_code, 400)
