"""HTTP tests for the SQL console, dump/restore and audit routes with the target database stubbed out."""

import json
import unittest
from unittest.mock import patch

from support import ApiTestCase

from app.schemas.sql import ImportResult, QueryResult
from app.services.target_db import TargetDatabaseError

CONNECTION = {"host": "db.example.com", "port": 15432, "user": "app", "password": "pw", "database": "appdb"}


class TestQuery(ApiTestCase, unittest.TestCase):
    def test_viewer_cannot_run_arbitrary_sql(self) -> None:
        self.login_as("viewer")
        resp = self.client.post("/api/v1/sql/query", json={"connection": CONNECTION, "sql": "DROP TABLE x"})
        self.assertEqual(resp.status_code, 403)

    def test_query_result_and_default_host(self) -> None:
        self.login_as("user")
        result = QueryResult(rows=[{"n": 1}], row_count=1, command="SELECT")
        with patch("app.services.target_db.execute_query", return_value=result) as execute:
            resp = self.client.post(
                "/api/v1/sql/query",
                json={"connection": {"url": "postgresql://app:pw@db.example.com:15432/appdb"}, "sql": "SELECT 1 AS n"},
            )
            resp_no_host = self.client.post("/api/v1/sql/query", json={"connection": {}, "sql": "SELECT 1"})
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["data"]["rows"], [{"n": 1}])
        self.assertEqual(execute.call_args_list[0].args[0].host, "db.example.com")
        self.assertEqual(resp_no_host.status_code, 200)
        self.assertEqual(execute.call_args_list[1].args[0].host, "203.0.113.10")

    def test_statement_error_400_connection_error_502(self) -> None:
        self.login_as("admin")
        with patch("app.services.target_db.execute_query", side_effect=TargetDatabaseError('relation "x" does not exist', 400)):
            resp = self.client.post("/api/v1/sql/query", json={"connection": CONNECTION, "sql": "SELECT * FROM x"})
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json(), {"success": False, "error": 'relation "x" does not exist'})
        with patch(
            "app.services.target_db.execute_query",
            side_effect=TargetDatabaseError("Could not connect to database: timeout expired", 502),
        ):
            resp = self.client.post("/api/v1/sql/query", json={"connection": CONNECTION, "sql": "SELECT 1"})
        self.assertEqual(resp.status_code, 502)

    def test_empty_sql_400(self) -> None:
        self.login_as("admin")
        resp = self.client.post("/api/v1/sql/query", json={"connection": CONNECTION, "sql": ""})
        self.assertEqual(resp.status_code, 400)
        self.assertTrue(resp.json()["error"].startswith("sql:"))


class TestBrowse(ApiTestCase, unittest.TestCase):
    def test_viewer_lists_tables(self) -> None:
        self.login_as("viewer")
        with patch("app.services.target_db.list_tables", return_value=["todos", "users"]):
            resp = self.client.post("/api/v1/sql/tables", json={"connection": CONNECTION})
        self.assertEqual(resp.json()["data"], ["todos", "users"])

    def test_row_count_rejects_bad_table_name(self) -> None:
        self.login_as("viewer")
        with patch("app.services.target_db.count_table_rows", return_value=42) as count:
            resp = self.client.post("/api/v1/sql/tables/todos/count", json={"connection": CONNECTION})
        self.assertEqual(resp.json()["data"], 42)
        self.assertEqual(count.call_args.args[1], "todos")
        with patch(
            "app.services.target_db.count_table_rows",
            side_effect=TargetDatabaseError("Invalid table name", 400),
        ):
            resp = self.client.post("/api/v1/sql/tables/%22%3B/count", json={"connection": CONNECTION})
        self.assertEqual(resp.status_code, 400)

    def test_page_size_bounds(self) -> None:
        self.login_as("viewer")
        resp = self.client.post("/api/v1/sql/tables/todos/data", json={"connection": CONNECTION, "limit": 5000})
        self.assertEqual(resp.status_code, 400)


class TestExport(ApiTestCase, unittest.TestCase):
    def test_attachment(self) -> None:
        self.login_as("viewer")
        with patch("app.services.sql_dump.export_database", return_value="-- PostgreSQL Database Dump\n"):
            resp = self.client.post("/api/v1/sql/export", json={"connection": CONNECTION})
        self.assertEqual(resp.status_code, 200)
        self.assertTrue(resp.headers["content-type"].startswith("application/sql"))
        self.assertEqual(resp.headers["content-disposition"], 'attachment; filename="appdb_backup.sql"')
        self.assertTrue(resp.text.startswith("-- PostgreSQL Database Dump"))


class TestImport(ApiTestCase, unittest.TestCase):
    def upload(self, connection_info: str | None = json.dumps(CONNECTION), content: bytes = b"SELECT 1;"):
        data = {"connection_info": connection_info} if connection_info is not None else {}
        return self.client.post("/api/v1/sql/import", files={"file": ("dump.sql", content, "application/sql")}, data=data)

    def test_missing_parts_400(self) -> None:
        self.login_as("user")
        resp = self.upload(connection_info=None)
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["error"], "Missing file or connection info")

    def test_invalid_connection_info_400(self) -> None:
        self.login_as("user")
        resp = self.upload(connection_info="{not json")
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["error"], "Invalid connection info")

    def test_partial_success_reports_warnings(self) -> None:
        self.login_as("user")
        result = ImportResult(statements_total=3, statements_succeeded=2, statements_failed=1, sample_errors=["boom"])
        with patch("app.services.sql_dump.import_sql", return_value=result) as run:
            resp = self.upload(content=b"SELECT 1; SELECT bad; SELECT 2;")
        self.assertEqual(resp.status_code, 200)
        body = resp.json()
        self.assertEqual(body["message"], "2 statements executed, 1 errors skipped")
        self.assertEqual(body["warnings"], ["1 errors skipped"])
        self.assertEqual(run.call_args.args[1], "SELECT 1; SELECT bad; SELECT 2;")

    def test_all_failed_400_with_details(self) -> None:
        self.login_as("user")
        result = ImportResult(statements_total=2, statements_succeeded=0, statements_failed=2, sample_errors=["e1", "e2"])
        with patch("app.services.sql_dump.import_sql", return_value=result):
            resp = self.upload()
        self.assertEqual(resp.status_code, 400)
        body = resp.json()
        self.assertFalse(body["success"])
        self.assertEqual(body["error"], "Import failed: e1, e2")
        self.assertEqual(body["data"]["statements_failed"], 2)


class TestSecurityRoutes(ApiTestCase, unittest.TestCase):
    def test_password_length_bounds(self) -> None:
        self.login_as("viewer")
        self.assertEqual(len(self.client.get("/api/v1/security/password").json()["data"]["password"]), 32)
        self.assertEqual(len(self.client.get("/api/v1/security/password?length=4").json()["data"]["password"]), 4)
        self.assertEqual(self.client.get("/api/v1/security/password?length=3").status_code, 400)
        self.assertEqual(self.client.get("/api/v1/security/password?length=257").status_code, 400)

    def test_rls_script(self) -> None:
        self.login_as("viewer")
        script = self.client.get("/api/v1/security/rls-script").json()["data"]["script"]
        self.assertIn("ENABLE ROW LEVEL SECURITY", script)

    def test_audit_unreachable_502(self) -> None:
        self.login_as("viewer")
        with patch(
            "app.api.v1.security.run_security_audit",
            side_effect=TargetDatabaseError("Could not connect to database: refused", 502),
        ):
            resp = self.client.post("/api/v1/security/audit", json={"connection": CONNECTION})
        self.assertEqual(resp.status_code, 502)
