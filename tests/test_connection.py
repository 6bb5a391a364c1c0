"""Unit tests for connection descriptors and pasted connection URLs."""

import unittest

from pydantic import ValidationError

from app.schemas.connection import MASK, ConnectionDescriptor, parse_connection_url


class TestParseConnectionUrl(unittest.TestCase):
    def test_postgresql_and_postgres_schemes(self) -> None:
        for scheme in ("postgresql", "postgres"):
            parsed = parse_connection_url(f"{scheme}://app:pw@db.example.com:15432/appdb")
            self.assertEqual(
                parsed,
                {"user": "app", "password": "pw", "host": "db.example.com", "port": 15432, "database": "appdb"},
            )

    def test_query_string_dropped(self) -> None:
        parsed = parse_connection_url("postgresql://app:pw@h:5432/appdb?sslmode=require")
        self.assertEqual(parsed["database"], "appdb")

    def test_non_matching(self) -> None:
        self.assertIsNone(parse_connection_url("mysql://a:b@h:3306/x"))
        self.assertIsNone(parse_connection_url("postgresql://app@h:5432/x"))
        self.assertIsNone(parse_connection_url("postgresql://app:pw@h/x"))


class TestConnectionDescriptor(unittest.TestCase):
    def test_defaults(self) -> None:
        conn = ConnectionDescriptor()
        self.assertIsNone(conn.host)
        self.assertEqual((conn.port, conn.database, conn.user, conn.password), (5432, "postgres", "postgres", ""))

    def test_url_expands_to_fields(self) -> None:
        conn = ConnectionDescriptor.model_validate({"url": "postgres://u:p@10.0.0.5:16000/db1"})
        self.assertEqual((conn.host, conn.port, conn.user, conn.password, conn.database), ("10.0.0.5", 16000, "u", "p", "db1"))

    def test_bad_url_rejected(self) -> None:
        with self.assertRaises(ValidationError):
            ConnectionDescriptor.model_validate({"url": "not a url"})

    def test_default_host_only_when_missing(self) -> None:
        self.assertEqual(ConnectionDescriptor().with_default_host("203.0.113.10").host, "203.0.113.10")
        self.assertEqual(ConnectionDescriptor(host="db").with_default_host("203.0.113.10").host, "db")

    def test_local_and_masking(self) -> None:
        conn = ConnectionDescriptor(host="localhost", password="hunter2")
        self.assertTrue(conn.is_local)
        self.assertFalse(ConnectionDescriptor(host="db.example.com").is_local)
        masked = conn.masked_url()
        self.assertNotIn("hunter2", masked)
        self.assertIn(MASK, masked)
