"""Unit tests for the provider REST client against an in-process mock transport."""

import unittest

import httpx
from support import PROVIDER_TOKEN, FakeProvider

from app.core.config import Settings
from app.services.provider_client import (
    ProviderApiError,
    ProviderClient,
    ProviderNotConfiguredError,
    unwrap_list,
)


class TestUnwrapList(unittest.TestCase):
    def test_shapes(self) -> None:
        self.assertEqual(unwrap_list([{"a": 1}], "projects"), [{"a": 1}])
        self.assertEqual(unwrap_list({"projects": [{"a": 1}]}, "projects"), [{"a": 1}])
        self.assertEqual(unwrap_list({"other": []}, "projects"), [])
        self.assertEqual(unwrap_list(None, "projects"), [])


class TestFromSettings(unittest.TestCase):
    def test_missing_token_not_configured(self) -> None:
        settings = Settings(_env_file=None, PROVIDER_API_TOKEN=None)
        with self.assertRaises(ProviderNotConfiguredError):
            ProviderClient.from_settings(settings)

    def test_trailing_slash_dropped(self) -> None:
        settings = Settings(_env_file=None, PROVIDER_API_URL="http://provider.test/", PROVIDER_API_TOKEN="t")
        self.assertEqual(ProviderClient.from_settings(settings).base_url, "http://provider.test")


class TestRequest(unittest.IsolatedAsyncioTestCase):
    async def test_headers_and_url(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"projects": [{"uuid": "p-1"}]})

        client = ProviderClient("http://provider.test", PROVIDER_TOKEN, transport=httpx.MockTransport(handler))
        projects = await client.get_projects()
        self.assertEqual(projects, [{"uuid": "p-1"}])
        self.assertEqual(str(seen[0].url), "http://provider.test/api/v1/projects")
        self.assertEqual(seen[0].headers["authorization"], f"Bearer {PROVIDER_TOKEN}")
        self.assertEqual(seen[0].headers["accept"], "application/json")

    async def test_error_uses_message_field(self) -> None:
        fake = FakeProvider({("GET", "/databases/x"): (404, {"message": "Database not found"})})
        with self.assertRaises(ProviderApiError) as ctx:
            await fake.client().get_database("x")
        self.assertEqual(ctx.exception.status_code, 404)
        self.assertEqual(str(ctx.exception), "Provider API Error (404): Database not found")

    async def test_error_falls_back_to_error_field_then_json(self) -> None:
        fake = FakeProvider(
            {
                ("GET", "/servers"): (422, {"error": "bad server"}),
                ("GET", "/projects"): (500, {"detail": "boom"}),
            }
        )
        with self.assertRaises(ProviderApiError) as ctx:
            await fake.client().get_servers()
        self.assertIn("bad server", ctx.exception.message)
        with self.assertRaises(ProviderApiError) as ctx:
            await fake.client().get_projects()
        self.assertEqual(ctx.exception.message, 'Provider API Error (500): {"detail": "boom"}')

    async def test_non_json_error_body(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(502, text="Bad Gateway from proxy")

        client = ProviderClient("http://provider.test", PROVIDER_TOKEN, transport=httpx.MockTransport(handler))
        with self.assertRaises(ProviderApiError) as ctx:
            await client.list_databases()
        self.assertEqual(ctx.exception.message, "Provider API Error (502): Bad Gateway from proxy")

    async def test_empty_body_is_none(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(204)

        client = ProviderClient("http://provider.test", PROVIDER_TOKEN, transport=httpx.MockTransport(handler))
        self.assertIsNone(await client.delete_database("db-1"))


class TestDatabaseOperations(unittest.IsolatedAsyncioTestCase):
    async def test_set_public_access_patch_body(self) -> None:
        fake = FakeProvider({("PATCH", "/databases/db-1"): {}})
        await fake.client().set_public_access("db-1", 15432)
        self.assertEqual(fake.body_of("PATCH", "/databases/db-1"), {"is_public": True, "public_port": 15432})

    async def test_deploy_falls_back_to_generic_deploy(self) -> None:
        fake = FakeProvider(
            {
                ("GET", "/databases/db-1/restart"): (400, {"message": "not running"}),
                ("GET", "/deploy"): {"message": "queued"},
            }
        )
        result = await fake.client().deploy_database("db-1")
        self.assertEqual(result, {"message": "queued"})
        self.assertTrue(fake.called("GET", "/deploy"))

    async def test_configure_backup_payload(self) -> None:
        fake = FakeProvider({("PATCH", "/databases/db-1"): {}})
        await fake.client().configure_backup(
            "db-1", enabled=True, frequency="0 3 * * *", retention=7, s3_bucket="backups"
        )
        self.assertEqual(
            fake.body_of("PATCH", "/databases/db-1"),
            {
                "backup_enabled": True,
                "backup_frequency": "0 3 * * *",
                "backup_retention": 7,
                "backup_s3_bucket": "backups",
            },
        )

    async def test_logs_unwrapped(self) -> None:
        fake = FakeProvider({("GET", "/databases/db-1/logs"): {"logs": "line 1\nline 2"}})
        self.assertEqual(await fake.client().get_database_logs("db-1"), "line 1\nline 2")


class TestConnection(unittest.IsolatedAsyncioTestCase):
    async def test_reachable(self) -> None:
        fake = FakeProvider({("GET", "/health"): {"status": "ok"}})
        self.assertTrue(await fake.client().test_connection())

    async def test_api_error_false(self) -> None:
        self.assertFalse(await FakeProvider().client().test_connection())

    async def test_transport_error_false(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        client = ProviderClient("http://provider.test", PROVIDER_TOKEN, transport=httpx.MockTransport(handler))
        self.assertFalse(await client.test_connection())
