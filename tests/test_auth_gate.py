"""HTTP tests for the authentication gate, session sign-in and permission checks."""

import unittest
from datetime import timedelta

from support import ApiTestCase

from app.api.v1.deps import get_provider_client, is_public_path
from app.core.security import hash_password
from app.main import app
from app.models import Account, Session
from app.models.base import utcnow


class TestPublicPaths(unittest.TestCase):
    def test_public_prefixes(self) -> None:
        for path in ("/pin-login", "/api/v1/pin/login", "/api/v1/agent/create-db", "/api/v1/health", "/docs"):
            self.assertTrue(is_public_path(path), path)

    def test_protected_paths(self) -> None:
        for path in ("/", "/api/v1/databases", "/api/v1/sql/query", "/api/v1/admin/users"):
            self.assertFalse(is_public_path(path), path)


class TestGateRedirect(ApiTestCase, unittest.TestCase):
    def test_anonymous_request_redirected_with_callback(self) -> None:
        resp = self.client.get("/api/v1/databases", follow_redirects=False)
        self.assertEqual(resp.status_code, 307)
        self.assertEqual(resp.headers["location"], "/pin-login?callbackUrl=/api/v1/databases")
        self.assertEqual(self.provider.calls, [])

    def test_root_is_behind_the_gate(self) -> None:
        resp = self.client.get("/", follow_redirects=False)
        self.assertEqual(resp.status_code, 307)
        self.assertEqual(resp.headers["location"], "/pin-login?callbackUrl=/")

    def test_public_route_needs_no_identity(self) -> None:
        resp = self.client.get("/api/v1/agent/create-db")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["method"], "POST")

    def test_expired_session_cookie_redirected(self) -> None:
        self.add_user("u-1", "admin")
        db = self.session_factory()
        db.add(Session(token="old-token", user_id="u-1", expires_at=utcnow() - timedelta(days=1)))
        db.commit()
        db.close()
        self.client.cookies.set("session_token", "old-token")
        resp = self.client.get("/api/v1/databases", follow_redirects=False)
        self.assertEqual(resp.status_code, 307)


class TestSessionSignIn(ApiTestCase, unittest.TestCase):
    provider_routes = {("GET", "/databases"): [{"uuid": "db-1"}]}

    def setUp(self) -> None:
        super().setUp()
        self.add_user("u-1", "user", email="Alice@Example.com", name="Alice")
        db = self.session_factory()
        db.add(
            Account(
                account_id="u-1",
                provider_id="credential",
                user_id="u-1",
                password=hash_password("correct-password"),
            )
        )
        db.commit()
        db.close()

    def test_sign_in_sets_cookie_and_opens_gate(self) -> None:
        resp = self.client.post(
            "/api/v1/auth/sign-in",
            json={"email": "alice@example.com", "password": "correct-password"},
        )
        self.assertEqual(resp.status_code, 200)
        data = resp.json()["data"]
        self.assertEqual(data["identity"]["source"], "session")
        self.assertEqual(data["role_label"], "User")
        self.assertIn("cannot delete", data["role_description"])
        self.assertTrue(resp.cookies.get("session_token"))

        listed = self.client.get("/api/v1/databases")
        self.assertEqual(listed.status_code, 200)
        self.assertEqual(listed.json()["data"], [{"uuid": "db-1"}])

    def test_wrong_password_and_unknown_email_same_answer(self) -> None:
        for email, password in (("alice@example.com", "wrong-password"), ("bob@example.com", "correct-password")):
            resp = self.client.post("/api/v1/auth/sign-in", json={"email": email, "password": password})
            self.assertEqual(resp.status_code, 401)
            self.assertEqual(resp.json()["error"], "Invalid email or password.")

    def test_sign_out_deletes_session(self) -> None:
        self.client.post(
            "/api/v1/auth/sign-in",
            json={"email": "alice@example.com", "password": "correct-password"},
        )
        self.client.post("/api/v1/auth/sign-out")
        db = self.session_factory()
        try:
            self.assertEqual(db.query(Session).count(), 0)
        finally:
            db.close()


class TestPermissionChecks(ApiTestCase, unittest.TestCase):
    provider_routes = {
        ("GET", "/databases"): [],
        ("DELETE", "/databases/db-1"): {"message": "deleted"},
    }

    def test_viewer_can_list_but_not_delete(self) -> None:
        self.login_as("viewer")
        self.assertEqual(self.client.get("/api/v1/databases").status_code, 200)
        resp = self.client.delete("/api/v1/databases/db-1")
        self.assertEqual(resp.status_code, 403)
        self.assertEqual(resp.json(), {"success": False, "error": "Permission denied"})
        self.assertFalse(self.provider.called("DELETE", "/databases/db-1"))

    def test_admin_can_delete(self) -> None:
        self.login_as("admin")
        resp = self.client.delete("/api/v1/databases/db-1")
        self.assertEqual(resp.status_code, 200)
        self.assertTrue(self.provider.called("DELETE", "/databases/db-1"))

    def test_pin_cookie_for_unknown_user_passes_gate_but_has_no_role(self) -> None:
        self.client.cookies.set("pin-session", "anything")
        self.client.cookies.set("pin-user-id", "ghost")
        resp = self.client.get("/api/v1/databases", follow_redirects=False)
        self.assertEqual(resp.status_code, 403)


class TestProviderNotConfigured(ApiTestCase, unittest.TestCase):
    settings_overrides = {"PROVIDER_API_TOKEN": None}

    def setUp(self) -> None:
        super().setUp()
        app.dependency_overrides.pop(get_provider_client, None)

    def test_provider_routes_503(self) -> None:
        self.login_as("admin")
        resp = self.client.get("/api/v1/databases")
        self.assertEqual(resp.status_code, 503)
        self.assertFalse(resp.json()["success"])

    def test_permission_checked_before_configuration(self) -> None:
        self.login_as("viewer")
        resp = self.client.delete("/api/v1/databases/db-1")
        self.assertEqual(resp.status_code, 403)


class TestHealth(ApiTestCase, unittest.TestCase):
    def test_health_reports_store_and_provider(self) -> None:
        resp = self.client.get("/api/v1/health")
        self.assertEqual(resp.status_code, 200)
        body = resp.json()
        self.assertEqual(body["status"], "ok")
        self.assertEqual(body["database"], "connected")
        self.assertIsNone(body["provider"])
