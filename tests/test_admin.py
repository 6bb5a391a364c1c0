"""HTTP tests for the admin table browser and user management."""

import unittest
from datetime import timedelta

from support import ApiTestCase

from app.core.security import hash_pin
from app.models import Account, User, Verification
from app.models import Session as UserSession
from app.models.base import utcnow
from app.schemas.connection import MASK


class TestAdminAccess(ApiTestCase, unittest.TestCase):
    def test_non_admin_forbidden(self) -> None:
        self.login_as("user")
        self.assertEqual(self.client.get("/api/v1/admin/tables").status_code, 403)
        self.assertEqual(self.client.get("/api/v1/admin/users").status_code, 403)


class TestTableBrowser(ApiTestCase, unittest.TestCase):
    def setUp(self) -> None:
        super().setUp()
        self.login_as("admin", user_id="admin-1")
        db = self.session_factory()
        db.add(User(id="u-2", name="Bob", email="bob@example.com", role="user", pin_hash=hash_pin("11112222")))
        db.add(UserSession(token="secret-session-token", user_id="u-2", expires_at=utcnow() + timedelta(days=1)))
        db.add(Account(account_id="u-2", provider_id="credential", user_id="u-2", password="bcrypt-hash"))
        db.add(Verification(identifier="pin-session:u-2", value="binding-hash", expires_at=utcnow() + timedelta(days=1)))
        db.commit()
        db.close()

    def test_overview_counts(self) -> None:
        resp = self.client.get("/api/v1/admin/tables")
        self.assertEqual(resp.status_code, 200)
        counts = {t["name"]: t["count"] for t in resp.json()["data"]["tables"]}
        self.assertEqual(counts, {"user": 2, "session": 1, "account": 1, "verification": 1})

    def test_tokens_masked_by_default(self) -> None:
        rows = self.client.get("/api/v1/admin/tables/session").json()["data"]["rows"]
        self.assertEqual(rows[0]["token"], MASK)
        rows = self.client.get("/api/v1/admin/tables/verification").json()["data"]["rows"]
        self.assertEqual(rows[0]["value"], MASK)

    def test_reveal_shows_tokens(self) -> None:
        body = self.client.get("/api/v1/admin/tables/session?reveal=true").json()["data"]
        self.assertTrue(body["revealed"])
        self.assertEqual(body["rows"][0]["token"], "secret-session-token")

    def test_secrets_never_exposed(self) -> None:
        users = self.client.get("/api/v1/admin/tables/user?reveal=true").json()["data"]["rows"]
        self.assertTrue(all("pin_hash" not in row for row in users))
        accounts = self.client.get("/api/v1/admin/tables/account?reveal=true").json()["data"]["rows"]
        self.assertNotIn("password", accounts[0])

    def test_unknown_table_404(self) -> None:
        resp = self.client.get("/api/v1/admin/tables/pg_authid")
        self.assertEqual(resp.status_code, 404)
        self.assertEqual(resp.json()["error"], "Table not found")


class TestUserManagement(ApiTestCase, unittest.TestCase):
    def setUp(self) -> None:
        super().setUp()
        self.login_as("admin", user_id="admin-1")
        self.add_user("u-2", "user")

    def test_list_users(self) -> None:
        users = self.client.get("/api/v1/admin/users").json()["data"]["users"]
        self.assertEqual({u["id"] for u in users}, {"admin-1", "u-2"})
        self.assertTrue(all("pin_hash" not in u for u in users))

    def test_change_role(self) -> None:
        resp = self.client.patch("/api/v1/admin/users/u-2/role", json={"role": "viewer"})
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["data"]["role"], "viewer")

    def test_invalid_role_400(self) -> None:
        resp = self.client.patch("/api/v1/admin/users/u-2/role", json={"role": "root"})
        self.assertEqual(resp.status_code, 400)

    def test_delete_user(self) -> None:
        self.assertEqual(self.client.delete("/api/v1/admin/users/u-2").status_code, 200)
        self.assertEqual(self.client.delete("/api/v1/admin/users/u-2").status_code, 404)
