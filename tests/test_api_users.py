"""HTTP tests for /api/users: role requirements, ownership rule and error mapping."""

import unittest

from acquisitions.core.security import verify_password
from acquisitions.models import User
from tests.support import auth_headers, count_users, make_client, make_session_factory, seed_user


class UsersApiTestCase(unittest.TestCase):
    """Seeds an admin (id 1), a user with id 7 and a user with id 9."""

    def setUp(self) -> None:
        self.sessions = make_session_factory()
        self.client = make_client(self.sessions)
        seed_user(self.sessions, "admin@example.com", role="admin", name="Admin", user_id=1)
        seed_user(self.sessions, "seven@example.com", name="Seven", user_id=7)
        seed_user(self.sessions, "nine@example.com", name="Nine", user_id=9)
        self.admin = auth_headers(1, "admin@example.com", "admin")
        self.seven = auth_headers(7, "seven@example.com", "user")
        self.nine = auth_headers(9, "nine@example.com", "user")

    def _load(self, user_id: int) -> User | None:
        db = self.sessions()
        try:
            return db.get(User, user_id)
        finally:
            db.close()


class TestListUsers(UsersApiTestCase):
    def test_guest_unauthorized(self) -> None:
        resp = self.client.get("/api/users")
        self.assertEqual(resp.status_code, 401)

    def test_user_forbidden(self) -> None:
        self.assertEqual(self.client.get("/api/users", headers=self.seven).status_code, 403)

    def test_admin_lists_without_password_hashes(self) -> None:
        resp = self.client.get("/api/users", headers=self.admin)
        self.assertEqual(resp.status_code, 200)
        body = resp.json()
        self.assertEqual(body["count"], 3)
        self.assertEqual([u["id"] for u in body["users"]], [1, 7, 9])
        self.assertNotIn("password_hash", body["users"][0])

    def test_invalid_cookie_is_unauthorized(self) -> None:
        resp = self.client.get("/api/users", headers={"Cookie": "token=garbage"})
        self.assertEqual(resp.status_code, 401)


class TestFetchUser(UsersApiTestCase):
    def test_self(self) -> None:
        resp = self.client.get("/api/users/7", headers=self.seven)
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["user"]["email"], "seven@example.com")

    def test_any_authenticated_user_may_read_others(self) -> None:
        resp = self.client.get("/api/users/9", headers=self.seven)
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["user"]["id"], 9)

    def test_missing_is_404(self) -> None:
        resp = self.client.get("/api/users/42", headers=self.seven)
        self.assertEqual(resp.status_code, 404)
        self.assertEqual(resp.json()["detail"], "User not found")

    def test_bad_ids_are_400(self) -> None:
        for raw in ("abc", "0", "-3", "7.5", "2147483648", "9" * 30):
            resp = self.client.get(f"/api/users/{raw}", headers=self.seven)
            self.assertEqual(resp.status_code, 400, raw)
            self.assertEqual(resp.json()["detail"], "Invalid ID")

    def test_guest_unauthorized(self) -> None:
        self.assertEqual(self.client.get("/api/users/7").status_code, 401)


class TestUpdateUser(UsersApiTestCase):
    def test_self_update(self) -> None:
        resp = self.client.put("/api/users/7", json={"name": "Seven Updated"}, headers=self.seven)
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["user"]["name"], "Seven Updated")
        self.assertEqual(self._load(7).name, "Seven Updated")

    def test_other_user_forbidden(self) -> None:
        resp = self.client.put("/api/users/9", json={"name": "Hijacked"}, headers=self.seven)
        self.assertEqual(resp.status_code, 403)
        self.assertEqual(self._load(9).name, "Nine")

    def test_role_escalation_on_self_forbidden(self) -> None:
        resp = self.client.put("/api/users/7", json={"role": "admin"}, headers=self.seven)
        self.assertEqual(resp.status_code, 403)
        self.assertEqual(self._load(7).role, "user")

    def test_role_escalation_with_other_fields_forbidden(self) -> None:
        resp = self.client.put(
            "/api/users/7", json={"name": "Seven", "role": "user"}, headers=self.seven
        )
        self.assertEqual(resp.status_code, 403)

    def test_admin_updates_anyone_including_role(self) -> None:
        resp = self.client.put("/api/users/9", json={"role": "admin"}, headers=self.admin)
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(self._load(9).role, "admin")

    def test_password_is_stored_hashed(self) -> None:
        resp = self.client.put(
            "/api/users/7", json={"password": "a-new-password"}, headers=self.seven
        )
        self.assertEqual(resp.status_code, 200)
        stored = self._load(7).password_hash
        self.assertNotEqual(stored, "a-new-password")
        self.assertTrue(verify_password("a-new-password", stored))

    def test_empty_body_is_400(self) -> None:
        resp = self.client.put("/api/users/7", json={}, headers=self.seven)
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["error"], "Invalid input data.")

    def test_admin_update_missing_user_404(self) -> None:
        resp = self.client.put("/api/users/42", json={"name": "Ghost"}, headers=self.admin)
        self.assertEqual(resp.status_code, 404)

    def test_email_taken_409(self) -> None:
        resp = self.client.put(
            "/api/users/7", json={"email": "nine@example.com"}, headers=self.seven
        )
        self.assertEqual(resp.status_code, 409)

    def test_guest_unauthorized(self) -> None:
        resp = self.client.put("/api/users/7", json={"name": "Nobody"})
        self.assertEqual(resp.status_code, 401)

    def test_bad_id_400(self) -> None:
        resp = self.client.put("/api/users/abc", json={"name": "Seven"}, headers=self.seven)
        self.assertEqual(resp.status_code, 400)

    def test_oversized_id_400(self) -> None:
        resp = self.client.put(f"/api/users/{'9' * 30}", json={"name": "Seven"}, headers=self.admin)
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["detail"], "Invalid ID")
        resp = self.client.delete("/api/users/2147483648", headers=self.admin)
        self.assertEqual(resp.status_code, 400)


class TestDeleteUser(UsersApiTestCase):
    def test_other_user_forbidden(self) -> None:
        resp = self.client.delete("/api/users/9", headers=self.seven)
        self.assertEqual(resp.status_code, 403)
        self.assertIsNotNone(self._load(9))

    def test_self_delete(self) -> None:
        resp = self.client.delete("/api/users/7", headers=self.seven)
        self.assertEqual(resp.status_code, 200)
        self.assertIsNone(self._load(7))

    def test_admin_delete_then_repeat_is_404(self) -> None:
        self.assertEqual(self.client.delete("/api/users/9", headers=self.admin).status_code, 200)
        for _ in range(2):
            resp = self.client.delete("/api/users/9", headers=self.admin)
            self.assertEqual(resp.status_code, 404)
        self.assertEqual(count_users(self.sessions), 2)

    def test_guest_unauthorized(self) -> None:
        self.assertEqual(self.client.delete("/api/users/7").status_code, 401)


class TestDeleteAllUsers(UsersApiTestCase):
    def test_guest_forbidden(self) -> None:
        self.assertEqual(self.client.delete("/api/users").status_code, 403)
        self.assertEqual(count_users(self.sessions), 3)

    def test_user_forbidden(self) -> None:
        self.assertEqual(self.client.delete("/api/users", headers=self.seven).status_code, 403)
        self.assertEqual(count_users(self.sessions), 3)

    def test_admin_deletes_everything(self) -> None:
        resp = self.client.delete("/api/users", headers=self.admin)
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["deleted"], 3)
        self.assertEqual(count_users(self.sessions), 0)


class TestPublicRoutes(unittest.TestCase):
    def setUp(self) -> None:
        self.client = make_client(make_session_factory())

    def test_health(self) -> None:
        resp = self.client.get("/health")
        self.assertEqual(resp.status_code, 200)
        body = resp.json()
        self.assertEqual(body["status"], "OK")
        self.assertEqual(body["database"], "connected")
        self.assertGreaterEqual(body["uptime"], 0)
        self.assertIn("timestamp", body)

    def test_api_root(self) -> None:
        resp = self.client.get("/api")
        self.assertEqual(resp.json(), {"message": "Acquisitions API is running!"})

    def test_root(self) -> None:
        self.assertEqual(self.client.get("/").status_code, 200)


if __name__ == "__main__":
    unittest.main()
