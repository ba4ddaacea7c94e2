"""Tests for profile and home routes."""

import unittest
from unittest.mock import patch

from fastapi.testclient import TestClient

from adapter.fake.user_repository import FakeUserRepository
from api.dependencies import get_settings, get_user_repo
from api.main import app
from config import Settings
from services import credential_service
from services.token_service import TokenService

TEST_SETTINGS = Settings(jwt_secret_key='test-secret')


class TestProfileRoutes(unittest.TestCase):

    def setUp(self):
        self.repo = FakeUserRepository()
        app.dependency_overrides[get_settings] = lambda: TEST_SETTINGS
        app.dependency_overrides[get_user_repo] = lambda: self.repo
        self.client = TestClient(app)

        user = self.repo.create(username='alice', phone='9876543210', email='alice@x.com', password_hash='h')
        self.user = self.repo.update(user.id, {
            'is_verified': True, 'total_amount': 10000.0, 'deposited_amount': 8000.0, 'withdrawn_amount': 1200.0,
        })
        token = TokenService(TEST_SETTINGS).issue(self.user.id)
        self.headers = {"Authorization": f"Bearer {token}"}

    def tearDown(self):
        app.dependency_overrides.clear()

    def test_get_profile(self):
        response = self.client.get("/profile", headers=self.headers)
        self.assertEqual(response.status_code, 200)
        user = response.json()["user"]
        self.assertEqual(user["username"], "alice")
        self.assertNotIn("password_hash", user)

    def test_profile_requires_token(self):
        self.assertEqual(self.client.get("/profile").status_code, 401)

    def test_update_profile(self):
        response = self.client.put("/user/profile", headers=self.headers,
                                   json={"username": "alice_2", "email": "New@X.com"})
        self.assertEqual(response.status_code, 200)
        user = response.json()["user"]
        self.assertEqual(user["username"], "alice_2")
        self.assertEqual(user["email"], "new@x.com")
        self.assertEqual(self.repo.get_by_id(self.user.id).username, "alice_2")

    def test_update_profile_conflict(self):
        with patch.object(credential_service, 'BCRYPT_ROUNDS', 4):
            self.repo.create(username='bob', phone='1111111111', email='bob@x.com',
                             password_hash=credential_service.hash_password('Passw0rd'))
        response = self.client.put("/user/profile", headers=self.headers, json={"username": "bob"})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["message"], "Username already exists")

    def test_update_profile_validation(self):
        response = self.client.put("/user/profile", headers=self.headers, json={"phone": "12ab"})
        self.assertEqual(response.status_code, 400)
        self.assertIn("Phone number must be 10 digits", response.json()["errors"])

    def test_home(self):
        response = self.client.get("/home", headers=self.headers)
        self.assertEqual(response.status_code, 200)
        data = response.json()["data"]
        self.assertEqual(data["user"]["id"], self.user.id)
        self.assertEqual(data["stats"], {
            "totalAmount": 10000.0,
            "depositedAmount": 8000.0,
            "withdrawnAmount": 1200.0,
            "netAmount": 8800.0,
        })


class TestUnhandledErrors(unittest.TestCase):

    def tearDown(self):
        app.dependency_overrides.clear()

    def test_store_failure_is_generic_500(self):
        class BrokenRepository(FakeUserRepository):
            def get_by_id(self, user_id):
                raise RuntimeError("connection pool exhausted")

        app.dependency_overrides[get_settings] = lambda: TEST_SETTINGS
        app.dependency_overrides[get_user_repo] = BrokenRepository
        token = TokenService(TEST_SETTINGS).issue('user-1')
        client = TestClient(app, raise_server_exceptions=False)

        response = client.get("/profile", headers={"Authorization": f"Bearer {token}"})

        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.json(), {"success": False, "message": "Internal server error"})


if __name__ == '__main__':
    unittest.main()
