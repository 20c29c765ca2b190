"""
Admin secret tests: the /api/auth route and the bcrypt helpers.
"""
from fastapi.testclient import TestClient

from portfolio.utils.auth import hash_password, verify_password
from tests.conftest import ADMIN_SECRET


class TestAuthRoute:

    def test_correct_password(self, client: TestClient):
        response = client.post("/api/auth", json={"password": ADMIN_SECRET})

        assert response.status_code == 200
        assert response.json() == {"success": True}

    def test_wrong_password(self, client: TestClient):
        response = client.post("/api/auth", json={"password": "guess"})

        assert response.status_code == 401
        assert response.json()["error"] == "Invalid password"

    def test_missing_password(self, client: TestClient):
        response = client.post("/api/auth", json={})

        assert response.status_code == 400

    def test_unconfigured_hash(self, client: TestClient, monkeypatch):
        from portfolio.config import settings

        monkeypatch.setattr(settings, "ADMIN_PASSWORD_HASH", "")

        response = client.post("/api/auth", json={"password": ADMIN_SECRET})

        assert response.status_code == 500
        assert response.json()["error"] == "Authentication not configured"


class TestPasswordHelpers:

    def test_hash_round_trip(self):
        hashed = hash_password("s3cret", rounds=4)

        assert verify_password("s3cret", hashed)
        assert not verify_password("other", hashed)

    def test_malformed_hash_never_matches(self):
        assert not verify_password("s3cret", "not-a-bcrypt-hash")
