# tests/conftest.py
import pytest
from fastapi.testclient import TestClient

from catalog_api.app import create_app
from catalog_api.config import Config
from catalog_api.security import hash_password


TEST_SECRET = "test-secret-key-long-enough-for-hs256"


class SettingsForTests(Config):
    JWT_SECRET_KEY = TEST_SECRET
    API_RATE_LIMIT = 10_000   # rate limits are exercised separately in test_ratelimit.py
    AUTH_RATE_LIMIT = 10_000
    SEED_DATA = True
    ENVIRONMENT = "test"
    LOG_LEVEL = "WARNING"


class EmptySettings(SettingsForTests):
    SEED_DATA = False


def bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture()
def app():
    # seeded: admin (id 1), user1 (id 2), three categories, two items
    return create_app(SettingsForTests)


@pytest.fixture()
def client(app):
    return TestClient(app)


@pytest.fixture()
def admin_headers(app):
    return bearer(app.state.tokens.issue(1))


@pytest.fixture()
def user_headers(app):
    return bearer(app.state.tokens.issue(2))


@pytest.fixture()
def empty_app():
    app = create_app(EmptySettings)
    app.state.users.create("admin", "admin@example.com", hash_password("Admin123"), role="admin")
    return app


@pytest.fixture()
def empty_client(empty_app):
    return TestClient(empty_app)


@pytest.fixture()
def register():
    """Register through the API and return (user json, auth headers)."""

    def _register(client, username, email=None, password="Passw0rd"):
        resp = client.post(
            "/auth/register",
            json={"username": username, "email": email or f"{username}@example.com", "password": password},
        )
        assert resp.status_code == 201, resp.text
        data = resp.json()["data"]
        return data["user"], bearer(data["token"])

    return _register
