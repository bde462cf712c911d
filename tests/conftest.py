import itertools

import pytest
from fastapi.testclient import TestClient

from taskhub.api import create_app
from taskhub.config import Settings
from taskhub.database import build_engine, build_session_factory, init_db

_counter = itertools.count(1)


@pytest.fixture
def settings():
    return Settings(jwt_secret="test-secret", database_url="sqlite://")


@pytest.fixture
def app(settings):
    return create_app(settings)


@pytest.fixture
def client(app):
    return TestClient(app)


@pytest.fixture
def session():
    """Provide an isolated in-memory database for each test."""
    engine = build_engine("sqlite://")
    init_db(engine)
    db = build_session_factory(engine)()
    try:
        yield db
    finally:
        db.close()
        engine.dispose()


@pytest.fixture
def make_user(client):
    """Register and log in a user, returning its public fields and auth headers."""

    def _make(role: str = "user", username: str | None = None):
        username = username or f"user{next(_counter)}"
        email = f"{username}@x.com"
        resp = client.post(
            "/api/auth/register",
            json={"username": username, "email": email, "password": "password1", "role": role},
        )
        assert resp.status_code == 201, resp.text
        resp = client.post("/api/auth/login", json={"email": email, "password": "password1"})
        assert resp.status_code == 200, resp.text
        body = resp.json()
        return body["user"], {"Authorization": f"Bearer {body['token']}"}

    return _make
