# tests/conftest.py

from __future__ import annotations

import os

# must be set before the app modules build their engine
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("SECRET_KEY", "test-secret")

from collections.abc import Callable, Iterator  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.orm import Session  # noqa: E402

from database import Base, SessionLocal, engine  # noqa: E402
from main import app  # noqa: E402
from seed import seed_default_categories  # noqa: E402

PASSWORD = "correct-horse"


@pytest.fixture()
def db() -> Iterator[Session]:
    """
    Fresh in-memory schema with the system categories seeded.

    The API and this session share the same single SQLite connection,
    so API tests should talk to the app over HTTP only.
    """
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    seed_default_categories(session)
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def client(db: Session) -> Iterator[TestClient]:
    with TestClient(app) as c:
        yield c


@pytest.fixture()
def make_user(client: TestClient) -> Callable[..., dict[str, str]]:
    """Register + log in; returns bearer headers for that user."""

    def _make(username: str, password: str = PASSWORD, **profile) -> dict[str, str]:
        resp = client.post("/api/register", json={"username": username, "password": password, **profile})
        assert resp.status_code == 201, resp.text
        resp = client.post("/api/login", data={"username": username, "password": password})
        assert resp.status_code == 200, resp.text
        return {"Authorization": f"Bearer {resp.json()['access_token']}"}

    return _make


@pytest.fixture()
def alice(make_user) -> dict[str, str]:
    return make_user("alice", name="Alice")


@pytest.fixture()
def bob(make_user) -> dict[str, str]:
    return make_user("bob")
