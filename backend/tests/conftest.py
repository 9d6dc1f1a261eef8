"""Pytest fixtures: a file-backed SQLite database per test."""
import os
import uuid

# Settings are read at import time; point them at SQLite before the app loads.
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from fastapi.testclient import TestClient

from materix.database import Base, get_db
from materix.main import app

# Import all models so they register with Base.metadata
import materix.models  # noqa: F401

API = "/api/v1"
DEFAULT_PASSWORD = "pa55word-secret"


@pytest.fixture(scope="function")
def db_engine(tmp_path):
    """Create a fresh SQLite engine for each test."""
    engine = create_engine(f"sqlite:///{tmp_path / 'test.db'}", connect_args={"check_same_thread": False})

    # WAL lets two sessions interleave reads and writes
    @event.listens_for(engine, "connect")
    def _set_sqlite_pragma(dbapi_conn, connection_record):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.close()

    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture(scope="function")
def session_factory(db_engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=db_engine)


@pytest.fixture(scope="function")
def db(session_factory):
    """Yield a database session bound to the per-test engine."""
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(scope="function")
def client(session_factory):
    """FastAPI TestClient with the database dependency overridden to use SQLite."""

    def _override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------
def auth_headers(access_token: str) -> dict:
    return {"Authorization": f"Bearer {access_token}"}


def create_test_user(client: TestClient, name: str = "Test User", email: str = None,
                     password: str = DEFAULT_PASSWORD) -> dict:
    """Sign up through the API and return the profile plus credentials."""
    email = email or f"user-{uuid.uuid4().hex[:10]}@example.com"
    resp = client.post(f"{API}/auth/signup", json={
        "name": name,
        "email": email,
        "password": password,
    })
    assert resp.status_code == 201, resp.text
    tokens = resp.json()["tokens"]
    headers = auth_headers(tokens["access_token"])
    me = client.get(f"{API}/users/me", headers=headers)
    assert me.status_code == 200, me.text
    user = me.json()["user"]
    user.update({"password": password, "tokens": tokens, "headers": headers})
    return user


def make_friends(client: TestClient, user_a: dict, user_b: dict) -> dict:
    """A sends, B accepts; returns the accepted request JSON."""
    resp = client.post(f"{API}/friends/requests", json={"destination_id": user_b["id"]},
                       headers=user_a["headers"])
    assert resp.status_code == 201, resp.text
    request_id = resp.json()["request"]["id"]
    resp = client.put(f"{API}/friends/requests/{request_id}", headers=user_b["headers"])
    assert resp.status_code == 200, resp.text
    return resp.json()["request"]
