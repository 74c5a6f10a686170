# tests/conftest.py
# PURPOSE: create a TestClient and override DB dependency to use a temp SQLite file.

import os

# Settings are read at import time: a test secret and a cheap bcrypt work factor
os.environ.setdefault("JWT_SECRET", "test-signing-secret-0123456789")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("DATABASE_URL", "sqlite://")

import tempfile
from typing import Dict

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from fastapi.testclient import TestClient

from taskboard import db_models  # noqa: F401  (registers tables)
from taskboard.db import Base  # DB metadata
from taskboard.main import app  # FastAPI app
from taskboard.store_db import get_db  # real dependency to override

PASSWORD = "Abcdef1!"


@pytest.fixture()
def client():
    # 1) Create a temporary SQLite file (so data is isolated per test)
    tmp = tempfile.NamedTemporaryFile(suffix=".db", delete=False)
    tmp.close()
    test_db_url = f"sqlite:///{tmp.name}"

    # 2) Create a new engine/session factory for tests
    engine = create_engine(test_db_url, connect_args={"check_same_thread": False})
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    # 3) Create tables for tests
    Base.metadata.create_all(bind=engine)

    # 4) Override the app's get_db dependency to use our TestingSessionLocal
    def override_get_db():
        db = TestingSessionLocal()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db

    # 5) Yield a TestClient (context manager ensures proper startup/shutdown)
    with TestClient(app) as c:
        yield c

    # 6) Cleanup: remove overrides, drop tables, dispose engine, delete temp file
    app.dependency_overrides.clear()
    Base.metadata.drop_all(bind=engine)
    engine.dispose()
    os.unlink(tmp.name)


def register(client, email: str, username: str = "alice", password: str = PASSWORD, **extra) -> Dict:
    """Helper: register a user and return response JSON."""
    r = client.post(
        "/api/users/register",
        json={"username": username, "email": email, "password": password, **extra},
    )
    assert r.status_code == 201, r.text
    return r.json()


def bearer(token: str) -> Dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture()
def alice(client) -> Dict[str, str]:
    """Auth headers for a freshly registered user."""
    return bearer(register(client, "a@x.com", "alice")["token"])


@pytest.fixture()
def bob(client) -> Dict[str, str]:
    return bearer(register(client, "b@x.com", "bob")["token"])
