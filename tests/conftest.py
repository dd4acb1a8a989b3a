"""Shared test fixtures for Axiss Nav tests."""
import os
import tempfile
from pathlib import Path

# Configuration is read once at import time, so the environment has to be in
# place before anything from axiss_nav is imported.
_TMP_DIR = Path(tempfile.mkdtemp(prefix="axiss-nav-tests-"))
os.environ["DATABASE_URL"] = f"sqlite:///{_TMP_DIR / 'test.db'}"
os.environ["SECRET_KEY"] = "test-secret"
os.environ["ALLOW_PRIVATE_FETCH"] = ""
for _key in ("OPENAI_API_KEY", "DEEPSEEK_API_KEY", "CLAUDE_API_KEY", "GEMINI_API_KEY"):
    os.environ[_key] = ""

import pytest
from fastapi.testclient import TestClient

from axiss_nav import models  # noqa: F401
from axiss_nav.app import app
from axiss_nav.cache import cache
from axiss_nav.db import Base, engine, SessionLocal


@pytest.fixture()
def db():
    """Fresh schema for every test, plus a session for direct inspection."""
    Base.metadata.drop_all(engine)
    Base.metadata.create_all(engine)
    cache.clear()
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def client(db):
    with TestClient(app) as c:
        yield c


@pytest.fixture()
def register_user(client):
    def _register(username="alice", email=None, password="secret123"):
        r = client.post("/api/auth/register", json={
            "username": username,
            "email": email or f"{username}@example.com",
            "password": password,
        })
        assert r.status_code == 200, r.text
        return r.json()["user"]
    return _register


@pytest.fixture()
def user(register_user):
    """A registered user whose session cookie is held by `client`."""
    return register_user()


@pytest.fixture()
def make_link(client, user):
    def _make(url="https://example.com", title="Example", **extra):
        r = client.post("/api/links", json={"url": url, "title": title, **extra})
        assert r.status_code == 200, r.text
        return r.json()
    return _make
