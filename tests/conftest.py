"""
tests/conftest.py -- Shared test fixtures for Taskboard unit and integration tests.

This module provides:
  - FakeRedis: dict-backed stand-in for the redis client methods the cache uses
  - engine / user_store / task_store / service: in-memory unit-test wiring
  - api_client: TestClient with an admin JWT for API integration tests

Design: the API fixture pins an in-memory SQLite database to one StaticPool
connection because TestClient runs sync route handlers in a thread pool.
Plain :memory: DBs are per-connection and would present a blank schema to
each worker thread.

DEBUG must be set before any auth/core import so get_settings() can
auto-generate SECRET_KEY instead of raising ValueError. LOGIN_RATE_LIMIT is
raised so the many logins in the suite never trip the limiter.
"""

from __future__ import annotations

import os
import uuid
from collections.abc import Generator
from contextlib import asynccontextmanager

os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("LOGIN_RATE_LIMIT", "1000/minute")
os.environ.pop("REDIS_URL", None)

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool

from api.main import app
from auth.models import ROLE_ADMIN, User
from auth.store import UserStore
from auth.tokens import create_access_token, hash_password
from cache.store import RedisTaskCache
from core.database import create_schema, make_engine
from tasks.service import TaskService
from tasks.store import TaskStore

STRONG_PASSWORD = "Str0ng!pass"


# ---------------------------------------------------------------------------
# Redis test double
# ---------------------------------------------------------------------------


class FakeRedis:
    """In-memory replacement for the subset of redis.Redis used by RedisTaskCache.

    Records the `ex` passed to set() so tests can assert the TTL without
    sleeping. Expiry itself is not simulated.
    """

    def __init__(self) -> None:
        self.data: dict[str, bytes] = {}
        self.ttls: dict[str, int | None] = {}

    def get(self, key: str) -> bytes | None:
        return self.data.get(key)

    def set(self, key: str, value, ex: int | None = None) -> bool:
        self.data[key] = value.encode("utf-8") if isinstance(value, str) else value
        self.ttls[key] = ex
        return True

    def delete(self, *keys: str) -> int:
        removed = 0
        for key in keys:
            if self.data.pop(key, None) is not None:
                removed += 1
            self.ttls.pop(key, None)
        return removed

    def ping(self) -> bool:
        return True

    def close(self) -> None:
        pass


# ---------------------------------------------------------------------------
# Unit-test wiring (function scoped, fresh DB per test)
# ---------------------------------------------------------------------------


@pytest.fixture
def engine():
    eng = make_engine("sqlite:///:memory:")
    create_schema(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def user_store(engine) -> UserStore:
    return UserStore(engine)


@pytest.fixture
def task_store(engine) -> TaskStore:
    return TaskStore(engine)


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def service(task_store: TaskStore, fake_redis: FakeRedis) -> TaskService:
    return TaskService(task_store, RedisTaskCache(fake_redis, ttl=300))


def make_user(user_store: UserStore, username: str = "alice", role: str = "user") -> int:
    """Insert a user with a unique email and return its id."""
    return user_store.create_user(
        User(
            username=username,
            email=f"{username}-{uuid.uuid4().hex[:8]}@example.com",
            role=role,
            hashed_password=hash_password(STRONG_PASSWORD),
        )
    )


# ---------------------------------------------------------------------------
# Integration wiring (module scoped, one TestClient per test module)
# ---------------------------------------------------------------------------


def _patch_lifespan(engine, user_store: UserStore, fake_redis: FakeRedis):
    """Return an async context manager that replaces the real lifespan.

    Wires the test engine, stores, and a FakeRedis-backed cache into
    app.state so routes hit real handlers against isolated test state.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.engine = engine
        app.state.user_store = user_store
        app.state.cache = RedisTaskCache(fake_redis, ttl=300)
        app.state.task_service = TaskService(TaskStore(engine), app.state.cache)
        yield

    return test_lifespan


@pytest.fixture(scope="module")
def api_redis() -> FakeRedis:
    """The FakeRedis behind the API client's cache, for asserting cache state."""
    return FakeRedis()


@pytest.fixture(scope="module")
def api_client(api_redis: FakeRedis) -> Generator[tuple[TestClient, str, int], None, None]:
    """Yield (client, token, user_id) for API integration tests.

    The admin user is created before the client starts and its JWT is
    returned for use in Authorization headers.
    """
    eng = make_engine("sqlite://", poolclass=StaticPool)
    create_schema(eng)
    user_store = UserStore(eng)

    uid = user_store.create_user(
        User(
            username="testadmin",
            email="admin@example.com",
            role=ROLE_ADMIN,
            hashed_password=hash_password(STRONG_PASSWORD),
        )
    )
    token = create_access_token(uid, ROLE_ADMIN)

    app.router.lifespan_context = _patch_lifespan(eng, user_store, api_redis)

    with TestClient(app, raise_server_exceptions=True) as client:
        yield client, token, uid

    eng.dispose()


def register_and_login(client: TestClient, username: str | None = None) -> tuple[str, int]:
    """Register a fresh user through the API and return (token, user_id)."""
    username = username or f"user{uuid.uuid4().hex[:8]}"
    email = f"{username}@example.com"
    resp = client.post(
        "/api/v1/users/register",
        json={"username": username, "email": email, "password": STRONG_PASSWORD},
    )
    assert resp.status_code == 201, resp.text
    resp = client.post("/api/v1/users/login", json={"email": email, "password": STRONG_PASSWORD})
    assert resp.status_code == 200, resp.text
    data = resp.json()
    return data["token"], data["user"]["id"]


def auth(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}
