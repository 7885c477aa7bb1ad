"""
tests/conftest.py -- Shared test fixtures for Taskboard unit and integration tests.

This module provides:
  - test_settings: explicit Settings with fixed secrets and cheap bcrypt
  - RecordingMailer: captures outbound emails so tests can read the tokens
  - user_store / project_store: fresh in-memory SQLite stores per test
  - auth_service / project_service / task_service / note_service
  - api: module-scoped TestClient over the real app with a patched lifespan
  - signup: registers, verifies, and logs in a user through the HTTP API

Design: Named shared-memory SQLite URIs (not plain :memory:) are required
for the TestClient because route handlers run in a thread pool. Plain
:memory: DBs are per-connection and would present a blank schema to each
worker thread. The named URI format (file:name?mode=memory&cache=shared&uri=true)
shares one in-memory instance across all connections in the same process.

The DEBUG env var must be set before api.main is imported so the module-level
get_settings() auto-generates JWT secrets instead of raising ValueError.
"""

from __future__ import annotations

import os
import uuid
from collections.abc import Generator
from contextlib import asynccontextmanager
from dataclasses import dataclass, field

# CRITICAL: Set DEBUG before any api/ import so get_settings() can
# auto-generate JWT secrets in dev mode instead of raising ValueError.
os.environ.setdefault("DEBUG", "true")

import pytest
from fastapi.testclient import TestClient

from api.limiter import limiter
from api.main import app, wire_services
from auth.service import AuthService
from auth.store import UserStore
from auth.tokens import TokenService
from core.config import Settings
from projects.service import NoteService, ProjectService, TaskService
from projects.store import ProjectStore

# Rate limits are exercised by slowapi's own suite; here they would make
# module-scoped clients flaky.
limiter.enabled = False

PASSWORD = "correct-horse-battery"


# ---------------------------------------------------------------------------
# Test doubles
# ---------------------------------------------------------------------------


@dataclass
class SentEmail:
    kind: str  # "verification" or "reset"
    to: str
    token: str


@dataclass
class RecordingMailer:
    """Mailer that keeps every message in memory instead of sending it."""

    sent: list[SentEmail] = field(default_factory=list)

    def send_verification_email(self, to: str, token: str) -> None:
        self.sent.append(SentEmail("verification", to, token))

    def send_password_reset_email(self, to: str, token: str) -> None:
        self.sent.append(SentEmail("reset", to, token))

    def last_token(self, kind: str, to: str) -> str:
        for email in reversed(self.sent):
            if email.kind == kind and email.to == to:
                return email.token
        raise AssertionError(f"no {kind} email sent to {to}")


def _memory_url(name: str) -> str:
    return f"sqlite:///file:{name}_{uuid.uuid4().hex}?mode=memory&cache=shared&uri=true"


# ---------------------------------------------------------------------------
# Unit-level fixtures -- fresh stores for every test
# ---------------------------------------------------------------------------


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        debug=True,
        jwt_access_secret="a" * 48,
        jwt_refresh_secret="r" * 48,
        bcrypt_rounds=4,
        smtp_host="",
    )


@pytest.fixture
def mailer() -> RecordingMailer:
    return RecordingMailer()


@pytest.fixture
def user_store() -> Generator[UserStore, None, None]:
    store = UserStore(_memory_url("users"))
    yield store
    store.close()


@pytest.fixture
def project_store() -> Generator[ProjectStore, None, None]:
    store = ProjectStore(_memory_url("projects"))
    yield store
    store.close()


@pytest.fixture
def tokens(test_settings: Settings) -> TokenService:
    return TokenService(test_settings)


@pytest.fixture
def auth_service(user_store, tokens, mailer, test_settings) -> AuthService:
    return AuthService(user_store, tokens, mailer, test_settings)


@pytest.fixture
def project_service(project_store, user_store) -> ProjectService:
    return ProjectService(project_store, user_store)


@pytest.fixture
def task_service(project_store) -> TaskService:
    return TaskService(project_store)


@pytest.fixture
def note_service(project_store) -> NoteService:
    return NoteService(project_store)


@pytest.fixture
def make_user(auth_service: AuthService, mailer: RecordingMailer):
    """Return a factory that registers and verifies a user, returning its id."""

    def _make(email: str, name: str = "Test User") -> str:
        user = auth_service.register(name, email, PASSWORD)
        auth_service.verify_email(mailer.last_token("verification", user.email))
        return user.id

    return _make


# ---------------------------------------------------------------------------
# Integration fixtures -- one TestClient per test module for speed
# ---------------------------------------------------------------------------


@dataclass
class ApiContext:
    client: TestClient
    mailer: RecordingMailer
    user_store: UserStore


def _patch_lifespan(settings: Settings, user_store: UserStore, project_store: ProjectStore, mailer):
    """Return an async context manager that replaces the real lifespan.

    Wires the test stores and the recording mailer into app.state through the
    same wire_services() the real lifespan uses.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        wire_services(app, settings, user_store, project_store, mailer)
        yield

    return test_lifespan


@pytest.fixture(scope="module")
def api() -> Generator[ApiContext, None, None]:
    settings = Settings(
        debug=True,
        jwt_access_secret="a" * 48,
        jwt_refresh_secret="r" * 48,
        bcrypt_rounds=4,
    )
    user_store = UserStore(_memory_url("api_users"))
    project_store = ProjectStore(_memory_url("api_projects"))
    mailer = RecordingMailer()

    app.router.lifespan_context = _patch_lifespan(settings, user_store, project_store, mailer)

    with TestClient(app, raise_server_exceptions=True) as client:
        yield ApiContext(client=client, mailer=mailer, user_store=user_store)

    user_store.close()
    project_store.close()


@pytest.fixture
def signup(api: ApiContext):
    """Return a factory: register + verify + login over HTTP.

    The factory returns (user_id, headers) where headers carry the Bearer
    access token. Every call uses a fresh email so tests sharing the
    module-scoped client never collide.
    """

    def _signup(name: str = "Api User") -> tuple[str, dict[str, str]]:
        email = f"{uuid.uuid4().hex[:12]}@example.com"
        resp = api.client.post("/api/v1/auth/register", json={"name": name, "email": email, "password": PASSWORD})
        assert resp.status_code == 201, resp.text
        user_id = resp.json()["id"]
        token = api.mailer.last_token("verification", email)
        assert api.client.get(f"/api/v1/auth/verify-email/{token}").status_code == 200
        resp = api.client.post("/api/v1/auth/login", json={"email": email, "password": PASSWORD})
        assert resp.status_code == 200, resp.text
        return user_id, {"Authorization": f"Bearer {resp.json()['access_token']}"}

    return _signup
