"""
tests/conftest.py -- Shared test fixtures for JobBoard integration tests.

This module provides:
  - make_test_stores(): creates isolated in-memory DBs for users + jobs
  - _patch_lifespan(): wires test stores into app.state, bypassing real startup
  - api_client: TestClient plus a candidate and a recruiter, each with a token

Design: Named shared-memory SQLite URIs (not plain :memory:) are required
because TestClient runs route handlers in a thread pool. Plain :memory: DBs
are per-connection and would present a blank schema to each worker thread.
The named URI format (file:name?mode=memory&cache=shared&uri=true) shares
one in-memory instance across all connections in the same process.

Environment variables must be set before any auth/core import, because
get_settings() is cached on first call and several modules read it at import.
"""

from __future__ import annotations

import os
import uuid
from collections.abc import Generator
from contextlib import asynccontextmanager
from dataclasses import dataclass

# CRITICAL: configure Settings before any application import.
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("SECRET_KEY", "test-secret-key-that-is-at-least-32-characters")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")

import pytest
from fastapi.testclient import TestClient

from api.main import app
from auth.models import Role, User
from auth.passwords import Password
from auth.store import UserStore
from auth.tokens import TokenService
from core.config import get_settings
from jobs.store import JobStore

CANDIDATE_PASSWORD = "candidate-pass-123"
RECRUITER_PASSWORD = "recruiter-pass-123"


# ---------------------------------------------------------------------------
# Store helpers
# ---------------------------------------------------------------------------


def make_test_stores(db_suffix: str) -> tuple[UserStore, JobStore]:
    """Create isolated named shared-memory SQLite stores for test isolation.

    Args:
        db_suffix: Unique string appended to the DB name so test modules
                   never share state.
    """
    users_url = f"sqlite:///file:test_users_{db_suffix}?mode=memory&cache=shared&uri=true"
    jobs_url = f"sqlite:///file:test_jobs_{db_suffix}?mode=memory&cache=shared&uri=true"
    return UserStore(db_url=users_url), JobStore(db_url=jobs_url)


def make_user(store: UserStore, name: str, email: str, password: str, role: Role = Role.candidate) -> User:
    user = User(name=name, email=email, role=role, password=Password())
    user.password.set(password)
    store.create_user(user)
    return user


def _patch_lifespan(user_store: UserStore, job_store: JobStore, token_service: TokenService):
    """Return an async context manager that replaces the real lifespan.

    Wires pre-created test stores into app.state so TestClient routes see
    isolated test DBs rather than the configured DATABASE_URL.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.user_store = user_store
        app.state.job_store = job_store
        app.state.token_service = token_service
        yield

    return test_lifespan


# ---------------------------------------------------------------------------
# Module-scoped fixtures -- one TestClient per test module for speed
# ---------------------------------------------------------------------------


@dataclass
class ApiContext:
    client: TestClient
    tokens: TokenService
    candidate: User
    recruiter: User
    candidate_token: str
    recruiter_token: str

    def auth(self, token: str) -> dict[str, str]:
        return {"Authorization": f"Bearer {token}"}


@pytest.fixture(scope="module")
def api_client() -> Generator[ApiContext, None, None]:
    """Yield an ApiContext for API integration tests.

    The TestClient uses the real FastAPI app with a patched lifespan so
    tests hit real route handlers, middleware and exception handlers but use
    isolated in-memory stores. A candidate and a recruiter are created
    directly through the store before the client starts.
    """
    user_store, job_store = make_test_stores(uuid.uuid4().hex)
    tokens = TokenService(get_settings().secret_key, ttl_seconds=3600)

    candidate = make_user(user_store, "Cara Candidate", "cara@example.com", CANDIDATE_PASSWORD)
    recruiter = make_user(user_store, "Rita Recruiter", "rita@example.com", RECRUITER_PASSWORD, Role.recruiter)

    app.router.lifespan_context = _patch_lifespan(user_store, job_store, tokens)

    with TestClient(app, raise_server_exceptions=True) as client:
        yield ApiContext(
            client=client,
            tokens=tokens,
            candidate=candidate,
            recruiter=recruiter,
            candidate_token=tokens.issue(candidate.id, candidate.role),
            recruiter_token=tokens.issue(recruiter.id, recruiter.role),
        )

    user_store.close()
    job_store.close()
