# =============================================================================
# tests/conftest.py - Pytest Configuration
# =============================================================================
# This module provides pytest fixtures and configuration for all tests.
#
# Key features:
# - Sets up mock environment variables before any imports
# - A fake Supabase client whose query builders are MagicMocks
# - AuthUser fixtures for each role
# - A TestClient with authentication overridden
# =============================================================================

import os

# =============================================================================
# Set up test environment BEFORE any imports
# =============================================================================
# This must happen before importing app.config which loads settings immediately

os.environ.setdefault("SUPABASE_URL", "https://test-project.supabase.co")
os.environ.setdefault("SUPABASE_ANON_KEY", "test-anon-key")
os.environ.setdefault("SUPABASE_SERVICE_KEY", "test-service-key")
os.environ.setdefault("SUPABASE_JWT_SECRET", "test-jwt-secret")
os.environ.setdefault("ENVIRONMENT", "development")
os.environ.setdefault("NOTIFICATION_FANOUT_MODE", "inline")
os.environ.setdefault("DEBUG", "true")

from typing import Any
from unittest.mock import MagicMock, patch
from uuid import UUID

import pytest

from app.auth.models import AuthUser

ORG_ID = "11111111-1111-1111-1111-111111111111"
OTHER_ORG_ID = "99999999-9999-9999-9999-999999999999"
PRINCIPAL_ID = "22222222-2222-2222-2222-222222222222"
TEACHER_ID = "33333333-3333-3333-3333-333333333333"
GUARDIAN_ID = "44444444-4444-4444-4444-444444444444"
ADMIN_ID = "55555555-5555-5555-5555-555555555555"
CLASS_A = "aaaaaaaa-aaaa-aaaa-aaaa-aaaaaaaaaaaa"
CLASS_B = "bbbbbbbb-bbbb-bbbb-bbbb-bbbbbbbbbbbb"
CLASS_C = "cccccccc-cccc-cccc-cccc-cccccccccccc"

# Every chainable method of a supabase-py query builder
BUILDER_METHODS = (
    "select", "insert", "update", "upsert", "delete",
    "eq", "neq", "gt", "gte", "lt", "lte", "is_", "in_", "or_", "ilike",
    "order", "limit", "range", "single", "maybe_single",
)


# =============================================================================
# Fake Supabase
# =============================================================================

def make_response(data: Any = None, count: int | None = None) -> MagicMock:
    """An APIResponse lookalike with .data and .count."""
    response = MagicMock()
    response.data = data
    response.count = count
    return response


def make_builder(*results: Any) -> MagicMock:
    """
    A query builder whose chain methods return itself.

    Each execute() consumes the next result; the last one repeats. A
    result may be plain data, a response from make_response, None (what
    maybe_single() yields when nothing matches) or an exception to raise.
    """
    builder = MagicMock()
    for method in BUILDER_METHODS:
        getattr(builder, method).return_value = builder
    builder.not_ = builder

    queue = list(results) if results else [[]]

    def _execute():
        item = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(item, Exception):
            raise item
        if item is None or isinstance(item, MagicMock):
            return item
        return make_response(item)

    builder.execute.side_effect = _execute
    return builder


class FakeSupabase:
    """
    Supabase client stand-in with one builder per table.

    Usage:
        fake.on("stories", [{"id": "s1"}])
        ...
        fake.table("stories").eq.assert_any_call("org_id", ORG_ID)
    """

    def __init__(self):
        self.builders: dict[str, MagicMock] = {}
        self.client = MagicMock()
        self.client.table.side_effect = self.table

    def on(self, table: str, *results: Any) -> MagicMock:
        self.builders[table] = make_builder(*results)
        return self.builders[table]

    def table(self, name: str) -> MagicMock:
        if name not in self.builders:
            self.builders[name] = make_builder()
        return self.builders[name]

    def touched(self, name: str) -> bool:
        return name in self.builders and self.builders[name].execute.called


@pytest.fixture
def supabase():
    """Patch SupabaseClient.get_client with a FakeSupabase."""
    fake = FakeSupabase()
    with patch("lib.supabase_client.SupabaseClient.get_client", return_value=fake.client):
        yield fake


# =============================================================================
# Users
# =============================================================================

def make_user(user_id: str, *roles: str, org_id: str | None = ORG_ID, active_role: str | None = None) -> AuthUser:
    return AuthUser(
        id=UUID(user_id),
        email=f"{roles[0] if roles else 'user'}@example.com",
        roles=tuple(roles),
        active_role=active_role,
        org_id=org_id,
    )


@pytest.fixture
def principal() -> AuthUser:
    return make_user(PRINCIPAL_ID, "principal")


@pytest.fixture
def teacher() -> AuthUser:
    return make_user(TEACHER_ID, "teacher")


@pytest.fixture
def guardian() -> AuthUser:
    return make_user(GUARDIAN_ID, "guardian")


@pytest.fixture
def admin() -> AuthUser:
    return make_user(ADMIN_ID, "admin")


# =============================================================================
# API Client
# =============================================================================

@pytest.fixture
def api(supabase):
    """
    TestClient factory authenticating as the given user.

    Usage:
        client = api(teacher)
        client.get("/api/v1/stories")
    """
    from fastapi.testclient import TestClient

    from app.auth.dependencies import get_current_user
    from app.main import app

    def _client(user: AuthUser) -> TestClient:
        app.dependency_overrides[get_current_user] = lambda: user
        return TestClient(app)

    yield _client
    app.dependency_overrides.clear()
