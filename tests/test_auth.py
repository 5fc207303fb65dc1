# =============================================================================
# tests/test_auth.py - Authentication and Tenancy Tests
# =============================================================================
# Covers:
# - AuthUser construction from JWT claims
# - Role helpers
# - Org resolution (token first, users table second)
# - HS256 token verification end to end
# =============================================================================

import time
from uuid import UUID

import pytest
from fastapi.testclient import TestClient
from jose import jwt

from app.auth.dependencies import resolve_org_id
from app.auth.models import AuthUser
from app.exceptions import OrgNotFoundError
from tests.conftest import ORG_ID, OTHER_ORG_ID, PRINCIPAL_ID, TEACHER_ID, make_user

JWT_SECRET = "test-jwt-secret"


def make_token(sub: str = TEACHER_ID, expires_in: int = 3600, **metadata) -> str:
    payload = {
        "sub": sub,
        "email": "teacher@example.com",
        "aud": "authenticated",
        "exp": int(time.time()) + expires_in,
        "user_metadata": metadata,
    }
    return jwt.encode(payload, JWT_SECRET, algorithm="HS256")


# =============================================================================
# AuthUser
# =============================================================================

class TestFromClaims:

    def test_roles_and_active_role(self):
        user = AuthUser.from_claims({
            "sub": TEACHER_ID,
            "user_metadata": {"roles": ["teacher", "principal", "teacher"], "activeRole": "principal", "org_id": ORG_ID},
        })
        assert user.id == UUID(TEACHER_ID)
        assert user.roles == ("teacher", "principal")
        assert user.primary_role == "principal"
        assert user.org_id == ORG_ID

    @pytest.mark.parametrize("key", ["org_id", "organization_id", "orgId"])
    def test_org_id_keys(self, key):
        user = AuthUser.from_claims({"sub": TEACHER_ID, "user_metadata": {key: ORG_ID}})
        assert user.org_id == ORG_ID

    def test_single_role_string(self):
        user = AuthUser.from_claims({"sub": TEACHER_ID, "user_metadata": {"roles": "guardian"}})
        assert user.roles == ("guardian",)
        assert user.is_guardian

    def test_missing_metadata(self):
        user = AuthUser.from_claims({"sub": TEACHER_ID})
        assert user.roles == ()
        assert user.primary_role is None


class TestRoleHelpers:

    def test_active_role_not_held_falls_back(self):
        assert make_user(TEACHER_ID, "teacher", active_role="admin").primary_role == "teacher"

    def test_parent_counts_as_guardian(self):
        assert make_user(TEACHER_ID, "parent").is_guardian

    def test_admin_or_principal(self):
        assert make_user(PRINCIPAL_ID, "principal").is_admin_or_principal
        assert not make_user(TEACHER_ID, "teacher").is_admin_or_principal


# =============================================================================
# Org Resolution
# =============================================================================

class TestResolveOrgId:

    def test_token_org_needs_no_query(self, supabase, teacher):
        assert resolve_org_id(teacher) == ORG_ID
        assert not supabase.touched("users")

    def test_falls_back_to_users_table(self, supabase):
        supabase.on("users", {"id": TEACHER_ID, "org_id": OTHER_ORG_ID})
        assert resolve_org_id(make_user(TEACHER_ID, "teacher", org_id=None)) == OTHER_ORG_ID

    def test_no_org_anywhere(self, supabase):
        supabase.on("users", {"id": TEACHER_ID, "org_id": None})
        with pytest.raises(OrgNotFoundError) as exc_info:
            resolve_org_id(make_user(TEACHER_ID, "teacher", org_id=None))
        assert exc_info.value.status_code == 400


# =============================================================================
# Token Verification
# =============================================================================

class TestTokenVerification:

    @pytest.fixture
    def client(self, supabase):
        from app.main import app
        app.dependency_overrides.clear()
        return TestClient(app)

    def test_valid_token(self, client):
        token = make_token(roles=["teacher"], org_id=ORG_ID)
        response = client.get("/api/v1/auth/user-context", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 200
        body = response.json()
        assert body["roles"] == ["teacher"]
        assert body["org_id"] == ORG_ID
        assert body["active_role"] == "teacher"

    def test_expired_token(self, client):
        token = make_token(expires_in=-60, roles=["teacher"])
        response = client.get("/api/v1/auth/user-context", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401
        assert response.json()["detail"] == "Token has expired"

    def test_wrong_secret(self, client):
        token = jwt.encode(
            {"sub": TEACHER_ID, "aud": "authenticated", "exp": int(time.time()) + 60},
            "some-other-secret",
            algorithm="HS256",
        )
        response = client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401

    def test_missing_header(self, client):
        assert client.get("/api/v1/stories").status_code in (401, 403)

    def test_user_without_org(self, client, supabase):
        supabase.on("users", None)
        token = make_token(roles=["teacher"])
        response = client.get("/api/v1/auth/user-context", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 400
        assert response.json()["code"] == "ORG_NOT_FOUND"
