# =============================================================================
# app/auth/models.py - Authentication Models
# =============================================================================
# Pydantic models for authentication data.
# =============================================================================

from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class Role(str, Enum):
    """
    Roles carried in Supabase user_metadata.roles.

    'parent' is the older spelling of 'guardian'; both are accepted.
    """
    ADMIN = "admin"
    PRINCIPAL = "principal"
    TEACHER = "teacher"
    GUARDIAN = "guardian"
    PARENT = "parent"
    STUDENT = "student"


STAFF_ROLES = (Role.ADMIN, Role.PRINCIPAL, Role.TEACHER)
ALL_ROLES = (Role.ADMIN, Role.PRINCIPAL, Role.TEACHER, Role.GUARDIAN, Role.PARENT)


class AuthUser(BaseModel):
    """
    Authenticated user extracted from a Supabase JWT.

    Roles and org come from the token's user_metadata claim, so no
    database round-trip is needed for most authorization checks.
    """
    model_config = ConfigDict(frozen=True)

    id: UUID
    email: Optional[str] = None
    roles: tuple[str, ...] = ()
    active_role: Optional[str] = None
    org_id: Optional[str] = None
    metadata: dict[str, Any] = Field(default_factory=dict)

    def has_role(self, *roles: Role | str) -> bool:
        """True if the user holds any of the given roles."""
        wanted = {r.value if isinstance(r, Role) else r for r in roles}
        return any(role in wanted for role in self.roles)

    @property
    def is_admin(self) -> bool:
        return self.has_role(Role.ADMIN)

    @property
    def is_admin_or_principal(self) -> bool:
        return self.has_role(Role.ADMIN, Role.PRINCIPAL)

    @property
    def is_teacher(self) -> bool:
        return self.has_role(Role.TEACHER)

    @property
    def is_guardian(self) -> bool:
        return self.has_role(Role.GUARDIAN, Role.PARENT)

    @property
    def primary_role(self) -> Optional[str]:
        """The active role if it is one the user holds, else the first role."""
        if self.active_role and self.active_role in self.roles:
            return self.active_role
        return self.roles[0] if self.roles else None

    @classmethod
    def from_claims(cls, payload: dict[str, Any]) -> "AuthUser":
        """
        Build from decoded JWT claims.

        org_id has been stored under three different keys over time;
        all of them are honoured.
        """
        metadata = payload.get("user_metadata") or {}
        raw_roles = metadata.get("roles") or []
        if isinstance(raw_roles, str):
            raw_roles = [raw_roles]
        roles = tuple(dict.fromkeys(str(r) for r in raw_roles if r))

        org_id = (
            metadata.get("org_id")
            or metadata.get("organization_id")
            or metadata.get("orgId")
        )

        return cls(
            id=UUID(payload["sub"]),
            email=payload.get("email"),
            roles=roles,
            active_role=metadata.get("activeRole"),
            org_id=org_id,
            metadata=metadata,
        )


class UserResponse(BaseModel):
    """
    Full user response for API endpoints.

    Includes profile data from the public.users table.
    """
    id: UUID
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    role: Optional[str] = None
    org_id: Optional[str] = None
    is_active: Optional[bool] = None
    created_at: Optional[datetime] = None


class UserContextResponse(BaseModel):
    """Everything the client needs to pick a dashboard for the caller."""
    id: UUID
    email: Optional[str] = None
    roles: list[str]
    active_role: Optional[str] = None
    org_id: str
