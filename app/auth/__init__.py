# =============================================================================
# app/auth/__init__.py - Authentication Module
# =============================================================================
# Verifies Supabase Auth JWTs and exposes role/org dependencies.
#
# Usage:
#   from app.auth import get_current_user, require_roles, get_org_id, AuthUser
#
#   @router.get("/protected")
#   async def protected(user: AuthUser = Depends(get_current_user)):
#       return {"user_id": user.id}
# =============================================================================

from app.auth.dependencies import (
    get_current_user,
    get_org_id,
    require_roles,
    resolve_org_id,
)
from app.auth.models import (
    ALL_ROLES,
    STAFF_ROLES,
    AuthUser,
    Role,
    UserContextResponse,
    UserResponse,
)

__all__ = [
    "get_current_user",
    "get_org_id",
    "require_roles",
    "resolve_org_id",
    "ALL_ROLES",
    "STAFF_ROLES",
    "AuthUser",
    "Role",
    "UserContextResponse",
    "UserResponse",
]
