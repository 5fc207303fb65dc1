# =============================================================================
# app/auth/routes.py - Authentication Routes
# =============================================================================
# API endpoints for authentication-related operations.
#
# Note: Actual signup/login is handled by Supabase Auth client-side.
# These routes are for getting user info after authentication.
# =============================================================================

import logging
from fastapi import APIRouter, Depends

from app.auth.dependencies import get_current_user, resolve_org_id
from app.auth.models import AuthUser, UserContextResponse, UserResponse
from lib.supabase_client import SupabaseClient, SupabaseClientError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Auth"])


@router.get("/me", response_model=UserResponse)
async def get_current_user_info(
    user: AuthUser = Depends(get_current_user)
) -> UserResponse:
    """
    Get the current authenticated user's profile.

    Returns:
        UserResponse: Profile from the users table

    Raises:
        401: If not authenticated
    """
    try:
        row = SupabaseClient.fetch_user(user.id)
        if row:
            return UserResponse(**row)

    except SupabaseClientError as e:
        logger.warning(f"Could not fetch user profile: {e}")

    # User exists in auth but has no domain row yet
    return UserResponse(
        id=user.id,
        email=user.email,
        role=user.primary_role,
        org_id=user.org_id,
    )


@router.get("/user-context", response_model=UserContextResponse)
async def get_user_context(
    user: AuthUser = Depends(get_current_user)
) -> UserContextResponse:
    """
    Roles, active role and resolved organization of the caller.

    Raises:
        400: If no organization can be resolved
        401: If not authenticated
    """
    org_id = resolve_org_id(user)

    return UserContextResponse(
        id=user.id,
        email=user.email,
        roles=list(user.roles),
        active_role=user.primary_role,
        org_id=org_id,
    )
