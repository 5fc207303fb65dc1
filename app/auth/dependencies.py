# =============================================================================
# app/auth/dependencies.py - FastAPI Auth Dependencies
# =============================================================================
# Provides dependency injection for authentication and tenancy.
#
# Supports both:
# - ES256 (new Supabase JWT signing keys) via JWKS
# - HS256 (legacy Supabase JWT secret) as fallback
#
# Usage:
#   from app.auth import require_roles, get_org_id, AuthUser
#
#   @router.get("/stories")
#   async def list_stories(
#       user: AuthUser = Depends(require_roles("principal", "teacher")),
#       org_id: str = Depends(get_org_id),
#   ):
#       ...
# =============================================================================

import logging
import time
from typing import Callable

import httpx
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import jwt, JWTError, ExpiredSignatureError

from app.config import settings
from app.auth.models import AuthUser, Role
from app.exceptions import InsufficientRoleError, OrgNotFoundError
from lib.supabase_client import SupabaseClient, SupabaseClientError

logger = logging.getLogger(__name__)

# HTTP Bearer token extractor
security = HTTPBearer()

# Cache for JWKS keys
_jwks_cache: dict = {}
_jwks_cache_time: float = 0
JWKS_CACHE_TTL = 3600  # 1 hour


def _get_jwks_url() -> str:
    """Get the JWKS URL from Supabase URL."""
    supabase_url = settings.SUPABASE_URL.rstrip('/')
    return f"{supabase_url}/auth/v1/.well-known/jwks.json"


def _fetch_jwks() -> dict:
    """Fetch JWKS from Supabase with caching."""
    global _jwks_cache, _jwks_cache_time

    current_time = time.time()

    if _jwks_cache and (current_time - _jwks_cache_time) < JWKS_CACHE_TTL:
        return _jwks_cache

    try:
        jwks_url = _get_jwks_url()
        response = httpx.get(jwks_url, timeout=10)
        response.raise_for_status()
        _jwks_cache = response.json()
        _jwks_cache_time = current_time
        logger.debug(f"Fetched JWKS from {jwks_url}")
        return _jwks_cache
    except httpx.HTTPError as e:
        logger.warning(f"Failed to fetch JWKS: {e}")
        # Stale keys beat no keys
        if _jwks_cache:
            return _jwks_cache
        return {"keys": []}


def _get_signing_key(token: str) -> tuple[str | dict, str]:
    """
    Get the appropriate signing key for a token.

    Returns:
        Tuple of (key, algorithm) to use for verification
    """
    try:
        unverified_header = jwt.get_unverified_header(token)
    except JWTError:
        return settings.SUPABASE_JWT_SECRET, "HS256"

    alg = unverified_header.get("alg", "HS256")
    kid = unverified_header.get("kid")

    if alg == "HS256":
        return settings.SUPABASE_JWT_SECRET, "HS256"

    if kid:
        jwks = _fetch_jwks()
        for key in jwks.get("keys", []):
            if key.get("kid") == kid:
                return key, alg

    logger.warning(f"Could not find key for alg={alg}, kid={kid}, falling back to HS256")
    return settings.SUPABASE_JWT_SECRET, "HS256"


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security)
) -> AuthUser:
    """
    Extract and validate user from Supabase JWT token.

    This dependency:
    1. Extracts the Bearer token from the Authorization header
    2. Verifies the JWT signature (supports ES256 and HS256)
    3. Validates the token hasn't expired
    4. Returns an AuthUser carrying roles and org_id from user_metadata

    Raises:
        HTTPException: 401 if token is invalid or expired
    """
    token = credentials.credentials

    try:
        signing_key, algorithm = _get_signing_key(token)

        payload = jwt.decode(
            token,
            signing_key,
            algorithms=[algorithm],
            audience="authenticated"
        )

    except ExpiredSignatureError:
        logger.warning("JWT token has expired")
        raise _unauthorized("Token has expired")

    except JWTError as e:
        logger.warning(f"JWT validation failed: {e}")
        raise _unauthorized(f"Invalid token: {str(e)}")

    user_id = payload.get("sub")
    if not user_id:
        logger.warning("JWT token missing 'sub' claim")
        raise _unauthorized("Invalid token: missing user ID")

    try:
        user = AuthUser.from_claims(payload)
    except ValueError:
        logger.warning(f"Invalid UUID in token: {user_id}")
        raise _unauthorized("Invalid token: malformed user ID")

    logger.debug(f"Authenticated user: {user_id} roles={list(user.roles)}")
    return user


def require_roles(*roles: Role | str) -> Callable[..., AuthUser]:
    """
    Dependency factory gating a route on role membership.

    The user passes when they hold at least one of `roles`.

    Usage:
        @router.post("")
        async def create(user: AuthUser = Depends(require_roles(Role.PRINCIPAL, Role.ADMIN))):
            ...
    """
    allowed = [r.value if isinstance(r, Role) else r for r in roles]

    async def _check(user: AuthUser = Depends(get_current_user)) -> AuthUser:
        if not user.has_role(*allowed):
            logger.info(f"User {user.id} with roles {list(user.roles)} denied; needs one of {allowed}")
            raise InsufficientRoleError(required=allowed, actual=list(user.roles))
        return user

    return _check


def resolve_org_id(user: AuthUser) -> str:
    """
    Organization of the user.

    Checks the token's user_metadata first, then the users table.

    Raises:
        OrgNotFoundError: If neither source has an org_id
    """
    if user.org_id:
        return user.org_id

    try:
        row = SupabaseClient.fetch_user(user.id)
    except SupabaseClientError as e:
        logger.error(f"Org lookup failed for user {user.id}: {e}")
        raise OrgNotFoundError(str(user.id))

    if not row or not row.get("org_id"):
        raise OrgNotFoundError(str(user.id))

    return str(row["org_id"])


async def get_org_id(user: AuthUser = Depends(get_current_user)) -> str:
    """Dependency form of resolve_org_id."""
    return resolve_org_id(user)
