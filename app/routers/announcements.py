# =============================================================================
# app/routers/announcements.py - Announcement Endpoints
# =============================================================================
# Weekly announcements from staff to a class or the whole organization.
# =============================================================================

import logging
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Path, Query, Response, status

from app.auth import (
    ALL_ROLES,
    STAFF_ROLES,
    AuthUser,
    get_org_id,
    require_roles,
    resolve_org_id,
)
from app.auth.models import Role
from app.exceptions import OrgNotFoundError
from core.models.announcement import (
    AnnouncementCreate,
    AnnouncementListResponse,
    AnnouncementResponse,
    AnnouncementUpdate,
)
from core.models.common import SuccessResponse
from core.services.announcement_service import DEFAULT_LIST_LIMIT, AnnouncementService
from lib.cache_headers import CacheProfile, apply_cache_headers

logger = logging.getLogger(__name__)

router = APIRouter()

AnnouncementId = Annotated[str, Path(description="Announcement UUID")]


def _parse_limit(value: Optional[str]) -> int:
    """Positive integer limit; anything else falls back to the default."""
    try:
        limit = int(value) if value is not None else DEFAULT_LIST_LIMIT
    except ValueError:
        return DEFAULT_LIST_LIMIT
    return limit if limit > 0 else DEFAULT_LIST_LIMIT


def _org_or_none(user: AuthUser) -> Optional[str]:
    # Admins may act across orgs, so a missing org is not an error here
    try:
        return resolve_org_id(user)
    except OrgNotFoundError:
        return None


@router.get("", response_model=AnnouncementListResponse)
async def list_announcements(
    response: Response,
    user: AuthUser = Depends(require_roles(*ALL_ROLES)),
    org_id: str = Depends(get_org_id),
    announcement_id: Annotated[Optional[str], Query(alias="id")] = None,
    class_id: Annotated[Optional[str], Query(alias="classId")] = None,
    teacher_class_ids: Annotated[Optional[str], Query(alias="teacherClassIds")] = None,
    limit: Annotated[Optional[str], Query(description="Max rows (default 10)")] = None,
    user_role: Annotated[Optional[str], Query(alias="userRole")] = None,
):
    """
    List announcements visible to the caller, newest first.

    Principals and admins see the whole org; teachers see their classes
    plus org-wide; guardians their children's classes plus org-wide.
    `classId` narrows any caller to one class plus org-wide.
    """
    announcements = AnnouncementService.list_announcements(
        user,
        org_id,
        announcement_id=announcement_id,
        class_id=class_id,
        teacher_class_ids=teacher_class_ids,
        limit=_parse_limit(limit),
        user_role=user_role,
    )
    apply_cache_headers(response, CacheProfile.STABLE)
    return {"announcements": announcements}


@router.get("/latest", response_model=AnnouncementListResponse)
async def latest_announcements(
    response: Response,
    user: AuthUser = Depends(require_roles(*ALL_ROLES)),
    org_id: str = Depends(get_org_id),
    class_id: Annotated[Optional[str], Query(alias="classId")] = None,
):
    """Newest few announcements for a class (plus org-wide), or the org's for principals."""
    announcements = AnnouncementService.latest(
        org_id,
        class_id=class_id,
        is_principal=user.is_admin_or_principal,
    )
    apply_cache_headers(response, CacheProfile.STABLE)
    return {"announcements": announcements}


@router.post("", response_model=AnnouncementResponse, status_code=status.HTTP_201_CREATED)
async def create_announcement(
    request: AnnouncementCreate,
    user: AuthUser = Depends(require_roles(Role.TEACHER, Role.PRINCIPAL, Role.ADMIN)),
):
    """
    Post an announcement for the current week.

    Omitting class_id posts to the author's first class; null posts
    org-wide. The audience is notified afterwards.
    """
    org_id = AnnouncementService.resolve_org_for_create(user, request.class_id)
    return AnnouncementService.create_announcement(org_id, str(user.id), request)


@router.put("/{announcement_id}", response_model=AnnouncementResponse)
async def update_announcement(
    announcement_id: AnnouncementId,
    request: AnnouncementUpdate,
    user: AuthUser = Depends(require_roles(*STAFF_ROLES)),
):
    """Edit an announcement. Author or admin only."""
    return AnnouncementService.update_announcement(
        announcement_id, user, _org_or_none(user), request
    )


@router.delete("/{announcement_id}", response_model=SuccessResponse)
async def delete_announcement(
    announcement_id: AnnouncementId,
    user: AuthUser = Depends(require_roles(*STAFF_ROLES)),
):
    """Soft delete an announcement. Author or admin only."""
    AnnouncementService.delete_announcement(announcement_id, user, _org_or_none(user))
    return SuccessResponse(message="Announcement deleted")
