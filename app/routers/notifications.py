# =============================================================================
# app/routers/notifications.py - In-App Notification Endpoints
# =============================================================================
# Read side of the notifications created by story/announcement fanout.
# Responses are never cached.
# =============================================================================

from datetime import datetime
from typing import Annotated, Any, Optional

from fastapi import APIRouter, Depends, Path, Query, Response
from pydantic import BaseModel, Field

from app.auth import AuthUser, get_current_user, get_org_id
from core.models.common import Row, SuccessResponse
from core.services.notification_service import NotificationService
from lib.cache_headers import CacheProfile, apply_cache_headers

router = APIRouter()


# =============================================================================
# Response Models
# =============================================================================

class NotificationResponse(Row):
    id: str
    type: str
    title: str
    body: Optional[str] = None
    data: dict[str, Any] = Field(default_factory=dict)
    priority: str = "normal"
    is_read: bool = False
    read_at: Optional[datetime] = None
    created_at: Optional[datetime] = None


class NotificationListResponse(BaseModel):
    notifications: list[NotificationResponse] = Field(default_factory=list)


class UnreadCountResponse(BaseModel):
    count: int


# =============================================================================
# Endpoints
# =============================================================================

@router.get("", response_model=NotificationListResponse)
async def list_notifications(
    response: Response,
    user: AuthUser = Depends(get_current_user),
    org_id: str = Depends(get_org_id),
    limit: Annotated[int, Query(ge=1, le=100)] = 50,
    unread_only: Annotated[bool, Query(alias="unreadOnly")] = False,
):
    """The caller's notifications, newest first."""
    notifications = NotificationService.list_for_user(
        str(user.id), org_id, limit=limit, unread_only=unread_only
    )
    apply_cache_headers(response, CacheProfile.NO_CACHE)
    return {"notifications": notifications}


@router.get("/unread-count", response_model=UnreadCountResponse)
async def unread_count(
    response: Response,
    user: AuthUser = Depends(get_current_user),
    org_id: str = Depends(get_org_id),
):
    count = NotificationService.unread_count(str(user.id), org_id)
    apply_cache_headers(response, CacheProfile.NO_CACHE)
    return UnreadCountResponse(count=count)


@router.post("/read-all", response_model=SuccessResponse)
async def mark_all_read(
    user: AuthUser = Depends(get_current_user),
    org_id: str = Depends(get_org_id),
):
    NotificationService.mark_all_read(str(user.id), org_id)
    return SuccessResponse(message="All notifications marked as read")


@router.post("/{notification_id}/read", response_model=SuccessResponse)
async def mark_read(
    notification_id: Annotated[str, Path(description="Notification UUID")],
    user: AuthUser = Depends(get_current_user),
    org_id: str = Depends(get_org_id),
):
    """Mark one notification read. Other users' notifications are left untouched."""
    NotificationService.mark_read(notification_id, str(user.id), org_id)
    return SuccessResponse(message="Notification marked as read")
