# =============================================================================
# app/routers/messages.py - Messaging Endpoints
# =============================================================================
# Threads (messages), their participants and their items.
#
# Only participants can see or post to a thread. DMs between the same two
# people are reused instead of duplicated.
# =============================================================================

from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Path, Query, Response, status

from app.auth import ALL_ROLES, AuthUser, get_org_id, require_roles
from core.models.common import SuccessResponse
from core.models.message import (
    MessageItemCreate,
    MessageItemEnvelope,
    MessageItemsResponse,
    RecipientsResponse,
    ThreadCreate,
    ThreadEnvelope,
    ThreadListResponse,
    ThreadUpdate,
)
from core.services.message_service import MessageService
from lib.cache_headers import CacheProfile, apply_cache_headers

router = APIRouter()

MessageId = Annotated[str, Path(description="Thread UUID")]


# =============================================================================
# Threads
# =============================================================================

@router.get("", response_model=ThreadListResponse)
async def list_threads(
    response: Response,
    user: AuthUser = Depends(require_roles(*ALL_ROLES)),
    org_id: str = Depends(get_org_id),
):
    """The caller's threads, most recently active first, with unread state."""
    threads = MessageService.list_threads(str(user.id), org_id)
    apply_cache_headers(response, CacheProfile.REALTIME, private=True)
    return {"threads": threads}


@router.post("", response_model=ThreadEnvelope, status_code=status.HTTP_201_CREATED)
async def create_thread(
    request: ThreadCreate,
    response: Response,
    user: AuthUser = Depends(require_roles(*ALL_ROLES)),
    org_id: str = Depends(get_org_id),
):
    """
    Start a thread.

    For a DM with one recipient an existing thread between the two users
    is returned instead (200 rather than 201).
    """
    thread, created = MessageService.create_thread(str(user.id), org_id, request)
    if not created:
        response.status_code = status.HTTP_200_OK
    return {"message": thread}


@router.put("", response_model=ThreadEnvelope)
async def update_thread(
    request: ThreadUpdate,
    user: AuthUser = Depends(require_roles(*ALL_ROLES)),
    org_id: str = Depends(get_org_id),
):
    thread = MessageService.update_thread(str(user.id), org_id, request)
    return {"message": thread}


@router.delete("", response_model=SuccessResponse)
async def delete_thread(
    message_id: Annotated[str, Query(alias="id", description="Thread UUID")],
    user: AuthUser = Depends(require_roles(*ALL_ROLES)),
    org_id: str = Depends(get_org_id),
):
    MessageService.delete_thread(str(user.id), org_id, message_id)
    return SuccessResponse(message="Message deleted")


@router.get("/recipients", response_model=RecipientsResponse)
async def list_recipients(
    response: Response,
    user: AuthUser = Depends(require_roles(*ALL_ROLES)),
    org_id: str = Depends(get_org_id),
    search: Annotated[Optional[str], Query(max_length=100)] = None,
):
    """
    People the caller may start a thread with.

    Principals reach teachers, guardians and principals; teachers reach
    principals, guardians and teachers; guardians reach staff only.
    """
    result = MessageService.recipients(
        user.roles, org_id, search=search, active_role=user.active_role
    )
    apply_cache_headers(response, CacheProfile.USER, private=True)
    return result


# =============================================================================
# Items
# =============================================================================

@router.get("/{message_id}/items", response_model=MessageItemsResponse)
async def list_items(
    message_id: MessageId,
    response: Response,
    user: AuthUser = Depends(require_roles(*ALL_ROLES)),
    org_id: str = Depends(get_org_id),
    limit: Annotated[int, Query(ge=1, le=100)] = 50,
    offset: Annotated[int, Query(ge=0)] = 0,
):
    """A page of a thread's items, oldest first. Marks the thread read."""
    items = MessageService.list_items(message_id, str(user.id), org_id, limit=limit, offset=offset)
    apply_cache_headers(response, CacheProfile.REALTIME, private=True)
    return {"items": items}


@router.post(
    "/{message_id}/items",
    response_model=MessageItemEnvelope,
    status_code=status.HTTP_201_CREATED,
)
async def post_item(
    message_id: MessageId,
    request: MessageItemCreate,
    user: AuthUser = Depends(require_roles(*ALL_ROLES)),
    org_id: str = Depends(get_org_id),
):
    item = MessageService.post_item(
        message_id, str(user.id), org_id, request.body, request.attachments
    )
    return {"item": item}
