# =============================================================================
# app/routers/stories.py - Story Endpoints
# =============================================================================
# Stories feed, CRUD and item management.
#
# Reads are open to staff and guardians; writes to staff only. The feed
# is filtered by audience (principal / teacher / parent).
# =============================================================================

from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Path, Query, Response, status

from app.auth import ALL_ROLES, STAFF_ROLES, AuthUser, get_org_id, require_roles
from core.models.common import SuccessResponse
from core.models.story import (
    StoryCreate,
    StoryDetailResponse,
    StoryItemResponse,
    StoryItemsCreate,
    StoryListResponse,
    StoryUpdate,
)
from core.services.story_service import StoryService
from core.services.visibility import Audience, audience_for_roles
from lib.cache_headers import CacheProfile, apply_cache_headers

router = APIRouter()

StoryId = Annotated[str, Path(description="Story UUID")]


# =============================================================================
# Feed
# =============================================================================

@router.get("", response_model=StoryListResponse)
async def list_stories(
    response: Response,
    user: AuthUser = Depends(require_roles(*ALL_ROLES)),
    org_id: str = Depends(get_org_id),
    class_id: Annotated[Optional[str], Query(alias="classId")] = None,
    include_deleted: Annotated[bool, Query(alias="includeDeleted")] = False,
    only_public: Annotated[bool, Query(alias="onlyPublic")] = False,
    audience: Annotated[Optional[Audience], Query(description="principal, teacher or parent")] = None,
    teacher_class_ids: Annotated[Optional[str], Query(alias="teacherClassIds", description="Comma-separated class ids")] = None,
    teacher_author_id: Annotated[Optional[str], Query(alias="teacherAuthorId")] = None,
    parent_class_ids: Annotated[Optional[str], Query(alias="parentClassIds", description="Comma-separated class ids")] = None,
    principal_author_id: Annotated[Optional[str], Query(alias="principalAuthorId")] = None,
):
    """
    List the stories the caller may see, newest first.

    Without `audience` the caller's roles pick one. Teachers and parents
    see org-wide stories plus those of their classes; principals see the
    stories authored by `principalAuthorId` (default: themselves).
    Expired stories are never returned.
    """
    user_id = str(user.id)
    if audience is None:
        audience = audience_for_roles(user.roles, user.active_role)

    class_ids = StoryService.resolve_class_ids(
        audience,
        user_id,
        org_id,
        teacher_class_ids=teacher_class_ids,
        parent_class_ids=parent_class_ids,
        teacher_author_id=teacher_author_id,
    )

    stories = StoryService.list_stories(
        org_id,
        user_id,
        class_id=class_id,
        include_deleted=include_deleted,
        only_public=only_public,
        audience=audience,
        class_ids=class_ids,
        author_id=principal_author_id,
    )

    apply_cache_headers(response, CacheProfile.STABLE)
    return {"stories": stories}


# =============================================================================
# CRUD
# =============================================================================

@router.post("", response_model=StoryDetailResponse, status_code=status.HTTP_201_CREATED)
async def create_story(
    request: StoryCreate,
    user: AuthUser = Depends(require_roles(*STAFF_ROLES)),
    org_id: str = Depends(get_org_id),
):
    """
    Create a story and its items.

    The class's guardians, students and teachers (or the whole org for an
    org-wide story) are notified afterwards.
    """
    return StoryService.create_story(org_id, str(user.id), request)


@router.get("/{story_id}", response_model=StoryDetailResponse)
async def get_story(
    story_id: StoryId,
    response: Response,
    user: AuthUser = Depends(require_roles(*ALL_ROLES)),
    org_id: str = Depends(get_org_id),
):
    """Get a story with its items in display order."""
    result = StoryService.get_story(story_id, org_id)
    apply_cache_headers(response, CacheProfile.STABLE)
    return result


@router.put("/{story_id}")
async def update_story(
    story_id: StoryId,
    request: StoryUpdate,
    user: AuthUser = Depends(require_roles(*STAFF_ROLES)),
    org_id: str = Depends(get_org_id),
):
    """Partially update a story. Author only."""
    changes = request.model_dump(exclude_unset=True)
    story = StoryService.update_story(story_id, org_id, str(user.id), changes)
    return {"story": story}


@router.delete("/{story_id}", response_model=SuccessResponse)
async def delete_story(
    story_id: StoryId,
    user: AuthUser = Depends(require_roles(*STAFF_ROLES)),
    org_id: str = Depends(get_org_id),
):
    """Soft delete a story. Author only."""
    StoryService.delete_story(story_id, org_id, str(user.id))
    return SuccessResponse(message="Story deleted")


# =============================================================================
# Items
# =============================================================================

@router.post("/{story_id}/items", status_code=status.HTTP_201_CREATED)
async def add_story_items(
    story_id: StoryId,
    request: StoryItemsCreate,
    user: AuthUser = Depends(require_roles(*STAFF_ROLES)),
    org_id: str = Depends(get_org_id),
) -> dict[str, list[StoryItemResponse]]:
    """Append items to a story."""
    items = StoryService.add_items(story_id, org_id, request.items)
    return {"items": items}


@router.delete("/{story_id}/items", response_model=SuccessResponse)
async def delete_story_items(
    story_id: StoryId,
    user: AuthUser = Depends(require_roles(*STAFF_ROLES)),
    org_id: str = Depends(get_org_id),
):
    """Remove every item of a story."""
    StoryService.delete_items(story_id, org_id)
    return SuccessResponse(message="Story items deleted")
