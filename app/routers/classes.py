# =============================================================================
# app/routers/classes.py - Class Endpoints
# =============================================================================
# Class management and teacher assignment. Writes are principal/admin only.
# =============================================================================

from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Path, Query, Response, status

from app.auth import STAFF_ROLES, AuthUser, get_org_id, require_roles
from app.auth.models import Role
from core.models.classes import (
    ClassCreate,
    ClassListResponse,
    ClassSaveResponse,
    ClassUpdate,
    TeacherAssignment,
)
from core.models.common import SuccessResponse
from core.services.class_service import ClassService
from lib.cache_headers import CacheProfile, apply_cache_headers

router = APIRouter()

ClassId = Annotated[str, Path(description="Class UUID")]

require_managers = require_roles(Role.PRINCIPAL, Role.ADMIN)


@router.get("", response_model=ClassListResponse)
async def list_classes(
    response: Response,
    user: AuthUser = Depends(require_roles(*STAFF_ROLES)),
    org_id: str = Depends(get_org_id),
    created_by: Annotated[Optional[str], Query(alias="createdBy")] = None,
):
    """Live classes in the org with their assigned teachers."""
    classes = ClassService.list_classes(org_id, created_by=created_by)
    apply_cache_headers(response, CacheProfile.STABLE)
    return {"classes": classes}


@router.post("", response_model=ClassSaveResponse, status_code=status.HTTP_201_CREATED)
async def create_class(
    request: ClassCreate,
    user: AuthUser = Depends(require_managers),
    org_id: str = Depends(get_org_id),
):
    """Create a class, optionally assigning its first teacher."""
    created = ClassService.create_class(org_id, str(user.id), request)
    message = "Class created and teacher assigned" if request.teacher_id else "Class created successfully"
    return ClassSaveResponse(class_=created, message=message)


@router.put("", response_model=ClassSaveResponse)
async def update_class(
    request: ClassUpdate,
    user: AuthUser = Depends(require_managers),
    org_id: str = Depends(get_org_id),
):
    updated = ClassService.update_class(org_id, request)
    return ClassSaveResponse(class_=updated, message="Class updated successfully")


@router.delete("", response_model=SuccessResponse)
async def delete_class(
    class_id: Annotated[str, Query(alias="id", description="Class UUID")],
    user: AuthUser = Depends(require_managers),
    org_id: str = Depends(get_org_id),
):
    ClassService.delete_class(org_id, class_id)
    return SuccessResponse(message="Class deleted")


@router.post("/{class_id}/teachers", response_model=SuccessResponse)
async def assign_teacher(
    class_id: ClassId,
    request: TeacherAssignment,
    user: AuthUser = Depends(require_managers),
    org_id: str = Depends(get_org_id),
):
    """Make a user the teacher of a class, replacing any earlier membership of theirs."""
    ClassService.assign_teacher(class_id, request.user_id, org_id)
    return SuccessResponse(message="Teacher assigned to class")


@router.delete("/{class_id}/teachers/{user_id}", response_model=SuccessResponse)
async def remove_teacher(
    class_id: ClassId,
    user_id: Annotated[str, Path(description="Teacher's user UUID")],
    user: AuthUser = Depends(require_managers),
    org_id: str = Depends(get_org_id),
):
    ClassService.remove_teacher(class_id, user_id, org_id)
    return SuccessResponse(message="Teacher removed from class")
