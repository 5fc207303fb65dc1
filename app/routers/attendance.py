# =============================================================================
# app/routers/attendance.py - Attendance Endpoints
# =============================================================================
# One attendance row per student per day. Never cached.
# =============================================================================

from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Query, Response, status

from app.auth import ALL_ROLES, STAFF_ROLES, AuthUser, get_org_id, require_roles
from core.models.attendance import (
    AttendanceBatch,
    AttendanceBatchResponse,
    AttendanceCreate,
    AttendanceListResponse,
    AttendanceSaveResponse,
    AttendanceUpdate,
)
from core.models.common import DateStr, SuccessResponse
from core.services.attendance_service import AttendanceService
from lib.cache_headers import CacheProfile, apply_cache_headers

router = APIRouter()


@router.get("", response_model=AttendanceListResponse)
async def list_attendance(
    response: Response,
    user: AuthUser = Depends(require_roles(*ALL_ROLES)),
    org_id: str = Depends(get_org_id),
    class_id: Annotated[Optional[str], Query(alias="classId")] = None,
    student_id: Annotated[Optional[str], Query(alias="studentId")] = None,
    day: Annotated[Optional[DateStr], Query(alias="date", description="YYYY-MM-DD")] = None,
):
    """Attendance rows in the org, optionally narrowed by class, student and day."""
    rows = AttendanceService.list_attendance(
        org_id, class_id=class_id, student_id=student_id, day=day
    )
    apply_cache_headers(response, CacheProfile.NO_CACHE)
    return AttendanceListResponse(attendance=rows, total=len(rows))


@router.post("", response_model=AttendanceSaveResponse, status_code=status.HTTP_201_CREATED)
async def record_attendance(
    request: AttendanceCreate,
    response: Response,
    user: AuthUser = Depends(require_roles(*STAFF_ROLES)),
    org_id: str = Depends(get_org_id),
):
    """
    Record a student's attendance for a day.

    Re-recording the same student and day overwrites the earlier row.
    """
    saved = AttendanceService.record(org_id, str(user.id), request)
    apply_cache_headers(response, CacheProfile.NO_CACHE)
    return {"attendance": saved, "message": "Attendance recorded"}


@router.put("", response_model=AttendanceSaveResponse)
async def update_attendance(
    request: AttendanceUpdate,
    response: Response,
    user: AuthUser = Depends(require_roles(*STAFF_ROLES)),
    org_id: str = Depends(get_org_id),
):
    updated = AttendanceService.update(org_id, str(user.id), request)
    apply_cache_headers(response, CacheProfile.NO_CACHE)
    return {"attendance": updated, "message": "Attendance updated"}


@router.delete("", response_model=SuccessResponse)
async def delete_attendance(
    attendance_id: Annotated[str, Query(alias="id", description="Attendance UUID")],
    user: AuthUser = Depends(require_roles(*STAFF_ROLES)),
    org_id: str = Depends(get_org_id),
):
    AttendanceService.delete(org_id, attendance_id)
    return SuccessResponse(message="Attendance deleted")


@router.post("/batch", response_model=AttendanceBatchResponse, status_code=status.HTTP_201_CREATED)
async def record_attendance_batch(
    request: AttendanceBatch,
    response: Response,
    user: AuthUser = Depends(require_roles(*STAFF_ROLES)),
    org_id: str = Depends(get_org_id),
):
    """Record attendance for many students at once (e.g. a whole class)."""
    saved = AttendanceService.record_batch(org_id, str(user.id), request.records)
    apply_cache_headers(response, CacheProfile.NO_CACHE)
    return AttendanceBatchResponse(
        attendance=saved,
        message=f"Recorded attendance for {len(saved)} students",
        count=len(saved),
    )
