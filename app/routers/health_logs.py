# =============================================================================
# app/routers/health_logs.py - Health Log Endpoints
# =============================================================================
# Care events (diapers, naps, temperatures, medication...) per student.
# =============================================================================

from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Query, Response, status

from app.auth import ALL_ROLES, STAFF_ROLES, AuthUser, get_org_id, require_roles
from core.models.common import SuccessResponse
from core.models.health_log import (
    HealthLogCreate,
    HealthLogListResponse,
    HealthLogSaveResponse,
    HealthLogType,
    HealthLogUpdate,
)
from core.services.health_log_service import HealthLogService
from lib.cache_headers import CacheProfile, apply_cache_headers

router = APIRouter()


@router.get("", response_model=HealthLogListResponse)
async def list_health_logs(
    response: Response,
    user: AuthUser = Depends(require_roles(*ALL_ROLES)),
    org_id: str = Depends(get_org_id),
    student_id: Annotated[Optional[str], Query(alias="studentId")] = None,
    log_type: Annotated[Optional[HealthLogType], Query(alias="type")] = None,
):
    """
    Health logs visible to the caller, most recent first.

    Guardians see their own children's logs; teachers see the logs they
    recorded; principals and admins see the whole org.
    """
    logs = HealthLogService.list_logs(
        user,
        org_id,
        student_id=student_id,
        log_type=log_type.value if log_type else None,
    )
    apply_cache_headers(response, CacheProfile.STABLE, private=True)
    return HealthLogListResponse(healthLogs=logs, total_logs=len(logs))


@router.post("", response_model=HealthLogSaveResponse, status_code=status.HTTP_201_CREATED)
async def create_health_log(
    request: HealthLogCreate,
    user: AuthUser = Depends(require_roles(*STAFF_ROLES)),
    org_id: str = Depends(get_org_id),
):
    log = HealthLogService.create_log(org_id, str(user.id), request)
    return {"healthLog": log, "message": "Health log created"}


@router.put("", response_model=HealthLogSaveResponse)
async def update_health_log(
    request: HealthLogUpdate,
    user: AuthUser = Depends(require_roles(*STAFF_ROLES)),
    org_id: str = Depends(get_org_id),
):
    """Edit a log. Recorder, principal or admin only."""
    log = HealthLogService.update_log(user, org_id, request)
    return {"healthLog": log, "message": "Health log updated"}


@router.delete("", response_model=SuccessResponse)
async def delete_health_log(
    log_id: Annotated[str, Query(alias="id", description="Health log UUID")],
    user: AuthUser = Depends(require_roles(*STAFF_ROLES)),
    org_id: str = Depends(get_org_id),
):
    HealthLogService.delete_log(user, org_id, log_id)
    return SuccessResponse(message="Health log deleted")
