# =============================================================================
# app/routers/menus.py - Menu Endpoints
# =============================================================================
# Daily meal plans per class (or org-wide).
# =============================================================================

from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Query, Response

from app.auth import ALL_ROLES, STAFF_ROLES, AuthUser, get_org_id, require_roles
from core.models.common import DateStr, SuccessResponse
from core.models.menu import MenuListResponse, MenuSaveResponse, MenuUpdate, MenuUpsert
from core.services.menu_service import MenuService
from lib.cache_headers import CacheProfile, apply_cache_headers

router = APIRouter()


@router.get("", response_model=MenuListResponse)
async def list_menus(
    response: Response,
    user: AuthUser = Depends(require_roles(*ALL_ROLES)),
    org_id: str = Depends(get_org_id),
    class_id: Annotated[Optional[str], Query(alias="classId")] = None,
    day: Annotated[Optional[DateStr], Query(description="YYYY-MM-DD")] = None,
):
    """
    Live menus, newest day first.

    Teachers only see menus they created themselves.
    """
    menus = MenuService.list_menus(
        org_id,
        str(user.id),
        is_teacher=user.is_teacher and not user.is_admin_or_principal,
        class_id=class_id,
        day=day,
    )
    apply_cache_headers(response, CacheProfile.STABLE)
    return MenuListResponse(menus=menus, total_menus=len(menus))


@router.post("", response_model=MenuSaveResponse)
async def save_menu(
    request: MenuUpsert,
    user: AuthUser = Depends(require_roles(*STAFF_ROLES)),
    org_id: str = Depends(get_org_id),
):
    """Create the menu for a day and class, or update the existing one."""
    menu = MenuService.upsert_menu(org_id, str(user.id), request)
    return {"menu": menu, "message": "Menu saved"}


@router.put("", response_model=MenuSaveResponse)
async def update_menu(
    request: MenuUpdate,
    user: AuthUser = Depends(require_roles(*STAFF_ROLES)),
    org_id: str = Depends(get_org_id),
):
    menu = MenuService.update_menu(org_id, request)
    return {"menu": menu, "message": "Menu updated"}


@router.delete("", response_model=SuccessResponse)
async def delete_menu(
    menu_id: Annotated[str, Query(alias="id", description="Menu UUID")],
    user: AuthUser = Depends(require_roles(*STAFF_ROLES)),
    org_id: str = Depends(get_org_id),
):
    MenuService.delete_menu(org_id, menu_id)
    return SuccessResponse(message="Menu deleted")
