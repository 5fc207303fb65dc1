# =============================================================================
# core/models/menu.py - Menu Schemas
# =============================================================================
# A menu is the day's meals for one class (or the whole org when class_id
# is null). There is at most one live menu per (org, day, class).
# =============================================================================

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from .common import ClassIdField, DateStr, Row, UuidStr


class MenuUpsert(BaseModel):
    """
    Schema for creating or replacing the menu of a day.

    Only meal fields present in the body overwrite an existing menu.

    Example:
        {"day": "2024-01-15", "lunch": "Fish soup", "class_id": null}
    """
    class_id: ClassIdField = None
    day: DateStr
    breakfast: Optional[str] = Field(default=None, max_length=1000)
    lunch: Optional[str] = Field(default=None, max_length=1000)
    snack: Optional[str] = Field(default=None, max_length=1000)
    notes: Optional[str] = Field(default=None, max_length=5000)
    is_public: bool = True


class MenuUpdate(BaseModel):
    id: UuidStr
    breakfast: Optional[str] = Field(default=None, max_length=1000)
    lunch: Optional[str] = Field(default=None, max_length=1000)
    snack: Optional[str] = Field(default=None, max_length=1000)
    notes: Optional[str] = Field(default=None, max_length=5000)
    is_public: Optional[bool] = None


class MenuResponse(Row):
    id: str
    org_id: Optional[str] = None
    class_id: Optional[str] = None
    day: str
    breakfast: Optional[str] = None
    lunch: Optional[str] = None
    snack: Optional[str] = None
    notes: Optional[str] = None
    is_public: bool = True
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class MenuListResponse(BaseModel):
    menus: list[MenuResponse] = Field(default_factory=list)
    total_menus: int = 0


class MenuSaveResponse(BaseModel):
    menu: MenuResponse
    message: str
