# =============================================================================
# core/models/common.py - Shared Field Types
# =============================================================================
# Reusable annotated types for request schemas:
# - UuidStr: a UUID kept as its string form (what Supabase filters expect)
# - ClassIdField: optional class id where "" means "org-wide"
# - DateStr: YYYY-MM-DD calendar date
# =============================================================================

from datetime import date, datetime, timezone
from typing import Annotated, Any, Optional
from uuid import UUID

from pydantic import AfterValidator, BaseModel, BeforeValidator, ConfigDict


def _check_uuid(value: str) -> str:
    try:
        return str(UUID(str(value)))
    except ValueError:
        raise ValueError("Invalid UUID format")


def _blank_class_id(value: Any) -> Any:
    if value is None:
        return None
    if isinstance(value, str) and not value.strip():
        return None
    return value


def _check_date(value: str) -> str:
    try:
        date.fromisoformat(value)
    except ValueError:
        raise ValueError("Date must be in YYYY-MM-DD format")
    return value


UuidStr = Annotated[str, AfterValidator(_check_uuid)]

ClassIdField = Annotated[Optional[UuidStr], BeforeValidator(_blank_class_id)]

DateStr = Annotated[str, AfterValidator(_check_date)]


def ensure_future(value: datetime) -> datetime:
    """Reject datetimes that are not in the future (naive values are UTC)."""
    aware = value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if aware <= datetime.now(timezone.utc):
        raise ValueError("Date must be in the future")
    return value


class Row(BaseModel):
    """Base for response models mirroring a database row; unknown columns pass through."""
    model_config = ConfigDict(extra="allow")


class SuccessResponse(BaseModel):
    success: bool = True
    message: Optional[str] = None
