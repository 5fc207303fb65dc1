# =============================================================================
# core/models/announcement.py - Announcement Schemas
# =============================================================================
# Announcements are weekly notes from staff to a class or the whole org.
# =============================================================================

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from .common import ClassIdField, Row


class AnnouncementCreate(BaseModel):
    """
    Schema for creating an announcement.

    class_id has three meanings:
    - omitted: the author's first class membership, else org-wide
    - null or "": org-wide
    - an id: that class

    Example:
        {"title": "Picture day", "body": "Wear something bright!", "class_id": null}
    """

    title: str = Field(..., min_length=1, max_length=200)

    body: str = Field(..., min_length=1, max_length=5000)

    class_id: ClassIdField = None

    @field_validator("title", "body")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value

    @property
    def class_id_given(self) -> bool:
        """True if the request body contained class_id at all (even as null)."""
        return "class_id" in self.model_fields_set


class AnnouncementUpdate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    body: str = Field(..., min_length=1, max_length=5000)
    class_id: ClassIdField = None

    @field_validator("title", "body")
    @classmethod
    def _strip(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value


class AnnouncementResponse(Row):
    id: str
    org_id: Optional[str] = None
    class_id: Optional[str] = None
    class_name: Optional[str] = None
    author_id: Optional[str] = None
    title: str
    body: Optional[str] = None
    week_start: Optional[date] = None
    is_public: bool = True
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    deleted_at: Optional[datetime] = None


class AnnouncementListResponse(BaseModel):
    announcements: list[AnnouncementResponse] = Field(default_factory=list)
