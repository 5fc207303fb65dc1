# =============================================================================
# core/models/story.py - Story Schemas
# =============================================================================
# A story is a short-lived, ordered set of items (photos, videos, captions)
# shared with a class or the whole organization.
#
# - StoryCreate / StoryUpdate: request bodies
# - StoryItemCreate / StoryItemsCreate: item payloads
# - StoryResponse / StoryDetailResponse / StoryListResponse: outputs
# =============================================================================

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from .common import ClassIdField, Row, ensure_future


class StoryItemCreate(BaseModel):
    """
    One item of a story.

    Items with neither a url nor a caption carry no content and are
    dropped before insert.
    """

    # Public storage URL of the media
    url: Optional[str] = Field(default=None, max_length=2048)

    # Position in the story; defaults to the item's index in the request
    order_index: Optional[int] = Field(default=None, ge=0)

    # How long the item is shown; defaults to 30 seconds
    duration_ms: Optional[int] = Field(default=None, gt=0)

    caption: Optional[str] = Field(default=None, max_length=2000)

    mime_type: Optional[str] = Field(default=None, max_length=100)


class StoryCreate(BaseModel):
    """
    Schema for creating a story.

    Example:
        {
            "class_id": "550e8400-e29b-41d4-a716-446655440000",
            "title": "Field trip",
            "expires_at": "2030-01-01T00:00:00Z",
            "items": [{"url": "https://.../1.jpg", "caption": "Bus ride"}]
        }
    """

    # Blank or missing -> org-wide story
    class_id: ClassIdField = None

    title: Optional[str] = Field(default=None, max_length=500)

    caption: Optional[str] = Field(default=None, max_length=2000)

    is_public: bool = False

    expires_at: datetime = Field(
        ...,
        description="When the story disappears from feeds (must be in the future)"
    )

    items: list[StoryItemCreate] = Field(default_factory=list)

    @field_validator("expires_at")
    @classmethod
    def _expires_in_future(cls, value: datetime) -> datetime:
        return ensure_future(value)


class StoryUpdate(BaseModel):
    """
    Partial update of a story.

    Only fields present in the request body are written; an explicit
    null class_id turns the story org-wide.
    """
    class_id: ClassIdField = None
    title: Optional[str] = Field(default=None, max_length=500)
    caption: Optional[str] = Field(default=None, max_length=2000)
    is_public: Optional[bool] = None
    expires_at: Optional[datetime] = None


class StoryItemsCreate(BaseModel):
    items: list[StoryItemCreate] = Field(..., min_length=1)


class StoryResponse(Row):
    id: str
    org_id: str
    class_id: Optional[str] = None
    author_id: Optional[str] = None
    title: Optional[str] = None
    caption: Optional[str] = None
    is_public: bool = False
    expires_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    deleted_at: Optional[datetime] = None


class StoryItemResponse(Row):
    id: str
    story_id: str
    order_index: int = 0
    url: Optional[str] = None
    duration_ms: Optional[int] = None
    caption: Optional[str] = None
    mime_type: Optional[str] = None
    created_at: Optional[datetime] = None


class StoryDetailResponse(BaseModel):
    """A story together with its items, ordered by order_index."""
    story: StoryResponse
    items: list[StoryItemResponse] = Field(default_factory=list)


class StoryListResponse(BaseModel):
    stories: list[StoryResponse] = Field(default_factory=list)
