# =============================================================================
# core/models/message.py - Messaging Schemas
# =============================================================================
# Messaging is thread based:
# - messages: one row per thread (subject, type, creator)
# - message_participants: who is in a thread, with a per-user unread flag
# - message_items: the individual posts in a thread
# =============================================================================

from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from .common import Row, UuidStr


class ThreadType(str, Enum):
    DM = "dm"
    CLASS = "class"
    INDIVIDUAL = "individual"
    GROUP = "group"
    ANNOUNCEMENT = "announcement"


class ThreadCreate(BaseModel):
    """
    Schema for starting a thread.

    Either recipient_id or a non-empty recipient_ids is required.

    Example:
        {"thread_type": "dm", "recipient_id": "550e8400-e29b-41d4-a716-446655440000"}
    """
    thread_type: ThreadType = ThreadType.DM
    subject: Optional[str] = Field(default=None, max_length=500)
    recipient_id: Optional[UuidStr] = None
    recipient_ids: Optional[list[UuidStr]] = None

    @model_validator(mode="after")
    def _has_recipient(self) -> "ThreadCreate":
        if not self.recipient_id and not self.recipient_ids:
            raise ValueError("recipient_id or recipient_ids is required")
        return self

    @property
    def recipients(self) -> list[str]:
        return list(self.recipient_ids) if self.recipient_ids else [self.recipient_id]


class ThreadUpdate(BaseModel):
    id: UuidStr
    subject: Optional[str] = Field(default=None, max_length=500)
    deleted_at: Optional[datetime] = None


class MessageItemCreate(BaseModel):
    body: str = Field(..., min_length=1, max_length=10000)
    attachments: list[Any] = Field(default_factory=list)

    @field_validator("body")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value


class Participant(BaseModel):
    id: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    role: Optional[str] = None


class ThreadResponse(Row):
    id: str
    org_id: Optional[str] = None
    thread_type: Optional[str] = None
    subject: Optional[str] = None
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    deleted_at: Optional[datetime] = None


class ThreadSummary(ThreadResponse):
    """A thread as listed in the inbox."""
    unread: bool = False
    unread_count: int = 0
    latest_item: Optional[dict[str, Any]] = None
    other_participant: Optional[Participant] = None


class ThreadListResponse(BaseModel):
    threads: list[ThreadSummary] = Field(default_factory=list)


class ThreadEnvelope(BaseModel):
    message: ThreadResponse


class Recipient(BaseModel):
    id: str
    email: Optional[str] = None
    name: str
    role: Optional[str] = None
    org_id: Optional[str] = None


class RecipientsResponse(BaseModel):
    recipients: list[Recipient] = Field(default_factory=list)
    grouped: dict[str, list[Recipient]] = Field(default_factory=dict)


class MessageItemResponse(Row):
    id: str
    message_id: str
    author_id: Optional[str] = None
    author_name: Optional[str] = None
    author_email: Optional[str] = None
    author_role: Optional[str] = None
    body: str
    attachments: list[Any] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class MessageItemsResponse(BaseModel):
    items: list[MessageItemResponse] = Field(default_factory=list)


class MessageItemEnvelope(BaseModel):
    item: MessageItemResponse
