# =============================================================================
# core/models/ - Pydantic Data Models
# =============================================================================
# This package contains Pydantic schemas for data validation:
# - common.py: Shared field types (UUIDs, class ids, dates)
# - story.py: Stories and story items
# - announcement.py: Weekly announcements
# - attendance.py: Daily attendance
# - menu.py: Daily menus
# - message.py: Threads, participants and thread items
# - health_log.py: Student care events
# - classes.py: Classes and teacher assignment
#
# These models define the "contract" between API and clients.
# =============================================================================

# -----------------------------------------------------------------------------
# Shared
# -----------------------------------------------------------------------------
from .common import ClassIdField, DateStr, Row, SuccessResponse, UuidStr

# -----------------------------------------------------------------------------
# Stories
# -----------------------------------------------------------------------------
from .story import (
    StoryCreate,
    StoryDetailResponse,
    StoryItemCreate,
    StoryItemResponse,
    StoryItemsCreate,
    StoryListResponse,
    StoryResponse,
    StoryUpdate,
)

# -----------------------------------------------------------------------------
# Announcements
# -----------------------------------------------------------------------------
from .announcement import (
    AnnouncementCreate,
    AnnouncementListResponse,
    AnnouncementResponse,
    AnnouncementUpdate,
)

# -----------------------------------------------------------------------------
# Attendance & Menus
# -----------------------------------------------------------------------------
from .attendance import (
    AttendanceBatch,
    AttendanceBatchRecord,
    AttendanceCreate,
    AttendanceResponse,
    AttendanceStatus,
    AttendanceUpdate,
)
from .menu import MenuResponse, MenuUpdate, MenuUpsert

# -----------------------------------------------------------------------------
# Messaging
# -----------------------------------------------------------------------------
from .message import (
    MessageItemCreate,
    MessageItemResponse,
    Recipient,
    ThreadCreate,
    ThreadResponse,
    ThreadSummary,
    ThreadType,
    ThreadUpdate,
)

# -----------------------------------------------------------------------------
# Health Logs & Classes
# -----------------------------------------------------------------------------
from .health_log import HealthLogCreate, HealthLogResponse, HealthLogType, HealthLogUpdate
from .classes import ClassCreate, ClassResponse, ClassUpdate, TeacherAssignment

__all__ = [
    # Shared
    "ClassIdField",
    "DateStr",
    "Row",
    "SuccessResponse",
    "UuidStr",
    # Stories
    "StoryCreate",
    "StoryDetailResponse",
    "StoryItemCreate",
    "StoryItemResponse",
    "StoryItemsCreate",
    "StoryListResponse",
    "StoryResponse",
    "StoryUpdate",
    # Announcements
    "AnnouncementCreate",
    "AnnouncementListResponse",
    "AnnouncementResponse",
    "AnnouncementUpdate",
    # Attendance & Menus
    "AttendanceBatch",
    "AttendanceBatchRecord",
    "AttendanceCreate",
    "AttendanceResponse",
    "AttendanceStatus",
    "AttendanceUpdate",
    "MenuResponse",
    "MenuUpdate",
    "MenuUpsert",
    # Messaging
    "MessageItemCreate",
    "MessageItemResponse",
    "Recipient",
    "ThreadCreate",
    "ThreadResponse",
    "ThreadSummary",
    "ThreadType",
    "ThreadUpdate",
    # Health Logs & Classes
    "HealthLogCreate",
    "HealthLogResponse",
    "HealthLogType",
    "HealthLogUpdate",
    "ClassCreate",
    "ClassResponse",
    "ClassUpdate",
    "TeacherAssignment",
]
