# =============================================================================
# core/services/__init__.py - Service Layer Exports
# =============================================================================

from .announcement_service import AnnouncementService
from .attendance_service import AttendanceService
from .class_service import ClassService
from .health_log_service import HealthLogService
from .menu_service import MenuService
from .message_service import MessageService, ThreadAccessError
from .notification_service import NotificationService, NotificationType
from .story_service import StoryService

__all__ = [
    "AnnouncementService",
    "AttendanceService",
    "ClassService",
    "HealthLogService",
    "MenuService",
    "MessageService",
    "ThreadAccessError",
    "NotificationService",
    "NotificationType",
    "StoryService",
]
