# =============================================================================
# core/services/notification_service.py - In-App Notifications
# =============================================================================
# Creates and reads rows in the notifications table.
#
# Fanout: after a story or announcement is created, everyone who can see it
# gets a notification:
# - Class-scoped content -> students of the class, their guardians, and the
#   class teachers
# - Org-wide content -> every active teacher and guardian in the org
# The author never notifies themselves.
# =============================================================================

import logging
from enum import Enum
from typing import Any, Optional

from app.config import settings
from app.exceptions import DatabaseError
from lib.supabase_client import SupabaseClient, rows_of
from lib.utils import blank_to_none, utc_now_iso

logger = logging.getLogger(__name__)


class NotificationType(str, Enum):
    ANNOUNCEMENT_CLASS = "announcement_class"
    ANNOUNCEMENT_ORG = "announcement_org"
    STORY_CLASS = "story_class"
    STORY_ORG = "story_org"

    @classmethod
    def for_content(cls, kind: str, class_id: Optional[str]) -> "NotificationType":
        """
        Type for a piece of content.

        Example:
            NotificationType.for_content("story", None)  # STORY_ORG
        """
        scope = "class" if class_id else "org"
        return cls(f"{kind}_{scope}")


# Roles that receive org-wide notifications
ORG_TARGET_ROLES = ("teacher", "guardian")


def _unique(ids) -> list[str]:
    seen: dict[str, None] = {}
    for value in ids:
        if value and isinstance(value, str):
            seen.setdefault(value, None)
    return list(seen)


class NotificationService:
    """
    Service for notification management.

    All reads and writes are scoped by org_id as well as user_id.
    """

    # -------------------------------------------------------------------------
    # Targets
    # -------------------------------------------------------------------------

    @staticmethod
    def class_targets(class_id: str, org_id: str) -> list[str]:
        """
        User ids to notify about class-scoped content.

        Union of: students with a login in the class, guardians linked to
        any student of the class, and teachers assigned to the class.
        """
        client = SupabaseClient.get_client()

        try:
            students = rows_of(
                client.table("students")
                .select("id, user_id")
                .eq("class_id", class_id)
                .eq("org_id", org_id)
                .execute()
            )

            student_user_ids = [s.get("user_id") for s in students]
            student_ids = _unique(s.get("id") for s in students)

            guardian_ids: list[str] = []
            if student_ids:
                relations = rows_of(
                    client.table("guardian_students")
                    .select("guardian_id")
                    .in_("student_id", student_ids)
                    .eq("org_id", org_id)
                    .execute()
                )
                guardian_ids = [r.get("guardian_id") for r in relations]

            memberships = rows_of(
                client.table("class_memberships")
                .select("user_id")
                .eq("class_id", class_id)
                .eq("org_id", org_id)
                .eq("membership_role", "teacher")
                .execute()
            )
            teacher_ids = [m.get("user_id") for m in memberships]

        except Exception as e:
            logger.error(f"Failed to resolve class notification targets for {class_id}: {e}")
            raise

        return _unique([*student_user_ids, *guardian_ids, *teacher_ids])

    @staticmethod
    def org_targets(org_id: str) -> list[str]:
        """User ids of every active, non-deleted teacher and guardian in the org."""
        client = SupabaseClient.get_client()

        try:
            users = rows_of(
                client.table("users")
                .select("id")
                .eq("org_id", org_id)
                .in_("role", list(ORG_TARGET_ROLES))
                .eq("is_active", True)
                .is_("deleted_at", "null")
                .execute()
            )
        except Exception as e:
            logger.error(f"Failed to resolve org notification targets for {org_id}: {e}")
            raise

        return _unique(u.get("id") for u in users)

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    @staticmethod
    def create_bulk(
        org_id: str,
        user_ids: list[str],
        notification_type: NotificationType | str,
        title: str,
        body: Optional[str] = None,
        data: Optional[dict[str, Any]] = None,
        priority: str = "normal",
        expires_at: Optional[str] = None,
    ) -> list[dict[str, Any]]:
        """
        Insert one notification per user in a single request.

        Returns:
            Created rows (empty when user_ids is empty, without a query)
        """
        if not user_ids:
            return []

        type_value = (
            notification_type.value
            if isinstance(notification_type, NotificationType)
            else notification_type
        )
        records = [
            {
                "org_id": org_id,
                "user_id": user_id,
                "type": type_value,
                "title": title,
                "body": body,
                "data": data or {},
                "priority": priority,
                "expires_at": expires_at,
            }
            for user_id in user_ids
        ]

        client = SupabaseClient.get_client()
        try:
            response = client.table("notifications").insert(records).execute()
        except Exception as e:
            logger.error(f"Failed to create {len(records)} notifications: {e}")
            raise

        created = rows_of(response)
        logger.info(f"Created {len(created)} {type_value} notifications in org {org_id}")
        return created

    @staticmethod
    def fan_out(
        org_id: str,
        class_id: Optional[str],
        author_id: str,
        kind: str,
        title: str,
        body: Optional[str] = None,
        data: Optional[dict[str, Any]] = None,
    ) -> int:
        """
        Notify the audience of a new story or announcement.

        Args:
            kind: "story" or "announcement"
            class_id: Class the content targets, or None for org-wide

        Returns:
            Number of notifications created
        """
        class_id = blank_to_none(class_id)

        if class_id:
            targets = NotificationService.class_targets(class_id, org_id)
        else:
            targets = NotificationService.org_targets(org_id)

        targets = [t for t in targets if t != str(author_id)]
        if not targets:
            logger.info(f"No notification targets for {kind} in org {org_id}")
            return 0

        created = NotificationService.create_bulk(
            org_id=org_id,
            user_ids=targets,
            notification_type=NotificationType.for_content(kind, class_id),
            title=title,
            body=body,
            data=data,
        )
        return len(created)

    @staticmethod
    def notify_safely(
        org_id: str,
        class_id: Optional[str],
        author_id: str,
        kind: str,
        title: str,
        body: Optional[str] = None,
        data: Optional[dict[str, Any]] = None,
    ) -> None:
        """
        Run fanout without ever failing the caller.

        Dispatches to Celery when NOTIFICATION_FANOUT_MODE is "celery",
        otherwise runs inline. Errors are logged and swallowed since the
        content itself was already saved.
        """
        kwargs = {
            "org_id": org_id,
            "class_id": blank_to_none(class_id),
            "author_id": str(author_id),
            "kind": kind,
            "title": title,
            "body": body,
            "data": data or {},
        }

        try:
            if settings.NOTIFICATION_FANOUT_MODE == "celery":
                from workers.tasks import fan_out_notifications

                fan_out_notifications.delay(**kwargs)
                logger.info(f"Queued {kind} notification fanout for org {org_id}")
            else:
                NotificationService.fan_out(**kwargs)
        except Exception as e:
            logger.error(f"Notification fanout for {kind} failed: {e}")

    @staticmethod
    def mark_read(notification_id: str, user_id: str, org_id: str) -> None:
        """Mark one of the user's notifications as read."""
        client = SupabaseClient.get_client()

        try:
            (
                client.table("notifications")
                .update({"is_read": True, "read_at": utc_now_iso()})
                .eq("id", notification_id)
                .eq("user_id", user_id)
                .eq("org_id", org_id)
                .execute()
            )
        except Exception as e:
            logger.error(f"Failed to mark notification {notification_id} read: {e}")
            raise DatabaseError.from_exception("mark notification read", e)

    @staticmethod
    def mark_all_read(user_id: str, org_id: str) -> None:
        client = SupabaseClient.get_client()

        try:
            (
                client.table("notifications")
                .update({"is_read": True, "read_at": utc_now_iso()})
                .eq("user_id", user_id)
                .eq("org_id", org_id)
                .eq("is_read", False)
                .execute()
            )
        except Exception as e:
            logger.error(f"Failed to mark all notifications read for {user_id}: {e}")
            raise DatabaseError.from_exception("mark notifications read", e)

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    @staticmethod
    def list_for_user(
        user_id: str,
        org_id: str,
        limit: int = 50,
        unread_only: bool = False,
    ) -> list[dict[str, Any]]:
        """The user's notifications, newest first."""
        client = SupabaseClient.get_client()

        query = (
            client.table("notifications")
            .select("*")
            .eq("user_id", user_id)
            .eq("org_id", org_id)
            .order("created_at", desc=True)
            .limit(limit)
        )
        if unread_only:
            query = query.eq("is_read", False)

        try:
            return rows_of(query.execute())
        except Exception as e:
            logger.error(f"Failed to list notifications for {user_id}: {e}")
            raise DatabaseError.from_exception("fetch notifications", e)

    @staticmethod
    def unread_count(user_id: str, org_id: str) -> int:
        client = SupabaseClient.get_client()

        try:
            response = (
                client.table("notifications")
                .select("id", count="exact")
                .eq("user_id", user_id)
                .eq("org_id", org_id)
                .eq("is_read", False)
                .execute()
            )
        except Exception as e:
            logger.error(f"Failed to count unread notifications for {user_id}: {e}")
            raise DatabaseError.from_exception("count notifications", e)

        return response.count or 0
