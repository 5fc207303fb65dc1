# =============================================================================
# core/services/announcement_service.py - Announcement Business Logic
# =============================================================================
# Handles announcement CRUD and the role-filtered announcement feeds.
# =============================================================================

import logging
from typing import Any, Optional

from app.auth.dependencies import resolve_org_id
from app.auth.models import AuthUser
from app.config import settings
from app.exceptions import (
    DatabaseError,
    NotAuthorError,
    OrgMismatchError,
    OrgNotFoundError,
    ResourceNotFoundError,
)
from core.models.announcement import AnnouncementCreate, AnnouncementUpdate
from core.services.notification_service import NotificationService
from core.services.visibility import (
    VisibilityRule,
    announcement_rule,
    apply_rule,
    parse_id_list,
    refilter,
)
from lib.supabase_client import SupabaseClient, SupabaseClientError, row_of, rows_of
from lib.utils import blank_to_none, utc_now_iso, week_start

logger = logging.getLogger(__name__)

ANNOUNCEMENT_COLUMNS = (
    "id, org_id, class_id, author_id, title, body, week_start, "
    "is_public, deleted_at, created_at, updated_at"
)

DEFAULT_LIST_LIMIT = 10


class AnnouncementService:
    """Service for announcement operations."""

    # -------------------------------------------------------------------------
    # Feeds
    # -------------------------------------------------------------------------

    @staticmethod
    def _run_feed(
        org_id: str,
        rule: VisibilityRule,
        limit: int,
    ) -> list[dict[str, Any]]:
        client = SupabaseClient.get_client()
        query = (
            client.table("announcements")
            .select(ANNOUNCEMENT_COLUMNS)
            .eq("org_id", org_id)
            .is_("deleted_at", "null")
            .order("created_at", desc=True)
            .limit(limit)
        )
        query = apply_rule(query, rule)

        try:
            rows = rows_of(query.execute())
        except Exception as e:
            logger.error(f"Failed to fetch announcements for org {org_id}: {e}")
            raise DatabaseError.from_exception("fetch announcements", e)

        return refilter(rows, rule, resource="announcement")

    @staticmethod
    def with_class_names(rows: list[dict[str, Any]]) -> list[dict[str, Any]]:
        """Add class_name to each row (None for org-wide rows)."""
        class_ids = parse_id_list(row.get("class_id") for row in rows)
        try:
            names = SupabaseClient.fetch_class_names(class_ids)
        except SupabaseClientError as e:
            logger.warning(f"Could not load class names: {e}")
            names = {}
        return [{**row, "class_name": names.get(row.get("class_id"))} for row in rows]

    @staticmethod
    def feed_rule(
        user: AuthUser,
        org_id: str,
        class_id: Optional[str] = None,
        teacher_class_ids: Optional[str] = None,
        user_role: Optional[str] = None,
    ) -> Optional[VisibilityRule]:
        """
        Rule for the announcements list.

        An explicit class narrows to that class plus org-wide. Otherwise
        principals and admins see everything, teachers their classes,
        guardians their children's classes. Anyone else, and teachers or
        guardians without classes, get None: an empty feed, as with latest().
        """
        class_id = blank_to_none(class_id)
        if class_id:
            return announcement_rule([class_id])

        role = user_role if user_role and user.has_role(user_role) else user.primary_role

        if role in ("principal", "admin"):
            return announcement_rule([], is_principal=True)

        ids: list[str] = []
        if role == "teacher":
            ids = parse_id_list(teacher_class_ids)
            if not ids:
                try:
                    ids = SupabaseClient.fetch_teacher_class_ids(user.id, org_id)
                except SupabaseClientError as e:
                    logger.error(f"Teacher class lookup failed for {user.id}: {e}")
        elif role in ("guardian", "parent"):
            try:
                ids = SupabaseClient.fetch_guardian_class_ids(user.id)
            except SupabaseClientError as e:
                logger.error(f"Guardian class lookup failed for {user.id}: {e}")

        return announcement_rule(ids)

    @staticmethod
    def list_announcements(
        user: AuthUser,
        org_id: str,
        announcement_id: Optional[str] = None,
        class_id: Optional[str] = None,
        teacher_class_ids: Optional[str] = None,
        limit: int = DEFAULT_LIST_LIMIT,
        user_role: Optional[str] = None,
    ) -> list[dict[str, Any]]:
        """Announcements visible to the caller, newest first, with class names."""
        if announcement_id:
            row = AnnouncementService._fetch(announcement_id)
            if not row or row.get("deleted_at") or row.get("org_id") != org_id:
                return []
            return AnnouncementService.with_class_names([row])

        rule = AnnouncementService.feed_rule(
            user, org_id,
            class_id=class_id,
            teacher_class_ids=teacher_class_ids,
            user_role=user_role,
        )
        if rule is None:
            return []
        rows = AnnouncementService._run_feed(org_id, rule, limit)
        return AnnouncementService.with_class_names(rows)

    @staticmethod
    def latest(
        org_id: str,
        class_id: Optional[str] = None,
        is_principal: bool = False,
    ) -> list[dict[str, Any]]:
        """
        The few newest announcements for a dashboard widget.

        With a class: that class plus org-wide. Without one: the org's
        latest for principals, nothing for anyone else.
        """
        class_id = blank_to_none(class_id)
        rule = announcement_rule([class_id] if class_id else [], is_principal=is_principal)
        if rule is None:
            return []
        return AnnouncementService._run_feed(org_id, rule, settings.LATEST_ANNOUNCEMENTS_LIMIT)

    # -------------------------------------------------------------------------
    # CRUD
    # -------------------------------------------------------------------------

    @staticmethod
    def _fetch(announcement_id: str) -> Optional[dict[str, Any]]:
        client = SupabaseClient.get_client()

        try:
            response = (
                client.table("announcements")
                .select(ANNOUNCEMENT_COLUMNS)
                .eq("id", announcement_id)
                .maybe_single()
                .execute()
            )
        except Exception as e:
            logger.error(f"Failed to fetch announcement {announcement_id}: {e}")
            raise DatabaseError.from_exception("fetch announcement", e)

        return row_of(response)

    @staticmethod
    def resolve_org_for_create(user: AuthUser, class_id: Optional[str] = None) -> str:
        """
        Organization a new announcement belongs to.

        Order: token metadata, users table, DEFAULT_ORG_ID, the class's org.
        """
        try:
            return resolve_org_id(user)
        except OrgNotFoundError:
            pass

        if settings.DEFAULT_ORG_ID:
            logger.warning(f"Using DEFAULT_ORG_ID for user {user.id}")
            return settings.DEFAULT_ORG_ID

        class_id = blank_to_none(class_id)
        if class_id:
            client = SupabaseClient.get_client()
            try:
                cls = row_of(
                    client.table("classes")
                    .select("org_id")
                    .eq("id", class_id)
                    .maybe_single()
                    .execute()
                )
            except Exception as e:
                logger.error(f"Failed to resolve org via class {class_id}: {e}")
                cls = None
            if cls and cls.get("org_id"):
                return str(cls["org_id"])

        raise OrgNotFoundError(str(user.id))

    @staticmethod
    def _default_class_id(user_id: str, org_id: str) -> Optional[str]:
        """First class the user is a member of, if any."""
        client = SupabaseClient.get_client()
        try:
            rows = rows_of(
                client.table("class_memberships")
                .select("class_id")
                .eq("user_id", user_id)
                .eq("org_id", org_id)
                .limit(1)
                .execute()
            )
        except Exception as e:
            logger.warning(f"Class membership lookup failed for {user_id}: {e}")
            return None
        return rows[0].get("class_id") if rows else None

    @staticmethod
    def create_announcement(
        org_id: str,
        author_id: str,
        data: AnnouncementCreate,
    ) -> dict[str, Any]:
        """
        Create an announcement for the current week, then notify its audience.

        Returns:
            The created announcement row
        """
        if data.class_id_given:
            class_id = blank_to_none(data.class_id)
        else:
            class_id = AnnouncementService._default_class_id(author_id, org_id)

        record = {
            "org_id": org_id,
            "class_id": class_id,
            "author_id": author_id,
            "title": data.title,
            "body": data.body,
            "is_public": True,
            "week_start": week_start().isoformat(),
        }

        client = SupabaseClient.get_client()
        try:
            response = client.table("announcements").insert(record).execute()
        except Exception as e:
            logger.error(f"Failed to create announcement: {e}")
            raise DatabaseError.from_exception("create announcement", e)

        announcement = row_of(response)
        if not announcement:
            raise DatabaseError("create announcement", "Insert returned no data")

        logger.info(f"Created announcement: {announcement['id']} in org {org_id} (class={class_id})")

        NotificationService.notify_safely(
            org_id=org_id,
            class_id=class_id,
            author_id=author_id,
            kind="announcement",
            title=data.title,
            body=data.body,
            data={
                "announcement_id": announcement["id"],
                "class_id": class_id,
                "author_id": author_id,
            },
        )

        return announcement

    @staticmethod
    def _check_can_modify(
        announcement_id: str,
        user: AuthUser,
        org_id: Optional[str],
        action: str,
    ) -> dict[str, Any]:
        announcement = AnnouncementService._fetch(announcement_id)
        if not announcement or announcement.get("deleted_at"):
            raise ResourceNotFoundError("announcement", announcement_id)

        if not user.is_admin:
            if announcement.get("author_id") != str(user.id):
                raise NotAuthorError("announcement", announcement_id, action=action)
            if announcement.get("org_id") and org_id and announcement["org_id"] != org_id:
                raise OrgMismatchError("announcement", announcement_id)

        return announcement

    @staticmethod
    def update_announcement(
        announcement_id: str,
        user: AuthUser,
        org_id: Optional[str],
        data: AnnouncementUpdate,
    ) -> dict[str, Any]:
        """Update title/body (and class when supplied). Author or admin only."""
        announcement = AnnouncementService._check_can_modify(announcement_id, user, org_id, "edit")

        update_data: dict[str, Any] = {
            "title": data.title,
            "body": data.body,
            "updated_at": utc_now_iso(),
        }
        if "class_id" in data.model_fields_set:
            update_data["class_id"] = blank_to_none(data.class_id)

        client = SupabaseClient.get_client()
        try:
            response = (
                client.table("announcements")
                .update(update_data)
                .eq("id", announcement_id)
                .execute()
            )
        except Exception as e:
            logger.error(f"Failed to update announcement {announcement_id}: {e}")
            raise DatabaseError.from_exception("update announcement", e)

        logger.info(f"Updated announcement: {announcement_id}")
        return row_of(response) or {**announcement, **update_data}

    @staticmethod
    def delete_announcement(
        announcement_id: str,
        user: AuthUser,
        org_id: Optional[str],
    ) -> None:
        """Soft delete. Author or admin only."""
        AnnouncementService._check_can_modify(announcement_id, user, org_id, "delete")

        client = SupabaseClient.get_client()
        try:
            (
                client.table("announcements")
                .update({"deleted_at": utc_now_iso()})
                .eq("id", announcement_id)
                .execute()
            )
        except Exception as e:
            logger.error(f"Failed to delete announcement {announcement_id}: {e}")
            raise DatabaseError.from_exception("delete announcement", e)

        logger.info(f"Soft-deleted announcement: {announcement_id}")
