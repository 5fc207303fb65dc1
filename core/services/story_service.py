# =============================================================================
# core/services/story_service.py - Story Business Logic
# =============================================================================
# Handles story CRUD, story items, and the audience-filtered feed.
# Separates HTTP concerns from database/business logic.
# =============================================================================

import logging
from typing import Any, Iterable, Optional

from app.config import settings
from app.exceptions import (
    DatabaseError,
    InvalidRequestError,
    NotAuthorError,
    OrgMismatchError,
    ResourceNotFoundError,
    StoryItemsError,
)
from core.models.story import StoryCreate, StoryItemCreate
from core.services.notification_service import NotificationService
from core.services.visibility import (
    Audience,
    apply_rule,
    parse_id_list,
    refilter,
    story_rule,
)
from lib.supabase_client import SupabaseClient, row_of, rows_of
from lib.utils import blank_to_none, utc_now_iso

logger = logging.getLogger(__name__)

STORY_COLUMNS = (
    "id, org_id, class_id, author_id, title, caption, is_public, "
    "expires_at, created_at, updated_at, deleted_at"
)
ITEM_COLUMNS = "id, story_id, order_index, url, duration_ms, caption, mime_type, created_at"


class StoryService:
    """
    Service for story operations.

    Every query is scoped by org_id: the Supabase client uses the service
    key, so row level security does not apply here.
    """

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    @staticmethod
    def build_item_rows(
        story_id: str,
        org_id: str,
        items: Iterable[StoryItemCreate],
    ) -> list[dict[str, Any]]:
        """
        Turn item payloads into story_items rows.

        Missing order_index defaults to the item's position and missing
        duration_ms to the configured default. Items with neither url
        nor caption are dropped.
        """
        rows = []
        for idx, item in enumerate(items):
            row = {
                "org_id": org_id,
                "story_id": story_id,
                "url": item.url or None,
                "order_index": item.order_index if item.order_index is not None else idx,
                "duration_ms": item.duration_ms if item.duration_ms is not None else settings.STORY_ITEM_DEFAULT_DURATION_MS,
                "caption": item.caption or None,
                "mime_type": item.mime_type or None,
            }
            if not (row["url"] or row["caption"]):
                logger.debug(f"Dropping empty story item at index {row['order_index']}")
                continue
            rows.append(row)
        return rows

    @staticmethod
    def resolve_class_ids(
        audience: Optional[Audience],
        user_id: str,
        org_id: str,
        teacher_class_ids: Optional[str] = None,
        parent_class_ids: Optional[str] = None,
        teacher_author_id: Optional[str] = None,
    ) -> list[str]:
        """
        Class ids a teacher or parent audience is scoped to.

        Ids sent by the client win; otherwise they are looked up:
        teachers from class_memberships, parents through their linked
        students. Lookup failures degrade to "no classes" (org-wide only).
        """
        if audience == Audience.TEACHER:
            ids = parse_id_list(teacher_class_ids)
            if ids:
                return ids
            try:
                return SupabaseClient.fetch_teacher_class_ids(teacher_author_id or user_id, org_id)
            except Exception as e:
                logger.error(f"Teacher class lookup failed for {user_id}: {e}")
                return []

        if audience == Audience.PARENT:
            ids = parse_id_list(parent_class_ids)
            if ids:
                return ids
            try:
                return SupabaseClient.fetch_guardian_class_ids(user_id)
            except Exception as e:
                logger.error(f"Guardian class lookup failed for {user_id}: {e}")
                return []

        return []

    @staticmethod
    def _fetch(story_id: str, columns: str = STORY_COLUMNS) -> Optional[dict[str, Any]]:
        client = SupabaseClient.get_client()

        try:
            response = (
                client.table("stories")
                .select(columns)
                .eq("id", story_id)
                .maybe_single()
                .execute()
            )
        except Exception as e:
            logger.error(f"Failed to fetch story {story_id}: {e}")
            raise DatabaseError.from_exception("fetch story", e)

        return row_of(response)

    @staticmethod
    def _fetch_in_org(story_id: str, org_id: str) -> dict[str, Any]:
        story = StoryService._fetch(story_id)
        if not story:
            raise ResourceNotFoundError("story", story_id)
        if story.get("org_id") != org_id:
            raise OrgMismatchError("story", story_id)
        return story

    # -------------------------------------------------------------------------
    # Feed
    # -------------------------------------------------------------------------

    @staticmethod
    def list_stories(
        org_id: str,
        user_id: str,
        class_id: Optional[str] = None,
        include_deleted: bool = False,
        only_public: bool = False,
        audience: Optional[Audience] = None,
        class_ids: Iterable[str] = (),
        author_id: Optional[str] = None,
    ) -> list[dict[str, Any]]:
        """
        Stories visible to the caller, newest first.

        Expired stories are always hidden; soft-deleted ones unless
        include_deleted. The audience rule is pushed into the query and
        then re-checked over the returned rows.

        Args:
            class_ids: Resolved class scope for teacher/parent audiences
            author_id: Author a principal audience is scoped to (default: caller)
        """
        rule = story_rule(audience, class_ids, author_id or user_id)

        client = SupabaseClient.get_client()
        query = (
            client.table("stories")
            .select(STORY_COLUMNS)
            .eq("org_id", org_id)
            .order("created_at", desc=True)
        )

        class_id = blank_to_none(class_id)
        if class_id:
            query = query.eq("class_id", class_id)
        if not include_deleted:
            query = query.is_("deleted_at", "null")
        query = query.gt("expires_at", utc_now_iso())
        if only_public:
            query = query.eq("is_public", True)

        query = apply_rule(query, rule)

        try:
            rows = rows_of(query.execute())
        except Exception as e:
            logger.error(f"Failed to list stories for org {org_id}: {e}")
            raise DatabaseError.from_exception("fetch stories", e)

        return refilter(rows, rule, resource="story")

    # -------------------------------------------------------------------------
    # CRUD
    # -------------------------------------------------------------------------

    @staticmethod
    def create_story(
        org_id: str,
        author_id: str,
        data: StoryCreate,
    ) -> dict[str, Any]:
        """
        Create a story with its items, then notify its audience.

        Returns:
            {"story": {...}, "items": [...]}

        Raises:
            StoryItemsError: Story saved but items failed (carries the story)
        """
        client = SupabaseClient.get_client()
        class_id = blank_to_none(data.class_id)

        record = {
            "org_id": org_id,
            "class_id": class_id,
            "author_id": author_id,
            "title": data.title or None,
            "caption": data.caption or None,
            "is_public": data.is_public,
            "expires_at": data.expires_at.isoformat(),
            "deleted_at": None,
        }

        try:
            response = client.table("stories").insert(record).execute()
        except Exception as e:
            logger.error(f"Failed to create story: {e}")
            raise DatabaseError.from_exception("create story", e)

        story = row_of(response)
        if not story:
            raise DatabaseError("create story", "Insert returned no data")

        logger.info(f"Created story: {story['id']} in org {org_id} (class={class_id})")

        items: list[dict[str, Any]] = []
        payload = StoryService.build_item_rows(story["id"], org_id, data.items)
        if payload:
            try:
                items = rows_of(client.table("story_items").insert(payload).execute())
            except Exception as e:
                logger.error(f"Failed to insert items for story {story['id']}: {e}")
                raise StoryItemsError(story, e)
            logger.info(f"Inserted {len(items)} items for story {story['id']}")

        NotificationService.notify_safely(
            org_id=org_id,
            class_id=class_id,
            author_id=author_id,
            kind="story",
            title=data.title or "New story",
            body=data.caption,
            data={"story_id": story["id"], "class_id": class_id, "author_id": author_id},
        )

        return {"story": story, "items": items}

    @staticmethod
    def get_story(story_id: str, org_id: str) -> dict[str, Any]:
        """
        A story and its items.

        Raises:
            ResourceNotFoundError: Missing or soft-deleted
            OrgMismatchError: Story belongs to another org
        """
        story = StoryService._fetch(story_id)
        if not story or story.get("deleted_at"):
            raise ResourceNotFoundError("story", story_id)
        if story.get("org_id") != org_id:
            raise OrgMismatchError("story", story_id)

        client = SupabaseClient.get_client()
        try:
            items = rows_of(
                client.table("story_items")
                .select(ITEM_COLUMNS)
                .eq("story_id", story_id)
                .order("order_index")
                .execute()
            )
        except Exception as e:
            # The story is still useful without its items
            logger.warning(f"Failed to load items for story {story_id}: {e}")
            items = []

        return {"story": story, "items": items}

    @staticmethod
    def update_story(
        story_id: str,
        org_id: str,
        author_id: str,
        changes: dict[str, Any],
    ) -> dict[str, Any]:
        """
        Apply a partial update. Only the author may edit.

        Args:
            changes: Fields explicitly present in the request body
        """
        story = StoryService._fetch(story_id)
        if not story:
            raise ResourceNotFoundError("story", story_id)
        if story.get("author_id") != author_id:
            raise NotAuthorError("story", story_id, action="edit")
        if story.get("org_id") != org_id:
            raise OrgMismatchError("story", story_id)

        update_data: dict[str, Any] = {"updated_at": utc_now_iso()}
        for field in ("title", "caption"):
            if field in changes:
                update_data[field] = changes[field] or None
        if "is_public" in changes and changes["is_public"] is not None:
            update_data["is_public"] = bool(changes["is_public"])
        if changes.get("expires_at") is not None:
            expires_at = changes["expires_at"]
            update_data["expires_at"] = expires_at.isoformat() if hasattr(expires_at, "isoformat") else expires_at
        if "class_id" in changes:
            update_data["class_id"] = blank_to_none(changes["class_id"])

        client = SupabaseClient.get_client()
        try:
            response = (
                client.table("stories")
                .update(update_data)
                .eq("id", story_id)
                .execute()
            )
        except Exception as e:
            logger.error(f"Failed to update story {story_id}: {e}")
            raise DatabaseError.from_exception("update story", e)

        logger.info(f"Updated story: {story_id}")
        return row_of(response) or {**story, **update_data}

    @staticmethod
    def delete_story(story_id: str, org_id: str, author_id: str) -> None:
        """Soft delete. Only the author may delete."""
        story = StoryService._fetch(story_id)
        if not story:
            raise ResourceNotFoundError("story", story_id)
        if story.get("author_id") != author_id:
            raise NotAuthorError("story", story_id, action="delete")
        if story.get("org_id") != org_id:
            raise OrgMismatchError("story", story_id)

        client = SupabaseClient.get_client()
        try:
            (
                client.table("stories")
                .update({"deleted_at": utc_now_iso()})
                .eq("id", story_id)
                .execute()
            )
        except Exception as e:
            logger.error(f"Failed to delete story {story_id}: {e}")
            raise DatabaseError.from_exception("delete story", e)

        logger.info(f"Soft-deleted story: {story_id}")

    # -------------------------------------------------------------------------
    # Items
    # -------------------------------------------------------------------------

    @staticmethod
    def add_items(
        story_id: str,
        org_id: str,
        items: list[StoryItemCreate],
    ) -> list[dict[str, Any]]:
        """
        Append items to an existing story.

        Raises:
            InvalidRequestError: Every item was empty
        """
        story = StoryService._fetch_in_org(story_id, org_id)

        payload = StoryService.build_item_rows(story_id, story["org_id"], items)
        if not payload:
            raise InvalidRequestError("No valid items to insert")

        client = SupabaseClient.get_client()
        try:
            inserted = rows_of(client.table("story_items").insert(payload).execute())
        except Exception as e:
            logger.error(f"Failed to insert items for story {story_id}: {e}")
            raise DatabaseError.from_exception("save story items", e)

        logger.info(f"Added {len(inserted)} items to story {story_id}")
        return inserted

    @staticmethod
    def delete_items(story_id: str, org_id: str) -> None:
        """Remove every item of a story (used before re-uploading them)."""
        StoryService._fetch_in_org(story_id, org_id)

        client = SupabaseClient.get_client()
        try:
            client.table("story_items").delete().eq("story_id", story_id).execute()
        except Exception as e:
            logger.error(f"Failed to delete items for story {story_id}: {e}")
            raise DatabaseError.from_exception("delete story items", e)

        logger.info(f"Deleted all items of story {story_id}")
