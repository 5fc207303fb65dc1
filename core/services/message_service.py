# =============================================================================
# core/services/message_service.py - Messaging Business Logic
# =============================================================================
# Threads, participants and message items.
#
# Access rule: a user can only see or change a thread they participate in.
# Each participant row carries an `unread` flag that is set when someone
# else posts and cleared when the user opens the thread.
# =============================================================================

import logging
import re
from typing import Any, Optional

from app.exceptions import DatabaseError, ResourceNotFoundError, SamveraException
from core.models.message import ThreadCreate, ThreadType, ThreadUpdate
from lib.supabase_client import SupabaseClient, row_of, rows_of
from lib.utils import full_name, utc_now_iso

logger = logging.getLogger(__name__)

THREAD_COLUMNS = "id, org_id, thread_type, subject, created_by, deleted_at, created_at, updated_at"
USER_COLUMNS = "id, first_name, last_name, email, role"

# Who each role may start a conversation with
RECIPIENT_ROLES = {
    "principal": ["teacher", "guardian", "principal"],
    "teacher": ["principal", "guardian", "teacher"],
    "guardian": ["teacher", "principal"],
}
RECIPIENT_LIMIT = 100

# Characters that would break a PostgREST or=() expression
_FILTER_UNSAFE = re.compile(r"[,()*%\\]")


class ThreadAccessError(SamveraException):
    """Raised when the caller is not a participant of a thread."""

    def __init__(self, message_id: str):
        super().__init__(
            message="Access denied or thread not found",
            code="THREAD_ACCESS_DENIED",
            status_code=403,
            details={"id": message_id},
        )


class MessageService:

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    @staticmethod
    def _participant(message_id: str, user_id: str, org_id: str) -> Optional[dict[str, Any]]:
        client = SupabaseClient.get_client()
        try:
            return row_of(
                client.table("message_participants")
                .select("id, message_id, unread")
                .eq("message_id", message_id)
                .eq("user_id", user_id)
                .eq("org_id", org_id)
                .maybe_single()
                .execute()
            )
        except Exception as e:
            logger.error(f"Failed to check participant {user_id} on thread {message_id}: {e}")
            raise DatabaseError.from_exception("check thread access", e)

    @staticmethod
    def _users_by_id(user_ids: list[str]) -> dict[str, dict[str, Any]]:
        if not user_ids:
            return {}
        client = SupabaseClient.get_client()
        try:
            users = rows_of(
                client.table("users")
                .select(USER_COLUMNS)
                .in_("id", user_ids)
                .execute()
            )
        except Exception as e:
            logger.warning(f"Could not load users for threads: {e}")
            return {}
        return {u["id"]: u for u in users if u.get("id")}

    @staticmethod
    def recipient_roles(
        roles: tuple[str, ...] | list[str],
        active_role: Optional[str] = None,
    ) -> list[str]:
        """
        Roles the caller may message, keyed on their active role when they
        hold it, else their first role.

        admin counts as principal, parent as guardian.
        """
        if not roles:
            return []
        current = active_role if active_role in roles else roles[0]
        role = {"admin": "principal", "parent": "guardian"}.get(current, current)
        return list(RECIPIENT_ROLES.get(role, []))

    # -------------------------------------------------------------------------
    # Threads
    # -------------------------------------------------------------------------

    @staticmethod
    def list_threads(user_id: str, org_id: str) -> list[dict[str, Any]]:
        """
        Threads the user participates in, newest first.

        Each thread carries the caller's unread flag, the latest item and
        the first other participant's profile.
        """
        client = SupabaseClient.get_client()

        try:
            mine = rows_of(
                client.table("message_participants")
                .select("message_id, unread")
                .eq("user_id", user_id)
                .eq("org_id", org_id)
                .execute()
            )
            if not mine:
                return []

            unread_by_thread = {p["message_id"]: bool(p.get("unread")) for p in mine}
            message_ids = list(unread_by_thread)

            threads = rows_of(
                client.table("messages")
                .select(THREAD_COLUMNS)
                .in_("id", message_ids)
                .eq("org_id", org_id)
                .is_("deleted_at", "null")
                .order("created_at", desc=True)
                .execute()
            )
            if not threads:
                return []

            thread_ids = [t["id"] for t in threads]
            everyone = rows_of(
                client.table("message_participants")
                .select("message_id, user_id, role")
                .in_("message_id", thread_ids)
                .eq("org_id", org_id)
                .execute()
            )
            items = rows_of(
                client.table("message_items")
                .select("*")
                .in_("message_id", thread_ids)
                .eq("org_id", org_id)
                .is_("deleted_at", "null")
                .order("created_at", desc=True)
                .execute()
            )
        except Exception as e:
            logger.error(f"Failed to list threads for {user_id}: {e}")
            raise DatabaseError.from_exception("fetch messages", e)

        latest: dict[str, dict[str, Any]] = {}
        for item in items:
            latest.setdefault(item.get("message_id"), item)

        others: dict[str, dict[str, Any]] = {}
        for p in everyone:
            if p.get("user_id") != user_id:
                others.setdefault(p.get("message_id"), p)

        users = MessageService._users_by_id(list({p["user_id"] for p in others.values()}))

        result = []
        for thread in threads:
            unread = unread_by_thread.get(thread["id"], False)
            other = others.get(thread["id"])
            profile = users.get(other["user_id"]) if other else None
            result.append({
                **thread,
                "unread": unread,
                "unread_count": 1 if unread else 0,
                "latest_item": latest.get(thread["id"]),
                "other_participant": {
                    "id": profile["id"],
                    "first_name": profile.get("first_name"),
                    "last_name": profile.get("last_name"),
                    "email": profile.get("email"),
                    "role": profile.get("role") or other.get("role"),
                } if profile else None,
            })
        return result

    @staticmethod
    def find_dm(user_id: str, recipient_id: str, org_id: str) -> Optional[dict[str, Any]]:
        """An existing, live DM thread between exactly these two users."""
        client = SupabaseClient.get_client()

        try:
            rows = rows_of(
                client.table("message_participants")
                .select("message_id, user_id")
                .in_("user_id", [user_id, recipient_id])
                .eq("org_id", org_id)
                .execute()
            )
        except Exception as e:
            logger.warning(f"DM lookup failed: {e}")
            return None

        members: dict[str, set[str]] = {}
        for row in rows:
            members.setdefault(row.get("message_id"), set()).add(row.get("user_id"))
        candidates = [mid for mid, who in members.items() if who == {user_id, recipient_id}]
        if not candidates:
            return None

        try:
            threads = rows_of(
                client.table("messages")
                .select(THREAD_COLUMNS)
                .in_("id", candidates)
                .eq("org_id", org_id)
                .eq("thread_type", ThreadType.DM.value)
                .is_("deleted_at", "null")
                .order("created_at", desc=True)
                .limit(1)
                .execute()
            )
        except Exception as e:
            logger.warning(f"DM lookup failed: {e}")
            return None

        return threads[0] if threads else None

    @staticmethod
    def create_thread(
        user_id: str,
        org_id: str,
        data: ThreadCreate,
    ) -> tuple[dict[str, Any], bool]:
        """
        Start a thread, or return the existing DM with the same person.

        Returns:
            (thread, created) - created is False when a DM was reused
        """
        is_direct = data.thread_type in (ThreadType.DM, ThreadType.INDIVIDUAL)
        direct_to = data.recipient_id or (data.recipients[0] if len(data.recipients) == 1 else None)
        if is_direct and direct_to:
            existing = MessageService.find_dm(user_id, direct_to, org_id)
            if existing:
                logger.info(f"Reusing DM thread {existing['id']} for {user_id}")
                return existing, False

        client = SupabaseClient.get_client()
        try:
            thread = row_of(
                client.table("messages")
                .insert({
                    "org_id": org_id,
                    "thread_type": data.thread_type.value,
                    "subject": data.subject or None,
                    "created_by": user_id,
                })
                .execute()
            )
        except Exception as e:
            logger.error(f"Failed to create thread: {e}")
            raise DatabaseError.from_exception("create message thread", e)

        if not thread:
            raise DatabaseError("create message thread", "Insert returned no data")

        member_ids = list(dict.fromkeys([user_id, *data.recipients]))
        participants = [
            {
                "org_id": org_id,
                "message_id": thread["id"],
                "user_id": member_id,
                "unread": member_id != user_id,
                "role": None,
            }
            for member_id in member_ids
        ]

        try:
            client.table("message_participants").insert(participants).execute()
        except Exception as e:
            logger.error(f"Failed to add participants to thread {thread['id']}: {e}")
            try:
                client.table("messages").delete().eq("id", thread["id"]).execute()
            except Exception as cleanup_error:
                logger.error(f"Failed to remove orphaned thread {thread['id']}: {cleanup_error}")
            raise DatabaseError.from_exception("add message participants", e)

        logger.info(f"Created {data.thread_type.value} thread {thread['id']} with {len(member_ids)} participants")
        return thread, True

    @staticmethod
    def update_thread(user_id: str, org_id: str, data: ThreadUpdate) -> dict[str, Any]:
        """Change subject or deleted_at. Participants only."""
        if not MessageService._participant(data.id, user_id, org_id):
            raise ResourceNotFoundError("message", data.id)

        fields = data.model_fields_set
        update_data: dict[str, Any] = {}
        if "subject" in fields:
            update_data["subject"] = data.subject
        if "deleted_at" in fields:
            update_data["deleted_at"] = data.deleted_at.isoformat() if data.deleted_at else None
        if not update_data:
            update_data["updated_at"] = utc_now_iso()

        client = SupabaseClient.get_client()
        try:
            response = (
                client.table("messages")
                .update(update_data)
                .eq("id", data.id)
                .eq("org_id", org_id)
                .execute()
            )
        except Exception as e:
            logger.error(f"Failed to update thread {data.id}: {e}")
            raise DatabaseError.from_exception("update message", e)

        updated = row_of(response)
        if not updated:
            raise ResourceNotFoundError("message", data.id)
        return updated

    @staticmethod
    def delete_thread(user_id: str, org_id: str, message_id: str) -> None:
        """Soft delete. Participants only."""
        if not MessageService._participant(message_id, user_id, org_id):
            raise ResourceNotFoundError("message", message_id)

        client = SupabaseClient.get_client()
        try:
            (
                client.table("messages")
                .update({"deleted_at": utc_now_iso()})
                .eq("id", message_id)
                .eq("org_id", org_id)
                .execute()
            )
        except Exception as e:
            logger.error(f"Failed to delete thread {message_id}: {e}")
            raise DatabaseError.from_exception("delete message", e)

        logger.info(f"Soft-deleted thread: {message_id}")

    # -------------------------------------------------------------------------
    # Recipients
    # -------------------------------------------------------------------------

    @staticmethod
    def recipients(
        roles: tuple[str, ...] | list[str],
        org_id: str,
        search: Optional[str] = None,
        active_role: Optional[str] = None,
    ) -> dict[str, Any]:
        """
        People the caller may message, optionally filtered by name/email.

        Returns:
            {"recipients": [...], "grouped": {role: [...]}}
        """
        allowed = MessageService.recipient_roles(roles, active_role)
        if not allowed:
            return {"recipients": [], "grouped": {}}

        client = SupabaseClient.get_client()
        query = (
            client.table("users")
            .select("id, email, first_name, last_name, role, org_id")
            .eq("org_id", org_id)
            .in_("role", allowed)
            .is_("deleted_at", "null")
            .order("first_name")
            .order("last_name")
        )

        term = _FILTER_UNSAFE.sub("", (search or "")).strip()
        if term:
            query = query.or_(
                f"first_name.ilike.%{term}%,last_name.ilike.%{term}%,email.ilike.%{term}%"
            )

        try:
            users = rows_of(query.limit(RECIPIENT_LIMIT).execute())
        except Exception as e:
            logger.error(f"Failed to fetch recipients: {e}")
            raise DatabaseError.from_exception("fetch recipients", e)

        recipients = [
            {
                "id": u["id"],
                "email": u.get("email"),
                "name": full_name(u),
                "role": u.get("role"),
                "org_id": u.get("org_id"),
            }
            for u in users
        ]
        grouped = {role: [r for r in recipients if r["role"] == role] for role in allowed}
        return {"recipients": recipients, "grouped": grouped}

    # -------------------------------------------------------------------------
    # Items
    # -------------------------------------------------------------------------

    @staticmethod
    def list_items(
        message_id: str,
        user_id: str,
        org_id: str,
        limit: int = 50,
        offset: int = 0,
    ) -> list[dict[str, Any]]:
        """
        A page of a thread's items, oldest first, and mark it read.

        The page is taken from the newest end: offset 0 is the latest
        `limit` items.
        """
        participant = MessageService._participant(message_id, user_id, org_id)
        if not participant:
            raise ThreadAccessError(message_id)

        limit = max(1, min(limit, 100))
        offset = max(offset, 0)

        client = SupabaseClient.get_client()
        try:
            items = rows_of(
                client.table("message_items")
                .select("id, message_id, author_id, body, attachments, created_at, updated_at")
                .eq("message_id", message_id)
                .is_("deleted_at", "null")
                .order("created_at", desc=True)
                .range(offset, offset + limit - 1)
                .execute()
            )
        except Exception as e:
            logger.error(f"Failed to fetch items of thread {message_id}: {e}")
            raise DatabaseError.from_exception("fetch message items", e)

        if participant.get("unread"):
            try:
                (
                    client.table("message_participants")
                    .update({"unread": False})
                    .eq("message_id", message_id)
                    .eq("user_id", user_id)
                    .execute()
                )
            except Exception as e:
                logger.warning(f"Could not mark thread {message_id} read for {user_id}: {e}")

        authors = MessageService._users_by_id(list({i["author_id"] for i in items if i.get("author_id")}))

        result = []
        for item in reversed(items):
            author = authors.get(item.get("author_id"))
            result.append({
                **item,
                "author_name": full_name(author),
                "author_email": author.get("email") if author else None,
                "author_role": author.get("role") if author else None,
                "attachments": item.get("attachments") or [],
            })
        return result

    @staticmethod
    def post_item(
        message_id: str,
        user_id: str,
        org_id: str,
        body: str,
        attachments: list[Any],
    ) -> dict[str, Any]:
        """Post to a thread, flag it unread for everyone else, bump updated_at."""
        if not MessageService._participant(message_id, user_id, org_id):
            raise ThreadAccessError(message_id)

        client = SupabaseClient.get_client()
        try:
            thread = row_of(
                client.table("messages")
                .select("id, org_id")
                .eq("id", message_id)
                .eq("org_id", org_id)
                .is_("deleted_at", "null")
                .maybe_single()
                .execute()
            )
        except Exception as e:
            logger.error(f"Failed to load thread {message_id}: {e}")
            raise DatabaseError.from_exception("fetch message thread", e)

        if not thread:
            raise ResourceNotFoundError("message_thread", message_id)

        try:
            item = row_of(
                client.table("message_items")
                .insert({
                    "org_id": org_id,
                    "message_id": message_id,
                    "author_id": user_id,
                    "body": body.strip(),
                    "attachments": attachments if isinstance(attachments, list) else [],
                })
                .execute()
            )
        except Exception as e:
            logger.error(f"Failed to post to thread {message_id}: {e}")
            raise DatabaseError.from_exception("create message", e)

        if not item:
            raise DatabaseError("create message", "Insert returned no data")

        try:
            (
                client.table("message_participants")
                .update({"unread": True})
                .eq("message_id", message_id)
                .neq("user_id", user_id)
                .execute()
            )
            (
                client.table("messages")
                .update({"updated_at": utc_now_iso()})
                .eq("id", message_id)
                .execute()
            )
        except Exception as e:
            logger.warning(f"Posted item {item['id']} but failed to update thread state: {e}")

        logger.info(f"Posted item {item['id']} to thread {message_id}")
        return item
