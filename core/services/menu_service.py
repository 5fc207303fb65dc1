# =============================================================================
# core/services/menu_service.py - Menu Business Logic
# =============================================================================
# Daily menus. Writes are "upserts by slot": the slot is (org, day, class),
# with class null meaning org-wide. Database network failures surface as
# retryable 503s so the client can try again.
# =============================================================================

import logging
from typing import Any, Optional

from app.exceptions import DatabaseError, ResourceNotFoundError
from core.models.menu import MenuUpdate, MenuUpsert
from lib.supabase_client import SupabaseClient, row_of, rows_of
from lib.utils import blank_to_none, utc_now_iso

logger = logging.getLogger(__name__)

MENU_COLUMNS = (
    "id, org_id, class_id, day, breakfast, lunch, snack, notes, "
    "is_public, created_by, created_at, updated_at"
)
MEAL_FIELDS = ("breakfast", "lunch", "snack", "notes")


class MenuService:

    @staticmethod
    def list_menus(
        org_id: str,
        user_id: str,
        is_teacher: bool = False,
        class_id: Optional[str] = None,
        day: Optional[str] = None,
    ) -> list[dict[str, Any]]:
        """
        Live menus in the org, newest day first.

        Teachers only see the menus they created.
        """
        client = SupabaseClient.get_client()
        query = (
            client.table("menus")
            .select(MENU_COLUMNS)
            .eq("org_id", org_id)
            .is_("deleted_at", "null")
            .order("day", desc=True)
        )
        class_id = blank_to_none(class_id)
        if class_id:
            query = query.eq("class_id", class_id)
        if is_teacher:
            query = query.eq("created_by", user_id)
        if day:
            query = query.eq("day", day)

        try:
            return rows_of(query.execute())
        except Exception as e:
            logger.error(f"Failed to fetch menus for org {org_id}: {e}")
            raise DatabaseError.from_exception("fetch menus", e)

    @staticmethod
    def _find_slot(org_id: str, day: str, class_id: Optional[str]) -> Optional[dict[str, Any]]:
        client = SupabaseClient.get_client()
        query = (
            client.table("menus")
            .select("id")
            .eq("org_id", org_id)
            .eq("day", day)
            .is_("deleted_at", "null")
        )
        if class_id:
            query = query.eq("class_id", class_id)
        else:
            query = query.is_("class_id", "null")

        try:
            rows = rows_of(query.limit(1).execute())
        except Exception as e:
            logger.error(f"Failed to check for existing menu on {day}: {e}")
            raise DatabaseError.from_exception("check for existing menu", e)
        return rows[0] if rows else None

    @staticmethod
    def upsert_menu(
        org_id: str,
        user_id: str,
        data: MenuUpsert,
    ) -> dict[str, Any]:
        """
        Create the menu for a slot, or update the live one.

        A soft-deleted menu is never revived; a new row takes its place.
        """
        class_id = blank_to_none(data.class_id)
        existing = MenuService._find_slot(org_id, data.day, class_id)
        client = SupabaseClient.get_client()
        fields = data.model_fields_set

        if existing and existing.get("id"):
            update_data: dict[str, Any] = {"deleted_at": None, "updated_at": utc_now_iso()}
            for field in MEAL_FIELDS:
                if field in fields:
                    update_data[field] = getattr(data, field) or None
            if "is_public" in fields:
                update_data["is_public"] = data.is_public

            try:
                response = (
                    client.table("menus")
                    .update(update_data)
                    .eq("id", existing["id"])
                    .execute()
                )
            except Exception as e:
                logger.error(f"Failed to update menu {existing['id']}: {e}")
                raise DatabaseError.from_exception("update menu", e)

            logger.info(f"Updated menu {existing['id']} for {data.day}")
            return row_of(response) or {**existing, **update_data}

        record = {
            "org_id": org_id,
            "class_id": class_id,
            "day": data.day,
            "breakfast": data.breakfast or None,
            "lunch": data.lunch or None,
            "snack": data.snack or None,
            "notes": data.notes or None,
            "is_public": data.is_public,
            "created_by": user_id,
            "deleted_at": None,
        }
        try:
            response = client.table("menus").insert(record).execute()
        except Exception as e:
            logger.error(f"Failed to create menu for {data.day}: {e}")
            raise DatabaseError.from_exception("create menu", e)

        created = row_of(response)
        if not created:
            raise DatabaseError("create menu", "Insert returned no data")

        logger.info(f"Created menu {created['id']} for {data.day} (class={class_id})")
        return created

    @staticmethod
    def update_menu(org_id: str, data: MenuUpdate) -> dict[str, Any]:
        """Update a live menu by id."""
        fields = data.model_fields_set
        update_data: dict[str, Any] = {"updated_at": utc_now_iso()}
        for field in MEAL_FIELDS:
            if field in fields:
                update_data[field] = getattr(data, field) or None
        if data.is_public is not None:
            update_data["is_public"] = data.is_public

        client = SupabaseClient.get_client()
        try:
            response = (
                client.table("menus")
                .update(update_data)
                .eq("id", data.id)
                .eq("org_id", org_id)
                .is_("deleted_at", "null")
                .execute()
            )
        except Exception as e:
            logger.error(f"Failed to update menu {data.id}: {e}")
            raise DatabaseError.from_exception("update menu", e)

        updated = row_of(response)
        if not updated:
            raise ResourceNotFoundError("menu", data.id)

        logger.info(f"Updated menu: {data.id}")
        return updated

    @staticmethod
    def delete_menu(org_id: str, menu_id: str) -> None:
        """Soft delete."""
        client = SupabaseClient.get_client()
        try:
            (
                client.table("menus")
                .update({"deleted_at": utc_now_iso()})
                .eq("id", menu_id)
                .eq("org_id", org_id)
                .execute()
            )
        except Exception as e:
            logger.error(f"Failed to delete menu {menu_id}: {e}")
            raise DatabaseError.from_exception("delete menu", e)

        logger.info(f"Soft-deleted menu: {menu_id}")
