# =============================================================================
# core/services/class_service.py - Class Business Logic
# =============================================================================
# Class CRUD and teacher assignment via class_memberships.
# =============================================================================

import logging
from typing import Any, Optional

from app.exceptions import DatabaseError, OrgMismatchError, ResourceNotFoundError
from core.models.classes import ClassCreate, ClassUpdate
from lib.supabase_client import SupabaseClient, row_of, rows_of
from lib.utils import full_name, utc_now_iso

logger = logging.getLogger(__name__)

CLASS_COLUMNS = "id, name, code, org_id, created_by, created_at, updated_at"
TEACHER_ROLE = "teacher"


class ClassService:

    @staticmethod
    def assigned_teachers(class_ids: list[str], org_id: str) -> dict[str, list[dict[str, Any]]]:
        """
        Teachers of each class, keyed by class id.

        Failures degrade to empty teacher lists; the classes are still
        worth returning.
        """
        if not class_ids:
            return {}

        client = SupabaseClient.get_client()
        try:
            memberships = rows_of(
                client.table("class_memberships")
                .select("class_id, user_id")
                .in_("class_id", class_ids)
                .eq("membership_role", TEACHER_ROLE)
                .eq("org_id", org_id)
                .execute()
            )
            user_ids = list({m["user_id"] for m in memberships if m.get("user_id")})
            users = rows_of(
                client.table("users")
                .select("id, first_name, last_name, email")
                .in_("id", user_ids)
                .execute()
            ) if user_ids else []
        except Exception as e:
            logger.warning(f"Could not load class teachers: {e}")
            return {}

        by_id = {u["id"]: u for u in users if u.get("id")}
        result: dict[str, list[dict[str, Any]]] = {}
        for m in memberships:
            user = by_id.get(m.get("user_id"))
            if not user:
                continue
            result.setdefault(m["class_id"], []).append({
                "id": user["id"],
                "full_name": full_name({k: user.get(k) for k in ("first_name", "last_name")}),
                "first_name": user.get("first_name"),
                "last_name": user.get("last_name"),
                "email": user.get("email"),
            })
        return result

    @staticmethod
    def list_classes(org_id: str, created_by: Optional[str] = None) -> list[dict[str, Any]]:
        """Live classes in the org, newest first, each with assigned_teachers."""
        client = SupabaseClient.get_client()
        query = (
            client.table("classes")
            .select(CLASS_COLUMNS)
            .eq("org_id", org_id)
            .is_("deleted_at", "null")
            .order("created_at", desc=True)
        )
        if created_by:
            query = query.eq("created_by", created_by)

        try:
            classes = rows_of(query.execute())
        except Exception as e:
            logger.error(f"Failed to fetch classes for org {org_id}: {e}")
            raise DatabaseError.from_exception("fetch classes", e)

        teachers = ClassService.assigned_teachers([c["id"] for c in classes], org_id)
        return [{**c, "assigned_teachers": teachers.get(c["id"], [])} for c in classes]

    @staticmethod
    def _fetch_in_org(class_id: str, org_id: str) -> dict[str, Any]:
        client = SupabaseClient.get_client()
        try:
            cls = row_of(
                client.table("classes")
                .select(CLASS_COLUMNS)
                .eq("id", class_id)
                .is_("deleted_at", "null")
                .maybe_single()
                .execute()
            )
        except Exception as e:
            logger.error(f"Failed to fetch class {class_id}: {e}")
            raise DatabaseError.from_exception("fetch class", e)

        if not cls:
            raise ResourceNotFoundError("class", class_id)
        if cls.get("org_id") != org_id:
            raise OrgMismatchError("class", class_id)
        return cls

    @staticmethod
    def create_class(org_id: str, user_id: str, data: ClassCreate) -> dict[str, Any]:
        """Create a class and, when teacher_id is given, assign that teacher."""
        client = SupabaseClient.get_client()
        try:
            created = row_of(
                client.table("classes")
                .insert({
                    "name": data.name.strip(),
                    "code": data.code or None,
                    "created_by": user_id,
                    "org_id": org_id,
                })
                .execute()
            )
        except Exception as e:
            logger.error(f"Failed to create class: {e}")
            raise DatabaseError.from_exception("create class", e)

        if not created:
            raise DatabaseError("create class", "Insert returned no data")

        logger.info(f"Created class {created['id']} ({data.name}) in org {org_id}")

        if data.teacher_id:
            try:
                ClassService.assign_teacher(created["id"], data.teacher_id, org_id)
            except DatabaseError as e:
                # The class exists either way; the assignment can be redone
                logger.warning(f"Class {created['id']} created without teacher: {e}")

        return created

    @staticmethod
    def update_class(org_id: str, data: ClassUpdate) -> dict[str, Any]:
        """Rename/recode a class and optionally (re)assign a teacher."""
        cls = ClassService._fetch_in_org(data.id, org_id)

        update_data: dict[str, Any] = {"updated_at": utc_now_iso()}
        if data.name:
            update_data["name"] = data.name.strip()
        if "code" in data.model_fields_set:
            update_data["code"] = data.code or None

        client = SupabaseClient.get_client()
        try:
            updated = row_of(
                client.table("classes")
                .update(update_data)
                .eq("id", data.id)
                .eq("org_id", org_id)
                .execute()
            )
        except Exception as e:
            logger.error(f"Failed to update class {data.id}: {e}")
            raise DatabaseError.from_exception("update class", e)

        if data.teacher_id:
            ClassService.assign_teacher(data.id, data.teacher_id, org_id)

        logger.info(f"Updated class: {data.id}")
        return updated or {**cls, **update_data}

    @staticmethod
    def delete_class(org_id: str, class_id: str) -> None:
        """Soft delete."""
        ClassService._fetch_in_org(class_id, org_id)

        client = SupabaseClient.get_client()
        try:
            (
                client.table("classes")
                .update({"deleted_at": utc_now_iso()})
                .eq("id", class_id)
                .eq("org_id", org_id)
                .execute()
            )
        except Exception as e:
            logger.error(f"Failed to delete class {class_id}: {e}")
            raise DatabaseError.from_exception("delete class", e)

        logger.info(f"Soft-deleted class: {class_id}")

    # -------------------------------------------------------------------------
    # Teacher Membership
    # -------------------------------------------------------------------------

    @staticmethod
    def assign_teacher(class_id: str, user_id: str, org_id: str) -> dict[str, Any]:
        """
        Make user_id a teacher of the class.

        Any existing membership of that user in the class is replaced so
        the user ends up with exactly one teacher row.
        """
        ClassService._fetch_in_org(class_id, org_id)

        client = SupabaseClient.get_client()
        try:
            (
                client.table("class_memberships")
                .delete()
                .eq("user_id", user_id)
                .eq("class_id", class_id)
                .execute()
            )
            membership = row_of(
                client.table("class_memberships")
                .insert({
                    "org_id": org_id,
                    "user_id": user_id,
                    "class_id": class_id,
                    "membership_role": TEACHER_ROLE,
                })
                .execute()
            )
        except Exception as e:
            logger.error(f"Failed to assign teacher {user_id} to class {class_id}: {e}")
            raise DatabaseError.from_exception("assign teacher to class", e)

        logger.info(f"Assigned teacher {user_id} to class {class_id}")
        return membership or {}

    @staticmethod
    def remove_teacher(class_id: str, user_id: str, org_id: str) -> None:
        ClassService._fetch_in_org(class_id, org_id)

        client = SupabaseClient.get_client()
        try:
            (
                client.table("class_memberships")
                .delete()
                .eq("user_id", user_id)
                .eq("class_id", class_id)
                .eq("membership_role", TEACHER_ROLE)
                .execute()
            )
        except Exception as e:
            logger.error(f"Failed to remove teacher {user_id} from class {class_id}: {e}")
            raise DatabaseError.from_exception("remove teacher from class", e)

        logger.info(f"Removed teacher {user_id} from class {class_id}")
