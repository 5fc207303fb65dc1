# =============================================================================
# core/services/health_log_service.py - Health Log Business Logic
# =============================================================================
# Who sees which logs:
# - Guardians: every log of their linked students
# - Teachers (not also principal/admin): only logs they recorded
# - Admins / principals: every log in the org
#
# Only the recorder or an admin/principal may change or delete a log.
# =============================================================================

import logging
from typing import Any, Optional

from app.auth.models import AuthUser
from app.exceptions import (
    DatabaseError,
    NotAuthorError,
    OrgMismatchError,
    ResourceNotFoundError,
)
from core.models.health_log import HealthLogCreate, HealthLogUpdate
from lib.supabase_client import SupabaseClient, SupabaseClientError, row_of, rows_of
from lib.utils import blank_to_none, full_name, utc_now_iso

logger = logging.getLogger(__name__)

HEALTH_LOG_COLUMNS = (
    "id, org_id, class_id, student_id, type, recorded_at, temperature_celsius, "
    "data, notes, severity, recorded_by, created_at, updated_at"
)
OPTIONAL_FIELDS = ("temperature_celsius", "notes", "severity")


class HealthLogService:

    @staticmethod
    def list_logs(
        user: AuthUser,
        org_id: str,
        student_id: Optional[str] = None,
        log_type: Optional[str] = None,
    ) -> list[dict[str, Any]]:
        """Health logs the caller may see, most recent first."""
        user_id = str(user.id)
        client = SupabaseClient.get_client()
        query = (
            client.table("health_logs")
            .select(HEALTH_LOG_COLUMNS)
            .eq("org_id", org_id)
            .is_("deleted_at", "null")
            .order("recorded_at", desc=True)
        )

        if user.is_guardian:
            try:
                student_ids = SupabaseClient.fetch_guardian_student_ids(user_id)
            except SupabaseClientError as e:
                logger.error(f"Guardian student lookup failed for {user_id}: {e}")
                return []
            if not student_ids:
                return []
            query = query.in_("student_id", student_ids)
        elif user.is_teacher and not user.is_admin_or_principal:
            query = query.eq("recorded_by", user_id)

        if student_id:
            query = query.eq("student_id", student_id)
        if log_type:
            query = query.eq("type", log_type)

        try:
            logs = rows_of(query.execute())
        except Exception as e:
            logger.error(f"Failed to fetch health logs for org {org_id}: {e}")
            raise DatabaseError.from_exception("fetch health logs", e)

        return HealthLogService.with_names(logs)

    @staticmethod
    def with_names(logs: list[dict[str, Any]]) -> list[dict[str, Any]]:
        """
        Add student_name, recorded_by_name and class_name to each log.

        Names are loaded in three batched queries. A failed lookup leaves
        the names as None rather than failing the list.
        """
        if not logs:
            return logs

        client = SupabaseClient.get_client()
        student_ids = list({log["student_id"] for log in logs if log.get("student_id")})
        students: dict[str, dict[str, Any]] = {}
        users: dict[str, dict[str, Any]] = {}
        class_names: dict[str, str] = {}

        try:
            if student_ids:
                students = {
                    s["id"]: s
                    for s in rows_of(
                        client.table("students")
                        .select("id, user_id, class_id")
                        .in_("id", student_ids)
                        .execute()
                    )
                    if s.get("id")
                }

            user_ids = {s["user_id"] for s in students.values() if s.get("user_id")}
            user_ids |= {log["recorded_by"] for log in logs if log.get("recorded_by")}
            if user_ids:
                users = {
                    u["id"]: u
                    for u in rows_of(
                        client.table("users")
                        .select("id, first_name, last_name, email")
                        .in_("id", list(user_ids))
                        .execute()
                    )
                    if u.get("id")
                }

            class_ids = {log["class_id"] for log in logs if log.get("class_id")}
            class_ids |= {s["class_id"] for s in students.values() if s.get("class_id")}
            class_names = SupabaseClient.fetch_class_names(list(class_ids))
        except Exception as e:
            logger.warning(f"Could not load names for health logs: {e}")

        result = []
        for log in logs:
            student = students.get(log.get("student_id")) or {}
            student_user = users.get(student.get("user_id"))
            author = users.get(log.get("recorded_by"))
            class_id = log.get("class_id") or student.get("class_id")
            result.append({
                **log,
                "student_name": full_name(student_user) if student_user else None,
                "recorded_by_name": full_name(author) if author else None,
                "class_name": class_names.get(class_id) if class_id else None,
            })
        return result

    @staticmethod
    def create_log(
        org_id: str,
        user_id: str,
        data: HealthLogCreate,
    ) -> dict[str, Any]:
        """
        Record a health event.

        Raises:
            OrgMismatchError: The student belongs to another org
        """
        class_id = blank_to_none(data.class_id)
        client = SupabaseClient.get_client()

        if not class_id:
            try:
                student = row_of(
                    client.table("students")
                    .select("class_id, org_id")
                    .eq("id", data.student_id)
                    .maybe_single()
                    .execute()
                )
            except Exception as e:
                logger.error(f"Failed to fetch student {data.student_id}: {e}")
                raise DatabaseError.from_exception("fetch student", e)

            if student and student.get("org_id") and student["org_id"] != org_id:
                raise OrgMismatchError("student", data.student_id)
            if student and student.get("class_id"):
                class_id = student["class_id"]

        record = {
            "org_id": org_id,
            "class_id": class_id,
            "student_id": data.student_id,
            "type": data.type.value,
            "recorded_at": data.recorded_at.isoformat(),
            "temperature_celsius": data.temperature_celsius,
            "data": data.data or {},
            "notes": data.notes or None,
            "severity": data.severity,
            "recorded_by": user_id,
            "deleted_at": None,
        }

        try:
            created = row_of(client.table("health_logs").insert(record).execute())
        except Exception as e:
            logger.error(f"Failed to create health log: {e}")
            raise DatabaseError.from_exception("create health log", e)

        if not created:
            raise DatabaseError("create health log", "Insert returned no data")

        logger.info(f"Created {data.type.value} health log {created['id']} for student {data.student_id}")
        return created

    @staticmethod
    def _check_can_modify(
        log_id: str,
        user: AuthUser,
        org_id: str,
        action: str,
    ) -> dict[str, Any]:
        client = SupabaseClient.get_client()
        try:
            existing = row_of(
                client.table("health_logs")
                .select("id, recorded_by, org_id")
                .eq("id", log_id)
                .is_("deleted_at", "null")
                .maybe_single()
                .execute()
            )
        except Exception as e:
            logger.error(f"Failed to fetch health log {log_id}: {e}")
            raise DatabaseError.from_exception("fetch health log", e)

        if not existing:
            raise ResourceNotFoundError("health_log", log_id)
        if existing.get("org_id") != org_id:
            raise OrgMismatchError("health log", log_id)
        if existing.get("recorded_by") != str(user.id) and not user.is_admin_or_principal:
            raise NotAuthorError("health log", log_id, action=action)
        return existing

    @staticmethod
    def update_log(
        user: AuthUser,
        org_id: str,
        data: HealthLogUpdate,
    ) -> dict[str, Any]:
        """Partial update. Recorder or admin/principal only."""
        HealthLogService._check_can_modify(data.id, user, org_id, "update")

        fields = data.model_fields_set
        update_data: dict[str, Any] = {"updated_at": utc_now_iso()}
        if data.student_id is not None:
            update_data["student_id"] = data.student_id
        if data.type is not None:
            update_data["type"] = data.type.value
        if data.recorded_at is not None:
            update_data["recorded_at"] = data.recorded_at.isoformat()
        if "data" in fields:
            update_data["data"] = data.data or {}
        for field in OPTIONAL_FIELDS:
            if field in fields:
                update_data[field] = getattr(data, field) or None

        client = SupabaseClient.get_client()
        try:
            response = (
                client.table("health_logs")
                .update(update_data)
                .eq("id", data.id)
                .is_("deleted_at", "null")
                .execute()
            )
        except Exception as e:
            logger.error(f"Failed to update health log {data.id}: {e}")
            raise DatabaseError.from_exception("update health log", e)

        updated = row_of(response)
        if not updated:
            raise ResourceNotFoundError("health_log", data.id)

        logger.info(f"Updated health log: {data.id}")
        return updated

    @staticmethod
    def delete_log(user: AuthUser, org_id: str, log_id: str) -> None:
        """Soft delete. Recorder or admin/principal only."""
        HealthLogService._check_can_modify(log_id, user, org_id, "delete")

        client = SupabaseClient.get_client()
        try:
            (
                client.table("health_logs")
                .update({"deleted_at": utc_now_iso()})
                .eq("id", log_id)
                .execute()
            )
        except Exception as e:
            logger.error(f"Failed to delete health log {log_id}: {e}")
            raise DatabaseError.from_exception("delete health log", e)

        logger.info(f"Soft-deleted health log: {log_id}")
