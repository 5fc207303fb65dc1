# =============================================================================
# core/services/attendance_service.py - Attendance Business Logic
# =============================================================================
# Daily attendance per student. The attendance table has a UNIQUE
# (student_id, date) constraint, so single and batch writes both upsert.
# =============================================================================

import logging
from typing import Any, Optional

from app.exceptions import DatabaseError, ResourceNotFoundError
from core.models.attendance import (
    AttendanceBatchRecord,
    AttendanceCreate,
    AttendanceUpdate,
)
from lib.supabase_client import SupabaseClient, row_of, rows_of
from lib.utils import blank_to_none, utc_now_iso

logger = logging.getLogger(__name__)

ATTENDANCE_COLUMNS = (
    "id, org_id, class_id, student_id, date, status, notes, "
    "recorded_by, left_at, created_at, updated_at"
)
CONFLICT_TARGET = "student_id,date"


class AttendanceService:

    @staticmethod
    def list_attendance(
        org_id: str,
        class_id: Optional[str] = None,
        student_id: Optional[str] = None,
        day: Optional[str] = None,
    ) -> list[dict[str, Any]]:
        """Attendance rows in the org, most recent day first."""
        client = SupabaseClient.get_client()
        query = (
            client.table("attendance")
            .select(ATTENDANCE_COLUMNS)
            .eq("org_id", org_id)
            .order("date", desc=True)
        )
        if blank_to_none(class_id):
            query = query.eq("class_id", class_id)
        if student_id:
            query = query.eq("student_id", student_id)
        if day:
            query = query.eq("date", day)

        try:
            return rows_of(query.execute())
        except Exception as e:
            logger.error(f"Failed to fetch attendance for org {org_id}: {e}")
            raise DatabaseError.from_exception("fetch attendance", e)

    @staticmethod
    def _existing_status(**filters: str) -> Optional[str]:
        client = SupabaseClient.get_client()
        query = client.table("attendance").select("status")
        for column, value in filters.items():
            query = query.eq(column, value)
        try:
            row = row_of(query.maybe_single().execute())
        except Exception as e:
            logger.warning(f"Could not read existing attendance status: {e}")
            return None
        return row.get("status") if row else None

    @staticmethod
    def record(
        org_id: str,
        user_id: str,
        data: AttendanceCreate,
    ) -> dict[str, Any]:
        """
        Create or overwrite the student's attendance for the day.

        When left_at is set the day's existing status is preserved, so
        marking a pickup doesn't reset "late" back to "present".
        """
        status = data.status.value
        if data.left_at is not None:
            existing = AttendanceService._existing_status(
                student_id=data.student_id, date=data.date
            )
            if existing:
                status = existing

        record = {
            "org_id": org_id,
            "class_id": blank_to_none(data.class_id),
            "student_id": data.student_id,
            "date": data.date,
            "status": status,
            "notes": data.notes or None,
            "recorded_by": user_id,
            "updated_at": utc_now_iso(),
        }
        if "left_at" in data.model_fields_set:
            record["left_at"] = data.left_at.isoformat() if data.left_at else None

        client = SupabaseClient.get_client()
        try:
            response = (
                client.table("attendance")
                .upsert(record, on_conflict=CONFLICT_TARGET)
                .execute()
            )
        except Exception as e:
            logger.error(f"Failed to save attendance for student {data.student_id}: {e}")
            raise DatabaseError.from_exception("save attendance", e)

        saved = row_of(response)
        if not saved:
            raise DatabaseError("save attendance", "Upsert returned no data")

        logger.info(f"Saved attendance {saved.get('id')} ({status}) for student {data.student_id} on {data.date}")
        return saved

    @staticmethod
    def update(
        org_id: str,
        user_id: str,
        data: AttendanceUpdate,
    ) -> dict[str, Any]:
        """Change status/notes/left_at of an existing row."""
        update_data: dict[str, Any] = {
            "updated_at": utc_now_iso(),
            "recorded_by": user_id,
        }
        fields = data.model_fields_set

        if data.status is not None:
            update_data["status"] = data.status.value
        if "notes" in fields:
            update_data["notes"] = data.notes
        if "left_at" in fields:
            update_data["left_at"] = data.left_at.isoformat() if data.left_at else None
            if data.left_at is not None and data.status is None:
                existing = AttendanceService._existing_status(id=data.id)
                if existing:
                    update_data["status"] = existing

        client = SupabaseClient.get_client()
        try:
            response = (
                client.table("attendance")
                .update(update_data)
                .eq("id", data.id)
                .eq("org_id", org_id)
                .execute()
            )
        except Exception as e:
            logger.error(f"Failed to update attendance {data.id}: {e}")
            raise DatabaseError.from_exception("update attendance", e)

        updated = row_of(response)
        if not updated:
            raise ResourceNotFoundError("attendance", data.id)

        logger.info(f"Updated attendance: {data.id}")
        return updated

    @staticmethod
    def delete(org_id: str, attendance_id: str) -> None:
        """Hard delete, scoped to the org."""
        client = SupabaseClient.get_client()
        try:
            (
                client.table("attendance")
                .delete()
                .eq("id", attendance_id)
                .eq("org_id", org_id)
                .execute()
            )
        except Exception as e:
            logger.error(f"Failed to delete attendance {attendance_id}: {e}")
            raise DatabaseError.from_exception("delete attendance", e)

        logger.info(f"Deleted attendance: {attendance_id}")

    @staticmethod
    def record_batch(
        org_id: str,
        user_id: str,
        records: list[AttendanceBatchRecord],
    ) -> list[dict[str, Any]]:
        """Upsert a whole class's attendance in one request."""
        now = utc_now_iso()
        rows = [
            {
                "org_id": org_id,
                "class_id": blank_to_none(r.class_id),
                "student_id": r.student_id,
                "date": r.date,
                "status": r.status.value,
                "notes": r.notes or None,
                "recorded_by": user_id,
                "updated_at": now,
            }
            for r in records
        ]

        client = SupabaseClient.get_client()
        try:
            response = (
                client.table("attendance")
                .upsert(rows, on_conflict=CONFLICT_TARGET)
                .execute()
            )
        except Exception as e:
            logger.error(f"Failed to save batch attendance ({len(rows)} rows): {e}")
            raise DatabaseError.from_exception("save batch attendance", e)

        saved = rows_of(response)
        logger.info(f"Saved {len(saved)} attendance record(s) via batch in org {org_id}")
        return saved
