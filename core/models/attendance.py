# =============================================================================
# core/models/attendance.py - Attendance Schemas
# =============================================================================
# One attendance row per (student_id, date); writes upsert on that pair.
# =============================================================================

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from .common import ClassIdField, DateStr, Row, UuidStr


class AttendanceStatus(str, Enum):
    PRESENT = "present"
    ABSENT = "absent"
    LATE = "late"
    EXCUSED = "excused"


class AttendanceCreate(BaseModel):
    """
    Schema for recording a student's attendance for a day.

    Setting left_at marks the student as picked up; the day's existing
    status is kept in that case.

    Example:
        {
            "student_id": "550e8400-e29b-41d4-a716-446655440000",
            "date": "2024-01-15",
            "status": "late"
        }
    """
    class_id: ClassIdField = None
    student_id: UuidStr
    date: DateStr
    status: AttendanceStatus = AttendanceStatus.PRESENT
    notes: Optional[str] = Field(default=None, max_length=5000)
    left_at: Optional[datetime] = None


class AttendanceUpdate(BaseModel):
    id: UuidStr
    status: Optional[AttendanceStatus] = None
    notes: Optional[str] = Field(default=None, max_length=5000)
    left_at: Optional[datetime] = None


class AttendanceBatchRecord(BaseModel):
    student_id: UuidStr
    status: AttendanceStatus
    date: DateStr
    class_id: ClassIdField = None
    notes: Optional[str] = Field(default=None, max_length=5000)


class AttendanceBatch(BaseModel):
    records: list[AttendanceBatchRecord] = Field(..., min_length=1)


class AttendanceResponse(Row):
    id: str
    org_id: Optional[str] = None
    class_id: Optional[str] = None
    student_id: str
    date: str
    status: str
    notes: Optional[str] = None
    recorded_by: Optional[str] = None
    left_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class AttendanceListResponse(BaseModel):
    attendance: list[AttendanceResponse] = Field(default_factory=list)
    total: int = 0


class AttendanceSaveResponse(BaseModel):
    attendance: AttendanceResponse
    message: str


class AttendanceBatchResponse(BaseModel):
    attendance: list[AttendanceResponse] = Field(default_factory=list)
    message: str
    count: int = 0
