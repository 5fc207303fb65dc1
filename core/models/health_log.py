# =============================================================================
# core/models/health_log.py - Health Log Schemas
# =============================================================================
# Health logs record care events for a student: diapers, naps,
# temperatures, medication and the like.
# =============================================================================

from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field

from .common import ClassIdField, Row, UuidStr


class HealthLogType(str, Enum):
    DIAPER_WET = "diaper_wet"
    DIAPER_DIRTY = "diaper_dirty"
    DIAPER_MIXED = "diaper_mixed"
    TEMPERATURE = "temperature"
    MEDICATION = "medication"
    NAP = "nap"
    SYMPTOM = "symptom"
    INJURY = "injury"
    MEAL = "meal"
    OTHER = "other"


class HealthLogCreate(BaseModel):
    """
    Schema for recording a health event.

    class_id defaults to the student's current class.
    """
    class_id: ClassIdField = None
    student_id: UuidStr
    type: HealthLogType
    recorded_at: datetime
    temperature_celsius: Optional[float] = Field(default=None, ge=30, le=45)
    data: dict[str, Any] = Field(default_factory=dict)
    notes: Optional[str] = Field(default=None, max_length=5000)
    severity: Optional[int] = Field(default=None, ge=1, le=5)


class HealthLogUpdate(BaseModel):
    id: UuidStr
    student_id: Optional[UuidStr] = None
    type: Optional[HealthLogType] = None
    recorded_at: Optional[datetime] = None
    temperature_celsius: Optional[float] = Field(default=None, ge=30, le=45)
    data: Optional[dict[str, Any]] = None
    notes: Optional[str] = Field(default=None, max_length=5000)
    severity: Optional[int] = Field(default=None, ge=1, le=5)


class HealthLogResponse(Row):
    id: str
    org_id: Optional[str] = None
    class_id: Optional[str] = None
    student_id: str
    type: str
    recorded_at: Optional[datetime] = None
    temperature_celsius: Optional[float] = None
    data: Optional[dict[str, Any]] = Field(default_factory=dict)
    notes: Optional[str] = None
    severity: Optional[int] = None
    recorded_by: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    student_name: Optional[str] = None
    recorded_by_name: Optional[str] = None
    class_name: Optional[str] = None


class HealthLogListResponse(BaseModel):
    healthLogs: list[HealthLogResponse] = Field(default_factory=list)
    total_logs: int = 0


class HealthLogSaveResponse(BaseModel):
    healthLog: HealthLogResponse
    message: str
