# =============================================================================
# core/models/classes.py - Class Schemas
# =============================================================================
# Classes group students; teachers are attached through class_memberships
# rows with membership_role = 'teacher'.
# =============================================================================

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from .common import Row, UuidStr


class ClassCreate(BaseModel):
    """
    Schema for creating a class, optionally with its first teacher.

    Example:
        {"name": "Sunflowers", "code": "SUN-1", "teacher_id": "550e8400-..."}
    """
    name: str = Field(..., min_length=1, max_length=200)
    code: Optional[str] = Field(default=None, max_length=50)
    teacher_id: Optional[UuidStr] = None


class ClassUpdate(BaseModel):
    id: UuidStr
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    code: Optional[str] = Field(default=None, max_length=50)
    teacher_id: Optional[UuidStr] = None


class TeacherAssignment(BaseModel):
    user_id: UuidStr


class AssignedTeacher(BaseModel):
    id: str
    full_name: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None


class ClassResponse(Row):
    id: str
    name: str
    code: Optional[str] = None
    org_id: Optional[str] = None
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    assigned_teachers: list[AssignedTeacher] = Field(default_factory=list)


class ClassListResponse(BaseModel):
    classes: list[ClassResponse] = Field(default_factory=list)


class ClassSaveResponse(BaseModel):
    # "class" is a keyword, so the field is aliased
    class_: ClassResponse = Field(..., alias="class", serialization_alias="class")
    message: str

    model_config = {"populate_by_name": True}
