# =============================================================================
# tests/test_class_service.py - Class Service Tests
# =============================================================================
# Tests use mocked Supabase responses to avoid database calls.
# =============================================================================

import pytest

from app.exceptions import OrgMismatchError, ResourceNotFoundError
from core.models.classes import ClassCreate, ClassSaveResponse, ClassUpdate
from core.services.class_service import ClassService
from tests.conftest import CLASS_A, CLASS_B, ORG_ID, OTHER_ORG_ID, PRINCIPAL_ID, TEACHER_ID


def class_row(**overrides):
    row = {"id": CLASS_A, "name": "Sunflowers", "code": "SUN", "org_id": ORG_ID}
    row.update(overrides)
    return row


class TestAssignedTeachers:

    def test_grouped_per_class(self, supabase):
        supabase.on("class_memberships", [
            {"class_id": CLASS_A, "user_id": TEACHER_ID},
            {"class_id": CLASS_B, "user_id": TEACHER_ID},
            {"class_id": CLASS_B, "user_id": "ghost"},
        ])
        supabase.on("users", [{"id": TEACHER_ID, "first_name": "Tea", "last_name": "Cher", "email": "t@x.test"}])

        teachers = ClassService.assigned_teachers([CLASS_A, CLASS_B], ORG_ID)

        assert teachers[CLASS_A][0]["full_name"] == "Tea Cher"
        assert [t["id"] for t in teachers[CLASS_B]] == [TEACHER_ID]

    def test_failure_degrades_to_empty(self, supabase):
        supabase.on("class_memberships", RuntimeError("boom"))
        assert ClassService.assigned_teachers([CLASS_A], ORG_ID) == {}

    def test_no_classes_no_query(self, supabase):
        assert ClassService.assigned_teachers([], ORG_ID) == {}
        assert not supabase.touched("class_memberships")


class TestListClasses:

    def test_every_class_has_teacher_list(self, supabase):
        classes = supabase.on("classes", [class_row(), class_row(id=CLASS_B, name="Tulips")])
        supabase.on("class_memberships", [])

        rows = ClassService.list_classes(ORG_ID, created_by=PRINCIPAL_ID)

        assert [r["assigned_teachers"] for r in rows] == [[], []]
        classes.eq.assert_any_call("created_by", PRINCIPAL_ID)
        classes.is_.assert_any_call("deleted_at", "null")


class TestCreateClass:

    def test_without_teacher(self, supabase):
        classes = supabase.on("classes", [class_row()])

        ClassService.create_class(ORG_ID, PRINCIPAL_ID, ClassCreate(name="  Sunflowers ", code=""))

        record = classes.insert.call_args.args[0]
        assert record == {"name": "Sunflowers", "code": None, "created_by": PRINCIPAL_ID, "org_id": ORG_ID}
        assert not supabase.touched("class_memberships")

    def test_with_teacher_assigns_membership(self, supabase):
        supabase.on("classes", [class_row()], class_row())
        memberships = supabase.on("class_memberships", [])

        ClassService.create_class(ORG_ID, PRINCIPAL_ID, ClassCreate(name="Sunflowers", teacher_id=TEACHER_ID))

        memberships.delete.assert_called_once()
        record = memberships.insert.call_args.args[0]
        assert record["membership_role"] == "teacher"
        assert record["user_id"] == TEACHER_ID

    def test_failed_assignment_still_returns_class(self, supabase):
        supabase.on("classes", [class_row()], class_row())
        supabase.on("class_memberships", RuntimeError("constraint"))

        created = ClassService.create_class(ORG_ID, PRINCIPAL_ID, ClassCreate(name="Sunflowers", teacher_id=TEACHER_ID))

        assert created["id"] == CLASS_A


class TestClassAccess:

    def test_missing_class(self, supabase):
        supabase.on("classes", None)
        with pytest.raises(ResourceNotFoundError):
            ClassService.delete_class(ORG_ID, CLASS_A)

    def test_class_in_other_org(self, supabase):
        supabase.on("classes", class_row(org_id=OTHER_ORG_ID))
        with pytest.raises(OrgMismatchError):
            ClassService.assign_teacher(CLASS_A, TEACHER_ID, ORG_ID)
        assert not supabase.touched("class_memberships")

    def test_update_keeps_code_when_omitted(self, supabase):
        classes = supabase.on("classes", class_row(), [class_row(name="Daisies")])

        updated = ClassService.update_class(ORG_ID, ClassUpdate(id=CLASS_A, name="Daisies"))

        assert updated["name"] == "Daisies"
        assert "code" not in classes.update.call_args.args[0]


class TestClassModels:

    def test_save_response_serializes_class_key(self):
        body = ClassSaveResponse(class_=class_row(), message="ok").model_dump(by_alias=True)
        assert body["class"]["id"] == CLASS_A
