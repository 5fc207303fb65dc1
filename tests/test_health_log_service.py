# =============================================================================
# tests/test_health_log_service.py - Health Log Service Tests
# =============================================================================
# Tests use mocked Supabase responses to avoid database calls.
# =============================================================================

import pytest
from pydantic import ValidationError

from app.exceptions import NotAuthorError, OrgMismatchError, ResourceNotFoundError
from core.models.health_log import HealthLogCreate, HealthLogUpdate
from core.services.health_log_service import HealthLogService
from tests.conftest import CLASS_B, ORG_ID, OTHER_ORG_ID, PRINCIPAL_ID, TEACHER_ID, make_user

STUDENT_ID = "66666666-6666-6666-6666-666666666666"
LOG_ID = "77777777-7777-7777-7777-777777777777"


def nap(**overrides):
    fields = {"student_id": STUDENT_ID, "type": "nap", "recorded_at": "2024-01-15T13:00:00Z"}
    fields.update(overrides)
    return HealthLogCreate(**fields)


class TestHealthLogModels:

    def test_temperature_range(self):
        with pytest.raises(ValidationError):
            nap(type="temperature", temperature_celsius=52)

    def test_unknown_type(self):
        with pytest.raises(ValidationError):
            nap(type="sneeze")


class TestListLogs:

    def test_guardian_without_students_gets_nothing(self, supabase, guardian):
        supabase.on("guardian_students", [])
        assert HealthLogService.list_logs(guardian, ORG_ID) == []
        assert not supabase.touched("health_logs")

    def test_guardian_limited_to_own_students(self, supabase, guardian):
        supabase.on("guardian_students", [{"student_id": STUDENT_ID}])
        logs = supabase.on("health_logs", [{"id": LOG_ID}])

        assert len(HealthLogService.list_logs(guardian, ORG_ID)) == 1
        logs.in_.assert_called_once_with("student_id", [STUDENT_ID])

    def test_guardian_lookup_failure_is_empty(self, supabase, guardian):
        supabase.on("guardian_students", RuntimeError("boom"))
        assert HealthLogService.list_logs(guardian, ORG_ID) == []

    def test_teacher_sees_own_records(self, supabase, teacher):
        logs = supabase.on("health_logs", [])
        HealthLogService.list_logs(teacher, ORG_ID, log_type="nap")
        logs.eq.assert_any_call("recorded_by", TEACHER_ID)
        logs.eq.assert_any_call("type", "nap")

    def test_teacher_who_is_principal_sees_all(self, supabase):
        user = make_user(TEACHER_ID, "teacher", "principal")
        logs = supabase.on("health_logs", [])
        HealthLogService.list_logs(user, ORG_ID)
        assert ("recorded_by", TEACHER_ID) not in [c.args for c in logs.eq.call_args_list]

    def test_names_are_added(self, supabase, principal):
        supabase.on("health_logs", [
            {"id": LOG_ID, "student_id": STUDENT_ID, "class_id": None, "recorded_by": TEACHER_ID},
        ])
        students = supabase.on("students", [{"id": STUDENT_ID, "user_id": "u-stu", "class_id": CLASS_B}])
        users = supabase.on("users", [
            {"id": "u-stu", "first_name": "Sam", "last_name": "Kid"},
            {"id": TEACHER_ID, "first_name": "Tea", "last_name": "Cher"},
        ])
        supabase.on("classes", [{"id": CLASS_B, "name": "Tulips"}])

        [log] = HealthLogService.list_logs(principal, ORG_ID)

        assert log["student_name"] == "Sam Kid"
        assert log["recorded_by_name"] == "Tea Cher"
        assert log["class_name"] == "Tulips"
        students.in_.assert_called_once_with("id", [STUDENT_ID])
        assert users.execute.call_count == 1

    def test_name_lookup_failure_keeps_logs(self, supabase, principal):
        supabase.on("health_logs", [{"id": LOG_ID, "student_id": STUDENT_ID, "recorded_by": TEACHER_ID}])
        supabase.on("students", RuntimeError("boom"))

        [log] = HealthLogService.list_logs(principal, ORG_ID)

        assert log["id"] == LOG_ID
        assert log["student_name"] is None
        assert log["recorded_by_name"] is None
        assert log["class_name"] is None


class TestCreateLog:

    def test_class_defaults_to_students_class(self, supabase):
        supabase.on("students", {"class_id": CLASS_B, "org_id": ORG_ID})
        logs = supabase.on("health_logs", [{"id": LOG_ID}])

        HealthLogService.create_log(ORG_ID, TEACHER_ID, nap())

        record = logs.insert.call_args.args[0]
        assert record["class_id"] == CLASS_B
        assert record["recorded_by"] == TEACHER_ID
        assert record["data"] == {}

    def test_student_in_other_org(self, supabase):
        supabase.on("students", {"class_id": CLASS_B, "org_id": OTHER_ORG_ID})
        with pytest.raises(OrgMismatchError):
            HealthLogService.create_log(ORG_ID, TEACHER_ID, nap())
        assert not supabase.touched("health_logs")


class TestModifyLog:

    def test_other_teacher_cannot_update(self, supabase):
        supabase.on("health_logs", {"id": LOG_ID, "recorded_by": PRINCIPAL_ID, "org_id": ORG_ID})
        with pytest.raises(NotAuthorError):
            HealthLogService.update_log(make_user(TEACHER_ID, "teacher"), ORG_ID, HealthLogUpdate(id=LOG_ID, notes="x"))

    def test_principal_may_update_any(self, supabase, principal):
        logs = supabase.on(
            "health_logs",
            {"id": LOG_ID, "recorded_by": TEACHER_ID, "org_id": ORG_ID},
            [{"id": LOG_ID, "notes": None}],
        )

        HealthLogService.update_log(principal, ORG_ID, HealthLogUpdate(id=LOG_ID, notes=""))

        payload = logs.update.call_args.args[0]
        assert payload["notes"] is None
        assert "severity" not in payload

    def test_missing_log(self, supabase, teacher):
        supabase.on("health_logs", None)
        with pytest.raises(ResourceNotFoundError):
            HealthLogService.delete_log(teacher, ORG_ID, LOG_ID)

    def test_log_in_other_org(self, supabase, teacher):
        supabase.on("health_logs", {"id": LOG_ID, "recorded_by": TEACHER_ID, "org_id": OTHER_ORG_ID})
        with pytest.raises(OrgMismatchError):
            HealthLogService.delete_log(teacher, ORG_ID, LOG_ID)
