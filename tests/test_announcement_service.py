# =============================================================================
# tests/test_announcement_service.py - Announcement Service Tests
# =============================================================================
# Tests use mocked Supabase responses to avoid database calls.
# =============================================================================

from datetime import date
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from app.exceptions import NotAuthorError, OrgMismatchError, OrgNotFoundError, ResourceNotFoundError
from core.models.announcement import AnnouncementCreate, AnnouncementUpdate
from core.services.announcement_service import AnnouncementService
from core.services.visibility import RuleKind
from tests.conftest import (
    ADMIN_ID,
    CLASS_A,
    CLASS_B,
    CLASS_C,
    ORG_ID,
    OTHER_ORG_ID,
    PRINCIPAL_ID,
    TEACHER_ID,
    make_user,
)


def announcement_row(**overrides):
    row = {
        "id": "ann-1",
        "org_id": ORG_ID,
        "class_id": CLASS_A,
        "author_id": TEACHER_ID,
        "title": "Picture day",
        "body": "Wear something bright",
        "deleted_at": None,
    }
    row.update(overrides)
    return row


@pytest.fixture
def no_fanout():
    with patch("core.services.announcement_service.NotificationService.notify_safely") as notify:
        yield notify


class TestAnnouncementModels:

    def test_title_and_body_trimmed(self):
        data = AnnouncementCreate(title="  Hi  ", body=" There ")
        assert (data.title, data.body) == ("Hi", "There")

    def test_blank_body_rejected(self):
        with pytest.raises(ValidationError):
            AnnouncementCreate(title="Hi", body="   ")

    def test_title_too_long(self):
        with pytest.raises(ValidationError):
            AnnouncementCreate(title="x" * 201, body="ok")

    def test_class_id_given_distinguishes_null_from_omitted(self):
        assert AnnouncementCreate(title="a", body="b").class_id_given is False
        assert AnnouncementCreate(title="a", body="b", class_id=None).class_id_given is True


class TestFeedRule:

    def test_explicit_class(self, supabase, principal):
        rule = AnnouncementService.feed_rule(principal, ORG_ID, class_id=CLASS_B)
        assert rule.kind == RuleKind.ORG_WIDE_OR_CLASSES
        assert rule.class_ids == (CLASS_B,)

    def test_principal_unrestricted(self, supabase, principal):
        assert AnnouncementService.feed_rule(principal, ORG_ID).kind == RuleKind.UNRESTRICTED

    def test_teacher_from_memberships(self, supabase, teacher):
        supabase.on("class_memberships", [{"class_id": CLASS_A}])
        rule = AnnouncementService.feed_rule(teacher, ORG_ID)
        assert rule.class_ids == (CLASS_A,)

    def test_teacher_query_ids(self, supabase, teacher):
        rule = AnnouncementService.feed_rule(teacher, ORG_ID, teacher_class_ids=f"{CLASS_A},{CLASS_B}")
        assert rule.class_ids == (CLASS_A, CLASS_B)
        assert not supabase.touched("class_memberships")

    def test_guardian_without_children_sees_nothing(self, supabase, guardian):
        supabase.on("guardian_students", [])
        assert AnnouncementService.feed_rule(guardian, ORG_ID) is None

    def test_user_role_must_be_held(self, supabase, teacher):
        supabase.on("class_memberships", [])
        assert AnnouncementService.feed_rule(teacher, ORG_ID, user_role="principal") is None


class TestListAnnouncements:

    def test_teacher_feed_with_class_names(self, supabase, teacher):
        announcements = supabase.on("announcements", [
            announcement_row(id="a1", class_id=None),
            announcement_row(id="a2", class_id=CLASS_A),
            announcement_row(id="a3", class_id=CLASS_C),
        ])
        supabase.on("classes", [{"id": CLASS_A, "name": "Sunflowers"}])

        rows = AnnouncementService.list_announcements(teacher, ORG_ID, teacher_class_ids=CLASS_A, limit=5)

        assert [r["id"] for r in rows] == ["a1", "a2"]
        assert rows[0]["class_name"] is None
        assert rows[1]["class_name"] == "Sunflowers"
        announcements.limit.assert_called_once_with(5)
        announcements.is_.assert_any_call("deleted_at", "null")

    def test_feed_and_latest_agree_for_teacher_without_classes(self, supabase, teacher):
        supabase.on("class_memberships", [])

        assert AnnouncementService.list_announcements(teacher, ORG_ID) == []
        assert AnnouncementService.latest(ORG_ID, class_id=None, is_principal=teacher.is_admin_or_principal) == []
        assert not supabase.touched("announcements")

    def test_single_announcement_by_id(self, supabase, teacher):
        supabase.on("announcements", announcement_row(class_id=None))
        rows = AnnouncementService.list_announcements(teacher, ORG_ID, announcement_id="ann-1")
        assert [r["id"] for r in rows] == ["ann-1"]

    def test_single_announcement_other_org_is_hidden(self, supabase, teacher):
        supabase.on("announcements", announcement_row(org_id=OTHER_ORG_ID))
        assert AnnouncementService.list_announcements(teacher, ORG_ID, announcement_id="ann-1") == []


class TestLatest:

    def test_non_principal_without_class_gets_nothing(self, supabase):
        assert AnnouncementService.latest(ORG_ID, class_id=None, is_principal=False) == []
        assert not supabase.touched("announcements")

    def test_principal_without_class(self, supabase):
        announcements = supabase.on("announcements", [announcement_row()])
        assert len(AnnouncementService.latest(ORG_ID, is_principal=True)) == 1
        announcements.limit.assert_called_once_with(5)

    def test_class_plus_org_wide(self, supabase):
        announcements = supabase.on("announcements", [])
        AnnouncementService.latest(ORG_ID, class_id=CLASS_A)
        announcements.or_.assert_called_once_with(f"class_id.is.null,class_id.in.({CLASS_A})")


class TestCreate:

    def test_omitted_class_defaults_to_first_membership(self, supabase, no_fanout):
        supabase.on("class_memberships", [{"class_id": CLASS_B}])
        announcements = supabase.on("announcements", [announcement_row(class_id=CLASS_B)])

        AnnouncementService.create_announcement(ORG_ID, TEACHER_ID, AnnouncementCreate(title="Hi", body="There"))

        record = announcements.insert.call_args.args[0]
        assert record["class_id"] == CLASS_B
        assert record["is_public"] is True
        assert date.fromisoformat(record["week_start"]).weekday() == 0
        assert no_fanout.call_args.kwargs["kind"] == "announcement"

    def test_explicit_null_is_org_wide(self, supabase, no_fanout):
        announcements = supabase.on("announcements", [announcement_row(class_id=None)])

        AnnouncementService.create_announcement(
            ORG_ID, TEACHER_ID, AnnouncementCreate(title="Hi", body="There", class_id=None)
        )

        assert announcements.insert.call_args.args[0]["class_id"] is None
        assert not supabase.touched("class_memberships")


class TestResolveOrgForCreate:

    def test_token_org(self, supabase, teacher):
        assert AnnouncementService.resolve_org_for_create(teacher) == ORG_ID

    def test_falls_back_to_class_org(self, supabase):
        user = make_user(TEACHER_ID, "teacher", org_id=None)
        supabase.on("users", None)
        supabase.on("classes", {"org_id": OTHER_ORG_ID})

        with patch("core.services.announcement_service.settings") as settings:
            settings.DEFAULT_ORG_ID = None
            assert AnnouncementService.resolve_org_for_create(user, CLASS_A) == OTHER_ORG_ID

    def test_nothing_resolves(self, supabase):
        user = make_user(TEACHER_ID, "teacher", org_id=None)
        supabase.on("users", None)

        with patch("core.services.announcement_service.settings") as settings:
            settings.DEFAULT_ORG_ID = None
            with pytest.raises(OrgNotFoundError):
                AnnouncementService.resolve_org_for_create(user)


class TestModify:

    def test_author_updates(self, supabase, teacher):
        announcements = supabase.on("announcements", announcement_row(), [announcement_row(title="New")])

        AnnouncementService.update_announcement(
            "ann-1", teacher, ORG_ID, AnnouncementUpdate(title=" New ", body="Body")
        )

        payload = announcements.update.call_args.args[0]
        assert payload["title"] == "New"
        assert "class_id" not in payload

    def test_non_author_rejected(self, supabase, principal):
        supabase.on("announcements", announcement_row(author_id=TEACHER_ID))
        with pytest.raises(NotAuthorError):
            AnnouncementService.update_announcement("ann-1", principal, ORG_ID, AnnouncementUpdate(title="a", body="b"))

    def test_author_in_other_org_rejected(self, supabase, teacher):
        supabase.on("announcements", announcement_row(org_id=OTHER_ORG_ID))
        with pytest.raises(OrgMismatchError):
            AnnouncementService.delete_announcement("ann-1", teacher, ORG_ID)

    def test_admin_may_delete_anything(self, supabase):
        admin = make_user(ADMIN_ID, "admin", org_id=None)
        announcements = supabase.on("announcements", announcement_row(org_id=OTHER_ORG_ID, author_id=PRINCIPAL_ID), [])

        AnnouncementService.delete_announcement("ann-1", admin, None)

        assert "deleted_at" in announcements.update.call_args.args[0]

    def test_deleted_is_not_found(self, supabase, teacher):
        supabase.on("announcements", announcement_row(deleted_at="2024-01-01T00:00:00Z"))
        with pytest.raises(ResourceNotFoundError):
            AnnouncementService.delete_announcement("ann-1", teacher, ORG_ID)
