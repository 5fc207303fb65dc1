# =============================================================================
# tests/test_visibility.py - Audience Visibility Rule Tests
# =============================================================================
# Unit tests for the story/announcement visibility rules:
# - Rule construction per audience
# - PostgREST filter strings pushed to the database
# - In-memory re-filter agreeing with the pushed-down filter
#
# Run with: pytest tests/test_visibility.py -v
# =============================================================================

import logging
from unittest.mock import MagicMock

import pytest

from core.services.visibility import (
    Audience,
    RuleKind,
    VisibilityRule,
    announcement_rule,
    apply_rule,
    audience_for_roles,
    or_filter,
    parse_id_list,
    refilter,
    story_rule,
)


ROWS = [
    {"id": "org", "class_id": None, "author_id": "p1"},
    {"id": "blank", "class_id": "", "author_id": "t1"},
    {"id": "a", "class_id": "class-a", "author_id": "t1"},
    {"id": "b", "class_id": "class-b", "author_id": "p1"},
]


def ids(rows):
    return [r["id"] for r in rows]


# =============================================================================
# parse_id_list
# =============================================================================

class TestParseIdList:

    def test_trims_drops_blanks_and_dedupes(self):
        assert parse_id_list(" a, b,,a , ") == ["a", "b"]

    def test_accepts_iterables(self):
        assert parse_id_list(["x", None, " y ", "x"]) == ["x", "y"]

    @pytest.mark.parametrize("value", [None, "", []])
    def test_empty(self, value):
        assert parse_id_list(value) == []


# =============================================================================
# Audience
# =============================================================================

class TestAudienceForRoles:

    def test_active_role_wins(self):
        assert audience_for_roles(["principal", "teacher"], "teacher") == Audience.TEACHER

    def test_broadest_role_when_no_active_role(self):
        assert audience_for_roles(["guardian", "teacher"]) == Audience.TEACHER
        assert audience_for_roles(["admin"]) == Audience.PRINCIPAL

    def test_parent_and_guardian_map_to_parent(self):
        assert audience_for_roles(["parent"]) == Audience.PARENT
        assert audience_for_roles(["guardian"]) == Audience.PARENT

    def test_active_role_not_held_is_ignored(self):
        assert audience_for_roles(["guardian"], "principal") == Audience.PARENT

    def test_unknown_roles(self):
        assert audience_for_roles(["student"]) is None


# =============================================================================
# Rule Construction
# =============================================================================

class TestStoryRule:

    def test_teacher_with_classes(self):
        rule = story_rule(Audience.TEACHER, ["class-a"])
        assert rule.kind == RuleKind.ORG_WIDE_OR_CLASSES
        assert rule.class_ids == ("class-a",)

    def test_teacher_without_classes_sees_org_wide_only(self):
        assert story_rule(Audience.TEACHER, []).kind == RuleKind.ORG_WIDE_ONLY

    def test_parent_uses_children_classes(self):
        rule = story_rule(Audience.PARENT, ["class-b", "class-b"])
        assert rule.class_ids == ("class-b",)

    def test_principal_scoped_to_author(self):
        rule = story_rule(Audience.PRINCIPAL, author_id="p1")
        assert rule == VisibilityRule(RuleKind.AUTHOR, author_id="p1")

    def test_principal_requires_author(self):
        with pytest.raises(ValueError):
            story_rule(Audience.PRINCIPAL)

    def test_no_audience_is_unrestricted(self):
        assert story_rule(None).kind == RuleKind.UNRESTRICTED


class TestAnnouncementRule:

    def test_classes(self):
        rule = announcement_rule(["class-a"])
        assert rule.kind == RuleKind.ORG_WIDE_OR_CLASSES

    def test_principal_without_classes(self):
        assert announcement_rule([], is_principal=True).kind == RuleKind.UNRESTRICTED

    def test_nobody_without_classes(self):
        assert announcement_rule([], is_principal=False) is None


# =============================================================================
# Rule Application
# =============================================================================

class TestApplyRule:

    def test_or_filter_string(self):
        rule = VisibilityRule.for_classes(["a", "b"])
        assert or_filter(rule) == "class_id.is.null,class_id.in.(a,b)"

    def test_class_rule_uses_or(self):
        query = MagicMock()
        apply_rule(query, VisibilityRule.for_classes(["a"]))
        query.or_.assert_called_once_with("class_id.is.null,class_id.in.(a)")

    def test_org_wide_only_uses_is_null(self):
        query = MagicMock()
        apply_rule(query, VisibilityRule(RuleKind.ORG_WIDE_ONLY))
        query.is_.assert_called_once_with("class_id", "null")

    def test_author_uses_eq(self):
        query = MagicMock()
        apply_rule(query, VisibilityRule(RuleKind.AUTHOR, author_id="p1"))
        query.eq.assert_called_once_with("author_id", "p1")

    def test_unrestricted_leaves_query_alone(self):
        query = MagicMock()
        assert apply_rule(query, VisibilityRule(RuleKind.UNRESTRICTED)) is query
        assert not query.method_calls


class TestRefilter:

    def test_class_rule_keeps_org_wide_and_own_classes(self):
        kept = refilter(ROWS, VisibilityRule.for_classes(["class-a"]))
        assert ids(kept) == ["org", "blank", "a"]

    def test_org_wide_only(self):
        kept = refilter(ROWS, VisibilityRule(RuleKind.ORG_WIDE_ONLY))
        assert ids(kept) == ["org", "blank"]

    def test_author_rule(self):
        kept = refilter(ROWS, VisibilityRule(RuleKind.AUTHOR, author_id="p1"))
        assert ids(kept) == ["org", "b"]

    def test_unrestricted(self):
        assert refilter(ROWS, VisibilityRule(RuleKind.UNRESTRICTED)) == ROWS

    def test_class_id_match_is_exact(self):
        rows = [{"id": "x", "class_id": "class-a-2"}]
        assert refilter(rows, VisibilityRule.for_classes(["class-a"])) == []

    def test_dropped_rows_are_logged(self, caplog):
        with caplog.at_level(logging.WARNING, logger="core.services.visibility"):
            refilter(ROWS, VisibilityRule.for_classes(["class-a"]), resource="story")
        assert "dropped 1 story" in caplog.text
        assert "'b'" in caplog.text
