# =============================================================================
# core/services/visibility.py - Audience Visibility Rules
# =============================================================================
# Decides which stories and announcements a caller may see.
#
# A rule is computed from the caller's audience (principal, teacher, parent)
# and the classes they belong to. It is applied twice:
# 1. Pushed into the Supabase query as a PostgREST filter
# 2. Re-checked in memory over the returned rows (safety net)
#
# Both passes must agree: a teacher or parent never sees a class-scoped row
# outside their class set, and always sees org-wide rows (class_id null).
# =============================================================================

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable, Optional

logger = logging.getLogger(__name__)


class Audience(str, Enum):
    """Viewpoint a list request is made from."""
    PRINCIPAL = "principal"
    TEACHER = "teacher"
    PARENT = "parent"


class RuleKind(str, Enum):
    """
    Shape of a visibility rule.

    - org_wide_or_classes: class_id is null OR class_id in class_ids
    - org_wide_only: class_id is null
    - author: author_id equals the rule's author
    - unrestricted: every row in the org
    """
    ORG_WIDE_OR_CLASSES = "org_wide_or_classes"
    ORG_WIDE_ONLY = "org_wide_only"
    AUTHOR = "author"
    UNRESTRICTED = "unrestricted"


@dataclass(frozen=True)
class VisibilityRule:
    kind: RuleKind
    class_ids: tuple[str, ...] = ()
    author_id: Optional[str] = None

    @classmethod
    def for_classes(cls, class_ids: Iterable[str]) -> "VisibilityRule":
        ids = tuple(parse_id_list(class_ids))
        if ids:
            return cls(RuleKind.ORG_WIDE_OR_CLASSES, class_ids=ids)
        return cls(RuleKind.ORG_WIDE_ONLY)

    def allows(self, row: dict[str, Any]) -> bool:
        """In-memory form of the rule for a single row."""
        if self.kind == RuleKind.UNRESTRICTED:
            return True

        if self.kind == RuleKind.AUTHOR:
            return str(row.get("author_id") or "") == str(self.author_id)

        class_id = row.get("class_id")
        if _is_org_wide(class_id):
            return True
        if self.kind == RuleKind.ORG_WIDE_ONLY:
            return False
        return str(class_id) in self.class_ids


def _is_org_wide(class_id: Any) -> bool:
    return class_id is None or (isinstance(class_id, str) and not class_id.strip())


# =============================================================================
# Rule Construction
# =============================================================================

def parse_id_list(value: str | Iterable[str] | None) -> list[str]:
    """
    Turn a comma-separated id string (or iterable) into a clean list.

    Entries are trimmed, blanks dropped, duplicates removed, order kept.

    Example:
        parse_id_list(" a, b,,a ")  # ["a", "b"]
    """
    if not value:
        return []
    parts = value.split(",") if isinstance(value, str) else value
    seen: dict[str, None] = {}
    for part in parts:
        if part is None:
            continue
        text = str(part).strip()
        if text and text not in seen:
            seen[text] = None
    return list(seen)


def audience_for_roles(
    roles: Iterable[str],
    active_role: Optional[str] = None,
) -> Optional[Audience]:
    """
    Default audience for a caller who didn't ask for one.

    The active role wins when it maps to an audience; otherwise the
    broadest role held decides (principal > teacher > parent).
    """
    mapping = {
        "admin": Audience.PRINCIPAL,
        "principal": Audience.PRINCIPAL,
        "teacher": Audience.TEACHER,
        "guardian": Audience.PARENT,
        "parent": Audience.PARENT,
    }
    if active_role and active_role in mapping and active_role in roles:
        return mapping[active_role]

    held = set(roles)
    for role in ("admin", "principal", "teacher", "guardian", "parent"):
        if role in held:
            return mapping[role]
    return None


def story_rule(
    audience: Optional[Audience],
    class_ids: Iterable[str] = (),
    author_id: Optional[str] = None,
) -> VisibilityRule:
    """
    Visibility rule for the stories feed.

    Teachers and parents see org-wide stories plus those of their classes;
    with no known classes they see org-wide stories only. Principals see
    the stories they authored.
    """
    if audience in (Audience.TEACHER, Audience.PARENT):
        return VisibilityRule.for_classes(class_ids)

    if audience == Audience.PRINCIPAL:
        if not author_id:
            raise ValueError("principal audience requires an author id")
        return VisibilityRule(RuleKind.AUTHOR, author_id=str(author_id))

    return VisibilityRule(RuleKind.UNRESTRICTED)


def announcement_rule(
    class_ids: Iterable[str] = (),
    is_principal: bool = False,
) -> Optional[VisibilityRule]:
    """
    Visibility rule for announcements.

    Returns None when the caller can see nothing (no classes and not a
    principal); callers answer with an empty list without querying.
    """
    ids = parse_id_list(class_ids)
    if ids:
        return VisibilityRule(RuleKind.ORG_WIDE_OR_CLASSES, class_ids=tuple(ids))
    if is_principal:
        return VisibilityRule(RuleKind.UNRESTRICTED)
    return None


# =============================================================================
# Rule Application
# =============================================================================

def or_filter(rule: VisibilityRule) -> str:
    """
    PostgREST `or` expression for a class rule.

    Example:
        or_filter(VisibilityRule.for_classes(["a", "b"]))
        # "class_id.is.null,class_id.in.(a,b)"
    """
    if rule.kind != RuleKind.ORG_WIDE_OR_CLASSES or not rule.class_ids:
        return "class_id.is.null"
    return f"class_id.is.null,class_id.in.({','.join(rule.class_ids)})"


def apply_rule(query: Any, rule: VisibilityRule) -> Any:
    """Push a rule into a Supabase query builder and return the builder."""
    if rule.kind == RuleKind.ORG_WIDE_OR_CLASSES:
        return query.or_(or_filter(rule))
    if rule.kind == RuleKind.ORG_WIDE_ONLY:
        return query.is_("class_id", "null")
    if rule.kind == RuleKind.AUTHOR:
        return query.eq("author_id", rule.author_id)
    return query


def refilter(
    rows: list[dict[str, Any]],
    rule: VisibilityRule,
    resource: str = "row",
) -> list[dict[str, Any]]:
    """
    Re-validate query results against the rule.

    Anything the database returned that the rule rejects is dropped and
    logged, since it means the pushed-down filter and the rule disagree.
    """
    kept = [row for row in rows if rule.allows(row)]

    if len(kept) != len(rows):
        dropped = [row.get("id") for row in rows if not rule.allows(row)]
        logger.warning(
            f"Visibility re-filter dropped {len(dropped)} {resource}(s) "
            f"for rule {rule.kind.value}: {dropped}"
        )

    return kept
