# =============================================================================
# lib/supabase_client.py - Supabase Client Wrapper
# =============================================================================
# This module provides a typed wrapper for Supabase database operations.
# It implements the singleton pattern to reuse a single client connection
# and provides the shared lookups that several features need:
# - User rows (org fallback, profile)
# - Guardian -> student links
# - Student / teacher class membership
# - Class names for denormalized responses
#
# Usage:
#   from lib.supabase_client import SupabaseClient
#   class_ids = SupabaseClient.fetch_teacher_class_ids(user_id, org_id)
# =============================================================================

from __future__ import annotations

import logging
from typing import Any
from uuid import UUID

import httpx
from supabase import create_client, Client

from app.config import settings

logger = logging.getLogger(__name__)

# PostgREST code returned by .single() when no row matches
NOT_FOUND_CODE = "PGRST116"

_NETWORK_MARKERS = ("fetch failed", "timeout", "connect timeout", "connection refused")


class SupabaseClientError(Exception):
    """
    Error during Supabase operations.

    Provides actionable error messages: errors should tell HOW to fix,
    not just WHAT failed.
    """

    def __init__(
        self,
        message: str,
        code: str = "SUPABASE_ERROR",
        suggestion: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.code = code
        self.message = message
        self.suggestion = suggestion
        self.details = details or {}

    def __str__(self) -> str:
        result = f"[{self.code}] {self.message}"
        if self.suggestion:
            result += f" Suggestion: {self.suggestion}"
        return result


def is_not_found(error: Exception) -> bool:
    """True when a .single() query failed only because no row matched."""
    return NOT_FOUND_CODE in str(error)


def is_network_error(error: Exception) -> bool:
    """
    True for transient connectivity failures that a client may retry.

    Covers httpx transport errors and the textual markers PostgREST and
    gotrue put in their messages when the upstream can't be reached.
    """
    if isinstance(error, (httpx.TransportError, httpx.TimeoutException)):
        return True
    message = str(error).lower()
    return any(marker in message for marker in _NETWORK_MARKERS)


def rows_of(response: Any) -> list[dict[str, Any]]:
    """Data of a list query, tolerating a None response."""
    if response is None:
        return []
    return list(response.data or [])


def row_of(response: Any) -> dict[str, Any] | None:
    """
    Data of a maybe_single() query.

    supabase-py returns None instead of a response when maybe_single()
    finds nothing, so both shapes map to None here.
    """
    if response is None:
        return None
    data = response.data
    if isinstance(data, list):
        return data[0] if data else None
    return data or None


class SupabaseClient:
    """
    Typed wrapper for Supabase database operations.

    Implements singleton pattern - one client instance is shared across
    the application. All methods are class methods for easy access without
    instantiation.
    """

    _instance: Client | None = None

    @classmethod
    def get_client(cls) -> Client:
        """
        Get or create the singleton Supabase client.

        Uses service_role key which bypasses Row Level Security (RLS), so
        every query issued through it must carry its own org_id filter.

        Raises:
            SupabaseClientError: If client creation fails
        """
        if cls._instance is None:
            try:
                cls._instance = create_client(
                    settings.SUPABASE_URL,
                    settings.SUPABASE_SERVICE_KEY
                )
                logger.info("Supabase client initialized successfully")
            except Exception as e:
                raise SupabaseClientError(
                    message=f"Failed to create Supabase client: {e}",
                    code="CLIENT_INIT_FAILED",
                    suggestion="Check SUPABASE_URL and SUPABASE_SERVICE_KEY in your .env file"
                )
        return cls._instance

    @classmethod
    def _normalize_uuid(cls, uuid_value: str | UUID) -> str:
        """Convert UUID to string for queries."""
        return str(uuid_value) if isinstance(uuid_value, UUID) else uuid_value

    # -------------------------------------------------------------------------
    # Users
    # -------------------------------------------------------------------------

    @classmethod
    def fetch_user(cls, user_id: str | UUID) -> dict[str, Any] | None:
        """
        Fetch a row from the domain users table.

        Returns:
            User dict, or None if the auth user has no domain row yet
        """
        client = cls.get_client()
        user_id_str = cls._normalize_uuid(user_id)

        try:
            response = (
                client.table("users")
                .select("id, email, first_name, last_name, role, org_id, is_active")
                .eq("id", user_id_str)
                .maybe_single()
                .execute()
            )
            return row_of(response)

        except Exception as e:
            if is_not_found(e):
                return None
            raise SupabaseClientError(
                message=f"Failed to fetch user: {e}",
                code="FETCH_USER_FAILED",
                details={"user_id": user_id_str}
            )

    # -------------------------------------------------------------------------
    # Class Membership Lookups
    # -------------------------------------------------------------------------

    @classmethod
    def fetch_teacher_class_ids(cls, user_id: str | UUID, org_id: str) -> list[str]:
        """
        Class ids the user is assigned to as a teacher.

        Reads class_memberships with membership_role = 'teacher'.
        """
        client = cls.get_client()
        user_id_str = cls._normalize_uuid(user_id)

        try:
            response = (
                client.table("class_memberships")
                .select("class_id")
                .eq("user_id", user_id_str)
                .eq("org_id", org_id)
                .eq("membership_role", "teacher")
                .execute()
            )
        except Exception as e:
            raise SupabaseClientError(
                message=f"Failed to fetch teacher classes: {e}",
                code="FETCH_TEACHER_CLASSES_FAILED",
                details={"user_id": user_id_str, "org_id": org_id}
            )

        return _distinct(row.get("class_id") for row in rows_of(response))

    @classmethod
    def fetch_guardian_student_ids(cls, guardian_id: str | UUID) -> list[str]:
        """Student ids linked to a guardian via guardian_students."""
        client = cls.get_client()
        guardian_id_str = cls._normalize_uuid(guardian_id)

        try:
            response = (
                client.table("guardian_students")
                .select("student_id")
                .eq("guardian_id", guardian_id_str)
                .execute()
            )
        except Exception as e:
            raise SupabaseClientError(
                message=f"Failed to fetch guardian students: {e}",
                code="FETCH_GUARDIAN_STUDENTS_FAILED",
                details={"guardian_id": guardian_id_str}
            )

        return _distinct(row.get("student_id") for row in rows_of(response))

    @classmethod
    def fetch_guardian_class_ids(cls, guardian_id: str | UUID) -> list[str]:
        """
        Class ids of the students linked to a guardian.

        Two hops: guardian_students -> students.class_id. Students without a
        class are skipped and duplicates collapse.
        """
        student_ids = cls.fetch_guardian_student_ids(guardian_id)
        if not student_ids:
            return []

        client = cls.get_client()
        try:
            response = (
                client.table("students")
                .select("class_id")
                .in_("id", student_ids)
                .not_.is_("class_id", "null")
                .execute()
            )
        except Exception as e:
            raise SupabaseClientError(
                message=f"Failed to fetch student classes: {e}",
                code="FETCH_STUDENT_CLASSES_FAILED",
                details={"student_ids": student_ids}
            )

        return _distinct(row.get("class_id") for row in rows_of(response))

    @classmethod
    def fetch_class_names(cls, class_ids: list[str]) -> dict[str, str]:
        """Map of class id -> class name for the given ids."""
        if not class_ids:
            return {}

        client = cls.get_client()
        try:
            response = (
                client.table("classes")
                .select("id, name")
                .in_("id", class_ids)
                .execute()
            )
        except Exception as e:
            raise SupabaseClientError(
                message=f"Failed to fetch class names: {e}",
                code="FETCH_CLASS_NAMES_FAILED",
                details={"class_ids": class_ids}
            )

        return {row["id"]: row.get("name") for row in rows_of(response) if row.get("id")}


def _distinct(values) -> list[str]:
    """Drop empty values and duplicates, keeping first-seen order."""
    seen: dict[str, None] = {}
    for value in values:
        if value and isinstance(value, str) and value not in seen:
            seen[value] = None
    return list(seen)
