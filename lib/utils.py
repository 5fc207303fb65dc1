# =============================================================================
# lib/utils.py - Shared Utilities
# =============================================================================
# Common utilities used across the application.
# =============================================================================

from datetime import date, datetime, timedelta, timezone
from uuid import UUID


# =============================================================================
# UUID Utilities
# =============================================================================

def normalize_uuid(value: str | UUID) -> str:
    """
    Normalize a UUID to string format.

    Example:
        org_id = normalize_uuid(uuid_obj)  # "550e8400-..."
        org_id = normalize_uuid("550e8400-...")  # "550e8400-..."
    """
    return str(value) if isinstance(value, UUID) else value


def blank_to_none(value: str | UUID | None) -> str | None:
    """
    Treat empty or whitespace-only ids as "no id".

    Clients send class_id="" to mean an org-wide record.
    """
    if value is None:
        return None
    text = normalize_uuid(value).strip()
    return text or None


# =============================================================================
# Time Utilities
# =============================================================================

def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def utc_now_iso() -> str:
    """Current UTC time in ISO 8601 form, as stored in timestamptz columns."""
    return utc_now().isoformat()


def week_start(today: date | datetime | None = None) -> date:
    """
    Monday of the week containing `today` (UTC).

    Example:
        week_start(date(2024, 1, 18))  # Thursday -> date(2024, 1, 15)
    """
    if today is None:
        today = utc_now()
    if isinstance(today, datetime):
        today = today.astimezone(timezone.utc).date() if today.tzinfo else today.date()
    return today - timedelta(days=today.weekday())


def full_name(row: dict | None, fallback: str = "Unknown") -> str:
    """'First Last' from a users row, else its email, else the fallback."""
    if not row:
        return fallback
    name = f"{row.get('first_name') or ''} {row.get('last_name') or ''}".strip()
    return name or row.get("email") or fallback
