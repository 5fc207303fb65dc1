# =============================================================================
# lib/cache_headers.py - Cache-Control Profiles
# =============================================================================
# Standardized cache headers for API responses.
#
# Profiles:
# - STABLE: stories, announcements, menus, classes (5 min / 10 min SWR)
# - USER: per-user lists such as message recipients (1 min / 2 min SWR)
# - REALTIME: message threads and items (30 s / 1 min SWR)
# - NO_CACHE: attendance, notifications, anything sensitive
#
# Usage:
#   from lib.cache_headers import CacheProfile, apply_cache_headers
#   apply_cache_headers(response, CacheProfile.STABLE)
# =============================================================================

from dataclasses import dataclass
from enum import Enum

from starlette.responses import Response


@dataclass(frozen=True)
class CacheDurations:
    """Shared-cache lifetime and stale-while-revalidate window, in seconds."""
    s_maxage: int
    stale_while_revalidate: int


class CacheProfile(Enum):
    STABLE = CacheDurations(s_maxage=300, stale_while_revalidate=600)
    USER = CacheDurations(s_maxage=60, stale_while_revalidate=120)
    REALTIME = CacheDurations(s_maxage=30, stale_while_revalidate=60)
    NO_CACHE = CacheDurations(s_maxage=0, stale_while_revalidate=0)


def cache_control_header(
    s_maxage: int,
    stale_while_revalidate: int,
    private: bool = False,
) -> str:
    """
    Build a Cache-Control header value.

    Example:
        cache_control_header(300, 600)  # "public, s-maxage=300, stale-while-revalidate=600"
        cache_control_header(0, 0)      # "no-store, no-cache, must-revalidate"
    """
    if s_maxage == 0:
        return "no-store, no-cache, must-revalidate"

    visibility = "private" if private else "public"
    return f"{visibility}, s-maxage={s_maxage}, stale-while-revalidate={stale_while_revalidate}"


def cache_headers(profile: CacheProfile, private: bool = False) -> dict[str, str]:
    """Header dict for a profile."""
    durations = profile.value
    return {
        "Cache-Control": cache_control_header(
            durations.s_maxage,
            durations.stale_while_revalidate,
            private=private,
        )
    }


def apply_cache_headers(
    response: Response,
    profile: CacheProfile,
    private: bool = False,
) -> None:
    """Set Cache-Control on an outgoing response."""
    response.headers.update(cache_headers(profile, private=private))
