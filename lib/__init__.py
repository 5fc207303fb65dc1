# =============================================================================
# lib/ - Standalone Utility Modules
# =============================================================================
# This package contains reusable utilities:
# - supabase_client.py: Supabase wrapper and shared tenancy lookups
# - cache_headers.py: Cache-Control profiles for API responses
# - utils.py: Shared utilities (UUID normalization, UTC time, names)
#
# These modules are self-contained and can be tested in isolation.
# =============================================================================

from lib.cache_headers import CacheProfile, apply_cache_headers, cache_control_header
from lib.supabase_client import SupabaseClient, SupabaseClientError
from lib.utils import blank_to_none, normalize_uuid, utc_now_iso, week_start

__all__ = [
    # Supabase
    "SupabaseClient",
    "SupabaseClientError",
    # Cache headers
    "CacheProfile",
    "apply_cache_headers",
    "cache_control_header",
    # Utils
    "blank_to_none",
    "normalize_uuid",
    "utc_now_iso",
    "week_start",
]
