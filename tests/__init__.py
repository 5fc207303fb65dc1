# =============================================================================
# tests/ - Test Suite
# =============================================================================
# This package contains all tests for the Samvera API:
# - test_visibility.py: Audience rules and the in-memory re-filter
# - test_*_service.py: Service logic against a fake Supabase client
# - test_auth.py: Token verification and org resolution
# - test_routes.py: HTTP status codes, error bodies and cache headers
# - test_tasks.py: Celery notification fanout
#
# Run tests with: pytest
# =============================================================================
