# =============================================================================
# core/ - Business Logic Package
# =============================================================================
# This package contains the domain logic behind the API:
# - models/: Pydantic schemas for request validation and responses
# - services/: Supabase queries, authorization rules and notification fanout
#
# Code in this package should NOT import from FastAPI routers; Celery
# tasks are imported lazily at dispatch time only.
# =============================================================================
