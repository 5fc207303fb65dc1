# =============================================================================
# workers/ - Celery Background Task Workers
# =============================================================================
# This package contains the Celery configuration and task definitions for
# work the API hands off instead of doing inline.
#
# Components:
# - celery_app.py: Celery application configuration
# - tasks.py: Task definitions (notification fanout)
# - config.py: Worker-specific settings
#
# Usage:
#   # Start worker
#   celery -A workers.celery_app worker -Q default,notifications --loglevel=info
#
#   # Submit task (from API, with NOTIFICATION_FANOUT_MODE=celery)
#   from workers.tasks import fan_out_notifications
#   fan_out_notifications.delay(org_id=..., class_id=..., author_id=..., kind="story", title="New story")
# =============================================================================

from .celery_app import celery_app
from . import tasks

__all__ = [
    "celery_app",
    "tasks",
]
