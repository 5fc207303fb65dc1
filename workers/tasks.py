# =============================================================================
# workers/tasks.py - Celery Task Definitions
# =============================================================================
# Background tasks dispatched by the API.
#
# Tasks:
# - fan_out_notifications: Notify the audience of a new story or announcement
# =============================================================================

import logging
from typing import Any

from celery import shared_task

logger = logging.getLogger(__name__)


# =============================================================================
# Notification Fanout
# =============================================================================

@shared_task(bind=True, name="workers.tasks.fan_out_notifications")
def fan_out_notifications(
    self,
    org_id: str,
    class_id: str | None,
    author_id: str,
    kind: str,
    title: str,
    body: str | None = None,
    data: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """
    Create notifications for everyone who can see a new story/announcement.

    Queued by NotificationService.notify_safely when
    NOTIFICATION_FANOUT_MODE is "celery". Database failures are retried.

    Returns:
        Dict with:
        - success: bool
        - created: Number of notifications inserted
    """
    from core.services.notification_service import NotificationService

    logger.info(f"Fanning out {kind} notifications for org {org_id} (class={class_id})")

    try:
        created = NotificationService.fan_out(
            org_id=org_id,
            class_id=class_id,
            author_id=author_id,
            kind=kind,
            title=title,
            body=body,
            data=data,
        )
    except Exception as e:
        logger.error(f"Notification fanout failed for org {org_id}: {e}")
        raise self.retry(exc=e)

    logger.info(f"Created {created} {kind} notifications in org {org_id}")
    return {"success": True, "created": created}
