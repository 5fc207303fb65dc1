# =============================================================================
# workers/config.py - Celery Worker Configuration
# =============================================================================
# Only notification fanout runs on workers. Broker and backend URLs come
# from REDIS_URL in celery_app.create_celery_app().
# =============================================================================


class CeleryConfig:
    """Applied to the Celery app via app.config_from_object()."""

    # A fanout interrupted by a worker crash is redelivered
    task_acks_late = True

    # Fanout is a handful of queries; anything longer is stuck
    task_time_limit = 120
    task_soft_time_limit = 90

    task_serializer = "json"
    result_serializer = "json"
    accept_content = ["json"]
    result_expires = 3600

    task_default_queue = "default"
    task_routes = {
        "workers.tasks.fan_out_notifications": {"queue": "notifications"},
    }

    # Failed database writes during fanout
    task_annotations = {
        "workers.tasks.fan_out_notifications": {
            "max_retries": 3,
            "default_retry_delay": 30,
        }
    }
