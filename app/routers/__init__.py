# =============================================================================
# app/routers/ - API Route Definitions
# =============================================================================
# This package contains FastAPI routers organized by feature:
# - health.py: Health check endpoints
# - stories.py: Stories feed, CRUD and items
# - announcements.py: Weekly announcements and the latest feed
# - notifications.py: In-app notifications
# - attendance.py: Daily attendance
# - menus.py: Daily meal plans
# - messages.py: Threads, recipients and thread items
# - health_logs.py: Student care events
# - classes.py: Classes and teacher assignment
#
# Each router is mounted in main.py with a URL prefix.
# =============================================================================

from . import health
from . import stories
from . import announcements
from . import notifications
from . import attendance
from . import menus
from . import messages
from . import health_logs
from . import classes

__all__ = [
    "health",
    "stories",
    "announcements",
    "notifications",
    "attendance",
    "menus",
    "messages",
    "health_logs",
    "classes",
]
