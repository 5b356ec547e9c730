"""
Best-effort activity logging.

Dashboard views and logins append one row to the activities table. Writes
normally run as FastAPI background tasks after the response is produced; a
failed write is logged and dropped, never surfaced to the caller.
"""
import logging
import uuid
from datetime import datetime, UTC

from fastapi import BackgroundTasks

logger = logging.getLogger(__name__)

ACTIVITY_TYPES = {"login", "view", "search", "message_read", "notification_click", "other"}


class ActivityLogger:
    """Writes activity records for one database adapter"""

    def __init__(self, db):
        self.db = db

    def record(self, user_id: str, activity_type: str, detail: str = "") -> bool:
        """Insert one activity row. Returns False instead of raising on failure."""
        if activity_type not in ACTIVITY_TYPES:
            activity_type = "other"

        try:
            self.db.table("activities").insert({
                "id": str(uuid.uuid4()),
                "user_id": user_id,
                "type": activity_type,
                "detail": detail,
                "timestamp": datetime.now(UTC).isoformat(),
            }).execute()
            return True
        except Exception as e:
            logger.error(f"Activity logging error for user {user_id}: {e}")
            return False

    def dispatch(self, background_tasks: BackgroundTasks, user_id: str, activity_type: str, detail: str = ""):
        """Schedule record() to run after the response is sent"""
        background_tasks.add_task(self.record, user_id, activity_type, detail)
