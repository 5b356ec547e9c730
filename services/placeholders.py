"""
Providers for dashboard numbers that have no real data source yet.

Notifications, tasks, mutual connections and live participant counts are not
backed by any collection. The aggregator asks these providers for them, so a
real implementation can be swapped in via FastAPI dependency overrides without
changing response payloads.
"""
import random
from typing import Optional

from config import settings


class QuickStatsProvider:
    """Home page counters other than unread messages"""

    def __init__(self, notifications: Optional[int] = None, tasks: Optional[int] = None):
        self.notifications = settings.PLACEHOLDER_NOTIFICATIONS if notifications is None else notifications
        self.tasks = settings.PLACEHOLDER_TASKS if tasks is None else tasks

    def notification_count(self, user_id: str) -> int:
        return self.notifications

    def task_count(self, user_id: str) -> int:
        return self.tasks


class EngagementProvider:
    """Social/engagement numbers, randomly generated until a graph exists"""

    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng or random.Random()

    def mutual_connections(self, user_id: str, other_user_id: str) -> int:
        return self.rng.randint(0, 4)

    def live_participants(self, content_id: str) -> int:
        return self.rng.randint(10, 109)


def get_quick_stats_provider() -> QuickStatsProvider:
    return QuickStatsProvider()


def get_engagement_provider() -> EngagementProvider:
    return EngagementProvider()
