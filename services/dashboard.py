"""Dashboard aggregation.

Each page is a short sequence of reads against the activities, messages,
contents, searches and users tables, reshaped into a display-ready payload.
Store errors propagate to the caller unchanged; routes turn them into 500s.
"""
import math
import uuid
from collections import Counter
from datetime import datetime, UTC
from typing import Dict, Iterable, List, Optional

from database_adapter import PAGE_SIZE, iter_pages, to_utc
from services.placeholders import EngagementProvider, QuickStatsProvider
from services.search import SubstringSearchEngine

RECENT_ACTIVITY_LIMIT = 5
ANNOUNCEMENT_LIMIT = 3
EXCERPT_LENGTH = 100
CONTENT_RESULT_LIMIT = 10
USER_RESULT_LIMIT = 5
SEARCH_HISTORY_LIMIT = 5
POPULAR_SEARCH_LIMIT = 5
INBOX_PAGE_SIZE = 20
PREVIEW_LENGTH = 100
INTEREST_ACTIVITY_LIMIT = 50
INTEREST_QUERY_LIMIT = 10
RECOMMENDATION_LIMIT = 5
SUGGESTED_CONNECTION_LIMIT = 3
TRENDING_TAG_LIMIT = 5
LIVE_LIST_LIMIT = 5
CHARS_PER_READ_MINUTE = 1000
DEFAULT_HOST = "System"


def _iso(value) -> Optional[str]:
    parsed = to_utc(value)
    return parsed.isoformat() if parsed else None


def _minutes_between(start: datetime, end: datetime) -> str:
    return f"{round((end - start).total_seconds() / 60)} minutes"


def truncate(text: Optional[str], length: int = PREVIEW_LENGTH, marker: str = "...") -> str:
    """First `length` characters of text, with a marker when anything was cut"""
    text = text or ""
    if len(text) <= length:
        return text
    return text[:length] + marker


def read_time(body: Optional[str]) -> str:
    """Rough reading time at ~1000 characters per minute"""
    return f"{math.ceil(len(body or '') / CHARS_PER_READ_MINUTE)} min"


def most_common(values: Iterable[str], limit: int) -> List[str]:
    """Most frequent values, descending; ties keep first-seen order"""
    return [value for value, _ in Counter(values).most_common(limit)]


class DashboardAggregator:
    """Builds the five dashboard pages for one user at a time"""

    def __init__(
        self,
        db,
        search_engine: Optional[SubstringSearchEngine] = None,
        quick_stats: Optional[QuickStatsProvider] = None,
        engagement: Optional[EngagementProvider] = None,
        page_size: int = PAGE_SIZE,
    ):
        self.db = db
        self.page_size = page_size
        self.search_engine = search_engine or SubstringSearchEngine(db, page_size=page_size)
        self.quick_stats = quick_stats or QuickStatsProvider()
        self.engagement = engagement or EngagementProvider()

    # ------------------------------------------------------------------
    # shared reads
    # ------------------------------------------------------------------

    def _recent_activities(self, user_id: str, limit: int) -> List[dict]:
        response = (
            self.db.table("activities")
            .select("*")
            .eq("user_id", user_id)
            .order("timestamp", desc=True)
            .limit(limit)
            .execute()
        )
        return response.data or []

    def _recent_queries(self, user_id: str, limit: int) -> List[str]:
        response = (
            self.db.table("searches")
            .select("query")
            .eq("user_id", user_id)
            .order("timestamp", desc=True)
            .limit(limit)
            .execute()
        )
        return [row["query"] for row in (response.data or [])]

    def _unread_count(self, user_id: str) -> int:
        response = (
            self.db.table("messages")
            .select("id", count="exact")
            .eq("recipient_id", user_id)
            .eq("is_read", False)
            .execute()
        )
        return response.count or 0

    def _user_names(self, user_ids: Iterable[Optional[str]]) -> Dict[str, Optional[str]]:
        """Map user id -> name for the given ids (missing users are absent)"""
        ids = sorted({uid for uid in user_ids if uid})
        if not ids:
            return {}
        response = self.db.table("users").select("id, name").in_("id", ids).execute()
        return {row["id"]: row.get("name") for row in (response.data or [])}

    # ------------------------------------------------------------------
    # pages
    # ------------------------------------------------------------------

    def home(self, user_id: str) -> dict:
        activities = self._recent_activities(user_id, RECENT_ACTIVITY_LIMIT)

        announcements_response = (
            self.db.table("contents")
            .select("*")
            .order("created_at", desc=True)
            .limit(ANNOUNCEMENT_LIMIT)
            .execute()
        )

        return {
            "recentActivity": [
                {
                    "id": activity["id"],
                    "type": activity["type"],
                    "detail": activity.get("detail") or "",
                    "timestamp": _iso(activity.get("timestamp")),
                }
                for activity in activities
            ],
            "quickStats": {
                "notifications": self.quick_stats.notification_count(user_id),
                "messages": self._unread_count(user_id),
                "tasks": self.quick_stats.task_count(user_id),
            },
            "announcements": [
                {
                    "id": item["id"],
                    "title": item["title"],
                    "content": item.get("description") or (item.get("body") or "")[:EXCERPT_LENGTH],
                }
                for item in (announcements_response.data or [])
            ],
        }

    def search(self, user_id: str, query: Optional[str]) -> dict:
        """Run a search (when query is non-blank) and return history alongside.

        The search record is written once, with its result count, after the
        results are known.
        """
        query = (query or "").strip()
        results: List[dict] = []

        if query:
            content_results = [
                {
                    "id": item["id"],
                    "type": "content",
                    "title": item["title"],
                    "description": item.get("description"),
                    "matchReason": f'Content matches "{query}"',
                }
                for item in self.search_engine.search_content(query, CONTENT_RESULT_LIMIT)
            ]
            user_results = [
                {
                    "id": user["id"],
                    "type": "user",
                    "name": user.get("name"),
                    "email": user.get("email"),
                    "matchReason": f'User matches "{query}"',
                }
                for user in self.search_engine.search_users(query, USER_RESULT_LIMIT)
            ]
            results = content_results + user_results

            self.db.table("searches").insert({
                "id": str(uuid.uuid4()),
                "user_id": user_id,
                "query": query,
                "timestamp": datetime.now(UTC).isoformat(),
                "result_count": len(results),
            }).execute()

        all_queries = iter_pages(
            lambda: self.db.table("searches").select("id, query").order("timestamp", desc=True).order("id"),
            self.page_size,
        )

        return {
            "recentSearches": self._recent_queries(user_id, SEARCH_HISTORY_LIMIT),
            "popularSearches": most_common((row["query"] for row in all_queries), POPULAR_SEARCH_LIMIT),
            "results": results,
        }

    def inbox(self, user_id: str) -> dict:
        response = (
            self.db.table("messages")
            .select("*")
            .eq("recipient_id", user_id)
            .order("created_at", desc=True)
            .limit(INBOX_PAGE_SIZE)
            .execute()
        )
        messages = response.data or []
        senders = self._user_names(msg.get("sender_id") for msg in messages)

        return {
            "unreadCount": self._unread_count(user_id),
            "messages": [
                {
                    "id": msg["id"],
                    "from": {
                        "id": msg.get("sender_id"),
                        "name": senders.get(msg.get("sender_id")),
                    },
                    "subject": msg["subject"],
                    "preview": truncate(msg.get("body"), PREVIEW_LENGTH),
                    "isRead": bool(msg.get("is_read")),
                    "timestamp": _iso(msg.get("created_at")),
                }
                for msg in messages
            ],
        }

    def for_you(self, user_id: str) -> dict:
        # Read for future personalization; recommendations only use searches today.
        self._recent_activities(user_id, INTEREST_ACTIVITY_LIMIT)
        queries = self._recent_queries(user_id, INTEREST_QUERY_LIMIT)

        recommended = [
            {
                "id": item["id"],
                "type": item["type"],
                "title": item["title"],
                "description": item.get("description"),
                "readTime": read_time(item.get("body")),
            }
            for item in self.search_engine.recommend(queries, RECOMMENDATION_LIMIT)
        ]

        others = (
            self.db.table("users")
            .select("id, name, email")
            .neq("id", user_id)
            .order("created_at")
            .limit(SUGGESTED_CONNECTION_LIMIT)
            .execute()
        )
        suggestions = [
            {
                "id": other["id"],
                "name": other.get("name"),
                "email": other.get("email"),
                "mutualConnections": self.engagement.mutual_connections(user_id, other["id"]),
            }
            for other in (others.data or [])
        ]

        tagged = iter_pages(
            lambda: self.db.table("contents").select("id, tags").order("created_at", desc=True).order("id"),
            self.page_size,
        )
        all_tags = (tag for row in tagged for tag in (row.get("tags") or []))

        return {
            "recommendedContent": recommended,
            "suggestedConnections": suggestions,
            "trendingTopics": most_common(all_tags, TRENDING_TAG_LIMIT),
        }

    def live(self, user_id: str, now: Optional[datetime] = None) -> dict:
        """Split live contents into current, upcoming and ended events.

        Each item lands in exactly one list: upcoming when it has not started,
        current when it has started and not ended, otherwise a recording.
        """
        now = to_utc(now) if now else datetime.now(UTC)

        live_items = iter_pages(
            lambda: self.db.table("contents").select("*").eq("is_live", True).order("created_at").order("id"),
            self.page_size,
        )
        events = []
        for item in live_items:
            start = to_utc(item.get("start_time"))
            end = to_utc(item.get("end_time"))
            if start is None or end is None:
                continue
            events.append((item, start, end))

        upcoming = sorted((e for e in events if e[1] > now), key=lambda e: e[1])
        current = [e for e in events if e[1] <= now < e[2]]
        ended = sorted((e for e in events if e[1] <= now and e[2] <= now), key=lambda e: e[2], reverse=True)
        upcoming = upcoming[:LIVE_LIST_LIMIT]
        ended = ended[:LIVE_LIST_LIMIT]

        hosts = self._user_names(item.get("author_id") for item, _, _ in current + upcoming + ended)

        def host(item):
            return hosts.get(item.get("author_id")) or DEFAULT_HOST

        return {
            "currentLiveEvents": [
                {
                    "id": item["id"],
                    "title": item["title"],
                    "host": host(item),
                    "participants": self.engagement.live_participants(item["id"]),
                    "startTime": start.isoformat(),
                    "estimatedDuration": _minutes_between(start, end),
                    "joinUrl": f"/join-event/{item['id']}",
                }
                for item, start, end in current
            ],
            "upcomingEvents": [
                {
                    "id": item["id"],
                    "title": item["title"],
                    "host": host(item),
                    "scheduledTime": start.isoformat(),
                    "duration": _minutes_between(start, end),
                    "registerUrl": f"/register/{item['id']}",
                }
                for item, start, end in upcoming
            ],
            "recentRecordings": [
                {
                    "id": item["id"],
                    "title": item["title"],
                    "host": host(item),
                    "recordedDate": start.date().isoformat(),
                    "duration": _minutes_between(start, end),
                    "viewUrl": f"/recordings/{item['id']}",
                }
                for item, start, end in ended
            ],
        }
