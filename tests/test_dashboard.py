"""
Tests for the dashboard endpoints: home, search, inbox, for-you and live.
"""
import uuid
from datetime import datetime, timedelta, UTC

import pytest
from fastapi.testclient import TestClient

from main import app
from routers.dashboard import get_activity_logger, get_aggregator
from services.activity import ActivityLogger
from services.dashboard import DashboardAggregator


class BrokenDatabase:
    """Adapter stand-in whose every table access fails"""

    def table(self, table_name):
        raise RuntimeError("connection lost")


def _activities(db, user_id):
    return db.table("activities").select("*").eq("user_id", user_id).order("timestamp", desc=True).execute().data


def _searches(db, user_id=None):
    query = db.table("searches").select("*")
    if user_id:
        query = query.eq("user_id", user_id)
    return query.execute().data


@pytest.mark.parametrize("path", [
    "/api/dashboard/home",
    "/api/dashboard/search",
    "/api/dashboard/inbox",
    "/api/dashboard/for-you",
    "/api/dashboard/live",
])
def test_dashboard_requires_auth(client: TestClient, path):
    response = client.get(path)

    assert response.status_code == 401
    assert response.json()["success"] is False


# ---------------------------------------------------------------------------
# Home
# ---------------------------------------------------------------------------

def test_home_returns_five_most_recent_activities(client, clean_database, auth_headers, test_user):
    base = datetime.now(UTC) - timedelta(hours=1)
    ids = []
    for i in range(6):
        row = clean_database.table("activities").insert({
            "id": str(uuid.uuid4()),
            "user_id": test_user["id"],
            "type": "view",
            "detail": f"page {i}",
            "timestamp": base + timedelta(minutes=i),
        }).execute().data[0]
        ids.append(row["id"])

    response = client.get("/api/dashboard/home", headers=auth_headers(test_user))

    assert response.status_code == 200
    recent = response.json()["data"]["recentActivity"]
    assert [a["id"] for a in recent] == list(reversed(ids))[:5]
    assert recent[0]["detail"] == "page 5"


def test_home_logs_view_activity(client, clean_database, auth_headers, test_user):
    client.get("/api/dashboard/home", headers=auth_headers(test_user))

    activities = _activities(clean_database, test_user["id"])
    assert len(activities) == 1
    assert activities[0]["type"] == "view"
    assert activities[0]["detail"] == "dashboard home"


def test_home_quick_stats_and_announcements(client, auth_headers, test_user, test_user_2, make_message, make_content):
    make_message(test_user_2, test_user, is_read=False)
    make_message(test_user_2, test_user, is_read=False)
    make_message(test_user_2, test_user, is_read=True)
    make_message(test_user, test_user_2, is_read=False)

    now = datetime.now(UTC)
    make_content("Oldest", description="old", created_at=now - timedelta(days=3))
    make_content("Described", description="Short description", body="ignored", created_at=now - timedelta(days=2))
    make_content("Body only", description="", body="x" * 250, created_at=now - timedelta(days=1))
    make_content("Newest", body="short body", created_at=now)

    response = client.get("/api/dashboard/home", headers=auth_headers(test_user))

    data = response.json()["data"]
    assert data["quickStats"] == {"notifications": 5, "messages": 2, "tasks": 8}
    assert [a["title"] for a in data["announcements"]] == ["Newest", "Body only", "Described"]
    assert data["announcements"][0]["content"] == "short body"
    assert data["announcements"][1]["content"] == "x" * 100
    assert data["announcements"][2]["content"] == "Short description"


# ---------------------------------------------------------------------------
# Search
# ---------------------------------------------------------------------------

def test_search_matches_tag_substring(client, auth_headers, test_user, make_content):
    item = make_content("Go concurrency", tags=["go", "concurrency"])

    response = client.get("/api/dashboard/search", params={"query": "currency"}, headers=auth_headers(test_user))

    assert response.status_code == 200
    results = response.json()["data"]["results"]
    assert [r["id"] for r in results] == [item["id"]]
    assert results[0]["type"] == "content"
    assert results[0]["matchReason"] == 'Content matches "currency"'


def test_search_is_case_insensitive_across_fields(client, auth_headers, test_user, make_content):
    by_title = make_content("PYTHON tips")
    by_description = make_content("Other", description="all about Python")
    by_tag = make_content("Another", tags=["PyThOn"])
    make_content("Unrelated", description="java", tags=["jvm"])

    response = client.get("/api/dashboard/search", params={"query": "python"}, headers=auth_headers(test_user))

    ids = {r["id"] for r in response.json()["data"]["results"]}
    assert ids == {by_title["id"], by_description["id"], by_tag["id"]}


def test_search_caps_results_and_puts_content_first(client, auth_headers, test_user, make_content, make_user):
    for i in range(12):
        make_content(f"match article {i}")
    for i in range(7):
        make_user(f"Match Person {i}", f"person{i}@example.com")

    response = client.get("/api/dashboard/search", params={"query": "match"}, headers=auth_headers(test_user))

    results = response.json()["data"]["results"]
    assert len(results) == 15
    assert [r["type"] for r in results] == ["content"] * 10 + ["user"] * 5
    assert all("match" in r["matchReason"] for r in results)
    assert results[10]["matchReason"] == 'User matches "match"'


def test_search_finds_users_by_email(client, auth_headers, test_user, test_user_2):
    response = client.get("/api/dashboard/search", params={"query": "GRACE@"}, headers=auth_headers(test_user))

    results = response.json()["data"]["results"]
    assert len(results) == 1
    assert results[0]["id"] == test_user_2["id"]
    assert results[0]["name"] == "Grace Hopper"
    assert "password_hash" not in results[0]


def test_search_records_query_with_result_count(client, clean_database, auth_headers, test_user, make_content):
    make_content("Rust ownership", tags=["rust"])
    make_content("Rust async", tags=["rust"])

    client.get("/api/dashboard/search", params={"query": "rust"}, headers=auth_headers(test_user))

    searches = _searches(clean_database, test_user["id"])
    assert len(searches) == 1
    assert searches[0]["query"] == "rust"
    assert searches[0]["result_count"] == 2

    activities = _activities(clean_database, test_user["id"])
    assert [(a["type"], a["detail"]) for a in activities] == [("search", "rust")]


def test_repeated_search_creates_separate_records(client, clean_database, auth_headers, test_user, make_content):
    client.get("/api/dashboard/search", params={"query": "rust"}, headers=auth_headers(test_user))
    make_content("Rust ownership", tags=["rust"])
    client.get("/api/dashboard/search", params={"query": "rust"}, headers=auth_headers(test_user))

    counts = sorted(s["result_count"] for s in _searches(clean_database, test_user["id"]))
    assert counts == [0, 1]


@pytest.mark.parametrize("params", [{}, {"query": ""}, {"query": "   "}])
def test_empty_search_writes_nothing(client, clean_database, auth_headers, test_user, test_user_2, make_search, params):
    make_search(test_user, "fastapi")
    make_search(test_user_2, "rust")

    response = client.get("/api/dashboard/search", params=params, headers=auth_headers(test_user))

    data = response.json()["data"]
    assert data["results"] == []
    assert data["recentSearches"] == ["fastapi"]
    assert set(data["popularSearches"]) == {"fastapi", "rust"}
    assert len(_searches(clean_database)) == 2
    assert _activities(clean_database, test_user["id"]) == []


def test_recent_and_popular_searches(client, auth_headers, test_user, test_user_2, make_search):
    base = datetime.now(UTC) - timedelta(hours=1)
    for i, query in enumerate(["a", "b", "c", "d", "e", "f"]):
        make_search(test_user, query, timestamp=base + timedelta(minutes=i))
    for i in range(3):
        make_search(test_user_2, "rust", timestamp=base + timedelta(minutes=i))
    make_search(test_user_2, "a", timestamp=base)

    response = client.get("/api/dashboard/search", headers=auth_headers(test_user))

    data = response.json()["data"]
    assert data["recentSearches"] == ["f", "e", "d", "c", "b"]
    assert data["popularSearches"][:2] == ["rust", "a"]
    assert len(data["popularSearches"]) == 5


def test_search_includes_current_query_in_history(client, auth_headers, test_user):
    response = client.get("/api/dashboard/search", params={"query": "htmx"}, headers=auth_headers(test_user))

    data = response.json()["data"]
    assert data["recentSearches"] == ["htmx"]
    assert data["popularSearches"] == ["htmx"]


# ---------------------------------------------------------------------------
# Inbox
# ---------------------------------------------------------------------------

def test_inbox_empty(client, auth_headers, test_user):
    response = client.get("/api/dashboard/inbox", headers=auth_headers(test_user))

    assert response.status_code == 200
    assert response.json()["data"] == {"unreadCount": 0, "messages": []}


def test_inbox_previews_and_sender(client, auth_headers, test_user, test_user_2, make_message):
    now = datetime.now(UTC)
    make_message(test_user_2, test_user, body="a" * 150, subject="Long", created_at=now - timedelta(minutes=1))
    make_message(test_user_2, test_user, body="b" * 50, subject="Short", is_read=True, created_at=now)

    response = client.get("/api/dashboard/inbox", headers=auth_headers(test_user))

    data = response.json()["data"]
    assert data["unreadCount"] == 1
    short, long = data["messages"]
    assert short["subject"] == "Short"
    assert short["preview"] == "b" * 50
    assert short["isRead"] is True
    assert long["preview"] == "a" * 100 + "..."
    assert long["from"] == {"id": test_user_2["id"], "name": "Grace Hopper"}


def test_inbox_unread_count_is_not_limited_to_page(client, auth_headers, test_user, test_user_2, make_message):
    base = datetime.now(UTC) - timedelta(hours=1)
    for i in range(25):
        make_message(test_user_2, test_user, body=f"message {i}", created_at=base + timedelta(minutes=i))

    response = client.get("/api/dashboard/inbox", headers=auth_headers(test_user))

    data = response.json()["data"]
    assert len(data["messages"]) == 20
    assert data["unreadCount"] == 25
    assert data["messages"][0]["preview"] == "message 24"


def test_inbox_logs_view(client, clean_database, auth_headers, test_user):
    client.get("/api/dashboard/inbox", headers=auth_headers(test_user))

    activities = _activities(clean_database, test_user["id"])
    assert [(a["type"], a["detail"]) for a in activities] == [("view", "inbox")]


# ---------------------------------------------------------------------------
# For you
# ---------------------------------------------------------------------------

def test_for_you_recommends_from_search_history(client, auth_headers, test_user, make_search, make_content):
    make_search(test_user, "rust")
    match = make_content("Ownership explained", type="tutorial", tags=["Rust"], body="x" * 2500)
    make_content("Trusty tools")  # title contains "rust"
    make_content("Go generics", tags=["go"])

    response = client.get("/api/dashboard/for-you", headers=auth_headers(test_user))

    data = response.json()["data"]
    titles = {r["title"] for r in data["recommendedContent"]}
    assert titles == {"Ownership explained", "Trusty tools"}
    rec = next(r for r in data["recommendedContent"] if r["id"] == match["id"])
    assert rec["type"] == "tutorial"
    assert rec["readTime"] == "3 min"


def test_for_you_without_history_has_no_recommendations(client, auth_headers, test_user, make_content):
    make_content("Anything", tags=["misc"])

    response = client.get("/api/dashboard/for-you", headers=auth_headers(test_user))

    assert response.json()["data"]["recommendedContent"] == []


def test_for_you_suggested_connections_exclude_self(client, auth_headers, test_user, make_user):
    for i in range(4):
        make_user(f"Other {i}", f"other{i}@example.com")

    response = client.get("/api/dashboard/for-you", headers=auth_headers(test_user))

    suggestions = response.json()["data"]["suggestedConnections"]
    assert len(suggestions) == 3
    assert test_user["id"] not in {s["id"] for s in suggestions}
    assert all(s["mutualConnections"] == 2 for s in suggestions)


def test_for_you_trending_topics(client, auth_headers, test_user, make_content):
    make_content("One", tags=["ai", "rust"])
    make_content("Two", tags=["ai", "rust"])
    make_content("Three", tags=["ai", "go"])

    response = client.get("/api/dashboard/for-you", headers=auth_headers(test_user))

    assert response.json()["data"]["trendingTopics"] == ["ai", "rust", "go"]


# ---------------------------------------------------------------------------
# Live
# ---------------------------------------------------------------------------

def test_live_content_lists(client, auth_headers, test_user, test_user_2, make_content):
    now = datetime.now(UTC)
    current = make_content(
        "Streaming now", type="event", is_live=True, author_id=test_user_2["id"],
        start_time=now - timedelta(minutes=30), end_time=now + timedelta(minutes=30),
    )
    upcoming = make_content(
        "Tomorrow", type="event", is_live=True,
        start_time=now + timedelta(days=1), end_time=now + timedelta(days=1, minutes=45),
    )
    ended = make_content(
        "Last week", type="event", is_live=True, author_id=test_user_2["id"],
        start_time=datetime(2024, 3, 1, 10, 0, tzinfo=UTC), end_time=datetime(2024, 3, 1, 11, 30, tzinfo=UTC),
    )
    make_content("Not live", is_live=False, start_time=now - timedelta(minutes=5), end_time=now + timedelta(minutes=5))

    response = client.get("/api/dashboard/live", headers=auth_headers(test_user))

    assert response.status_code == 200
    data = response.json()["data"]

    assert len(data["currentLiveEvents"]) == 1
    live = data["currentLiveEvents"][0]
    assert live["id"] == current["id"]
    assert live["host"] == "Grace Hopper"
    assert live["participants"] == 42
    assert live["estimatedDuration"] == "60 minutes"
    assert live["joinUrl"] == f"/join-event/{current['id']}"

    assert len(data["upcomingEvents"]) == 1
    soon = data["upcomingEvents"][0]
    assert soon["host"] == "System"
    assert soon["duration"] == "45 minutes"
    assert soon["registerUrl"] == f"/register/{upcoming['id']}"

    assert len(data["recentRecordings"]) == 1
    recording = data["recentRecordings"][0]
    assert recording["recordedDate"] == "2024-03-01"
    assert recording["duration"] == "90 minutes"
    assert recording["viewUrl"] == f"/recordings/{ended['id']}"


# ---------------------------------------------------------------------------
# Failure handling
# ---------------------------------------------------------------------------

def test_store_failure_returns_error_envelope(client, auth_headers, test_user):
    app.dependency_overrides[get_aggregator] = lambda: DashboardAggregator(BrokenDatabase())

    response = client.get("/api/dashboard/inbox", headers=auth_headers(test_user))

    assert response.status_code == 500
    assert response.json() == {"success": False, "message": "connection lost"}


def test_activity_logging_failure_does_not_fail_request(client, auth_headers, test_user):
    app.dependency_overrides[get_activity_logger] = lambda: ActivityLogger(BrokenDatabase())

    response = client.get("/api/dashboard/home", headers=auth_headers(test_user))

    assert response.status_code == 200
    assert response.json()["success"] is True


def test_failed_view_still_records_activity(client, clean_database, auth_headers, test_user):
    app.dependency_overrides[get_aggregator] = lambda: DashboardAggregator(BrokenDatabase())

    response = client.get("/api/dashboard/inbox", headers=auth_headers(test_user))

    assert response.status_code == 500
    activities = _activities(clean_database, test_user["id"])
    assert [(a["type"], a["detail"]) for a in activities] == [("view", "inbox")]


def test_failed_search_still_records_query(client, clean_database, auth_headers, test_user):
    app.dependency_overrides[get_aggregator] = lambda: DashboardAggregator(BrokenDatabase())

    response = client.get("/api/dashboard/search", params={"query": " rust "}, headers=auth_headers(test_user))

    assert response.status_code == 500
    activities = _activities(clean_database, test_user["id"])
    assert [(a["type"], a["detail"]) for a in activities] == [("search", "rust")]
