import os
import tempfile

# Settings are read at import time, so the environment must be ready first.
os.environ.setdefault("ENV_FILE", ".env.test")
os.environ.setdefault(
    "DATABASE_URL",
    f"sqlite:///{os.path.join(tempfile.gettempdir(), 'dashboard_api_test.db')}",
)
os.environ.setdefault("TEST_MODE", "true")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")

import uuid
from datetime import datetime, timedelta, UTC

import pytest
from fastapi.testclient import TestClient

from config import get_settings
from database_adapter import DatabaseAdapter
from main import app
from services.database import get_db
from services.passwords import hash_password
from services.placeholders import EngagementProvider, get_engagement_provider

TEST_PASSWORD = "password123"


class FixedEngagementProvider(EngagementProvider):
    """Deterministic engagement numbers for assertions"""

    def mutual_connections(self, user_id, other_user_id):
        return 2

    def live_participants(self, content_id):
        return 42


@pytest.fixture(scope="session")
def test_settings():
    """Load test environment settings from ENV_FILE (defaults to .env.test)."""
    return get_settings(os.environ.get("ENV_FILE", ".env.test"))


@pytest.fixture(scope="session")
def test_db(test_settings):
    """SQLite database for testing (no Supabase required)"""
    db = DatabaseAdapter(test_settings)
    db.init()
    yield db


@pytest.fixture
def clean_database(test_db):
    """Drop and recreate tables before each test"""
    test_db.cleanup()
    yield test_db


@pytest.fixture
def client(clean_database):
    """Test client using SQLite. Auth is driven by Authorization headers."""
    app.dependency_overrides[get_db] = lambda: clean_database
    app.dependency_overrides[get_engagement_provider] = lambda: FixedEngagementProvider()
    client = TestClient(app)
    yield client
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    """Return a factory that builds dev-token Authorization headers for a given user dict."""
    def _make(user: dict):
        return {"Authorization": f"Bearer dev-token-{user['id']}"}
    return _make


def _insert_user(db, name: str, email: str, created_at: datetime):
    result = db.table("users").insert({
        "id": str(uuid.uuid4()),
        "name": name,
        "email": email,
        "password_hash": hash_password(TEST_PASSWORD),
        "created_at": created_at,
    }).execute()
    return result.data[0]


@pytest.fixture
def test_user(clean_database):
    """Create a test user in the test database"""
    return _insert_user(clean_database, "Test User", "test@example.com", datetime.now(UTC) - timedelta(days=3))


@pytest.fixture
def test_user_2(clean_database):
    """Create a second test user in the test database"""
    return _insert_user(clean_database, "Grace Hopper", "grace@example.com", datetime.now(UTC) - timedelta(days=2))


@pytest.fixture
def make_user(clean_database):
    """Factory for additional users"""
    def _make(name: str, email: str, created_at: datetime = None):
        return _insert_user(clean_database, name, email, created_at or datetime.now(UTC))
    return _make


@pytest.fixture
def make_content(clean_database):
    """Factory for content items; created_at defaults to now"""
    def _make(title: str, **fields):
        data = {
            "id": str(uuid.uuid4()),
            "title": title,
            "type": fields.pop("type", "article"),
            "tags": fields.pop("tags", []),
            "created_at": fields.pop("created_at", datetime.now(UTC)),
            **fields,
        }
        return clean_database.table("contents").insert(data).execute().data[0]
    return _make


@pytest.fixture
def make_message(clean_database):
    """Factory for messages between two users"""
    def _make(sender: dict, recipient: dict, body: str = "Hello there", **fields):
        data = {
            "id": str(uuid.uuid4()),
            "sender_id": sender["id"],
            "recipient_id": recipient["id"],
            "subject": fields.pop("subject", "Hi"),
            "body": body,
            "is_read": fields.pop("is_read", False),
            "created_at": fields.pop("created_at", datetime.now(UTC)),
            **fields,
        }
        return clean_database.table("messages").insert(data).execute().data[0]
    return _make


@pytest.fixture
def make_search(clean_database):
    """Factory for search history rows"""
    def _make(user: dict, query: str, timestamp: datetime = None, result_count: int = 0):
        data = {
            "id": str(uuid.uuid4()),
            "user_id": user["id"],
            "query": query,
            "timestamp": timestamp or datetime.now(UTC),
            "result_count": result_count,
        }
        return clean_database.table("searches").insert(data).execute().data[0]
    return _make
