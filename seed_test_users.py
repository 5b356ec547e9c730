"""
Seed local development data

Creates three users with fixed IDs (usable as dev-token-<id> in TEST_MODE),
plus messages, content items (including live events) and a few searches so
every dashboard page has something to show.

Run with: uv run python seed_test_users.py
"""

import os
from datetime import datetime, timedelta, UTC

from dotenv import load_dotenv

# Load environment variables before config is imported
load_dotenv(os.getenv("ENV_FILE", ".env.test"))
os.environ.setdefault("DATABASE_URL", "sqlite:///./dashboard.db")

from config import Settings  # noqa: E402
from database_adapter import DatabaseAdapter  # noqa: E402
from services.passwords import hash_password  # noqa: E402

DEV_PASSWORD = "password123"

test_users = [
    {"id": "49366adb-2d13-412f-9ae5-4c35dbffab10", "name": "Ada Admin", "email": "ada@example.com"},
    {"id": "94e116f7-885d-4d32-87ae-697c5dc09b9e", "name": "Grace Host", "email": "grace@example.com"},
    {"id": "2a3b7c3e-971b-4b42-9c8c-0f1843486c50", "name": "Linus Reader", "email": "linus@example.com"},
]


def _contents(now: datetime):
    ada, grace, _ = (u["id"] for u in test_users)
    return [
        {
            "title": "Go concurrency patterns",
            "type": "article",
            "description": "Goroutines, channels and select in practice",
            "body": "Concurrency is not parallelism. " * 80,
            "author_id": ada,
            "tags": ["go", "concurrency"],
        },
        {
            "title": "Intro to Rust ownership",
            "type": "tutorial",
            "description": "",
            "body": "Ownership, borrowing and lifetimes explained step by step. " * 30,
            "author_id": grace,
            "tags": ["rust", "memory"],
        },
        {
            "title": "Weekly AI news",
            "type": "news",
            "description": "What happened in machine learning this week",
            "body": "Models, papers and tools.",
            "tags": ["ai", "news"],
        },
        {
            "title": "Live: Building APIs with FastAPI",
            "type": "event",
            "description": "Streaming now",
            "author_id": grace,
            "tags": ["python", "api"],
            "is_live": True,
            "start_time": now - timedelta(minutes=30),
            "end_time": now + timedelta(minutes=60),
        },
        {
            "title": "Upcoming: Async Python Q&A",
            "type": "event",
            "description": "Bring your questions",
            "author_id": ada,
            "tags": ["python", "async"],
            "is_live": True,
            "start_time": now + timedelta(days=2),
            "end_time": now + timedelta(days=2, minutes=45),
        },
        {
            "title": "Recording: AI pair programming",
            "type": "event",
            "description": "Last week's session",
            "tags": ["ai"],
            "is_live": True,
            "start_time": now - timedelta(days=7, minutes=90),
            "end_time": now - timedelta(days=7),
        },
    ]


def seed(db: DatabaseAdapter):
    """Create users, contents, messages and searches; existing users are left alone"""
    now = datetime.now(UTC)

    for user in test_users:
        existing = db.table("users").select("id").eq("id", user["id"]).execute()
        if existing.data:
            print(f"  ✓ User {user['email']} already exists (ID: {user['id']})")
            continue
        db.table("users").insert({**user, "password_hash": hash_password(DEV_PASSWORD)}).execute()
        print(f"  ✓ Created {user['email']} (ID: {user['id']})")

    for offset, item in enumerate(_contents(now)):
        db.table("contents").insert({**item, "created_at": now - timedelta(hours=offset)}).execute()
    print("  ✓ Created content items")

    ada, grace, linus = (u["id"] for u in test_users)
    messages = [
        {"sender_id": ada, "recipient_id": linus, "subject": "Welcome!", "body": "Glad to have you here."},
        {"sender_id": grace, "recipient_id": linus, "subject": "Stream tonight",
         "body": "I am going live later today with a deep dive into FastAPI dependency injection and testing. " * 2},
        {"sender_id": linus, "recipient_id": ada, "subject": "Thanks", "body": "Thanks for the invite.", "is_read": True},
    ]
    for offset, message in enumerate(messages):
        db.table("messages").insert({**message, "created_at": now - timedelta(minutes=offset)}).execute()
    print("  ✓ Created messages")

    for offset, (user_id, query) in enumerate([(linus, "rust"), (linus, "go"), (ada, "rust")]):
        db.table("searches").insert({
            "user_id": user_id,
            "query": query,
            "timestamp": now - timedelta(minutes=offset),
            "result_count": 1,
        }).execute()
    print("  ✓ Created search history")


def main():
    settings = Settings()
    print(f"Using database: {settings.DATABASE_URL}")
    db = DatabaseAdapter(settings)
    db.init()
    seed(db)

    print("\n✓ Development data ready!")
    print("-" * 70)
    print(f"{'Email':<22} | {'Dev token'}")
    print("-" * 70)
    for user in test_users:
        print(f"{user['email']:<22} | dev-token-{user['id']}")
    print("-" * 70)
    print(f"\nAll accounts use the password '{DEV_PASSWORD}'.")


if __name__ == "__main__":
    main()
