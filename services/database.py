"""Database access layer providing unified interface to SQLite and Supabase.

Uses database_adapter for automatic backend selection based on settings.
"""
from config import settings
from database_adapter import DatabaseAdapter

# Initialize database adapter - automatically chooses SQLite (if DATABASE_URL set) or Supabase
db_adapter = DatabaseAdapter(settings)
db_adapter.init()


def get_db():
    """
    Dependency for FastAPI endpoints to get database adapter.
    Works with both SQLite (test) and Supabase (production).

    Usage:
        @app.get("/example")
        def example(db = Depends(get_db)):
            result = db.table('users').select('*').execute()
            return result.data
    """
    return db_adapter
