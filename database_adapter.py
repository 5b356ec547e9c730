"""
Database adapter that works with both Supabase and SQLite

This allows tests to use SQLite (fast, local) while production uses Supabase.
The adapter provides a unified interface that works with both backends.
"""
from typing import Optional, Dict, List, Any, Union, Callable, Iterator
from sqlalchemy import create_engine, Column, String, Boolean, DateTime, Text, JSON, Integer, UUID
from sqlalchemy.orm import declarative_base, sessionmaker
from datetime import datetime, UTC
import uuid

Base = declarative_base()

# PostgREST's default max-rows; full scans are fetched in pages of this size
PAGE_SIZE = 1000


def utcnow_naive():
    """
    Return current UTC time as a naive datetime (tzinfo=None).
    Avoids deprecated datetime.utcnow() while keeping existing schema semantics.
    """
    return datetime.now(UTC).replace(tzinfo=None)


def to_utc(value: Union[datetime, str, None]) -> Optional[datetime]:
    """
    Parse a datetime or ISO string into an aware UTC datetime.
    Naive values are taken to already be UTC (that is how SQLite stores them).
    """
    if value is None:
        return None
    if isinstance(value, str):
        value = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def to_naive_utc(value: Union[datetime, str, None]) -> Optional[datetime]:
    """Normalize a datetime or ISO string to the naive UTC form stored in SQLite."""
    value = to_utc(value)
    return value.replace(tzinfo=None) if value else None


def iter_pages(build_query: Callable[[], Any], page_size: int = PAGE_SIZE) -> Iterator[Dict[str, Any]]:
    """
    Yield every row of a query, requesting page_size rows at a time with .range().

    build_query must return a fresh, fully ordered query on each call. Supabase
    caps a single response at max-rows, so unpaged selects silently drop rows.
    """
    start = 0
    while True:
        rows = build_query().range(start, start + page_size - 1).execute().data or []
        yield from rows
        if len(rows) < page_size:
            return
        start += page_size


# SQLAlchemy models for SQLite
class User(Base):
    __tablename__ = "users"

    id = Column(UUID(as_uuid=False), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = Column(String, nullable=False)
    email = Column(String, unique=True, nullable=False)
    password_hash = Column(String, nullable=False)
    created_at = Column(DateTime, default=utcnow_naive)
    updated_at = Column(DateTime, default=utcnow_naive, onupdate=utcnow_naive)


class Activity(Base):
    __tablename__ = "activities"

    id = Column(UUID(as_uuid=False), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String, nullable=False)
    type = Column(String, nullable=False)  # 'login' | 'view' | 'search' | 'message_read' | 'notification_click' | 'other'
    detail = Column(Text)
    timestamp = Column(DateTime, default=utcnow_naive)


class Message(Base):
    __tablename__ = "messages"

    id = Column(UUID(as_uuid=False), primary_key=True, default=lambda: str(uuid.uuid4()))
    sender_id = Column(String, nullable=False)
    recipient_id = Column(String, nullable=False)
    subject = Column(String, nullable=False)
    body = Column(Text, nullable=False)
    is_read = Column(Boolean, default=False)
    created_at = Column(DateTime, default=utcnow_naive)


class Content(Base):
    __tablename__ = "contents"

    id = Column(UUID(as_uuid=False), primary_key=True, default=lambda: str(uuid.uuid4()))
    title = Column(String, nullable=False)
    type = Column(String, nullable=False)  # 'article' | 'tutorial' | 'event' | 'notification' | 'news'
    description = Column(Text)
    body = Column(Text)
    author_id = Column(String)
    tags = Column(JSON, default=list)
    is_live = Column(Boolean, default=False)
    start_time = Column(DateTime)
    end_time = Column(DateTime)
    created_at = Column(DateTime, default=utcnow_naive)
    updated_at = Column(DateTime, default=utcnow_naive, onupdate=utcnow_naive)


class Search(Base):
    __tablename__ = "searches"

    id = Column(UUID(as_uuid=False), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String, nullable=False)
    query = Column(String, nullable=False)
    timestamp = Column(DateTime, default=utcnow_naive)
    result_count = Column(Integer, default=0)


class DatabaseAdapter:
    """
    Database adapter that works with both Supabase and SQLite

    Usage:
        # Automatically uses SQLite if DATABASE_URL is set (tests)
        # Otherwise uses Supabase (production)

        db = DatabaseAdapter(settings)
        db.init()

        # Same API for both backends
        result = db.table("messages").select("*").eq("recipient_id", "123").execute()
    """

    def __init__(self, settings=None):
        from config import get_settings
        self.settings = settings or get_settings()
        self.engine = None
        self.Session = None
        self.supabase = None
        self._initialized = False

        # Determine which backend to use
        if self.settings.DATABASE_URL:
            self.backend = "sqlite"
            # Remove aiosqlite:// prefix for synchronous engine
            db_url = self.settings.DATABASE_URL.replace("sqlite+aiosqlite://", "sqlite://")
            self.engine = create_engine(db_url, echo=False)
            self.Session = sessionmaker(bind=self.engine)
        elif self.settings.SUPABASE_URL:
            self.backend = "supabase"
            from supabase import create_client
            self.supabase = create_client(
                self.settings.SUPABASE_URL,
                self.settings.SUPABASE_KEY
            )
        else:
            raise ValueError("Must provide either DATABASE_URL or SUPABASE_URL")

    def init(self):
        """Initialize database (create tables for SQLite)"""
        if self.backend == "sqlite" and not self._initialized:
            Base.metadata.create_all(self.engine)
            self._initialized = True

    def cleanup(self):
        """Clean up database (for testing)"""
        if self.backend == "sqlite":
            Base.metadata.drop_all(self.engine)
            Base.metadata.create_all(self.engine)

    def table(self, table_name: str):
        """Get table interface (compatible with Supabase API)"""
        if self.backend == "sqlite":
            return SQLiteTable(table_name, self.Session)
        else:
            return self.supabase.table(table_name)


class SQLiteTable:
    """
    SQLite table interface that mimics Supabase table API

    Provides a similar interface to Supabase for compatibility.
    """

    # Map table names to SQLAlchemy models
    MODELS = {
        "users": User,
        "activities": Activity,
        "messages": Message,
        "contents": Content,
        "searches": Search,
    }

    def __init__(self, table_name: str, Session):
        self.table_name = table_name
        self.Session = Session
        self.model = self.MODELS.get(table_name)
        self._select_cols = "*"
        self._count = None
        self._filters = []
        self._insert_data = None
        self._update_data = None
        self._delete = False
        self._limit_val = None
        self._offset = 0
        self._orders = []

        if not self.model:
            raise ValueError(f"Unknown table: {table_name}")

    def select(self, columns: str = "*", count: Optional[str] = None):
        """Select columns; count="exact" also reports the total matching rows"""
        self._select_cols = columns
        self._count = count
        return self

    def insert(self, data: Union[Dict, List[Dict]]):
        """Insert data"""
        self._insert_data = data if isinstance(data, list) else [data]
        return self

    def update(self, data: Dict):
        """Update data"""
        self._update_data = data
        return self

    def eq(self, column: str, value: Any):
        """Filter by equality"""
        self._filters.append((column, "==", value))
        return self

    def neq(self, column: str, value: Any):
        """Filter by inequality"""
        self._filters.append((column, "!=", value))
        return self

    def in_(self, column: str, values: List[Any]):
        """Filter by inclusion set"""
        self._filters.append((column, "in", values))
        return self

    def limit(self, count: int):
        """Limit results"""
        self._limit_val = count
        return self

    def range(self, start: int, end: int):
        """Rows start..end inclusive, like Supabase's range()"""
        self._offset = start
        self._limit_val = end - start + 1
        return self

    def order(self, column: str, desc: bool = False):
        """Order results; repeated calls add tie-breakers"""
        self._orders.append((column, desc))
        return self

    def delete(self):
        """Delete matching records"""
        self._delete = True
        return self

    def execute(self):
        """Execute the query"""
        session = self.Session()

        try:
            # Handle INSERT
            if self._insert_data:
                objects = []
                for item in self._insert_data:
                    obj = self.model(**self._prepare_data(item))
                    session.add(obj)
                    objects.append(obj)
                session.commit()

                # Refresh to get generated values
                for obj in objects:
                    session.refresh(obj)

                data = [self._model_to_dict(obj) for obj in objects]
                return type('Result', (), {'data': data, 'count': len(data)})()

            # Handle UPDATE
            elif self._update_data:
                query = self._apply_filters(session.query(self.model))
                objects = query.all()

                prepared_update = self._prepare_data(self._update_data)
                for obj in objects:
                    for key, value in prepared_update.items():
                        setattr(obj, key, value)

                session.commit()

                for obj in objects:
                    session.refresh(obj)

                data = [self._model_to_dict(obj) for obj in objects]
                return type('Result', (), {'data': data, 'count': len(data)})()

            # Handle DELETE
            elif self._delete:
                query = self._apply_filters(session.query(self.model))
                count = query.delete()
                session.commit()
                return type('Result', (), {'data': [], 'count': count})()

            # Handle SELECT
            else:
                query = self._apply_filters(session.query(self.model))

                # Total is taken before ordering/limiting, like Supabase's exact count
                total = query.count() if self._count else None

                for column, desc in self._orders:
                    col = getattr(self.model, column)
                    query = query.order_by(col.desc() if desc else col)

                if self._offset:
                    query = query.offset(self._offset)

                if self._limit_val:
                    query = query.limit(self._limit_val)

                data = [self._select_columns(self._model_to_dict(obj)) for obj in query.all()]
                return type('Result', (), {'data': data, 'count': total if total is not None else len(data)})()

        finally:
            session.close()

    def _apply_filters(self, query):
        """Apply filters to query"""
        for column, op, value in self._filters:
            col = getattr(self.model, column)
            if isinstance(col.type, DateTime):
                value = to_naive_utc(value)
            if op == "==":
                query = query.filter(col == value)
            elif op == "!=":
                query = query.filter(col != value)
            elif op == "in":
                query = query.filter(col.in_(value))
        return query

    def _select_columns(self, row: Dict[str, Any]) -> Dict[str, Any]:
        """Trim a row to the selected columns"""
        if self._select_cols.strip() == "*":
            return row
        wanted = [c.strip() for c in self._select_cols.split(",") if c.strip()]
        return {key: row.get(key) for key in wanted}

    def _model_to_dict(self, obj):
        """Convert SQLAlchemy model to dict"""
        result = {}
        for column in obj.__table__.columns:
            value = getattr(obj, column.name)
            # Convert datetime to ISO string
            if isinstance(value, datetime):
                value = value.isoformat()
            result[column.name] = value
        return result

    def _prepare_data(self, item: Dict[str, Any]) -> Dict[str, Any]:
        """Filter incoming data to model columns and normalize timestamps."""
        prepared: Dict[str, Any] = {}
        columns = {col.name: col for col in self.model.__table__.columns}

        # Only keep keys that exist on the model
        for key, value in item.items():
            if key not in columns:
                continue
            if isinstance(columns[key].type, DateTime):
                value = to_naive_utc(value)
            prepared[key] = value

        return prepared
