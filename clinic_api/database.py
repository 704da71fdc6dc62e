"""
Database connection and session management.
Provides SQLAlchemy engine, session, and base class for models.
"""
from datetime import datetime, timezone

from sqlalchemy import DateTime, create_engine, text
from sqlalchemy.orm import sessionmaker, declarative_base
from sqlalchemy.types import TypeDecorator
from .config import settings


def build_engine(database_url: str):
    # SQLite connections are shared across the threadpool used by sync routes
    if database_url.startswith("sqlite"):
        return create_engine(database_url, connect_args={"check_same_thread": False})
    return create_engine(database_url, pool_pre_ping=True)


def build_session_factory(bind):
    return sessionmaker(bind=bind, autoflush=False, autocommit=False)


# Create SQLAlchemy engine for database connection
engine = build_engine(settings.database_url)

# Create session factory for database sessions
SessionLocal = build_session_factory(engine)

# Create base class for declarative models
Base = declarative_base()


class UTCDateTime(TypeDecorator):
    """
    Timezone-aware UTC timestamp column.

    PostgreSQL keeps the offset natively; SQLite stores naive values, so
    they are written as naive UTC and re-tagged with UTC when loaded.
    """
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        value = value.astimezone(timezone.utc)
        if dialect.name == "sqlite":
            return value.replace(tzinfo=None)
        return value

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def get_db():
    """
    Database dependency - Creates and yields a database session.

    The session is automatically closed after the request is processed,
    even if an exception occurs during request handling.

    Yields:
        SQLAlchemy Session: Database session
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def session_dependency(session_factory):
    """Same as get_db, bound to another session factory."""
    def get_session():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()
    return get_session


def check_database(db) -> bool:
    """Round-trip a trivial statement to confirm the store is reachable."""
    db.execute(text("SELECT 1"))
    return True
