import os

from sqlalchemy import create_engine, event
from sqlalchemy.engine import make_url
from sqlalchemy.orm import declarative_base
from kenz_waitlist.core.config import settings


def build_engine(database_url: str):
    url = make_url(database_url)
    if url.get_backend_name() != "sqlite":
        # Postgres or others
        return create_engine(database_url, pool_pre_ping=True)

    # SQLite file databases need their directory to exist before first connect
    if url.database and url.database != ":memory:":
        os.makedirs(os.path.dirname(os.path.abspath(url.database)), exist_ok=True)

    sqlite_engine = create_engine(
        database_url,
        connect_args={"check_same_thread": False}  # Allow SQLite to work with FastAPI
    )

    # Apply PRAGMAs per connection
    @event.listens_for(sqlite_engine, "connect")
    def set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        # Better concurrency for simultaneous signups
        cursor.execute("PRAGMA journal_mode=WAL;")
        cursor.execute("PRAGMA synchronous=NORMAL;")
        cursor.execute("PRAGMA busy_timeout=5000;")
        cursor.close()

    return sqlite_engine


Base = declarative_base()

_engine = None


def get_engine():
    """Engine for DATABASE_URL, created on first use."""
    global _engine
    if _engine is None:
        _engine = build_engine(settings.DATABASE_URL)
    return _engine
