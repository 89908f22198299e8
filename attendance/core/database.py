"""Database configuration and session management.

This module configures the database engine used for attendance records and
the read-only event table. SQLite is the default backend; PostgreSQL URLs
are passed through unchanged.

SQLite Configuration Choices:
    - **WAL (Write-Ahead Logging)**: Allows concurrent readers while one
      request holds the write lock for a registration or cancellation.
      Without WAL, a registration in progress would block every stats or
      lookup request against the same file.

    - **Foreign Keys**: Disabled by default in SQLite. Enabled so an
      attendance record can never point at a missing event.

    - **check_same_thread=False**: FastAPI's dependency injection may hand a
      session to a different worker thread than the one that opened it.

    - **timeout**: How long a writer waits on another writer's lock before
      the driver reports "database is locked". The registry treats that
      error as contention and retries.
"""

from sqlalchemy import event as sa_event
from sqlalchemy.engine import Engine
from sqlmodel import Session, SQLModel, create_engine

from attendance.core.config import settings


def is_sqlite(url: str) -> bool:
    return url.startswith("sqlite")


def build_engine(url: str, echo: bool = False, **kwargs) -> Engine:
    """Create an engine, applying the SQLite pragmas when needed."""
    if is_sqlite(url):
        connect_args = kwargs.pop("connect_args", {})
        connect_args.setdefault("check_same_thread", False)
        connect_args.setdefault("timeout", 15)
        kwargs["connect_args"] = connect_args

    new_engine = create_engine(url, echo=echo, **kwargs)

    if is_sqlite(url):
        sa_event.listen(new_engine, "connect", set_sqlite_pragma)

    return new_engine


def set_sqlite_pragma(dbapi_connection, connection_record):
    """Configure SQLite pragmas on each new connection.

    These settings are connection-level, not database-level, so they must
    be set each time a new connection is established from the pool.
    """
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


engine = build_engine(
    settings.database_url,
    echo=settings.debug,  # Log SQL statements when DEBUG=true
)


def create_db_and_tables(bind: Engine | None = None):
    """Create all database tables."""
    # Imported for its side effect of registering every table on the metadata
    import attendance.models  # noqa: F401

    SQLModel.metadata.create_all(bind or engine)


def get_session():
    """Dependency for getting database session."""
    with Session(engine) as session:
        yield session
