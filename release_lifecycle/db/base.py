"""Database configuration and base setup for Release Lifecycle."""

import os
from contextlib import contextmanager
from typing import Iterator, Optional

import structlog
from sqlalchemy import Engine, create_engine, event
from sqlalchemy.engine.url import URL, make_url
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker
from sqlalchemy.pool import StaticPool

from ..config import get_settings

logger = structlog.get_logger(__name__)


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


# Default to a local SQLite database when DATABASE_URL is not provided.
DEFAULT_DATABASE_URL = "sqlite:///./release_lifecycle.db"


def _ensure_sync_driver(url: URL) -> URL:
    """Force a synchronous driver for the ORM engine."""

    if url.drivername.startswith("postgresql+"):
        # Normalize any async driver variants to psycopg (sync)
        if any(token in url.drivername for token in ("async", "aiopg")):
            url = url.set(drivername="postgresql+psycopg")
    elif url.drivername.startswith("sqlite+"):
        if "aiosqlite" in url.drivername:
            url = url.set(drivername="sqlite")

    return url


def get_database_url(raw_url: Optional[str] = None) -> str:
    """Return a database URL with a guaranteed synchronous driver."""

    url = make_url(
        raw_url
        or os.getenv("DATABASE_URL")
        or get_settings().database_url
        or DEFAULT_DATABASE_URL
    )
    # str(url) would mask the password with ***
    return _ensure_sync_driver(url).render_as_string(hide_password=False)


_engine: Optional[Engine] = None


def _serialize_sqlite_transactions(engine: Engine) -> None:
    """Open every SQLite transaction with ``BEGIN IMMEDIATE``.

    pysqlite defers ``BEGIN`` until the first write, so reads that guard a
    write would otherwise run outside the transaction. ``BEGIN IMMEDIATE``
    takes the write lock up front; a concurrent writer waits for the commit
    and then reads the committed state. SQLite has no ``FOR UPDATE``, so this
    is what serializes transitions on that backend.
    """

    @event.listens_for(engine, "connect")
    def _disable_driver_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def create_database_engine(database_url: str) -> Engine:
    """Build an engine with the pool settings appropriate for the backend."""
    url = make_url(database_url)
    if url.get_backend_name() == "sqlite":
        # SQLite configuration for development/testing
        options = {"connect_args": {"check_same_thread": False}}
        if url.database in (None, "", ":memory:"):
            # One shared connection, otherwise each checkout sees an empty database
            options["poolclass"] = StaticPool
        engine = create_engine(database_url, **options)
        _serialize_sqlite_transactions(engine)
        return engine

    # PostgreSQL configuration for production
    return create_engine(
        database_url,
        pool_size=20,
        max_overflow=30,
        pool_pre_ping=True,
        pool_recycle=3600,
    )


def get_engine() -> Engine:
    """
    Create and cache the database engine.

    Lazy so that DATABASE_URL is read at first use rather than at import time.
    """
    global _engine
    if _engine is not None:
        return _engine

    _engine = create_database_engine(get_database_url())
    return _engine


def reset_engine() -> None:
    """Dispose of the cached engine so the next call re-reads DATABASE_URL."""
    global _engine
    if _engine is not None:
        _engine.dispose()
    _engine = None


def get_session_local() -> sessionmaker:
    """Get a sessionmaker bound to the current engine."""
    return sessionmaker(autocommit=False, autoflush=False, bind=get_engine())


@contextmanager
def session_scope() -> Iterator[Session]:
    """Open a session for the duration of a block and always close it."""
    session_local = get_session_local()
    db = session_local()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def transaction(db: Session) -> Iterator[Session]:
    """Run a unit of work: commit on success, roll back and re-raise otherwise.

    Nothing written inside the block survives an exception, so callers get
    all-or-nothing semantics for multi-row changes.
    """
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise


def init_database() -> None:
    """Initialize the database with all tables."""
    # Import all models to ensure they're registered with Base
    from . import action_log_models, models  # noqa: F401

    Base.metadata.create_all(bind=get_engine())
    logger.info("database_initialized")


def drop_database() -> None:
    """Drop all database tables. Use with caution!"""
    from . import action_log_models, models  # noqa: F401

    Base.metadata.drop_all(bind=get_engine())
    logger.info("database_dropped")
