# StaffDesk - Database Setup
# SQLAlchemy engine, session factory, and FastAPI dependencies

import logging
from typing import Generator, Optional
from contextlib import contextmanager

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import QueuePool, StaticPool

from staffdesk.config import get_settings
from staffdesk.models.base import Base


logger = logging.getLogger(__name__)

settings = get_settings()


def _configure_sqlite(engine: Engine) -> None:
    """
    Make pysqlite behave transactionally.

    The driver's own BEGIN handling breaks SAVEPOINT nesting, so we turn it
    off and emit BEGIN ourselves. Foreign keys are off by default in SQLite.
    """
    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN")


def _configure_sql_server(engine: Engine) -> None:
    """Set connection-level options for SQL Server."""
    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        # Set date format for consistency
        cursor.execute("SET DATEFORMAT ymd")
        cursor.close()


def build_engine(url: str, echo: bool = False) -> Engine:
    """
    Create an engine for the given URL.

    SQLite (dev/tests) gets a static pool for in-memory databases; server
    databases get the configured connection pool.
    """
    backend = make_url(url).get_backend_name()

    if backend == "sqlite":
        kwargs = {"connect_args": {"check_same_thread": False}}
        if make_url(url).database in (None, "", ":memory:"):
            kwargs["poolclass"] = StaticPool
        engine = create_engine(url, echo=echo, **kwargs)
        _configure_sqlite(engine)
        return engine

    engine = create_engine(
        url,
        poolclass=QueuePool,
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
        pool_timeout=settings.db_pool_timeout,
        pool_recycle=settings.db_pool_recycle,
        pool_pre_ping=True,  # Verify connections before using
        echo=echo,
    )
    if backend == "mssql":
        _configure_sql_server(engine)
    return engine


engine = build_engine(settings.database_url, echo=settings.debug)


# Session factory
SessionLocal = sessionmaker(
    bind=engine,
    autocommit=False,
    autoflush=False,
    expire_on_commit=False,  # Prevent lazy-load issues after commit
)


def get_db() -> Generator[Session, None, None]:
    """
    FastAPI dependency that provides a database session.

    Routes commit explicitly after a successful service call. Anything
    left uncommitted (including the work of a call that raised) is rolled
    back when the request completes.
    """
    db = SessionLocal()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


@contextmanager
def get_db_context() -> Generator[Session, None, None]:
    """
    Context manager for database sessions outside of FastAPI requests.

    Usage in scripts, CLI commands, or background tasks:

        with get_db_context() as db:
            types = RequestTypeRegistry(db).list_active()
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db(bind: Optional[Engine] = None) -> None:
    """
    Initialize the database schema.

    WARNING: This is for development/testing only.
    In production, use Alembic migrations.
    """
    Base.metadata.create_all(bind=bind or engine)


def drop_db(bind: Optional[Engine] = None) -> None:
    """
    Drop all tables.

    WARNING: Destroys all data. Only for development/testing.
    """
    Base.metadata.drop_all(bind=bind or engine)


def check_connection() -> bool:
    """
    Test the database connection.

    Returns True if connection succeeds, raises exception otherwise.
    """
    with engine.connect() as conn:
        conn.execute(text("SELECT 1"))
    return True
