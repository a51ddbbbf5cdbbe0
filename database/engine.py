"""
Database Persistence Layer - Core Engine.

============================================================
RUN HISTORY PERSISTENCE
============================================================

Stores one row per CCPI run for the history view.

Requirements:
- SQLAlchemy ORM (SQLite by default, any SQLAlchemy URL works)
- Explicit transaction management
- Structured logging with row counts
- Hard failures on persistence errors (callers decide what to do)

============================================================
"""

import os
import logging
from typing import Optional, Generator
from contextlib import contextmanager

from sqlalchemy import create_engine, text, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session, DeclarativeBase
from sqlalchemy.exc import SQLAlchemyError, OperationalError
from sqlalchemy.pool import StaticPool

from dotenv import load_dotenv

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)

DEFAULT_DATABASE_URL = "sqlite:///ccpi_history.db"

# =============================================================
# DECLARATIVE BASE
# =============================================================


class Base(DeclarativeBase):
    pass


# =============================================================
# DATABASE ENGINE
# =============================================================

_engine: Optional[Engine] = None
_SessionFactory: Optional[sessionmaker] = None


def get_database_url() -> str:
    """Get database URL from environment."""
    url = os.getenv("CCPI_DATABASE_URL") or os.getenv("DATABASE_URL")
    if not url:
        url = DEFAULT_DATABASE_URL
        logger.info(f"CCPI_DATABASE_URL not set, using default: {url}")
    return url


def create_database_engine(
    database_url: Optional[str] = None,
    echo: bool = False,
) -> Engine:
    """
    Create (or return) the SQLAlchemy engine.

    Args:
        database_url: Overrides the environment URL
        echo: Log SQL statements

    Returns:
        SQLAlchemy Engine
    """
    global _engine

    if _engine is not None and database_url is None:
        return _engine

    url = database_url or get_database_url()
    logger.info(f"Creating database engine for: {url.split('@')[-1]}")

    kwargs = {"echo": echo, "future": True}
    if url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
        if url in ("sqlite://", "sqlite:///:memory:"):
            # One shared connection, or every session sees an empty database
            kwargs["poolclass"] = StaticPool
    else:
        kwargs.update(pool_size=5, max_overflow=10, pool_recycle=1800)

    engine = create_engine(url, **kwargs)

    @event.listens_for(engine, "connect")
    def on_connect(dbapi_conn, connection_record):
        logger.debug("Database connection established")

    _engine = engine
    return _engine


def get_engine() -> Engine:
    """Get the database engine, creating if necessary."""
    global _engine
    if _engine is None:
        _engine = create_database_engine()
    return _engine


def get_session_factory() -> sessionmaker:
    """Get session factory, creating if necessary."""
    global _SessionFactory

    if _SessionFactory is None:
        _SessionFactory = sessionmaker(
            bind=get_engine(),
            autocommit=False,
            autoflush=False,
            expire_on_commit=False,
        )

    return _SessionFactory


def configure_database(database_url: str) -> Engine:
    """Point the module at a specific database (tests, CLI flag)."""
    global _engine, _SessionFactory
    if _engine is not None:
        _engine.dispose()
    _engine = None
    _SessionFactory = None
    return create_database_engine(database_url)


# =============================================================
# SESSION MANAGEMENT
# =============================================================


def get_session() -> Session:
    """
    Get a new database session.

    IMPORTANT: Caller is responsible for committing/closing.
    Prefer using transaction_scope() instead.
    """
    factory = get_session_factory()
    return factory()


@contextmanager
def transaction_scope() -> Generator[Session, None, None]:
    """
    Context manager for explicit transaction boundaries.

    Commits only if no exception occurs.
    Rolls back on ANY exception.

    Usage:
        with transaction_scope() as session:
            persist_run(session, snapshot)
            # Commits automatically at end
    """
    session = get_session()
    try:
        yield session
        session.commit()
        logger.debug("Database transaction committed successfully")
    except SQLAlchemyError as e:
        logger.error(f"Database transaction failed, rolling back: {e}")
        session.rollback()
        raise DatabasePersistenceError(f"Transaction failed: {e}") from e
    except Exception as e:
        logger.error(f"Transaction failed with unexpected error: {e}")
        session.rollback()
        raise DatabasePersistenceError(f"Transaction failed: {e}") from e
    finally:
        session.close()


# =============================================================
# DATABASE INITIALIZATION
# =============================================================


def verify_database_connection() -> bool:
    """
    Verify database connection is working.

    Raises:
        DatabaseConnectionError if connection fails
    """
    engine = get_engine()

    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1")).fetchone()
            logger.info("Database connection verified successfully")
            return True
    except OperationalError as e:
        logger.error(f"Database connection failed: {e}")
        raise DatabaseConnectionError(f"Cannot connect to database: {e}") from e


def create_all_tables() -> None:
    """
    Create all tables defined in ORM models.

    Raises:
        DatabaseInitializationError if table creation fails
    """
    from . import models  # noqa: F401

    engine = get_engine()

    try:
        Base.metadata.create_all(bind=engine)
        logger.info("Database tables created successfully")
    except SQLAlchemyError as e:
        logger.error(f"Failed to create database tables: {e}")
        raise DatabaseInitializationError(f"Table creation failed: {e}") from e


def initialize_database() -> None:
    """
    Full database initialization sequence.

    1. Verify connection
    2. Create tables if not exist
    """
    try:
        verify_database_connection()
        create_all_tables()
    except Exception as e:
        logger.critical(f"DATABASE INITIALIZATION FAILED: {e}")
        raise


# =============================================================
# CUSTOM EXCEPTIONS
# =============================================================


class DatabasePersistenceError(Exception):
    """Raised when database persistence fails."""
    pass


class DatabaseConnectionError(DatabasePersistenceError):
    """Raised when database connection fails."""
    pass


class DatabaseInitializationError(DatabasePersistenceError):
    """Raised when database initialization fails."""
    pass


class PersistenceValidationError(DatabasePersistenceError):
    """Raised when data validation fails before persistence."""
    pass


# =============================================================
# EXPORTS
# =============================================================

__all__ = [
    # Base
    "Base",
    # Engine & Session
    "create_database_engine",
    "configure_database",
    "get_database_url",
    "get_engine",
    "get_session",
    "get_session_factory",
    "transaction_scope",
    # Initialization
    "initialize_database",
    "verify_database_connection",
    "create_all_tables",
    # Exceptions
    "DatabasePersistenceError",
    "DatabaseConnectionError",
    "DatabaseInitializationError",
    "PersistenceValidationError",
]
