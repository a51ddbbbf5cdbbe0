"""
Database Package Initialization.

============================================================
CCPI RUN HISTORY
============================================================

SQLAlchemy persistence for completed CCPI runs. SQLite by
default (CCPI_DATABASE_URL overrides). All transactions are
explicit with commit/rollback.

============================================================
"""

# Core engine and session management
from .engine import (
    # Declarative base
    Base,

    # Engine creation
    create_database_engine,
    configure_database,
    get_database_url,
    get_engine,

    # Session management
    get_session,
    get_session_factory,
    transaction_scope,

    # Database initialization
    initialize_database,
    verify_database_connection,
    create_all_tables,

    # Exceptions
    DatabasePersistenceError,
    DatabaseConnectionError,
    DatabaseInitializationError,
    PersistenceValidationError,
)

# ORM Models
from .models import CCPIRunRecord

# Persistence functions
from .persistence import (
    persist_snapshot,
    get_history,
    get_latest,
    MAX_HISTORY_LIMIT,
)


__all__ = [
    # Engine
    "Base",
    "create_database_engine",
    "configure_database",
    "get_database_url",
    "get_engine",
    "get_session",
    "get_session_factory",
    "transaction_scope",
    "initialize_database",
    "verify_database_connection",
    "create_all_tables",

    # Models
    "CCPIRunRecord",

    # Persistence
    "persist_snapshot",
    "get_history",
    "get_latest",
    "MAX_HISTORY_LIMIT",

    # Exceptions
    "DatabasePersistenceError",
    "DatabaseConnectionError",
    "DatabaseInitializationError",
    "PersistenceValidationError",
]
