"""
Database Package Initialization.

============================================================
RECORD STORE PERSISTENCE LAYER
============================================================

Engine creation, scoped session handles and the read-only
record store used by the maintenance strategies.

- No process-wide engine: callers create and dispose
- One StoreSession per benchmark run
- Storage failures surface as StoreUnavailable/ComputeError

============================================================
"""

# Core engine and session management
from .engine import (
    Base,
    DEFAULT_DATABASE_URL,
    get_database_url,
    describe_url,
    create_store_engine,
    translate_store_errors,
    StoreSession,
    session_scope,
    verify_database_connection,
    create_all_tables,
    initialize_database,
    pool_status,
)

# ORM model
from .models import RECORD_TABLE, StudentHealthRecord

# Repository
from .record_store import Record, RecordStore


__all__ = [
    # Engine
    "Base",
    "DEFAULT_DATABASE_URL",
    "get_database_url",
    "describe_url",
    "create_store_engine",
    "translate_store_errors",
    "StoreSession",
    "session_scope",
    "verify_database_connection",
    "create_all_tables",
    "initialize_database",
    "pool_status",
    # Models
    "RECORD_TABLE",
    "StudentHealthRecord",
    # Repository
    "Record",
    "RecordStore",
]
