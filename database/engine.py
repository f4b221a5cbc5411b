"""
Database Persistence Layer - Engine and Session Handles.

============================================================
PURPOSE
============================================================
Creates SQLAlchemy engines and hands out explicit,
scoped session handles to strategies and the harness.

- No process-wide engine or pool: callers own their engine
- One StoreSession per benchmark run, released on exit
- SQLAlchemy errors translated into the lab's taxonomy

============================================================
ERROR TRANSLATION
============================================================
OperationalError / InterfaceError / DisconnectionError /
pool TimeoutError            -> StoreUnavailable
any other SQLAlchemyError    -> ComputeError
ArithmeticError              -> ComputeError

============================================================
"""

import os
import logging
import threading
from typing import Any, Dict, Generator, Iterator, Mapping, Optional
from contextlib import contextmanager

from sqlalchemy import create_engine, text, event
from sqlalchemy.engine import Connection, Engine, Result
from sqlalchemy.exc import (
    DisconnectionError,
    InterfaceError,
    OperationalError,
    SQLAlchemyError,
    TimeoutError as PoolTimeoutError,
)
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import QueuePool

from dotenv import load_dotenv

from core.exceptions import ComputeError, StoreUnavailable

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)

# =============================================================
# DECLARATIVE BASE
# =============================================================

Base = declarative_base()

DEFAULT_DATABASE_URL = "sqlite:///metric_drift_lab.db"


# =============================================================
# DATABASE ENGINE
# =============================================================


def get_database_url() -> str:
    """Get database URL from environment."""
    url = os.getenv("DATABASE_URL")
    if url and url.startswith("postgresql+asyncpg"):
        # Strategies run on sync connections
        url = url.replace("postgresql+asyncpg", "postgresql")

    if not url:
        url = DEFAULT_DATABASE_URL
        logger.warning(f"DATABASE_URL not set, using default: {url}")

    return url


def describe_url(url: str) -> str:
    """Strip credentials from a database URL for logging."""
    return url.split("@")[-1]


def create_store_engine(
    database_url: Optional[str] = None,
    pool_size: int = 10,
    max_overflow: int = 20,
    pool_timeout: int = 30,
    pool_recycle: int = 1800,
    echo: bool = False,
) -> Engine:
    """
    Create a SQLAlchemy engine with connection pooling.

    Every call creates a new engine; the caller owns it and
    must dispose() it.

    Args:
        database_url: Target URL (defaults to DATABASE_URL env)
        pool_size: Number of connections to keep in pool
        max_overflow: Max connections beyond pool_size
        pool_timeout: Seconds to wait for available connection
        pool_recycle: Recycle connections after N seconds
        echo: Log SQL statements

    Returns:
        SQLAlchemy Engine
    """
    url = database_url or get_database_url()

    logger.info(f"Creating store engine for: {describe_url(url)}")

    if url.startswith("sqlite"):
        # SQLite picks its own pool; threads share the file, not connections
        engine = create_engine(
            url,
            echo=echo,
            connect_args={"check_same_thread": False},
        )
    else:
        engine = create_engine(
            url,
            poolclass=QueuePool,
            pool_size=pool_size,
            max_overflow=max_overflow,
            pool_timeout=pool_timeout,
            pool_recycle=pool_recycle,
            echo=echo,
        )

    @event.listens_for(engine, "connect")
    def on_connect(dbapi_conn, connection_record):
        logger.debug("Store connection established")

    @event.listens_for(engine, "checkout")
    def on_checkout(dbapi_conn, connection_record, connection_proxy):
        logger.debug("Store connection checked out from pool")

    return engine


# =============================================================
# ERROR TRANSLATION
# =============================================================


@contextmanager
def translate_store_errors(operation: str) -> Iterator[None]:
    """
    Re-raise storage failures as lab exceptions.

    Usage:
        with translate_store_errors("read_top_k"):
            session.execute(stmt)
    """
    try:
        yield
    except (OperationalError, InterfaceError, DisconnectionError, PoolTimeoutError) as e:
        logger.error(f"Store unavailable during {operation}: {e}")
        raise StoreUnavailable(
            f"Store unavailable during {operation}: {e}",
            context={"operation": operation},
            cause=e,
        ) from e
    except SQLAlchemyError as e:
        logger.error(f"Storage engine error during {operation}: {e}")
        raise ComputeError(
            f"Storage engine error during {operation}: {e}",
            operation=operation,
            cause=e,
        ) from e
    except ArithmeticError as e:
        logger.error(f"Arithmetic error during {operation}: {e}")
        raise ComputeError(
            f"Arithmetic error during {operation}: {e}",
            operation=operation,
            cause=e,
        ) from e


# =============================================================
# SESSION HANDLES
# =============================================================


class StoreSession:
    """
    Explicit session handle bound to one pooled connection.

    All statement execution is serialized on the handle's
    lock. A transaction() block holds the lock for its whole
    duration, so concurrent readers sharing the handle see
    either the pre- or the post-transaction state.
    """

    def __init__(self, connection: Connection, label: str = "store"):
        self._connection = connection
        self._lock = threading.RLock()
        self.label = label

    @property
    def dialect_name(self) -> str:
        return self._connection.dialect.name

    @property
    def closed(self) -> bool:
        return self._connection.closed

    def execute(
        self,
        statement: Any,
        params: Optional[Mapping[str, Any]] = None,
        operation: str = "execute",
    ) -> Result:
        """
        Execute a statement in autocommit style.

        Outside a transaction() block the statement is
        committed immediately.
        """
        if isinstance(statement, str):
            statement = text(statement)
        with self._lock, translate_store_errors(operation):
            if self._connection.in_transaction():
                return self._connection.execute(statement, params or {})
            with self._connection.begin():
                result = self._connection.execute(statement, params or {})
                # Materialize rows before the transaction ends
                if result.returns_rows:
                    return _BufferedResult(result.mappings().all(), result.rowcount)
                return result

    @contextmanager
    def transaction(self, operation: str = "transaction") -> Generator["StoreSession", None, None]:
        """
        Run a block of statements atomically.

        Commits only if no exception occurs; rolls back on ANY
        exception.
        """
        with self._lock, translate_store_errors(operation):
            with self._connection.begin():
                yield self

    def close(self) -> None:
        with self._lock:
            if not self._connection.closed:
                self._connection.close()
                logger.debug(f"Store session '{self.label}' released")


class _BufferedResult:
    """Rows fetched eagerly from a committed statement."""

    def __init__(self, rows, rowcount: int):
        self._rows = rows
        self.rowcount = rowcount

    def mappings(self) -> "_BufferedResult":
        return self

    def all(self):
        return list(self._rows)

    def first(self):
        return self._rows[0] if self._rows else None

    def scalar(self):
        if not self._rows:
            return None
        return next(iter(self._rows[0].values()))


@contextmanager
def session_scope(engine: Engine, label: str = "store") -> Generator[StoreSession, None, None]:
    """
    Acquire a StoreSession for the duration of a block.

    Usage:
        with session_scope(engine, label="snapshot-run") as session:
            strategy = create_strategy(kind, session)
            ...

    The underlying connection always returns to the pool,
    whichever exit path is taken.
    """
    with translate_store_errors("connect"):
        connection = engine.connect()
    session = StoreSession(connection, label=label)
    try:
        yield session
    finally:
        session.close()


# =============================================================
# DATABASE INITIALIZATION
# =============================================================


def verify_database_connection(engine: Engine) -> bool:
    """
    Verify database connection is working.

    Raises:
        StoreUnavailable if connection fails
    """
    with translate_store_errors("verify_connection"):
        with engine.connect() as conn:
            conn.execute(text("SELECT 1")).fetchone()
    logger.info("Store connection verified successfully")
    return True


def create_all_tables(engine: Engine) -> None:
    """
    Create all tables defined in ORM models.

    Raises:
        StoreUnavailable / ComputeError if table creation fails
    """
    from . import models  # noqa: F401

    logger.info("Creating store tables...")
    with translate_store_errors("create_all_tables"):
        Base.metadata.create_all(bind=engine)
    logger.info("Store tables created successfully")


def initialize_database(engine: Engine) -> None:
    """
    Full store initialization sequence.

    1. Verify connection
    2. Create tables if not exist
    """
    logger.info("=" * 60)
    logger.info("INITIALIZING RECORD STORE")
    logger.info("=" * 60)

    try:
        verify_database_connection(engine)
        create_all_tables(engine)
    except Exception as e:
        logger.critical(f"RECORD STORE INITIALIZATION FAILED: {e}")
        raise

    logger.info("RECORD STORE INITIALIZATION COMPLETE")


def pool_status(engine: Engine) -> Dict[str, Any]:
    """Describe the engine's pool for health output."""
    return {
        "url": describe_url(str(engine.url)),
        "pool": engine.pool.status(),
    }


__all__ = [
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
]
