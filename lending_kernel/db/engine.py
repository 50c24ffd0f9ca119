"""
Module: lending_kernel.db.engine
Responsibility: Owns the process-wide SQLAlchemy engine and the session
    factory the SQL repositories are built from.
Architecture position: Kernel > DB.  Imports db/base.py and, for table
    management only, models/.  Nothing above the DB layer is imported.

Backends:
    - PostgreSQL: pooled connections (QueuePool, pre-ping) at READ COMMITTED.
      Stock refresh takes a row lock on the item (SELECT ... FOR UPDATE),
      which is what serializes concurrent loan writes against one item.
    - SQLite: one shared connection (StaticPool), foreign keys enforced.
      Meant for local runs and the test suite.

Failure modes:
    - RuntimeError from any accessor used before init_engine_from_url().
    - Pool timeout once pool_size + max_overflow connections are checked out.
"""

import atexit
from contextlib import contextmanager
from typing import Any, Generator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import QueuePool, StaticPool

from lending_kernel.logging_config import get_logger

logger = get_logger("db.engine")

_engine: Engine | None = None
_session_factory: sessionmaker[Session] | None = None

_NOT_READY = "Database engine is not initialized; call init_engine_from_url() first."


def _sqlite_engine(database_url: str, echo: bool) -> Engine:
    engine = create_engine(
        database_url,
        echo=echo,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    @event.listens_for(engine, "connect")
    def _foreign_keys_on(dbapi_connection: Any, _record: Any) -> None:
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    return engine


def _pooled_engine(database_url: str, echo: bool, **pool: Any) -> Engine:
    return create_engine(
        database_url,
        echo=echo,
        poolclass=QueuePool,
        isolation_level="READ COMMITTED",
        **pool,
    )


def init_engine_from_url(
    database_url: str,
    echo: bool = False,
    pool_size: int = 20,
    max_overflow: int = 10,
    pool_pre_ping: bool = True,
    pool_timeout: int = 30,
    pool_recycle: int = 1800,
) -> Engine:
    """
    Create the engine for ``database_url`` and bind a fresh session factory.

    Calling it again replaces the previous engine without disposing it;
    call reset_engine() first when that matters.  Pool settings only apply
    to server databases.
    """
    global _engine, _session_factory

    if database_url.startswith("sqlite"):
        engine = _sqlite_engine(database_url, echo)
    else:
        engine = _pooled_engine(
            database_url,
            echo,
            pool_size=pool_size,
            max_overflow=max_overflow,
            pool_pre_ping=pool_pre_ping,
            pool_timeout=pool_timeout,
            pool_recycle=pool_recycle,
        )

    _engine = engine
    _session_factory = sessionmaker(bind=engine, expire_on_commit=False)

    logger.info(
        "engine_initialized",
        extra={
            "dialect": engine.dialect.name,
            "pool_class": type(engine.pool).__name__,
            "echo": echo,
        },
    )
    return engine


def get_engine() -> Engine:
    if _engine is None:
        raise RuntimeError(_NOT_READY)
    return _engine


def get_session_factory() -> sessionmaker[Session]:
    """The factory every SQL repository opens its sessions from."""
    if _session_factory is None:
        raise RuntimeError(_NOT_READY)
    return _session_factory


@contextmanager
def session_scope() -> Generator[Session, None, None]:
    """
    Yield a session that commits on clean exit and rolls back on error.

    Used for seeding and maintenance work outside the loan coordinator,
    which manages its own transactions.
    """
    session = get_session_factory()()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        logger.warning("session_scope_rolled_back", exc_info=True)
        raise
    finally:
        session.close()


def _metadata():
    from lending_kernel.db.base import Base
    import lending_kernel.models  # noqa: F401  (registers the mapped tables)

    return Base.metadata


def create_tables() -> None:
    """Create the items, loans and settings tables if they are missing."""
    metadata = _metadata()
    metadata.create_all(get_engine())
    logger.info("tables_created", extra={"tables": sorted(metadata.tables)})


def drop_tables() -> None:
    """Drop every lending table.  Test and local use only."""
    _metadata().drop_all(get_engine())


def reset_engine() -> None:
    """Dispose the engine and forget the session factory."""
    global _engine, _session_factory
    if _engine is not None:
        _engine.dispose()
    _engine = None
    _session_factory = None


@atexit.register
def _dispose_on_exit() -> None:
    if _engine is not None:
        _engine.dispose()
