from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Generator, Iterator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from . import settings
from .errors import StorageError

logger = logging.getLogger(__name__)

# Execution option read by the SQLite "begin" hook below. Write transactions
# take the database lock up front so concurrent writers queue on the busy
# timeout instead of deadlocking on a SHARED -> RESERVED upgrade.
WRITE_TRANSACTION_OPTIONS = {"sqlite_begin": "IMMEDIATE"}

# Session.info key marking an open transaction() block.
_ACTIVE_TRANSACTION = "folio.transaction"


class Base(DeclarativeBase):
    """Base class for SQLAlchemy models."""


def _install_sqlite_hooks(engine: Engine) -> None:
    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record) -> None:
        # Hand transaction control to SQLAlchemy; pysqlite's own BEGIN
        # handling would defeat BEGIN IMMEDIATE and SAVEPOINT.
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        # Readers holding a snapshot must not block a committing writer
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(conn) -> None:
        mode = conn.get_execution_options().get("sqlite_begin")
        conn.exec_driver_sql(f"BEGIN {mode}" if mode else "BEGIN")


def create_db_engine(url: str) -> Engine:
    """Create an engine for ``url`` with the per-dialect connection setup applied."""
    connect_args = {}
    if url.startswith("sqlite"):
        connect_args = {
            "check_same_thread": False,
            "timeout": settings.SQLITE_BUSY_TIMEOUT_S,
        }

    engine = create_engine(
        url,
        future=True,
        echo=settings.LOG_LEVEL == "DEBUG",
        pool_pre_ping=True,
        connect_args=connect_args,
    )
    if engine.dialect.name == "sqlite":
        _install_sqlite_hooks(engine)
    return engine


engine = create_db_engine(settings.DATABASE_URL)

SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)


def get_session() -> Generator[Session, None, None]:
    session: Session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@contextmanager
def storage_step(step: str) -> Iterator[None]:
    """Re-raise SQLAlchemy failures inside the block as ``StorageError(step)``."""
    try:
        yield
    except SQLAlchemyError as exc:
        raise StorageError(step, exc) from exc


@contextmanager
def transaction(db: Session, step: str) -> Iterator[Session]:
    """
    Run a block of writes as one atomic unit.

    Commits when the block exits cleanly. Any other exit (domain error,
    storage error, cancellation) rolls the whole unit back before the
    exception propagates, so a half-applied write is never left behind.
    SQLAlchemy errors escaping the block are wrapped as ``StorageError``
    tagged with ``step``; domain errors propagate untouched.

    A block opened inside another ``transaction()`` on the same session joins
    it: the outermost block alone commits or rolls back.

    Raises:
        RuntimeError: the session holds pending changes made outside any
            transaction block; committing them here would be silent.
    """
    if db.info.get(_ACTIVE_TRANSACTION):
        with storage_step(step):
            yield db
        return

    if db.new or db.dirty or db.deleted:
        raise RuntimeError(f"{step}: session has uncommitted changes made outside a transaction block")
    if db.in_transaction():
        # A read earlier in this session left a snapshot open; finish it so
        # the write below starts its own transaction.
        db.commit()

    db.info[_ACTIVE_TRANSACTION] = step
    try:
        db.connection(execution_options=WRITE_TRANSACTION_OPTIONS)
        yield db
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.warning("%s: rolled back: %s", step, exc)
        raise StorageError(step, exc) from exc
    except BaseException as exc:
        db.rollback()
        logger.debug("%s: rolled back: %r", step, exc)
        raise
    finally:
        db.info.pop(_ACTIVE_TRANSACTION, None)
