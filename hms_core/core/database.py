import logging
from contextlib import contextmanager
from typing import Generator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from hms_core.core.config import get_settings

logger = logging.getLogger(__name__)

settings = get_settings()


def build_engine(database_url: str) -> Engine:
    """
    Create an engine for the given URL.

    SQLite connections are shared across request threads, so the
    same-thread check is disabled and writers wait on the file lock
    instead of failing immediately.

    SQLite ignores SELECT ... FOR UPDATE, and pysqlite defers BEGIN until
    the first write. Every SQLite transaction therefore starts with
    BEGIN IMMEDIATE, so a read-then-write (stock deduction, refund claim)
    holds the database write lock from its first read to its commit.
    """
    is_sqlite = database_url.startswith("sqlite")
    connect_args: dict = {}
    if is_sqlite:
        connect_args = {"check_same_thread": False, "timeout": 30}
    engine = create_engine(
        database_url,
        future=True,
        pool_pre_ping=True,
        connect_args=connect_args,
    )

    if is_sqlite:

        @event.listens_for(engine, "connect")
        def _disable_pysqlite_begin(dbapi_connection, connection_record):
            dbapi_connection.isolation_level = None

        @event.listens_for(engine, "begin")
        def _begin_immediate(conn):
            conn.exec_driver_sql("BEGIN IMMEDIATE")

    return engine


# Main SQLAlchemy engine
engine = build_engine(str(settings.database_url))

# Session factory
SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
    future=True,
)


def get_db() -> Generator[Session, None, None]:
    """
    FastAPI dependency that yields a DB session.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def unit_of_work(db: Session) -> Generator[Session, None, None]:
    """
    Run a block of reads/writes as one atomic transaction.

    Usage:
        with unit_of_work(db):
            batch.quantity -= 3
            db.add(InventoryTransaction(...))

    Commits on normal exit. Any exception rolls back every write made
    inside the block and is re-raised unchanged.
    """
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        logger.debug("Unit of work rolled back", exc_info=True)
        raise
