"""
docstore — Database Engine & Session Management
================================================

What:  SQLAlchemy engine factory, session factory, declarative Base and the
       transactional `session_scope()` unit of work.
How:   One SQLite file per app data directory. The engine is created by the
       PersistentStore that owns it (no module-level engine), so several
       independent stores can coexist in one process (tests do this).
Who:   Used by docstore.services.store and docstore.models.

SQLite specifics:
    - foreign_keys must be switched on per connection; a "connect" listener
      does it for every pooled connection.
    - check_same_thread=False: the store serializes access with its own lock,
      and commands may be dispatched from any host thread.
"""

import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Union

from sqlalchemy import Engine, create_engine, event
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

logger = logging.getLogger(__name__)


# ── Base Model ────────────────────────────────────────────────────────────
class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy ORM models.

    All models inherit from this class so that `Base.metadata.create_all()`
    knows every table when a store opens its database.
    """
    pass


# ── Engine Configuration ──────────────────────────────────────────────────
def create_db_engine(db_path: Union[str, Path], echo: bool = False) -> Engine:
    """
    Create a SQLite engine for the given database file.

    Args:
        db_path: Path of the database file, or ":memory:".
        echo:    Log every SQL statement (sqlalchemy.engine logger).
    """
    target = str(db_path)
    url = "sqlite://" if target == ":memory:" else f"sqlite:///{target}"

    engine = create_engine(
        url,
        echo=echo,
        connect_args={"check_same_thread": False},
    )

    @event.listens_for(engine, "connect")
    def _apply_sqlite_pragmas(dbapi_conn, connection_record):
        cursor = dbapi_conn.cursor()
        try:
            cursor.execute("PRAGMA foreign_keys=ON")
        finally:
            cursor.close()

    logger.debug("Database engine created for %s", target)
    return engine


# ── Session Factory ───────────────────────────────────────────────────────
# expire_on_commit=False: rows stay readable after commit, which the store
# relies on when converting them to schemas after the transaction closes.
def create_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(engine, class_=Session, expire_on_commit=False)


@contextmanager
def session_scope(factory: sessionmaker) -> Iterator[Session]:
    """
    Provide one transactional unit of work.

    How it works:
        1. Creates a new session from the factory
        2. Yields it to the caller (the caller performs queries)
        3. On success: commits the transaction
        4. On error: rolls back the transaction and re-raises
        5. Always: closes the session

    A multi-row write inside one scope is all-or-nothing.
    """
    session = factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
