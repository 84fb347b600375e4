"""
Database configuration and session management.
"""

from typing import Generator
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session, declarative_base
from sqlalchemy.pool import NullPool

from timeledger.config import settings


def _connect_args(url: str) -> dict:
    # SQLite connections are shared across FastAPI's worker threads
    if url.startswith("sqlite"):
        return {"check_same_thread": False, "timeout": settings.database_busy_timeout_seconds}
    return {}


def use_immediate_transactions(engine: Engine) -> None:
    """
    Make every SQLite transaction take the writer lock at BEGIN.

    pysqlite opens transactions lazily and only before DML, so a read-then-write
    sequence would run its reads outside any lock. Emitting BEGIN IMMEDIATE
    ourselves serializes writers from their first statement; a second writer
    waits on the busy timeout instead of interleaving.
    """

    @event.listens_for(engine, "connect")
    def _disable_pysqlite_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def create_store_engine(url: str, **kwargs) -> Engine:
    """Create an engine for ``url`` with the transaction setup the repositories rely on."""
    kwargs.setdefault("connect_args", _connect_args(url))
    store_engine = create_engine(url, **kwargs)
    if store_engine.dialect.name == "sqlite":
        use_immediate_transactions(store_engine)
    return store_engine


# Create SQLAlchemy engine
engine = create_store_engine(
    settings.database_url,
    poolclass=NullPool,
    echo=settings.database_echo,
)

# Create SessionLocal class
SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)

# Create declarative base
Base = declarative_base()


def get_db() -> Generator[Session, None, None]:
    """
    Dependency function to get database session.
    One session per request; repositories commit their own writes.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def create_tables() -> None:
    """Create every table directly, bypassing migrations. Used by tests and local setups."""
    from timeledger.infrastructure.db import models  # noqa: F401

    Base.metadata.create_all(bind=engine)
