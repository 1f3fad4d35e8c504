"""
db.engine - Engine bootstrap and session factory.

The connection string comes from config.DB_URL (or create_app's
db_url); swapping SQLite for Postgres needs no other change.  An
in-memory SQLite URL shares one connection across sessions, since
every SqlStore call opens its own session.
"""

from __future__ import annotations

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from db.models import Base

_engine: Engine | None = None


def _is_memory(db_url: str) -> bool:
    return db_url in ("sqlite://", "sqlite:///:memory:")


def init_db(db_url: str) -> sessionmaker:
    """Create the engine and tables, return the session factory."""
    global _engine

    if _engine is not None:
        _engine.dispose()

    if _is_memory(db_url):
        _engine = create_engine(
            db_url, connect_args={"check_same_thread": False}, poolclass=StaticPool,
        )
    else:
        _engine = create_engine(db_url, echo=False)

    if db_url.startswith("sqlite"):
        wal = not _is_memory(db_url)

        @event.listens_for(_engine, "connect")
        def _sqlite_pragmas(dbapi_conn, _rec):
            cur = dbapi_conn.cursor()
            if wal:
                cur.execute("PRAGMA journal_mode=WAL")
                cur.execute("PRAGMA synchronous=NORMAL")
            # medications rows cascade with their patient
            cur.execute("PRAGMA foreign_keys=ON")
            cur.close()

    Base.metadata.create_all(_engine)
    return sessionmaker(bind=_engine, expire_on_commit=False)
