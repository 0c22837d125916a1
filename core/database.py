"""
core/database.py -- Shared SQLAlchemy engine factory and schema metadata.

Users and tasks live in one database so the admin task listing can join
owner info in a single query. Each store declares its own Table objects
against the shared `metadata`; create_schema() is called once at startup
after every store module has been imported.

Security: all queries in the stores use bound parameters. No f-strings in SQL.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import MetaData, create_engine, event, text
from sqlalchemy.engine import Engine

metadata = MetaData()


def _set_sqlite_pragmas(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode and foreign key enforcement.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")
    dbapi_conn.execute("PRAGMA foreign_keys=ON")


def make_engine(db_url: str, **engine_kwargs) -> Engine:
    """Create an engine for db_url, applying SQLite-specific connection settings.

    engine_kwargs are passed through to create_engine (tests use this to pin
    an in-memory database to a single StaticPool connection).
    """
    connect_args: dict = {}
    if db_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
    engine = create_engine(db_url, connect_args=connect_args, **engine_kwargs)
    if db_url.startswith("sqlite"):
        event.listen(engine, "connect", _set_sqlite_pragmas)
    return engine


def create_schema(engine: Engine) -> None:
    """Create all tables registered on the shared metadata (idempotent)."""
    metadata.create_all(engine)


def ping(engine: Engine) -> bool:
    """Return True if a trivial query succeeds. Used by the health endpoint."""
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except Exception:
        return False


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()
