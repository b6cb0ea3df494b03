"""SQLite engine setup for the SQL store."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

from sqlalchemy import create_engine, event, text
from sqlalchemy.pool import StaticPool

from musicreg.store.models import Base

if TYPE_CHECKING:
    from sqlalchemy import Engine

MEMORY = ":memory:"


def _enable_wal(dbapi_connection: object, _connection_record: object) -> None:
    cursor = dbapi_connection.cursor()  # type: ignore[attr-defined]
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.close()


def build_engine(db_path: str) -> Engine:
    """Create an engine for a database file and make sure the schema exists.

    File databases run in WAL mode. ``:memory:`` shares one connection so
    every thread sees the same rows.
    """
    if db_path == MEMORY:
        engine = create_engine(
            "sqlite://",
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
        )
    else:
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        engine = create_engine(
            f"sqlite:///{db_path}",
            connect_args={"check_same_thread": False},
        )
        event.listen(engine, "connect", _enable_wal)

    Base.metadata.create_all(engine)
    return engine


def journal_mode(engine: Engine) -> str:
    """Journal mode reported by SQLite, e.g. ``wal`` or ``memory``."""
    with engine.connect() as conn:
        return str(conn.execute(text("PRAGMA journal_mode")).scalar()).lower()
