"""Engine and session factory construction."""
from __future__ import annotations

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from camino.db.base import Base
from camino.db import models  # noqa: F401  (registers tables on Base.metadata)


def create_engine_for(url: str) -> Engine:
    """SQLite gets a single shared connection so an in-memory database survives across sessions."""
    if url.startswith("sqlite"):
        engine = create_engine(
            url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
            future=True,
        )

        @event.listens_for(engine, "connect")
        def set_sqlite_pragma(dbapi_connection, connection_record):  # pragma: no cover - sqlite setup
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        return engine
    return create_engine(url, pool_pre_ping=True, future=True)


def create_session_factory(url: str, *, create_tables: bool = True) -> sessionmaker:
    engine = create_engine_for(url)
    if create_tables:
        Base.metadata.create_all(bind=engine)
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False, future=True)
