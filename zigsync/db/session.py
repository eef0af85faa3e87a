"""SQLAlchemy engine/session setup.

Nothing is created at import time: callers build a session factory from the
configured URL and pass it where it is needed.

    factory = make_session_factory(config.database_url)
    with get_session(factory) as db:
        ...

Environment variables (optional)
--------------------------------
ZIGSYNC_DB_POOL_SIZE (int, default 5)
ZIGSYNC_DB_MAX_OVERFLOW (int, default 10)
ZIGSYNC_DB_ECHO ("1" to enable SQL echo)
"""
from __future__ import annotations

import os
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from zigsync.db.models import Base


def make_engine(url: str) -> Engine:
    """Create a SQLAlchemy engine with sensible defaults.

    - pool_pre_ping avoids stale connections
    - echo can be toggled via ZIGSYNC_DB_ECHO
    - pool sizing via ZIGSYNC_DB_POOL_SIZE / ZIGSYNC_DB_MAX_OVERFLOW
    """
    echo = os.getenv("ZIGSYNC_DB_ECHO", "0") == "1"

    if url.startswith("sqlite"):
        if ":memory:" in url:
            # One shared connection, otherwise every session sees an empty database.
            return create_engine(
                url,
                echo=echo,
                connect_args={"check_same_thread": False},
                poolclass=StaticPool,
            )
        return create_engine(url, echo=echo, pool_pre_ping=True)
    return create_engine(
        url,
        echo=echo,
        pool_pre_ping=True,
        pool_size=int(os.getenv("ZIGSYNC_DB_POOL_SIZE", "5")),
        max_overflow=int(os.getenv("ZIGSYNC_DB_MAX_OVERFLOW", "10")),
    )


def make_session_factory(url_or_engine: str | Engine, *, create_schema: bool = False) -> sessionmaker:
    engine = make_engine(url_or_engine) if isinstance(url_or_engine, str) else url_or_engine
    if create_schema:
        Base.metadata.create_all(bind=engine)
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False)


@contextmanager
def get_session(factory: sessionmaker) -> Iterator[Session]:
    """Yield a session and always close it. Callers commit explicitly."""
    session: Session = factory()
    try:
        yield session
    finally:
        session.close()


def test_connection(factory: sessionmaker) -> bool:
    """Lightweight connectivity check. Returns True on success."""
    try:
        with get_session(factory) as session:
            session.execute(text("SELECT 1"))
        return True
    except Exception:
        return False
