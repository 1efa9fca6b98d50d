"""Engine and session plumbing for the object metadata store.

One lazily created async engine serves the whole process. Request handlers get
a session through ``get_db_session``; the repository commits each command
itself, so the dependency only has to roll back leftovers and close.

SQLite runs in WAL mode with a busy timeout so that a nonce claim issued while
another request is committing waits instead of failing with "database is
locked".

Tests:
    - tests/unit/test_main.py::TestHealthEndpoint
    - tests/unit/test_database.py
"""

from __future__ import annotations

import logging
from typing import AsyncGenerator

from sqlalchemy import event, select
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from capstore.config import get_settings
from capstore.models import Base, StoredObject

logger = logging.getLogger(__name__)

SQLITE_BUSY_TIMEOUT_MS = 5000

_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def _enable_sqlite_wal(engine: AsyncEngine) -> None:
    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute(f"PRAGMA busy_timeout={SQLITE_BUSY_TIMEOUT_MS}")
        cursor.close()


def get_engine() -> AsyncEngine:
    """Return the process-wide engine, creating it on first use."""
    global _engine

    if _engine is None:
        settings = get_settings()
        if settings.is_sqlite:
            _engine = create_async_engine(
                settings.DATABASE_URL,
                connect_args={"check_same_thread": False},
            )
            _enable_sqlite_wal(_engine)
        else:
            _engine = create_async_engine(
                settings.DATABASE_URL,
                pool_size=5,
                max_overflow=10,
                pool_pre_ping=True,
            )

        url = make_url(settings.DATABASE_URL)
        logger.info(f"Metadata store: {url.render_as_string(hide_password=True)}")

    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    # expire_on_commit=False: StoredObject rows are read after the
    # repository commits, and lazy refresh is unavailable under asyncio.
    global _session_factory

    if _session_factory is None:
        _session_factory = async_sessionmaker(
            get_engine(),
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )
    return _session_factory


async def init_db() -> None:
    """Create the ``objects`` table and its indexes if they are missing."""
    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Metadata schema ready")


async def check_db_connection() -> bool:
    """Return True when the ``objects`` table can be queried."""
    try:
        async with get_engine().connect() as conn:
            await conn.execute(select(StoredObject.id).limit(1))
    except Exception as e:
        logger.error(f"Metadata store health check failed: {e}")
        return False
    return True


async def close_db() -> None:
    """Dispose of the engine at shutdown."""
    global _engine, _session_factory

    if _engine is not None:
        await _engine.dispose()
        _engine = None
        _session_factory = None
        logger.info("Metadata store connections closed")


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency yielding one session per request."""
    session = get_session_factory()()
    try:
        yield session
    except Exception:
        await session.rollback()
        raise
    finally:
        await session.close()
