"""
Pytest configuration and fixtures for capstore tests.

Every test gets an in-memory SQLite database (aiosqlite + StaticPool so all
sessions share one connection), a blob store rooted in ``tmp_path`` and a
token signer driven by a controllable clock.
"""
import os
import tempfile

# Required settings must exist before capstore.main is imported.
os.environ.setdefault("SIGNING_SECRET", "test-signing-secret-0123456789-abcdef")
os.environ.setdefault("JWT_SECRET_KEY", "test-jwt-secret-key-0123456789-abcdef")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("STORAGE_ROOT", tempfile.mkdtemp(prefix="capstore-test-"))

import logging
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from capstore.api.v1.storage import get_blob_store, get_token_signer
from capstore.auth.jwt_handler import create_access_token
from capstore.database import get_db_session
from capstore.main import app
from capstore.models import Base
from capstore.security.signer import TokenSigner
from capstore.storage.backends.local import LocalBlobStore
from capstore.storage.config import StorageConfig
from capstore.storage.repository import ObjectRepository
from capstore.storage.service import StorageService

logger = logging.getLogger(__name__)

TEST_SIGNING_SECRET = "unit-test-signing-secret-abcdef"


class FakeClock:
    """Manually advanced replacement for time.time()."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def bearer(user_id: str) -> dict[str, str]:
    """Authorization header for ``user_id``."""
    return {"Authorization": f"Bearer {create_access_token(user_id)}"}


async def collect(stream) -> bytes:
    """Drain an async byte iterator."""
    return b"".join([chunk async for chunk in stream])


async def chunks(*parts: bytes):
    """Async byte source yielding ``parts`` in order."""
    for part in parts:
        yield part


# ============================================
# Test Fixtures
# ============================================


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def signer(clock: FakeClock) -> TokenSigner:
    return TokenSigner(secret=TEST_SIGNING_SECRET, clock=clock)


@pytest.fixture
def storage_config(tmp_path) -> StorageConfig:
    return StorageConfig(root=str(tmp_path / "blobs"), token_ttl_seconds=300)


@pytest_asyncio.fixture
async def blob_store(storage_config: StorageConfig) -> LocalBlobStore:
    store = LocalBlobStore(
        root=storage_config.root,
        shard_prefix_length=storage_config.shard_prefix_length,
        chunk_size=4,
    )
    await store.initialize()
    return store


@pytest_asyncio.fixture
async def db_engine() -> AsyncGenerator[AsyncEngine, None]:
    """In-memory SQLite engine with all tables created."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(db_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    session = session_factory()
    try:
        yield session
    finally:
        await session.rollback()
        await session.close()


@pytest.fixture
def repository(db_session: AsyncSession) -> ObjectRepository:
    return ObjectRepository(db_session)


@pytest.fixture
def service(storage_config, signer, blob_store, repository) -> StorageService:
    return StorageService(
        config=storage_config,
        signer=signer,
        blobs=blob_store,
        repository=repository,
    )


@pytest_asyncio.fixture
async def client(session_factory, signer, blob_store) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client against the app with database, signer and blob store overridden."""

    async def override_get_db_session():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db_session] = override_get_db_session
    app.dependency_overrides[get_token_signer] = lambda: signer
    app.dependency_overrides[get_blob_store] = lambda: blob_store

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


# ============================================
# Pytest Configuration
# ============================================


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "fast: Fast unit tests (no database or filesystem)"
    )
    config.addinivalue_line(
        "markers", "integration: Tests that exercise the HTTP API end to end"
    )
