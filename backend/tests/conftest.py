"""
Catalog Backend — Test Configuration (conftest.py)
===================================================

What:  Shared pytest fixtures for the test suite.
How:   An in-memory SQLite database (aiosqlite) with the real ORM schema,
       factories for categories and services, and an HTTPX client wired to
       the FastAPI app with the session dependency pointed at that database.

Fixture Hierarchy (all function-scoped):
    ├── db_engine / db_session:   fresh in-memory schema per test
    ├── seed:                     persist rows, then clear the identity map
    ├── make_category / make_service / link_sub_items: row factories
    ├── mock_db_session:          AsyncMock session for failure paths
    └── test_client:              HTTPX AsyncClient against app.main.app
"""

import itertools
import os
import uuid
from datetime import datetime, timedelta, timezone
from typing import AsyncGenerator
from unittest.mock import AsyncMock, MagicMock

# Override settings BEFORE any app imports
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["ENVIRONMENT"] = "test"

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.database import Base, get_db_session
from app.models.catalog import Category, CategorySubService, Service


# ══════════════════════════════════════════════════════════════════════════
# Database
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def db_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(db_engine) -> AsyncGenerator[AsyncSession, None]:
    factory = async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)
    async with factory() as session:
        yield session


@pytest.fixture
def seed(db_session):
    """
    Persist catalog rows and clear the identity map.

    Later queries load rows back from the database, exactly as a request
    would see them (category references come back as text).
    """
    async def _seed(*rows):
        db_session.add_all(rows)
        await db_session.commit()
        db_session.expunge_all()

    return _seed


# ══════════════════════════════════════════════════════════════════════════
# Row Factories
# ══════════════════════════════════════════════════════════════════════════

_BASE_TIME = datetime(2024, 1, 1, tzinfo=timezone.utc)


@pytest.fixture
def make_category():
    """Category factory; creation times increase in call order."""
    counter = itertools.count()

    def _make(slug, category_type="simple", title=None, external_id=None, **fields):
        return Category(
            id=fields.pop("id", uuid.uuid4()),
            slug=slug,
            external_id=external_id or slug,
            title=title or slug.replace("-", " ").title(),
            category_type=category_type,
            created_at=_BASE_TIME + timedelta(minutes=next(counter)),
            **fields,
        )

    return _make


@pytest.fixture
def make_service():
    """Service factory; later calls are newer (listings put them first)."""
    counter = itertools.count()

    def _make(slug, title=None, **fields):
        return Service(
            id=fields.pop("id", uuid.uuid4()),
            slug=slug,
            title=title or slug.replace("-", " ").title(),
            created_at=_BASE_TIME + timedelta(hours=next(counter)),
            **fields,
        )

    return _make


@pytest.fixture
def link_sub_items():
    """Attach services to a category as ordered explicit sub-items."""
    def _link(category, *services):
        for position, service in enumerate(services):
            CategorySubService(category=category, service=service, position=position)
        return category

    return _link


@pytest.fixture
def mock_db_session():
    """
    A mock async session for paths that must not reach a database.

    Usage:
        mock_db_session.execute.side_effect = OperationalError("SELECT", {}, Exception("down"))
    """
    session = AsyncMock()
    session.execute = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.close = AsyncMock()
    session.add = MagicMock()
    return session


# ══════════════════════════════════════════════════════════════════════════
# HTTP Client
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def test_client(db_session):
    """
    HTTPX AsyncClient talking to the FastAPI app in-process.

    The session dependency yields the test's db_session.
    """
    from app.main import app

    async def _override_session():
        yield db_session

    app.dependency_overrides[get_db_session] = _override_session
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()
