"""
Lime Core Backend — Test Configuration (conftest.py)
======================================================

What:  Shared pytest fixtures for the test suite.
How:   Services and routes run against an in-memory SQLite database
       (aiosqlite) with the real schema from `Base.metadata`. One StaticPool
       connection is shared, so data committed by one session is visible to
       the next.

Fixture Hierarchy:
    Function-scoped (created fresh for each test):
    ├── db_engine:        in-memory engine with all tables created
    ├── db_session:       AsyncSession on db_engine
    ├── mock_db_session:  AsyncMock session for fault-path tests
    ├── organization / other_organization / user: seeded rows
    ├── auth_headers / other_auth_headers: bearer tokens for each tenant
    └── test_client:      httpx AsyncClient on a fresh app bound to db_engine
"""

import os

# Settings are read at import time, so the environment comes first
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["JWT_SECRET_KEY"] = "test-secret-key-not-for-production"
os.environ["GOOGLE_CLIENT_ID"] = ""
os.environ["GOOGLE_CLIENT_SECRET"] = ""
os.environ["FRONTEND_URL"] = "http://frontend.test"
os.environ["LOG_LEVEL"] = "WARNING"

from typing import AsyncGenerator, Dict
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import lime_core.models  # noqa: F401
from lime_core.database import Base, get_db_session
from lime_core.models.organization import Organization, OrganizationMember, User
from lime_core.security import create_access_token, hash_password

TEST_PASSWORD = "correct horse battery staple"


# ══════════════════════════════════════════════════════════════════════════
# Database Fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def db_engine():
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
def session_factory(db_engine):
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture
def mock_db_session():
    """
    AsyncMock session for driving persistence failures.

    Usage:
        mock_db_session.execute.side_effect = RuntimeError("connection lost")
    """
    session = AsyncMock()
    session.execute = AsyncMock()
    session.flush = AsyncMock()
    session.refresh = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.close = AsyncMock()
    session.add = MagicMock()
    return session


# ══════════════════════════════════════════════════════════════════════════
# Seed Data
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def organization(db_session) -> Organization:
    org = Organization(name="Acme")
    db_session.add(org)
    await db_session.commit()
    return org


@pytest_asyncio.fixture
async def other_organization(db_session) -> Organization:
    org = Organization(name="Globex")
    db_session.add(org)
    await db_session.commit()
    return org


@pytest_asyncio.fixture
async def user(db_session, organization) -> User:
    account = User(
        email="ana@acme.test",
        name="Ana",
        password_hash=hash_password(TEST_PASSWORD),
        current_organization_id=organization.id,
    )
    db_session.add(account)
    await db_session.flush()
    db_session.add(
        OrganizationMember(organization_id=organization.id, user_id=account.id, role="owner")
    )
    await db_session.commit()
    return account


@pytest.fixture
def auth_headers(user) -> Dict[str, str]:
    token = create_access_token(user.id, user.email, user.current_organization_id)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def other_auth_headers(other_organization) -> Dict[str, str]:
    token = create_access_token("other-user", "bob@globex.test", other_organization.id)
    return {"Authorization": f"Bearer {token}"}


# ══════════════════════════════════════════════════════════════════════════
# HTTP Client
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def app(session_factory):
    """A fresh application whose request sessions come from the test engine."""
    from lime_core.main import create_app

    application = create_app()

    async def override_get_db_session():
        async with session_factory() as session:
            try:
                yield session
                if session.is_active:
                    await session.commit()
                else:
                    await session.rollback()
            except Exception:
                await session.rollback()
                raise

    application.dependency_overrides[get_db_session] = override_get_db_session
    return application


@pytest_asyncio.fixture
async def test_client(app):
    """
    Usage:
        async def test_health(test_client):
            response = await test_client.get("/health")
    """
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
