"""
Centralized Test Configuration.
"""

import pytest
from datetime import datetime, timedelta
from decimal import Decimal
from jose import jwt
from types import SimpleNamespace
from httpx import AsyncClient, ASGITransport
from sqlalchemy import event
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import Pool, StaticPool

from housing_ledger.app.main import app
from housing_ledger.app.db.session import get_db, Base
from housing_ledger.app.core.config import settings
from housing_ledger.app.models.enums import UserRole
from housing_ledger.app.models.company import Company
from housing_ledger.app.models.client import Client
from housing_ledger.app.models.application import Application

# Setup In-Memory Test Database
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


# Event handler to enable foreign keys for SQLite
@event.listens_for(Pool, "connect")
def set_sqlite_pragma(dbapi_conn, connection_record):
    """Enable foreign key constraints for SQLite."""
    if 'sqlite' in str(type(dbapi_conn)):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


@pytest.fixture
async def engine():
    """Fresh in-memory database per test."""
    test_engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield test_engine

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(
        engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
    )


@pytest.fixture(autouse=True)
def override_get_db(session_factory):
    """Route the API's sessions to the test database."""
    async def _get_test_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = _get_test_db
    yield
    app.dependency_overrides = {}


@pytest.fixture
async def client():
    """Async client for testing."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


# Shared session for fixture data creation
@pytest.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


def mint_token(payload: dict, expires_in: timedelta = None) -> str:
    """Sign a token the way the external auth service does."""
    claims = dict(payload)
    claims["exp"] = datetime.utcnow() + (expires_in or timedelta(minutes=settings.access_token_expire_minutes))
    return jwt.encode(claims, settings.secret_key, algorithm=settings.algorithm)


@pytest.fixture
def auth_headers():
    """Build bearer headers for a role and tenant."""
    def _headers(role: UserRole = UserRole.STAFF, company_id=None, user_id: int = 1):
        payload = {"sub": f"user{user_id}", "user_id": user_id, "role": role.value}
        if company_id is not None:
            payload["company_id"] = company_id
        return {"Authorization": f"Bearer {mint_token(payload)}"}

    return _headers


@pytest.fixture
async def tenants(db_session):
    """
    Two companies, each with one client and one pending application.

    Company A's client lives in county "A", company B's in county "B".
    """
    company_a = Company(name="Alpha Housing")
    company_b = Company(name="Beta Housing")
    db_session.add_all([company_a, company_b])
    await db_session.flush()

    client_a = Client(company_id=company_a.id, first_name="Ana", last_name="Lopez", county="A", site="North")
    client_b = Client(company_id=company_b.id, first_name="Ben", last_name="Okafor", county="B", site="South")
    db_session.add_all([client_a, client_b])
    await db_session.flush()

    application_a = Application(
        client_id=client_a.id,
        property_id=11,
        rent_paid=Decimal("800.00"),
        deposit_paid=Decimal("100.00"),
    )
    application_b = Application(
        client_id=client_b.id,
        property_id=22,
        rent_paid=Decimal("800.00"),
        deposit_paid=Decimal("100.00"),
    )
    db_session.add_all([application_a, application_b])
    await db_session.commit()

    return SimpleNamespace(
        company_a=company_a.id,
        company_b=company_b.id,
        client_a=client_a.id,
        client_b=client_b.id,
        application_a=application_a.id,
        application_b=application_b.id,
    )
