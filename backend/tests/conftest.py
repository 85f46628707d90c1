"""
Centralized Test Configuration.
"""

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import StaticPool

from backend.app.main import app
from backend.app.db.session import get_db, Base
from backend.app.domain.booking.engine import BookingEngine
from backend.app.domain.booking.locks import MemoryBookingLocks
from backend.app.domain.booking.store import SqlAlchemyStore
from backend.app.models.vehicle import Vehicle

# Setup In-Memory Test Database
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

# Event handler to enable foreign keys for SQLite
from sqlalchemy import event
from sqlalchemy.pool import Pool

@event.listens_for(Pool, "connect")
def set_sqlite_pragma(dbapi_conn, connection_record):
    """Enable foreign key constraints for SQLite."""
    if 'sqlite' in str(type(dbapi_conn)).lower():
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

engine = create_async_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TestingSessionLocal = async_sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False
)


@pytest.fixture(scope="session", autouse=True)
def apply_overrides():
    """Point the app at the test database for the whole session."""

    async def override_get_db():
        async with TestingSessionLocal() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.state.booking_locks = MemoryBookingLocks(wait_seconds=5.0)
    yield

    app.dependency_overrides = {}

@pytest.fixture(autouse=True)
async def setup_database():
    """Create tables before each test function and drop after."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

@pytest.fixture
async def client():
    """Async client for testing."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

# Shared session for fixture data creation
@pytest.fixture
async def db_session():
    async with TestingSessionLocal() as session:
        yield session



@pytest.fixture
def booking_locks():
    return MemoryBookingLocks(wait_seconds=5.0)


@pytest.fixture
def make_engine(booking_locks):
    """Build a BookingEngine over a given session, sharing one lock manager."""

    def _make(session: AsyncSession, conflict_retries: int = 1) -> BookingEngine:
        store = SqlAlchemyStore(session)
        return BookingEngine(store, store, booking_locks, conflict_retries=conflict_retries)

    return _make


@pytest.fixture
async def booking_engine(make_engine):
    """Engine over its own session, separate from fixture data."""
    async with TestingSessionLocal() as session:
        yield make_engine(session)


async def add_vehicle(name: str, capacity_kg: float, tyres: int = 6, is_active: bool = True) -> Vehicle:
    """Insert a vehicle through a short-lived session and return it detached."""
    async with TestingSessionLocal() as session:
        vehicle = Vehicle(
            name=name,
            capacity_kg=capacity_kg,
            tyres=tyres,
            is_active=is_active,
            booking_version=0
        )
        session.add(vehicle)
        await session.commit()
        await session.refresh(vehicle)
        return vehicle


@pytest.fixture
async def truck():
    """A 1000 kg, 6-tyre vehicle."""
    return await add_vehicle("Test Truck", 1000)


@pytest.fixture
def vehicle_factory():
    """``await vehicle_factory(name, capacity_kg, ...)`` inserts a vehicle."""
    return add_vehicle


@pytest.fixture
def session_factory():
    """Session factory bound to the test database, for tests that need many sessions."""
    return TestingSessionLocal
