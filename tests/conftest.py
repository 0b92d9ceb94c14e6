"""Shared test fixtures for edit lock tests."""

import datetime as dt
from collections.abc import AsyncGenerator
from pathlib import Path

import httpx
import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from backend.app import app
from backend.database import Base, get_session
from backend.locks import LockManager, get_lock_manager
from backend.models import Organization, User


class FakeClock:
    """Manually advanced UTC clock."""

    def __init__(self, start: dt.datetime | None = None) -> None:
        self.now = start or dt.datetime(2026, 3, 2, 9, 0, tzinfo=dt.timezone.utc)

    def __call__(self) -> dt.datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += dt.timedelta(**kwargs)


@pytest.fixture
async def engine(tmp_path: Path):
    """SQLite file database with the full schema."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'locks.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def users(session_factory) -> dict[str, User]:
    """Two organizations; alice, bob and a manager in org-1, carol in org-2."""
    async with session_factory() as session:
        session.add_all(
            [
                Organization(id="org-1", name="Northwind Capital"),
                Organization(id="org-2", name="Harbor Partners"),
            ]
        )
        await session.flush()
        created = {
            "alice": User(
                id="u-alice", org_id="org-1", username="alice", display_name="Alice Moreau"
            ),
            "bob": User(id="u-bob", org_id="org-1", username="bob", display_name="Bob Tran"),
            "carol": User(
                id="u-carol", org_id="org-2", username="carol", display_name="Carol Diaz"
            ),
            "manager": User(
                id="u-mgr",
                org_id="org-1",
                username="morgan",
                display_name="Morgan Lee",
                role="manager",
            ),
            "inactive": User(
                id="u-gone",
                org_id="org-1",
                username="gone",
                display_name="Former Analyst",
                is_active=False,
            ),
        }
        session.add_all(created.values())
        await session.commit()
    return created


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def manager(clock: FakeClock) -> LockManager:
    return LockManager(timeout_minutes=30, clock=clock)


@pytest.fixture
async def session(session_factory, users) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture
async def client(session_factory, manager, users) -> AsyncGenerator[httpx.AsyncClient, None]:
    """HTTP client against the app, wired to the test database and clock."""

    async def _session() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_session] = _session
    app.dependency_overrides[get_lock_manager] = lambda: manager
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()
