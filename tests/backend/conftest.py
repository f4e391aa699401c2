"""
Shared fixtures for the Hackathon Hub backend tests.

Every test gets its own in-memory SQLite database. Service calls go through
``run``, which opens a fresh session per call like one API request would.
"""

from collections.abc import Awaitable, Callable
from datetime import datetime
from typing import Any

import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import app.models  # noqa: F401  registers every table on Base.metadata
from app.core.database import enable_sqlite_foreign_keys, get_db
from app.models import (
    Hackathon,
    HackathonCategory,
    JudgingCriterion,
    Team,
    TeamMember,
    User,
    UserRole,
)
from app.models.base import Base
from app.services.context import ServiceContext
from tests.backend.factories import NOW, make_hackathon, make_user


@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_foreign_keys(engine)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def run(session_factory) -> Callable[..., Awaitable[Any]]:
    """Call a service function with a fresh session, the given user and a fixed clock."""

    async def _run(func, user, *args, now: datetime = NOW, **kwargs):
        async with session_factory() as session:
            ctx = ServiceContext(session=session, user=user, clock=lambda: now)
            return await func(ctx, *args, **kwargs)

    return _run


@pytest_asyncio.fixture
async def add(session_factory) -> Callable[..., Awaitable[Any]]:
    """Persist rows directly, bypassing the services."""

    async def _add(*objects):
        async with session_factory() as session:
            session.add_all(objects)
            await session.commit()
        return objects[0] if len(objects) == 1 else objects

    return _add


# ============== Users ==============


@pytest_asyncio.fixture
async def admin(add) -> User:
    return await add(make_user("admin@example.com", UserRole.ADMIN, "Admin"))


@pytest_asyncio.fixture
async def alice(add) -> User:
    return await add(make_user("alice@example.com", first_name="Alice"))


@pytest_asyncio.fixture
async def bob(add) -> User:
    return await add(make_user("bob@example.com", first_name="Bob"))


@pytest_asyncio.fixture
async def carol(add) -> User:
    return await add(make_user("carol@example.com", first_name="Carol"))


@pytest_asyncio.fixture
async def judge(add) -> User:
    return await add(make_user("judge@example.com", UserRole.JUDGE, "Judy"))


@pytest_asyncio.fixture
async def judge2(add) -> User:
    return await add(make_user("judge2@example.com", UserRole.JUDGE, "Jules"))


# ============== Hackathon data ==============


@pytest_asyncio.fixture
async def hackathon(add) -> Hackathon:
    """A STARTED hackathon whose window contains NOW."""
    return await add(make_hackathon())


@pytest_asyncio.fixture
async def category(add, hackathon) -> HackathonCategory:
    return await add(HackathonCategory(hackathon_id=hackathon.id, name="AI", display_order=1))


@pytest_asyncio.fixture
async def criteria(add, hackathon) -> tuple[JudgingCriterion, JudgingCriterion]:
    return await add(
        JudgingCriterion(hackathon_id=hackathon.id, name="Impact", weight=50, display_order=1),
        JudgingCriterion(hackathon_id=hackathon.id, name="Execution", weight=50, display_order=2),
    )


@pytest_asyncio.fixture
async def make_team(add):
    """Create a team with ``owner`` as its owner and optional extra members."""

    async def _make_team(hackathon: Hackathon, owner: User, name: str, *members: User) -> Team:
        team = Team(
            hackathon_id=hackathon.id,
            name=name,
            slug=name.lower().replace(" ", "-"),
            created_by=owner.id,
        )
        await add(team)
        rows = [
            TeamMember(team_id=team.id, user_id=owner.id, hackathon_id=hackathon.id, is_owner=True)
        ]
        rows += [
            TeamMember(team_id=team.id, user_id=member.id, hackathon_id=hackathon.id)
            for member in members
        ]
        await add(*rows)
        return team

    return _make_team


# ============== API ==============


@pytest_asyncio.fixture
async def client(session_factory):
    """HTTP client against the app with the test database behind ``get_db``."""
    from app.main import app
    from app.middleware.security import limiter

    async def _get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = _get_db
    limiter.enabled = False
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
    limiter.enabled = True
