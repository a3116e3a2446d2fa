import os
from datetime import timedelta

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("ENVIRONMENT", "test")

import httpx
import pytest
import pytest_asyncio
from httpx import AsyncClient
from sqlalchemy import update
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from arena.main import app
from arena.db import Base, get_session
from arena.deps import get_clock, get_files, get_scorer
from arena.models.user import User
from arena.services.clock import FixedClock
from fakes import MemoryFileStore, T0


class QueuedScorer:
    """Hands out queued scores in order, then a constant."""

    def __init__(self, default: float = 0.5):
        self.default = default
        self.queue: list[float] = []

    def __call__(self, data, phase) -> float:
        return self.queue.pop(0) if self.queue else self.default


@pytest_asyncio.fixture
async def engine():
    eng = create_async_engine("sqlite+aiosqlite://", poolclass=StaticPool)
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest.fixture
def sessions(engine):
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest.fixture
def clock():
    # one day before registration opens
    return FixedClock(T0 - timedelta(days=1))


@pytest.fixture
def files():
    return MemoryFileStore()


@pytest.fixture
def scorer():
    return QueuedScorer()


@pytest_asyncio.fixture
async def client(sessions, clock, files, scorer):
    async def override_session():
        async with sessions() as session:
            yield session

    app.dependency_overrides[get_session] = override_session
    app.dependency_overrides[get_clock] = lambda: clock
    app.dependency_overrides[get_files] = lambda: files
    app.dependency_overrides[get_scorer] = lambda: scorer
    async with AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
def signup(client, sessions):
    """Register + log in a user; returns (user_id, auth headers)."""
    async def _signup(email: str, *, admin: bool = False, full_name: str | None = None):
        r = await client.post("/auth/register", json={"email": email, "password": "supersecret", "full_name": full_name})
        assert r.status_code == 201, r.text
        user_id = r.json()["id"]
        if admin:
            async with sessions() as s:
                await s.execute(update(User).where(User.email == email).values(role="admin"))
                await s.commit()
        tokens = (await client.post("/auth/login", json={"email": email, "password": "supersecret"})).json()
        return user_id, {"Authorization": f"Bearer {tokens['access']}"}
    return _signup


def competition_payload(**overrides) -> dict:
    body = {
        "title": "Churn Prediction",
        "competition_type": "3-phase",
        "participation_type": "individual",
        "scoring_metric": "f1_score",
        "registration_start": T0.isoformat(),
        "registration_end": (T0 + timedelta(days=7)).isoformat(),
        "public_test_start": (T0 + timedelta(days=7)).isoformat(),
        "public_test_end": (T0 + timedelta(days=21)).isoformat(),
        "daily_submission_limit": 5,
        "total_submission_limit": 50,
        "max_file_size_mb": 1,
    }
    body.update(overrides)
    return body


@pytest.fixture
def new_competition():
    return competition_payload
