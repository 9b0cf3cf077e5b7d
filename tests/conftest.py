"""
Test configuration and fixtures
"""
import asyncio
from datetime import date, datetime, timedelta
from typing import AsyncGenerator, Optional

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from challengehub.main import app
from challengehub.routes.auth.dependencies import get_store
from challengehub.services.store.memory import InMemoryRecordStore

START = datetime(2026, 3, 2, 9, 0)

DESCRIPTION = "Build a small internal tool that automates the weekly status report for the team."
EXPECTED_OUTCOME = "A working tool with a short demo for the team."
SOLUTION = "A FastAPI service that collects ticket updates and renders them into the weekly report."


class FakeClock:
    """Settable clock passed to services in place of datetime.utcnow"""

    def __init__(self, now: datetime = START):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)

    def today(self) -> date:
        return self.now.date()


class PausingRecordStore(InMemoryRecordStore):
    """
    In-memory store that parks the next caller of one read method.

    pause_after("find_submission") makes the next find_submission call
    set `reached` once its result is read, then wait for `release`.
    Tests use it to run a competing request between a service's checks
    and its writes.
    """

    def __init__(self):
        super().__init__()
        self.paused_method: Optional[str] = None
        self.reached = asyncio.Event()
        self.release = asyncio.Event()

    def pause_after(self, method_name: str) -> None:
        self.paused_method = method_name

    async def _checkpoint(self, method_name: str) -> None:
        if self.paused_method == method_name:
            self.paused_method = None
            self.reached.set()
            await self.release.wait()

    async def list_acceptances(self, *args, **kwargs):
        result = await super().list_acceptances(*args, **kwargs)
        await self._checkpoint("list_acceptances")
        return result

    async def find_submission(self, *args, **kwargs):
        result = await super().find_submission(*args, **kwargs)
        await self._checkpoint("find_submission")
        return result


async def seed_user(store, username: str, role: str = "Employee", total_points: int = 0) -> dict:
    user = {
        "username": username,
        "display_name": username.title(),
        "role": role,
        "department": "Engineering",
        "total_points": total_points,
        "created_at": START,
        "updated_at": START
    }
    return await store.insert_user(user)


async def seed_challenge(
    store,
    challenge_id: str,
    points: int = 500,
    penalty_points: int = 50,
    status: str = "Open"
) -> dict:
    challenge = {
        "id": challenge_id,
        "title": f"Challenge {challenge_id}",
        "description": DESCRIPTION,
        "expected_outcome": EXPECTED_OUTCOME,
        "tags": ["python"],
        "status": status,
        "points": points,
        "penalty_points": penalty_points,
        "deadline": None,
        "created_by": "manager01",
        "created_at": START,
        "updated_at": START,
        "approved_by": "manager01",
        "approved_at": START
    }
    return await store.insert_challenge(challenge)


async def seed_records(store: InMemoryRecordStore) -> InMemoryRecordStore:
    """Three users and three open challenges"""
    await seed_user(store, "employee01")
    await seed_user(store, "employee02")
    await seed_user(store, "manager01", role="Management")
    await seed_challenge(store, "ch1")
    await seed_challenge(store, "ch2", points=300, penalty_points=30)
    await seed_challenge(store, "ch3", points=100, penalty_points=0)
    return store


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest_asyncio.fixture
async def store() -> InMemoryRecordStore:
    return await seed_records(InMemoryRecordStore())


@pytest_asyncio.fixture
async def pausing_store() -> PausingRecordStore:
    return await seed_records(PausingRecordStore())


@pytest_asyncio.fixture
async def manager(store) -> dict:
    return await store.get_user("manager01")


@pytest_asyncio.fixture
async def client(store) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client bound to the app with the in-memory store"""

    async def override_get_store():
        return store

    app.dependency_overrides[get_store] = override_get_store

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
