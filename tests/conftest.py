# tests/conftest.py
from datetime import datetime, timezone

import pytest
from asgi_lifespan import LifespanManager
from httpx import ASGITransport, AsyncClient

from foodlink.core.security import Actor, token_for
from foodlink.deps import get_clock, get_inflight_guard, get_repo
from foodlink.main import app
from foodlink.repos.inmemory import InMemoryRepo
from foodlink.services.lifecycle import InFlightGuard

NOW = datetime(2026, 10, 16, 12, 0, tzinfo=timezone.utc)


@pytest.fixture(scope="session")
def anyio_backend():
    # keep AnyIO on asyncio for the whole test session
    return "asyncio"


def fixed_clock():
    return NOW


@pytest.fixture
def repo():
    return InMemoryRepo()


@pytest.fixture
async def seeded(repo):
    await repo.insert_store({"_id": "S1", "storeName": "Green Grocer", "status": "approved",
                             "email": "green@example.com"})
    await repo.insert_store({"_id": "S2", "storeName": "Corner Bakery", "status": "pending"})
    await repo.insert_volunteer({"_id": "V1", "name": "Alice Moss", "email": "alice@example.com"})
    await repo.insert_volunteer({"_id": "V2", "fullName": "Bob Reyes"})
    return repo


@pytest.fixture
async def client(seeded):
    app.dependency_overrides[get_repo] = lambda: seeded
    app.dependency_overrides[get_clock] = lambda: fixed_clock
    guard = InFlightGuard()
    app.dependency_overrides[get_inflight_guard] = lambda: guard
    async with LifespanManager(app):
        transport = ASGITransport(app=app, raise_app_exceptions=True)
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            yield ac
    app.dependency_overrides.clear()


def auth(actor_id: str, role: str) -> dict:
    return {"Authorization": f"Bearer {token_for(actor_id, role)}"}


STAFF = Actor(id="ADMIN", role="staff", email="staff@example.com")
STORE_S1 = Actor(id="S1", role="store")
STORE_S2 = Actor(id="S2", role="store")
VOL_V1 = Actor(id="V1", role="volunteer", email="alice@example.com")
VOL_V2 = Actor(id="V2", role="volunteer")
