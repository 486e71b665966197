import sys
import json
from pathlib import Path

import httpx
import jwt
import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport


# Ensure project root is on sys.path so `core.*`, `services.*` imports work
ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))


# Explicitly enable pytest-asyncio plugin for async tests/fixtures
pytest_plugins = ("pytest_asyncio",)


from config.settings import Settings, settings
from core.db import Database
from core.services import build_services
from main import create_app


class FakeSmartNotifications:
    """
    In-process stand-in for the smart notifications HTTP service.

    Records every request and answers 200, or `fail_with` when set.
    """

    def __init__(self):
        self.requests = []
        self.fail_with = None

    def __call__(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content) if request.content else None
        self.requests.append((request.method, request.url.path, body))
        if self.fail_with is not None:
            return httpx.Response(self.fail_with, json={"message": "upstream rejected"})
        return httpx.Response(200, json=body or {})


def make_token(device_id: str, **claims) -> str:
    return jwt.encode({"device_id": device_id, **claims}, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def auth_header(device_id: str, **claims) -> dict:
    return {"Authorization": f"Bearer {make_token(device_id, **claims)}"}


@pytest.fixture()
def test_settings(tmp_path):
    return Settings(
        MYSQL_ASYNC_URL=f"sqlite+aiosqlite:///{tmp_path / 'accounts.db'}",
        SMART_NOTIFICATIONS_URL="http://smart-notifications.test",
        DB_CREATE_ALL=True,
    )


@pytest.fixture()
def smart_notifications():
    return FakeSmartNotifications()


@pytest_asyncio.fixture()
async def services(test_settings, smart_notifications):
    """Fresh services over a per-test SQLite file database."""
    database = Database(test_settings.MYSQL_ASYNC_URL)
    await database.create_all()
    svc = build_services(test_settings, database=database, transport=httpx.MockTransport(smart_notifications))
    yield svc
    await svc.close()


@pytest.fixture()
def store(services):
    return services.store


@pytest.fixture()
def repository(services):
    return services.accounts.repository


@pytest.fixture()
def accounts_service(services):
    return services.accounts


@pytest.fixture()
def notification_service(services):
    return services.notifications


@pytest_asyncio.fixture()
async def client(test_settings, services):
    """Async test client for the accounts API (services injected, no lifespan run)."""
    app = create_app(test_settings, services=services)
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver") as ac:
        yield ac


async def assert_devices_exclusive(repository):
    """No device id may belong to two accounts."""
    seen = {}
    for account in await repository.list_all():
        for device_id in account.device_ids():
            assert device_id not in seen, f"{device_id} owned by {seen[device_id]} and {account.id}"
            seen[device_id] = account.id


@pytest.fixture()
def devices_exclusive(repository):
    """Awaitable check that no device id belongs to two accounts."""
    return lambda: assert_devices_exclusive(repository)


@pytest.fixture()
def auth():
    """Builds an Authorization header for a device (extra JWT claims as kwargs)."""
    return auth_header


@pytest.fixture()
def token():
    """Signs a bearer token for a device (extra JWT claims as kwargs)."""
    return make_token
