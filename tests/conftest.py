# =============================================================================
# tests/conftest.py - Pytest Configuration
# =============================================================================
# Shared fixtures: an in-memory SQLite engine, a fakeredis server, a mocked
# n8n webhook and an httpx client wired to the ASGI app.
# =============================================================================

import os

# Settings requires these; set them before anything reads the environment
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("JWT_SECRET", "test-jwt-secret")
os.environ.setdefault("ENVIRONMENT", "development")
os.environ.setdefault("LOG_LEVEL", "DEBUG")

import fakeredis
import httpx
import pytest
from cryptography.fernet import Fernet

from weconnect.config import Settings
from weconnect.infrastructure.database import build_engine, init_db
from weconnect.infrastructure.n8n_client import N8nClient
from weconnect.infrastructure.storage import SupabaseStorage
from weconnect.main import create_app

WEBHOOK_SECRET = "test-webhook-secret"
STRONG_PASSWORD = "Str0ng!Pass"


class FakeN8n:
    """Stands in for the n8n webhook via httpx.MockTransport."""

    def __init__(self):
        self.requests = []
        self.status_code = 200
        self.error = None

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        return httpx.Response(self.status_code, json={"ok": self.status_code < 300})


def make_settings(**overrides) -> Settings:
    values = {
        "DATABASE_URL": "sqlite+aiosqlite:///:memory:",
        "JWT_SECRET": "test-jwt-secret",
        "WEBHOOK_SECRET": WEBHOOK_SECRET,
        "N8N_WEBHOOK_URL": "http://n8n.test/webhook",
        "LOG_LEVEL": "DEBUG",
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


# =============================================================================
# Infrastructure fixtures
# =============================================================================

@pytest.fixture
def settings():
    return make_settings()


@pytest.fixture
async def engine(settings):
    engine = build_engine(settings)
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def redis_client():
    return fakeredis.FakeAsyncRedis(server=fakeredis.FakeServer(), decode_responses=True)


@pytest.fixture
def fake_n8n():
    return FakeN8n()


@pytest.fixture
async def n8n_client(fake_n8n):
    client = N8nClient(
        "http://n8n.test/webhook",
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(fake_n8n.handler)),
    )
    yield client
    await client.aclose()


@pytest.fixture
def storage():
    """Unconfigured storage; upload tests swap in a configured one."""
    return SupabaseStorage(None)


@pytest.fixture
def fernet():
    return Fernet(Fernet.generate_key())


# =============================================================================
# App fixtures
# =============================================================================

@pytest.fixture
async def make_client(engine, redis_client, n8n_client, storage, fernet):
    """Factory for an httpx client bound to an app built with the given settings overrides."""
    clients = []

    def _make(storage_override=None, **overrides):
        app = create_app(
            make_settings(**overrides),
            engine=engine,
            redis=redis_client,
            storage=storage_override or storage,
            n8n_client=n8n_client,
            fernet=fernet,
        )
        client = httpx.AsyncClient(
            transport=httpx.ASGITransport(app=app, raise_app_exceptions=False),
            base_url="http://test",
        )
        client.app = app
        clients.append(client)
        return client

    yield _make
    for c in clients:
        await c.aclose()


@pytest.fixture
async def client(make_client):
    return make_client()


async def signup(client, email="alice@weconnect.io", password=STRONG_PASSWORD, first_name="Alice", last_name="Smith"):
    response = await client.post(
        "/api/auth/signup",
        json={"email": email, "password": password, "firstName": first_name, "lastName": last_name},
    )
    assert response.status_code == 201, response.text
    data = response.json()["data"]
    return data["token"], data["user"]


@pytest.fixture
async def alice(client):
    token, user = await signup(client)
    return {"Authorization": f"Bearer {token}"}, user


@pytest.fixture
async def bob(client):
    token, user = await signup(client, email="bob@weconnect.io", first_name="Bob", last_name="Jones")
    return {"Authorization": f"Bearer {token}"}, user
