"""
QRGate: Test Configuration (conftest.py)
=========================================

What:  Shared pytest fixtures for the entire test suite.
How:   pytest auto-discovers conftest.py and makes fixtures available to all tests.

Fixture Hierarchy (all function-scoped, fresh per test):
    ├── fake_clock: Manually advanced time source for rate-limit windows
    ├── token_settings / origin_settings: Settings per deployment mode
    ├── token_app / origin_app: Apps built by create_app()
    └── token_client / origin_client: HTTPX AsyncClients bound to those apps

Every app is built by the factory with its own rate-limit store, so no
counter state leaks between tests.
"""

import os
from typing import AsyncGenerator

# Override settings for testing BEFORE any app imports
os.environ["API_TOKEN"] = "test-token"
os.environ["LOG_LEVEL"] = "WARNING"
os.environ.setdefault("AUTH_MODE", "token")

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from qrgate.config import Settings
from qrgate.main import create_app

TEST_TOKEN = "test-token"
ALLOWED_DOMAIN = "reports.example.com"


class FakeClock:
    """Callable time source; tests move it forward explicitly."""

    def __init__(self, start: float = 1_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def make_settings(**overrides) -> Settings:
    """Settings isolated from any local .env file."""
    return Settings(_env_file=None, **overrides)


async def client_for(app) -> AsyncGenerator[AsyncClient, None]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def token_settings() -> Settings:
    return make_settings(auth_mode="token", api_token=TEST_TOKEN, app_env="production")


@pytest.fixture
def origin_settings() -> Settings:
    return make_settings(auth_mode="origin", allowed_domains=f" {ALLOWED_DOMAIN} ,", app_env="production")


@pytest.fixture
def token_app(token_settings, fake_clock):
    return create_app(token_settings, clock=fake_clock)


@pytest.fixture
def origin_app(origin_settings):
    return create_app(origin_settings)


@pytest_asyncio.fixture
async def token_client(token_app):
    """
    HTTPX AsyncClient talking to a token-mode app.

    Usage:
        async def test_health(token_client):
            response = await token_client.get("/health")
            assert response.status_code == 200
    """
    async for client in client_for(token_app):
        yield client


@pytest_asyncio.fixture
async def origin_client(origin_app):
    async for client in client_for(origin_app):
        yield client
