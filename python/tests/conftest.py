"""Pytest configuration and fixtures for salesmail tests.

Test isolation strategy:
- Every client fixture builds a fresh app, so rate-limit counters never leak
- The database is an in-memory SQLite engine created by the app lifespan
- Route groups are replaced by recording stubs from tests.helpers
"""

from collections.abc import Generator

import pytest
from fastapi.testclient import TestClient
from limits.aio.storage import MemoryStorage

from salesmail.app import create_app
from salesmail.config import Settings, clear_settings_cache
from tests.helpers import make_route_groups, make_settings


@pytest.fixture(autouse=True)
def _reset_settings_cache() -> Generator[None, None, None]:
    yield
    clear_settings_cache()


@pytest.fixture
def settings() -> Settings:
    """Default test settings."""
    return make_settings()


@pytest.fixture
def route_calls() -> list[str]:
    """Records which stub route handlers ran."""
    return []


@pytest.fixture
def app(settings: Settings, route_calls: list[str]):
    """Application wired with recording route groups."""
    return create_app(
        settings,
        route_groups=make_route_groups(route_calls),
        rate_limit_storage=MemoryStorage(),
    )


@pytest.fixture
def client(app) -> Generator[TestClient, None, None]:
    """Provide a FastAPI test client; runs the app lifespan."""
    with TestClient(app) as client:
        yield client


@pytest.fixture
def make_client(route_calls: list[str]):
    """Factory for clients with custom settings overrides."""
    clients: list[TestClient] = []

    def _make(raise_server_exceptions: bool = True, **overrides) -> TestClient:
        app = create_app(
            make_settings(**overrides),
            route_groups=make_route_groups(route_calls),
            rate_limit_storage=MemoryStorage(),
        )
        test_client = TestClient(app, raise_server_exceptions=raise_server_exceptions)
        test_client.__enter__()
        clients.append(test_client)
        return test_client

    yield _make

    for test_client in clients:
        test_client.__exit__(None, None, None)
