"""Pytest configuration and fixtures."""
import os

os.environ.setdefault("MONGODB_URL", "mongodb://localhost:27017")
os.environ.setdefault("JWT_SECRET", "test-secret")

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from app.utils.auth import create_access_token
from app.utils.permissions import Role
from tests.fakes import FakeClock, InMemoryStore, RecordingAudit, build_service


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def audit():
    return RecordingAudit()


@pytest.fixture
def make_service(store, clock, audit):
    """Factory for a service over the shared fixtures; kwargs override config."""

    def _make(**config):
        return build_service(store, clock, audit, **config)

    return _make


@pytest.fixture
def service(make_service):
    return make_service()


@pytest.fixture
def auth_headers():
    """Build bearer headers for a user id and role."""

    def _headers(user_id: str, role: Role = Role.EMPLOYEE) -> dict:
        token = create_access_token(user_id=user_id, role=role)
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest_asyncio.fixture
async def app_client(service):
    """
    Create a test client whose routes use the in-memory service.

    The lifespan does not run under ``ASGITransport``, so no database
    connection is opened.
    """
    from app.main import app
    from app.routers.time_tracking import get_time_tracking_service

    app.dependency_overrides[get_time_tracking_service] = lambda: service

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test"
    ) as client:
        yield client

    app.dependency_overrides.clear()
