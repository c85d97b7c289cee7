"""Fixtures for API unit tests: the real app wired to the in-memory test database, AsyncClient."""

import jwt
import pytest
from httpx import ASGITransport, AsyncClient

from baseline_api.api.dependencies import get_session_factory
from baseline_api.config.settings import get_settings
from baseline_api.main import app


@pytest.fixture
def app_with_overrides(session_factory):
    """App whose sessions come from the per-test SQLite engine."""
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
async def async_client(app_with_overrides):
    transport = ASGITransport(app=app_with_overrides)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def tenant_headers():
    return {"X-Tenant-ID": "test-tenant-1"}


@pytest.fixture
def auth_headers(tenant_headers):
    """Tenant header plus a bearer token for subject 'user-7' named 'Ada'."""
    settings = get_settings()
    token = jwt.encode({"sub": "user-7", "name": "Ada"}, settings.jwt_secret, algorithm=settings.jwt_algorithm)
    return {**tenant_headers, "Authorization": f"Bearer {token}"}
