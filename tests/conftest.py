"""
Shared fixtures: in-memory registry, FastAPI app wired to it, async HTTP client.
"""

import pytest
from httpx import ASGITransport, AsyncClient

from app.core.dependencies import get_registry_service_dep
from app.core.storage import LocalStorageStore
from app.factory import create_app
from app.services.registry import RegistryService

DEMO_OTP = "123456"


@pytest.fixture
def store() -> LocalStorageStore:
    return LocalStorageStore()


@pytest.fixture
def service(store) -> RegistryService:
    return RegistryService(store, demo_otp=DEMO_OTP)


@pytest.fixture
def app(service):
    app = create_app()
    app.dependency_overrides[get_registry_service_dep] = lambda: service
    return app


@pytest.fixture
async def async_client(app):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
