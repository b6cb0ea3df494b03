"""Fixtures for route tests."""

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from musicreg.api.app import register_exception_handlers
from musicreg.api.dependencies import ServiceContainer, get_container
from musicreg.api.routes import attendance, periods, registrations
from musicreg.config import Settings
from musicreg.store import SqlTableStore


@pytest.fixture
def container(seeded_store: SqlTableStore) -> ServiceContainer:
    """Services wired over the seeded in-memory store."""
    return ServiceContainer.build(Settings(), store=seeded_store)


@pytest.fixture
def app(container: ServiceContainer) -> FastAPI:
    """Create a test FastAPI app with the container overridden."""
    app = FastAPI()

    def override_get_container():
        yield container

    app.dependency_overrides[get_container] = override_get_container
    register_exception_handlers(app)

    app.include_router(registrations.router, prefix="/api")
    app.include_router(attendance.router, prefix="/api")
    app.include_router(periods.router, prefix="/api")
    return app


@pytest.fixture
def client(app: FastAPI):
    """Create a test client."""
    with TestClient(app, raise_server_exceptions=False) as client:
        yield client
