"""Pytest configuration and fixtures."""

import os
from pathlib import Path
from typing import AsyncGenerator

import pytest
from httpx import ASGITransport, AsyncClient

os.environ.setdefault("JWT_SECRET", "test-secret")

from auth import dependencies as auth_dependencies  # noqa: E402
from core.config import Settings  # noqa: E402
from main import create_app  # noqa: E402

TEST_USER = {
    "id": "6f1c2a9e-8a53-4b8f-9d3c-2f4f7d1e0a11",
    "email": "ops@example.com",
    "name": "Ops",
    "department": "operations",
    "role": "user",
    "created_at": None,
}


@pytest.fixture
def data_dir(tmp_path: Path) -> Path:
    return tmp_path / ".data"


@pytest.fixture
def settings(data_dir: Path) -> Settings:
    return Settings(
        data_dir=data_dir,
        app_origin="http://dashboard.test",
        admin_email="admin@example.com",
        google_client_id="client-id",
        google_client_secret="client-secret",
        google_token_secret="token-secret",
    )


@pytest.fixture
def app(settings: Settings):
    # ASGITransport does not run the lifespan, so no database is needed.
    return create_app(settings)


@pytest.fixture
def signed_in(app):
    """Bypass session auth for dashboard routes."""
    app.dependency_overrides[auth_dependencies.get_current_user] = lambda: dict(TEST_USER)
    yield TEST_USER
    app.dependency_overrides.clear()


@pytest.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    """Create an async test client."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as client:
        yield client
