"""
Pytest configuration and shared fixtures for testing.
Builds the application against a throwaway SQLite database per test.
"""

import os

# Keep a developer's .env.* file out of the tests
os.environ["SKIP_ENV_FILE"] = "1"

# Enable metrics endpoint for testing
os.environ["ENABLE_METRICS"] = "true"

import re
from pathlib import Path

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from snippetbox.config import Settings
from snippetbox.db import Base
from snippetbox.main import create_app

ROOT = Path(__file__).resolve().parent.parent
CSRF_RX = re.compile(r'name="csrf_token" value="([^"]+)"')


@pytest.fixture
def settings(tmp_path):
    """Settings pointing at a fresh SQLite file and the repository's ui/ directory."""
    return Settings(
        APP_ENV="test",
        DB_URL=f"sqlite+aiosqlite:///{tmp_path / 'snippetbox.db'}",
        STATIC_DIR=str(ROOT / "ui" / "static"),
        TEMPLATE_DIR=str(ROOT / "ui" / "html"),
        BCRYPT_ROUNDS=4,
        RATE_LIMIT_ENABLED=False,
        LOG_LEVEL="WARNING",
    )


@pytest_asyncio.fixture(scope="function")
async def app(settings):
    """Application with its tables created directly from the models."""
    application = create_app(settings)
    engine = application.state.context.engine

    # Tests use direct creation for speed; production uses Alembic migrations
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield application

    await engine.dispose()


@pytest.fixture
def context(app):
    return app.state.context


@pytest_asyncio.fixture(scope="function")
async def client(app):
    """HTTP client talking to the app in-process; keeps cookies between requests."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
        timeout=30.0,
    ) as ac:
        yield ac


@pytest.fixture
def sample_user():
    """Sample signup data for testing."""
    return {
        "name": "Alice",
        "email": "alice@example.com",
        "password": "pa55word!",
    }


@pytest.fixture
def fetch_csrf(client):
    """Return a coroutine that loads ``path`` and pulls the CSRF token out of the page."""
    async def _fetch(path: str = "/user/login") -> str:
        response = await client.get(path)
        match = CSRF_RX.search(response.text)
        assert match, f"no csrf token on {path}"
        return match.group(1)
    return _fetch


@pytest.fixture
def login(client, fetch_csrf, sample_user):
    """Return a coroutine that signs up ``sample_user`` and logs them in."""
    async def _login() -> None:
        token = await fetch_csrf("/user/signup")
        response = await client.post("/user/signup", data={**sample_user, "csrf_token": token})
        assert response.status_code == 303

        token = await fetch_csrf("/user/login")
        response = await client.post("/user/login", data={
            "email": sample_user["email"],
            "password": sample_user["password"],
            "csrf_token": token,
        })
        assert response.status_code == 303
    return _login
