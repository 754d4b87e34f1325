"""Integration-test fixtures.

Requires a migrated PostgreSQL (alembic upgrade head). When the database is
unreachable every integration test is skipped.

All integration tests share a single event-loop so that the module-level
SQLAlchemy async engine pool (created at import time) remains valid across
the entire test session.
"""

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from config.settings import settings
from src.main import app
from src.sw_common.database import engine

SERVICE_TOKEN = "integration-token"


@pytest_asyncio.fixture(loop_scope="session", scope="session")
async def client() -> AsyncClient:  # type: ignore[override]
    """Session-scoped async HTTP client: keeps the engine pool alive."""
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1 FROM wagers LIMIT 1"))
    except (SQLAlchemyError, OSError) as e:
        pytest.skip(f"PostgreSQL not available: {e}")

    settings.SERVICE_TOKEN = SERVICE_TOKEN
    transport = ASGITransport(app=app)
    async with AsyncClient(
        transport=transport,
        base_url="http://test",
        headers={"X-Service-Token": SERVICE_TOKEN},
    ) as ac:
        yield ac
    await engine.dispose()
