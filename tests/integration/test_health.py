from unittest.mock import AsyncMock

import pytest
from httpx import AsyncClient
from sqlalchemy.exc import OperationalError

from ledgersync.db.session import get_db
from ledgersync.main import app


@pytest.mark.asyncio
async def test_health(client: AsyncClient):
    """Test basic health check."""
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}
    assert "X-Request-ID" in response.headers


@pytest.mark.asyncio
async def test_health_ready(client: AsyncClient):
    """Test readiness check with database connection."""
    response = await client.get("/health/ready")
    assert response.status_code == 200
    assert response.json() == {"status": "ready", "database": "connected"}


@pytest.mark.asyncio
async def test_health_ready_database_down(client: AsyncClient):
    """Readiness reports 503 when the database is unreachable."""
    broken = AsyncMock()
    broken.execute.side_effect = OperationalError("SELECT 1", {}, Exception("connection refused"))

    async def override_get_db():
        yield broken

    app.dependency_overrides[get_db] = override_get_db
    response = await client.get("/health/ready")

    assert response.status_code == 503
    assert response.json()["database"] == "disconnected"
