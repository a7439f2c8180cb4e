"""Health endpoint tests."""

import pytest
from sqlalchemy.exc import OperationalError

from marketplace.db.engine import get_db


@pytest.mark.asyncio
async def test_health(client):
    r = await client.get("/health")
    assert r.status_code == 200
    data = r.json()
    assert data["status"] == "healthy"
    assert data["environment"] == "test"
    assert data["version"] == "1.0.0"
    assert data["timestamp"]


@pytest.mark.asyncio
async def test_health_reports_database_failure(client, app):
    class BrokenSession:
        async def execute(self, *args, **kwargs):
            raise OperationalError("SELECT 1", {}, Exception("connection refused"))

    async def broken_db():
        yield BrokenSession()

    app.dependency_overrides[get_db] = broken_db

    r = await client.get("/health")
    assert r.status_code == 503
    assert r.json()["status"] == "unhealthy"
    data = r.json()
    assert data["environment"] == "test"
    assert data["version"] == "1.0.0"
    assert data["error"] == "Database connection failed"
