"""Tests for health endpoints."""

import pytest
from httpx import AsyncClient

from app.api.v1.endpoints import health


def stub_checks(monkeypatch, database: bool, redis: bool) -> None:
    async def check_database():
        return database

    async def check_redis():
        return redis

    monkeypatch.setattr(health, "check_database_connection", check_database)
    monkeypatch.setattr(health, "check_redis_connection", check_redis)


@pytest.mark.asyncio
async def test_health_check(client: AsyncClient) -> None:
    """Test health check endpoint."""
    response = await client.get("/api/v1/health")

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["data"]["status"] == "healthy"
    assert "version" in body["data"]


@pytest.mark.asyncio
async def test_ping(client: AsyncClient) -> None:
    response = await client.get("/api/v1/ping")

    assert response.status_code == 200
    assert response.json() == {"message": "pong"}


@pytest.mark.asyncio
async def test_detailed_health_all_up(client: AsyncClient, monkeypatch) -> None:
    stub_checks(monkeypatch, database=True, redis=True)

    response = await client.get("/api/v1/health/detailed")

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["status"] == "healthy"
    assert data["database"] == "healthy"
    assert data["redis"] == "healthy"


@pytest.mark.asyncio
async def test_detailed_health_redis_down_is_degraded(client: AsyncClient, monkeypatch) -> None:
    stub_checks(monkeypatch, database=True, redis=False)

    response = await client.get("/api/v1/health/detailed")

    assert response.status_code == 200
    assert response.json()["data"]["status"] == "degraded"


@pytest.mark.asyncio
async def test_detailed_health_database_down(client: AsyncClient, monkeypatch) -> None:
    stub_checks(monkeypatch, database=False, redis=True)

    response = await client.get("/api/v1/health/detailed")

    assert response.status_code == 503
    body = response.json()
    assert body["success"] is False
    assert body["statusCode"] == 503
    assert body["data"]["database"] == "unhealthy"


@pytest.mark.asyncio
async def test_request_id_is_echoed(client: AsyncClient) -> None:
    response = await client.get("/api/v1/ping", headers={"X-Request-ID": "req-123"})

    assert response.headers["X-Request-ID"] == "req-123"
    assert "X-Process-Time" in response.headers
