"""Unit tests for health endpoints."""

import pytest

from playzone.core.observability import SERVICE_NAME, SERVICE_VERSION


@pytest.mark.asyncio
async def test_health_check(test_client):
    """Test the health check endpoint."""
    response = await test_client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert data["service"] == SERVICE_NAME
    assert data["version"] == SERVICE_VERSION
    assert data["environment"] == "development"


@pytest.mark.asyncio
async def test_ready_check(test_client):
    """Test the readiness check endpoint."""
    response = await test_client.get("/ready")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ready"
    assert data["checks"] == {"database": "ok"}


@pytest.mark.asyncio
async def test_ready_check_reports_database_outage(test_client, monkeypatch):
    """Test that readiness fails when the database does not answer."""
    import playzone.main

    async def broken_check():
        raise ConnectionRefusedError("database is down")

    monkeypatch.setattr(playzone.main, "check_db", broken_check)

    response = await test_client.get("/ready")
    assert response.status_code == 503
    assert response.json()["checks"] == {"database": "unavailable"}


@pytest.mark.asyncio
async def test_info_endpoint(test_client):
    """Test the service info endpoint."""
    response = await test_client.get("/info")
    assert response.status_code == 200
    data = response.json()
    assert data["service"] == SERVICE_NAME
    assert data["features"]["otp_authentication"] is True
    assert data["features"]["whatsapp_notifications"] is False


@pytest.mark.asyncio
async def test_health_ping_rpc(test_client):
    """Test the RPC-style health ping endpoint."""
    response = await test_client.post("/v1/health/ping", json={})
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert data["version"] == SERVICE_VERSION
    assert "timestamp" in data
