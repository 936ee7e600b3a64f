import pytest


@pytest.mark.asyncio
async def test_health_ok(client):
    resp = await client.get("/health")
    assert resp.status_code == 200
    data = resp.json()
    assert set(data.keys()) == {"status", "timestamp", "version", "uptime", "checks"}
    assert data["status"] == "healthy"
    assert data["checks"]["database"] == {"status": "healthy"}


@pytest.mark.asyncio
async def test_root_lists_service(client):
    data = (await client.get("/")).json()
    assert data["name"] == "Service Desk API"
    assert data["health_url"] == "/health"
