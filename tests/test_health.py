"""Health, root and error-envelope tests."""

import pytest


@pytest.mark.asyncio
async def test_root(test_client):
    resp = await test_client.get("/")
    assert resp.status_code == 200
    assert "message" in resp.json()


@pytest.mark.asyncio
async def test_health(test_client):
    resp = await test_client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "healthy"}


@pytest.mark.asyncio
async def test_unknown_route_uses_error_envelope(test_client):
    resp = await test_client.get("/api/v1/does-not-exist")
    assert resp.status_code == 404
    body = resp.json()
    assert body["success"] is False
    assert body["error"]["code"] == "NOT_FOUND"
    assert body["error"]["details"] == []
