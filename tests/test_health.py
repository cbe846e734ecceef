"""Health endpoint tests."""

from unittest.mock import MagicMock


async def test_health_returns_ok(client):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok", "cache": "down"}


async def test_health_reports_cache_up(app, client):
    app.state.cache = MagicMock(is_available=MagicMock(return_value=True))
    response = await client.get("/health")
    assert response.json()["cache"] == "up"
