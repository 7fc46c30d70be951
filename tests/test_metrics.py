"""
Tests for Prometheus metrics endpoint.
"""

import pytest
from httpx import ASGITransport, AsyncClient

from snippetbox.main import create_app


@pytest.mark.asyncio
async def test_metrics_endpoint_exists(client: AsyncClient):
    """Test that /metrics endpoint is accessible."""
    response = await client.get("/metrics")

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/plain")


@pytest.mark.asyncio
async def test_metrics_after_request(client: AsyncClient):
    """Test that handled requests are counted per route template."""
    await client.get("/ping")
    await client.get("/snippet/view/42")

    content = (await client.get("/metrics")).text

    assert "# TYPE" in content
    assert 'handler="/ping"' in content
    assert 'handler="/snippet/view/{snippet_id}"' in content


@pytest.mark.asyncio
async def test_metrics_excludes_static(client: AsyncClient):
    await client.get("/static/css/main.css")

    content = (await client.get("/metrics")).text

    assert 'handler="/static' not in content


@pytest.mark.asyncio
async def test_two_apps_in_one_process(settings, tmp_path):
    """Test that separately built apps keep separate metrics and both serve."""
    apps = [
        create_app(settings.model_copy(update={"DB_URL": f"sqlite+aiosqlite:///{tmp_path / name}"}))
        for name in ("one.db", "two.db")
    ]

    for app in apps:
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
            assert (await ac.get("/ping")).status_code == 200
            metrics = await ac.get("/metrics")
            assert metrics.status_code == 200
            assert 'handler="/ping"' in metrics.text
        await app.state.context.engine.dispose()
