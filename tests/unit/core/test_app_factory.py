"""Tests for application wiring and lifespan."""

import pytest
from httpx import ASGITransport, AsyncClient

from ragcache.core.app_factory import create_app
from ragcache.core.config import settings
from ragcache.core.container import ServiceContainer, get_container


@pytest.mark.asyncio
async def test_lifespan_initializes_and_shuts_down(monkeypatch, fake_provider):
    monkeypatch.setattr(settings, "cache_backend", "memory")
    app = create_app()

    container = ServiceContainer()
    container.set_embedding_provider(fake_provider)
    app.state.container = container

    async with app.router.lifespan_context(app):
        assert get_container() is container
        assert container.is_initialized
        assert container.cache_service.is_running

        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://testserver") as client:
            root = await client.get("/")
            stats = await client.get(f"{settings.api_prefix}/admin/cache/stats")

        assert root.json()["status"] == "operational"
        assert stats.status_code == 200
        assert "X-Process-Time" in stats.headers

    assert container.is_initialized is False
    assert fake_provider.closed
    with pytest.raises(RuntimeError):
        get_container()
