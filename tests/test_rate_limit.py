"""Rate limiting tests.

Tests focus on the whole-API per-client limit:
- Requests beyond the limit get a 429 in the error envelope with rate limit headers
- Test mode never limits
"""

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from genstudio.app import create_app


def build_app(settings, processing_strategy, session_factory, uow_factory, storage, processor):
    app = create_app(settings=settings, processing_strategy=processing_strategy)
    app.state.session_factory = session_factory
    app.state.uow_factory = uow_factory
    app.state.storage = storage
    app.state.processor = processor
    return app


@pytest_asyncio.fixture
async def limited_client(
    settings, processing_strategy, session_factory, uow_factory, storage, processor
):
    settings.app_env = "development"
    settings.rate_limit = "3 per minute"
    app = build_app(settings, processing_strategy, session_factory, uow_factory, storage, processor)
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client


@pytest.mark.asyncio
class TestRateLimit:
    async def test_requests_over_limit_are_rejected(self, limited_client):
        for _ in range(3):
            response = await limited_client.get("/health")
            assert response.status_code == 200

        response = await limited_client.get("/health")

        assert response.status_code == 429
        assert response.json() == {
            "success": False,
            "message": "Too many requests, please try again later.",
            "errorKind": "rate_limited",
        }
        assert response.headers["X-RateLimit-Limit"] == "3"
        assert "Retry-After" in response.headers

    async def test_limit_applies_to_api_routes(self, limited_client):
        for _ in range(3):
            response = await limited_client.get("/api/auth/me")
            assert response.status_code == 401

        response = await limited_client.get("/api/auth/me")

        assert response.status_code == 429
        assert response.json()["errorKind"] == "rate_limited"

    async def test_disabled_by_setting(
        self, settings, processing_strategy, session_factory, uow_factory, storage, processor
    ):
        settings.app_env = "development"
        settings.rate_limit = "1 per minute"
        settings.rate_limit_enabled = False
        app = build_app(
            settings, processing_strategy, session_factory, uow_factory, storage, processor
        )

        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            statuses = [(await client.get("/health")).status_code for _ in range(3)]

        assert statuses == [200, 200, 200]

    async def test_test_mode_never_limits(
        self, settings, processing_strategy, session_factory, uow_factory, storage, processor
    ):
        settings.rate_limit = "1 per minute"
        app = build_app(
            settings, processing_strategy, session_factory, uow_factory, storage, processor
        )

        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            statuses = [(await client.get("/health")).status_code for _ in range(3)]

        assert statuses == [200, 200, 200]
