from unittest.mock import AsyncMock, patch

from httpx import AsyncClient

from common.core.config import settings


class TestHealthEndpoints:
    """Tests for health check endpoints."""

    async def test_health_check(self, anonymous_client: AsyncClient):
        response = await anonymous_client.get("/api/v1/health/")
        assert response.status_code == 200
        assert response.json() == {"status": "healthy", "service": settings.app_name}

    async def test_probe_endpoint(self, anonymous_client: AsyncClient):
        response = await anonymous_client.get("/healthz")
        assert response.status_code == 200
        assert response.json() == {"status": "ok"}

    async def test_db_health_check(self, anonymous_client: AsyncClient):
        response = await anonymous_client.get("/api/v1/health/db")
        assert response.status_code == 200
        assert response.json() == {"status": "healthy", "database": "connected"}

    async def test_billing_health_check(self, anonymous_client: AsyncClient):
        provider = AsyncMock()
        provider.health_check = AsyncMock(return_value=True)

        with patch(
            "api.v1.routes.health.get_payment_provider", return_value=provider
        ):
            response = await anonymous_client.get("/api/v1/health/billing")

        assert response.json() == {"status": "healthy", "billing": "connected"}

    async def test_billing_unreachable(self, anonymous_client: AsyncClient):
        provider = AsyncMock()
        provider.health_check = AsyncMock(return_value=False)

        with patch(
            "api.v1.routes.health.get_payment_provider", return_value=provider
        ):
            response = await anonymous_client.get("/api/v1/health/billing")

        assert response.json() == {"status": "unhealthy", "billing": "unreachable"}

    async def test_billing_not_configured(
        self, anonymous_client: AsyncClient, monkeypatch
    ):
        monkeypatch.setattr(settings, "stripe_secret_key", "")

        response = await anonymous_client.get("/api/v1/health/billing")

        assert response.json() == {"status": "unhealthy", "billing": "not_configured"}
