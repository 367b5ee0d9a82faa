"""Unit tests for the health and metrics endpoints."""

from fastapi import status


class TestHealth:
    async def test_healthy(self, client):
        response = await client.get("/health")

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["status"] == "healthy"
        assert data["service"] == "storage-gateway"
        assert data["checks"] == {"storage": True}

    async def test_degraded_when_storage_down(self, client, gateway):
        await gateway.shutdown()

        response = await client.get("/health")

        assert response.status_code == status.HTTP_503_SERVICE_UNAVAILABLE
        assert response.json()["status"] == "degraded"

    async def test_liveness(self, client):
        response = await client.get("/health/live")

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["alive"] is True


class TestMetrics:
    async def test_exposes_http_and_storage_metrics(self, client, fake_backend):
        fake_backend.seed("docs", {"k": b"data"})
        await client.get("/api/v1/s3/file/docs/k")

        response = await client.get("/metrics")

        assert response.status_code == status.HTTP_200_OK
        body = response.text
        assert "http_requests_total" in body
        assert "storage_operations_total" in body
