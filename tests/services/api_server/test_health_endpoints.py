"""Tests for the health, index and metrics endpoints."""


class TestHealthEndpoints:
    def test_health_check(self, client):
        response = client.get("/api/health")
        assert response.status_code == 200

        body = response.json()
        assert body["success"] is True
        data = body["data"]
        assert data["status"] == "healthy"
        assert data["checks"]["database"] == "healthy"
        assert data["environment"] == "development"
        assert data["uptime_seconds"] >= 0

    def test_api_index_lists_endpoints(self, client):
        body = client.get("/api").json()
        assert body["data"]["endpoints"]["segmentation"] == "/api/segmentation"

    def test_prometheus_metrics(self, client):
        response = client.get("/metrics")
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/plain")
        assert "system_memory_bytes" in response.text

    def test_unknown_route_uses_error_envelope(self, client):
        response = client.get("/api/nope")
        assert response.status_code == 404
        assert response.json()["success"] is False
