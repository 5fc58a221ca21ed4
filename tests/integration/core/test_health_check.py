from unittest.mock import patch

import pytest

pytestmark = pytest.mark.integration


class TestHealthCheck:
    def test_health_check_returns_200(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert "timestamp" in data
        assert "services" in data

    def test_health_check_reports_database_status(self, client):
        data = client.get("/health").json()
        assert data["services"]["database"]["status"] == "up"
        assert "response_time_ms" in data["services"]["database"]

    def test_health_check_reports_cache_status(self, client):
        data = client.get("/health").json()
        assert data["services"]["cache"]["status"] == "up"
        assert "response_time_ms" in data["services"]["cache"]

    def test_health_check_reports_outbox_backlog(self, client, place_order):
        place_order()

        data = client.get("/health").json()

        assert data["services"]["outbox"]["pending_events"] == 2

    def test_cache_failure_is_unhealthy(self, client):
        with patch("modules.core.views.cache") as cache:
            cache.get.return_value = None
            response = client.get("/health")

        assert response.status_code == 503
        data = response.json()
        assert data["status"] == "unhealthy"
        assert data["services"]["cache"] == {"status": "down"}

    def test_outbox_failure_does_not_fail_the_check(self, client):
        with patch(
            "modules.core.views.OutboxEvent.objects.due",
            side_effect=RuntimeError("outbox table missing"),
        ):
            response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["services"]["outbox"] == {"status": "down"}
