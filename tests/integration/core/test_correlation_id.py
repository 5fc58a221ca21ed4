import logging
import uuid

import pytest

pytestmark = pytest.mark.integration


class TestCorrelationIdMiddleware:
    def test_returns_provided_request_id(self, client):
        custom_id = "my-custom-request-id-123"
        response = client.get("/health", HTTP_X_REQUEST_ID=custom_id)
        assert response["X-Request-ID"] == custom_id

    def test_generates_uuid_when_no_request_id(self, client):
        response = client.get("/health")
        request_id = response["X-Request-ID"]
        parsed = uuid.UUID(request_id, version=4)
        assert str(parsed) == request_id

    def test_correlation_id_in_logs(self, client, caplog):
        custom_id = "log-test-correlation-456"
        with caplog.at_level(logging.INFO):
            client.get("/health", HTTP_X_REQUEST_ID=custom_id)
        found = any(custom_id in record.getMessage() for record in caplog.records)
        assert found, (
            f"correlation_id '{custom_id}' not found in log records: "
            f"{[r.getMessage() for r in caplog.records]}"
        )

    def test_api_fixture_header_is_echoed(self, api_client_with_correlation):
        client, cid = api_client_with_correlation
        response = client.get("/api/v1/orders/")
        assert response["X-Request-ID"] == cid

    def test_transition_logs_carry_correlation_id(
        self, client_for, place_order, wholesaler, caplog
    ):
        order = place_order()
        client = client_for(wholesaler)
        with caplog.at_level(logging.INFO):
            client.post(
                f"/api/v1/orders/{order.id}/transitions/",
                {"target_status": "accepted", "expected_version": 0},
                format="json",
                HTTP_X_REQUEST_ID="transition-cid-789",
            )
        messages = [r.getMessage() for r in caplog.records]
        assert any(
            "order.transition_applied" in m and "transition-cid-789" in m for m in messages
        ), messages

    @pytest.mark.parametrize("bad_id", ["x" * 200, "line\nbreak"])
    def test_unusable_request_id_is_replaced(self, client, bad_id):
        response = client.get("/health", HTTP_X_REQUEST_ID=bad_id)
        request_id = response["X-Request-ID"]
        assert request_id != bad_id
        assert str(uuid.UUID(request_id, version=4)) == request_id
