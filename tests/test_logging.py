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

    def test_service_logs_carry_correlation_id(
        self, api_client_with_correlation, admin, picking_order, caplog
    ):
        client, cid = api_client_with_correlation
        client.force_authenticate(user=admin)
        with caplog.at_level(logging.INFO):
            client.post(f"/api/v1/orders/{picking_order.id}/void/", {}, format="json")

        voided = [r.getMessage() for r in caplog.records if "order.voided" in r.getMessage()]
        assert voided
        assert cid in voided[0]


class TestStructuredEvents:
    def test_item_adjustment_is_logged_with_context(self, service, picking_order, picker, caplog):
        with caplog.at_level(logging.INFO):
            service.adjust_item_quantity(picking_order.id, "SKU-A", "pick", 1, picker, "picker")

        messages = [r.getMessage() for r in caplog.records]
        adjusted = [m for m in messages if "order.item_adjusted" in m]
        assert adjusted
        assert str(picking_order.id) in adjusted[0]
        assert "SKU-A" in adjusted[0]
