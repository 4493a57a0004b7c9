"""Integration tests for POST /api/v1/orders/ (order import)."""

from __future__ import annotations

import pytest

from modules.orders.models import Order

pytestmark = pytest.mark.integration

URL = "/api/v1/orders/"


def _payload(**overrides):
    payload = {
        "voucher_number": "VCH-1001",
        "customer_name": "ACME Ltd",
        "items": [
            {"product_code": "7891000100103", "product_name": "Monitor", "quantity": 2},
            {"product_code": "7891000100110", "product_name": "Keyboard", "quantity": 1},
        ],
    }
    payload.update(overrides)
    return payload


class TestImportOrderAPI:
    def test_admin_imports_order(self, client_for, admin):
        response = client_for(admin).post(URL, _payload(), format="json")

        assert response.status_code == 201
        data = response.json()
        assert data["status"] == "pending"
        assert data["voucher_number"] == "VCH-1001"
        assert len(data["items"]) == 2
        assert all(i["picked_quantity"] == 0 for i in data["items"])
        assert data["status_history"][0]["new_status"] == "pending"

    def test_picker_cannot_import(self, client_for, picker):
        response = client_for(picker).post(URL, _payload(), format="json")

        assert response.status_code == 403
        assert response.json()["errors"][0]["code"] == "role_not_allowed"
        assert not Order.objects.exists()

    def test_duplicate_voucher_conflict(self, client_for, admin):
        client = client_for(admin)
        client.post(URL, _payload(), format="json")
        response = client.post(URL, _payload(), format="json")

        assert response.status_code == 409
        assert response.json()["errors"][0]["code"] == "duplicate_voucher"

    def test_duplicate_product_codes_rejected(self, client_for, admin):
        items = [
            {"product_code": "A", "quantity": 1},
            {"product_code": "A", "quantity": 2},
        ]
        response = client_for(admin).post(URL, _payload(items=items), format="json")

        assert response.status_code == 400
        assert response.json()["type"] == "validation_error"

    def test_negative_quantity_rejected(self, client_for, admin):
        items = [{"product_code": "A", "quantity": -1}]
        response = client_for(admin).post(URL, _payload(items=items), format="json")

        assert response.status_code == 400
        assert response.json()["errors"][0]["attr"] == "items.0.quantity"

    def test_empty_items_rejected(self, client_for, admin):
        response = client_for(admin).post(URL, _payload(items=[]), format="json")
        assert response.status_code == 400

    def test_unauthenticated(self, api_client):
        response = api_client.post(URL, _payload(), format="json")
        assert response.status_code == 401
