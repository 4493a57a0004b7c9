"""Integration tests for the state machine endpoints."""

from __future__ import annotations

from unittest import mock
from uuid import uuid4

import pytest
from django.db import OperationalError

from modules.audit.models import OperationLog
from modules.orders.constants import OrderStatus
from modules.orders.models import Order, OrderItem
from modules.orders.repositories.django_repository import OrderDjangoRepository

pytestmark = pytest.mark.integration


def _url(order, action):
    return f"/api/v1/orders/{order.id}/{action}/"


class TestClaimAPI:
    def test_picker_claims(self, client_for, picker, make_order):
        order = make_order()
        response = client_for(picker).post(_url(order, "claim"), {"task_type": "pick"}, format="json")

        assert response.status_code == 200
        assert response.json()["status"] == "picking"

    def test_lost_claim_is_conflict(self, client_for, make_user, picking_order):
        other = make_user("picker-2", role="picker")
        response = client_for(other).post(
            _url(picking_order, "claim"), {"task_type": "pick"}, format="json"
        )
        assert response.status_code == 409
        assert response.json()["errors"][0]["code"] == "invalid_claim"

    def test_unknown_task_type_is_validation_error(self, client_for, picker, make_order):
        response = client_for(picker).post(
            _url(make_order(), "claim"), {"task_type": "ship"}, format="json"
        )
        assert response.status_code == 400
        assert response.json()["errors"][0]["attr"] == "task_type"


class TestBatchClaimAPI:
    def test_reports_claimed_and_failed(self, client_for, picker, make_order, picking_order):
        free = make_order()
        missing = uuid4()
        response = client_for(picker).post(
            "/api/v1/orders/batch-claim/",
            {"order_ids": [str(free.id), str(picking_order.id), str(missing)], "task_type": "pick"},
            format="json",
        )

        assert response.status_code == 200
        data = response.json()
        assert data["claimed"] == [str(free.id)]
        assert {f["order_id"] for f in data["failed"]} == {str(picking_order.id), str(missing)}

    def test_rejects_batches_over_the_limit(self, client_for, picker, settings):
        settings.FULFILLMENT = {**settings.FULFILLMENT, "BATCH_CLAIM_LIMIT": 2}
        response = client_for(picker).post(
            "/api/v1/orders/batch-claim/",
            {"order_ids": [str(uuid4()) for _ in range(3)], "task_type": "pick"},
            format="json",
        )

        assert response.status_code == 400
        assert response.json()["errors"][0]["attr"] == "order_ids"


class TestAdjustItemAPI:
    def test_scan_increments_counter(self, client_for, picker, picking_order):
        response = client_for(picker).post(
            _url(picking_order, "adjust-item"),
            {"product_code": "SKU-A", "phase": "pick", "delta": 1},
            format="json",
        )

        assert response.status_code == 200
        assert response.json()["items"][0]["picked_quantity"] == 1

    def test_last_scan_reports_new_status(self, client_for, picker, make_order, service):
        order = make_order(items=(("SKU-A", 1),))
        service.claim_order(order.id, picker, "picker", "pick")

        response = client_for(picker).post(
            _url(order, "adjust-item"),
            {"product_code": "SKU-A", "phase": "pick"},
            format="json",
        )

        assert response.json()["status"] == "picked"
        assert response.json()["items"][0]["is_picked"] is True

    def test_unknown_code_is_not_found(self, client_for, picker, picking_order):
        response = client_for(picker).post(
            _url(picking_order, "adjust-item"),
            {"product_code": "WRONG", "phase": "pick", "delta": 1},
            format="json",
        )
        assert response.status_code == 404
        assert response.json()["errors"][0]["code"] == "item_not_found"
        assert OperationLog.objects.filter(action_type="scan_error").exists()

    def test_out_of_bounds_is_conflict(self, client_for, picker, picking_order):
        response = client_for(picker).post(
            _url(picking_order, "adjust-item"),
            {"product_code": "SKU-A", "phase": "pick", "delta": -1},
            format="json",
        )
        assert response.status_code == 409
        assert response.json()["errors"][0]["code"] == "quantity_out_of_bounds"

    def test_overpick_on_picked_order_is_out_of_bounds(
        self, client_for, picker, make_order, service
    ):
        order = make_order(items=(("SKU-A", 1),))
        service.claim_order(order.id, picker, "picker", "pick")
        service.adjust_item_quantity(order.id, "SKU-A", "pick", 1, picker, "picker")

        response = client_for(picker).post(
            _url(order, "adjust-item"),
            {"product_code": "SKU-A", "phase": "pick", "delta": 1},
            format="json",
        )

        assert response.status_code == 409
        assert response.json()["errors"][0]["code"] == "quantity_out_of_bounds"

    def test_scan_by_other_picker_is_forbidden(
        self, client_for, make_user, picking_order
    ):
        other = make_user("picker-other", role="picker")

        response = client_for(other).post(
            _url(picking_order, "adjust-item"),
            {"product_code": "SKU-A", "phase": "pick", "delta": 1},
            format="json",
        )

        assert response.status_code == 403
        assert response.json()["errors"][0]["code"] == "not_task_assignee"
        assert OrderItem.objects.get(order_id=picking_order.id).picked_quantity == 0

    def test_wrong_phase_is_conflict(self, client_for, picker, picking_order):
        response = client_for(picker).post(
            _url(picking_order, "adjust-item"),
            {"product_code": "SKU-A", "phase": "pack", "delta": 1},
            format="json",
        )
        assert response.status_code == 409
        assert response.json()["errors"][0]["code"] == "invalid_phase_for_status"

    @pytest.mark.parametrize("delta", [0, 2])
    def test_non_unit_delta_rejected(self, client_for, picker, picking_order, delta):
        response = client_for(picker).post(
            _url(picking_order, "adjust-item"),
            {"product_code": "SKU-A", "phase": "pick", "delta": delta},
            format="json",
        )
        assert response.status_code == 400

    def test_store_unavailable_is_503_and_retryable(self, client_for, picker, picking_order):
        with mock.patch.object(
            OrderDjangoRepository,
            "get_item_for_update",
            side_effect=OperationalError("database is locked"),
        ):
            response = client_for(picker).post(
                _url(picking_order, "adjust-item"),
                {"product_code": "SKU-A", "phase": "pick", "delta": 1},
                format="json",
            )

        assert response.status_code == 503
        assert response.json()["type"] == "server_error"
        assert response.json()["retryable"] is True
        assert response["Retry-After"] == "1"
        assert OrderItem.objects.get(order_id=picking_order.id).picked_quantity == 0


class TestVoidAPI:
    def test_admin_voids(self, client_for, admin, picking_order):
        response = client_for(admin).post(
            _url(picking_order, "void"), {"reason": "customer cancelled"}, format="json"
        )
        assert response.status_code == 200
        assert response.json()["status"] == "voided"

    def test_picker_forbidden(self, client_for, picker, picking_order):
        response = client_for(picker).post(_url(picking_order, "void"), {}, format="json")
        assert response.status_code == 403
        assert Order.objects.get(id=picking_order.id).status == OrderStatus.PICKING

    def test_mutation_after_void_is_conflict(self, client_for, admin, picker, picking_order):
        client_for(admin).post(_url(picking_order, "void"), {}, format="json")
        response = client_for(picker).post(
            _url(picking_order, "adjust-item"),
            {"product_code": "SKU-A", "phase": "pick", "delta": 1},
            format="json",
        )
        assert response.status_code == 409
        assert response.json()["errors"][0]["code"] == "order_terminal"


class TestUrgentAndDeleteAPI:
    def test_admin_sets_urgent(self, client_for, admin, make_order):
        order = make_order()
        response = client_for(admin).patch(_url(order, "urgent"), {"is_urgent": True}, format="json")
        assert response.status_code == 200
        assert response.json()["is_urgent"] is True

    def test_packer_cannot_set_urgent(self, client_for, packer, make_order):
        response = client_for(packer).patch(
            _url(make_order(), "urgent"), {"is_urgent": True}, format="json"
        )
        assert response.status_code == 403

    def test_admin_deletes(self, client_for, admin, make_order):
        order = make_order()
        response = client_for(admin).delete(f"/api/v1/orders/{order.id}/")
        assert response.status_code == 204
        assert not Order.objects.filter(id=order.id).exists()

    def test_delete_unknown_is_not_found(self, client_for, admin):
        response = client_for(admin).delete(f"/api/v1/orders/{uuid4()}/")
        assert response.status_code == 404
