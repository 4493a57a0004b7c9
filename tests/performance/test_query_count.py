"""Performance regression tests: constant query count (N+1 prevention).

Verifies that list, retrieve, task board and scan endpoints execute a
bounded number of SQL queries regardless of the number of orders or items,
proving that ``select_related`` / ``prefetch_related`` are applied and
that a scan touches only the scanned item row.
"""

from __future__ import annotations

import pytest
from django.db import connection
from django.test.utils import CaptureQueriesContext

from modules.orders.constants import TaskPhase

pytestmark = pytest.mark.performance


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def admin_client(client_for, admin):
    return client_for(admin)


@pytest.fixture()
def orders_with_items(make_order):
    """Create multiple orders each with multiple items."""
    return [
        make_order(items=tuple((f"PERF-{i}-{j}", 2) for j in range(3)))
        for i in range(10)
    ]


def _count_queries(fn):
    with CaptureQueriesContext(connection) as ctx:
        fn()
    return len(ctx.captured_queries)


# ---------------------------------------------------------------------------
# Tests
# ---------------------------------------------------------------------------


class TestOrderListQueryCount:
    def test_list_query_count_is_bounded(
        self, admin_client, orders_with_items, django_assert_max_num_queries
    ):
        """GET /api/v1/orders/

        Expected queries: role lookup, COUNT for pagination, SELECT orders
        (picker/packer joined), prefetch of items.
        """
        with django_assert_max_num_queries(5):
            response = admin_client.get("/api/v1/orders/")

        assert response.status_code == 200
        assert response.data["count"] == 10

    def test_task_board_query_count_is_bounded(
        self, admin_client, orders_with_items, django_assert_max_num_queries
    ):
        with django_assert_max_num_queries(4):
            response = admin_client.get("/api/v1/tasks/")

        assert response.data["count"] == 10


class TestOrderRetrieveQueryCount:
    def test_retrieve_does_not_grow_with_items(self, admin_client, make_order):
        small = make_order(items=(("ONE", 1),))
        large = make_order(items=tuple((f"MANY-{j}", 1) for j in range(25)))

        small_count = _count_queries(lambda: admin_client.get(f"/api/v1/orders/{small.id}/"))
        large_count = _count_queries(lambda: admin_client.get(f"/api/v1/orders/{large.id}/"))

        assert small_count == large_count


class TestScanQueryCount:
    def test_scan_does_not_grow_with_items(self, service, make_order, picker):
        small = make_order(items=(("ONE", 5),))
        large = make_order(items=(("ONE", 5),) + tuple((f"MANY-{j}", 1) for j in range(25)))
        for order in (small, large):
            service.claim_order(order.id, picker, "picker", TaskPhase.PICK)

        def scan(order):
            return lambda: service.adjust_item_quantity(
                order.id, "ONE", TaskPhase.PICK, 1, picker, "picker"
            )

        assert _count_queries(scan(small)) == _count_queries(scan(large))
