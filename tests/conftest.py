import pytest

from django.contrib.auth import get_user_model
from django.contrib.auth.models import Group
from rest_framework.test import APIClient

from modules.audit.services import audit_trail
from modules.orders.constants import TaskPhase
from modules.orders.dtos import ImportOrderDTO, ImportOrderItemDTO
from modules.orders.notifier import OrderEventNotifier
from modules.orders.repositories.django_repository import OrderDjangoRepository
from modules.orders.services import OrderFulfillmentService

User = get_user_model()


@pytest.fixture(autouse=True)
def _use_db(db):
    """Automatically use the test database for all tests."""


@pytest.fixture()
def api_client():
    """DRF APIClient for testing API endpoints."""
    return APIClient()


@pytest.fixture()
def api_client_with_correlation(api_client):
    """APIClient pre-configured with a known correlation ID header."""
    cid = "test-correlation-id-fixture"
    api_client.defaults["HTTP_X_REQUEST_ID"] = cid
    return api_client, cid


# ---------------------------------------------------------------------------
# Operators
# ---------------------------------------------------------------------------


@pytest.fixture()
def make_user():
    """Create a user, optionally in the group named after *role*."""

    def _make(username, role=None, **extra):
        user = User.objects.create_user(
            username=username, password="testpass123", **extra
        )
        if role:
            group, _ = Group.objects.get_or_create(name=role)
            user.groups.add(group)
        return user

    return _make


@pytest.fixture()
def admin(make_user):
    return make_user("admin-op", role="admin")


@pytest.fixture()
def picker(make_user):
    return make_user("picker-op", role="picker")


@pytest.fixture()
def packer(make_user):
    return make_user("packer-op", role="packer")


@pytest.fixture()
def client_for():
    """APIClient force-authenticated as the given user."""

    def _client(user):
        client = APIClient()
        client.force_authenticate(user=user)
        return client

    return _client


# ---------------------------------------------------------------------------
# Orders
# ---------------------------------------------------------------------------


@pytest.fixture()
def service():
    return OrderFulfillmentService(
        order_repository=OrderDjangoRepository(),
        audit_trail=audit_trail,
        notifier=OrderEventNotifier(),
    )


@pytest.fixture()
def make_order(service, admin):
    """Import an order; *items* is a sequence of ``(product_code, quantity)``."""
    counter = {"n": 0}

    def _make(items=(("SKU-A", 3),), voucher_number=None, **extra):
        counter["n"] += 1
        dto = ImportOrderDTO(
            voucher_number=voucher_number or f"V-{counter['n']:04d}",
            customer_name="Test Customer",
            items=[
                ImportOrderItemDTO(
                    product_code=code, product_name=f"Product {code}", quantity=qty
                )
                for code, qty in items
            ],
            **extra,
        )
        return service.import_order(dto, actor=admin)

    return _make


@pytest.fixture()
def picking_order(make_order, service, picker):
    order = make_order()
    return service.claim_order(order.id, picker, "picker", TaskPhase.PICK)


@pytest.fixture()
def packing_order(picking_order, service, picker, packer):
    for _ in range(3):
        service.adjust_item_quantity(
            picking_order.id, "SKU-A", TaskPhase.PICK, 1, picker, "picker"
        )
    return service.claim_order(picking_order.id, packer, "packer", TaskPhase.PACK)
