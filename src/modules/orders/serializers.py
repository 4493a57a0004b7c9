"""Request and response shapes of the fulfillment API.

Input serializers only validate shape; the views turn the validated data
into pydantic DTOs or plain arguments for ``OrderFulfillmentService``,
which owns every state rule.
"""

from __future__ import annotations

from django.conf import settings
from rest_framework import serializers

from modules.orders.constants import (
    PRODUCT_CODE_MAX_LENGTH,
    VOUCHER_NUMBER_MAX_LENGTH,
    TaskPhase,
)
from modules.orders.models import Order, OrderItem, OrderStatusHistory

# ---------------------------------------------------------------------------
# Input Serializers
# ---------------------------------------------------------------------------


class ImportOrderItemSerializer(serializers.Serializer):
    product_code = serializers.CharField(max_length=PRODUCT_CODE_MAX_LENGTH)
    product_name = serializers.CharField(
        max_length=255, required=False, default="", allow_blank=True
    )
    quantity = serializers.IntegerField(min_value=0)


class ImportOrderSerializer(serializers.Serializer):
    """Validates an order handed over by the import collaborator."""

    voucher_number = serializers.CharField(max_length=VOUCHER_NUMBER_MAX_LENGTH)
    customer_name = serializers.CharField(
        max_length=255, required=False, default="", allow_blank=True
    )
    items = ImportOrderItemSerializer(many=True, allow_empty=False)
    notes = serializers.CharField(required=False, default="", allow_blank=True)
    is_urgent = serializers.BooleanField(required=False, default=False)

    def validate_items(self, value):
        codes = [item["product_code"] for item in value]
        if len(codes) != len(set(codes)):
            raise serializers.ValidationError(
                "Duplicate product codes are not allowed in the same order."
            )
        return value


class AdjustItemSerializer(serializers.Serializer):
    """One scan or +/- press on an item counter."""

    product_code = serializers.CharField(max_length=PRODUCT_CODE_MAX_LENGTH)
    phase = serializers.ChoiceField(choices=TaskPhase.choices)
    delta = serializers.ChoiceField(choices=[-1, 1], default=1)


class ClaimSerializer(serializers.Serializer):
    task_type = serializers.ChoiceField(choices=TaskPhase.choices)


class BatchClaimSerializer(serializers.Serializer):
    order_ids = serializers.ListField(
        child=serializers.UUIDField(), allow_empty=False
    )
    task_type = serializers.ChoiceField(choices=TaskPhase.choices)

    def validate_order_ids(self, value):
        limit = settings.FULFILLMENT["BATCH_CLAIM_LIMIT"]
        if len(value) > limit:
            raise serializers.ValidationError(
                f"At most {limit} orders can be claimed in one request."
            )
        return value


class VoidSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, default="", allow_blank=True)


class UrgentSerializer(serializers.Serializer):
    is_urgent = serializers.BooleanField()


# ---------------------------------------------------------------------------
# Output Serializers (Read)
# ---------------------------------------------------------------------------


class OrderItemSerializer(serializers.ModelSerializer):
    """Read serializer for order items with their pick/pack progress."""

    is_picked = serializers.BooleanField(read_only=True)
    is_packed = serializers.BooleanField(read_only=True)

    class Meta:
        model = OrderItem
        fields = [
            "id",
            "product_code",
            "product_name",
            "quantity",
            "picked_quantity",
            "packed_quantity",
            "is_picked",
            "is_packed",
        ]
        read_only_fields = fields


class StatusHistorySerializer(serializers.ModelSerializer):
    """Read serializer for order status history records."""

    class Meta:
        model = OrderStatusHistory
        fields = [
            "id",
            "old_status",
            "new_status",
            "user_id",
            "notes",
            "created_at",
        ]
        read_only_fields = fields


class OrderSerializer(serializers.ModelSerializer):
    """Read serializer for orders with nested items and history."""

    items = OrderItemSerializer(many=True, read_only=True)
    status_history = StatusHistorySerializer(many=True, read_only=True)

    class Meta:
        model = Order
        fields = [
            "id",
            "voucher_number",
            "customer_name",
            "status",
            "picker_id",
            "packer_id",
            "is_urgent",
            "notes",
            "created_at",
            "updated_at",
            "completed_at",
            "items",
            "status_history",
        ]
        read_only_fields = fields


class OrderListSerializer(serializers.ModelSerializer):
    """Lightweight serializer for order lists and the task board."""

    item_count = serializers.SerializerMethodField()

    class Meta:
        model = Order
        fields = [
            "id",
            "voucher_number",
            "customer_name",
            "status",
            "picker_id",
            "packer_id",
            "is_urgent",
            "item_count",
            "created_at",
        ]
        read_only_fields = fields

    def get_item_count(self, obj: Order) -> int:
        return len(obj.items.all())
