"""Operation log: the immutable audit trail of fulfillment operations.

``order_id`` is stored as a plain UUID (not a foreign key) and the voucher
number is snapshotted, so entries outlive the deletion of their order.
"""

from __future__ import annotations

from django.conf import settings
from django.core.serializers.json import DjangoJSONEncoder
from django.db import models

from modules.core.models import BaseModel
from modules.orders.constants import OperationType


class OperationLog(BaseModel):
    user: models.ForeignKey = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="operation_logs",
    )
    order_id: models.UUIDField = models.UUIDField(db_index=True)
    voucher_number: models.CharField = models.CharField(
        max_length=64, blank=True, default=""
    )
    action_type: models.CharField = models.CharField(
        max_length=20, choices=OperationType.choices
    )
    details: models.JSONField = models.JSONField(
        default=dict, blank=True, encoder=DjangoJSONEncoder
    )

    class Meta:
        db_table = "operation_logs"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["action_type"], name="oplog_action_type_idx"),
            models.Index(fields=["-created_at"], name="oplog_created_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.action_type} on {self.voucher_number or self.order_id}"
