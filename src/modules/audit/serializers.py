from rest_framework import serializers

from modules.audit.models import OperationLog


class OperationLogSerializer(serializers.ModelSerializer):
    username = serializers.CharField(source="user.username", read_only=True, default=None)

    class Meta:
        model = OperationLog
        fields = [
            "id",
            "user_id",
            "username",
            "order_id",
            "voucher_number",
            "action_type",
            "details",
            "created_at",
        ]
        read_only_fields = fields
