"""Read-only API over the operation log (administrators only)."""

from __future__ import annotations

from django_filters.rest_framework import DjangoFilterBackend
from rest_framework.filters import OrderingFilter
from rest_framework.mixins import ListModelMixin
from rest_framework.permissions import IsAuthenticated
from rest_framework.viewsets import GenericViewSet

from modules.audit.filters import OperationLogFilter
from modules.audit.models import OperationLog
from modules.audit.serializers import OperationLogSerializer
from modules.core.pagination import StandardResultsSetPagination
from modules.core.permissions import IsFulfillmentAdmin


class OperationLogViewSet(ListModelMixin, GenericViewSet):
    queryset = OperationLog.objects.select_related("user")
    serializer_class = OperationLogSerializer
    permission_classes = [IsAuthenticated, IsFulfillmentAdmin]
    pagination_class = StandardResultsSetPagination
    filterset_class = OperationLogFilter
    filter_backends = [DjangoFilterBackend, OrderingFilter]
    ordering_fields = ["created_at", "action_type"]
    ordering = ["-created_at"]
