"""Audit URL configuration."""

from __future__ import annotations

from rest_framework.routers import DefaultRouter

from modules.audit.views import OperationLogViewSet

router = DefaultRouter(trailing_slash=True)
router.register("operation-logs", OperationLogViewSet, basename="operation-log")

urlpatterns = router.urls
