"""DRF permission classes based on fulfillment roles."""

from __future__ import annotations

from rest_framework.permissions import BasePermission

from modules.core.roles import UserRole, resolve_role


class HasFulfillmentRole(BasePermission):
    """Allow any authenticated user holding a picker, packer or admin role."""

    message = "A fulfillment role (picker, packer or admin) is required."

    def has_permission(self, request, view) -> bool:
        role = resolve_role(request.user)
        request.fulfillment_role = role
        return role is not None


class IsFulfillmentAdmin(BasePermission):
    message = "Only administrators may perform this action."

    def has_permission(self, request, view) -> bool:
        return resolve_role(request.user) == UserRole.ADMIN
