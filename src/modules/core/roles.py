"""Operator roles and their resolution from Django users.

Roles are carried by Django groups named after ``UserRole`` values.
Superusers always act as ``admin``.  A user in several groups gets the
most privileged one (admin > packer > picker).
"""

from __future__ import annotations

from typing import Any, Optional

from django.db import models


class UserRole(models.TextChoices):
    PICKER = "picker", "Picker"
    PACKER = "packer", "Packer"
    ADMIN = "admin", "Admin"


_ROLE_PRECEDENCE = (UserRole.ADMIN, UserRole.PACKER, UserRole.PICKER)


def resolve_role(user: Any) -> Optional[UserRole]:
    """Return the fulfillment role of *user*, or ``None`` when it has none."""
    if user is None or not getattr(user, "is_authenticated", False):
        return None
    if getattr(user, "is_superuser", False):
        return UserRole.ADMIN
    group_names = set(user.groups.values_list("name", flat=True))
    for role in _ROLE_PRECEDENCE:
        if role.value in group_names:
            return role
    return None
