"""Fulfillment domain constants.

Order statuses, task phases and the status graph of the pick/pack state
machine.  ``VALID_TRANSITIONS`` includes the admin void edge out of every
non-terminal status.
"""

from django.db import models

from modules.core.roles import UserRole


class OrderStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    PICKING = "picking", "Picking"
    PICKED = "picked", "Picked"
    PACKING = "packing", "Packing"
    COMPLETED = "completed", "Completed"
    VOIDED = "voided", "Voided"


class TaskPhase(models.TextChoices):
    PICK = "pick", "Pick"
    PACK = "pack", "Pack"


class OperationType(models.TextChoices):
    CLAIM = "claim", "Claim"
    PICK = "pick", "Pick"
    PACK = "pack", "Pack"
    VOID = "void", "Void"
    SET_URGENT = "set_urgent", "Set urgent"
    DELETE = "delete", "Delete"
    IMPORT = "import", "Import"
    SCAN_ERROR = "scan_error", "Scan error"


VALID_TRANSITIONS: dict[str, set[str]] = {
    OrderStatus.PENDING: {OrderStatus.PICKING, OrderStatus.VOIDED},
    OrderStatus.PICKING: {OrderStatus.PICKED, OrderStatus.VOIDED},
    OrderStatus.PICKED: {OrderStatus.PACKING, OrderStatus.VOIDED},
    OrderStatus.PACKING: {OrderStatus.COMPLETED, OrderStatus.VOIDED},
    OrderStatus.COMPLETED: set(),
    OrderStatus.VOIDED: set(),
}

TERMINAL_STATES: set[str] = {OrderStatus.COMPLETED, OrderStatus.VOIDED}

# claim task type -> (required status, resulting status)
CLAIM_TRANSITIONS: dict[str, tuple[str, str]] = {
    TaskPhase.PICK: (OrderStatus.PENDING, OrderStatus.PICKING),
    TaskPhase.PACK: (OrderStatus.PICKED, OrderStatus.PACKING),
}

# phase -> status the order must be in for item adjustments
PHASE_STATUS: dict[str, str] = {
    TaskPhase.PICK: OrderStatus.PICKING,
    TaskPhase.PACK: OrderStatus.PACKING,
}

# phase -> (status while working, status once every item is done)
PHASE_COMPLETION: dict[str, tuple[str, str]] = {
    TaskPhase.PICK: (OrderStatus.PICKING, OrderStatus.PICKED),
    TaskPhase.PACK: (OrderStatus.PACKING, OrderStatus.COMPLETED),
}

# phase -> non-terminal statuses reached once every item finished that phase;
# a unit change there fails on the item bounds or else on the status
PHASE_PASSED: dict[str, frozenset[str]] = {
    TaskPhase.PICK: frozenset({OrderStatus.PICKED, OrderStatus.PACKING}),
}

ALLOWED_DELTAS: frozenset[int] = frozenset({-1, 1})

VOUCHER_NUMBER_MAX_LENGTH = 64
PRODUCT_CODE_MAX_LENGTH = 128

# phase -> roles allowed to claim and to adjust counters in that phase
PHASE_ROLES: dict[str, frozenset[str]] = {
    TaskPhase.PICK: frozenset({UserRole.PICKER, UserRole.ADMIN}),
    TaskPhase.PACK: frozenset({UserRole.PACKER, UserRole.ADMIN}),
}
