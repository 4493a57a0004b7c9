"""Audit trail collaborator.

``AuditTrail.record`` appends an ``OperationLog`` row inside its own
savepoint.  A database failure there rolls back only the savepoint, is
logged as ``audit.record_failed`` and never fails the calling operation.
"""

from __future__ import annotations

from typing import Any, Dict, Optional
from uuid import UUID

import structlog
from django.db import DatabaseError, transaction

from modules.audit.models import OperationLog

logger = structlog.get_logger(__name__)


class AuditTrail:
    def record(
        self,
        *,
        user: Any,
        order_id: UUID,
        operation_type: str,
        details: Optional[Dict[str, Any]] = None,
        voucher_number: str = "",
    ) -> Optional[OperationLog]:
        """Append an audit entry; return it, or ``None`` if it could not be stored."""
        user_id = getattr(user, "pk", None)
        try:
            with transaction.atomic():
                entry = OperationLog.objects.create(
                    user_id=user_id,
                    order_id=order_id,
                    voucher_number=voucher_number,
                    action_type=operation_type,
                    details=details or {},
                )
        except DatabaseError as exc:
            logger.error(
                "audit.record_failed",
                order_id=str(order_id),
                operation_type=operation_type,
                error=str(exc),
            )
            return None

        logger.debug(
            "audit.recorded",
            order_id=str(order_id),
            operation_type=operation_type,
            user_id=user_id,
        )
        return entry


audit_trail = AuditTrail()
