"""Order fulfillment service layer (the pick/pack state machine).

Every quantity change and status transition of an order goes through
``OrderFulfillmentService``.  Each command is one database transaction;
the service keeps no state between calls.

Rules enforced:
- Claims are compare-and-set on the order status: ``pending -> picking``
  for a pick claim, ``picked -> packing`` for a pack claim.
- Item counters change one unit at a time under a row lock on that item,
  and always keep ``0 <= packed <= picked <= quantity``.
- Only the operator who claimed a task (or an admin) may change its
  counters.
- After every counter change the order is re-evaluated: all items picked
  moves ``picking -> picked``; all items packed moves
  ``packing -> completed`` and stamps ``completed_at``.
- ``completed`` and ``voided`` are terminal.
- Every successful command is appended to the audit trail and announced to
  the event notifier; neither can fail the command.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import TYPE_CHECKING, Any, Iterable, Iterator, List, Optional
from uuid import UUID

import structlog
from django.db import IntegrityError, InterfaceError, OperationalError, transaction
from django.utils import timezone

from modules.core.roles import UserRole
from modules.orders.constants import (
    ALLOWED_DELTAS,
    CLAIM_TRANSITIONS,
    PHASE_COMPLETION,
    PHASE_PASSED,
    PHASE_ROLES,
    PHASE_STATUS,
    TERMINAL_STATES,
    OperationType,
    OrderStatus,
    TaskPhase,
)
from modules.orders.dtos import BatchClaimFailureDTO, BatchClaimResultDTO
from modules.orders.exceptions import (
    DuplicateVoucher,
    FulfillmentError,
    InvalidClaim,
    InvalidPhaseForStatus,
    ItemNotFound,
    NotTaskAssignee,
    OrderNotFound,
    OrderTerminal,
    RoleNotAllowed,
    StoreUnavailable,
)
from modules.orders.models import phase_complete

if TYPE_CHECKING:
    from modules.audit.services import AuditTrail
    from modules.orders.dtos import ImportOrderDTO
    from modules.orders.models import Order
    from modules.orders.notifier import OrderEventNotifier
    from modules.orders.repositories.interfaces import IOrderRepository

logger = structlog.get_logger(__name__)

NON_TERMINAL_STATES = [s for s in OrderStatus.values if s not in TERMINAL_STATES]

_ASSIGNEE_FIELD = {
    TaskPhase.PICK: "picker_id",
    TaskPhase.PACK: "packer_id",
}


@contextmanager
def _store_guard(operation: str, order_id: Any = None) -> Iterator[None]:
    """Translate connection-level database failures into ``StoreUnavailable``.

    Wrap it *outside* ``transaction.atomic()`` so the rollback has already
    happened when the error reaches the caller.
    """
    try:
        yield
    except (OperationalError, InterfaceError) as exc:
        logger.error(
            "order.store_unavailable",
            operation=operation,
            order_id=str(order_id) if order_id is not None else None,
            error=str(exc),
        )
        raise StoreUnavailable(f"Store unavailable during {operation}.") from exc


class OrderFulfillmentService:
    """Application service for the pick/pack lifecycle of orders.

    Receives its collaborators via constructor injection (DIP).
    """

    def __init__(
        self,
        order_repository: IOrderRepository,
        audit_trail: AuditTrail,
        notifier: OrderEventNotifier,
    ) -> None:
        self._order_repo = order_repository
        self._audit = audit_trail
        self._notifier = notifier

    # ------------------------------------------------------------------
    # Commands: state machine
    # ------------------------------------------------------------------

    def adjust_item_quantity(
        self,
        order_id: UUID,
        product_code: str,
        phase: str,
        delta: int,
        actor: Any,
        role: str,
    ) -> Order:
        """Move the picked or packed counter of one item by ``delta``.

        Steps (one transaction):
        1. Load the order; reject missing or terminal orders.
        2. Check that *role* may work *phase* and that *actor* is the
           operator who claimed it (admins may work any task).
        3. If the order already moved past *phase*, report the change as
           out of bounds when the item cannot take it, else as a wrong
           phase; nothing is written.
        4. Check that *phase* matches the order status.
        5. Lock the item row, apply the unit change, save the counter.
        6. Re-evaluate the order (``picked`` / ``completed`` transitions).

        Raises:
            OrderNotFound: order does not exist.
            OrderTerminal: order is completed or voided.
            InvalidPhaseForStatus: phase/role does not match the order status.
            NotTaskAssignee: another operator claimed this task.
            ItemNotFound: no item with *product_code* in this order.
            QuantityOutOfBounds: the chain invariant would be violated.
            StoreUnavailable: the database call failed.
        """
        if delta not in ALLOWED_DELTAS:
            raise ValueError(f"delta must be -1 or +1, got {delta!r}.")

        log = logger.bind(
            order_id=str(order_id),
            product_code=product_code,
            phase=phase,
            delta=delta,
            role=role,
        )

        try:
            with _store_guard("adjust_item_quantity", order_id), transaction.atomic():
                order = self._load_mutable_order(order_id)
                self._check_role(phase, role)
                self._check_assignee(order, phase, actor, role)
                if order.status in PHASE_PASSED.get(phase, ()):
                    self._reject_passed_phase(order, product_code, phase, delta)
                self._check_status(order, phase)

                item = self._lock_item(order, product_code)
                field = item.apply_delta(phase, delta)
                self._order_repo.save_item(item, field)
                locked_status = self._recheck_status(order)
                log.info(
                    "order.item_adjusted",
                    picked_quantity=item.picked_quantity,
                    packed_quantity=item.packed_quantity,
                )

                self._audit.record(
                    user=actor,
                    order_id=order.id,
                    voucher_number=order.voucher_number,
                    operation_type=phase,
                    details={
                        "product_code": product_code,
                        "delta": delta,
                        "picked_quantity": item.picked_quantity,
                        "packed_quantity": item.packed_quantity,
                    },
                )
                self._notifier.item_updated(order.id, item, phase, delta)
                self._reevaluate(order, locked_status)
        except ItemNotFound:
            log.warning("order.scan_error")
            self._audit.record(
                user=actor,
                order_id=order_id,
                operation_type=OperationType.SCAN_ERROR,
                details={"product_code": product_code, "phase": phase},
            )
            raise

        return self._get_fresh(order_id)

    def claim_order(
        self,
        order_id: UUID,
        actor: Any,
        role: str,
        task_type: str,
    ) -> Order:
        """Take the pick or pack task of an order.

        ``pick`` requires ``pending`` and moves to ``picking``; ``pack``
        requires ``picked`` and moves to ``packing``.  The status write is
        conditional on the expected status, so of several concurrent
        claimants exactly one succeeds.

        Raises:
            OrderNotFound: order does not exist.
            OrderTerminal: order is completed or voided.
            InvalidClaim: wrong task type or role, or the order is no longer
                in the expected status.
            StoreUnavailable: the database call failed.
        """
        transition = CLAIM_TRANSITIONS.get(task_type)
        if transition is None:
            raise InvalidClaim(f"Unknown task type {task_type!r}.")
        required_status, target_status = transition

        log = logger.bind(order_id=str(order_id), task_type=task_type, role=role)

        with _store_guard("claim_order", order_id), transaction.atomic():
            order = self._load_mutable_order(order_id)

            if role not in PHASE_ROLES[task_type]:
                log.warning("order.claim_role_rejected")
                raise InvalidClaim(f"Role {role} cannot claim {task_type} tasks.")

            if not order.can_transition_to(target_status):
                log.warning("order.claim_rejected", current_status=order.status)
                raise InvalidClaim(
                    f"Cannot claim {task_type} task: order {order.voucher_number} "
                    f"is {order.status}."
                )

            claimed = self._order_repo.transition_status(
                order.id,
                [required_status],
                target_status,
                **{_ASSIGNEE_FIELD[task_type]: getattr(actor, "pk", None)},
            )
            if not claimed:
                log.warning("order.claim_rejected", current_status=order.status)
                raise InvalidClaim(
                    f"Cannot claim {task_type} task: order {order.voucher_number} "
                    f"is not {required_status} (may already be taken)."
                )

            self._record_transition(
                order, required_status, target_status, actor, notes=f"{task_type} claimed"
            )
            self._audit.record(
                user=actor,
                order_id=order.id,
                voucher_number=order.voucher_number,
                operation_type=OperationType.CLAIM,
                details={
                    "task_type": task_type,
                    "previous_status": required_status,
                    "new_status": target_status,
                },
            )

        log.info("order.claimed", new_status=target_status)
        return self._get_fresh(order_id)

    def void_order(
        self,
        order_id: UUID,
        actor: Any,
        role: str,
        reason: str = "",
    ) -> Order:
        """Void a non-terminal order (admin only).

        Raises:
            RoleNotAllowed: *role* is not ``admin``.
            OrderNotFound: order does not exist.
            OrderTerminal: order is already completed or voided.
            StoreUnavailable: the database call failed.
        """
        if role != UserRole.ADMIN:
            raise RoleNotAllowed("Only administrators can void orders.")

        log = logger.bind(order_id=str(order_id))

        with _store_guard("void_order", order_id), transaction.atomic():
            order = self._load_mutable_order(order_id)
            old_status = order.status

            if not self._order_repo.transition_status(
                order.id, NON_TERMINAL_STATES, OrderStatus.VOIDED
            ):
                raise OrderTerminal(
                    f"Order {order.voucher_number} reached a terminal state."
                )

            self._record_transition(
                order, old_status, OrderStatus.VOIDED, actor, notes=reason or "Order voided"
            )
            self._audit.record(
                user=actor,
                order_id=order.id,
                voucher_number=order.voucher_number,
                operation_type=OperationType.VOID,
                details={"reason": reason, "previous_status": old_status},
            )

        log.info("order.voided", previous_status=old_status)
        return self._get_fresh(order_id)

    def reevaluate_order(self, order_id: UUID) -> Order:
        """Apply any pending automatic transition and return the order.

        Idempotent: once the order reflects its items, further calls change
        nothing.

        Raises:
            OrderNotFound: order does not exist.
            StoreUnavailable: the database call failed.
        """
        with _store_guard("reevaluate_order", order_id), transaction.atomic():
            order = self._order_repo.get_by_id(str(order_id))
            if not order:
                raise OrderNotFound(f"Order {order_id} not found.")
            changed = self._reevaluate(order)

        if changed is None:
            return order
        return self._get_fresh(order_id)

    def claim_orders(
        self,
        order_ids: Iterable[UUID],
        actor: Any,
        role: str,
        task_type: str,
    ) -> BatchClaimResultDTO:
        """Claim several orders, each in its own transaction.

        A failing order does not stop the batch; its error code and message
        are reported in ``failed``.
        """
        claimed: List[UUID] = []
        failed: List[BatchClaimFailureDTO] = []

        for order_id in dict.fromkeys(order_ids):
            try:
                self.claim_order(order_id, actor, role, task_type)
            except FulfillmentError as exc:
                failed.append(
                    BatchClaimFailureDTO(order_id=order_id, code=exc.code, reason=str(exc))
                )
            else:
                claimed.append(order_id)

        logger.info(
            "order.batch_claimed",
            task_type=task_type,
            claimed=len(claimed),
            failed=len(failed),
        )
        return BatchClaimResultDTO(claimed=claimed, failed=failed)

    # ------------------------------------------------------------------
    # Commands: order administration
    # ------------------------------------------------------------------

    def import_order(self, dto: ImportOrderDTO, actor: Any = None) -> Order:
        """Create a ``pending`` order with its items.

        Raises:
            DuplicateVoucher: the voucher number is already used.
            StoreUnavailable: the database call failed.
        """
        log = logger.bind(voucher_number=dto.voucher_number)

        with _store_guard("import_order"), transaction.atomic():
            if self._order_repo.get_by_voucher_number(dto.voucher_number):
                raise DuplicateVoucher(f"Voucher {dto.voucher_number} already exists.")
            try:
                order = self._order_repo.create(dto)
            except IntegrityError as exc:
                raise DuplicateVoucher(
                    f"Voucher {dto.voucher_number} already exists."
                ) from exc

            self._record_transition(
                order, None, OrderStatus.PENDING, actor, notes="Order imported"
            )
            self._audit.record(
                user=actor,
                order_id=order.id,
                voucher_number=order.voucher_number,
                operation_type=OperationType.IMPORT,
                details={"item_count": len(dto.items)},
            )

        log.info("order.imported", order_id=str(order.id))
        return self._get_fresh(order.id)

    def set_urgent(self, order_id: UUID, actor: Any, role: str, is_urgent: bool) -> Order:
        """Flag or unflag an order as urgent (admin only)."""
        if role != UserRole.ADMIN:
            raise RoleNotAllowed("Only administrators can change urgency.")

        with _store_guard("set_urgent", order_id), transaction.atomic():
            order = self._order_repo.get_by_id(str(order_id))
            if not order:
                raise OrderNotFound(f"Order {order_id} not found.")
            self._order_repo.set_urgent(order.id, is_urgent)
            self._audit.record(
                user=actor,
                order_id=order.id,
                voucher_number=order.voucher_number,
                operation_type=OperationType.SET_URGENT,
                details={"is_urgent": is_urgent},
            )

        logger.info("order.urgency_changed", order_id=str(order_id), is_urgent=is_urgent)
        return self._get_fresh(order_id)

    def delete_order(self, order_id: UUID, actor: Any, role: str) -> None:
        """Delete an order and its items (admin only)."""
        if role != UserRole.ADMIN:
            raise RoleNotAllowed("Only administrators can delete orders.")

        with _store_guard("delete_order", order_id), transaction.atomic():
            order = self._order_repo.get_by_id(str(order_id))
            if not order:
                raise OrderNotFound(f"Order {order_id} not found.")
            self._order_repo.delete(str(order.id))
            self._audit.record(
                user=actor,
                order_id=order.id,
                voucher_number=order.voucher_number,
                operation_type=OperationType.DELETE,
                details={"status": order.status},
            )

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_order(self, order_id: str) -> Order:
        """Retrieve a single order by ID.

        Raises:
            OrderNotFound: if the order does not exist.
        """
        order = self._order_repo.get_by_id(order_id)
        if not order:
            raise OrderNotFound(f"Order {order_id} not found.")
        return order

    def list_tasks(self, actor: Any, role: str) -> List[Order]:
        """Orders the user can work on, urgent first then oldest first."""
        return self._order_repo.list_tasks(getattr(actor, "pk", None), role)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _load_mutable_order(self, order_id: UUID) -> Order:
        order = self._order_repo.get_by_id(str(order_id))
        if not order:
            raise OrderNotFound(f"Order {order_id} not found.")
        if order.is_terminal:
            raise OrderTerminal(
                f"Order {order.voucher_number} is {order.status} and accepts no changes."
            )
        return order

    def _recheck_status(self, order: Order) -> str:
        """Lock the order row and fail if its status moved since it was read."""
        locked_status = self._order_repo.lock_order_status(order.id)
        if locked_status == order.status:
            return locked_status
        if locked_status is None:
            raise OrderNotFound(f"Order {order.id} not found.")
        if locked_status in TERMINAL_STATES:
            raise OrderTerminal(
                f"Order {order.voucher_number} is {locked_status} and accepts no changes."
            )
        raise InvalidPhaseForStatus(
            f"Order {order.voucher_number} moved to {locked_status}; retry the scan."
        )

    @staticmethod
    def _check_role(phase: str, role: str) -> None:
        if phase not in PHASE_STATUS:
            raise InvalidPhaseForStatus(f"Unknown phase {phase!r}.")
        if role not in PHASE_ROLES[phase]:
            raise InvalidPhaseForStatus(f"Role {role} cannot {phase} items.")

    @staticmethod
    def _check_assignee(order: Order, phase: str, actor: Any, role: str) -> None:
        if role == UserRole.ADMIN:
            return
        assignee_id = getattr(order, _ASSIGNEE_FIELD[phase])
        if assignee_id is not None and assignee_id != getattr(actor, "pk", None):
            raise NotTaskAssignee(
                f"The {phase} task of order {order.voucher_number} is claimed by "
                "another operator."
            )

    @staticmethod
    def _check_status(order: Order, phase: str) -> None:
        if order.status != PHASE_STATUS[phase]:
            raise InvalidPhaseForStatus(
                f"Cannot {phase} while order {order.voucher_number} is {order.status}."
            )

    def _lock_item(self, order: Order, product_code: str) -> Any:
        item = self._order_repo.get_item_for_update(order.id, product_code)
        if item is None:
            raise ItemNotFound(
                f"Code {product_code} does not belong to order {order.voucher_number}."
            )
        return item

    def _reject_passed_phase(
        self, order: Order, product_code: str, phase: str, delta: int
    ) -> None:
        """Fail a unit change on an order that already finished *phase*.

        Every item is done with the phase, so a ``+1`` never fits and raises
        ``QuantityOutOfBounds``, as does a ``-1`` below the next counter.  A
        change that would fit is still refused because the phase is over.
        """
        item = self._lock_item(order, product_code)
        item.apply_delta(phase, delta)
        raise InvalidPhaseForStatus(
            f"Cannot {phase} while order {order.voucher_number} is {order.status}."
        )

    def _reevaluate(
        self, order: Order, locked_status: Optional[str] = None
    ) -> Optional[str]:
        """Move the order forward if every item finished the current phase.

        Holds the order row lock while reading the items, then writes with a
        conditional update, so a redundant or concurrent call is a no-op.
        Returns the new status, or ``None`` when nothing changed.
        """
        current_status = locked_status or self._order_repo.lock_order_status(order.id)
        for phase, (working_status, done_status) in PHASE_COMPLETION.items():
            if current_status != working_status:
                continue

            items = self._order_repo.get_items(order.id)
            if not phase_complete(items, phase):
                return None

            fields = {}
            if done_status == OrderStatus.COMPLETED:
                fields["completed_at"] = timezone.now()
            if not self._order_repo.transition_status(
                order.id, [working_status], done_status, **fields
            ):
                return None

            self._record_transition(
                order, working_status, done_status, None, notes=f"All items {done_status}"
            )
            logger.info(
                "order.status_auto_transitioned",
                order_id=str(order.id),
                old_status=working_status,
                new_status=done_status,
            )
            order.status = done_status
            return done_status
        return None

    def _record_transition(
        self,
        order: Order,
        old_status: Optional[str],
        new_status: str,
        actor: Any,
        notes: str = "",
    ) -> None:
        self._order_repo.add_history(
            order_id=order.id,
            old_status=old_status,
            new_status=new_status,
            user=actor,
            notes=notes,
        )
        self._notifier.status_changed(
            order.id, old_status, new_status, getattr(actor, "pk", None)
        )

    def _get_fresh(self, order_id: UUID) -> Order:
        order = self._order_repo.get_by_id(str(order_id))
        if not order:
            raise OrderNotFound(f"Order {order_id} not found.")
        return order
