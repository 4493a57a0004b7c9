"""Fulfillment domain exceptions.

Raised by the service layer when a state-machine guard fails or the store
cannot be reached.  The API layer (views) translates them into HTTP
responses.  ``retryable`` tells the caller whether repeating the same
request can succeed: only ``StoreUnavailable`` is transient, every other
error is permanent for the given input.
"""

from __future__ import annotations


class FulfillmentError(Exception):
    """Base class for every error the fulfillment state machine raises."""

    code = "fulfillment_error"
    retryable = False


class OrderNotFound(FulfillmentError):
    """The referenced order does not exist."""

    code = "order_not_found"


class ItemNotFound(FulfillmentError):
    """No item of the order matches the given product code."""

    code = "item_not_found"


class OrderTerminal(FulfillmentError):
    """The order is ``completed`` or ``voided``; it accepts no more changes."""

    code = "order_terminal"


class InvalidPhaseForStatus(FulfillmentError):
    """The phase (or the acting role) does not match the order status."""

    code = "invalid_phase_for_status"


class QuantityOutOfBounds(FulfillmentError):
    """The change would break ``0 <= packed <= picked <= quantity``."""

    code = "quantity_out_of_bounds"


class InvalidClaim(FulfillmentError):
    """The claim's expected status did not hold (wrong task type or lost race)."""

    code = "invalid_claim"


class RoleNotAllowed(FulfillmentError):
    """The acting role may not perform this operation."""

    code = "role_not_allowed"


class NotTaskAssignee(RoleNotAllowed):
    """The order's pick or pack task is claimed by another operator."""

    code = "not_task_assignee"


class DuplicateVoucher(FulfillmentError):
    """An order with the same voucher number already exists."""

    code = "duplicate_voucher"


class StoreUnavailable(FulfillmentError):
    """The database call failed or timed out; nothing was committed."""

    code = "store_unavailable"
    retryable = True
