"""Order DTOs for the Service Layer.

Framework-agnostic data transfer objects using Pydantic v2.
These are the contracts between the API layer (DRF serializers)
and the service layer.  DTOs are immutable (``frozen=True``).

- ``ImportOrderItemDTO`` / ``ImportOrderDTO``: order creation by import.
- ``AdjustItemQuantityDTO``: one scan or +/- press.
- ``BatchClaimResultDTO``: outcome of a batch claim.
- ``OrderNotificationDTO``: message handed to the event notifier.
"""

from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from modules.orders.constants import (
    ALLOWED_DELTAS,
    PRODUCT_CODE_MAX_LENGTH,
    VOUCHER_NUMBER_MAX_LENGTH,
)


# ---------------------------------------------------------------------------
# Input DTOs
# ---------------------------------------------------------------------------


class ImportOrderItemDTO(BaseModel):
    """Immutable DTO for a single line of an imported order."""

    model_config = ConfigDict(frozen=True)

    product_code: str = Field(min_length=1, max_length=PRODUCT_CODE_MAX_LENGTH)
    product_name: str = ""
    quantity: int

    @field_validator("product_code")
    @classmethod
    def product_code_must_not_be_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Product code must not be blank.")
        return v

    @field_validator("quantity")
    @classmethod
    def quantity_must_not_be_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("Quantity must not be negative.")
        return v


class ImportOrderDTO(BaseModel):
    """Immutable DTO for an order handed over by the import collaborator.

    Validates:
    - ``items`` must contain at least one line.
    - Product codes are unique within the order.
    """

    model_config = ConfigDict(frozen=True)

    voucher_number: str = Field(min_length=1, max_length=VOUCHER_NUMBER_MAX_LENGTH)
    customer_name: str = ""
    items: List[ImportOrderItemDTO]
    notes: Optional[str] = ""
    is_urgent: bool = False

    @field_validator("items")
    @classmethod
    def items_must_not_be_empty(
        cls, v: List[ImportOrderItemDTO]
    ) -> List[ImportOrderItemDTO]:
        if not v:
            raise ValueError("Order must have at least one item.")
        return v

    @model_validator(mode="after")
    def no_duplicate_product_codes(self):
        codes = [item.product_code for item in self.items]
        if len(codes) != len(set(codes)):
            raise ValueError("Duplicate product codes are not allowed in the same order.")
        return self


class AdjustItemQuantityDTO(BaseModel):
    """Immutable DTO for a unit change of an item counter."""

    model_config = ConfigDict(frozen=True)

    product_code: str = Field(min_length=1, max_length=PRODUCT_CODE_MAX_LENGTH)
    phase: Literal["pick", "pack"]
    delta: int = 1

    @field_validator("delta")
    @classmethod
    def delta_must_be_unit(cls, v: int) -> int:
        if v not in ALLOWED_DELTAS:
            raise ValueError("Delta must be -1 or +1.")
        return v


# ---------------------------------------------------------------------------
# Output DTOs
# ---------------------------------------------------------------------------


class BatchClaimFailureDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    order_id: UUID
    code: str
    reason: str


class BatchClaimResultDTO(BaseModel):
    """Outcome of ``claim_orders``: claimed IDs and per-order failures."""

    model_config = ConfigDict(frozen=True)

    claimed: List[UUID] = Field(default_factory=list)
    failed: List[BatchClaimFailureDTO] = Field(default_factory=list)


class OrderNotificationDTO(BaseModel):
    """Message broadcast to observers after a committed change."""

    model_config = ConfigDict(frozen=True)

    type: Literal["itemUpdated", "statusChanged"]
    order_id: UUID
    payload: Dict[str, Any] = Field(default_factory=dict)
