"""Order DTOs for the Service Layer.

Framework-agnostic data transfer objects using Pydantic v2.
These are the contracts between the API layer (DRF Serializers)
and the Service layer.  DTOs are immutable (``frozen=True``).

- ``CreateOrderDTO``: input for order placement.  Carries no money
  fields other than the optional delivery fee: price, commission and
  totals are always derived server-side.
- ``OrderReceipt``: what ``create_order`` hands back to the caller.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import TYPE_CHECKING, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, field_validator

if TYPE_CHECKING:
    from modules.orders.models import Order


# ---------------------------------------------------------------------------
# Input DTOs
# ---------------------------------------------------------------------------


class CreateOrderDTO(BaseModel):
    """Immutable DTO for order creation requests.

    ``delivery_fee`` of ``None`` means "use the marketplace default".
    """

    model_config = ConfigDict(frozen=True)

    product_id: UUID
    quantity: int = 1
    delivery_fee: Optional[Decimal] = None
    delivery_address: str = ""
    notes: str = ""
    idempotency_key: Optional[str] = None

    @field_validator("quantity")
    @classmethod
    def quantity_must_be_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("Quantity must be at least 1.")
        return v

    @field_validator("delivery_fee")
    @classmethod
    def delivery_fee_not_negative(cls, v: Optional[Decimal]) -> Optional[Decimal]:
        if v is not None and v < 0:
            raise ValueError("Delivery fee cannot be negative.")
        return v

    @field_validator("idempotency_key")
    @classmethod
    def idempotency_key_length(cls, v: Optional[str]) -> Optional[str]:
        if v is not None:
            v = v.strip() or None
        if v is not None and len(v) > 255:
            raise ValueError("Idempotency key must be at most 255 characters.")
        return v


# ---------------------------------------------------------------------------
# Output
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class OrderReceipt:
    """Result of placing an order.

    ``created`` is ``False`` when an idempotency key matched an earlier
    order and that order is being replayed.
    """

    order: Order
    created: bool = True

    @property
    def commission(self) -> Decimal:
        return self.order.commission

    @property
    def net_seller_payout(self) -> Decimal:
        return self.order.net_seller_payout
