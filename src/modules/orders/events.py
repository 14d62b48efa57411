"""Domain events for the Orders bounded context.

Persisted to the outbox in the same transaction as the state change
they describe.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional
from uuid import UUID

from shared.domain.events import DomainEvent


@dataclass(frozen=True)
class OrderEvent(DomainEvent):
    topic = "orders"


@dataclass(frozen=True)
class OrderCreated(OrderEvent):
    """Raised when a buyer places an order."""

    buyer_id: Optional[UUID] = None
    seller_id: Optional[UUID] = None
    total_amount: Optional[str] = None


@dataclass(frozen=True)
class JobClaimed(OrderEvent):
    """Raised when a rider wins the claim on a pending order."""

    rider_id: Optional[UUID] = None


@dataclass(frozen=True)
class OrderDelivered(OrderEvent):
    """Raised when delivery is confirmed and payouts are credited."""

    rider_id: Optional[UUID] = None
    rider_payout: Optional[str] = None
    seller_payout: Optional[str] = None


@dataclass(frozen=True)
class OrderCancelled(OrderEvent):
    """Raised when a pending order is cancelled."""

    cancelled_by: Optional[UUID] = None
