"""Order repository interface.

Only what the Order aggregate needs: look-ups, creation, status
history, the outbox, and the three conditional status updates (claim,
deliver, cancel).  Orders are never listed unscoped nor saved whole, so
the generic ``IRepository`` contract does not apply.

The conditional updates return ``True`` only when exactly one row
matched; the Service Layer interprets ``False``.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Dict, Iterable, Optional
from uuid import UUID

if TYPE_CHECKING:
    from django.db.models import QuerySet

    from modules.orders.models import Order, OrderStatusHistory


class IOrderRepository(ABC):
    """Repository contract for the Order aggregate root."""

    @abstractmethod
    def get_by_id(self, id: str) -> Optional[Order]:
        """Retrieve an order with its relations, or ``None``."""

    @abstractmethod
    def create(self, data: Dict[str, Any]) -> Order:
        """Insert a new PENDING order.

        ``data`` holds the participant ids, ``product_id``, every money
        field and the optional ``idempotency_key``, ``delivery_address``
        and ``notes``.
        """

    @abstractmethod
    def get_by_idempotency_key(self, key: str) -> Optional[Order]:
        """Retrieve an order by its idempotency key."""

    @abstractmethod
    def claim(self, id: str, rider_id: UUID) -> bool:
        """PENDING and unclaimed -> IN_TRANSIT with ``rider_id``."""

    @abstractmethod
    def mark_delivered(self, id: str, rider_id: UUID) -> bool:
        """IN_TRANSIT with ``rider_id`` -> DELIVERED."""

    @abstractmethod
    def cancel(self, id: str) -> bool:
        """PENDING and unclaimed -> CANCELLED."""

    @abstractmethod
    def add_history(
        self,
        order_id: UUID,
        new_status: str,
        old_status: Optional[str] = None,
        user_id: Optional[UUID] = None,
        notes: str = "",
    ) -> OrderStatusHistory:
        """Record a status change in the order's audit trail."""

    @abstractmethod
    def record_events(self, entity: Order) -> int:
        """Move the aggregate's pending domain events to the outbox."""

    @abstractmethod
    def open_jobs(self) -> QuerySet[Order]:
        """Pending, unclaimed orders, oldest first."""

    @abstractmethod
    def for_participant(
        self, user_id: UUID, fields: Iterable[str]
    ) -> QuerySet[Order]:
        """Orders where any of ``fields`` equals ``user_id``, newest first."""
