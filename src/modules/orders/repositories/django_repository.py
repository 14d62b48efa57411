"""Django ORM implementation of the Order repository.

Satisfies ``IOrderRepository`` using Django's QuerySet API.

Status transitions never read-then-write: each one is a single
``UPDATE ... WHERE id = ? AND status = ? [AND rider ...]`` and the
affected row count decides the outcome.  Two riders racing for the
same job therefore cannot both win, on any isolation level.
"""

from __future__ import annotations

from functools import reduce
from operator import or_
from typing import Any, Dict, Iterable, Optional
from uuid import UUID

import structlog
from django.core.exceptions import ValidationError
from django.db.models import Q, QuerySet
from django.utils import timezone

from modules.core.models import OutboxEvent
from modules.orders.constants import OrderStatus
from modules.orders.models import Order, OrderStatusHistory
from modules.orders.repositories.interfaces import IOrderRepository

logger = structlog.get_logger(__name__)

_RELATIONS = ("buyer", "seller", "rider", "product")


class OrderDjangoRepository(IOrderRepository):
    """Concrete Order repository backed by Django ORM."""

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    def create(self, data: Dict[str, Any]) -> Order:
        order = Order(
            buyer_id=data["buyer_id"],
            seller_id=data["seller_id"],
            product_id=data["product_id"],
            quantity=data["quantity"],
            unit_price=data["unit_price"],
            price=data["price"],
            delivery_fee=data["delivery_fee"],
            commission=data["commission"],
            total_amount=data["total_amount"],
            net_seller_payout=data["net_seller_payout"],
            delivery_address=data.get("delivery_address", ""),
            notes=data.get("notes", ""),
            idempotency_key=data.get("idempotency_key"),
        )
        order.save()
        logger.info(
            "order.inserted",
            order_id=str(order.id),
            order_number=order.order_number,
        )
        return order

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def get_by_id(self, id: str) -> Optional[Order]:
        """Retrieve an order with its participants, product and history.

        Returns ``None`` for non-existent or malformed IDs.
        """
        try:
            return (
                Order.objects.select_related(*_RELATIONS)
                .prefetch_related("status_history")
                .filter(id=id)
                .first()
            )
        except (ValueError, ValidationError):
            return None

    def get_by_idempotency_key(self, key: str) -> Optional[Order]:
        return Order.objects.select_related(*_RELATIONS).filter(idempotency_key=key).first()

    def open_jobs(self) -> QuerySet[Order]:
        return (
            Order.objects.select_related(*_RELATIONS)
            .filter(status=OrderStatus.PENDING, rider__isnull=True)
            .order_by("created_at", "id")
        )

    def for_participant(
        self, user_id: UUID, fields: Iterable[str]
    ) -> QuerySet[Order]:
        condition = reduce(or_, (Q(**{f"{field}_id": user_id}) for field in fields))
        return (
            Order.objects.select_related(*_RELATIONS)
            .filter(condition)
            .order_by("-created_at", "-id")
        )

    # ------------------------------------------------------------------
    # Conditional transitions
    # ------------------------------------------------------------------

    def claim(self, id: str, rider_id: UUID) -> bool:
        now = timezone.now()
        return self._transition(
            id,
            Q(status=OrderStatus.PENDING, rider__isnull=True),
            status=OrderStatus.IN_TRANSIT,
            rider_id=rider_id,
            claimed_at=now,
            updated_at=now,
        )

    def mark_delivered(self, id: str, rider_id: UUID) -> bool:
        now = timezone.now()
        return self._transition(
            id,
            Q(status=OrderStatus.IN_TRANSIT, rider_id=rider_id),
            status=OrderStatus.DELIVERED,
            delivered_at=now,
            updated_at=now,
        )

    def cancel(self, id: str) -> bool:
        return self._transition(
            id,
            Q(status=OrderStatus.PENDING, rider__isnull=True),
            status=OrderStatus.CANCELLED,
            updated_at=timezone.now(),
        )

    def _transition(self, id: str, guard: Q, **changes: Any) -> bool:
        try:
            updated = Order.objects.filter(guard, id=id).update(**changes)
        except (ValueError, ValidationError):
            return False
        return updated == 1

    # ------------------------------------------------------------------
    # History / outbox
    # ------------------------------------------------------------------

    def record_events(self, entity: Order) -> int:
        events = entity.pull_domain_events()
        OutboxEvent.objects.bulk_create(
            OutboxEvent(
                event_type=event.event_name,
                aggregate_id=str(event.aggregate_id),
                payload=event.to_payload(),
                topic=event.topic,
            )
            for event in events
        )
        return len(events)

    def add_history(
        self,
        order_id: UUID,
        new_status: str,
        old_status: Optional[str] = None,
        user_id: Optional[UUID] = None,
        notes: str = "",
    ) -> OrderStatusHistory:
        history = OrderStatusHistory.objects.create(
            order_id=order_id,
            old_status=old_status,
            new_status=new_status,
            user_id=user_id,
            notes=notes,
        )
        logger.info(
            "order.history_added",
            order_id=str(order_id),
            old_status=old_status,
            new_status=new_status,
        )
        return history

