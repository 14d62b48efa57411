"""Order and OrderStatusHistory models.

Business rules implemented:
- An order references exactly one buyer, one seller and one product; the
  seller is copied from the product at creation and never changes.
- Money fields (``unit_price`` .. ``net_seller_payout``) are computed once
  by ``pricing.calculate_charges`` and never recalculated.
- ``rider`` is set if and only if the status is IN_TRANSIT or DELIVERED
  (database check constraint ``orders_rider_matches_status``).
- Orders are never deleted: they extend ``BaseModel``, not
  ``SoftDeleteModel``, and every FK uses PROTECT.
- Each status change appends an ``OrderStatusHistory`` row.
"""

from __future__ import annotations

import secrets
from typing import Any

from django.conf import settings
from django.db import models
from django.utils import timezone

from modules.core.models import BaseModel
from modules.orders.constants import (
    ORDER_NUMBER_MAX_RETRIES,
    TERMINAL_STATES,
    VALID_TRANSITIONS,
    OrderStatus,
)
from shared.domain.events import DomainEventMixin


def _money_field(**kwargs: Any) -> models.DecimalField:
    return models.DecimalField(max_digits=12, decimal_places=2, **kwargs)


class Order(DomainEventMixin, BaseModel):
    """Order aggregate root.

    ``order_number`` (``ORD-YYYYMMDD-XXXXXX``) is for humans; the UUIDv7
    ``id`` is used for every API look-up.  ``idempotency_key`` is only set
    for orders placed with an ``Idempotency-Key`` header.
    """

    order_number = models.CharField(max_length=20, unique=True, editable=False)
    buyer = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="purchases",
    )
    seller = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="sales",
    )
    rider = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="deliveries",
        null=True,
        blank=True,
    )
    product = models.ForeignKey(
        "products.Product",
        on_delete=models.PROTECT,
        related_name="orders",
    )
    quantity = models.PositiveIntegerField(default=1)

    unit_price = _money_field()
    price = _money_field()
    delivery_fee = _money_field()
    commission = _money_field()
    total_amount = _money_field()
    net_seller_payout = _money_field()

    status = models.CharField(
        max_length=20,
        choices=OrderStatus.choices,
        default=OrderStatus.PENDING,
    )
    delivery_address = models.TextField(blank=True, default="")
    notes = models.TextField(blank=True, default="")
    idempotency_key = models.CharField(
        max_length=255,
        unique=True,
        null=True,
        blank=True,
    )
    claimed_at = models.DateTimeField(null=True, blank=True)
    delivered_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = "orders"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["status", "created_at"], name="orders_status_created_idx"),
            models.Index(fields=["buyer", "-created_at"], name="orders_buyer_idx"),
            models.Index(fields=["seller", "-created_at"], name="orders_seller_idx"),
            models.Index(fields=["rider", "-created_at"], name="orders_rider_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=(
                    models.Q(
                        status__in=[OrderStatus.PENDING, OrderStatus.CANCELLED],
                        rider__isnull=True,
                    )
                    | models.Q(
                        status__in=[OrderStatus.IN_TRANSIT, OrderStatus.DELIVERED],
                        rider__isnull=False,
                    )
                ),
                name="orders_rider_matches_status",
            ),
            models.CheckConstraint(
                condition=models.Q(quantity__gte=1),
                name="orders_quantity_positive",
            ),
            models.CheckConstraint(
                condition=models.Q(delivery_fee__gte=0),
                name="orders_delivery_fee_non_negative",
            ),
        ]

    # ------------------------------------------------------------------
    # State Machine helpers
    # ------------------------------------------------------------------

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATES

    @property
    def is_open_job(self) -> bool:
        """Pending and unclaimed: visible in the rider job feed."""
        return self.status == OrderStatus.PENDING and self.rider_id is None

    def can_transition_to(self, new_status: str) -> bool:
        return new_status in VALID_TRANSITIONS.get(self.status, set())

    def involves(self, user_id: Any) -> bool:
        """``True`` if ``user_id`` is the buyer, seller or assigned rider."""
        return user_id in {self.buyer_id, self.seller_id, self.rider_id} - {None}

    # ------------------------------------------------------------------
    # Order number generation
    # ------------------------------------------------------------------

    @staticmethod
    def generate_order_number() -> str:
        now = timezone.now()
        suffix = secrets.token_hex(3).upper()
        return f"ORD-{now:%Y%m%d}-{suffix}"

    def save(self, *args: Any, **kwargs: Any) -> None:
        if not self.order_number:
            for _ in range(ORDER_NUMBER_MAX_RETRIES):
                candidate = self.generate_order_number()
                if not Order.objects.filter(order_number=candidate).exists():
                    self.order_number = candidate
                    break
            else:
                raise RuntimeError(
                    f"Failed to generate unique order_number after "
                    f"{ORDER_NUMBER_MAX_RETRIES} attempts"
                )
        super().save(*args, **kwargs)

    def __str__(self) -> str:
        return f"{self.order_number} ({self.status})"


class OrderStatusHistory(BaseModel):
    """Append-only audit trail for order status transitions.

    ``user`` is whoever triggered the change; ``None`` means the system.
    """

    order = models.ForeignKey(
        "orders.Order",
        on_delete=models.PROTECT,
        related_name="status_history",
    )
    old_status = models.CharField(  # noqa: DJ01
        max_length=20,
        choices=OrderStatus.choices,
        null=True,
        blank=True,
    )
    new_status = models.CharField(max_length=20, choices=OrderStatus.choices)
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
    )
    notes = models.TextField(blank=True, default="")

    class Meta:
        db_table = "order_status_history"
        ordering = ["created_at"]
        indexes = [
            models.Index(fields=["order", "created_at"], name="osh_order_created_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.order} : {self.old_status} -> {self.new_status}"


