"""Order domain constants.

Status choices, the delivery state machine and the role tables used by
every permission check.  Each role table covers all ``UserRole``
members; the unit tests assert that.
"""

from django.db import models

from modules.accounts.models import UserRole


class OrderStatus(models.TextChoices):
    PENDING = "PENDING", "Pending"
    IN_TRANSIT = "IN_TRANSIT", "In transit"
    DELIVERED = "DELIVERED", "Delivered"
    CANCELLED = "CANCELLED", "Cancelled"


VALID_TRANSITIONS: dict[str, set[str]] = {
    OrderStatus.PENDING: {OrderStatus.IN_TRANSIT, OrderStatus.CANCELLED},
    OrderStatus.IN_TRANSIT: {OrderStatus.DELIVERED},
    OrderStatus.DELIVERED: set(),
    OrderStatus.CANCELLED: set(),
}

TERMINAL_STATES: set[str] = {OrderStatus.DELIVERED, OrderStatus.CANCELLED}

# A rider is recorded exactly while the order is in one of these states.
RIDER_ASSIGNED_STATES: set[str] = {OrderStatus.IN_TRANSIT, OrderStatus.DELIVERED}

# Which order field(s) identify a participant in their history, per role.
HISTORY_FIELDS_BY_ROLE: dict[str, tuple[str, ...]] = {
    UserRole.BUYER: ("buyer",),
    UserRole.SELLER: ("seller",),
    UserRole.RIDER: ("rider",),
    UserRole.ADMIN: ("buyer", "seller", "rider"),
}

# Who may do what, per role.
CAN_PLACE_ORDERS: dict[str, bool] = {
    UserRole.BUYER: True,
    UserRole.SELLER: False,
    UserRole.RIDER: False,
    UserRole.ADMIN: False,
}

CAN_VIEW_JOB_FEED: dict[str, bool] = {
    UserRole.BUYER: False,
    UserRole.SELLER: False,
    UserRole.RIDER: True,
    UserRole.ADMIN: True,
}

ORDER_NUMBER_MAX_RETRIES = 5
