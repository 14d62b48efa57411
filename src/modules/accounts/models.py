"""Marketplace user model.

Business rules implemented:
- Every user holds exactly one ``UserRole``: buyer, seller, rider or admin.
- E-mail is the login identifier and is unique (case-normalised on save).
- ``wallet_balance`` accumulates payouts credited on delivery; it is only
  ever changed with ``F()`` increments by the repository.
- ``is_verified`` marks riders cleared to take jobs.
"""

from __future__ import annotations

from decimal import Decimal

import uuid6
from django.contrib.auth.models import AbstractUser, UserManager
from django.db import models


class UserRole(models.TextChoices):
    BUYER = "buyer", "Buyer"
    SELLER = "seller", "Seller"
    RIDER = "rider", "Rider"
    ADMIN = "admin", "Admin"


SELF_ASSIGNABLE_ROLES: frozenset[str] = frozenset(
    {UserRole.BUYER, UserRole.SELLER, UserRole.RIDER}
)


class MarketplaceUserManager(UserManager):
    """Creates users keyed by e-mail; ``username`` defaults to the e-mail."""

    def _create_user(self, username, email, password, **extra_fields):
        email = self.normalize_email(email).lower()
        return super()._create_user(username or email, email, password, **extra_fields)

    def create_user(self, username=None, email=None, password=None, **extra_fields):
        return super().create_user(username, email, password, **extra_fields)

    def create_superuser(self, username=None, email=None, password=None, **extra_fields):
        extra_fields.setdefault("role", UserRole.ADMIN)
        return super().create_superuser(username, email, password, **extra_fields)


class User(AbstractUser):
    id = models.UUIDField(primary_key=True, default=uuid6.uuid7, editable=False)
    email = models.EmailField(unique=True)
    name = models.CharField(max_length=255, blank=True, default="")
    role = models.CharField(
        max_length=10,
        choices=UserRole.choices,
        default=UserRole.BUYER,
    )
    wallet_balance = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=Decimal("0.00"),
    )
    is_verified = models.BooleanField(default=False)

    USERNAME_FIELD = "email"
    REQUIRED_FIELDS = ["username"]

    objects = MarketplaceUserManager()

    class Meta:
        db_table = "users"
        indexes = [
            models.Index(fields=["role"], name="users_role_idx"),
        ]

    @property
    def display_name(self) -> str:
        return self.name or self.email

    def save(self, *args, **kwargs) -> None:
        if self.email:
            self.email = self.email.strip().lower()
        super().save(*args, **kwargs)

    def __str__(self) -> str:
        return f"{self.display_name} ({self.role})"
