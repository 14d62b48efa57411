"""Django ORM implementation of the User repository.

Returns ``None`` for missing users (Null Object style); the Service Layer
decides which domain exception that becomes.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Dict, List, Optional

import structlog
from django.core.exceptions import ValidationError
from django.db import transaction
from django.db.models import F

from modules.accounts.models import User
from modules.accounts.repositories.interfaces import IUserRepository

logger = structlog.get_logger(__name__)


class UserDjangoRepository(IUserRepository):
    """Concrete User repository backed by Django ORM."""

    def get_by_id(self, id: str) -> Optional[User]:
        try:
            return User.objects.filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def get_by_email(self, email: str) -> Optional[User]:
        return User.objects.filter(email=email.strip().lower()).first()

    def list(self, filters: Optional[Dict[str, Any]] = None) -> List[User]:
        queryset = User.objects.all()
        if filters:
            queryset = queryset.filter(**filters)
        return list(queryset)

    @transaction.atomic
    def save(self, entity: User) -> User:
        entity.save()
        logger.info("user.saved", user_id=str(entity.id), role=entity.role)
        return entity

    @transaction.atomic
    def create(self, email: str, password: str, name: str, role: str) -> User:
        return User.objects.create_user(
            email=email,
            password=password,
            name=name,
            role=role,
        )

    def credit_wallet(self, id: str, amount: Decimal) -> None:
        """``UPDATE users SET wallet_balance = wallet_balance + amount``.

        No read-modify-write: concurrent deliveries to the same rider
        cannot lose a credit.
        """
        updated = User.objects.filter(id=id).update(
            wallet_balance=F("wallet_balance") + amount
        )
        logger.info(
            "wallet.credited",
            user_id=str(id),
            amount=str(amount),
            updated=bool(updated),
        )
