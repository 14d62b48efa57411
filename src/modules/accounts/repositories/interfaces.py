"""User repository interface.

The order core consumes users through this contract: identity/role
look-ups and wallet credits on delivery.
"""

from __future__ import annotations

from abc import abstractmethod
from decimal import Decimal
from typing import TYPE_CHECKING, Optional

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from modules.accounts.models import User


class IUserRepository(IRepository["User"]):
    """Repository contract for marketplace users."""

    @abstractmethod
    def get_by_email(self, email: str) -> Optional[User]:
        """Retrieve a user by e-mail (case-insensitive)."""

    @abstractmethod
    def create(self, email: str, password: str, name: str, role: str) -> User:
        """Create a user with a hashed password."""

    @abstractmethod
    def credit_wallet(self, id: str, amount: Decimal) -> None:
        """Atomically add ``amount`` to the user's wallet balance."""
