"""Product repository interface.

Besides CRUD, exposes the two stock primitives the order core relies on.
Both are single conditional UPDATE statements, never read-then-write.
"""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, Optional

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from modules.products.models import Product


class IProductRepository(IRepository["Product"]):
    """Repository contract for catalogue listings."""

    @abstractmethod
    def delete(self, id: str) -> bool:
        """Soft-delete a listing."""

    @abstractmethod
    def decrement_stock(self, id: str, quantity: int) -> bool:
        """Take ``quantity`` units if at least that many remain.

        Returns ``False`` (and changes nothing) when stock is insufficient.
        """

    @abstractmethod
    def restore_stock(self, id: str, quantity: int) -> None:
        """Give ``quantity`` units back, e.g. on cancellation."""
