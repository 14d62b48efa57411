"""Product service layer (Use Cases).

Orchestrates the catalogue: sellers list products, owners (or admins)
edit and delist them.  Persistence goes through the injected
``IProductRepository``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, Optional

import structlog
from django.db import transaction

from modules.accounts.models import UserRole
from modules.products.exceptions import (
    NotProductOwner,
    ProductNotFound,
    SellerRoleRequired,
)
from modules.products.models import Product

if TYPE_CHECKING:
    from django.db.models import QuerySet

    from modules.accounts.dtos import ActorDTO
    from modules.products.dtos import CreateProductDTO, UpdateProductDTO
    from modules.products.repositories.interfaces import IProductRepository

logger = structlog.get_logger(__name__)


class ProductService:
    """Application service for catalogue use-cases."""

    def __init__(self, repository: IProductRepository) -> None:
        self._repo = repository

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    @transaction.atomic
    def create_product(self, actor: ActorDTO, dto: CreateProductDTO) -> Product:
        """List a new product owned by ``actor``.

        Raises:
            SellerRoleRequired: the actor is not a seller.
        """
        if actor.role != UserRole.SELLER:
            raise SellerRoleRequired("Only sellers can list products.")

        product = Product(
            seller_id=actor.id,
            name=dto.name,
            price=dto.price,
            description=dto.description,
            stock_quantity=dto.stock_quantity,
        )
        product = self._repo.save(product)
        logger.info(
            "product.created", product_id=str(product.id), seller_id=str(actor.id)
        )
        return product

    @transaction.atomic
    def update_product(
        self, actor: ActorDTO, id: str, dto: UpdateProductDTO
    ) -> Product:
        """Raises:
        ProductNotFound: no live listing with this id.
        NotProductOwner: actor is neither the seller nor an admin.
        """
        product = self._get_owned(actor, id)

        for field in ("name", "price", "description", "stock_quantity", "status"):
            value = getattr(dto, field)
            if value is not None:
                setattr(product, field, value)

        product = self._repo.save(product)
        logger.info("product.updated", product_id=str(id))
        return product

    @transaction.atomic
    def delete_product(self, actor: ActorDTO, id: str) -> None:
        self._get_owned(actor, id)
        self._repo.delete(id)
        logger.info("product.soft_deleted", product_id=str(id))

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def list_products(self, filters: Optional[Dict[str, Any]] = None) -> QuerySet:
        return self._repo.list(filters)

    def get_product(self, id: str) -> Product:
        """Raises:
        ProductNotFound: no live listing with this id.
        """
        product = self._repo.get_by_id(id)
        if not product:
            raise ProductNotFound(f"Product {id} not found.")
        return product

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _get_owned(self, actor: ActorDTO, id: str) -> Product:
        product = self.get_product(id)
        if actor.role != UserRole.ADMIN and product.seller_id != actor.id:
            logger.warning(
                "product.not_owner", product_id=str(id), actor_id=str(actor.id)
            )
            raise NotProductOwner("You can only manage your own listings.")
        return product
