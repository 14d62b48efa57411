"""Unit tests for ProductService and the stock primitives."""

from __future__ import annotations

from decimal import Decimal
from uuid import uuid4

import pytest
from pydantic import ValidationError

from modules.products.dtos import CreateProductDTO, UpdateProductDTO
from modules.products.exceptions import (
    NotProductOwner,
    ProductNotFound,
    SellerRoleRequired,
)
from modules.products.models import Product, ProductStatus
from modules.products.repositories.django_repository import ProductDjangoRepository
from modules.products.services import ProductService

pytestmark = pytest.mark.unit


@pytest.fixture()
def service():
    return ProductService(repository=ProductDjangoRepository())


class TestCreateProduct:
    def test_seller_lists_product(self, service, seller, as_actor):
        product = service.create_product(
            as_actor(seller),
            CreateProductDTO(name="Suya", price=Decimal("3000"), stock_quantity=4),
        )
        assert product.seller_id == seller.id
        assert product.status == ProductStatus.ACTIVE
        assert product.stock_quantity == 4

    @pytest.mark.parametrize("role_fixture", ["buyer", "rider", "admin_user"])
    def test_non_sellers_refused(self, request, role_fixture, service, as_actor):
        user = request.getfixturevalue(role_fixture)
        with pytest.raises(SellerRoleRequired):
            service.create_product(
                as_actor(user), CreateProductDTO(name="X", price=Decimal("1"))
            )

    def test_dto_rejects_non_positive_price(self):
        with pytest.raises(ValidationError, match="greater than zero"):
            CreateProductDTO(name="X", price=Decimal("0"))

    def test_dto_rejects_blank_name(self):
        with pytest.raises(ValidationError, match="must not be empty"):
            CreateProductDTO(name="   ", price=Decimal("1"))


class TestUpdateAndDelete:
    def test_owner_updates(self, service, product, seller, as_actor):
        updated = service.update_product(
            as_actor(seller),
            str(product.id),
            UpdateProductDTO(price=Decimal("12000"), status=ProductStatus.INACTIVE),
        )
        assert updated.price == Decimal("12000")
        assert updated.status == ProductStatus.INACTIVE
        assert updated.name == "Jollof rice tray"

    def test_other_seller_refused(self, service, product, make_user, as_actor):
        rival = make_user("seller")
        with pytest.raises(NotProductOwner):
            service.update_product(
                as_actor(rival), str(product.id), UpdateProductDTO(name="Mine now")
            )

    def test_admin_may_update(self, service, product, admin_user, as_actor):
        updated = service.update_product(
            as_actor(admin_user), str(product.id), UpdateProductDTO(stock_quantity=0)
        )
        assert updated.stock_quantity == 0

    def test_unknown_status_rejected(self):
        with pytest.raises(ValidationError, match="Unknown product status"):
            UpdateProductDTO(status="archived")

    def test_soft_delete_hides_product(self, service, product, seller, as_actor):
        service.delete_product(as_actor(seller), str(product.id))

        assert Product.objects.filter(id=product.id).exists()
        with pytest.raises(ProductNotFound):
            service.get_product(str(product.id))

    def test_get_unknown(self, service):
        with pytest.raises(ProductNotFound):
            service.get_product(str(uuid4()))


class TestStockPrimitives:
    def test_decrement_within_stock(self, product):
        repo = ProductDjangoRepository()
        assert repo.decrement_stock(str(product.id), 4) is True
        product.refresh_from_db()
        assert product.stock_quantity == 6

    def test_decrement_beyond_stock_changes_nothing(self, product):
        repo = ProductDjangoRepository()
        assert repo.decrement_stock(str(product.id), 11) is False
        product.refresh_from_db()
        assert product.stock_quantity == 10

    def test_decrement_deleted_product(self, product):
        product.delete()
        assert ProductDjangoRepository().decrement_stock(str(product.id), 1) is False

    def test_restore(self, product):
        ProductDjangoRepository().restore_stock(str(product.id), 5)
        product.refresh_from_db()
        assert product.stock_quantity == 15
