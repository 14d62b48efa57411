"""Unit tests for OrderService.create_order.

Covers:
- Charges computed from the product row (price, commission, totals).
- Seller derived from the product.
- Role guard: only buyers place orders.
- Product validation: missing, deleted, inactive, own listing.
- Stock reservation and rollback on insufficient stock.
- Idempotent replays.
- History and outbox records.
"""

from __future__ import annotations

from decimal import Decimal
from unittest.mock import patch
from uuid import uuid4

import pytest

from modules.accounts.repositories.django_repository import UserDjangoRepository
from modules.core.models import OutboxEvent
from modules.orders.config import MarketplaceConfig
from modules.orders.constants import OrderStatus
from modules.orders.dtos import CreateOrderDTO
from modules.orders.exceptions import (
    InactiveProduct,
    InsufficientStock,
    InvalidOrderInput,
    ProductNotFound,
    RoleNotAllowed,
)
from modules.orders.models import Order, OrderStatusHistory
from modules.orders.repositories.django_repository import OrderDjangoRepository
from modules.orders.services import OrderService
from modules.products.models import Product, ProductStatus
from modules.products.repositories.django_repository import ProductDjangoRepository

pytestmark = pytest.mark.unit


class TestCreateOrderSuccess:
    def test_creates_pending_order(self, place_order):
        order = place_order()

        assert order.status == OrderStatus.PENDING
        assert order.rider_id is None
        assert order.order_number.startswith("ORD-")

    def test_charges_follow_reference_example(self, place_order):
        order = place_order()

        assert order.unit_price == Decimal("10000.00")
        assert order.price == Decimal("10000.00")
        assert order.delivery_fee == Decimal("1500.00")
        assert order.commission == Decimal("1000.00")
        assert order.total_amount == Decimal("11500.00")
        assert order.net_seller_payout == Decimal("9000.00")

    def test_quantity_multiplies_price(self, place_order):
        order = place_order(quantity=3)

        assert order.price == Decimal("30000.00")
        assert order.commission == Decimal("3000.00")
        assert order.total_amount == Decimal("31500.00")

    def test_delivery_fee_override(self, place_order):
        order = place_order(delivery_fee=Decimal("800"))

        assert order.delivery_fee == Decimal("800.00")
        assert order.total_amount == Decimal("10800.00")

    def test_seller_comes_from_product(self, place_order, buyer, seller):
        order = place_order()

        assert order.seller_id == seller.id
        assert order.buyer_id == buyer.id

    def test_commission_rate_comes_from_config(self, buyer, product, as_actor):
        service = OrderService(
            order_repository=OrderDjangoRepository(),
            product_repository=ProductDjangoRepository(),
            user_repository=UserDjangoRepository(),
            config=MarketplaceConfig(
                commission_rate=Decimal("0.25"),
                default_delivery_fee=Decimal("0"),
            ),
        )
        receipt = service.create_order(
            as_actor(buyer), CreateOrderDTO(product_id=product.id)
        )

        assert receipt.commission == Decimal("2500.00")
        assert receipt.net_seller_payout == Decimal("7500.00")
        assert receipt.order.total_amount == Decimal("10000.00")

    def test_reserves_stock(self, place_order, product):
        place_order(quantity=4)

        product.refresh_from_db()
        assert product.stock_quantity == 6

    def test_records_initial_history(self, place_order, buyer):
        order = place_order()

        history = OrderStatusHistory.objects.filter(order=order)
        assert history.count() == 1
        entry = history.get()
        assert entry.old_status is None
        assert entry.new_status == OrderStatus.PENDING
        assert entry.user_id == buyer.id

    def test_writes_order_created_to_outbox(self, place_order, buyer):
        order = place_order()

        event = OutboxEvent.objects.get(aggregate_id=str(order.id))
        assert event.event_type == "OrderCreated"
        assert event.topic == "orders"
        assert event.payload["buyer_id"] == str(buyer.id)
        assert event.payload["total_amount"] == "11500.00"

    def test_receipt_marks_new_order_as_created(
        self, order_service, buyer, product, as_actor
    ):
        receipt = order_service.create_order(
            as_actor(buyer), CreateOrderDTO(product_id=product.id)
        )
        assert receipt.created is True

    def test_created_hook_called(self, order_service, buyer, product, as_actor):
        with patch.object(order_service, "_on_order_created") as hook:
            receipt = order_service.create_order(
                as_actor(buyer), CreateOrderDTO(product_id=product.id)
            )
        hook.assert_called_once()
        assert hook.call_args.args[0].id == receipt.order.id


class TestCreateOrderRejections:
    @pytest.mark.parametrize("role_fixture", ["seller", "rider", "admin_user"])
    def test_non_buyers_cannot_order(
        self, request, role_fixture, order_service, product, as_actor
    ):
        user = request.getfixturevalue(role_fixture)
        with pytest.raises(RoleNotAllowed):
            order_service.create_order(
                as_actor(user), CreateOrderDTO(product_id=product.id)
            )
        assert Order.objects.count() == 0

    def test_unknown_product(self, order_service, buyer, as_actor):
        with pytest.raises(ProductNotFound):
            order_service.create_order(
                as_actor(buyer), CreateOrderDTO(product_id=uuid4())
            )

    def test_deleted_product(self, order_service, buyer, product, as_actor):
        product.delete()
        with pytest.raises(ProductNotFound):
            order_service.create_order(
                as_actor(buyer), CreateOrderDTO(product_id=product.id)
            )

    def test_inactive_product(self, order_service, buyer, product, as_actor):
        Product.objects.filter(id=product.id).update(status=ProductStatus.INACTIVE)
        with pytest.raises(InactiveProduct):
            order_service.create_order(
                as_actor(buyer), CreateOrderDTO(product_id=product.id)
            )

    def test_own_listing(self, order_service, buyer, as_actor):
        own = Product.objects.create(
            seller=buyer, name="Resale", price=Decimal("10.00"), stock_quantity=5
        )
        with pytest.raises(InvalidOrderInput, match="own listing"):
            order_service.create_order(
                as_actor(buyer), CreateOrderDTO(product_id=own.id)
            )

    def test_insufficient_stock_rolls_back(
        self, order_service, buyer, product, as_actor
    ):
        with pytest.raises(InsufficientStock):
            order_service.create_order(
                as_actor(buyer), CreateOrderDTO(product_id=product.id, quantity=11)
            )

        product.refresh_from_db()
        assert product.stock_quantity == 10
        assert Order.objects.count() == 0
        assert OrderStatusHistory.objects.count() == 0
        assert OutboxEvent.objects.count() == 0

    def test_stock_lost_to_concurrent_buyer(
        self, order_service, buyer, product, as_actor
    ):
        # The row read says 10 left; a parallel order drained it first.
        with patch.object(
            order_service._product_repo, "decrement_stock", return_value=False
        ):
            with pytest.raises(InsufficientStock) as exc_info:
                order_service.create_order(
                    as_actor(buyer), CreateOrderDTO(product_id=product.id, quantity=2)
                )

        message = str(exc_info.value)
        assert "not enough stock for 2 unit(s)" in message
        assert "available" not in message
        assert Order.objects.count() == 0

    def test_exact_stock_is_enough(self, place_order, product):
        place_order(quantity=10)

        product.refresh_from_db()
        assert product.stock_quantity == 0


class TestIdempotency:
    def test_same_key_returns_same_order(
        self, order_service, buyer, product, as_actor
    ):
        dto = CreateOrderDTO(product_id=product.id, idempotency_key="key-1")
        first = order_service.create_order(as_actor(buyer), dto)
        second = order_service.create_order(as_actor(buyer), dto)

        assert second.created is False
        assert second.order.id == first.order.id
        assert Order.objects.count() == 1

    def test_replay_does_not_reserve_stock_twice(
        self, order_service, buyer, product, as_actor
    ):
        dto = CreateOrderDTO(product_id=product.id, quantity=2, idempotency_key="k")
        order_service.create_order(as_actor(buyer), dto)
        order_service.create_order(as_actor(buyer), dto)

        product.refresh_from_db()
        assert product.stock_quantity == 8

    def test_key_of_another_buyer_is_rejected(
        self, order_service, buyer, other_buyer, product, as_actor
    ):
        dto = CreateOrderDTO(product_id=product.id, idempotency_key="shared")
        order_service.create_order(as_actor(buyer), dto)

        with pytest.raises(InvalidOrderInput):
            order_service.create_order(as_actor(other_buyer), dto)
