from decimal import Decimal

import pytest
from django.core.cache import cache
from rest_framework.test import APIClient

from modules.accounts.dtos import ActorDTO
from modules.accounts.models import User, UserRole
from modules.accounts.repositories.django_repository import UserDjangoRepository
from modules.orders.config import MarketplaceConfig
from modules.orders.dtos import CreateOrderDTO
from modules.orders.repositories.django_repository import OrderDjangoRepository
from modules.orders.services import OrderService
from modules.products.models import Product, ProductStatus
from modules.products.repositories.django_repository import ProductDjangoRepository


@pytest.fixture(autouse=True)
def _use_db(db):
    """Automatically use the test database for all tests."""


@pytest.fixture(autouse=True)
def _clear_cache():
    """Throttle counters live in the cache; start every test from zero."""
    cache.clear()
    yield
    cache.clear()


@pytest.fixture()
def api_client():
    """DRF APIClient for testing API endpoints."""
    return APIClient()


@pytest.fixture()
def api_client_with_correlation(api_client):
    """APIClient pre-configured with a known correlation ID header."""
    cid = "test-correlation-id-fixture"
    api_client.defaults["HTTP_X_REQUEST_ID"] = cid
    return api_client, cid


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


@pytest.fixture()
def make_user():
    def _make(role=UserRole.BUYER, email=None, **extra):
        email = email or f"{role}-{User.objects.count() + 1}@example.com"
        return User.objects.create_user(
            email=email,
            password="s3cret-pass",
            name=extra.pop("name", f"{role.title()} {User.objects.count() + 1}"),
            role=role,
            **extra,
        )

    return _make


@pytest.fixture()
def buyer(make_user):
    return make_user(UserRole.BUYER, email="buyer@example.com", name="Bola Buyer")


@pytest.fixture()
def other_buyer(make_user):
    return make_user(UserRole.BUYER, email="buyer2@example.com", name="Tayo Buyer")


@pytest.fixture()
def seller(make_user):
    return make_user(UserRole.SELLER, email="seller@example.com", name="Sade Seller")


@pytest.fixture()
def rider(make_user):
    return make_user(
        UserRole.RIDER, email="rider@example.com", name="Remi Rider", is_verified=True
    )


@pytest.fixture()
def other_rider(make_user):
    return make_user(
        UserRole.RIDER, email="rider2@example.com", name="Kola Rider", is_verified=True
    )


@pytest.fixture()
def admin_user():
    return User.objects.create_superuser(
        email="admin@example.com", password="s3cret-pass", name="Ada Admin"
    )


def actor(user) -> ActorDTO:
    return ActorDTO.from_user(user)


@pytest.fixture()
def as_actor():
    return actor


# ---------------------------------------------------------------------------
# Catalogue and orders
# ---------------------------------------------------------------------------


@pytest.fixture()
def product(seller):
    return Product.objects.create(
        seller=seller,
        name="Jollof rice tray",
        price=Decimal("10000.00"),
        stock_quantity=10,
        status=ProductStatus.ACTIVE,
    )


@pytest.fixture()
def marketplace_config():
    return MarketplaceConfig(
        commission_rate=Decimal("0.10"),
        default_delivery_fee=Decimal("1500.00"),
        require_verified_riders=False,
    )


@pytest.fixture()
def order_service(marketplace_config):
    return OrderService(
        order_repository=OrderDjangoRepository(),
        product_repository=ProductDjangoRepository(),
        user_repository=UserDjangoRepository(),
        config=marketplace_config,
    )


@pytest.fixture()
def place_order(order_service, buyer, product):
    """Place an order through the service; defaults to one unit of ``product``."""

    def _place(by=None, item=None, **fields):
        dto = CreateOrderDTO(
            product_id=(item or product).id,
            quantity=fields.pop("quantity", 1),
            delivery_address=fields.pop("delivery_address", "12 Allen Avenue"),
            **fields,
        )
        return order_service.create_order(actor(by or buyer), dto).order

    return _place


@pytest.fixture()
def pending_order(place_order):
    return place_order()


@pytest.fixture()
def in_transit_order(order_service, pending_order, rider):
    return order_service.claim_job(actor(rider), str(pending_order.id))


@pytest.fixture()
def authenticated_client():
    """``authenticated_client(user)`` -> APIClient acting as ``user``."""

    def _client(user):
        client = APIClient()
        client.force_authenticate(user=user)
        return client

    return _client
