"""Unit tests for the order state machine.

Covers:
- Claim: PENDING -> IN_TRANSIT, at most one rider, admin assignment,
  verified-rider policy.
- Delivery: IN_TRANSIT -> DELIVERED by the assigned rider or an admin,
  wallet payouts from stored amounts.
- Cancellation: PENDING -> CANCELLED by buyer, seller or admin, stock
  restored.
- History and outbox rows for each transition.
"""

from __future__ import annotations

from decimal import Decimal
from unittest.mock import patch
from uuid import uuid4

import pytest

from modules.accounts.models import User
from modules.accounts.repositories.django_repository import UserDjangoRepository
from modules.core.models import OutboxEvent
from modules.orders.config import MarketplaceConfig
from modules.orders.constants import OrderStatus
from modules.orders.exceptions import (
    InvalidOrderInput,
    InvalidOrderStatus,
    JobAlreadyClaimed,
    OrderNotFound,
    RoleNotAllowed,
)
from modules.orders.models import Order, OrderStatusHistory
from modules.orders.repositories.django_repository import OrderDjangoRepository
from modules.orders.services import OrderService
from modules.products.repositories.django_repository import ProductDjangoRepository

pytestmark = pytest.mark.unit


@pytest.fixture()
def strict_service():
    """Service that refuses unverified riders."""
    return OrderService(
        order_repository=OrderDjangoRepository(),
        product_repository=ProductDjangoRepository(),
        user_repository=UserDjangoRepository(),
        config=MarketplaceConfig(require_verified_riders=True),
    )


# ===========================================================================
# Claim
# ===========================================================================


class TestClaimJob:
    def test_rider_claims_pending_order(
        self, order_service, pending_order, rider, as_actor
    ):
        order = order_service.claim_job(as_actor(rider), str(pending_order.id))

        assert order.status == OrderStatus.IN_TRANSIT
        assert order.rider_id == rider.id
        assert order.claimed_at is not None

    def test_second_claim_by_other_rider_conflicts(
        self, order_service, pending_order, rider, other_rider, as_actor
    ):
        order_service.claim_job(as_actor(rider), str(pending_order.id))

        with pytest.raises(JobAlreadyClaimed):
            order_service.claim_job(as_actor(other_rider), str(pending_order.id))

        pending_order.refresh_from_db()
        assert pending_order.rider_id == rider.id

    def test_second_claim_by_same_rider_conflicts(
        self, order_service, pending_order, rider, as_actor
    ):
        order_service.claim_job(as_actor(rider), str(pending_order.id))

        with pytest.raises(JobAlreadyClaimed):
            order_service.claim_job(as_actor(rider), str(pending_order.id))

        assert (
            OrderStatusHistory.objects.filter(
                order_id=pending_order.id, new_status=OrderStatus.IN_TRANSIT
            ).count()
            == 1
        )

    def test_job_already_claimed_is_an_invalid_status(self):
        assert issubclass(JobAlreadyClaimed, InvalidOrderStatus)

    def test_claiming_cancelled_order_conflicts(
        self, order_service, pending_order, buyer, rider, as_actor
    ):
        order_service.cancel_order(as_actor(buyer), str(pending_order.id))

        with pytest.raises(JobAlreadyClaimed, match="cancelled"):
            order_service.claim_job(as_actor(rider), str(pending_order.id))

    def test_unknown_order(self, order_service, rider, as_actor):
        with pytest.raises(OrderNotFound):
            order_service.claim_job(as_actor(rider), str(uuid4()))

    def test_malformed_order_id(self, order_service, rider, as_actor):
        with pytest.raises(OrderNotFound):
            order_service.claim_job(as_actor(rider), "not-a-uuid")

    @pytest.mark.parametrize("role_fixture", ["buyer", "seller"])
    def test_non_riders_cannot_claim(
        self, request, role_fixture, order_service, pending_order, as_actor
    ):
        user = request.getfixturevalue(role_fixture)
        with pytest.raises(RoleNotAllowed):
            order_service.claim_job(as_actor(user), str(pending_order.id))

        pending_order.refresh_from_db()
        assert pending_order.status == OrderStatus.PENDING

    def test_rider_cannot_claim_for_someone_else(
        self, order_service, pending_order, rider, other_rider, as_actor
    ):
        order = order_service.claim_job(
            as_actor(rider), str(pending_order.id), rider_id=other_rider.id
        )
        assert order.rider_id == rider.id

    def test_admin_assigns_named_rider(
        self, order_service, pending_order, admin_user, rider, as_actor
    ):
        order = order_service.claim_job(
            as_actor(admin_user), str(pending_order.id), rider_id=rider.id
        )

        assert order.rider_id == rider.id
        history = order.status_history.get(new_status=OrderStatus.IN_TRANSIT)
        assert history.user_id == admin_user.id

    def test_admin_must_name_a_rider(
        self, order_service, pending_order, admin_user, as_actor
    ):
        with pytest.raises(InvalidOrderInput, match="rider_id"):
            order_service.claim_job(as_actor(admin_user), str(pending_order.id))

    def test_admin_cannot_assign_non_rider(
        self, order_service, pending_order, admin_user, buyer, as_actor
    ):
        with pytest.raises(InvalidOrderInput, match="not a rider"):
            order_service.claim_job(
                as_actor(admin_user), str(pending_order.id), rider_id=buyer.id
            )

    def test_admin_cannot_assign_unknown_user(
        self, order_service, pending_order, admin_user, as_actor
    ):
        with pytest.raises(InvalidOrderInput):
            order_service.claim_job(
                as_actor(admin_user), str(pending_order.id), rider_id=uuid4()
            )

    def test_unverified_rider_allowed_by_default(
        self, order_service, pending_order, make_user, as_actor
    ):
        newbie = make_user("rider", is_verified=False)
        order = order_service.claim_job(as_actor(newbie), str(pending_order.id))
        assert order.rider_id == newbie.id

    def test_unverified_rider_refused_when_required(
        self, strict_service, pending_order, make_user, as_actor
    ):
        newbie = make_user("rider", is_verified=False)
        with pytest.raises(RoleNotAllowed, match="not verified"):
            strict_service.claim_job(as_actor(newbie), str(pending_order.id))

    def test_verified_rider_accepted_when_required(
        self, strict_service, pending_order, rider, as_actor
    ):
        order = strict_service.claim_job(as_actor(rider), str(pending_order.id))
        assert order.status == OrderStatus.IN_TRANSIT

    def test_admin_cannot_assign_unverified_rider_when_required(
        self, strict_service, pending_order, admin_user, make_user, as_actor
    ):
        newbie = make_user("rider", is_verified=False)
        with pytest.raises(RoleNotAllowed):
            strict_service.claim_job(
                as_actor(admin_user), str(pending_order.id), rider_id=newbie.id
            )

    def test_records_history_and_event(
        self, order_service, pending_order, rider, as_actor
    ):
        order_service.claim_job(as_actor(rider), str(pending_order.id))

        history = OrderStatusHistory.objects.get(
            order_id=pending_order.id, new_status=OrderStatus.IN_TRANSIT
        )
        assert history.old_status == OrderStatus.PENDING
        assert history.user_id == rider.id

        event = OutboxEvent.objects.get(
            aggregate_id=str(pending_order.id), event_type="JobClaimed"
        )
        assert event.payload["rider_id"] == str(rider.id)

    def test_claim_hook_called(self, order_service, pending_order, rider, as_actor):
        with patch.object(order_service, "_on_job_claimed") as hook:
            order_service.claim_job(as_actor(rider), str(pending_order.id))
        hook.assert_called_once()


# ===========================================================================
# Delivery
# ===========================================================================


class TestConfirmDelivery:
    def test_assigned_rider_delivers(
        self, order_service, in_transit_order, rider, as_actor
    ):
        order = order_service.confirm_delivery(as_actor(rider), str(in_transit_order.id))

        assert order.status == OrderStatus.DELIVERED
        assert order.delivered_at is not None
        assert order.rider_id == rider.id

    def test_credits_rider_and_seller_wallets(
        self, order_service, in_transit_order, rider, seller, as_actor
    ):
        order_service.confirm_delivery(as_actor(rider), str(in_transit_order.id))

        rider.refresh_from_db()
        seller.refresh_from_db()
        assert rider.wallet_balance == Decimal("1500.00")
        assert seller.wallet_balance == Decimal("9000.00")

    def test_payout_uses_stored_amounts(
        self, order_service, in_transit_order, rider, seller, as_actor
    ):
        Order.objects.filter(id=in_transit_order.id).update(
            delivery_fee=Decimal("700.00"), net_seller_payout=Decimal("4000.00")
        )
        order_service.confirm_delivery(as_actor(rider), str(in_transit_order.id))

        rider.refresh_from_db()
        seller.refresh_from_db()
        assert rider.wallet_balance == Decimal("700.00")
        assert seller.wallet_balance == Decimal("4000.00")

    def test_buyer_wallet_untouched(
        self, order_service, in_transit_order, rider, buyer, as_actor
    ):
        order_service.confirm_delivery(as_actor(rider), str(in_transit_order.id))

        buyer.refresh_from_db()
        assert buyer.wallet_balance == Decimal("0.00")

    def test_admin_can_confirm(
        self, order_service, in_transit_order, admin_user, rider, as_actor
    ):
        order = order_service.confirm_delivery(
            as_actor(admin_user), str(in_transit_order.id)
        )
        assert order.status == OrderStatus.DELIVERED
        rider.refresh_from_db()
        assert rider.wallet_balance == Decimal("1500.00")

    def test_other_rider_cannot_confirm(
        self, order_service, in_transit_order, other_rider, as_actor
    ):
        with pytest.raises(RoleNotAllowed, match="assigned rider"):
            order_service.confirm_delivery(
                as_actor(other_rider), str(in_transit_order.id)
            )

        in_transit_order.refresh_from_db()
        assert in_transit_order.status == OrderStatus.IN_TRANSIT

    @pytest.mark.parametrize("role_fixture", ["buyer", "seller"])
    def test_buyer_and_seller_cannot_confirm(
        self, request, role_fixture, order_service, in_transit_order, as_actor
    ):
        user = request.getfixturevalue(role_fixture)
        with pytest.raises(RoleNotAllowed):
            order_service.confirm_delivery(as_actor(user), str(in_transit_order.id))

    def test_pending_order_cannot_be_delivered(
        self, order_service, pending_order, rider, as_actor
    ):
        with pytest.raises(InvalidOrderStatus):
            order_service.confirm_delivery(as_actor(rider), str(pending_order.id))

    def test_double_delivery_pays_once(
        self, order_service, in_transit_order, rider, as_actor
    ):
        order_service.confirm_delivery(as_actor(rider), str(in_transit_order.id))

        with pytest.raises(InvalidOrderStatus):
            order_service.confirm_delivery(as_actor(rider), str(in_transit_order.id))

        rider.refresh_from_db()
        assert rider.wallet_balance == Decimal("1500.00")

    def test_unknown_order(self, order_service, rider, as_actor):
        with pytest.raises(OrderNotFound):
            order_service.confirm_delivery(as_actor(rider), str(uuid4()))

    def test_records_history_and_event(
        self, order_service, in_transit_order, rider, as_actor
    ):
        order_service.confirm_delivery(as_actor(rider), str(in_transit_order.id))

        statuses = list(
            OrderStatusHistory.objects.filter(order_id=in_transit_order.id)
            .order_by("created_at")
            .values_list("new_status", flat=True)
        )
        assert statuses == [
            OrderStatus.PENDING,
            OrderStatus.IN_TRANSIT,
            OrderStatus.DELIVERED,
        ]
        event = OutboxEvent.objects.get(
            aggregate_id=str(in_transit_order.id), event_type="OrderDelivered"
        )
        assert event.payload["rider_payout"] == "1500.00"
        assert event.payload["seller_payout"] == "9000.00"


# ===========================================================================
# Cancellation
# ===========================================================================


class TestCancelOrder:
    @pytest.mark.parametrize("role_fixture", ["buyer", "seller", "admin_user"])
    def test_allowed_roles_cancel_pending(
        self, request, role_fixture, order_service, pending_order, as_actor
    ):
        user = request.getfixturevalue(role_fixture)
        order = order_service.cancel_order(as_actor(user), str(pending_order.id))

        assert order.status == OrderStatus.CANCELLED
        assert order.rider_id is None

    def test_restores_stock(
        self, order_service, place_order, buyer, product, as_actor
    ):
        order = place_order(quantity=3)
        product.refresh_from_db()
        assert product.stock_quantity == 7

        order_service.cancel_order(as_actor(buyer), str(order.id))

        product.refresh_from_db()
        assert product.stock_quantity == 10

    def test_in_transit_cannot_be_cancelled(
        self, order_service, in_transit_order, buyer, product, as_actor
    ):
        with pytest.raises(InvalidOrderStatus):
            order_service.cancel_order(as_actor(buyer), str(in_transit_order.id))

        product.refresh_from_db()
        assert product.stock_quantity == 9

    def test_cancel_twice_conflicts(
        self, order_service, pending_order, buyer, product, as_actor
    ):
        order_service.cancel_order(as_actor(buyer), str(pending_order.id))

        with pytest.raises(InvalidOrderStatus):
            order_service.cancel_order(as_actor(buyer), str(pending_order.id))

        product.refresh_from_db()
        assert product.stock_quantity == 10

    def test_unrelated_buyer_sees_not_found(
        self, order_service, pending_order, other_buyer, as_actor
    ):
        with pytest.raises(OrderNotFound):
            order_service.cancel_order(as_actor(other_buyer), str(pending_order.id))

    def test_unrelated_rider_sees_not_found(
        self, order_service, pending_order, rider, as_actor
    ):
        with pytest.raises(OrderNotFound):
            order_service.cancel_order(as_actor(rider), str(pending_order.id))

    def test_records_history_with_notes(
        self, order_service, pending_order, buyer, as_actor
    ):
        order_service.cancel_order(
            as_actor(buyer), str(pending_order.id), notes="Wrong address"
        )

        history = OrderStatusHistory.objects.get(
            order_id=pending_order.id, new_status=OrderStatus.CANCELLED
        )
        assert history.old_status == OrderStatus.PENDING
        assert history.notes == "Wrong address"
        assert OutboxEvent.objects.filter(
            aggregate_id=str(pending_order.id), event_type="OrderCancelled"
        ).exists()

    def test_cancel_hook_called(self, order_service, pending_order, buyer, as_actor):
        with patch.object(order_service, "_on_order_cancelled") as hook:
            order_service.cancel_order(as_actor(buyer), str(pending_order.id))
        hook.assert_called_once()


class TestRiderInvariant:
    def test_rider_set_only_after_claim(
        self, order_service, place_order, buyer, rider, as_actor
    ):
        pending = place_order()
        claimed = order_service.claim_job(as_actor(rider), str(place_order().id))
        cancelled = order_service.cancel_order(as_actor(buyer), str(pending.id))

        for order in Order.objects.all():
            if order.status in (OrderStatus.PENDING, OrderStatus.CANCELLED):
                assert order.rider_id is None
            else:
                assert order.rider_id is not None
        assert claimed.rider_id == rider.id
        assert cancelled.rider_id is None
        assert User.objects.filter(deliveries__isnull=False).distinct().count() == 1
