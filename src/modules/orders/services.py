"""Order service layer (Use Cases).

Orchestrates order placement, the delivery state machine, the rider
job feed and participant history.  Every command is atomic: the service
defines the unit-of-work boundary.

Business rules enforced:
- Only buyers place orders; price and seller come from the product row.
- Stock is reserved by a conditional decrement in the same transaction
  as the order insert.
- Claim, delivery and cancellation are conditional updates, so at most
  one rider ever wins a job.
- Delivery credits the rider (delivery fee) and the seller (net payout)
  from the amounts stored at creation.
- History is recorded on every status change.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional
from uuid import UUID

import structlog
from django.db import IntegrityError, transaction

from modules.accounts.exceptions import UserNotFound
from modules.accounts.models import UserRole
from modules.orders.config import MarketplaceConfig
from modules.orders.constants import (
    CAN_PLACE_ORDERS,
    CAN_VIEW_JOB_FEED,
    HISTORY_FIELDS_BY_ROLE,
    OrderStatus,
)
from modules.orders.dtos import OrderReceipt
from modules.orders.events import (
    JobClaimed,
    OrderCancelled,
    OrderCreated,
    OrderDelivered,
)
from modules.orders.exceptions import (
    InactiveProduct,
    InsufficientStock,
    InvalidOrderInput,
    InvalidOrderStatus,
    JobAlreadyClaimed,
    OrderNotFound,
    ProductNotFound,
    RoleNotAllowed,
)
from modules.orders.pricing import calculate_charges

if TYPE_CHECKING:
    from django.db.models import QuerySet

    from modules.accounts.dtos import ActorDTO
    from modules.accounts.repositories.interfaces import IUserRepository
    from modules.orders.dtos import CreateOrderDTO
    from modules.orders.models import Order
    from modules.orders.repositories.interfaces import IOrderRepository
    from modules.products.repositories.interfaces import IProductRepository

logger = structlog.get_logger(__name__)


class OrderService:
    """Application service for Order use-cases.

    Receives repositories and the marketplace config via constructor
    injection (DIP).
    """

    def __init__(
        self,
        order_repository: IOrderRepository,
        product_repository: IProductRepository,
        user_repository: IUserRepository,
        config: Optional[MarketplaceConfig] = None,
    ) -> None:
        self._order_repo = order_repository
        self._product_repo = product_repository
        self._user_repo = user_repository
        self._config = config or MarketplaceConfig()

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    @transaction.atomic
    def create_order(self, actor: ActorDTO, dto: CreateOrderDTO) -> OrderReceipt:
        """Place an order for ``dto.quantity`` units of one product.

        Steps:
        1. Check the caller may buy; replay an idempotent retry.
        2. Resolve the product (price and seller snapshot).
        3. Compute charges once.
        4. Insert the order, then reserve stock with a conditional
           decrement; a failed decrement rolls the insert back.
        5. Record history and the ``OrderCreated`` outbox event.

        Raises:
            RoleNotAllowed: caller is not a buyer.
            ProductNotFound: product does not exist or was deleted.
            InactiveProduct: product is not on sale.
            InvalidOrderInput: own listing, or a key owned by someone else.
            InsufficientStock: fewer units left than requested.
        """
        log = logger.bind(buyer_id=str(actor.id), product_id=str(dto.product_id))
        log.info("order.creation_started")

        if not CAN_PLACE_ORDERS[actor.role]:
            raise RoleNotAllowed("Only buyers can place orders.")

        if dto.idempotency_key:
            existing = self._order_repo.get_by_idempotency_key(dto.idempotency_key)
            if existing:
                return self._replay(actor, existing, log)

        product = self._product_repo.get_by_id(str(dto.product_id))
        if not product:
            raise ProductNotFound(f"Product {dto.product_id} not found.")
        if not product.is_orderable:
            raise InactiveProduct(f"Product {dto.product_id} is not available.")
        if product.seller_id == actor.id:
            raise InvalidOrderInput("You cannot order your own listing.")

        delivery_fee = (
            dto.delivery_fee
            if dto.delivery_fee is not None
            else self._config.default_delivery_fee
        )
        charges = calculate_charges(
            unit_price=product.price,
            quantity=dto.quantity,
            delivery_fee=delivery_fee,
            commission_rate=self._config.commission_rate,
        )

        try:
            with transaction.atomic():
                order = self._order_repo.create(
                    {
                        "buyer_id": actor.id,
                        "seller_id": product.seller_id,
                        "product_id": product.id,
                        "quantity": charges.quantity,
                        "unit_price": charges.unit_price,
                        "price": charges.price,
                        "delivery_fee": charges.delivery_fee,
                        "commission": charges.commission,
                        "total_amount": charges.total_amount,
                        "net_seller_payout": charges.net_seller_payout,
                        "delivery_address": dto.delivery_address,
                        "notes": dto.notes,
                        "idempotency_key": dto.idempotency_key,
                    }
                )
        except IntegrityError:
            # Lost a race on the same idempotency key.
            existing = (
                self._order_repo.get_by_idempotency_key(dto.idempotency_key)
                if dto.idempotency_key
                else None
            )
            if not existing:
                raise
            return self._replay(actor, existing, log)

        if not self._product_repo.decrement_stock(str(product.id), dto.quantity):
            log.warning("order.insufficient_stock", requested=dto.quantity)
            raise InsufficientStock(
                f"Product {product.id}: not enough stock for {dto.quantity} unit(s)."
            )
        log.info("order.stock_reserved", quantity=dto.quantity)

        self._order_repo.add_history(
            order_id=order.id,
            new_status=OrderStatus.PENDING,
            user_id=actor.id,
            notes="Order placed",
        )
        order.add_domain_event(
            OrderCreated(
                aggregate_id=order.id,
                buyer_id=actor.id,
                seller_id=product.seller_id,
                total_amount=str(charges.total_amount),
            )
        )
        self._order_repo.record_events(order)

        log.info(
            "order.created",
            order_id=str(order.id),
            total_amount=str(order.total_amount),
            commission=str(order.commission),
        )
        self._on_order_created(order)

        order_with_relations = self._order_repo.get_by_id(str(order.id))
        return OrderReceipt(order=order_with_relations or order)

    @transaction.atomic
    def claim_job(
        self,
        actor: ActorDTO,
        order_id: str,
        rider_id: Optional[UUID] = None,
    ) -> Order:
        """Assign a pending order to a rider (PENDING -> IN_TRANSIT).

        Riders claim for themselves; an admin must name the rider.

        Raises:
            RoleNotAllowed: caller cannot claim, or rider is unverified.
            InvalidOrderInput: admin gave no (or a non-rider) ``rider_id``.
            OrderNotFound: order does not exist.
            JobAlreadyClaimed: another claim won, or the order is closed.
        """
        rider_id = self._resolve_claiming_rider(actor, rider_id)
        log = logger.bind(order_id=str(order_id), rider_id=str(rider_id))

        if not self._order_repo.claim(order_id, rider_id):
            order = self._order_repo.get_by_id(order_id)
            if not order:
                raise OrderNotFound(f"Order {order_id} not found.")
            log.info("job.claim_conflict", current_status=order.status)
            if order.status == OrderStatus.CANCELLED:
                raise JobAlreadyClaimed(f"Order {order_id} was cancelled.")
            raise JobAlreadyClaimed(f"Order {order_id} has already been claimed.")

        order = self._order_repo.get_by_id(order_id)
        self._order_repo.add_history(
            order_id=order.id,
            old_status=OrderStatus.PENDING,
            new_status=OrderStatus.IN_TRANSIT,
            user_id=actor.id,
            notes="Job claimed",
        )
        order.add_domain_event(JobClaimed(aggregate_id=order.id, rider_id=rider_id))
        self._order_repo.record_events(order)

        log.info("job.claimed")
        claimed = self._order_repo.get_by_id(order_id)
        self._on_job_claimed(claimed)
        return claimed

    @transaction.atomic
    def confirm_delivery(self, actor: ActorDTO, order_id: str) -> Order:
        """Complete a delivery (IN_TRANSIT -> DELIVERED) and pay out.

        The assigned rider's wallet is credited with the stored delivery
        fee and the seller's with the stored net payout.

        Raises:
            RoleNotAllowed: caller is neither the assigned rider nor admin.
            OrderNotFound: order does not exist.
            InvalidOrderStatus: order is not in transit.
        """
        if actor.role not in (UserRole.RIDER, UserRole.ADMIN):
            raise RoleNotAllowed("Only riders can confirm deliveries.")

        order = self._order_repo.get_by_id(order_id)
        if not order:
            raise OrderNotFound(f"Order {order_id} not found.")

        log = logger.bind(order_id=str(order.id), current_status=order.status)

        if order.status != OrderStatus.IN_TRANSIT:
            log.warning("order.invalid_transition", new_status=OrderStatus.DELIVERED)
            raise InvalidOrderStatus(
                f"Cannot deliver order in status {order.status}."
            )
        if actor.role == UserRole.RIDER and order.rider_id != actor.id:
            raise RoleNotAllowed("Only the assigned rider can confirm this delivery.")

        if not self._order_repo.mark_delivered(str(order.id), order.rider_id):
            raise InvalidOrderStatus(f"Order {order.id} is no longer in transit.")

        self._user_repo.credit_wallet(str(order.rider_id), order.delivery_fee)
        self._user_repo.credit_wallet(str(order.seller_id), order.net_seller_payout)

        self._order_repo.add_history(
            order_id=order.id,
            old_status=OrderStatus.IN_TRANSIT,
            new_status=OrderStatus.DELIVERED,
            user_id=actor.id,
            notes="Delivery confirmed",
        )
        order.add_domain_event(
            OrderDelivered(
                aggregate_id=order.id,
                rider_id=order.rider_id,
                rider_payout=str(order.delivery_fee),
                seller_payout=str(order.net_seller_payout),
            )
        )
        self._order_repo.record_events(order)

        log.info("order.delivered", rider_id=str(order.rider_id))
        delivered = self._order_repo.get_by_id(str(order.id))
        self._on_order_delivered(delivered)
        return delivered

    @transaction.atomic
    def cancel_order(self, actor: ActorDTO, order_id: str, notes: str = "") -> Order:
        """Cancel a pending order and give its stock back.

        Raises:
            OrderNotFound: order does not exist or caller is unrelated.
            RoleNotAllowed: caller is the order's rider.
            InvalidOrderStatus: order is no longer pending.
        """
        order = self._order_repo.get_by_id(order_id)
        if not order or not self._can_view(actor, order):
            raise OrderNotFound(f"Order {order_id} not found.")

        if actor.role != UserRole.ADMIN and actor.id not in (
            order.buyer_id,
            order.seller_id,
        ):
            raise RoleNotAllowed("Only the buyer or seller can cancel an order.")

        log = logger.bind(order_id=str(order.id), current_status=order.status)

        if not order.can_transition_to(OrderStatus.CANCELLED):
            log.warning("order.cancel_not_allowed")
            raise InvalidOrderStatus(f"Cannot cancel order in status {order.status}.")

        if not self._order_repo.cancel(str(order.id)):
            log.warning("order.cancel_conflict")
            raise InvalidOrderStatus(f"Order {order.id} is no longer pending.")

        self._product_repo.restore_stock(str(order.product_id), order.quantity)
        log.info(
            "order.stock_released",
            product_id=str(order.product_id),
            quantity=order.quantity,
        )

        self._order_repo.add_history(
            order_id=order.id,
            old_status=OrderStatus.PENDING,
            new_status=OrderStatus.CANCELLED,
            user_id=actor.id,
            notes=notes or "Order cancelled",
        )
        order.add_domain_event(
            OrderCancelled(aggregate_id=order.id, cancelled_by=actor.id)
        )
        self._order_repo.record_events(order)

        log.info("order.cancelled")
        cancelled = self._order_repo.get_by_id(str(order.id))
        self._on_order_cancelled(cancelled)
        return cancelled

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_order(self, actor: ActorDTO, order_id: str) -> Order:
        """Retrieve an order the caller takes part in (admins see all).

        Raises:
            OrderNotFound: missing, or not visible to the caller.
        """
        order = self._order_repo.get_by_id(order_id)
        if not order or not self._can_view(actor, order):
            raise OrderNotFound(f"Order {order_id} not found.")
        return order

    def list_open_jobs(self, actor: ActorDTO) -> QuerySet[Order]:
        """Pending, unclaimed orders in ``(created_at, id)`` order.

        Raises:
            RoleNotAllowed: caller is neither rider nor admin.
        """
        if not CAN_VIEW_JOB_FEED[actor.role]:
            raise RoleNotAllowed("Only riders can browse the job feed.")
        return self._order_repo.open_jobs()

    def order_history(
        self,
        actor: ActorDTO,
        user_id: Optional[str] = None,
    ) -> QuerySet[Order]:
        """Orders where the subject takes part in their role, newest first.

        The subject is the caller, or ``user_id`` when an admin asks on
        someone else's behalf.

        Raises:
            RoleNotAllowed: a non-admin asked for another user.
            UserNotFound: ``user_id`` does not exist.
        """
        subject_id, subject_role = actor.id, actor.role
        if user_id is not None and str(user_id) != str(actor.id):
            if actor.role != UserRole.ADMIN:
                raise RoleNotAllowed("You can only view your own order history.")
            user = self._user_repo.get_by_id(str(user_id))
            if not user:
                raise UserNotFound(f"User {user_id} not found.")
            subject_id, subject_role = user.id, user.role

        return self._order_repo.for_participant(
            subject_id, HISTORY_FIELDS_BY_ROLE[subject_role]
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _resolve_claiming_rider(
        self, actor: ActorDTO, rider_id: Optional[UUID]
    ) -> UUID:
        if actor.role == UserRole.RIDER:
            if self._config.require_verified_riders and not actor.is_verified:
                raise RoleNotAllowed("Rider account is not verified.")
            return actor.id

        if actor.role != UserRole.ADMIN:
            raise RoleNotAllowed("Only riders can accept jobs.")

        if rider_id is None:
            raise InvalidOrderInput("rider_id is required when an admin assigns a job.")
        rider = self._user_repo.get_by_id(str(rider_id))
        if not rider or rider.role != UserRole.RIDER:
            raise InvalidOrderInput(f"User {rider_id} is not a rider.")
        if self._config.require_verified_riders and not rider.is_verified:
            raise RoleNotAllowed("Rider account is not verified.")
        return rider.id

    def _replay(self, actor: ActorDTO, existing: Order, log) -> OrderReceipt:
        if existing.buyer_id != actor.id:
            raise InvalidOrderInput("Idempotency key already used.")
        log.info(
            "order.idempotency_hit",
            order_id=str(existing.id),
            key=existing.idempotency_key,
        )
        return OrderReceipt(order=existing, created=False)

    @staticmethod
    def _can_view(actor: ActorDTO, order: Order) -> bool:
        return actor.role == UserRole.ADMIN or order.involves(actor.id)

    # ------------------------------------------------------------------
    # Domain Event Hooks
    # ------------------------------------------------------------------

    def _on_order_created(self, order: Order) -> None:
        """Hook: fired after an order is placed and its event stored."""
        logger.info("order.event.created", order_id=str(order.id))

    def _on_job_claimed(self, order: Order) -> None:
        """Hook: fired after a rider wins a job."""
        logger.info(
            "order.event.job_claimed",
            order_id=str(order.id),
            rider_id=str(order.rider_id),
        )

    def _on_order_delivered(self, order: Order) -> None:
        """Hook: fired after delivery and payouts."""
        logger.info("order.event.delivered", order_id=str(order.id))

    def _on_order_cancelled(self, order: Order) -> None:
        """Hook: fired after an order is cancelled."""
        logger.info("order.event.cancelled", order_id=str(order.id))
