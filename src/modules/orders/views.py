"""Order API views.

Exposes the ``OrderService`` via HTTP using DRF ViewSets.
Domain exceptions are caught and translated into appropriate
HTTP status codes; the view never swallows generic exceptions.

- ``OrderViewSet``: place, read and cancel orders.
- ``JobViewSet``: the rider job feed, claiming and delivery.
- ``OrderHistoryView``: the caller's (or, for admins, anyone's) history.
"""

from __future__ import annotations

from django_filters.rest_framework import DjangoFilterBackend
from pydantic import ValidationError as PydanticValidationError
from rest_framework import status
from rest_framework.decorators import action
from rest_framework.filters import OrderingFilter
from rest_framework.generics import GenericAPIView
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.throttling import BaseThrottle
from rest_framework.viewsets import GenericViewSet

from modules.accounts.dtos import ActorDTO
from modules.accounts.exceptions import UserNotFound
from modules.accounts.repositories.django_repository import UserDjangoRepository
from modules.core.pagination import StandardResultsSetPagination
from modules.orders.config import MarketplaceConfig
from modules.orders.dtos import CreateOrderDTO
from modules.orders.exceptions import (
    InactiveProduct,
    InsufficientStock,
    InvalidOrderInput,
    InvalidOrderStatus,
    OrderNotFound,
    ProductNotFound,
    RoleNotAllowed,
)
from modules.orders.filters import OrderFilter
from modules.orders.models import Order
from modules.orders.repositories.django_repository import OrderDjangoRepository
from modules.orders.serializers import (
    AcceptJobSerializer,
    CancelOrderSerializer,
    CreateOrderSerializer,
    JobSummarySerializer,
    OrderListSerializer,
    OrderSerializer,
)
from modules.orders.services import OrderService
from modules.products.repositories.django_repository import ProductDjangoRepository

_ORDER_NOT_FOUND = {"detail": "Order not found."}


def build_order_service() -> OrderService:
    return OrderService(
        order_repository=OrderDjangoRepository(),
        product_repository=ProductDjangoRepository(),
        user_repository=UserDjangoRepository(),
        config=MarketplaceConfig.from_settings(),
    )


def _forbidden(exc: Exception) -> Response:
    return Response({"detail": str(exc)}, status=status.HTTP_403_FORBIDDEN)


def _conflict(exc: Exception) -> Response:
    return Response({"detail": str(exc)}, status=status.HTTP_409_CONFLICT)


class OrderViewSet(GenericViewSet):
    """ViewSet for Order operations.

    Uses ``OrderService`` with injected repositories (DIP).
    Does **not** extend ``ModelViewSet``: all ORM access goes through
    the service/repository layer.
    """

    queryset = Order.objects.all()
    serializer_class = OrderSerializer

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._service = build_order_service()

    def get_throttles(self) -> list[BaseThrottle]:
        throttle_scope: str | None
        if self.action == "create":
            throttle_scope = "order_creation"
        elif self.action == "retrieve":
            throttle_scope = "order_listing"
        else:
            throttle_scope = None
        self.throttle_scope = throttle_scope
        return super().get_throttles()

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    def create(self, request: Request) -> Response:
        """POST /api/v1/orders/

        Supports idempotency via the ``Idempotency-Key`` header.
        Returns 200 if the key was already used, 201 for new orders.
        """
        create_serializer = CreateOrderSerializer(data=request.data)
        create_serializer.is_valid(raise_exception=True)
        data = create_serializer.validated_data

        try:
            dto = CreateOrderDTO(
                product_id=data["product_id"],
                quantity=data["quantity"],
                delivery_fee=data.get("delivery_fee"),
                delivery_address=data.get("delivery_address", ""),
                notes=data.get("notes", ""),
                idempotency_key=request.headers.get("Idempotency-Key"),
            )
        except (PydanticValidationError, ValueError) as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_400_BAD_REQUEST)

        try:
            receipt = self._service.create_order(ActorDTO.from_user(request.user), dto)
        except RoleNotAllowed as exc:
            return _forbidden(exc)
        except ProductNotFound as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_404_NOT_FOUND)
        except (InactiveProduct, InvalidOrderInput) as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_400_BAD_REQUEST)
        except InsufficientStock as exc:
            return _conflict(exc)

        code = status.HTTP_201_CREATED if receipt.created else status.HTTP_200_OK
        return Response(OrderSerializer(receipt.order).data, status=code)

    # ------------------------------------------------------------------
    # Retrieve
    # ------------------------------------------------------------------

    def retrieve(self, request: Request, pk: str | None = None) -> Response:
        """GET /api/v1/orders/{pk}/"""
        try:
            order = self._service.get_order(ActorDTO.from_user(request.user), pk)
        except OrderNotFound:
            return Response(_ORDER_NOT_FOUND, status=status.HTTP_404_NOT_FOUND)
        return Response(OrderSerializer(order).data)

    # ------------------------------------------------------------------
    # Cancel (dedicated action)
    # ------------------------------------------------------------------

    @action(detail=True, methods=["post"])
    def cancel(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/orders/{pk}/cancel/

        Cancels a pending order and releases reserved stock.
        """
        serializer = CancelOrderSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            order = self._service.cancel_order(
                ActorDTO.from_user(request.user),
                pk,
                notes=serializer.validated_data.get("notes", ""),
            )
        except OrderNotFound:
            return Response(_ORDER_NOT_FOUND, status=status.HTTP_404_NOT_FOUND)
        except RoleNotAllowed as exc:
            return _forbidden(exc)
        except InvalidOrderStatus as exc:
            return _conflict(exc)

        return Response(OrderSerializer(order).data)


class JobViewSet(GenericViewSet):
    """Rider job feed.

    Lists pending, unclaimed orders (read live, never cached) and exposes
    the claim and delivery transitions.
    """

    queryset = Order.objects.all()
    serializer_class = JobSummarySerializer
    pagination_class = StandardResultsSetPagination

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._service = build_order_service()

    def get_throttles(self) -> list[BaseThrottle]:
        throttle_scope: str | None
        if self.action == "list":
            throttle_scope = "order_listing"
        elif self.action == "accept":
            throttle_scope = "job_claim"
        else:
            throttle_scope = None
        self.throttle_scope = throttle_scope
        return super().get_throttles()

    def list(self, request: Request) -> Response:
        """GET /api/v1/jobs/ (riders and admins)."""
        try:
            queryset = self._service.list_open_jobs(ActorDTO.from_user(request.user))
        except RoleNotAllowed as exc:
            return _forbidden(exc)

        page = self.paginate_queryset(queryset)
        serializer = JobSummarySerializer(page, many=True)
        return self.get_paginated_response(serializer.data)

    @action(detail=True, methods=["post"])
    def accept(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/jobs/{pk}/accept/

        Exactly one concurrent caller wins; the rest get 409.
        """
        serializer = AcceptJobSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            order = self._service.claim_job(
                ActorDTO.from_user(request.user),
                pk,
                rider_id=serializer.validated_data.get("rider_id"),
            )
        except RoleNotAllowed as exc:
            return _forbidden(exc)
        except InvalidOrderInput as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_400_BAD_REQUEST)
        except OrderNotFound:
            return Response(_ORDER_NOT_FOUND, status=status.HTTP_404_NOT_FOUND)
        except InvalidOrderStatus as exc:
            return _conflict(exc)

        return Response(OrderSerializer(order).data)

    @action(detail=True, methods=["post"])
    def deliver(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/jobs/{pk}/deliver/ (assigned rider or admin)."""
        try:
            order = self._service.confirm_delivery(ActorDTO.from_user(request.user), pk)
        except RoleNotAllowed as exc:
            return _forbidden(exc)
        except OrderNotFound:
            return Response(_ORDER_NOT_FOUND, status=status.HTTP_404_NOT_FOUND)
        except InvalidOrderStatus as exc:
            return _conflict(exc)

        return Response(OrderSerializer(order).data)


class OrderHistoryView(GenericAPIView):
    """GET /api/v1/user/orders/ and /api/v1/user/orders/{user_id}/

    Filtering (status, date range, total range) is handled by
    ``OrderFilter``; results are paginated, newest first.
    """

    queryset = Order.objects.all()
    serializer_class = OrderListSerializer
    filterset_class = OrderFilter
    filter_backends = [DjangoFilterBackend, OrderingFilter]
    ordering_fields = ["created_at", "total_amount", "status"]
    pagination_class = StandardResultsSetPagination
    throttle_scope = "order_listing"

    def get(self, request: Request, user_id: str | None = None) -> Response:
        service = build_order_service()
        try:
            queryset = service.order_history(
                ActorDTO.from_user(request.user), user_id=user_id
            )
        except RoleNotAllowed as exc:
            return _forbidden(exc)
        except UserNotFound as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_404_NOT_FOUND)

        page = self.paginate_queryset(self.filter_queryset(queryset))
        serializer = OrderListSerializer(page, many=True)
        return self.get_paginated_response(serializer.data)
