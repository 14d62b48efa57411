"""Order URL configuration."""

from __future__ import annotations

from django.urls import path
from rest_framework.routers import DefaultRouter

from modules.orders.views import JobViewSet, OrderHistoryView, OrderViewSet

router = DefaultRouter(trailing_slash=True)
router.register("orders", OrderViewSet, basename="order")
router.register("jobs", JobViewSet, basename="job")

urlpatterns = [
    path("user/orders/", OrderHistoryView.as_view(), name="order-history"),
    path(
        "user/orders/<uuid:user_id>/",
        OrderHistoryView.as_view(),
        name="order-history-for-user",
    ),
    *router.urls,
]
