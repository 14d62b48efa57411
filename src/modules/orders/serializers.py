"""Order DRF serializers for API input/output.

The serializer operates at the Interface layer (API Views).
Business logic lives in the Service Layer, which receives
Pydantic DTOs from ``dtos.py``.
"""

from __future__ import annotations

from rest_framework import serializers

from modules.orders.models import Order, OrderStatusHistory

# ---------------------------------------------------------------------------
# Input Serializers
# ---------------------------------------------------------------------------


class CreateOrderSerializer(serializers.Serializer):
    """Validates the order creation request payload.

    Unknown keys (``price``, ``seller_id``, ``buyer_id`` ...) are dropped:
    the buyer is the caller and money comes from the product.
    """

    product_id = serializers.UUIDField()
    quantity = serializers.IntegerField(min_value=1, default=1)
    delivery_fee = serializers.DecimalField(
        max_digits=12,
        decimal_places=2,
        min_value=0,
        required=False,
        allow_null=True,
    )
    delivery_address = serializers.CharField(
        required=False, default="", allow_blank=True
    )
    notes = serializers.CharField(required=False, default="", allow_blank=True)


class AcceptJobSerializer(serializers.Serializer):
    """``rider_id`` is only read when an admin assigns the job."""

    rider_id = serializers.UUIDField(required=False, allow_null=True)


class CancelOrderSerializer(serializers.Serializer):
    notes = serializers.CharField(required=False, default="", allow_blank=True)


# ---------------------------------------------------------------------------
# Output Serializers (Read)
# ---------------------------------------------------------------------------


class StatusHistorySerializer(serializers.ModelSerializer):
    """Read serializer for order status history records."""

    class Meta:
        model = OrderStatusHistory
        fields = [
            "id",
            "old_status",
            "new_status",
            "user_id",
            "notes",
            "created_at",
        ]
        read_only_fields = fields


class OrderSerializer(serializers.ModelSerializer):
    """Read serializer for a single order with its history."""

    product_name = serializers.CharField(source="product.name", read_only=True)
    status_history = StatusHistorySerializer(many=True, read_only=True)

    class Meta:
        model = Order
        fields = [
            "id",
            "order_number",
            "buyer_id",
            "seller_id",
            "rider_id",
            "product_id",
            "product_name",
            "quantity",
            "unit_price",
            "price",
            "delivery_fee",
            "commission",
            "total_amount",
            "net_seller_payout",
            "status",
            "delivery_address",
            "notes",
            "claimed_at",
            "delivered_at",
            "created_at",
            "updated_at",
            "status_history",
        ]
        read_only_fields = fields


class OrderListSerializer(serializers.ModelSerializer):
    """Lightweight serializer for history lists (no nested relations)."""

    product_name = serializers.CharField(source="product.name", read_only=True)

    class Meta:
        model = Order
        fields = [
            "id",
            "order_number",
            "buyer_id",
            "seller_id",
            "rider_id",
            "product_id",
            "product_name",
            "quantity",
            "price",
            "delivery_fee",
            "total_amount",
            "status",
            "created_at",
        ]
        read_only_fields = fields


class JobSummarySerializer(serializers.ModelSerializer):
    """What a rider needs to decide whether to take a job."""

    buyer_name = serializers.CharField(source="buyer.display_name", read_only=True)
    seller_name = serializers.CharField(source="seller.display_name", read_only=True)
    product_name = serializers.CharField(source="product.name", read_only=True)
    rider_payout = serializers.DecimalField(
        source="delivery_fee", max_digits=12, decimal_places=2, read_only=True
    )

    class Meta:
        model = Order
        fields = [
            "id",
            "order_number",
            "buyer_id",
            "buyer_name",
            "seller_id",
            "seller_name",
            "product_name",
            "quantity",
            "delivery_address",
            "rider_payout",
            "created_at",
        ]
        read_only_fields = fields
