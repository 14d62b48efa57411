"""Product DRF serializers for API input/output.

Business rules live in the Service Layer, which receives Pydantic DTOs
from ``dtos.py``.
"""

from __future__ import annotations

from rest_framework import serializers

from modules.products.models import Product


class ProductSerializer(serializers.ModelSerializer):
    """Read serializer for listings, with the seller's display name."""

    seller_id = serializers.UUIDField(read_only=True)
    seller_name = serializers.CharField(source="seller.display_name", read_only=True)

    class Meta:
        model = Product
        fields = [
            "id",
            "name",
            "description",
            "price",
            "stock_quantity",
            "status",
            "seller_id",
            "seller_name",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields
