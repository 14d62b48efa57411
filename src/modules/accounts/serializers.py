"""Account DRF serializers."""

from __future__ import annotations

from rest_framework import serializers
from rest_framework_simplejwt.serializers import TokenObtainPairSerializer

from modules.accounts.models import User, UserRole


class RegisterSerializer(serializers.Serializer):
    """Validates the registration payload shape; rules live in the DTO."""

    email = serializers.EmailField()
    password = serializers.CharField(write_only=True, min_length=8)
    name = serializers.CharField(required=False, default="", allow_blank=True)
    role = serializers.ChoiceField(choices=UserRole.choices, default=UserRole.BUYER)


class UserSerializer(serializers.ModelSerializer):
    class Meta:
        model = User
        fields = [
            "id",
            "email",
            "name",
            "role",
            "wallet_balance",
            "is_verified",
            "date_joined",
        ]
        read_only_fields = fields


class MarketplaceTokenObtainPairSerializer(TokenObtainPairSerializer):
    """Adds the user's role to the access token for client-side routing.

    The server never trusts this claim; permissions read ``request.user``.
    """

    @classmethod
    def get_token(cls, user):
        token = super().get_token(user)
        token["role"] = user.role
        return token
