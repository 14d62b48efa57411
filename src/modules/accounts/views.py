"""Account API views: registration, login and the caller's profile."""

from __future__ import annotations

from pydantic import ValidationError as PydanticValidationError
from rest_framework import status
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView
from rest_framework_simplejwt.views import TokenObtainPairView

from modules.accounts.dtos import RegisterUserDTO
from modules.accounts.exceptions import EmailAlreadyRegistered
from modules.accounts.repositories.django_repository import UserDjangoRepository
from modules.accounts.serializers import (
    MarketplaceTokenObtainPairSerializer,
    RegisterSerializer,
    UserSerializer,
)
from modules.accounts.services import AccountService


class RegisterView(APIView):
    """POST /api/v1/auth/register/"""

    permission_classes = [AllowAny]
    authentication_classes: list = []

    def post(self, request: Request) -> Response:
        serializer = RegisterSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            dto = RegisterUserDTO(
                email=data["email"],
                password=data["password"],
                name=data.get("name", ""),
                role=data["role"],
            )
        except (PydanticValidationError, ValueError) as exc:
            return Response(
                {"detail": str(exc)},
                status=status.HTTP_400_BAD_REQUEST,
            )

        service = AccountService(repository=UserDjangoRepository())
        try:
            user = service.register(dto)
        except EmailAlreadyRegistered as exc:
            return Response(
                {"detail": str(exc)},
                status=status.HTTP_409_CONFLICT,
            )

        return Response(UserSerializer(user).data, status=status.HTTP_201_CREATED)


class LoginView(TokenObtainPairView):
    """POST /api/v1/auth/token/ with ``email`` and ``password``."""

    serializer_class = MarketplaceTokenObtainPairSerializer


class MeView(APIView):
    """GET /api/v1/me: the authenticated user's profile and wallet."""

    permission_classes = [IsAuthenticated]

    def get(self, request: Request) -> Response:
        return Response(UserSerializer(request.user).data)
