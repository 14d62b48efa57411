"""Account DTOs for the Service Layer.

- ``RegisterUserDTO``: input for self-service registration.
- ``ActorDTO``: the authenticated identity a service acts on behalf of.
  Views build it from ``request.user``; services never read the request.
"""

from __future__ import annotations

from typing import TYPE_CHECKING
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, field_validator

from modules.accounts.models import SELF_ASSIGNABLE_ROLES, UserRole

if TYPE_CHECKING:
    from modules.accounts.models import User


class RegisterUserDTO(BaseModel):
    """Immutable DTO for registration requests.

    ``admin`` cannot be self-assigned; it is granted via ``createsuperuser``.
    """

    model_config = ConfigDict(frozen=True)

    email: EmailStr
    password: str
    name: str = ""
    role: UserRole = UserRole.BUYER

    @field_validator("email", mode="before")
    @classmethod
    def strip_email(cls, v: object) -> object:
        return v.strip() if isinstance(v, str) else v

    @field_validator("email")
    @classmethod
    def lowercase_email(cls, v: str) -> str:
        return v.lower()

    @field_validator("password")
    @classmethod
    def password_min_length(cls, v: str) -> str:
        if len(v) < 8:
            raise ValueError("Password must be at least 8 characters.")
        return v

    @field_validator("role")
    @classmethod
    def role_must_be_self_assignable(cls, v: UserRole) -> UserRole:
        if v not in SELF_ASSIGNABLE_ROLES:
            raise ValueError(f"Role '{v}' cannot be self-assigned.")
        return v


class ActorDTO(BaseModel):
    """Who is calling: identity plus role, nothing else."""

    model_config = ConfigDict(frozen=True)

    id: UUID
    role: UserRole
    is_verified: bool = False

    @classmethod
    def from_user(cls, user: User) -> ActorDTO:
        return cls(id=user.id, role=user.role, is_verified=user.is_verified)
