"""Account service layer.

Registration only; login is SimpleJWT's token endpoint.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog
from django.db import IntegrityError, transaction

from modules.accounts.exceptions import EmailAlreadyRegistered, UserNotFound

if TYPE_CHECKING:
    from modules.accounts.dtos import RegisterUserDTO
    from modules.accounts.models import User
    from modules.accounts.repositories.interfaces import IUserRepository

logger = structlog.get_logger(__name__)


class AccountService:
    def __init__(self, repository: IUserRepository) -> None:
        self._repo = repository

    def register(self, dto: RegisterUserDTO) -> User:
        """Create a new account.

        An existing e-mail is rejected rather than overwritten, so a
        registration request can never reset someone else's password or role.

        Raises:
            EmailAlreadyRegistered: the e-mail is taken.
        """
        log = logger.bind(role=dto.role)

        if self._repo.get_by_email(dto.email):
            log.warning("user.duplicate_email")
            raise EmailAlreadyRegistered("E-mail already registered.")

        try:
            with transaction.atomic():
                user = self._repo.create(
                    email=dto.email,
                    password=dto.password,
                    name=dto.name,
                    role=dto.role,
                )
        except IntegrityError as exc:
            # Lost a race with a concurrent registration of the same e-mail.
            log.warning("user.duplicate_email")
            raise EmailAlreadyRegistered("E-mail already registered.") from exc

        log.info("user.registered", user_id=str(user.id))
        return user

    def get_user(self, id: str) -> User:
        """Raises:
        UserNotFound: no user with this id.
        """
        user = self._repo.get_by_id(id)
        if not user:
            raise UserNotFound(f"User {id} not found.")
        return user
