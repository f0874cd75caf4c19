from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Optional

from ...domain.exceptions import (
    EmailAlreadyExistsError,
    InvalidArgumentError,
    InvalidCredentialsError,
    PhoneAlreadyExistsError,
)
from ...domain.models import Identity, Role, User
from ...domain.ports.persistence import UserRepository
from ...domain.ports.security import PasswordHasher
from .token_service import TokenPair, TokenService

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class Registration:
    email: str
    password: str
    first_name: str
    last_name: str
    phone_number: str
    birth_date: Optional[date] = None
    gender: Optional[str] = None
    farm_name: Optional[str] = None
    farm_location: Optional[str] = None
    bio: Optional[str] = None


class AuthService:
    """Coordinates login, registration and credential changes."""

    MIN_PASSWORD_LENGTH = 6
    MAX_PASSWORD_BYTES = 72

    def __init__(
        self,
        users: UserRepository,
        password_hasher: PasswordHasher,
        token_service: TokenService,
    ) -> None:
        self._users = users
        self._hasher = password_hasher
        self._tokens = token_service

    # ------------------------------------------------------------------
    def ensure_default_admin(self, email: Optional[str], password: Optional[str]) -> Optional[User]:
        if not email or not password:
            return None
        existing = self._users.get_user_by_email(email.lower())
        if existing:
            return existing
        logger.info("Creating default administrator account for %s", email)
        return self._users.create_user(
            email=email.lower(), password_hash=self._hasher.hash(password), role=Role.ADMIN
        )

    def authenticate(self, email: str, password: str) -> TokenPair:
        user = self._users.get_user_by_email(email.strip().lower())
        if not user or not self._hasher.verify(password, user.password_hash):
            logger.warning("Failed login attempt for %s", email)
            raise InvalidCredentialsError()
        return self._tokens.issue_token_pair(user)

    def register_customer(self, registration: Registration) -> TokenPair:
        user = self._register(registration, Role.CUSTOMER)
        return self._tokens.issue_token_pair(user)

    def register_farmer(self, registration: Registration) -> TokenPair:
        if not registration.farm_name or not registration.farm_name.strip():
            raise InvalidArgumentError("Farm name is required")
        user = self._register(registration, Role.FARMER)
        return self._tokens.issue_token_pair(user)

    def change_password(self, identity: Identity, current_password: str, new_password: str) -> None:
        """Replace the caller's password and sign them out everywhere."""
        user = self._users.get_user_by_id(identity.user_id)
        if user is None or not self._hasher.verify(current_password, user.password_hash):
            raise InvalidArgumentError("Current password is incorrect")
        self.validate_password(new_password)
        if self._hasher.verify(new_password, user.password_hash):
            raise InvalidArgumentError("New password must differ from the current password")
        self._users.update_user_password(user.id, self._hasher.hash(new_password))
        self._tokens.logout_all(user.email)
        logger.info("Password changed for user %s", user.id)

    # ------------------------------------------------------------------
    def _register(self, registration: Registration, role: Role) -> User:
        email = registration.email.strip().lower()
        if not email:
            raise InvalidArgumentError("Email is required")
        self.validate_password(registration.password)
        if self._users.get_user_by_email(email):
            raise EmailAlreadyExistsError(email)
        if self._users.phone_number_exists(registration.phone_number):
            raise PhoneAlreadyExistsError(registration.phone_number)

        user = self._users.create_account(
            email=email,
            password_hash=self._hasher.hash(registration.password),
            role=role,
            first_name=registration.first_name.strip(),
            last_name=registration.last_name.strip(),
            phone_number=registration.phone_number,
            birth_date=registration.birth_date,
            gender=registration.gender,
            farm_name=registration.farm_name.strip() if registration.farm_name else None,
            farm_location=registration.farm_location,
            bio=registration.bio,
        )
        logger.info("Registered %s account %s", role.value.lower(), user.id)
        return user

    def validate_password(self, password: str) -> None:
        if not password or len(password) < self.MIN_PASSWORD_LENGTH:
            raise InvalidArgumentError(
                f"Password must be at least {self.MIN_PASSWORD_LENGTH} characters long"
            )
        if len(password.encode("utf-8")) > self.MAX_PASSWORD_BYTES:
            raise InvalidArgumentError(f"Password must be at most {self.MAX_PASSWORD_BYTES} bytes long")
