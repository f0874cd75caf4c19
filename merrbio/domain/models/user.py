"""User domain models for marketplace accounts and their profiles."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Optional


class Role(str, Enum):
    ADMIN = "ADMIN"
    CUSTOMER = "CUSTOMER"
    FARMER = "FARMER"


class User:
    """
    User entity shared by customers, farmers and administrators.

    Attributes:
        id: Unique identifier
        email: User email address (unique, stored lower-case)
        password_hash: Adaptive password hash
        role: Account role deciding which marketplace operations are allowed
        created_at: Account creation timestamp
        updated_at: Last update timestamp
    """

    def __init__(
        self,
        id: int,
        email: str,
        password_hash: str,
        role: Role,
        created_at: datetime,
        updated_at: datetime,
    ):
        self.id = id
        self.email = email
        self.password_hash = password_hash
        self.role = role
        self.created_at = created_at
        self.updated_at = updated_at

    def __eq__(self, other: object) -> bool:
        return isinstance(other, User) and other.id == self.id

    def __hash__(self) -> int:
        return hash(self.id)

    def __repr__(self) -> str:
        return f"<User id={self.id} email={self.email} role={self.role.value}>"


@dataclass(slots=True)
class UserInfo:
    user_id: int
    first_name: str
    last_name: str
    phone_number: str
    birth_date: Optional[date]
    gender: Optional[str]

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


@dataclass(slots=True)
class Farmer:
    id: int
    user_id: int
    farm_name: str
    farm_location: Optional[str]
    bio: Optional[str]
    is_verified: bool
    created_at: datetime


@dataclass(frozen=True, slots=True)
class Identity:
    """Authenticated principal threaded through every service call."""

    user_id: int
    email: str
    role: Role

    @classmethod
    def of(cls, user: User) -> "Identity":
        return cls(user_id=user.id, email=user.email, role=user.role)
