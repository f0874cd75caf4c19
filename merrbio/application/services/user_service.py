from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

from ...domain.exceptions import UserNotFoundError
from ...domain.models import Identity, Role, User
from ...domain.ports.persistence import UserRepository


@dataclass(slots=True)
class UserProfile:
    id: int
    email: str
    role: Role
    first_name: Optional[str]
    last_name: Optional[str]
    phone_number: Optional[str]
    birth_date: Optional[date]
    gender: Optional[str]
    created_at: datetime
    farm_name: Optional[str] = None
    farm_location: Optional[str] = None
    bio: Optional[str] = None
    is_verified: Optional[bool] = None


class UserService:
    """Read access to accounts and their public profile details."""

    def __init__(self, users: UserRepository) -> None:
        self._users = users

    def get_user(self, user_id: int) -> User:
        user = self._users.get_user_by_id(user_id)
        if user is None:
            raise UserNotFoundError(f"User not found with id: {user_id}")
        return user

    def display_name(self, user_id: int) -> str:
        info = self._users.get_user_info(user_id)
        if info is not None:
            return info.full_name
        user = self._users.get_user_by_id(user_id)
        return user.email if user else "Unknown"

    def get_profile(self, identity: Identity) -> UserProfile:
        user = self.get_user(identity.user_id)
        info = self._users.get_user_info(user.id)
        profile = UserProfile(
            id=user.id,
            email=user.email,
            role=user.role,
            first_name=info.first_name if info else None,
            last_name=info.last_name if info else None,
            phone_number=info.phone_number if info else None,
            birth_date=info.birth_date if info else None,
            gender=info.gender if info else None,
            created_at=user.created_at,
        )
        if user.role is Role.FARMER:
            farmer = self._users.get_farmer_by_user_id(user.id)
            if farmer is not None:
                profile.farm_name = farmer.farm_name
                profile.farm_location = farmer.farm_location
                profile.bio = farmer.bio
                profile.is_verified = farmer.is_verified
        return profile
