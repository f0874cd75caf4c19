from datetime import date, datetime
from typing import Optional

from pydantic import Field

from ....domain.models import Role
from .common import CamelModel


class UserProfileResponse(CamelModel):
    id: int
    email: str
    role: Role
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone_number: Optional[str] = None
    birth_date: Optional[date] = None
    gender: Optional[str] = None
    created_at: datetime
    farm_name: Optional[str] = None
    farm_location: Optional[str] = None
    bio: Optional[str] = None
    is_verified: Optional[bool] = None


class ChangePasswordRequest(CamelModel):
    current_password: str = Field(min_length=1)
    new_password: str = Field(min_length=6, max_length=72)
