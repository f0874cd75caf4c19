from datetime import date, datetime
from typing import Optional

from pydantic import EmailStr, Field

from .common import CamelModel


class LoginRequest(CamelModel):
    email: EmailStr
    password: str = Field(min_length=1)


class CustomerRegistrationRequest(CamelModel):
    email: EmailStr
    password: str = Field(min_length=6, max_length=72)
    first_name: str = Field(min_length=1, max_length=100)
    last_name: str = Field(min_length=1, max_length=100)
    phone_number: str = Field(min_length=6, max_length=20, pattern=r"^\+?[0-9 ]+$")
    birth_date: Optional[date] = None
    gender: Optional[str] = Field(default=None, max_length=20)


class FarmerRegistrationRequest(CustomerRegistrationRequest):
    farm_name: str = Field(min_length=1, max_length=150)
    farm_location: Optional[str] = Field(default=None, max_length=255)
    bio: Optional[str] = Field(default=None, max_length=2000)


class RefreshTokenRequest(CamelModel):
    refresh_token: str = Field(min_length=1)


class TokenPairResponse(CamelModel):
    access_token: str
    refresh_token: str
    token_type: str = "Bearer"


class SessionResponse(CamelModel):
    id: int
    created_at: datetime
    expires_at: datetime
