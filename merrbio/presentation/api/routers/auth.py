from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, status

from ....application.services.auth_service import AuthService, Registration
from ....application.services.token_service import TokenPair, TokenService
from ....core.dependencies import get_auth_service, get_token_service
from ....domain.models import Identity
from ..dependencies import get_current_identity
from ..schemas.auth import (
    CustomerRegistrationRequest,
    FarmerRegistrationRequest,
    LoginRequest,
    RefreshTokenRequest,
    SessionResponse,
    TokenPairResponse,
)
from ..schemas.common import MessageResponse

router = APIRouter(prefix="/auth", tags=["Authentication"])


def _token_response(pair: TokenPair) -> TokenPairResponse:
    return TokenPairResponse(access_token=pair.access_token, refresh_token=pair.refresh_token)


def _registration(payload: CustomerRegistrationRequest) -> Registration:
    return Registration(
        email=payload.email,
        password=payload.password,
        first_name=payload.first_name,
        last_name=payload.last_name,
        phone_number=payload.phone_number,
        birth_date=payload.birth_date,
        gender=payload.gender,
    )


@router.post("/login", response_model=TokenPairResponse)
async def login(
    payload: LoginRequest,
    service: AuthService = Depends(get_auth_service),
) -> TokenPairResponse:
    return _token_response(service.authenticate(payload.email, payload.password))


@router.post("/register/customer", response_model=TokenPairResponse)
async def register_customer(
    payload: CustomerRegistrationRequest,
    service: AuthService = Depends(get_auth_service),
) -> TokenPairResponse:
    return _token_response(service.register_customer(_registration(payload)))


@router.post("/register/farmer", response_model=TokenPairResponse)
async def register_farmer(
    payload: FarmerRegistrationRequest,
    service: AuthService = Depends(get_auth_service),
) -> TokenPairResponse:
    registration = _registration(payload)
    registration.farm_name = payload.farm_name
    registration.farm_location = payload.farm_location
    registration.bio = payload.bio
    return _token_response(service.register_farmer(registration))


@router.post("/refresh-token", response_model=TokenPairResponse)
async def refresh_token(
    payload: RefreshTokenRequest,
    tokens: TokenService = Depends(get_token_service),
) -> TokenPairResponse:
    return _token_response(tokens.refresh_token(payload.refresh_token))


@router.post("/logout", response_model=MessageResponse)
async def logout(
    payload: RefreshTokenRequest,
    tokens: TokenService = Depends(get_token_service),
) -> MessageResponse:
    tokens.logout(payload.refresh_token)
    return MessageResponse(message="Logout successful")


@router.post("/logout-all", response_model=MessageResponse)
async def logout_all(
    identity: Identity = Depends(get_current_identity),
    tokens: TokenService = Depends(get_token_service),
) -> MessageResponse:
    tokens.logout_all(identity.email)
    return MessageResponse(message="Logged out from all devices")


@router.get("/sessions", response_model=List[SessionResponse])
async def list_sessions(
    identity: Identity = Depends(get_current_identity),
    tokens: TokenService = Depends(get_token_service),
) -> List[SessionResponse]:
    return [SessionResponse.model_validate(token) for token in tokens.get_active_sessions(identity.email)]


@router.delete("/sessions/{session_id}", status_code=status.HTTP_204_NO_CONTENT)
async def terminate_session(
    session_id: int,
    identity: Identity = Depends(get_current_identity),
    tokens: TokenService = Depends(get_token_service),
) -> None:
    tokens.terminate_session(identity.email, session_id)
