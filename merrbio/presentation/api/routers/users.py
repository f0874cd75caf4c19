from fastapi import APIRouter, Depends

from ....application.services.auth_service import AuthService
from ....application.services.user_service import UserService
from ....core.dependencies import get_auth_service, get_user_service
from ....domain.models import Identity
from ..dependencies import get_current_identity
from ..schemas.common import MessageResponse
from ..schemas.user import ChangePasswordRequest, UserProfileResponse

router = APIRouter(prefix="/users", tags=["Users"])


@router.get("/me", response_model=UserProfileResponse)
async def get_profile(
    identity: Identity = Depends(get_current_identity),
    service: UserService = Depends(get_user_service),
) -> UserProfileResponse:
    return UserProfileResponse.model_validate(service.get_profile(identity))


@router.post("/me/password", response_model=MessageResponse)
async def change_password(
    payload: ChangePasswordRequest,
    identity: Identity = Depends(get_current_identity),
    service: AuthService = Depends(get_auth_service),
) -> MessageResponse:
    """Change the caller's password and sign out every session."""
    service.change_password(identity, payload.current_password, payload.new_password)
    return MessageResponse(message="Password changed. Please sign in again.")
