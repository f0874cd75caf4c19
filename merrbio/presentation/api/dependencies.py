import logging
from typing import Callable, Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from ...domain.exceptions import AccessDeniedError, AuthenticationRequiredError
from ...domain.models import Identity, Role

logger = logging.getLogger(__name__)

# Registered for the OpenAPI "Authorize" button; the gateway middleware does the checking.
_bearer_scheme = HTTPBearer(auto_error=False)


def get_current_identity(
    request: Request,
    _: Optional[HTTPAuthorizationCredentials] = Depends(_bearer_scheme),
) -> Identity:
    identity: Optional[Identity] = getattr(request.state, "identity", None)
    if identity is None:
        raise AuthenticationRequiredError()
    return identity


def require_role(*allowed_roles: Role) -> Callable[..., Identity]:
    def dependency(identity: Identity = Depends(get_current_identity)) -> Identity:
        if identity.role not in allowed_roles:
            logger.warning(
                "User %s attempted to access roles %s, current role: %s",
                identity.user_id,
                [role.value for role in allowed_roles],
                identity.role.value,
            )
            raise AccessDeniedError()
        return identity

    return dependency
