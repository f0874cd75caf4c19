"""Bearer-token gateway applied to every HTTP request."""

import logging
from typing import Awaitable, Callable, Iterable, Optional, Tuple

from fastapi import FastAPI, Request, Response

from ...application.services.token_service import TokenService
from ...domain.exceptions import TokenExpiredError, TokenInvalidError
from ...domain.models import Identity
from ...domain.ports.persistence import UserRepository
from .errors import error_response

logger = logging.getLogger(__name__)

PUBLIC_PATHS: Tuple[str, ...] = (
    "/auth/login",
    "/auth/register",
    "/auth/refresh-token",
    "/auth/logout",
    "/docs",
    "/redoc",
    "/openapi.json",
    "/health",
)
DEFAULT_ROUTE_PREFIX = "/api/v1"


def is_public_path(path: str, prefixes: Iterable[str] = (DEFAULT_ROUTE_PREFIX,)) -> bool:
    """True when ``path`` is on the allow-list, with or without a routing prefix."""
    candidates = [path]
    for prefix in prefixes:
        if prefix and (path == prefix or path.startswith(prefix + "/")):
            candidates.append(path[len(prefix):] or "/")
    return any(
        candidate == public or candidate.startswith(public + "/")
        for candidate in candidates
        for public in PUBLIC_PATHS
    )


def resolve_identity(token: str, token_service: TokenService, users: UserRepository) -> Identity:
    """Validate an access token and load the identity it belongs to.

    Raises ``TokenExpiredError`` or ``TokenInvalidError``.
    """
    claims = token_service.extract_identity(token)
    user = users.get_user_by_email(claims.subject)
    if user is None or not token_service.is_access_token_valid(token, user):
        raise TokenInvalidError()
    return Identity.of(user)


def bearer_token(header: Optional[str]) -> Optional[str]:
    if not header:
        return None
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def install_auth_gateway(app: FastAPI, route_prefix: str = "") -> None:
    prefixes = tuple(p for p in {DEFAULT_ROUTE_PREFIX, route_prefix} if p)

    @app.middleware("http")
    async def auth_gateway(request: Request, call_next: Callable[[Request], Awaitable[Response]]) -> Response:
        request.state.identity = None
        if request.method == "OPTIONS" or is_public_path(request.url.path, prefixes):
            return await call_next(request)

        token = bearer_token(request.headers.get("Authorization"))
        if token is None:
            return await call_next(request)

        container = request.app.state.container
        try:
            request.state.identity = resolve_identity(token, container.token_service, container.persistence)
        except TokenExpiredError as exc:
            return error_response(exc.message, 401)
        except TokenInvalidError as exc:
            logger.debug("Rejected bearer token on %s", request.url.path)
            return error_response(exc.message, 401)
        return await call_next(request)
