"""Translate domain failures into HTTP error bodies."""

import logging
from datetime import datetime, timezone
from typing import Dict, Optional, Type

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from ...domain.exceptions import (
    AccessDeniedError,
    AuthenticationRequiredError,
    EmailAlreadyExistsError,
    EntityNotFoundError,
    IllegalStateError,
    InvalidArgumentError,
    InvalidCredentialsError,
    MarketplaceError,
    PhoneAlreadyExistsError,
    SessionNotFoundError,
    TokenExpiredError,
    TokenInvalidError,
    TokenNotFoundError,
    TokenRefreshError,
)

logger = logging.getLogger(__name__)

STATUS_BY_ERROR: Dict[Type[MarketplaceError], int] = {
    EmailAlreadyExistsError: status.HTTP_409_CONFLICT,
    PhoneAlreadyExistsError: status.HTTP_409_CONFLICT,
    InvalidCredentialsError: status.HTTP_401_UNAUTHORIZED,
    AuthenticationRequiredError: status.HTTP_401_UNAUTHORIZED,
    TokenExpiredError: status.HTTP_401_UNAUTHORIZED,
    TokenInvalidError: status.HTTP_401_UNAUTHORIZED,
    TokenNotFoundError: status.HTTP_403_FORBIDDEN,
    TokenRefreshError: status.HTTP_403_FORBIDDEN,
    SessionNotFoundError: status.HTTP_404_NOT_FOUND,
    EntityNotFoundError: status.HTTP_404_NOT_FOUND,
    AccessDeniedError: status.HTTP_403_FORBIDDEN,
    InvalidArgumentError: status.HTTP_400_BAD_REQUEST,
    IllegalStateError: status.HTTP_400_BAD_REQUEST,
}


def status_for(exc: MarketplaceError) -> int:
    for error_type in type(exc).__mro__:
        code = STATUS_BY_ERROR.get(error_type)  # type: ignore[arg-type]
        if code is not None:
            return code
    return status.HTTP_400_BAD_REQUEST


def error_body(
    message: str,
    status_code: int,
    validation_errors: Optional[Dict[str, str]] = None,
) -> Dict[str, object]:
    body: Dict[str, object] = {
        "message": message,
        "status": status_code,
        "timestamp": datetime.now(timezone.utc),
    }
    if validation_errors is not None:
        body["validationErrors"] = validation_errors
    return jsonable_encoder(body)


def error_response(message: str, status_code: int, validation_errors: Optional[Dict[str, str]] = None) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=error_body(message, status_code, validation_errors))


async def handle_domain_error(request: Request, exc: MarketplaceError) -> JSONResponse:
    logger.debug("%s on %s: %s", type(exc).__name__, request.url.path, exc.message)
    return error_response(exc.message, status_for(exc))


async def handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors: Dict[str, str] = {}
    for error in exc.errors():
        location = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path")]
        field = ".".join(location) or "request"
        errors.setdefault(field, error.get("msg", "Invalid value"))
    return error_response("Validation failed", status.HTTP_400_BAD_REQUEST, errors)


async def handle_http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    message = exc.detail if isinstance(exc.detail, str) else "Request failed"
    response = error_response(message, exc.status_code)
    if exc.headers:
        response.headers.update(exc.headers)
    return response


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(MarketplaceError, handle_domain_error)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, handle_validation_error)  # type: ignore[arg-type]
    app.add_exception_handler(StarletteHTTPException, handle_http_error)  # type: ignore[arg-type]
