"""Domain error taxonomy.

Services raise these at the point of detection; the HTTP and websocket
boundaries translate them into status codes and error bodies.
"""

from typing import Optional


class MarketplaceError(Exception):
    """Base class for every domain failure."""

    default_message = "Request could not be processed"

    def __init__(self, message: Optional[str] = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class EmailAlreadyExistsError(MarketplaceError):
    def __init__(self, email: str) -> None:
        super().__init__(f"Email already in use: {email}")


class PhoneAlreadyExistsError(MarketplaceError):
    def __init__(self, phone_number: str) -> None:
        super().__init__(f"Phone number already in use: {phone_number}")


class InvalidCredentialsError(MarketplaceError):
    default_message = "Invalid email or password"


class AuthenticationRequiredError(MarketplaceError):
    default_message = "Authentication required"


class TokenExpiredError(MarketplaceError):
    """The access token was well formed but is past its expiry."""

    default_message = "The access token has expired"


class TokenInvalidError(MarketplaceError):
    default_message = "Invalid JWT token"


class TokenNotFoundError(MarketplaceError):
    default_message = "Refresh token not found"


class TokenRefreshError(MarketplaceError):
    default_message = "Refresh token cannot be used"


class RefreshTokenExpiredError(TokenRefreshError):
    default_message = "Refresh token has expired. Please sign in again"


class SessionNotFoundError(MarketplaceError):
    default_message = "Session not found"


class EntityNotFoundError(MarketplaceError):
    default_message = "Entity not found"


class UserNotFoundError(EntityNotFoundError):
    default_message = "User not found"


class AccessDeniedError(MarketplaceError):
    default_message = "Access denied"


class InvalidArgumentError(MarketplaceError):
    default_message = "Invalid argument"


class IllegalStateError(MarketplaceError):
    default_message = "Operation not allowed in the current state"
