from __future__ import annotations

import hashlib
import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import List, Optional, Tuple

from jose import ExpiredSignatureError, JWTError, jwt

from ...domain.exceptions import (
    AccessDeniedError,
    RefreshTokenExpiredError,
    SessionNotFoundError,
    TokenExpiredError,
    TokenInvalidError,
    TokenNotFoundError,
    TokenRefreshError,
    UserNotFoundError,
)
from ...domain.models import RefreshToken, Role, User
from ...domain.ports.persistence import PersistenceGateway

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class TokenPair:
    access_token: str
    refresh_token: str


@dataclass(frozen=True, slots=True)
class AccessClaims:
    subject: str
    role: Role
    expires_at: datetime


class TokenService:
    """Issues, validates and revokes access/refresh token pairs."""

    ACCESS_TOKEN_TYPE = "access"

    def __init__(
        self,
        persistence: PersistenceGateway,
        secret_key: str,
        access_token_exp_minutes: int = 15,
        refresh_token_exp_days: int = 7,
        algorithm: str = "HS256",
    ) -> None:
        if not secret_key:
            raise RuntimeError("JWT_SECRET is not configured.")
        if secret_key == "change-me":
            logger.warning("JWT_SECRET is using the default value. Configure a secure secret in production.")
        self._persistence = persistence
        self._secret_key = secret_key
        self._algorithm = algorithm
        self._access_ttl = timedelta(minutes=access_token_exp_minutes)
        self._refresh_ttl = timedelta(days=refresh_token_exp_days)

    # Access tokens ----------------------------------------------------
    def generate_access_token(self, user: User) -> str:
        now = datetime.now(tz=timezone.utc)
        payload = {
            "sub": user.email,
            "role": user.role.value,
            "type": self.ACCESS_TOKEN_TYPE,
            "iat": now,
            "exp": now + self._access_ttl,
        }
        return jwt.encode(payload, self._secret_key, algorithm=self._algorithm)

    def extract_identity(self, token: str) -> AccessClaims:
        """Verify signature and expiry, returning the embedded claims.

        Raises ``TokenExpiredError`` for an otherwise valid token that is past
        its expiry so callers can ask the client to refresh, and
        ``TokenInvalidError`` for everything else.
        """
        try:
            payload = jwt.decode(token, self._secret_key, algorithms=[self._algorithm])
        except ExpiredSignatureError as exc:
            raise TokenExpiredError() from exc
        except JWTError as exc:
            raise TokenInvalidError() from exc

        subject = payload.get("sub")
        if not subject or payload.get("type") != self.ACCESS_TOKEN_TYPE:
            raise TokenInvalidError()
        try:
            role = Role(payload.get("role"))
        except ValueError as exc:
            raise TokenInvalidError() from exc
        expires_at = datetime.fromtimestamp(int(payload["exp"]), tz=timezone.utc)
        return AccessClaims(subject=subject, role=role, expires_at=expires_at)

    def is_access_token_valid(self, token: str, user: User) -> bool:
        claims = self.extract_identity(token)
        return claims.subject == user.email and claims.expires_at > datetime.now(tz=timezone.utc)

    # Refresh tokens ---------------------------------------------------
    def create_refresh_token(self, email: str) -> Tuple[RefreshToken, str]:
        """
        Persist a new refresh token for a user.

        Args:
            email: Owner email

        Returns:
            Tuple of (RefreshToken, plaintext_token)
            The plaintext is only returned once; the database keeps its hash.

        Raises:
            UserNotFoundError: If no user has this email
        """
        user = self._persistence.get_user_by_email(email)
        if user is None:
            raise UserNotFoundError(f"User not found with email: {email}")
        plaintext, token_hash = self._generate_refresh_token()
        token = self._persistence.create_refresh_token(
            user_id=user.id,
            token_hash=token_hash,
            expires_at=datetime.now(tz=timezone.utc) + self._refresh_ttl,
        )
        logger.info("Issued refresh token %s for user %s", token.id, user.id)
        return token, plaintext

    def issue_token_pair(self, user: User) -> TokenPair:
        _, refresh_plaintext = self.create_refresh_token(user.email)
        return TokenPair(
            access_token=self.generate_access_token(user),
            refresh_token=refresh_plaintext,
        )

    def find_by_token(self, plaintext: str) -> Optional[RefreshToken]:
        return self._persistence.get_refresh_token_by_hash(self._hash_token(plaintext))

    def verify_expiration(self, token: RefreshToken) -> RefreshToken:
        if token.is_expired():
            raise RefreshTokenExpiredError()
        return token

    def refresh_token(self, plaintext: str) -> TokenPair:
        """Exchange a refresh token for a new pair, consuming the presented one."""
        stored = self.find_by_token(plaintext)
        if stored is None:
            raise TokenNotFoundError("Refresh token not found in database")
        if stored.revoked:
            logger.warning("Revoked refresh token %s presented for user %s", stored.id, stored.user_id)
            raise TokenRefreshError("Refresh token has been revoked")
        self.verify_expiration(stored)

        user = self._persistence.get_user_by_id(stored.user_id)
        if user is None:
            raise TokenNotFoundError("Refresh token owner no longer exists")

        access_token = self.generate_access_token(user)
        new_plaintext, new_hash = self._generate_refresh_token()
        rotated = self._persistence.rotate_refresh_token(
            token_id=stored.id,
            new_token_hash=new_hash,
            expires_at=datetime.now(tz=timezone.utc) + self._refresh_ttl,
        )
        if rotated is None:
            # Another request consumed the same token first.
            raise TokenRefreshError("Refresh token has been revoked")
        logger.info("Rotated refresh token %s -> %s for user %s", stored.id, rotated.id, user.id)
        return TokenPair(access_token=access_token, refresh_token=new_plaintext)

    def logout(self, plaintext: str) -> None:
        stored = self.find_by_token(plaintext)
        if stored is None:
            logger.debug("Logout requested for an unknown refresh token")
            return
        if self._persistence.revoke_refresh_token(stored.id):
            logger.info("Revoked refresh token %s for user %s", stored.id, stored.user_id)

    def logout_all(self, email: str) -> int:
        user = self._require_user(email)
        revoked = self._persistence.revoke_all_refresh_tokens(user.id)
        logger.info("Revoked %s refresh tokens for user %s", revoked, user.id)
        return revoked

    def get_active_sessions(self, email: str) -> List[RefreshToken]:
        user = self._require_user(email)
        return self._persistence.get_active_refresh_tokens(user.id, datetime.now(tz=timezone.utc))

    def terminate_session(self, email: str, session_id: int) -> None:
        user = self._require_user(email)
        token = self._persistence.get_refresh_token(session_id)
        if token is None:
            raise SessionNotFoundError()
        if token.user_id != user.id:
            raise AccessDeniedError("You don't have permission to terminate this session")
        self._persistence.revoke_refresh_token(token.id)
        logger.info("Terminated session %s for user %s", token.id, user.id)

    # Helpers ------------------------------------------------------------
    def _require_user(self, email: str) -> User:
        user = self._persistence.get_user_by_email(email)
        if user is None:
            raise UserNotFoundError(f"User not found with email: {email}")
        return user

    def _generate_refresh_token(self) -> Tuple[str, str]:
        plaintext = secrets.token_urlsafe(48)
        return plaintext, self._hash_token(plaintext)

    @staticmethod
    def _hash_token(plaintext: str) -> str:
        return hashlib.sha256(plaintext.encode("utf-8")).hexdigest()
