"""Refresh token domain model for rotating device sessions."""

from datetime import datetime, timezone
from typing import Optional


class RefreshToken:
    """
    RefreshToken entity backing one device session.

    Attributes:
        id: Unique identifier, exposed to users as the session id
        user_id: Reference to User
        token_hash: SHA-256 of the opaque token handed to the client
        expires_at: Instant after which the token can no longer be exchanged
        revoked: Set on logout, rotation or session termination; never cleared
        created_at: Issue timestamp
    """

    def __init__(
        self,
        id: int,
        user_id: int,
        token_hash: str,
        expires_at: datetime,
        revoked: bool = False,
        created_at: Optional[datetime] = None,
    ):
        self.id = id
        self.user_id = user_id
        self.token_hash = token_hash
        self.expires_at = expires_at
        self.revoked = revoked
        self.created_at = created_at or datetime.now(timezone.utc)

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        return (now or datetime.now(timezone.utc)) >= self.expires_at

    def is_usable(self, now: Optional[datetime] = None) -> bool:
        return not self.revoked and not self.is_expired(now)

    def __repr__(self) -> str:
        return f"<RefreshToken id={self.id} user_id={self.user_id} revoked={self.revoked}>"
