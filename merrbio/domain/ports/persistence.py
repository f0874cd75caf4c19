from __future__ import annotations

from datetime import date, datetime
from typing import List, Optional, Protocol, Sequence, Tuple

from ..models import (
    Conversation,
    Farmer,
    Message,
    Order,
    OrderStatus,
    Product,
    RefreshToken,
    Role,
    User,
    UserInfo,
)


class UserRepository(Protocol):
    """Credential store: identities, password hashes, roles and profiles."""

    def get_user_by_email(self, email: str) -> Optional[User]:
        ...

    def get_user_by_id(self, user_id: int) -> Optional[User]:
        ...

    def phone_number_exists(self, phone_number: str) -> bool:
        ...

    def create_user(self, email: str, password_hash: str, role: Role) -> User:
        ...

    def create_account(
        self,
        email: str,
        password_hash: str,
        role: Role,
        *,
        first_name: str,
        last_name: str,
        phone_number: str,
        birth_date: Optional[date] = None,
        gender: Optional[str] = None,
        farm_name: Optional[str] = None,
        farm_location: Optional[str] = None,
        bio: Optional[str] = None,
    ) -> User:
        ...

    def update_user_password(self, user_id: int, password_hash: str) -> User:
        ...

    def get_user_info(self, user_id: int) -> Optional[UserInfo]:
        ...

    def get_farmer_by_user_id(self, user_id: int) -> Optional[Farmer]:
        ...


class RefreshTokenRepository(Protocol):
    """Storage for rotating refresh tokens (one row per device session)."""

    def create_refresh_token(self, user_id: int, token_hash: str, expires_at: datetime) -> RefreshToken:
        ...

    def get_refresh_token(self, token_id: int) -> Optional[RefreshToken]:
        ...

    def get_refresh_token_by_hash(self, token_hash: str) -> Optional[RefreshToken]:
        ...

    def revoke_refresh_token(self, token_id: int) -> bool:
        ...

    def revoke_all_refresh_tokens(self, user_id: int) -> int:
        ...

    def rotate_refresh_token(
        self,
        token_id: int,
        new_token_hash: str,
        expires_at: datetime,
    ) -> Optional[RefreshToken]:
        ...

    def get_active_refresh_tokens(self, user_id: int, now: datetime) -> List[RefreshToken]:
        ...


class ProductRepository(Protocol):
    """Minimal catalog access needed to place orders."""

    def create_product(
        self,
        farmer_id: int,
        name: str,
        description: Optional[str],
        price: float,
        unit: str,
        minimum_order_quantity: float,
        max_available_quantity: Optional[float],
        is_in_stock: bool,
        is_organic: bool,
    ) -> Product:
        ...

    def get_product(self, product_id: int) -> Optional[Product]:
        ...

    def update_product(
        self,
        product_id: int,
        *,
        price: Optional[float] = None,
        minimum_order_quantity: Optional[float] = None,
        max_available_quantity: Optional[float] = None,
        is_in_stock: Optional[bool] = None,
    ) -> Product:
        ...


class OrderRepository(Protocol):
    """Orders, their line items and status transitions."""

    def create_order(
        self,
        customer_id: int,
        notes: Optional[str],
        lines: Sequence[Tuple[int, float, float]],
        total_price: float,
    ) -> Order:
        ...

    def get_order(self, order_id: int) -> Optional[Order]:
        ...

    def transition_order_status(
        self,
        order_id: int,
        from_status: OrderStatus,
        to_status: OrderStatus,
    ) -> bool:
        ...

    def get_orders_for_customer(self, customer_id: int, limit: int, offset: int) -> Tuple[List[Order], int]:
        ...

    def get_orders_for_farmer(self, farmer_id: int, limit: int, offset: int) -> Tuple[List[Order], int]:
        ...


class ConversationRepository(Protocol):
    """Two-party chat channels, unique per unordered pair of users."""

    def find_or_create_conversation(
        self,
        initiator_id: int,
        recipient_id: int,
        product_id: Optional[int],
        title: Optional[str],
    ) -> Tuple[Conversation, bool]:
        ...

    def get_conversation(self, conversation_id: int) -> Optional[Conversation]:
        ...

    def get_active_conversations_for_user(self, user_id: int) -> List[Conversation]:
        ...

    def set_conversation_active(self, conversation_id: int, is_active: bool) -> None:
        ...


class MessageRepository(Protocol):
    """Chat messages, read flags and reminder bookkeeping."""

    def create_message(self, conversation_id: int, sender_id: int, content: str) -> Message:
        ...

    def get_message(self, message_id: int) -> Optional[Message]:
        ...

    def get_messages_for_conversation(self, conversation_id: int) -> List[Message]:
        ...

    def mark_messages_read(self, conversation_id: int, reader_id: int) -> int:
        ...

    def count_unread_messages(self, conversation_id: int, reader_id: int) -> int:
        ...

    def find_unread_messages_older_than(self, cutoff: datetime) -> List[Message]:
        ...

    def mark_notification_sent(self, message_id: int, sent_at: datetime) -> None:
        ...


class PersistenceGateway(
    UserRepository,
    RefreshTokenRepository,
    ProductRepository,
    OrderRepository,
    ConversationRepository,
    MessageRepository,
    Protocol,
):
    """Composite gateway combining every persistence concern used by the app."""

    def close(self) -> None:
        ...
