from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional


@dataclass(slots=True)
class Conversation:
    id: int
    initiator_id: int
    recipient_id: int
    product_id: Optional[int]
    title: Optional[str]
    is_active: bool
    created_at: datetime
    updated_at: datetime

    def has_participant(self, user_id: int) -> bool:
        return user_id in (self.initiator_id, self.recipient_id)

    def other_party(self, user_id: int) -> int:
        return self.recipient_id if user_id == self.initiator_id else self.initiator_id


@dataclass(slots=True)
class Message:
    id: int
    conversation_id: int
    sender_id: int
    content: str
    is_read: bool
    last_notification_sent: Optional[datetime]
    created_at: datetime


@dataclass(slots=True)
class ChatMessageView:
    """Message as shown to a conversation participant."""

    id: int
    conversation_id: int
    sender_id: int
    sender_name: str
    content: str
    is_read: bool
    created_at: datetime


@dataclass(slots=True)
class ConversationView:
    id: int
    other_user_id: int
    other_user_name: str
    product_id: Optional[int]
    product_name: Optional[str]
    title: Optional[str]
    is_active: bool
    unread_count: int
    last_message: Optional[str]
    last_message_time: Optional[datetime]
    created_at: datetime
    messages: List[ChatMessageView] = field(default_factory=list)
