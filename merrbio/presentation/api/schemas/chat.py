from datetime import datetime
from typing import List, Literal, Optional

from pydantic import Field

from .common import CamelModel


class ConversationCreateRequest(CamelModel):
    recipient_id: int
    initial_message: Optional[str] = Field(default=None, max_length=2000)
    product_id: Optional[int] = None


class MessageSendRequest(CamelModel):
    content: str = Field(min_length=1, max_length=2000)


class ChatMessageResponse(CamelModel):
    id: int
    conversation_id: int
    sender_id: int
    sender_name: str
    content: str
    is_read: bool
    created_at: datetime


class ConversationResponse(CamelModel):
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
    messages: List[ChatMessageResponse] = []


class ReadReceiptResponse(CamelModel):
    conversation_id: int
    marked_read: int


class ChatSocketFrame(CamelModel):
    """Inbound realtime frame sent by a chat client."""

    type: Literal["subscribe", "chat.sendMessage", "chat.markRead"]
    conversation_id: Optional[int] = None
    content: Optional[str] = None
