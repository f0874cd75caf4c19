"""Domain models for the MerrBio marketplace."""

from .chat import ChatMessageView, Conversation, ConversationView, Message
from .order import Order, OrderItem, OrderLine, OrderStatus, Page
from .product import Product
from .refresh_token import RefreshToken
from .user import Farmer, Identity, Role, User, UserInfo

__all__ = [
    "ChatMessageView",
    "Conversation",
    "ConversationView",
    "Farmer",
    "Identity",
    "Message",
    "Order",
    "OrderItem",
    "OrderLine",
    "OrderStatus",
    "Page",
    "Product",
    "RefreshToken",
    "Role",
    "User",
    "UserInfo",
]
