from dataclasses import dataclass

from ..application.services.auth_service import AuthService
from ..application.services.chat_service import ChatService
from ..application.services.order_service import OrderService
from ..application.services.product_service import ProductService
from ..application.services.token_service import TokenService
from ..application.services.user_service import UserService
from .config import Settings
from ..domain.ports.persistence import PersistenceGateway
from ..services.chat_connections import ChatConnectionManager
from ..services.chat_reminders import ChatReminderService
from ..services.email_service import EmailService
from ..services.notification_dispatcher import NotificationDispatcher


@dataclass(slots=True)
class ApplicationContainer:
    """Dependency registry shared across the FastAPI application lifecycle."""

    settings: Settings
    persistence: PersistenceGateway
    token_service: TokenService
    auth_service: AuthService
    user_service: UserService
    product_service: ProductService
    order_service: OrderService
    chat_service: ChatService
    email_service: EmailService
    chat_connections: ChatConnectionManager
    notification_dispatcher: NotificationDispatcher
    chat_reminders: ChatReminderService
