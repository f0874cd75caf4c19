from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, Optional

from fastapi import APIRouter, FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import Settings
from .container import ApplicationContainer
from .logging import configure_logging
from ..application.services.auth_service import AuthService
from ..application.services.chat_service import ChatService
from ..application.services.order_service import OrderService
from ..application.services.product_service import ProductService
from ..application.services.token_service import TokenService
from ..application.services.user_service import UserService
from ..infrastructure.persistence.sqlite import SQLitePersistence
from ..infrastructure.security.password import BcryptPasswordHasher
from ..presentation.api.errors import register_exception_handlers
from ..presentation.api.middleware import install_auth_gateway
from ..presentation.api.routers import auth as auth_router
from ..presentation.api.routers import chat as chat_router
from ..presentation.api.routers import orders as orders_router
from ..presentation.api.routers import products as products_router
from ..presentation.api.routers import users as users_router
from ..presentation.websocket import routes as websocket_routes
from ..services.chat_connections import ChatConnectionManager
from ..services.chat_reminders import ChatReminderService
from ..services.email_service import EmailService
from ..services.notification_dispatcher import NotificationDispatcher

logger = logging.getLogger(__name__)


def create_application(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or Settings()

    app = FastAPI(title="MerrBio API", lifespan=_create_lifespan(settings))

    # Middleware added last runs first; CORS must wrap the gateway's 401s.
    install_auth_gateway(app, settings.api_prefix)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_exception_handlers(app)

    api = APIRouter(prefix=settings.api_prefix)
    api.include_router(auth_router.router)
    api.include_router(users_router.router)
    api.include_router(products_router.router)
    api.include_router(orders_router.router)
    api.include_router(chat_router.router)
    app.include_router(api)
    app.include_router(websocket_routes.router)

    @app.get("/health")
    async def health() -> Dict[str, Any]:
        return {"ok": True}

    return app


def build_container(settings: Settings) -> ApplicationContainer:
    persistence = SQLitePersistence(settings.database_path)
    password_hasher = BcryptPasswordHasher(rounds=settings.bcrypt_rounds)
    token_service = TokenService(
        persistence,
        secret_key=settings.jwt_secret,
        access_token_exp_minutes=settings.access_token_exp_minutes,
        refresh_token_exp_days=settings.refresh_token_exp_days,
        algorithm=settings.jwt_algorithm,
    )
    auth_service = AuthService(persistence, password_hasher, token_service)
    user_service = UserService(persistence)
    connections = ChatConnectionManager()
    dispatcher = NotificationDispatcher(connections, max_workers=settings.notification_workers)
    email_service = EmailService(
        smtp_host=settings.smtp_host,
        smtp_port=settings.smtp_port,
        smtp_username=settings.smtp_username,
        smtp_password=settings.smtp_password,
        from_email=settings.smtp_from_email,
        frontend_base_url=settings.frontend_base_url,
    )
    reminders = ChatReminderService(
        persistence,
        email_service,
        user_service,
        threshold_hours=settings.reminder_threshold_hours,
        interval_seconds=settings.reminder_interval_seconds,
    )
    return ApplicationContainer(
        settings=settings,
        persistence=persistence,
        token_service=token_service,
        auth_service=auth_service,
        user_service=user_service,
        product_service=ProductService(persistence),
        order_service=OrderService(persistence, dispatcher),
        chat_service=ChatService(persistence, user_service, dispatcher),
        email_service=email_service,
        chat_connections=connections,
        notification_dispatcher=dispatcher,
        chat_reminders=reminders,
    )


def _create_lifespan(settings: Settings):
    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        configure_logging()
        container = build_container(settings)
        container.auth_service.ensure_default_admin(
            settings.admin_default_email, settings.admin_default_password
        )
        if not container.email_service.enabled:
            logger.warning("SMTP is not configured; chat reminders will only be logged.")

        app.state.container = container  # type: ignore[attr-defined]

        await container.notification_dispatcher.start()
        await container.chat_reminders.start()
        try:
            yield
        finally:
            await container.chat_reminders.stop()
            await container.notification_dispatcher.stop()
            container.persistence.close()

    return lifespan
