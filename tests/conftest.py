from typing import Any, Dict, List, Tuple

import pytest
from fastapi.testclient import TestClient

from merrbio.application.services.auth_service import AuthService, Registration
from merrbio.application.services.chat_service import ChatService
from merrbio.application.services.order_service import OrderService
from merrbio.application.services.product_service import ProductDraft, ProductService
from merrbio.application.services.token_service import TokenService
from merrbio.application.services.user_service import UserService
from merrbio.core.app_factory import create_application
from merrbio.core.config import Settings
from merrbio.domain.models import ChatMessageView, Identity, Product
from merrbio.infrastructure.persistence.sqlite import SQLitePersistence
from merrbio.infrastructure.security.password import BcryptPasswordHasher

TEST_SECRET = "test-secret-key"


class RecordingNotifier:
    def __init__(self) -> None:
        self.notifications: List[Tuple[int, str, str]] = []
        self.chat_messages: List[Tuple[int, ChatMessageView]] = []
        self.read_receipts: List[Tuple[int, int, int]] = []

    def notify_user(self, user_id: int, title: str, message: str) -> None:
        self.notifications.append((user_id, title, message))

    def push_chat_message(self, user_id: int, message: ChatMessageView) -> None:
        self.chat_messages.append((user_id, message))

    def push_read_receipt(self, user_id: int, conversation_id: int, reader_id: int) -> None:
        self.read_receipts.append((user_id, conversation_id, reader_id))


@pytest.fixture
def persistence(tmp_path):
    gateway = SQLitePersistence(tmp_path / "merrbio-test.db")
    yield gateway
    gateway.close()


@pytest.fixture
def password_hasher():
    return BcryptPasswordHasher(rounds=4)


@pytest.fixture
def token_service(persistence):
    return TokenService(persistence, secret_key=TEST_SECRET)


@pytest.fixture
def auth_service(persistence, password_hasher, token_service):
    return AuthService(persistence, password_hasher, token_service)


@pytest.fixture
def user_service(persistence):
    return UserService(persistence)


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def product_service(persistence):
    return ProductService(persistence)


@pytest.fixture
def order_service(persistence, notifier):
    return OrderService(persistence, notifier)


@pytest.fixture
def chat_service(persistence, user_service, notifier):
    return ChatService(persistence, user_service, notifier)


@pytest.fixture
def make_customer(auth_service, persistence):
    counter = {"n": 0}

    def factory(first_name: str = "Cora", last_name: str = "Customer") -> Identity:
        counter["n"] += 1
        n = counter["n"]
        auth_service.register_customer(
            Registration(
                email=f"customer{n}@farmmail.org",
                password="secret123",
                first_name=first_name,
                last_name=last_name,
                phone_number=f"+3556900000{n:02d}",
            )
        )
        return Identity.of(persistence.get_user_by_email(f"customer{n}@farmmail.org"))

    return factory


@pytest.fixture
def make_farmer(auth_service, persistence):
    counter = {"n": 0}

    def factory(farm_name: str = "Green Valley", first_name: str = "Fatos", last_name: str = "Farmer") -> Identity:
        counter["n"] += 1
        n = counter["n"]
        auth_service.register_farmer(
            Registration(
                email=f"farmer{n}@farmmail.org",
                password="secret123",
                first_name=first_name,
                last_name=last_name,
                phone_number=f"+3556800000{n:02d}",
                farm_name=farm_name,
                farm_location="Berat",
            )
        )
        return Identity.of(persistence.get_user_by_email(f"farmer{n}@farmmail.org"))

    return factory


@pytest.fixture
def make_product(product_service):
    def factory(farmer: Identity, **overrides: Any) -> Product:
        values: Dict[str, Any] = {
            "name": "Tomatoes",
            "price": 5.0,
            "unit": "kg",
            "minimum_order_quantity": 1,
            "max_available_quantity": 10,
        }
        values.update(overrides)
        return product_service.create_product(farmer, ProductDraft(**values))

    return factory


# HTTP ---------------------------------------------------------------------
@pytest.fixture
def settings(tmp_path, monkeypatch):
    monkeypatch.setenv("DATABASE_PATH", str(tmp_path / "merrbio-api.db"))
    monkeypatch.setenv("JWT_SECRET", TEST_SECRET)
    monkeypatch.setenv("BCRYPT_ROUNDS", "4")
    monkeypatch.setenv("REMINDER_INTERVAL_SECONDS", "3600")
    monkeypatch.setenv("API_PREFIX", "")
    monkeypatch.delenv("CORS_ALLOW_ORIGINS", raising=False)
    monkeypatch.delenv("ADMIN_EMAIL", raising=False)
    monkeypatch.delenv("ADMIN_PASSWORD", raising=False)
    monkeypatch.delenv("SMTP_HOST", raising=False)
    return Settings()


@pytest.fixture
def client(settings):
    app = create_application(settings)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def register(client):
    """Register an account over HTTP and return its token pair."""
    counter = {"n": 0}

    def factory(role: str = "customer", **overrides: Any) -> Dict[str, str]:
        counter["n"] += 1
        n = counter["n"]
        payload: Dict[str, Any] = {
            "email": f"{role}{n}@farmmail.org",
            "password": "secret123",
            "firstName": role.title(),
            "lastName": f"Number{n}",
            "phoneNumber": f"+35569100{n:04d}",
        }
        if role == "farmer":
            payload["farmName"] = f"Farm {n}"
        payload.update(overrides)
        response = client.post(f"/auth/register/{role}", json=payload)
        assert response.status_code == 200, response.text
        tokens = response.json()
        tokens["email"] = payload["email"]
        return tokens

    return factory


@pytest.fixture
def auth_header():
    def build(tokens: Dict[str, str]) -> Dict[str, str]:
        return {"Authorization": f"Bearer {tokens['accessToken']}"}

    return build


@pytest.fixture
def jwt_secret():
    return TEST_SECRET
