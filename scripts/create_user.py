import getpass
import os

from dotenv import load_dotenv

from merrbio.application.services.auth_service import AuthService
from merrbio.application.services.token_service import TokenService
from merrbio.core.config import Settings
from merrbio.domain.exceptions import MarketplaceError
from merrbio.infrastructure.persistence.sqlite import SQLitePersistence
from merrbio.infrastructure.security.password import BcryptPasswordHasher


def main() -> None:
    load_dotenv()
    settings = Settings()

    email = os.getenv("ADMIN_EMAIL") or input("Administrator email: ").strip()
    if not email:
        raise SystemExit("Email is required.")
    password = getpass.getpass("Password: ")
    if password != getpass.getpass("Repeat password: "):
        raise SystemExit("Passwords do not match.")

    persistence = SQLitePersistence(settings.database_path)
    try:
        tokens = TokenService(persistence, secret_key=settings.jwt_secret)
        auth = AuthService(persistence, BcryptPasswordHasher(rounds=settings.bcrypt_rounds), tokens)
        if persistence.get_user_by_email(email):
            raise SystemExit(f"User {email} already exists.")
        try:
            auth.validate_password(password)
        except MarketplaceError as exc:
            raise SystemExit(exc.message) from exc
        user = auth.ensure_default_admin(email, password)
    finally:
        persistence.close()

    print(f"Administrator {user.email} created in {settings.database_path}")


if __name__ == "__main__":
    main()
