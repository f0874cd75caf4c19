from typing import Protocol


class PasswordHasher(Protocol):
    """Pluggable adaptive hash used for stored credentials."""

    def hash(self, password: str) -> str:
        ...

    def verify(self, password: str, password_hash: str) -> bool:
        ...
