from typing import Protocol


class IdentityProvider(Protocol):
    def issue(self, user_id: str, username: str) -> str:
        ...

    def resolve(self, token: str) -> str:
        """Return the caller id carried by ``token`` or raise AuthenticationError."""
        ...


class PasswordHasher(Protocol):
    def hash(self, password: str) -> str:
        ...

    def verify(self, password: str, password_hash: str) -> bool:
        ...
