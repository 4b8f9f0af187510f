from typing import Protocol, Optional
from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class UserDto:
    id: str
    username: str
    password_hash: str
    created_at: Optional[datetime] = None


class UserRepository(Protocol):
    def create(self, username: str, password_hash: str) -> UserDto:
        """Raises ConflictError when the username is taken."""
        ...

    def get_by_username(self, username: str) -> Optional[UserDto]:
        ...

    def get_by_id(self, user_id: str) -> Optional[UserDto]:
        ...
