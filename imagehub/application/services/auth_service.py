from dataclasses import dataclass
from typing import Tuple
import logging

from ..ports.identity_provider import IdentityProvider, PasswordHasher
from ..ports.user_repo import UserRepository, UserDto
from ...exceptions import AuthenticationError, ConflictError, NotFoundError

logger = logging.getLogger(__name__)


@dataclass
class AuthService:
    user_repo: UserRepository
    identity: IdentityProvider
    hasher: PasswordHasher

    def register(self, username: str, password: str) -> Tuple[UserDto, str]:
        if self.user_repo.get_by_username(username) is not None:
            raise ConflictError("Username already taken")
        user = self.user_repo.create(username, self.hasher.hash(password))
        logger.info(f"Registered user {user.id}")
        return user, self.identity.issue(user.id, user.username)

    def login(self, username: str, password: str) -> Tuple[UserDto, str]:
        user = self.user_repo.get_by_username(username)
        if user is None or not self.hasher.verify(password, user.password_hash):
            logger.warning("Login failed: invalid credentials")
            raise AuthenticationError("Invalid username or password")
        return user, self.identity.issue(user.id, user.username)

    def profile(self, user_id: str) -> UserDto:
        user = self.user_repo.get_by_id(user_id)
        if user is None:
            raise NotFoundError("User not found")
        return user
