from typing import Optional
import logging

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import Session, select

from .....application.ports.user_repo import UserRepository, UserDto
from .....db.models import User
from .....exceptions import ConflictError, StorageFailureError
from .....utils import as_utc

logger = logging.getLogger(__name__)


class SqlUserRepository(UserRepository):
    def __init__(self, session: Session):
        self.session = session

    def _to_dto(self, user: User) -> UserDto:
        return UserDto(
            id=user.id,
            username=user.username,
            password_hash=user.password_hash,
            created_at=as_utc(user.created_at),
        )

    def create(self, username: str, password_hash: str) -> UserDto:
        user = User(username=username, password_hash=password_hash)
        try:
            self.session.add(user)
            self.session.commit()
            self.session.refresh(user)
        except IntegrityError:
            self.session.rollback()
            raise ConflictError("Username already taken")
        except SQLAlchemyError as e:
            logger.error(f"Error creating user: {e}")
            self.session.rollback()
            raise StorageFailureError(f"Failed to create user: {e}") from e
        return self._to_dto(user)

    def get_by_username(self, username: str) -> Optional[UserDto]:
        user = self.session.exec(select(User).where(User.username == username)).first()
        return self._to_dto(user) if user else None

    def get_by_id(self, user_id: str) -> Optional[UserDto]:
        user = self.session.get(User, user_id)
        return self._to_dto(user) if user else None
