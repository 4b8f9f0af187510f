from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional
import logging
import jwt

from ...application.ports.identity_provider import IdentityProvider
from ...exceptions import AuthenticationError

logger = logging.getLogger(__name__)

UNSET_SECRET = "change-me-in-prod"


class JwtIdentityProvider(IdentityProvider):
    """Issues and verifies HS256 bearer tokens whose ``sub`` is the user id."""

    def __init__(self, secret_key: str, algorithm: str = "HS256", expire_minutes: int = 24 * 60):
        self.secret_key = secret_key
        self.algorithm = algorithm
        self.expire_minutes = expire_minutes

    def _require_secret(self) -> None:
        # Ensure SECRET_KEY is properly set
        if not self.secret_key or self.secret_key == UNSET_SECRET:
            raise AuthenticationError("Token signing key is not configured")

    def issue(self, user_id: str, username: str, expires_delta: Optional[timedelta] = None) -> str:
        self._require_secret()
        expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=self.expire_minutes))
        to_encode: Dict[str, Any] = {"sub": user_id, "username": username, "exp": expire, "type": "access"}
        return jwt.encode(to_encode, self.secret_key, algorithm=self.algorithm)

    def decode(self, token: str) -> Dict[str, Any]:
        self._require_secret()
        try:
            return jwt.decode(token, self.secret_key, algorithms=[self.algorithm])
        except jwt.ExpiredSignatureError:
            logger.warning("JWT token expired")
            raise AuthenticationError("Token has expired")
        except jwt.InvalidTokenError as e:
            logger.warning(f"JWT token rejected: {e}")
            raise AuthenticationError("Invalid token")

    def resolve(self, token: str) -> str:
        if not token:
            raise AuthenticationError("Authentication required")
        payload = self.decode(token)
        if payload.get("type") != "access":
            raise AuthenticationError("Invalid token type")
        user_id = payload.get("sub")
        if not user_id:
            raise AuthenticationError("Invalid token: missing user ID")
        return str(user_id)
