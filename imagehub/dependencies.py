from concurrent.futures import ThreadPoolExecutor
from functools import lru_cache
import logging

from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlmodel import Session

from .application.ports.image_store import ImageStore
from .application.services.auth_service import AuthService
from .application.services.image_service import ImageService
from .application.services.transform_engine import TransformationEngine
from .config import settings
from .database import get_session
from .exceptions import AuthenticationError
from .infrastructure.audit.std_logger import StdAuditLogger
from .infrastructure.identity.jwt_provider import JwtIdentityProvider
from .infrastructure.identity.passwords import BcryptPasswordHasher
from .infrastructure.persistence.sqlalchemy.repositories.image_catalog_sql import SqlImageCatalog
from .infrastructure.persistence.sqlalchemy.repositories.user_repository_sql import SqlUserRepository
from .infrastructure.storage.local_storage import LocalImageStore
from .infrastructure.storage.memory_storage import InMemoryImageStore

logger = logging.getLogger(__name__)

oauth2_scheme = HTTPBearer(auto_error=False)


@lru_cache()
def get_image_store() -> ImageStore:
    backend = settings.STORAGE_BACKEND.lower()
    if backend == "memory":
        logger.info("Using in-memory image store")
        return InMemoryImageStore()
    if backend != "local":
        raise RuntimeError(f"Unknown STORAGE_BACKEND '{settings.STORAGE_BACKEND}'")
    logger.info(f"Using local image store at {settings.UPLOAD_DIR}")
    return LocalImageStore(settings.UPLOAD_DIR)


@lru_cache()
def get_transform_engine() -> TransformationEngine:
    return TransformationEngine(jpeg_quality=settings.JPEG_QUALITY)


@lru_cache()
def get_transform_executor() -> ThreadPoolExecutor:
    return ThreadPoolExecutor(max_workers=max(1, settings.TRANSFORM_MAX_WORKERS), thread_name_prefix="transform")


@lru_cache()
def get_audit_logger() -> StdAuditLogger:
    return StdAuditLogger()


@lru_cache()
def get_identity_provider() -> JwtIdentityProvider:
    return JwtIdentityProvider(
        secret_key=settings.SECRET_KEY,
        algorithm=settings.ALGORITHM,
        expire_minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES,
    )


@lru_cache()
def get_password_hasher() -> BcryptPasswordHasher:
    return BcryptPasswordHasher(rounds=settings.BCRYPT_ROUNDS)


def get_image_service(
    session: Session = Depends(get_session),
    store: ImageStore = Depends(get_image_store),
    engine: TransformationEngine = Depends(get_transform_engine),
) -> ImageService:
    return ImageService(
        store=store,
        catalog=SqlImageCatalog(session),
        engine=engine,
        max_page_size=settings.MAX_PAGE_SIZE,
        max_upload_bytes=settings.MAX_FILE_SIZE,
        executor=get_transform_executor(),
        audit=get_audit_logger(),
    )


def get_auth_service(
    session: Session = Depends(get_session),
    identity: JwtIdentityProvider = Depends(get_identity_provider),
    hasher: BcryptPasswordHasher = Depends(get_password_hasher),
) -> AuthService:
    return AuthService(user_repo=SqlUserRepository(session), identity=identity, hasher=hasher)


def get_current_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials = Depends(oauth2_scheme),
    identity: JwtIdentityProvider = Depends(get_identity_provider),
) -> str:
    if credentials and credentials.credentials:
        token = credentials.credentials
    else:
        # Fallback to cookie
        token = request.cookies.get("access_token")
    if not token:
        raise AuthenticationError("Authentication required")
    return identity.resolve(token)
