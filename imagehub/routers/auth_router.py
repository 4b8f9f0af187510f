from fastapi import APIRouter, Depends, status
from starlette.concurrency import run_in_threadpool
import logging

from ..application.services.auth_service import AuthService
from ..dependencies import get_auth_service, get_current_user
from ..schemas.auth.auth import AuthResponse, LoginRequest, RegisterRequest, UserResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["Authentication"])


def _user_response(user) -> UserResponse:
    return UserResponse(id=user.id, username=user.username, created_at=user.created_at)


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def register(payload: RegisterRequest, auth: AuthService = Depends(get_auth_service)):
    """Create an account and return a bearer token for it"""
    # bcrypt is deliberately slow; keep it off the event loop
    user, token = await run_in_threadpool(auth.register, payload.username, payload.password)
    return AuthResponse(user=_user_response(user), token=token)


@router.post("/login", response_model=AuthResponse)
async def login(payload: LoginRequest, auth: AuthService = Depends(get_auth_service)):
    user, token = await run_in_threadpool(auth.login, payload.username, payload.password)
    return AuthResponse(user=_user_response(user), token=token)


@router.get("/me", response_model=UserResponse)
def me(current_user: str = Depends(get_current_user), auth: AuthService = Depends(get_auth_service)):
    return _user_response(auth.profile(current_user))
