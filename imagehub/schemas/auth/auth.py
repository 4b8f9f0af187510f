# imagehub/schemas/auth/auth.py
from pydantic import BaseModel, Field, field_validator
from typing import Optional
from datetime import datetime
import re

__all__ = ["RegisterRequest", "LoginRequest", "UserResponse", "AuthResponse"]


class RegisterRequest(BaseModel):
    username: str = Field(..., min_length=3, max_length=50, description="Unique login name")
    # bcrypt only looks at the first 72 bytes
    password: str = Field(..., min_length=8, max_length=72)

    @field_validator("username")
    @classmethod
    def validate_username(cls, v):
        v = v.strip()
        if not re.match(r"^[A-Za-z0-9_.\-]{3,50}$", v):
            raise ValueError("Username can only contain letters, digits, '.', '_' and '-'")
        return v


class LoginRequest(BaseModel):
    username: str = Field(..., min_length=1, max_length=50)
    password: str = Field(..., min_length=1, max_length=72)


class UserResponse(BaseModel):
    id: str
    username: str
    created_at: Optional[datetime] = None


class AuthResponse(BaseModel):
    user: UserResponse
    token: str
    token_type: str = "bearer"
