from pydantic import EmailStr, Field, field_validator
from typing import Optional
from datetime import datetime

from researchflow.schemas.common import CamelModel

# bcrypt only hashes the first 72 bytes and rejects longer input
MAX_PASSWORD_BYTES = 72


class UserCreate(CamelModel):
    email: str
    username: str
    password_hash: str
    llm_api_key: Optional[str] = None
    llm_base_url: Optional[str] = None


class UserRead(UserCreate):
    """Full stored user, never returned to clients"""
    id: int
    is_active: bool = True
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class UserPublic(CamelModel):
    id: int
    email: str
    username: str
    has_api_key: bool

    @classmethod
    def from_user(cls, user: UserRead) -> "UserPublic":
        return cls(
            id=user.id,
            email=user.email,
            username=user.username,
            has_api_key=bool(user.llm_api_key),
        )


class RegisterRequest(CamelModel):
    email: EmailStr
    username: str = Field(..., min_length=1, max_length=100)
    password: str = Field(..., min_length=1)
    api_key: Optional[str] = None
    base_url: Optional[str] = None

    @field_validator("password")
    def password_fits_bcrypt(cls, v):
        if len(v.encode("utf-8")) > MAX_PASSWORD_BYTES:
            raise ValueError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")
        return v


class LoginRequest(CamelModel):
    login: str = Field(..., min_length=1, description="Email or username")
    password: str = Field(..., min_length=1)


class ApiKeyRequest(CamelModel):
    api_key: str = Field(..., min_length=1)
    base_url: Optional[str] = None


class AuthResponse(CamelModel):
    user: UserPublic
    token: str
