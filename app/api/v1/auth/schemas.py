from datetime import datetime
from typing import Optional
from pydantic import EmailStr, Field, field_validator

from app.api.v1.base_schemas import APIModel
from app.domain.auth.models import UserRole


class UserCreate(APIModel):
    username: str = Field(..., min_length=3, max_length=100)
    password: str = Field(..., min_length=6, max_length=72)
    email: Optional[EmailStr] = None
    role: UserRole = UserRole.BED_MANAGER

    @field_validator("username")
    @classmethod
    def strip_username(cls, v: str) -> str:
        v = v.strip()
        if len(v) < 3:
            raise ValueError("Username must be at least 3 characters")
        return v


class LoginRequest(APIModel):
    username: str
    password: str


class UserResponse(APIModel):
    id: str
    username: str
    email: Optional[str] = None
    role: UserRole
    is_active: bool
    created_at: Optional[datetime] = None


class RegisterResponse(APIModel):
    message: str
    user: UserResponse


class LoginResponse(APIModel):
    token: str
    token_type: str = "bearer"
    user: UserResponse


class PrincipalResponse(APIModel):
    user_id: str
    username: str
    role: UserRole
    is_admin: bool
