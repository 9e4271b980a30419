"""Request/response schemas for auth endpoints.

Responses are wrapped in ApiResponse at the router layer.
"""

import re

from pydantic import BaseModel, EmailStr, Field, field_validator

from src.mk_gateway.auth.password import MAX_PASSWORD_BYTES, exceeds_bcrypt_limit


class RegisterRequest(BaseModel):
    username: str = Field(..., min_length=3, max_length=64, pattern=r"^[a-zA-Z0-9_]+$")
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=128)
    country: str | None = Field(None, max_length=64, description="Seller country, e.g. 'RO'")

    @field_validator("password")
    @classmethod
    def password_complexity(cls, v: str) -> str:
        """At least one uppercase, one lowercase and one digit; at most 72 UTF-8 bytes."""
        if exceeds_bcrypt_limit(v):
            raise ValueError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")
        if not re.search(r"[A-Z]", v):
            raise ValueError("Password must contain at least one uppercase letter")
        if not re.search(r"[a-z]", v):
            raise ValueError("Password must contain at least one lowercase letter")
        if not re.search(r"\d", v):
            raise ValueError("Password must contain at least one digit")
        return v


class LoginRequest(BaseModel):
    username: str
    password: str


class RefreshRequest(BaseModel):
    refresh_token: str


class UserInfo(BaseModel):
    user_id: str
    username: str
    email: str
    role: str


class RegisterResponse(BaseModel):
    user_id: str
    username: str
    email: str
    country: str | None
    created_at: str


class LoginResponse(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "Bearer"
    expires_in: int = 1800
    user: UserInfo


class RefreshResponse(BaseModel):
    access_token: str
    expires_in: int = 1800


class ProfileResponse(BaseModel):
    user_id: str
    username: str
    email: str
    role: str
    country: str | None
    kyc_status: str
    withdrawal_blocked: bool
    withdrawal_blocked_reason: str | None
