"""Pydantic schemas for registration, login and token responses."""

from typing import Optional

from pydantic import BaseModel, EmailStr, Field


class RegisterRequest(BaseModel):
    username: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    password: str = Field(..., min_length=6, max_length=128)


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class RefreshRequest(BaseModel):
    """Optional body for clients that cannot send cookies."""
    refresh_token: Optional[str] = None


class UserRead(BaseModel):
    id: int
    username: str
    email: str

    model_config = {"from_attributes": True}


class AuthResponse(BaseModel):
    """Returned by register, login and refresh.

    Tokens are also set as HttpOnly cookies; the body copies are omitted
    when TASKBOARD_TOKENS_IN_BODY is false.
    """
    message: str
    user: UserRead
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None
    token_type: str = "bearer"
