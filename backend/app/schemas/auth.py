"""Request/response bodies for /auth."""

import re
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

_LETTER = re.compile(r"[A-Za-z]")
_DIGIT = re.compile(r"\d")


class RegisterBody(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    email: EmailStr
    password: str = Field(min_length=8, max_length=128)
    role: Literal["user", "admin"] = "user"

    @field_validator("password")
    @classmethod
    def password_has_letter_and_digit(cls, v: str) -> str:
        if not _LETTER.search(v) or not _DIGIT.search(v):
            raise ValueError("password must contain at least 1 letter and 1 number")
        return v


class LoginBody(BaseModel):
    email: EmailStr
    password: str = Field(min_length=1)


class RefreshTokenBody(BaseModel):
    refresh_token: str = Field(min_length=1)


class UserOut(BaseModel):
    """Public user representation; the password hash is never included."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    email: str
    name: str
    role: str
    created_at: datetime | None = None


class TokenOut(BaseModel):
    token: str
    expires_at: datetime


class TokenPairOut(BaseModel):
    access: TokenOut
    refresh: TokenOut


class AuthResponse(BaseModel):
    user: UserOut
    token: TokenPairOut


class LogoutResponse(BaseModel):
    success: bool = True
    message: str = "User logout successfully!"
