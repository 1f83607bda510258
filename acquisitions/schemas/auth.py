"""Request/response schemas for auth endpoints and the caller identity."""

from typing import Literal

from pydantic import BaseModel, EmailStr, Field, field_validator

from acquisitions.core.security import (
    NAME_MAX_LEN,
    NAME_MIN_LEN,
    PASSWORD_MAX_LEN,
    PASSWORD_MIN_LEN,
)
from acquisitions.schemas.users import UserSummary, normalize_email

Role = Literal["user", "admin"]


class SignUpRequest(BaseModel):
    """New account details."""

    name: str = Field(..., min_length=NAME_MIN_LEN, max_length=NAME_MAX_LEN)
    email: EmailStr
    password: str = Field(..., min_length=PASSWORD_MIN_LEN, max_length=PASSWORD_MAX_LEN)
    role: Role = "user"

    @field_validator("name", mode="before")
    @classmethod
    def strip_name(cls, v: object) -> object:
        return v.strip() if isinstance(v, str) else v

    @field_validator("email", mode="before")
    @classmethod
    def check_email(cls, v: object) -> object:
        return normalize_email(v)


class SignInRequest(BaseModel):
    """Credentials for signin."""

    email: EmailStr
    password: str = Field(..., min_length=1, max_length=PASSWORD_MAX_LEN)

    @field_validator("email", mode="before")
    @classmethod
    def check_email(cls, v: object) -> object:
        return normalize_email(v)


class Identity(BaseModel):
    """Authenticated caller decoded from the token cookie. Absent for guests."""

    user_id: int = Field(..., gt=0)
    email: str
    role: Role

    class Config:
        frozen = True


class AuthResponse(BaseModel):
    """Response for signup and signin; the token itself travels in the cookie."""

    message: str
    user: UserSummary


class MessageResponse(BaseModel):
    message: str
