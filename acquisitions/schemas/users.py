"""Request/response schemas for user management endpoints."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator

from acquisitions.core.security import (
    EMAIL_MAX_LEN,
    NAME_MAX_LEN,
    NAME_MIN_LEN,
    PASSWORD_MAX_LEN,
    PASSWORD_MIN_LEN,
)


def normalize_email(value: object) -> object:
    """Trim and lower-case; reject overlong addresses before format checks."""
    if isinstance(value, str):
        value = value.strip().lower()
        if len(value) > EMAIL_MAX_LEN:
            raise ValueError(f"Email must be at most {EMAIL_MAX_LEN} characters")
    return value


class UserSummary(BaseModel):
    """Public fields returned after signup/signin."""

    id: int
    name: str
    email: str
    role: str

    class Config:
        from_attributes = True


class UserOut(UserSummary):
    """User record without the password hash."""

    created_at: datetime | None = None
    updated_at: datetime | None = None


class UserUpdateRequest(BaseModel):
    """Partial update; at least one field must be provided."""

    name: str | None = Field(default=None, min_length=NAME_MIN_LEN, max_length=NAME_MAX_LEN)
    email: EmailStr | None = None
    password: str | None = Field(
        default=None, min_length=PASSWORD_MIN_LEN, max_length=PASSWORD_MAX_LEN
    )
    role: Literal["user", "admin"] | None = None

    @field_validator("email", mode="before")
    @classmethod
    def check_email(cls, v: object) -> object:
        return normalize_email(v)

    @model_validator(mode="after")
    def require_one_field(self) -> "UserUpdateRequest":
        if not self.to_updates():
            raise ValueError("At least one field must be provided to update")
        return self

    def to_updates(self) -> dict[str, str]:
        """Return only the fields the caller actually set."""
        return {k: v for k, v in self.model_dump().items() if v is not None}


class UserResponse(BaseModel):
    message: str
    user: UserOut


class UsersListResponse(BaseModel):
    """Response for GET /api/users (admin only)."""

    message: str
    users: list[UserOut]
    count: int


class DeleteAllResponse(BaseModel):
    message: str
    deleted: int
