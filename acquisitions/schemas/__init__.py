"""Pydantic request/response schemas."""

from acquisitions.schemas.auth import (
    AuthResponse,
    Identity,
    MessageResponse,
    Role,
    SignInRequest,
    SignUpRequest,
)
from acquisitions.schemas.health import HealthResponse
from acquisitions.schemas.users import (
    DeleteAllResponse,
    UserOut,
    UserResponse,
    UserSummary,
    UsersListResponse,
    UserUpdateRequest,
)

__all__ = [
    "AuthResponse",
    "DeleteAllResponse",
    "HealthResponse",
    "Identity",
    "MessageResponse",
    "Role",
    "SignInRequest",
    "SignUpRequest",
    "UserOut",
    "UserResponse",
    "UserSummary",
    "UsersListResponse",
    "UserUpdateRequest",
]
