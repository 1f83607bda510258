"""User management: list (admin), read, update and delete (self or admin), wipe (admin)."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from acquisitions.api.deps import (
    RequestContext,
    get_request_context,
    raise_for_decision,
    require_admin,
    require_authenticated,
    require_bulk_delete,
)
from acquisitions.core.database import get_db
from acquisitions.schemas.auth import Identity, MessageResponse
from acquisitions.schemas.users import (
    DeleteAllResponse,
    UserOut,
    UserResponse,
    UsersListResponse,
    UserUpdateRequest,
)
from acquisitions.services.access import check_ownership
from acquisitions.services.auth import UserAlreadyExistsError
from acquisitions.services.users import (
    UserNotFoundError,
    delete_all_users,
    delete_user,
    get_all_users,
    get_user_by_id,
    update_user,
)

logger = logging.getLogger(__name__)
router = APIRouter()

# users.id is a 32-bit INTEGER column.
MAX_USER_ID = 2**31 - 1


def parse_user_id(raw: str) -> int:
    """Path ids must be decimal integers within the id column range; anything else is a 400."""
    if not raw.isascii() or not raw.isdigit() or not 0 < int(raw) <= MAX_USER_ID:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid ID")
    return int(raw)


def _not_found() -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")


@router.get("", response_model=UsersListResponse)
def list_users(
    _admin: Annotated[Identity, Depends(require_admin)],
    db: Annotated[Session, Depends(get_db)],
) -> UsersListResponse:
    """List all users (admin only)."""
    users = get_all_users(db)
    return UsersListResponse(
        message="Users retrieved successfully",
        users=[UserOut.model_validate(u) for u in users],
        count=len(users),
    )


@router.get("/{user_id}", response_model=UserResponse)
def fetch_user(
    user_id: str,
    _caller: Annotated[Identity, Depends(require_authenticated)],
    db: Annotated[Session, Depends(get_db)],
) -> UserResponse:
    """Any authenticated caller may read any user."""
    target_id = parse_user_id(user_id)
    user = get_user_by_id(db, target_id)
    if user is None:
        raise _not_found()
    return UserResponse(message="User retrieved successfully", user=UserOut.model_validate(user))


@router.put("/{user_id}", response_model=UserResponse)
def update_user_route(
    user_id: str,
    body: UserUpdateRequest,
    _caller: Annotated[Identity, Depends(require_authenticated)],
    context: Annotated[RequestContext, Depends(get_request_context)],
    db: Annotated[Session, Depends(get_db)],
) -> UserResponse:
    """
    Update a user. Callers may update themselves; admins may update anyone.
    Only admins may change a role. A new password is stored hashed.
    """
    target_id = parse_user_id(user_id)
    updates = body.to_updates()
    raise_for_decision(check_ownership(context.identity, target_id, updates.keys()))

    try:
        user = update_user(db, target_id, updates)
    except UserNotFoundError as e:
        raise _not_found() from e
    except UserAlreadyExistsError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Email already exists.") from e
    return UserResponse(message="User updated successfully", user=UserOut.model_validate(user))


@router.delete("/{user_id}", response_model=MessageResponse)
def delete_user_route(
    user_id: str,
    _caller: Annotated[Identity, Depends(require_authenticated)],
    context: Annotated[RequestContext, Depends(get_request_context)],
    db: Annotated[Session, Depends(get_db)],
) -> MessageResponse:
    """Delete a user (self or admin). Deleting a missing id is a 404 with no side effects."""
    target_id = parse_user_id(user_id)
    raise_for_decision(check_ownership(context.identity, target_id))
    try:
        delete_user(db, target_id)
    except UserNotFoundError as e:
        raise _not_found() from e
    return MessageResponse(message="User deleted successfully")


@router.delete("", response_model=DeleteAllResponse)
def delete_all_users_route(
    admin: Annotated[Identity, Depends(require_bulk_delete)],
    db: Annotated[Session, Depends(get_db)],
) -> DeleteAllResponse:
    """Delete every user (admin only)."""
    deleted = delete_all_users(db)
    logger.warning("All users deleted", extra={"admin_id": admin.user_id, "deleted_count": deleted})
    return DeleteAllResponse(message="All users deleted successfully", deleted=deleted)
