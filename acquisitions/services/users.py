"""User directory operations: list, fetch, update, delete."""

import logging
from typing import Any

from sqlalchemy.orm import Session

from acquisitions.core.security import hash_password
from acquisitions.models.user import User
from acquisitions.services.auth import UserAlreadyExistsError

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = frozenset({"name", "email", "password", "role"})


class UserNotFoundError(Exception):
    """Raised when the target user id does not exist."""

    def __init__(self, user_id: int) -> None:
        self.user_id = user_id
        self.message = "User not found."
        super().__init__(f"User {user_id} not found")


def get_all_users(db: Session) -> list[User]:
    return db.query(User).order_by(User.id).all()


def get_user_by_id(db: Session, user_id: int) -> User | None:
    return db.get(User, user_id)


def update_user(db: Session, user_id: int, updates: dict[str, Any]) -> User:
    """
    Apply a partial update. A new password is hashed before storage; a new email
    must not belong to another account.
    """
    unknown = set(updates) - UPDATABLE_FIELDS
    if unknown:
        raise ValueError(f"Cannot update fields: {', '.join(sorted(unknown))}")

    user = get_user_by_id(db, user_id)
    if user is None:
        raise UserNotFoundError(user_id)

    if "email" in updates:
        email = updates["email"].strip().lower()
        taken = db.query(User).filter(User.email == email, User.id != user_id).first()
        if taken is not None:
            raise UserAlreadyExistsError()
        user.email = email
    if "name" in updates:
        user.name = updates["name"]
    if "role" in updates:
        user.role = updates["role"]
    if "password" in updates:
        user.password_hash = hash_password(updates["password"])

    db.commit()
    db.refresh(user)
    logger.info(
        "Updated user",
        extra={"user_id": user_id, "fields": ",".join(sorted(updates))},
    )
    return user


def delete_user(db: Session, user_id: int) -> None:
    """Delete one user. Raises UserNotFoundError if it is already gone."""
    deleted = db.query(User).filter(User.id == user_id).delete(synchronize_session=False)
    if deleted == 0:
        db.rollback()
        raise UserNotFoundError(user_id)
    db.commit()
    logger.info("Deleted user", extra={"user_id": user_id})


def delete_all_users(db: Session) -> int:
    """Delete every user; returns the number of rows removed."""
    deleted_count = db.query(User).delete(synchronize_session=False)
    db.commit()
    logger.info("Deleted all users", extra={"deleted_count": deleted_count})
    return deleted_count
