"""Account creation and credential checks against the users table."""

import logging

from sqlalchemy.orm import Session

from acquisitions.core.security import hash_password, verify_password
from acquisitions.models.user import User

logger = logging.getLogger(__name__)


class UserAlreadyExistsError(Exception):
    """Raised when signing up with an email that is already registered."""

    def __init__(self, message: str = "User with this email already exists.") -> None:
        self.message = message
        super().__init__(message)


class InvalidCredentialsError(Exception):
    """Raised when the email is unknown or the password does not match."""

    def __init__(self, message: str = "Invalid email or password.") -> None:
        self.message = message
        super().__init__(message)


def get_user_by_email(db: Session, email: str) -> User | None:
    return db.query(User).filter(User.email == email.strip().lower()).first()


def create_user(db: Session, name: str, email: str, password: str, role: str = "user") -> User:
    """
    Insert a new user with a bcrypt password hash.

    Raises UserAlreadyExistsError before touching the table if the email is taken.
    """
    email = email.strip().lower()
    if get_user_by_email(db, email) is not None:
        raise UserAlreadyExistsError()

    user = User(
        name=name,
        email=email,
        password_hash=hash_password(password),
        role=role,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("Created new user", extra={"user_id": user.id, "role": user.role})
    return user


def authenticate_user(db: Session, email: str, password: str) -> User:
    """Return the user for valid credentials; raise InvalidCredentialsError otherwise."""
    user = get_user_by_email(db, email)
    if user is None or not verify_password(password, user.password_hash):
        raise InvalidCredentialsError()
    logger.info("User authenticated", extra={"user_id": user.id})
    return user
