"""SQLAlchemy ORM models."""

from acquisitions.models.base import Base
from acquisitions.models.user import User

__all__ = ["Base", "User"]
