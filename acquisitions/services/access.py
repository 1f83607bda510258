"""
Access control decisions: role requirements and the self-or-admin ownership rule.

Every check is a pure function of its arguments and returns an AccessDecision;
nothing here raises or touches the database. The HTTP layer turns a rejected
decision into a 401 or 403.
"""

from collections.abc import Collection, Iterable
from dataclasses import dataclass
from typing import Literal

from acquisitions.schemas.auth import Identity

ADMIN_ROLE = "admin"

RejectReason = Literal["unauthorized", "forbidden"]


@dataclass(frozen=True)
class AccessDecision:
    """Outcome of an access check. reason and message are set only when rejected."""

    allowed: bool
    reason: RejectReason | None = None
    message: str | None = None


ALLOW = AccessDecision(allowed=True)


def _unauthorized(message: str = "Authentication required.") -> AccessDecision:
    return AccessDecision(allowed=False, reason="unauthorized", message=message)


def _forbidden(message: str) -> AccessDecision:
    return AccessDecision(allowed=False, reason="forbidden", message=message)


def check_access(identity: Identity | None, required_roles: Collection[str]) -> AccessDecision:
    """Require an authenticated caller whose role is one of required_roles."""
    if identity is None:
        return _unauthorized()
    if identity.role not in required_roles:
        return _forbidden("Insufficient permissions.")
    return ALLOW


def check_ownership(
    identity: Identity | None,
    target_id: int,
    requested_fields: Iterable[str] = (),
) -> AccessDecision:
    """
    Self-or-admin rule for acting on a single user record.

    A non-admin may never set 'role', not even on their own record.
    """
    if identity is None:
        return _unauthorized()
    is_admin = identity.role == ADMIN_ROLE
    if identity.user_id != target_id and not is_admin:
        return _forbidden("You can only modify your own account.")
    if "role" in set(requested_fields) and not is_admin:
        return _forbidden("Only admins can change roles.")
    return ALLOW


def check_bulk_delete(identity: Identity | None) -> AccessDecision:
    """Deleting every user is admin-only; guests get 403 rather than 401."""
    if identity is None or identity.role != ADMIN_ROLE:
        return _forbidden("Only admins can delete all users.")
    return ALLOW


def check_role_assignment(identity: Identity | None, requested_role: str) -> AccessDecision:
    """Creating an admin account requires an admin caller."""
    if requested_role == ADMIN_ROLE and (identity is None or identity.role != ADMIN_ROLE):
        return _forbidden("Only admins can create admin accounts.")
    return ALLOW
