"""Signup, signin and signout. The JWT is issued in an HTTP-only cookie."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy.orm import Session

from acquisitions.api.deps import RequestContext, get_request_context, raise_for_decision
from acquisitions.core.cookies import clear_token_cookie, set_token_cookie
from acquisitions.core.database import get_db
from acquisitions.core.security import create_access_token
from acquisitions.models.user import User
from acquisitions.schemas.auth import AuthResponse, MessageResponse, SignInRequest, SignUpRequest
from acquisitions.schemas.users import UserSummary
from acquisitions.services.access import check_role_assignment
from acquisitions.services.auth import (
    InvalidCredentialsError,
    UserAlreadyExistsError,
    authenticate_user,
    create_user,
)

logger = logging.getLogger(__name__)
router = APIRouter()


def _issue_token(response: Response, user: User) -> None:
    token = create_access_token(user_id=user.id, email=user.email, role=user.role)
    set_token_cookie(response, token)


@router.post("/signup", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
def signup(
    body: SignUpRequest,
    response: Response,
    context: Annotated[RequestContext, Depends(get_request_context)],
    db: Annotated[Session, Depends(get_db)],
) -> AuthResponse:
    """
    Register a new account and sign it in.

    Creating an admin account requires an admin caller; in that case the caller's
    own session cookie is left untouched.

    Responses: 201 created, 400 invalid input, 403 when a non-admin asks for the
    admin role (open self-registration as admin is not offered), 409 email taken.
    """
    raise_for_decision(check_role_assignment(context.identity, body.role))
    try:
        user = create_user(db, body.name, body.email, body.password, body.role)
    except UserAlreadyExistsError as e:
        logger.info("Signup rejected: email already registered")
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Email already exists.") from e

    acting_admin = context.identity is not None and context.identity.role == "admin"
    if not acting_admin:
        _issue_token(response, user)
    logger.info("User signed up", extra={"user_id": user.id})
    return AuthResponse(
        message="User signed up successfully.",
        user=UserSummary.model_validate(user),
    )


@router.post("/signin", response_model=AuthResponse)
def signin(
    body: SignInRequest,
    response: Response,
    db: Annotated[Session, Depends(get_db)],
) -> AuthResponse:
    """Check email and password; on success set the token cookie."""
    try:
        user = authenticate_user(db, body.email, body.password)
    except InvalidCredentialsError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password.",
        ) from e
    _issue_token(response, user)
    logger.info("User signed in", extra={"user_id": user.id})
    return AuthResponse(
        message="User signed in successfully.",
        user=UserSummary.model_validate(user),
    )


@router.post("/signout", response_model=MessageResponse)
def signout(response: Response) -> MessageResponse:
    """Clear the token cookie. Tokens are not revoked server-side."""
    clear_token_cookie(response)
    logger.info("User signed out")
    return MessageResponse(message="User signed out successfully.")
