"""
Request pipeline: authenticate, throttle, authorize.

get_request_context classifies the caller from the token cookie and never blocks.
throttle_middleware wraps every request, so it runs before routing, body parsing
and any route dependency. require_roles / require_bulk_delete turn access decisions
into 401/403 responses.
"""

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Annotated

import jwt
from fastapi import Depends, HTTPException, Request, Response, status
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from acquisitions.core.config import settings
from acquisitions.core.security import decode_access_token
from acquisitions.schemas.auth import Identity
from acquisitions.services.access import AccessDecision, check_access, check_bulk_delete
from acquisitions.services.throttle import FAILURE_MESSAGE, Fail, Reject, ThrottleGate
from acquisitions.services.verdict import RequestInfo

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RequestContext:
    """Per-request caller identity (None for guests) and request facts."""

    identity: Identity | None
    request: RequestInfo

    @property
    def role(self) -> str:
        return self.identity.role if self.identity is not None else "guest"


def identity_from_token(token: str | None) -> Identity | None:
    """Decode the cookie value into an Identity; anything invalid means guest."""
    if not token:
        return None
    try:
        payload = decode_access_token(token)
    except jwt.PyJWTError as e:
        logger.debug("Ignoring invalid token: %s", type(e).__name__)
        return None
    try:
        return Identity(
            user_id=int(payload.get("sub")),
            email=payload.get("email") or "",
            role=payload.get("role"),
        )
    except (TypeError, ValueError, ValidationError):
        logger.debug("Ignoring token with invalid payload")
        return None


def get_request_context(request: Request) -> RequestContext:
    """Dependency: build the RequestContext for this request."""
    identity = identity_from_token(request.cookies.get(settings.TOKEN_COOKIE_NAME))
    info = RequestInfo(
        client_ip=request.client.host if request.client else "unknown",
        method=request.method,
        path=request.url.path,
        query=request.url.query,
        user_agent=request.headers.get("user-agent", ""),
    )
    return RequestContext(identity=identity, request=info)


def get_throttle_gate(request: Request) -> ThrottleGate:
    return request.app.state.throttle_gate


async def throttle_middleware(
    request: Request, call_next: Callable[[Request], Awaitable[Response]]
) -> Response:
    """
    Reject over-limit, bot or shield-flagged callers; 500 if undecidable.

    Runs as HTTP middleware, ahead of routing and body parsing, so every request is
    counted whether or not its body would validate.
    """
    context = get_request_context(request)
    outcome = await get_throttle_gate(request).throttle(context.identity, context.request)
    if isinstance(outcome, Reject):
        return JSONResponse(
            status_code=outcome.status_code,
            content={"error": outcome.error, "message": outcome.message},
        )
    if isinstance(outcome, Fail):
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "Internal Server Error", "message": FAILURE_MESSAGE},
        )
    return await call_next(request)


def raise_for_decision(decision: AccessDecision) -> None:
    """Map a rejected AccessDecision to the matching HTTPException."""
    if decision.allowed:
        return
    if decision.reason == "unauthorized":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=decision.message or "Authentication required.",
            headers={"WWW-Authenticate": "Bearer"},
        )
    raise HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail=decision.message or "Forbidden.",
    )


def _authenticated(context: RequestContext) -> Identity:
    if context.identity is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required.",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return context.identity


def require_roles(*roles: str) -> Callable[[RequestContext], Identity]:
    """Dependency factory: require an authenticated caller with one of roles."""
    allowed = frozenset(roles)

    def dependency(
        context: Annotated[RequestContext, Depends(get_request_context)],
    ) -> Identity:
        raise_for_decision(check_access(context.identity, allowed))
        return _authenticated(context)

    return dependency


def require_bulk_delete(
    context: Annotated[RequestContext, Depends(get_request_context)],
) -> Identity:
    """Dependency: only admins may wipe the users table (guests get 403 too)."""
    raise_for_decision(check_bulk_delete(context.identity))
    return _authenticated(context)


require_admin = require_roles("admin")
require_authenticated = require_roles("user", "admin")
