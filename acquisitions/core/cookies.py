"""Auth cookie helpers: the JWT travels in an HTTP-only cookie."""

from fastapi import Response

from acquisitions.core.config import settings


def _cookie_options() -> dict[str, object]:
    return {
        "httponly": True,
        "secure": settings.APP_ENV == "prod",
        "samesite": "strict",
        "path": "/",
    }


def set_token_cookie(response: Response, token: str) -> None:
    """Attach the access token to the response."""
    response.set_cookie(
        key=settings.TOKEN_COOKIE_NAME,
        value=token,
        max_age=settings.TOKEN_COOKIE_MAX_AGE_SEC,
        **_cookie_options(),
    )


def clear_token_cookie(response: Response) -> None:
    """Expire the access token cookie on the client."""
    response.delete_cookie(key=settings.TOKEN_COOKIE_NAME, **_cookie_options())
