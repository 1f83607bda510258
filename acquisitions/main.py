"""FastAPI application entrypoint. No business logic; only wiring and middleware."""

from dotenv import load_dotenv

load_dotenv()

import logging
import time
from collections.abc import Awaitable, Callable

from fastapi import FastAPI, Request, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from acquisitions.api import router
from acquisitions.api.deps import throttle_middleware
from acquisitions.core.config import Settings, get_settings
from acquisitions.core.logging import configure_logging
from acquisitions.services.throttle import ThrottleGate, build_throttle_gate
from acquisitions.services.verdict import build_verdict_provider

logger = logging.getLogger(__name__)
access_logger = logging.getLogger("acquisitions.access")


def format_validation_errors(exc: RequestValidationError) -> list[str]:
    """One 'field: message' line per error; input values are never echoed."""
    details = []
    for err in exc.errors():
        loc = [str(part) for part in err.get("loc", ()) if part != "body"]
        field = ".".join(loc) or "body"
        details.append(f"{field}: {err.get('msg', 'invalid value')}")
    return details


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": "Invalid input data.", "details": format_validation_errors(exc)},
    )


async def access_log_middleware(
    request: Request, call_next: Callable[[Request], Awaitable[Response]]
) -> Response:
    """Write one access-log line per request and turn unhandled errors into a generic 500."""
    start = time.perf_counter()
    try:
        response = await call_next(request)
    except Exception:
        logger.exception(
            "Unhandled exception",
            extra={"method": request.method, "path": request.url.path},
        )
        response = JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": "Internal server error."},
        )
    elapsed_ms = (time.perf_counter() - start) * 1000
    access_logger.info(
        '%s "%s %s" %s %.1fms "%s"',
        request.client.host if request.client else "-",
        request.method,
        request.url.path,
        response.status_code,
        elapsed_ms,
        request.headers.get("user-agent", "-"),
    )
    return response


def create_app(settings: Settings | None = None, throttle_gate: ThrottleGate | None = None) -> FastAPI:
    """
    Build the application.

    settings drives logging, CORS and the throttle gate; cookies, tokens and the
    database engine always use the process-wide settings. Tests pass their own gate
    to control throttling.
    """
    settings = settings or get_settings()
    configure_logging(settings)

    app = FastAPI(
        title="Acquisitions API",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
    )
    app.state.throttle_gate = throttle_gate or build_throttle_gate(
        settings, build_verdict_provider(settings)
    )

    # Last added runs first: CORS, then the access log, then the throttle gate.
    app.middleware("http")(throttle_middleware)
    app.middleware("http")(access_log_middleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if settings.APP_ENV == "dev" else [],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(RequestValidationError, validation_exception_handler)

    app.include_router(router)

    @app.get("/api")
    def api_root() -> dict[str, str]:
        return {"message": "Acquisitions API is running!"}

    @app.get("/")
    def root() -> dict[str, str]:
        """Root route; minimal payload for discovery."""
        return {"message": "Hello from Acquisitions Service!"}

    return app


app = create_app()
