"""
api/main.py -- FastAPI application factory for AuthGate.

create_app(settings) builds a fully wired app from an explicit Settings
object. Nothing in here reads the environment: asgi.py and main.py call
get_settings() and pass the result in, tests pass their own.

Run with:  uvicorn asgi:app --reload
           python main.py serve

Middleware stack (outermost to innermost; Starlette wraps the last added outermost):
  1. log_requests       -- one access log line per request
  2. SlowAPIMiddleware  -- enforces the default per-IP rate limit
  3. CORSMiddleware     -- adds CORS headers for the configured browser origin

Lifespan opens the user store and builds the services on startup, and closes
the store on shutdown.
"""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.limiter import build_limiter
from api.models import ErrorDetail, ErrorResponse, HealthResponse
from api.routes.v1.auth import router as auth_router
from api.routes.v1.users import router as users_router
from auth.passwords import PasswordHasher
from auth.service import AuthService, UserService
from auth.store import UserStore
from auth.tokens import TokenIssuer
from core.config import Settings
from core.errors import AppError, ErrorCode, ErrorKind

VERSION = "1.0.0"

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("authgate.api")

# ---------------------------------------------------------------------------
# Error kind -> HTTP status
#
# Must cover every ErrorKind; tests assert that. A token that fails
# verification is an authentication failure in the taxonomy but is answered
# with 403, not 401: 401 is reserved for "no credential at all".
# ---------------------------------------------------------------------------

STATUS_BY_KIND: dict[ErrorKind, int] = {
    ErrorKind.VALIDATION: 400,
    ErrorKind.AUTHENTICATION: 401,
    ErrorKind.AUTHORIZATION: 403,
    ErrorKind.CONFLICT: 409,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.SERVER: 500,
}

STATUS_BY_CODE: dict[ErrorCode, int] = {
    ErrorCode.TOKEN_INVALID: 403,
}


def status_for(exc: AppError) -> int:
    return STATUS_BY_CODE.get(exc.code, STATUS_BY_KIND[exc.kind])


def _error_response(status_code: int, code: str, message: str, detail: str | None = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=ErrorDetail(code=code, message=message, detail=detail)).model_dump(),
    )


# ---------------------------------------------------------------------------
# Lifespan -- startup / shutdown
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Open the store and wire the services onto app.state.

    Everything before yield runs on startup; everything after yield runs on
    shutdown. Components receive the Settings instance through their
    constructors -- none of them read configuration on their own.
    """
    settings: Settings = app.state.settings
    logger.info("AuthGate API starting up (environment=%s)", settings.environment)

    store = UserStore(settings.database_url)
    hasher = PasswordHasher(settings.bcrypt_salt_rounds)
    issuer = TokenIssuer(settings.jwt_secret, settings.token_ttl_seconds)

    app.state.user_store = store
    app.state.token_issuer = issuer
    app.state.auth_service = AuthService(store, hasher, issuer)
    app.state.user_service = UserService(store)
    logger.info("User store initialized (%d users)", store.count())

    yield

    store.close()
    logger.info("AuthGate API shutdown complete")


# ---------------------------------------------------------------------------
# App factory
# ---------------------------------------------------------------------------


def create_app(settings: Settings) -> FastAPI:
    app = FastAPI(
        title="AuthGate API",
        description="JWT authentication and role-based user management.",
        version=VERSION,
        lifespan=lifespan,
    )
    app.state.settings = settings

    # ------------------------------------------------------------------
    # Middleware stack
    #
    # Credentials (the auth cookie) are only allowed from the single
    # configured origin; a wildcard origin cannot be combined with
    # allow_credentials.
    # ------------------------------------------------------------------

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.cors_origin],
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE"],
        allow_headers=["Content-Type"],
        max_age=3600,
    )

    app.add_middleware(SlowAPIMiddleware)
    # SlowAPI looks for app.state.limiter by convention.
    app.state.limiter = build_limiter(settings)

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        start = time.perf_counter()
        response = await call_next(request)
        ms = (time.perf_counter() - start) * 1000
        logger.info(
            "%s %s %d %.1fms %s",
            request.method,
            request.url.path,
            response.status_code,
            ms,
            request.client.host if request.client else "unknown",
        )
        return response

    # ------------------------------------------------------------------
    # Routers
    # ------------------------------------------------------------------

    app.include_router(auth_router, prefix="/api/v1", tags=["Auth"])
    app.include_router(users_router, prefix="/api/v1", tags=["Users"])

    @app.get("/api/v1/health", tags=["Health"])
    async def health(request: Request) -> HealthResponse:
        """Return liveness, version, and database reachability. No auth, no rate limit."""
        db_ok = await run_in_threadpool(request.app.state.user_store.ping)
        return HealthResponse(
            status="healthy",
            version=VERSION,
            components={"app": "ok", "database": "ok" if db_ok else "error"},
        )

    app.state.limiter.exempt(health)

    _register_exception_handlers(app)
    return app


# ---------------------------------------------------------------------------
# Exception handlers
#
# All handlers return the same ErrorResponse envelope so API clients can parse
# errors uniformly without inspecting status codes to choose a schema.
# ---------------------------------------------------------------------------


def _register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
        """Translate a domain error into its status code and envelope."""
        status_code = status_for(exc)
        logger.info(
            "%s %s rejected: %s (%s)", request.method, request.url.path, exc.code.value, exc.message
        )
        return _error_response(status_code, exc.code.value, exc.message)

    # Sync: SlowAPIMiddleware calls this handler directly, outside the router.
    @app.exception_handler(RateLimitExceeded)
    def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
        """Return 429 with a structured error when a rate limit is exceeded.

        Retry-After is the full window length: the in-memory counter does not
        report when the oldest hit in the window expires.
        """
        retry_after = request.app.state.settings.rate_limit_window_seconds
        response = _error_response(429, ErrorCode.RATE_LIMITED.value, "Too many requests.", str(exc))
        response.headers["Retry-After"] = str(retry_after)
        return response

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        """Return 422 when the body is not parseable JSON of the expected shape."""
        return _error_response(
            422, ErrorCode.REQUEST_INVALID.value, "Request validation failed.", str(exc.errors())
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        """Return a structured error for FastAPI/Starlette HTTP exceptions (404 route, 405, ...)."""
        return _error_response(exc.status_code, f"http_{exc.status_code}", str(exc.detail))

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Catch-all handler for unexpected server errors.

        Security note: the raw exception is written to the server log only,
        never to the response body. Stack traces and store error text stay
        server-side; the client receives only a generic message.
        """
        logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
        return _error_response(500, ErrorCode.SERVER_ERROR.value, "An unexpected error occurred.")
