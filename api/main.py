"""
api/main.py -- FastAPI application entry point for Taskboard.

Run with:      python main.py --reload
               uvicorn api.main:app --reload

Middleware stack (outermost to innermost):
  1. TrustedHostMiddleware -- rejects requests with unexpected Host headers
  2. CORSMiddleware        -- adds CORS headers for allowed browser origins
  3. SlowAPIMiddleware     -- enforces per-route rate limits from api.limiter

Lifespan builds the stores, the TokenService, the mailer, and the services,
and hangs them on app.state; route handlers reach them through request.app.
Shutdown disposes both store engines.

Error mapping: every ServiceError raised by auth/ or projects/ is turned into
the ErrorResponse envelope by handle_service_error(), using _STATUS_BY_KIND.
That table must cover every ErrorKind; the module refuses to import otherwise.
"""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from api.limiter import limiter
from api.models import ErrorDetail, ErrorResponse, HealthResponse
from api.routes.v1.auth import router as auth_router
from api.routes.v1.notes import router as notes_router
from api.routes.v1.projects import router as projects_router
from api.routes.v1.tasks import router as tasks_router
from auth.mailer import MailDeliveryError, Mailer, build_mailer
from auth.service import AuthService
from auth.store import UserStore
from auth.tokens import TokenService
from core.config import Settings, get_settings
from core.errors import ErrorKind, ServiceError
from projects.service import NoteService, ProjectService, TaskService
from projects.store import ProjectStore

API_VERSION = "0.1.0"

settings = get_settings()

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("taskboard.api")

# ---------------------------------------------------------------------------
# Error kind -> HTTP status
# ---------------------------------------------------------------------------

_STATUS_BY_KIND: dict[ErrorKind, int] = {
    ErrorKind.not_found: 404,
    ErrorKind.conflict: 409,
    ErrorKind.unauthorized: 401,
    ErrorKind.forbidden: 403,
    ErrorKind.invalid_input: 400,
    ErrorKind.token_expired: 401,
    ErrorKind.token_invalid: 401,
    ErrorKind.email_not_verified: 403,
}

_unmapped = set(ErrorKind) - set(_STATUS_BY_KIND)
if _unmapped:
    raise RuntimeError(f"ErrorKind values without an HTTP status: {sorted(k.value for k in _unmapped)}")


# ---------------------------------------------------------------------------
# Wiring
# ---------------------------------------------------------------------------


def wire_services(
    app: FastAPI,
    settings: Settings,
    user_store: UserStore,
    project_store: ProjectStore,
    mailer: Mailer,
) -> None:
    """Attach the token service and every domain service to app.state.

    Shared by the real lifespan and the test lifespan in tests/conftest.py so
    both assemble the object graph the same way.
    """
    tokens = TokenService(settings)
    app.state.settings = settings
    app.state.user_store = user_store
    app.state.project_store = project_store
    app.state.mailer = mailer
    app.state.tokens = tokens
    app.state.auth = AuthService(user_store, tokens, mailer, settings)
    app.state.projects = ProjectService(project_store, user_store)
    app.state.tasks = TaskService(project_store)
    app.state.notes = NoteService(project_store)


# ---------------------------------------------------------------------------
# Lifespan -- modern startup / shutdown pattern (replaces @app.on_event)
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Build stores and services on startup; dispose engines on shutdown.

    Both stores point at the same database URL; each creates only its own
    tables.
    """
    logger.info("Taskboard API starting up")
    user_store = UserStore(settings.database_url)
    project_store = ProjectStore(settings.database_url)
    wire_services(app, settings, user_store, project_store, build_mailer(settings))
    logger.info("Stores initialized")

    yield

    user_store.close()
    project_store.close()
    logger.info("Taskboard API shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="Taskboard API",
    description="Projects, tasks, and notes with per-project roles.",
    version=API_VERSION,
    lifespan=lifespan,
    # Interactive docs are a development aid only.
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
)

# ---------------------------------------------------------------------------
# Middleware stack
#
# Register in the order you want the request to encounter them:
# TrustedHost -> CORS -> SlowAPI.
# ---------------------------------------------------------------------------

app.add_middleware(TrustedHostMiddleware, allowed_hosts=settings.allowed_hosts)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE"],
    allow_headers=["Content-Type", "Authorization"],
    max_age=3600,
)

app.add_middleware(SlowAPIMiddleware)

# SlowAPI looks for app.state.limiter by convention.
app.state.limiter = limiter


# ---------------------------------------------------------------------------
# Request logging middleware
# ---------------------------------------------------------------------------


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


# ---------------------------------------------------------------------------
# Router registration
# ---------------------------------------------------------------------------

app.include_router(auth_router, prefix="/api/v1", tags=["Auth"])
app.include_router(projects_router, prefix="/api/v1", tags=["Projects"])
app.include_router(tasks_router, prefix="/api/v1", tags=["Tasks"])
app.include_router(notes_router, prefix="/api/v1", tags=["Notes"])


# ---------------------------------------------------------------------------
# Exception handlers
#
# All handlers return the same ErrorResponse envelope so API clients can parse
# errors uniformly without inspecting status codes to choose a schema.
# ---------------------------------------------------------------------------


def _error(status_code: int, code: str, message: str, detail: str | None = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=ErrorDetail(code=code, message=message, detail=detail)).model_dump(),
    )


@app.exception_handler(ServiceError)
async def handle_service_error(request: Request, exc: ServiceError) -> JSONResponse:
    """Map a domain failure to its status code. The message is client-safe by contract."""
    status_code = _STATUS_BY_KIND[exc.kind]
    if exc.kind in (ErrorKind.unauthorized, ErrorKind.forbidden):
        logger.info("%s %s denied: %s", request.method, request.url.path, exc.kind.value)
    response = _error(status_code, exc.kind.value, exc.message)
    if status_code == 401:
        response.headers["WWW-Authenticate"] = "Bearer"
    return response


@app.exception_handler(MailDeliveryError)
async def mail_delivery_handler(request: Request, exc: MailDeliveryError) -> JSONResponse:
    """The user record was written but its email could not be sent."""
    logger.error("Mail delivery failed on %s %s: %s", request.method, request.url.path, exc)
    return _error(502, "email_delivery_failed", "The email could not be sent. Try again later.")


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Return 429 with a structured error when a rate limit is exceeded."""
    retry_after = int(getattr(exc, "retry_after", 60))
    response = _error(429, "rate_limited", "Too many requests.", str(exc))
    response.headers["Retry-After"] = str(retry_after)
    return response


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Return 422 with structured error when request body or path params fail validation."""
    return _error(422, "validation_error", "Request validation failed.", str(exc.errors()))


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Return a structured error for all FastAPI/Starlette HTTP exceptions.

    auth/dependencies.py raises HTTPException with a {"code", "message"} dict
    as detail; use it directly as the error field rather than stringifying it.
    """
    if isinstance(exc.detail, dict):
        response = JSONResponse(status_code=exc.status_code, content={"error": exc.detail})
    else:
        response = _error(exc.status_code, f"http_{exc.status_code}", str(exc.detail))
    if exc.headers:
        response.headers.update(exc.headers)
    return response


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler for unexpected server errors.

    The raw exception goes to the log only, never to the response body.
    """
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return _error(500, "internal_error", "An unexpected error occurred.")


# ---------------------------------------------------------------------------
# Health endpoint
#
# Defined directly in main.py (not in a router) so it is always reachable
# regardless of router registration state. No rate limit applied.
# ---------------------------------------------------------------------------


@app.get("/api/v1/health", include_in_schema=True, tags=["Health"])
async def health() -> HealthResponse:
    """Return API liveness and current version."""
    return HealthResponse(version=API_VERSION)
