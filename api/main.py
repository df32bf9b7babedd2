"""
api/main.py -- FastAPI application entry point for Conduit accounts.

Exposes the auth and social core over the RealWorld "users" and "profiles"
endpoints. The core (auth/, social/) knows nothing about HTTP; this module
is the composition root that builds it.

Run with:  uvicorn asgi:app --reload

Middleware stack (outermost to innermost):
  1. CORSMiddleware   -- adds CORS headers for allowed browser origins
  2. log_requests     -- one access-log line per request with latency

Lifespan builds the engine, stores and services once at startup, puts them
on app.state, and disposes the engine on shutdown.
"""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import timedelta

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from api.models import ErrorDetail, ErrorResponse, HealthResponse
from api.routes.profiles import router as profiles_router
from api.routes.users import router as users_router
from auth.passwords import PasswordHasher
from auth.service import AuthFlow
from auth.store import UserStore
from auth.tokens import TokenService
from core.config import Settings, get_settings
from core.db import make_engine
from core.errors import ConduitError
from social.profiles import ProfileResolver
from social.store import FollowGraph

API_VERSION = "0.1.0"

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("conduit.api")

# ---------------------------------------------------------------------------
# Domain error -> HTTP status
# ---------------------------------------------------------------------------

_STATUS_BY_CODE: dict[str, int] = {
    "validation_error": 422,
    "hashing_error": 422,
    "self_follow": 422,
    "duplicate_user": 409,
    "already_following": 409,
    "bad_credentials": 401,
    "token_invalid": 401,
    "token_expired": 401,
    "not_found": 404,
    "storage_error": 500,
}


# ---------------------------------------------------------------------------
# Composition root
# ---------------------------------------------------------------------------


def build_state(app: FastAPI, engine: Engine, settings: Settings) -> None:
    """Wire stores and services onto app.state.

    The signing key is read from settings here and injected into
    TokenService; nothing downstream reads configuration on its own.
    """
    user_store = UserStore(engine)
    tokens = TokenService(
        secret_key=settings.secret_key,
        default_ttl=timedelta(seconds=settings.token_expire_seconds),
    )
    hasher = PasswordHasher(max_concurrent=settings.hash_concurrency)
    app.state.engine = engine
    app.state.auth_flow = AuthFlow(user_store, hasher, tokens)
    app.state.profiles = ProfileResolver(user_store, FollowGraph(engine))


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Build everything on startup, release the connection pool on shutdown."""
    settings = get_settings()
    logger.info("Conduit API starting up")
    engine = make_engine(settings.database_url)
    build_state(app, engine, settings)
    logger.info("Database initialized (%s)", engine.url.render_as_string(hide_password=True))

    yield

    engine.dispose()
    logger.info("Conduit API shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="Conduit Accounts API",
    description="Registration, authentication, profiles and follows for the Conduit blogging platform.",
    version=API_VERSION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost", "http://localhost:3000", "http://127.0.0.1"],
    allow_methods=["GET", "POST", "PUT", "DELETE"],
    allow_headers=["Content-Type", "Authorization"],
    max_age=3600,
)


# ---------------------------------------------------------------------------
# Request logging middleware
#
# Every request passes through this coroutine before reaching any route
# handler. The Authorization header is never logged.
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

app.include_router(users_router, prefix="/api", tags=["Users"])
app.include_router(profiles_router, prefix="/api", tags=["Profiles"])


# ---------------------------------------------------------------------------
# Exception handlers
#
# All handlers return the same ErrorResponse envelope so API clients can parse
# errors uniformly without inspecting status codes to choose a schema.
# ---------------------------------------------------------------------------


@app.exception_handler(ConduitError)
async def domain_error_handler(request: Request, exc: ConduitError) -> JSONResponse:
    """Render a domain failure with its stable code.

    StorageError carries a generic message by construction; the driver error
    was already logged by the store.
    """
    status_code = _STATUS_BY_CODE.get(exc.code, 400)
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=ErrorDetail(code=exc.code, message=exc.message)).model_dump(),
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Return 422 with structured error when request body or params fail validation."""
    return JSONResponse(
        status_code=422,
        content=ErrorResponse(
            error=ErrorDetail(
                code="validation_error",
                message="Request validation failed.",
                detail=str(exc.errors()),
            )
        ).model_dump(),
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Return a structured error for all FastAPI/Starlette HTTP exceptions.

    When detail is already a structured dict, use it directly as the error
    field rather than stringifying it.
    """
    if isinstance(exc.detail, dict):
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.detail},
        )
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(
            error=ErrorDetail(
                code=f"http_{exc.status_code}",
                message=str(exc.detail),
            )
        ).model_dump(),
    )


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler for unexpected server errors.

    The raw exception is written to the log only, never to the response body.
    """
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content=ErrorResponse(
            error=ErrorDetail(
                code="internal_error",
                message="An unexpected error occurred.",
            )
        ).model_dump(),
    )


# ---------------------------------------------------------------------------
# Health endpoint
# ---------------------------------------------------------------------------


@app.get("/api/health", tags=["Health"])
def health(request: Request) -> HealthResponse:
    """Return API liveness, current version and a database round-trip check."""
    database = "ok"
    try:
        with request.app.state.engine.connect() as conn:
            conn.execute(text("SELECT 1"))
    except SQLAlchemyError:
        logger.exception("Health check could not reach the database")
        database = "error"
    return HealthResponse(
        status="healthy" if database == "ok" else "degraded",
        version=API_VERSION,
        components={"app": "ok", "database": database},
    )
