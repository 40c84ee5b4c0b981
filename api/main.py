"""
api/main.py -- FastAPI application entry point for VidTube Identity.

Run with:  uvicorn api.main:app --reload

Middleware stack (outermost to innermost):
  1. CORSMiddleware -- adds CORS headers for allowed browser origins
                       (credentials allowed so token cookies flow)
  2. log_requests   -- method, path, status and latency for every request

Lifespan builds the identity stack once: UserStore, PasswordHasher and
TokenIssuer from Settings, wired into a single IdentityService on app.state.
Shutdown disposes the store's engine.

Error handling: every IdentityError raised anywhere below a route is turned
into the ErrorResponse envelope with the status code the error class carries.
Routes never catch identity errors themselves.
"""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api.models import ErrorDetail, ErrorResponse, HealthResponse
from api.routes.v1.auth import router as auth_router
from auth.errors import IdentityError
from auth.passwords import PasswordHasher
from auth.service import IdentityService
from auth.store import UserStore
from auth.tokens import TokenIssuer
from core.config import get_settings

_VERSION = "0.1.0"

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("vidtube.api")


def build_identity_service(store: UserStore) -> IdentityService:
    """Wire an IdentityService over store using process-wide Settings."""
    settings = get_settings()
    return IdentityService(
        store=store,
        hasher=PasswordHasher(rounds=settings.bcrypt_rounds),
        issuer=TokenIssuer.from_settings(settings),
    )


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Create the identity stack on startup and release it on shutdown."""
    logger.info("VidTube Identity API starting up")
    app.state.user_store = UserStore()
    app.state.identity = build_identity_service(app.state.user_store)
    logger.info("Identity service initialized (%d users)", app.state.user_store.count())

    yield

    app.state.user_store.close()
    logger.info("VidTube Identity API shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="VidTube Identity API",
    description="Account registration, login and access/refresh token rotation.",
    version=_VERSION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PATCH"],
    allow_headers=["Content-Type", "Authorization"],
    max_age=3600,
)


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

app.include_router(auth_router, prefix="/api/v1", tags=["Users"])


@app.get("/api/v1/health", response_model=HealthResponse, tags=["Health"])
async def health() -> HealthResponse:
    return HealthResponse(version=_VERSION)


# ---------------------------------------------------------------------------
# Exception handlers
#
# All handlers return the same ErrorResponse envelope so API clients can parse
# errors uniformly without inspecting status codes to choose a schema.
# ---------------------------------------------------------------------------


@app.exception_handler(IdentityError)
async def identity_error_handler(request: Request, exc: IdentityError) -> JSONResponse:
    """Map a typed identity failure onto its status code and error code."""
    if exc.status_code == 401:
        logger.info("Auth failure on %s %s: %s", request.method, request.url.path, exc.code)
    response = JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(
            error=ErrorDetail(code=exc.code, message=exc.message, detail=exc.detail),
        ).model_dump(),
    )
    response.headers["Cache-Control"] = "no-store"
    return response


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Return 422 with structured error when request body or query params fail validation."""
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


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Log the traceback and return a generic 500 without leaking internals."""
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content=ErrorResponse(
            error=ErrorDetail(code="internal_error", message="Internal server error."),
        ).model_dump(),
    )
