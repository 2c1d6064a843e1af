"""
main.py — Leadflow application entry point

Builds the FastAPI app: lifespan (schema sync, AppState, scheduler),
request-ID and security-header middleware, structured error handlers and
the routers.

Business Rules:
- Every response carries X-Request-ID (8 hex chars) bound into loguru context
- LeadflowError → ErrorResponse JSON with its status code; the message is
  the public one, never the internal chain
- Request validation → 422, rate limit → 429, both in ErrorResponse shape
- Anything unhandled → 500 "Internal server error", traceback logged only

Called by: uvicorn leadflow.main:app
Depends on: config, logging_config, app_state, routers
"""

import asyncio
import os
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from loguru import logger
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import __version__
from .app_state import AppState
from .config import settings
from .database import SessionLocal
from .errors import LeadflowError
from .logging_config import setup_logging
from .rate_limit import limiter
from .routers import health, webhooks
from .schemas.errors import ErrorResponse
from .startup import run_startup_migrations
from .tasks import start_scheduler

setup_logging()


@asynccontextmanager
async def lifespan(app: FastAPI):
    run_startup_migrations()
    if not settings.webhook_secret:
        logger.warning("WEBHOOK_SECRET is not set — webhook token check disabled")

    state = AppState.build(settings, SessionLocal)
    app.state.leadflow = state

    scheduler = None
    if not os.environ.get("TESTING"):
        scheduler = asyncio.create_task(
            start_scheduler(SessionLocal, settings.scheduler_interval_seconds, settings.stuck_processing_minutes)
        )
    yield
    if scheduler is not None:
        scheduler.cancel()
    await state.aclose()


app = FastAPI(title="Leadflow", version=__version__, lifespan=lifespan)
app.state.limiter = limiter


# ── Middleware ────────────────────────────────────────────────────────


@app.middleware("http")
async def request_id_middleware(request: Request, call_next):
    request_id = uuid.uuid4().hex[:8]
    request.state.request_id = request_id
    with logger.contextualize(request_id=request_id):
        response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "DENY"
    response.headers["X-API-Version"] = "v1"
    return response


# ── Error handlers ────────────────────────────────────────────────────


def _request_id(request: Request) -> str:
    return getattr(request.state, "request_id", "")


def _error_response(request: Request, status_code: int, error: str, message: str, detail=None) -> JSONResponse:
    body = ErrorResponse(
        error=error,
        message=message,
        status_code=status_code,
        request_id=_request_id(request),
        detail=detail,
    )
    return JSONResponse(status_code=status_code, content=body.model_dump(exclude_none=True))


@app.exception_handler(LeadflowError)
async def leadflow_error_handler(request: Request, exc: LeadflowError):
    if exc.status_code >= 500:
        logger.error("{} on {}: {}", exc.error_code, request.url.path, exc.message)
    else:
        logger.info("{} on {}: {}", exc.error_code, request.url.path, exc.message)
    return _error_response(request, exc.status_code, exc.error_code, exc.public_message)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    detail = [
        {"field": ".".join(str(x) for x in e.get("loc", [])), "message": e.get("msg", "")}
        for e in exc.errors()
    ]
    return _error_response(request, 422, "validation_error", "Request validation failed", detail)


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
    logger.warning("Rate limit exceeded on {} ({})", request.url.path, exc.detail)
    return _error_response(request, 429, "rate_limited", f"Rate limit exceeded: {exc.detail}")


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return _error_response(request, exc.status_code, "http_error", str(exc.detail))


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.opt(exception=exc).error("Unhandled exception on {}", request.url.path)
    return _error_response(request, 500, "internal_error", "Internal server error")


# ── Routers ───────────────────────────────────────────────────────────

app.include_router(health.router)
app.include_router(webhooks.router)
