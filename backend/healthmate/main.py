"""HealthMate Forms: validation and submission service for the HealthMate forms.

Main FastAPI application with lifespan management, CORS, and global error handling.
"""

import logging
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from healthmate.config import get_settings
from healthmate.api.router import api_router, ws_router
from healthmate.services.form_sessions import FormSessionManager
from healthmate.services.gateway import HealthMateGateway
from healthmate.services.notifications import notification_bus

# Configure structured logging
structlog.configure(
    processors=[
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.dev.ConsoleRenderer() if get_settings().DEBUG else structlog.processors.JSONRenderer(),
    ],
    wrapper_class=structlog.make_filtering_bound_logger(
        logging.getLevelName(get_settings().LOG_LEVEL.upper())
    ),
)

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup and shutdown lifecycle."""
    settings = get_settings()

    logger.info("app_starting", debug=settings.DEBUG, api_url=settings.API_URL)

    app.state.gateway = HealthMateGateway(settings.API_URL, settings.HTTP_TIMEOUT_SECONDS)
    app.state.form_sessions = FormSessionManager(
        ttl_seconds=settings.FORM_SESSION_TTL_SECONDS,
        max_sessions=settings.MAX_FORM_SESSIONS,
        on_open=notification_bus.open,
        on_close=notification_bus.close_session,
    )

    logger.info("app_started")

    yield

    await app.state.gateway.close()

    logger.info("app_stopped")


# ── Create Application ──

app = FastAPI(
    title="HealthMate Forms",
    description=(
        "Validation and submission engine for the HealthMate login, "
        "registration and contact forms."
    ),
    version="1.0.0",
    lifespan=lifespan,
)


# ── Middleware ──

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ── Global Exception Handlers ──

@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Catch-all error handler for unhandled exceptions."""
    logger.error(
        "unhandled_exception",
        path=request.url.path,
        method=request.method,
        error=str(exc),
        error_type=type(exc).__name__,
    )
    return JSONResponse(
        status_code=500,
        content={
            "error": "internal_server_error",
            "message": "An unexpected error occurred. Please try again.",
        },
    )


@app.exception_handler(ValueError)
async def value_error_handler(request: Request, exc: ValueError):
    """Handle bad field names and malformed form input."""
    return JSONResponse(
        status_code=422,
        content={"error": "validation_error", "message": str(exc)},
    )


# ── Routes ──

app.include_router(api_router, prefix="/api/v1")
app.include_router(ws_router)  # WebSocket at /ws/form-sessions/{id} (no versioned prefix)


# ── Root endpoint ──

@app.get("/")
async def root():
    """Root endpoint: API info."""
    return {
        "name": "HealthMate Forms",
        "version": "1.0.0",
        "description": "Form validation and submission engine",
        "docs": "/docs",
        "health": "/api/v1/health",
    }
