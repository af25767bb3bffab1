# Copyright (C) 2024 Mayor Exchange Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""Auth actions server - Main FastAPI application."""

import logging
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from auth_actions_server.config import settings
from auth_actions_server.database import init_db
from auth_actions_server.errors import AuthActionError
from auth_actions_server.routers import auth_actions
from auth_actions_server.services.email import Mailer
from auth_actions_server.services.identity import SupabaseIdentityProvider

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "authorization, x-client-info, apikey, content-type",
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    await init_db()
    app.state.identity = SupabaseIdentityProvider(settings)
    app.state.mailer = Mailer(settings)
    if not settings.supabase_url or not settings.supabase_service_role_key:
        logger.warning("SUPABASE_URL / SUPABASE_SERVICE_ROLE_KEY not set - identity provider calls will fail")
    if not settings.gmail_user or not settings.gmail_app_password:
        logger.warning("GMAIL_USER / GMAIL_APP_PASSWORD not set - code-issuing actions will fail at send time")
    yield
    # shutdown


app = FastAPI(
    title="Auth Actions Server",
    description="One-time verification codes for signup and password reset",
    version="0.1.0",
    lifespan=lifespan,
    docs_url="/api/docs",
    redoc_url="/api/redoc",
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log method, path, status, and duration for each request (no body or auth headers)."""
    start = time.perf_counter()
    response = await call_next(request)
    duration_ms = (time.perf_counter() - start) * 1000
    logger.info("%s %s %s %.1fms", request.method, request.url.path, response.status_code, duration_ms)
    for name, value in CORS_HEADERS.items():
        if name not in response.headers:
            response.headers[name] = value
    return response


@app.exception_handler(AuthActionError)
async def auth_action_error_handler(request: Request, exc: AuthActionError) -> JSONResponse:
    logger.info("%s %s rejected: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=400, content={"error": exc.message})


@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    message = errors[0].get("msg", "Invalid request body") if errors else "Invalid request body"
    return JSONResponse(status_code=400, content={"error": message})


app.include_router(auth_actions.router)
# Supabase edge-function style path
app.include_router(auth_actions.router, prefix="/functions/v1")


@app.get("/")
async def root():
    """Health check / API info."""
    return {
        "name": "Auth Actions Server",
        "version": "0.1.0",
        "endpoint": "/auth-actions",
        "docs": "/api/docs",
    }


@app.get("/health")
async def health():
    """Health check for load balancers."""
    return {"status": "ok"}
