# =============================================================================
# app/main.py - FastAPI Application Entry Point
# =============================================================================
# This is the main entry point for the Samvera API.
# It configures the FastAPI application with middleware, routers, and handlers.
#
# Usage:
#   uvicorn app.main:app --reload
# =============================================================================

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.config import settings
from app.exceptions import (
    SamveraException,
    samvera_exception_handler,
    validation_exception_handler,
)
from app.routers import (
    announcements,
    attendance,
    classes,
    health,
    health_logs,
    menus,
    messages,
    notifications,
    stories,
)
from app.auth import routes as auth_routes

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Logs startup configuration; the Supabase client is created lazily on
    first use.
    """
    logger.info(f"Starting Samvera API in {settings.ENVIRONMENT} mode")
    logger.info(f"CORS origins: {settings.cors_origins_list}")
    logger.info(f"Notification fanout mode: {settings.NOTIFICATION_FANOUT_MODE}")

    yield

    logger.info("Shutting down Samvera API")


# Create FastAPI application
app = FastAPI(
    title="Samvera API",
    description="""
## School & Daycare Management API

Multi-tenant API for schools and daycares. Every request is scoped to the
caller's organization, taken from their Supabase Auth token.

### Features

| Area | What it covers |
|------|----------------|
| **Stories** | Short-lived photo/video stories for a class or the whole org |
| **Announcements** | Weekly notes from staff |
| **Messages** | Direct and group threads between staff and guardians |
| **Attendance** | Daily attendance and pick-up times |
| **Menus** | Daily meal plans |
| **Health Logs** | Diapers, naps, temperatures, medication |
| **Classes** | Classes and teacher assignment |
| **Notifications** | In-app notifications for new stories and announcements |

### Authentication

Send the Supabase access token as `Authorization: Bearer <token>`.
Roles (`admin`, `principal`, `teacher`, `guardian`) and the organization are
read from the token's `user_metadata`.
""",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
    openapi_tags=[
        {"name": "Auth", "description": "Current user and tenancy context"},
        {"name": "Stories", "description": "Audience-filtered stories feed and CRUD"},
        {"name": "Announcements", "description": "Weekly announcements"},
        {"name": "Notifications", "description": "In-app notifications"},
        {"name": "Attendance", "description": "Daily attendance"},
        {"name": "Menus", "description": "Daily meal plans"},
        {"name": "Messages", "description": "Threads, recipients and thread items"},
        {"name": "Health Logs", "description": "Student care events"},
        {"name": "Classes", "description": "Classes and teacher assignment"},
        {"name": "Health", "description": "API health and readiness checks"},
    ],
)


# =============================================================================
# Middleware
# =============================================================================

# CORS middleware - allows cross-origin requests
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list if settings.is_production else ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# =============================================================================
# Exception Handlers
# =============================================================================

@app.exception_handler(SamveraException)
async def handle_samvera_exception(request: Request, exc: SamveraException):
    """Handle custom Samvera exceptions."""
    return await samvera_exception_handler(request, exc)


@app.exception_handler(RequestValidationError)
async def handle_validation_exception(request: Request, exc: RequestValidationError):
    return await validation_exception_handler(request, exc)


@app.exception_handler(Exception)
async def handle_general_exception(request: Request, exc: Exception):
    """Handle unexpected exceptions."""
    logger.exception(f"Unexpected error: {exc}")
    return JSONResponse(
        status_code=500,
        content={
            "detail": "An unexpected error occurred",
            "code": "INTERNAL_ERROR",
        }
    )


# =============================================================================
# Routers
# =============================================================================

API_PREFIX = "/api/v1"

# Authentication endpoints (router carries its own /auth prefix)
app.include_router(auth_routes.router, prefix=API_PREFIX)

# Health check endpoints
app.include_router(health.router, prefix=API_PREFIX, tags=["Health"])

app.include_router(stories.router, prefix=f"{API_PREFIX}/stories", tags=["Stories"])
app.include_router(announcements.router, prefix=f"{API_PREFIX}/announcements", tags=["Announcements"])
app.include_router(notifications.router, prefix=f"{API_PREFIX}/notifications", tags=["Notifications"])
app.include_router(attendance.router, prefix=f"{API_PREFIX}/attendance", tags=["Attendance"])
app.include_router(menus.router, prefix=f"{API_PREFIX}/menus", tags=["Menus"])
app.include_router(messages.router, prefix=f"{API_PREFIX}/messages", tags=["Messages"])
app.include_router(health_logs.router, prefix=f"{API_PREFIX}/health-logs", tags=["Health Logs"])
app.include_router(classes.router, prefix=f"{API_PREFIX}/classes", tags=["Classes"])


# =============================================================================
# Root Endpoint
# =============================================================================

@app.get("/", tags=["Root"])
async def root():
    """
    Root endpoint - returns API info.
    """
    return {
        "name": "Samvera API",
        "version": "1.0.0",
        "docs": "/docs",
        "health": "/api/v1/health",
    }
