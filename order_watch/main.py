"""
FastAPI Application Entry Point

Order Watch - Hybrid Architecture
Runs one order change watcher per client session and serves its
notification feed. Supports both Mock services (development) and the
real Order API / Expo push (production).

Endpoints:
    - POST /api/sessions: Open a watch session (login)
    - DELETE /api/sessions/{id}: Close a session and clear its state (logout)
    - POST /api/sessions/{id}/app-state: Foreground/background transition
    - POST /api/sessions/{id}/check: Run a diff cycle now
    - GET /api/sessions/{id}/notifications: Feed and badge counts
    - GET /health: System health check

Author: Khalil Bannouri
Version: 4.0.0
"""

import asyncio
import sys
import logging
from datetime import datetime, timezone
from typing import Any
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware

# Windows-specific event loop policy
if sys.platform == "win32":
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

# Internal imports
from order_watch.core.config import get_settings, setup_logging
from order_watch.schemas import (
    AppStateRequest,
    BadgeResponse,
    CycleResponse,
    ErrorResponse,
    FeedResponse,
    HealthResponse,
    SessionCreate,
    SessionResponse,
)
from order_watch.services.sessions import SessionManager, SessionNotFound, WatchSession
from order_watch.services.storage import get_key_value_store

# Initialize configuration and logging
settings = get_settings()
setup_logging()
logger = logging.getLogger(__name__)


# =============================================================================
# APPLICATION LIFECYCLE
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manage application startup and shutdown events.
    """
    # Startup
    logger.info("=" * 60)
    logger.info(f"🚀 Starting {settings.app_name}")
    logger.info(f"   Version: {settings.app_version}")
    logger.info(f"   Environment: {settings.env_mode.value}")
    logger.info(f"   Debug: {settings.debug}")
    logger.info("=" * 60)

    store = get_key_value_store()
    logger.info(f"✅ Storage: {store.provider_name}")

    app.state.sessions = SessionManager(settings=settings, store=store)

    # Validate production config
    if settings.use_real_services:
        missing = settings.validate_production_config()
        if missing:
            logger.warning(f"⚠️ Missing production config: {missing}")

    logger.info("=" * 60)
    logger.info("✅ Application ready!")
    logger.info("=" * 60)

    yield  # Application runs

    # Shutdown
    logger.info("Shutting down...")
    await app.state.sessions.shutdown()
    logger.info("✅ Cleanup complete")


# =============================================================================
# APPLICATION INSTANCE
# =============================================================================

app = FastAPI(
    title=settings.app_name,
    description=(
        "Order change watcher for the restaurant admin and delivery apps. "
        "Detects new orders, assignments and status changes and keeps a "
        "per-session notification feed."
    ),
    version=settings.app_version,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================

def get_session(request: Request, session_id: str) -> WatchSession:
    """Look up an open session or answer 404."""
    try:
        return request.app.state.sessions.get(session_id)
    except SessionNotFound:
        raise HTTPException(status_code=404, detail=f"Session {session_id} not found")


def feed_response(session: WatchSession) -> FeedResponse:
    provider = session.provider
    return FeedResponse(
        notifications=provider.notifications,
        unread_count=provider.unread_count,
        attention_count=provider.attention_count,
    )


def badge_response(session: WatchSession) -> BadgeResponse:
    return BadgeResponse(
        unread_count=session.provider.unread_count,
        attention_count=session.provider.attention_count,
    )


# =============================================================================
# ROOT & HEALTH ENDPOINTS
# =============================================================================

@app.get("/", tags=["Root"])
async def root() -> dict[str, str]:
    """API root with navigation links."""
    return {
        "message": f"🔔 Welcome to {settings.app_name}",
        "version": settings.app_version,
        "environment": settings.env_mode.value,
        "documentation": "/docs",
        "sessions": "/api/sessions",
        "health": "/health",
    }


@app.get(
    "/health",
    response_model=HealthResponse,
    tags=["Health"],
    summary="System Health Check",
)
async def health_check(request: Request) -> HealthResponse:
    """Verify the store and notification service are operational."""

    store = get_key_value_store()
    storage_status = "healthy" if await store.health_check() else "unhealthy"

    # Push tokens belong to sessions; report the configured provider
    notification_provider = "mock" if settings.is_development else "expo"

    return HealthResponse(
        status="operational" if storage_status == "healthy" else "degraded",
        storage=f"{store.provider_name}: {storage_status}",
        notification_service=notification_provider,
        active_sessions=len(request.app.state.sessions),
        timestamp=datetime.now(timezone.utc),
    )


# =============================================================================
# SESSION ENDPOINTS
# =============================================================================

@app.post(
    "/api/sessions",
    response_model=SessionResponse,
    status_code=201,
    tags=["Sessions"],
    summary="Open Watch Session (Login)",
)
async def open_session(payload: SessionCreate, request: Request) -> SessionResponse:
    """
    Start watching orders for an authenticated client.

    The watcher loads the persisted feed and ledger for the role/user,
    runs a first cycle right away and keeps polling while running.
    """
    session = await request.app.state.sessions.open_session(
        role=payload.role,
        token=payload.token,
        user_id=payload.user_id,
        push_token=payload.push_token,
    )
    return SessionResponse(
        session_id=session.session_id,
        role=session.role,
        lifecycle_state=session.provider.controller.state.value,
    )


@app.delete(
    "/api/sessions/{session_id}",
    responses={404: {"model": ErrorResponse}},
    tags=["Sessions"],
    summary="Close Watch Session (Logout)",
)
async def close_session(session_id: str, request: Request) -> dict[str, Any]:
    """Stop watching and delete the session's persisted state."""
    get_session(request, session_id)
    await request.app.state.sessions.close_session(session_id, clear=True)
    return {"success": True, "session_id": session_id}


@app.post(
    "/api/sessions/{session_id}/app-state",
    response_model=SessionResponse,
    responses={404: {"model": ErrorResponse}},
    tags=["Sessions"],
)
async def report_app_state(
    session_id: str,
    payload: AppStateRequest,
    request: Request,
) -> SessionResponse:
    """Forward a foreground/background transition to the session's watcher."""
    session = get_session(request, session_id)
    await session.report_app_state(payload.state)
    return SessionResponse(
        session_id=session.session_id,
        role=session.role,
        lifecycle_state=session.provider.controller.state.value,
    )


@app.post(
    "/api/sessions/{session_id}/check",
    response_model=CycleResponse,
    response_model_by_alias=False,
    responses={404: {"model": ErrorResponse}},
    tags=["Sessions"],
    summary="Check For Updates Now",
)
async def check_for_updates(session_id: str, request: Request) -> CycleResponse:
    """
    Run a diff cycle on demand (screen visit / pull to refresh).

    ``applied`` is False when the cycle was skipped because another one
    was in flight, the fetch failed or the session stopped meanwhile.
    """
    session = get_session(request, session_id)
    result = await session.provider.check_for_updates()
    if result is None:
        return CycleResponse(applied=False)
    return CycleResponse(
        applied=True,
        new_notifications=len(result.new_records),
        has_new_orders=result.has_new_orders,
        orders=result.snapshots,
    )


# =============================================================================
# NOTIFICATION FEED ENDPOINTS
# =============================================================================

@app.get(
    "/api/sessions/{session_id}/notifications",
    response_model=FeedResponse,
    responses={404: {"model": ErrorResponse}},
    tags=["Notifications"],
)
async def list_notifications(session_id: str, request: Request) -> FeedResponse:
    """Get the notification feed (newest first) with badge counts."""
    return feed_response(get_session(request, session_id))


@app.post(
    "/api/sessions/{session_id}/notifications/read",
    response_model=BadgeResponse,
    responses={404: {"model": ErrorResponse}},
    tags=["Notifications"],
)
async def mark_all_as_read(session_id: str, request: Request) -> BadgeResponse:
    session = get_session(request, session_id)
    await session.provider.mark_all_as_read()
    return badge_response(session)


@app.post(
    "/api/sessions/{session_id}/notifications/{notification_id}/read",
    response_model=BadgeResponse,
    responses={404: {"model": ErrorResponse}},
    tags=["Notifications"],
)
async def mark_as_read(session_id: str, notification_id: str, request: Request) -> BadgeResponse:
    session = get_session(request, session_id)
    if not await session.provider.mark_as_read(notification_id):
        raise HTTPException(status_code=404, detail=f"Notification {notification_id} not found")
    return badge_response(session)


@app.delete(
    "/api/sessions/{session_id}/notifications",
    response_model=BadgeResponse,
    responses={404: {"model": ErrorResponse}},
    tags=["Notifications"],
)
async def clear_notifications(session_id: str, request: Request) -> BadgeResponse:
    """Empty the feed and dismiss delivered device notifications."""
    session = get_session(request, session_id)
    await session.provider.clear_all()
    return badge_response(session)


@app.post(
    "/api/sessions/{session_id}/reset",
    response_model=BadgeResponse,
    responses={404: {"model": ErrorResponse}},
    tags=["Notifications"],
)
async def reset_tracking(session_id: str, request: Request) -> BadgeResponse:
    """Forget all tracked orders; only orders from now on count as new."""
    session = get_session(request, session_id)
    await session.provider.reset_tracking()
    return badge_response(session)


@app.post(
    "/api/sessions/{session_id}/attention/clear",
    response_model=BadgeResponse,
    responses={404: {"model": ErrorResponse}},
    tags=["Notifications"],
)
async def clear_attention(session_id: str, request: Request) -> BadgeResponse:
    session = get_session(request, session_id)
    session.provider.clear_attention()
    return badge_response(session)


# =============================================================================
# ERROR HANDLERS
# =============================================================================

@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(error=str(exc.detail)).model_dump(),
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all exception handler."""
    logger.exception(f"Unhandled exception: {exc}")

    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "error": "Internal Server Error",
            "detail": str(exc) if settings.debug else "An unexpected error occurred",
        },
    )
