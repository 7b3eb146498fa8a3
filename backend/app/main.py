"""
Host Call Signaling Backend - Main Application

This is the entry point for the FastAPI application.
It handles:
- REST API endpoints (auth, call requests, call sessions, earnings, rtc)
- WebSocket connections for call signaling events
- Background tasks for request expiry and stale session cleanup
"""
from contextlib import asynccontextmanager
import asyncio
import logging
from datetime import datetime, UTC
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.api import router as api_router
from app.api.deps import call_error_to_http
from app.api.websocket import router as ws_router
from app.config.redis import get_redis, close_redis
from app.config.settings import Settings, settings as default_settings
from app.models.database import Database
from app.services.call import CallServiceError
from app.services.call.maintenance import run_maintenance_loop
from app.services.connection import SignalingRelay
from app.services.metrics import start_metrics_server
from app.services.rtc_service import JwtCredentialIssuer

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def _error_body(message) -> dict:
    return {"success": False, "message": message}


def register_exception_handlers(app: FastAPI) -> None:
    """Render every error as {"success": false, "message": ...}."""

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(status_code=exc.status_code, content=_error_body(exc.detail), headers=exc.headers)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        first = errors[0] if errors else {}
        field = ".".join(str(part) for part in first.get("loc", ()) if part not in ("body", "query"))
        message = f"{field}: {first.get('msg')}" if field else (first.get("msg") or "Invalid request")
        return JSONResponse(status_code=400, content=_error_body(message))

    @app.exception_handler(CallServiceError)
    async def call_service_exception_handler(request: Request, exc: CallServiceError):
        http_exc = call_error_to_http(exc)
        return JSONResponse(status_code=http_exc.status_code, content=_error_body(http_exc.detail))

    @app.exception_handler(SQLAlchemyError)
    async def storage_exception_handler(request: Request, exc: SQLAlchemyError):
        logger.error(f"Unhandled storage error on {request.url.path}: {exc}")
        return JSONResponse(status_code=500, content=_error_body("Storage unavailable"))

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception(f"Unhandled error on {request.url.path}: {exc}")
        return JSONResponse(status_code=500, content=_error_body("Internal server error"))


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Build the application around one Settings object."""
    settings = settings or default_settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        Application lifespan manager.

        Handles startup and shutdown events using the modern FastAPI pattern.
        """
        # === STARTUP ===
        logger.info("🚀 Starting Host Call Signaling Backend...")

        database = Database(settings.database_url, echo=settings.DEBUG)
        await database.init_db()
        app.state.database = database
        logger.info("✅ Database tables created")

        redis = None
        if settings.REDIS_ENABLED:
            redis = await get_redis(settings)
            logger.info("✅ Redis connected")

        app.state.relay = SignalingRelay(redis=redis)
        app.state.credential_issuer = JwtCredentialIssuer(settings.RTC_APP_ID, settings.RTC_APP_CERTIFICATE)
        if not settings.RTC_APP_CERTIFICATE:
            logger.warning("⚠️ RTC_APP_CERTIFICATE not set, join credentials will be unavailable")

        tasks = []
        if redis is not None:
            tasks.append(asyncio.create_task(app.state.relay.listen()))
            logger.info("✅ Signaling relay subscription started")

        if settings.BACKGROUND_TASKS_ENABLED:
            tasks.append(asyncio.create_task(run_maintenance_loop(database)))
            logger.info("✅ Background maintenance task started")

        if settings.METRICS_ENABLED:
            start_metrics_server(settings.METRICS_PORT)

        yield  # Application runs here

        # === SHUTDOWN ===
        logger.info("🛑 Shutting down...")
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        if redis is not None:
            await close_redis()
        await database.dispose()

    app = FastAPI(
        title="Host Call Signaling Backend",
        description="Customer to host call requests, sessions and settlement",
        version="1.0.0",
        lifespan=lifespan
    )
    app.state.settings = settings

    # CORS configuration
    app.add_middleware(
        CORSMiddleware,
        allow_origin_regex=r"http://(localhost|127\.0\.0\.1)(:\d+)?",
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    # Include REST API routes
    app.include_router(api_router, prefix="/api")

    # Include WebSocket routes
    app.include_router(ws_router)

    @app.get("/")
    async def root():
        """Root endpoint."""
        return {
            "name": "Host Call Signaling Backend",
            "version": "1.0.0",
            "status": "running"
        }

    @app.get("/health")
    async def health(request: Request):
        """Health check endpoint."""
        relay: SignalingRelay = request.app.state.relay
        return {
            "success": True,
            "status": "ok",
            "timestamp": datetime.now(UTC).isoformat(),
            "connected_users": len(relay.get_connected_users()),
            "total_connections": relay.get_total_connections()
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("app.main:app", host=default_settings.API_HOST, port=default_settings.API_PORT)
