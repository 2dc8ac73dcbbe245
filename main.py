import logging
from typing import Optional
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager

import redis

from app.core.config import settings
from app.core.database import Database
from app.core.exceptions import StoreNotReady, StoreUnavailable
from app.core.logging_config import setup_logging
from app.core.session_store import RedisSessionStore
from app.services.google_oauth import GoogleOAuthService
from app.api.endpoints import auth, cv, health

setup_logging(settings.LOG_LEVEL, json_logs=settings.JSON_LOGS)
logger = logging.getLogger(__name__)


def build_database() -> Database:
    options = {}
    if not settings.SQLALCHEMY_DATABASE_URL.startswith("sqlite"):
        options.update(pool_size=settings.DB_POOL_SIZE, max_overflow=settings.DB_MAX_OVERFLOW)
    return Database(settings.SQLALCHEMY_DATABASE_URL, **options)


def build_session_store() -> RedisSessionStore:
    client = redis.Redis.from_url(
        settings.REDIS_CONNECTION_URL,
        socket_timeout=settings.REDIS_SOCKET_TIMEOUT,
        socket_connect_timeout=settings.REDIS_SOCKET_TIMEOUT,
    )
    return RedisSessionStore(client, ttl_seconds=settings.SESSION_TTL_SECONDS)


def create_app(
    database: Optional[Database] = None,
    session_store: Optional[RedisSessionStore] = None,
    oauth_service: Optional[GoogleOAuthService] = None,
) -> FastAPI:
    """
    Build the FastAPI application.

    Store handles are created at startup unless passed in (tests inject
    their own).
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        Lifespan context manager for startup and shutdown events.
        """
        logger.info(f"Starting up {settings.PROJECT_NAME}...")

        app.state.database = database or build_database()
        app.state.session_store = session_store or build_session_store()
        app.state.oauth_service = oauth_service or GoogleOAuthService()

        if not app.state.database.is_ready:
            logger.info("Connecting to database...")
            try:
                app.state.database.connect()
            except StoreUnavailable as e:
                # Stay up; CV endpoints answer 503 until the database is ready
                logger.error(f"Database unavailable at startup: {e}")

        if not settings.GOOGLE_CLIENT_ID:
            logger.warning("GOOGLE_CLIENT_ID is not configured; sign-in will fail")

        yield

        logger.info(f"Shutting down {settings.PROJECT_NAME}...")
        if database is None:
            app.state.database.dispose()
        if session_store is None:
            app.state.session_store.client.close()

    app = FastAPI(
        title=settings.PROJECT_NAME,
        version="1.0.0",
        description="Google sign-in and per-user CV storage",
        lifespan=lifespan
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.BACKEND_CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
    )

    @app.exception_handler(StoreNotReady)
    async def store_not_ready_handler(request: Request, exc: StoreNotReady):
        logger.error(f"Store not ready for {request.method} {request.url.path}: {exc}")
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"detail": "Service not ready"},
        )

    @app.exception_handler(StoreUnavailable)
    async def store_unavailable_handler(request: Request, exc: StoreUnavailable):
        logger.error(f"Store unavailable for {request.method} {request.url.path}", exc_info=exc)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": "Internal server error"},
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.error(f"Unhandled error for {request.method} {request.url.path}", exc_info=exc)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": "Something went wrong!"},
        )

    app.include_router(auth.router)
    app.include_router(cv.router)
    app.include_router(health.router)

    @app.get("/")
    async def root():
        """Root endpoint - API banner"""
        return {
            "message": settings.PROJECT_NAME,
            "version": "1.0.0",
            "status": "healthy"
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=5000,
        log_level="info"
    )
