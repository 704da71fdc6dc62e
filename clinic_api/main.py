"""
Main FastAPI application entry point.
Configures the application, middleware, and includes routers.
"""
from dotenv import load_dotenv

# Load environment variables from .env file first
load_dotenv()

from contextlib import asynccontextmanager
from typing import Callable, Optional

from fastapi import Depends, FastAPI, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
import logging

from .auth.dependencies import optional_identity
from .auth.identity import Identity
from .auth.router import router as auth_router
from .config import Settings, settings as default_settings
from .core.cloudinary import MediaStore, create_media_store
from .core.middleware import setup_middlewares
from .core.responses import success_body
from .core.security import PasswordHasher, TokenIssuer
from .core.session_cache import SessionCache, create_session_cache
from .database import (
    Base,
    build_engine,
    build_session_factory,
    check_database,
    engine,
    get_db,
    session_dependency,
    utcnow,
)
from .exceptions import register_exception_handlers
from .logging import setup_logging
from .patients.router import router as patients_router
from .users.router import router as users_router

# Import all models here for creating tables
from .auth import models as auth_models  # noqa: F401
from .patients import models as patient_models  # noqa: F401

logger = logging.getLogger(__name__)

API_VERSION = "1.0.0"


def create_app(
    settings: Optional[Settings] = None,
    session_cache: Optional[SessionCache] = None,
    media_store: Optional[MediaStore] = None,
    clock: Optional[Callable] = None,
    create_tables: bool = True,
) -> FastAPI:
    """
    Build the application.

    Collaborators (session cache, media store, clock) are created once here
    and shared through ``app.state``; tests pass in-memory replacements.
    """
    settings = settings or default_settings
    setup_logging(settings)

    # The module engine serves the default database URL; any other gets its own
    db_engine = engine
    if settings.database_url != default_settings.database_url:
        db_engine = build_engine(settings.database_url)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("🚀 Starting Clinic Patient Records API...")
        if create_tables:
            # Create database tables if they don't exist
            Base.metadata.create_all(bind=db_engine)
        yield
        await app.state.session_cache.close()
        if db_engine is not engine:
            db_engine.dispose()
        logger.info("Clinic Patient Records API stopped")

    # Create FastAPI application
    app = FastAPI(
        title="Clinic Patient Records API",
        description="Patient records, user accounts and session-based authentication for a small clinic",
        version=API_VERSION,
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.session_cache = session_cache or create_session_cache(settings)
    app.state.media_store = media_store or create_media_store(settings)
    app.state.password_hasher = PasswordHasher(settings.password_hash_rounds)
    app.state.token_issuer = TokenIssuer(settings)
    app.state.clock = clock or utcnow

    if db_engine is not engine:
        app.dependency_overrides[get_db] = session_dependency(build_session_factory(db_engine))

    # Register exception handlers
    register_exception_handlers(app, show_details=settings.is_development)

    # Configure CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "PATCH", "OPTIONS"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID"],
    )

    # Setup custom middleware
    setup_middlewares(app, settings)

    # Include routers
    app.include_router(auth_router, prefix="/api/v1/auth", tags=["Authentication"])
    app.include_router(users_router, prefix="/api/v1/users", tags=["Users"])
    app.include_router(patients_router, prefix="/api/v1/patients", tags=["Patients"])

    @app.get("/")
    def root():
        """
        Root endpoint.

        Returns:
            dict: Simple welcome message
        """
        return {"message": "Welcome to Clinic Patient Records API", "version": API_VERSION}

    @app.get("/api/v1")
    async def api_info(identity: Identity = Depends(optional_identity)):
        """API information; also tells the caller whether its credentials are live."""
        return success_body(
            "API Information retrieved successfully",
            {
                "message": "Patient Management API v1",
                "version": API_VERSION,
                "authenticated": identity.is_authenticated,
                "endpoints": {
                    "auth": "/api/v1/auth",
                    "users": "/api/v1/users",
                    "patients": "/api/v1/patients",
                },
                "health": "/health",
            },
        )

    @app.get("/health")
    async def health_check(request: Request, db: Session = Depends(get_db)):
        """
        Health check endpoint for monitoring.

        Returns:
            JSONResponse: 200 when every dependency answers, 503 otherwise
        """
        services = {}

        try:
            services["database"] = "connected" if await run_in_threadpool(check_database, db) else "disconnected"
        except Exception as e:
            logger.error(f"Database health check failed: {str(e)}")
            services["database"] = "disconnected"

        cache_ok = await request.app.state.session_cache.ping()
        services["cache"] = "connected" if cache_ok else "disconnected"

        healthy = all(state == "connected" for state in services.values())
        if not healthy:
            logger.warning(f"Health check failed: {services}")
        return JSONResponse(
            status_code=200 if healthy else 503,
            content={
                "status": "healthy" if healthy else "degraded",
                "timestamp": utcnow().isoformat(),
                "environment": settings.environment,
                "version": API_VERSION,
                "services": services,
            },
        )

    return app


app = create_app()
