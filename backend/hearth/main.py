"""
FastAPI main application module for the Hearth household data service
"""

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from typing import Optional
import time
import logging

from hearth import __version__
from hearth.core.config import Settings, settings as default_settings, validate_production_settings
from hearth.core.concurrency import ConcurrencyGuard
from hearth.core.database import create_directory_engine, create_directory_tables, create_session_factory
from hearth.core.database_utils import check_database_connection
from hearth.core.encryption import FieldCipher
from hearth.core.exceptions import HearthError
from hearth.core.gateway import EncryptionGateway
from hearth.core.tenant_registry import TenantStoreRegistry
from hearth.api.api_v1.api import api_router
from hearth.services.audit import AuditRecorder
from hearth.services.directory import TenancyDirectory

logger = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Build the application and its collaborators

    The master key is loaded (or generated) here, once per process.
    """
    settings = settings or default_settings
    validate_production_settings(settings)

    # Configure logging
    logging.basicConfig(level=settings.LOG_LEVEL)

    app = FastAPI(
        title="Hearth API",
        description="Per-household encrypted data service",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
    )

    directory_engine = create_directory_engine(settings)
    directory_sessions = create_session_factory(directory_engine)
    cipher = FieldCipher.from_key_file(settings.MASTER_KEY_PATH)

    app.state.settings = settings
    app.state.directory_engine = directory_engine
    app.state.cipher = cipher
    app.state.registry = TenantStoreRegistry.from_settings(settings)
    app.state.directory = TenancyDirectory(directory_sessions)
    app.state.audit = AuditRecorder(directory_sessions)
    app.state.gateway = EncryptionGateway(cipher)
    app.state.guard = ConcurrencyGuard()

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_HOSTS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["ETag"],
    )

    # Request timing middleware
    @app.middleware("http")
    async def add_process_time_header(request: Request, call_next):
        start_time = time.time()
        response = await call_next(request)
        process_time = time.time() - start_time
        response.headers["X-Process-Time"] = str(process_time)
        return response

    # Include API routes
    app.include_router(api_router, prefix="/api/v1")

    # Health check endpoint
    @app.get("/health")
    async def health_check():
        """Health check endpoint for monitoring"""
        return {
            "status": "healthy",
            "timestamp": time.time(),
            "version": __version__,
        }

    # Root endpoint
    @app.get("/")
    async def root():
        """Root endpoint with API information"""
        return {
            "message": "Hearth API",
            "version": __version__,
            "docs": "/docs",
            "health": "/health",
        }

    # Tenancy, concurrency and storage errors share one error vocabulary
    @app.exception_handler(HearthError)
    async def hearth_exception_handler(request: Request, exc: HearthError):
        if exc.status_code >= 500:
            logger.error(f"{exc.kind} on {request.method} {request.url.path}: {exc.__cause__ or exc}")
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    # Global exception handler
    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.error(f"Global exception: {exc}", exc_info=True)
        return JSONResponse(
            status_code=500,
            content={
                "error": "server_error",
                "message": "An unexpected error occurred",
            },
        )

    # Startup event
    @app.on_event("startup")
    async def startup_event():
        """Initialize application on startup"""
        logger.info("Starting Hearth API...")

        if not check_database_connection(directory_engine):
            logger.error("Failed to connect to directory database")
            raise Exception("Database connection failed")

        # Note: In production, manage the directory schema with migrations instead
        if settings.ENVIRONMENT != "production":
            create_directory_tables(directory_engine)

        app.state.registry.data_dir.mkdir(parents=True, exist_ok=True)
        logger.info("Application startup complete")

    # Shutdown event
    @app.on_event("shutdown")
    async def shutdown_event():
        """Cleanup on application shutdown"""
        logger.info("Shutting down Hearth API...")
        app.state.registry.close_all()
        directory_engine.dispose()

    return app


app = create_app()

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "hearth.main:app",
        host="0.0.0.0",
        port=8000,
        reload=default_settings.DEBUG,
        log_level="info",
    )
