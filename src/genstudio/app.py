"""FastAPI application factory."""

# Import timezone enforcement (sets TZ=UTC)
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Response, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from slowapi.middleware import SlowAPIMiddleware
from sqlalchemy import text

from genstudio.api.errors import register_exception_handlers
from genstudio.api.rate_limit import create_limiter
from genstudio.api.routes import auth, generations
from genstudio.core import timezone  # noqa: F401
from genstudio.core.config import Settings, configure_logging
from genstudio.core.database import create_all_tables, dispose_engine, setup_db_session
from genstudio.services.simulation import ProcessingStrategy, strategy_from_settings
from genstudio.services.storage import UploadStorage
from genstudio.uow import create_uow_factory
from genstudio.workers.generation_processor import GenerationProcessor

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan context manager.

    Handles startup and shutdown tasks:
    - Startup: Configure logging, initialize database, fail jobs orphaned by a
      previous process, start the generation processor
    - Shutdown: Cancel in-flight generations, close database connections
    """
    settings: Settings = app.state.settings

    # Configure logging
    configure_logging(settings)

    # Setup database session factory
    session_factory = setup_db_session(settings.database_url, settings.db_pool_size)

    if settings.db_auto_create:
        await create_all_tables(session_factory)

    # Create UoW factory for dependency injection
    uow_factory = create_uow_factory(session_factory)

    storage: UploadStorage = app.state.storage
    storage.ensure_directory()

    processor = GenerationProcessor(uow_factory, storage, app.state.processing_strategy)

    # Store in app.state for access in routes
    app.state.session_factory = session_factory
    app.state.uow_factory = uow_factory
    app.state.processor = processor

    # Jobs still processing belong to a process that no longer exists
    try:
        async with await uow_factory() as uow:
            orphaned = await uow.generations.fail_orphaned_jobs()
        if orphaned:
            logger.warning("startup.orphaned_jobs_failed", count=orphaned)
    except Exception as e:
        # Log error but don't prevent startup - new generations still work
        logger.error(
            "startup.orphan_recovery_failed",
            error=str(e),
            error_type=type(e).__name__,
        )

    logger.info(
        "application.startup",
        db_url=settings.database_url.split("@")[-1],
        upload_dir=str(settings.upload_dir),
        app_env=settings.app_env,
    )

    yield

    # Shutdown: stop background work and close database connections
    logger.info("application.shutdown", in_flight=processor.active_count)
    await processor.shutdown()
    await dispose_engine(session_factory)


def create_app(
    settings: Settings | None = None,
    processing_strategy: ProcessingStrategy | None = None,
) -> FastAPI:
    """Create and configure FastAPI application.

    Args:
        settings: Application settings (loaded from the environment if omitted)
        processing_strategy: Simulated processing behavior (derived from
            settings if omitted)

    Returns:
        Configured FastAPI application instance
    """
    settings = settings or Settings()  # type: ignore[call-arg]

    app = FastAPI(
        title="GenStudio Backend API",
        description="Image generation studio with simulated AI processing",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.storage = UploadStorage(settings.upload_dir, settings.upload_url_prefix)
    app.state.processing_strategy = processing_strategy or strategy_from_settings(settings)
    app.state.limiter = create_limiter(settings)

    # Rate limit every route; CORS stays the outermost middleware
    app.add_middleware(SlowAPIMiddleware)

    # Add CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    # Register API routers
    app.include_router(auth.router)  # prefix="/api/auth" in definition
    app.include_router(generations.router)  # prefix="/api/generations" in definition

    # Uploaded originals and results; the directory is created at startup
    app.mount(
        settings.upload_url_prefix,
        StaticFiles(directory=settings.upload_dir, check_dir=False),
        name="uploads",
    )

    # Health check endpoint with database validation
    @app.get("/health")
    async def health_check(response: Response):
        """Health check endpoint with database connectivity test.

        Returns:
            200: {"status": "healthy"} if database connection succeeds
            503: {"status": "unhealthy", "error": {...}} if database connection fails
        """
        try:
            async with app.state.session_factory() as session:
                result = await session.execute(text("SELECT 1"))
                result.scalar()

            logger.debug("health_check.success")
            return {"status": "healthy"}

        except Exception as e:
            logger.error(
                "health_check.failed",
                error=str(e),
                error_type=type(e).__name__,
            )
            response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
            return {
                "status": "unhealthy",
                "error": {
                    "type": type(e).__name__,
                    "message": str(e),
                },
            }

    return app


# Create app instance for uvicorn
app = create_app()
