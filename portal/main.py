"""Submission Portal FastAPI application."""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from portal import __version__
from portal.config import get_settings
from portal.database import close_db, init_db
from portal.logging_config import configure_logging, get_logger
from portal.moderation.api import admin_router, public_router, user_router
from portal.redis import close_redis, init_redis

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: init DB + Redis on startup, cleanup on shutdown."""
    settings = get_settings()
    configure_logging(level=settings.log_level, json_format=settings.log_format == "json")

    logger.info("starting_database_init")
    await init_db()

    # Moderation events still persist without Redis; only fan-out is lost.
    try:
        await init_redis(settings.redis_url)
        logger.info("redis_connected", url=settings.redis_url)
    except Exception as e:
        logger.warning("redis_unavailable", url=settings.redis_url, error=str(e))

    logger.info("application_started", version=__version__)
    yield

    logger.info("shutting_down")
    await close_redis()
    await close_db()
    logger.info("shutdown_complete")


def create_app() -> FastAPI:
    settings = get_settings()
    app = FastAPI(
        title="Submission Portal",
        description="Project and startup submissions with a moderation workflow",
        version=__version__,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origin_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(user_router)
    app.include_router(admin_router)
    app.include_router(public_router)

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {"status": "ok", "service": "portal"}

    return app


app = create_app()
