"""
Table Reservation Engine - application entry point.

Serves the guest seat-hold flow, the payment gateway webhook and the
staff booking surface over one inventory store.
"""

from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from reservation_engine.api.errors import register_exception_handlers
from reservation_engine.api.middleware import RequestLoggingMiddleware
from reservation_engine.api.router import api_router
from reservation_engine.core.config import get_settings
from reservation_engine.core.logging import get_logger, setup_logging
from reservation_engine.core.metrics import metrics_endpoint
from reservation_engine.services.availability_cache import RedisAvailabilityCache
from reservation_engine.services.engine import build_engine

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifecycle: startup and shutdown hooks."""
    setup_logging()
    logger = get_logger(__name__)

    logger.info(
        "application_starting",
        app=settings.APP_NAME,
        version=settings.APP_VERSION,
        environment=settings.ENVIRONMENT,
        store=settings.STORE_BACKEND,
        cache=settings.CACHE_BACKEND,
    )

    if settings.STORE_BACKEND == "sqlalchemy":
        from reservation_engine.db.session import create_tables, get_engine

        await create_tables(get_engine())
        logger.info("database_ready")

    engine = build_engine(settings)
    app.state.engine = engine

    if settings.BACKGROUND_WORKERS_ENABLED:
        await engine.worker.start()

    yield

    await engine.worker.stop()
    await engine.notifications.drain()
    if isinstance(engine.cache, RedisAvailabilityCache):
        await engine.cache.close()
    if settings.STORE_BACKEND == "sqlalchemy":
        from reservation_engine.db.session import get_engine

        await get_engine().dispose()
    logger.info("application_shutdown")


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Table reservations with seat holds, payment reconciliation and staff conflict checks",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(RequestLoggingMiddleware)

register_exception_handlers(app)

app.include_router(api_router)


@app.get("/health", tags=["Health"])
async def health_check():
    """Health check endpoint for Docker and load balancers."""
    return {
        "status": "healthy",
        "version": settings.APP_VERSION,
        "environment": settings.ENVIRONMENT,
        "store": settings.STORE_BACKEND,
        "cache": settings.CACHE_BACKEND,
    }


@app.get("/metrics", include_in_schema=False)
async def metrics():
    return metrics_endpoint()
