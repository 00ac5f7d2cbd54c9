"""FastAPI application factory"""

import asyncio
import contextlib
import logging
import time
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse

from walkin import __version__
from walkin.shared.database import DatabaseManager, PoolConfig
from walkin.shared.migrations import MigrationRunner
from walkin.shared.repositories import (
    ChatMessageRepository,
    MemoryChatMessageRepository,
    MemoryQueueAnalyticsRepository,
    MemoryQueueEntryRepository,
    QueueAnalyticsRepository,
    QueueEntryRepository,
)

from .core.config import Settings, get_settings
from .core.dependencies import AppServices
from .core.logging import setup_logging
from .routers import chat_router, queue_router, realtime_router
from .services import BroadcastHub, ChatService, QueueService
from .services.admin_gate import build_admin_gate

logger = logging.getLogger(__name__)


async def _snapshot_refresh_loop(queue: QueueService, interval: float) -> None:
    """Re-broadcast the snapshot periodically and sample the queue once per hour.

    Bounds how stale a client can be if a broadcast after a mutation was lost,
    and keeps the business-hours status current while nothing changes.
    """
    while True:
        await asyncio.sleep(interval)
        try:
            await queue.publish_snapshot()
            await queue.record_analytics_sample(overwrite=False)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.warning(f"Snapshot refresh failed: {type(e).__name__}: {e}")


async def _build_services(settings: Settings) -> AppServices:
    hub = BroadcastHub(max_pending=settings.ws_max_pending)
    database: DatabaseManager | None = None

    if settings.database_url:
        database = DatabaseManager(settings.database_url, PoolConfig(ssl=settings.database_ssl))
        await database.connect()
        if settings.run_migrations:
            await MigrationRunner(database.pool).run_pending()
        queue_store = QueueEntryRepository(database.pool)
        chat_store = ChatMessageRepository(database.pool)
        analytics_store = QueueAnalyticsRepository(database.pool)
    else:
        logger.warning("DATABASE_URL not set, using in-memory storage (nothing is persisted)")
        queue_store = MemoryQueueEntryRepository()
        chat_store = MemoryChatMessageRepository()
        analytics_store = MemoryQueueAnalyticsRepository()

    return AppServices(
        settings=settings,
        hub=hub,
        queue=QueueService(
            queue_store,
            hub,
            schedule=settings.business_schedule,
            analytics=analytics_store,
            minutes_per_customer=settings.minutes_per_customer,
        ),
        chat=ChatService(chat_store, hub),
        admin_gate=build_admin_gate(
            settings.admin_gate,
            admin_token=settings.admin_token,
            jwt_secret_key=settings.jwt_secret_key,
            jwt_algorithm=settings.jwt_algorithm,
        ),
        database=database,
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Handle startup and shutdown"""
    settings: Settings = app.state.settings
    app.state.start_time = time.time()

    # Startup
    logger.info(f"Starting walk-in queue API (env={settings.environment})")
    services = await _build_services(settings)
    app.state.services = services

    refresh_task = asyncio.create_task(
        _snapshot_refresh_loop(services.queue, settings.snapshot_refresh_interval),
        name="snapshot-refresh",
    )
    logger.info(f"Snapshot refresh started (interval={settings.snapshot_refresh_interval}s)")

    yield

    # Shutdown
    logger.info("Shutting down walk-in queue API")
    refresh_task.cancel()
    with contextlib.suppress(asyncio.CancelledError):
        await refresh_task
    try:
        await services.hub.close()
        if services.database is not None:
            await services.database.disconnect()
    except Exception as e:
        logger.exception(f"Error during shutdown: {e}")


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create and configure FastAPI application"""
    settings = settings or get_settings()

    app = FastAPI(
        title="Walk-in Queue API",
        description="Live walk-in queue count with WebSocket push updates",
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
    )
    app.state.settings = settings
    app.state.start_time = time.time()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(queue_router.router)
    app.include_router(chat_router.router)
    app.include_router(realtime_router.router)

    # Liveness check: always 200, no external dependency
    @app.get("/health")
    async def health():
        return {
            "status": "healthy",
            "uptime_seconds": int(time.time() - app.state.start_time),
        }

    # Readiness: DB health and live socket count
    @app.get("/status")
    async def status():
        services: AppServices = app.state.services
        db_ok: bool | None = None
        if services.database is not None:
            db_ok = await services.database.check_health()
        return {
            "service": "walkin-queue-api",
            "version": __version__,
            "uptime_seconds": int(time.time() - app.state.start_time),
            "db_connected": db_ok,
            "live_connections": services.hub.connection_count,
            "environment": settings.environment,
        }

    @app.api_route("/ping", methods=["GET", "HEAD"], response_class=PlainTextResponse)
    async def ping():
        return "pong"

    logger.info("FastAPI application configured")

    return app


def create_app_from_env() -> FastAPI:
    """uvicorn factory entry point: settings from the environment, logging configured."""
    settings = get_settings()
    setup_logging(settings.log_level, environment=settings.environment)
    return create_app(settings)
