"""
app/main.py

Purpose: Application entry point

- Initializes FastAPI app
- Loads configuration and logging
- Builds the store, Telegram client, engine and dispatcher once, at startup
- Registers API routes (webhook) and health probes
- No business logic should be written here
"""

import asyncio
import time
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from app.api import webhook
from app.api.polling import run_polling
from app.core.config import settings, validate_settings
from app.core.errors import add_exception_handlers
from app.core.logging import setup_logging, get_logger
from app.db.indexes import create_indexes
from app.db.mongo import (
    check_database_health,
    close_mongo_connection,
    connect_to_mongo,
    get_applicants_collection,
    get_database,
)
from app.flow.context import build_services
from app.flow.dispatcher import Dispatcher
from app.services.applicant_service import ApplicantStore
from app.services.telegram_service import TelegramClient

# Initialize logging first
setup_logging()
logger = get_logger(__name__)

SESSION_SWEEP_INTERVAL_SECONDS = 60


async def sweep_sessions(app: FastAPI, stop_event: asyncio.Event) -> None:
    """Evicts abandoned dialogs periodically."""
    while not stop_event.is_set():
        try:
            await asyncio.wait_for(stop_event.wait(), timeout=SESSION_SWEEP_INTERVAL_SECONDS)
        except asyncio.TimeoutError:
            app.state.services.engine.evict_expired()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.
    Handles startup and shutdown events.
    """
    # Startup
    logger.info("🚀 Starting defender intake bot...")
    stop_event = asyncio.Event()
    background = []

    try:
        validate_settings()
        logger.info("✅ Configuration validated")

        mongo_client = await connect_to_mongo()
        app.state.mongo_client = mongo_client
        applicants = get_applicants_collection(get_database(mongo_client))

        await create_indexes(applicants)
        logger.info("✅ Database indexes created")

        telegram = TelegramClient.from_settings()
        services = build_services(ApplicantStore(applicants), telegram)
        app.state.services = services
        app.state.dispatcher = Dispatcher(services)

        background.append(asyncio.create_task(sweep_sessions(app, stop_event)))
        if settings.TELEGRAM_MODE == "polling":
            background.append(asyncio.create_task(run_polling(telegram, app.state.dispatcher, stop_event)))

        logger.info("🎉 Bot started successfully!")
        logger.info(f"Environment: {settings.ENVIRONMENT}, mode: {settings.TELEGRAM_MODE}")

    except Exception as e:
        logger.critical(f"Failed to start application: {str(e)}", exc_info=True)
        raise

    yield  # Application runs here

    # Shutdown
    logger.info("🛑 Shutting down...")

    try:
        stop_event.set()
        for task in background:
            task.cancel()
        await asyncio.gather(*background, return_exceptions=True)

        await app.state.services.client.close()
        close_mongo_connection(app.state.mongo_client)
        logger.info("👋 Shut down successfully")

    except Exception as e:
        logger.error(f"Error during shutdown: {str(e)}", exc_info=True)


# Create FastAPI app with lifespan
app = FastAPI(
    title="Defender Intake Bot",
    description="Telegram bot collecting defender applications and help signals",
    version=settings.BOT_VERSION,
    lifespan=lifespan,
    debug=settings.DEBUG,
    docs_url="/docs" if settings.is_development else None,  # Disable docs in production
    redoc_url="/redoc" if settings.is_development else None,
)

add_exception_handlers(app)


# Request timing middleware
@app.middleware("http")
async def add_process_time_header(request: Request, call_next):
    """Add processing time header to all responses."""
    start_time = time.time()
    response = await call_next(request)
    process_time = time.time() - start_time
    response.headers["X-Process-Time"] = str(process_time)

    if process_time > 5.0:
        logger.warning(f"Slow request detected: {request.method} {request.url.path} ({process_time:.2f}s)")

    return response


# Register API routes
app.include_router(webhook.router, prefix=settings.API_PREFIX, tags=["Webhook"])


def _mongo_client(request: Request) -> Optional[object]:
    return getattr(request.app.state, "mongo_client", None)


# Root endpoint
@app.get("/", tags=["Health"])
async def root():
    """Root endpoint - basic info."""
    return {
        "name": "Defender Intake Bot",
        "version": settings.BOT_VERSION,
        "status": "running",
        "environment": settings.ENVIRONMENT,
        "mode": settings.TELEGRAM_MODE,
    }


@app.get("/health", tags=["Health"])
async def health_check(request: Request):
    """
    Database ping plus dialog counters; 503 when the store is unreachable.
    """
    db_ok = await check_database_health(_mongo_client(request))
    checks = {"database": "healthy" if db_ok else "unhealthy"}

    services = getattr(request.app.state, "services", None)
    dispatcher = getattr(request.app.state, "dispatcher", None)
    if services is not None:
        checks["active_dialogs"] = services.engine.active_count
    if dispatcher is not None:
        checks["busy_conversations"] = dispatcher.active_conversations

    body = {
        "status": "healthy" if db_ok else "unhealthy",
        "timestamp": time.time(),
        "environment": settings.ENVIRONMENT,
        "version": settings.BOT_VERSION,
        "checks": checks,
    }
    return JSONResponse(content=body, status_code=200 if db_ok else 503)


# Readiness probe: wired up and able to reach the store
@app.get("/ready", tags=["Health"])
async def readiness_check(request: Request):
    reason = None
    if getattr(request.app.state, "dispatcher", None) is None:
        reason = "not_started"
    elif not await check_database_health(_mongo_client(request)):
        reason = "database_unavailable"

    if reason:
        return JSONResponse(status_code=503, content={"status": "not_ready", "reason": reason})
    return {"status": "ready"}


# Liveness probe (for Kubernetes/orchestration)
@app.get("/live", tags=["Health"])
async def liveness_check():
    """
    Liveness probe - indicates if app is alive.
    """
    return {"status": "alive"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host="0.0.0.0",
        port=settings.PORT,
        reload=settings.is_development,
        log_level=settings.LOG_LEVEL.lower()
    )
