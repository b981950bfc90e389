from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI, Request

from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from dub_schedule.config import settings, setup_logging
from dub_schedule.database import close_db, init_db
from dub_schedule.services.notification_service import InvalidationNotifier
from dub_schedule.services.scheduler_service import dub_scheduler
from dub_schedule.services.snapshot_store import get_snapshot_store

from dub_schedule.routers import main_router


setup_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup and shutdown events"""
    logger.info("Starting Dub Schedule Service...")

    notifier = InvalidationNotifier(settings.invalidation_webhook_url)
    store = get_snapshot_store()

    try:
        logger.info("Initializing database...")
        await init_db()

        store.subscribe(notifier)

        # The first refresh runs immediately on the scheduler
        logger.info("Starting scheduler...")
        dub_scheduler.start()

        logger.info("Dub Schedule Service started successfully")
    except Exception as e:
        logger.error(f"Failed to start Dub Schedule Service: {e}", exc_info=True)
        raise

    yield

    logger.info("Shutting down Dub Schedule Service...")

    try:
        dub_scheduler.shutdown()
    except Exception as e:
        logger.error(f"Error during scheduler shutdown: {e}", exc_info=True)

    store.unsubscribe(notifier)
    await close_db()

    logger.info("Dub Schedule Service stopped")


app = FastAPI(
    title="Dub Schedule Service",
    version="0.1.0",
    lifespan=lifespan
)

app.include_router(main_router)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Log validation errors with details"""
    logger.error(f"Validation error for {request.method} {request.url.path}")
    logger.error(f"Validation details: {exc.errors()}")

    errors = []
    for error in exc.errors():
        error_dict = {
            "type": error.get("type"),
            "loc": error.get("loc"),
            "msg": error.get("msg"),
            "input": str(error.get("input", ""))[:100]
        }
        errors.append(error_dict)

    return JSONResponse(
        status_code=422,
        content={
            "detail": errors
        }
    )
