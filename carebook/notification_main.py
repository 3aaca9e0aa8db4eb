"""Notification service: channel consumer plus notification query API."""
import asyncio
import logging

from .api.v1.notifications import router as notifications_router
from .core.application import build_app
from .core.config import settings
from .core.database import init_db, SessionLocal
from .core.pubsub import NotificationChannel
from .models.notification import Notification
from .services.identity_client import IdentityClient
from .services.notification_worker import NotificationWorker

logger = logging.getLogger(__name__)

app = build_app(
    "Notification Service",
    "Asynchronous appointment notifications and their query API",
)

app.include_router(notifications_router, prefix="/api/v1")

@app.on_event("startup")
async def startup_event():
    """Initialize database and channel, then start the delivery worker."""
    logger.info("Starting Notification Service...")

    try:
        init_db(Notification)
        logger.info("Database initialized successfully")
    except Exception as e:
        logger.error(f"Failed to initialize database: {str(e)}")
        raise

    channel = NotificationChannel()
    try:
        await channel.connect()
    except Exception as e:
        logger.error(f"Redis connection failed: {e}")
        raise
    app.state.notification_channel = channel
    app.state.identity_client = IdentityClient()

    worker = NotificationWorker(channel, SessionLocal)
    app.state.worker_task = asyncio.create_task(worker.run())

    logger.info("Application startup complete")

@app.on_event("shutdown")
async def shutdown_event():
    """Stop the worker and release the process-wide clients."""
    logger.info("Shutting down Notification Service...")
    try:
        task = getattr(app.state, "worker_task", None)
        if task is not None:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
            except Exception as e:
                logger.error(f"Notification worker had stopped with an error: {e}")
    finally:
        channel = getattr(app.state, "notification_channel", None)
        if channel is not None:
            await channel.close()
        identity_client = getattr(app.state, "identity_client", None)
        if identity_client is not None:
            await identity_client.aclose()

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "carebook.notification_main:app",
        host="0.0.0.0",
        port=8003,
        reload=settings.DEBUG,
        log_level="info"
    )
