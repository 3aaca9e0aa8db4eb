"""Booking service: appointment lifecycle and notification publishing."""
import logging

from .api.v1.appointments import router as appointments_router
from .core.application import build_app
from .core.config import settings
from .core.database import init_db
from .core.pubsub import NotificationChannel
from .models.appointment import Appointment
from .services.identity_client import IdentityClient

logger = logging.getLogger(__name__)

app = build_app(
    "Booking Service",
    "Appointment booking with slot checks and role-based status updates",
)

app.include_router(appointments_router, prefix="/api/v1")

@app.on_event("startup")
async def startup_event():
    """Initialize database, Credential Store client and notification channel."""
    logger.info("Starting Booking Service...")

    try:
        init_db(Appointment)
        logger.info("Database initialized successfully")
    except Exception as e:
        logger.error(f"Failed to initialize database: {str(e)}")
        raise

    app.state.identity_client = IdentityClient()

    channel = NotificationChannel()
    try:
        await channel.connect()
    except Exception as e:
        # Bookings still work; every publish reports enqueue_failed
        logger.warning(f"Redis connection failed - notifications disabled: {e}")
    app.state.notification_channel = channel

    logger.info("Application startup complete")

@app.on_event("shutdown")
async def shutdown_event():
    """Release the process-wide clients."""
    logger.info("Shutting down Booking Service...")
    channel = getattr(app.state, "notification_channel", None)
    if channel is not None:
        await channel.close()
    identity_client = getattr(app.state, "identity_client", None)
    if identity_client is not None:
        await identity_client.aclose()

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "carebook.booking_main:app",
        host="0.0.0.0",
        port=8002,
        reload=settings.DEBUG,
        log_level="info"
    )
