"""Credential Store: user accounts, doctor profiles and token issuance."""
import logging

from .api.v1.auth import router as auth_router
from .api.v1.doctors import router as doctors_router
from .core.application import build_app
from .core.config import settings
from .core.database import init_db
from .models.user import User

logger = logging.getLogger(__name__)

app = build_app(
    "Auth Service",
    "Patient and doctor accounts, JWT issuance and identity lookup",
)

# Include routers
app.include_router(auth_router, prefix="/api/v1")
app.include_router(doctors_router, prefix="/api/v1")

# Startup and shutdown events
@app.on_event("startup")
async def startup_event():
    """Initialize application on startup."""
    logger.info("Starting Auth Service...")

    try:
        init_db(User)
        logger.info("Database initialized successfully")
    except Exception as e:
        logger.error(f"Failed to initialize database: {str(e)}")
        raise

    logger.info("Application startup complete")

@app.on_event("shutdown")
async def shutdown_event():
    """Cleanup on application shutdown."""
    logger.info("Shutting down Auth Service...")

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "carebook.auth_main:app",
        host="0.0.0.0",
        port=8001,
        reload=settings.DEBUG,
        log_level="info"
    )
