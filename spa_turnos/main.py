"""
FastAPI Application Entry Point

This module initializes the FastAPI application and integrates:
- Booking, appointment, admin and chat routes
- Telegram FAQ bot webhook
- Lifecycle events
"""

import logging
import sys
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from spa_turnos import __version__
from spa_turnos.api.errors import ApiError
from spa_turnos.api.http import ApiClient
from spa_turnos.api.session import SessionContext
from spa_turnos.bot import shutdown_webhook, startup_webhook, webhook_router
from spa_turnos.config import settings
from spa_turnos.routes import SessionExpired, routers, session_expired_handler

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper()),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[
        logging.StreamHandler(sys.stdout),
    ]
)
logger = logging.getLogger(__name__)

# Log startup information
logger.info("=" * 60)
logger.info("SPA Sentirse Bien - Turnos")
logger.info("=" * 60)
logger.info(f"Python version: {sys.version}")
logger.info(f"Debug mode: {settings.debug}")
logger.info(f"Log level: {settings.log_level}")
logger.info(f"Backend URL: {settings.api_base_url}")
logger.info(f"Bot token configured: {'Yes' if settings.telegram_bot_token else 'No'}")
logger.info(f"Webhook URL: {settings.telegram_webhook_url or 'Not configured'}")
logger.info("=" * 60)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan context manager.

    Sets up the Telegram webhook on startup and closes the bot on shutdown.
    """
    logger.info("🚀 Starting application...")
    try:
        await startup_webhook()
        logger.info("✅ Application startup complete")
    except Exception as e:
        logger.error(f"❌ Error during startup: {e}", exc_info=True)
        logger.warning("Application will continue without the Telegram bot")

    yield

    logger.info("🛑 Shutting down application...")
    try:
        await shutdown_webhook()
        logger.info("✅ Application shutdown complete")
    except Exception as e:
        logger.error(f"❌ Error during shutdown: {e}", exc_info=True)


# Initialize FastAPI application
app = FastAPI(
    title="SPA Sentirse Bien - Turnos",
    description=(
        "Booking front for the spa: service catalog, appointment booking "
        "with availability checks, day payments and admin back-office."
    ),
    version=__version__,
    lifespan=lifespan,
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if settings.debug else [],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_exception_handler(SessionExpired, session_expired_handler)


@app.get("/")
async def root():
    """Basic API information."""
    return {
        "message": "SPA Sentirse Bien API",
        "version": __version__,
        "status": "running",
        "endpoints": {
            "health": "/health",
            "docs": "/docs" if settings.debug else "disabled in production",
            "servicios": "/servicios",
            "reservas": "/reservas",
            "turnos": "/turnos",
            "chat": "/chat",
            "telegram_webhook": "/telegram/webhook",
        }
    }


@app.get("/health")
def health_check():
    """
    Application health check endpoint.

    Probes the backend services endpoint without retrying, so a sleeping
    backend reports ``degraded`` instead of blocking the probe.
    """
    client = ApiClient(SessionContext(), max_retries=0)
    try:
        client.get(settings.services_url)
        backend_healthy = True
        backend_error = None
    except ApiError as e:
        logger.warning(f"Health check: backend unavailable: {e}")
        backend_healthy = False
        backend_error = e.message

    content = {
        "status": "healthy" if backend_healthy else "degraded",
        "api": "operational",
        "backend": "connected" if backend_healthy else "unavailable",
        "version": __version__,
    }
    if backend_error:
        content["error"] = backend_error
    return JSONResponse(status_code=200 if backend_healthy else 503, content=content)


@app.get("/info")
async def app_info():
    """Configuration and capability information."""
    return {
        "name": "SPA Sentirse Bien - Turnos",
        "version": __version__,
        "environment": "development" if settings.debug else "production",
        "booking_rules": {
            "lead_time_hours": settings.lead_time_hours,
            "slot_times": settings.slot_times,
            "closed_weekdays": settings.closed_weekdays,
            "card_discount_rate": settings.card_discount_rate,
        },
        "capabilities": [
            "Service catalog",
            "Appointment booking with availability checks",
            "Appointment cancellation",
            "Day payments with card discount",
            "Admin back-office and payment report",
            "FAQ chat and Telegram bot",
        ]
    }


for api_router in routers:
    app.include_router(api_router)
app.include_router(webhook_router)

logger.info("✅ FastAPI application initialized")

# If running with uvicorn directly (not through import)
if __name__ == "__main__":
    import uvicorn

    logger.info(f"Starting uvicorn server on {settings.app_host}:{settings.app_port}")
    uvicorn.run(
        "spa_turnos.main:app",
        host=settings.app_host,
        port=settings.app_port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )
