"""
Risk Alert Bot Service - FastAPI application.

Handles Microsoft Teams Bot Framework webhooks and pushed alert
notifications.
"""
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from alert_bot import config
from alert_bot.api.teams.routes import router as teams_router
from alert_bot.bot_services import BotServices, create_bot_services
from alert_bot.error_handlers import register_error_handlers

# Configure logging
logging.basicConfig(
    level=config.LOG_LEVEL,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def create_app(services: Optional[BotServices] = None) -> FastAPI:
    """
    Create the FastAPI application.

    Args:
        services: Prebuilt services (tests); built from config at startup when omitted
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan manager - startup and shutdown."""
        logger.info("Risk Alert Bot service starting up...")
        if getattr(app.state, "services", None) is None:
            app.state.services = create_bot_services()

        yield

        logger.info("Risk Alert Bot service shutting down...")

    app = FastAPI(
        title="Risk Alert Bot Service",
        description="Microsoft Teams bot for user risk alerts",
        version="1.0.0",
        lifespan=lifespan
    )
    app.state.services = services

    register_error_handlers(app)
    app.include_router(teams_router)

    @app.get("/health")
    async def health_check():
        """Health check endpoint for container hosting."""
        current = app.state.services
        return {
            "status": "healthy",
            "service": "risk-alert-bot",
            "version": "1.0.0",
            "alerts_loaded": bool(current and current.alert_store.is_loaded),
            "conversations": len(current.conversations) if current else 0,
            "subscribers": len(current.subscribers) if current else 0
        }

    @app.get("/")
    async def root():
        """Root endpoint."""
        return {
            "service": "risk-alert-bot",
            "status": "running",
            "endpoints": {
                "health": "/health",
                "messages": "/api/messages",
                "notify": "/api/notify"
            }
        }

    return app


app = create_app()


def main():
    import uvicorn
    uvicorn.run("alert_bot.main:app", host="0.0.0.0", port=config.PORT)


if __name__ == "__main__":
    main()
