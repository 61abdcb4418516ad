"""
FastAPI application entry point.

This is the main FastAPI application that wires settings, the model layer,
routes, error handlers and middleware together.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from .errors import register_exception_handlers
from .routers import analyze, health
from src.models.manager import ModelManager
from src.settings import Settings, load_settings

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan manager.

    Services are built in create_app; shutdown closes the upstream HTTP clients.
    """
    settings: Settings = app.state.settings
    logger.info(f"Chart signal relay ready (port {settings.port})")
    if not settings.openai_api_key:
        logger.warning("OPENAI_API_KEY is not set; analysis requests will fail with 500")

    yield

    logger.info("Shutting down chart signal relay")
    await app.state.model_manager.aclose()


def create_app(settings: Optional[Settings] = None, model_manager: Optional[ModelManager] = None) -> FastAPI:
    """
    Factory function to create and configure the FastAPI application.

    Settings are loaded from config/config.yaml and the environment unless
    given explicitly, which keeps tests free of process-wide state.
    """
    settings = settings or load_settings()

    app = FastAPI(
        title="Chart Signal Relay",
        description="Relays trading chart images to a vision model and returns a structured signal",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.model_manager = model_manager or ModelManager(settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=False,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
    )

    register_exception_handlers(app)

    app.include_router(health.router, prefix="/api", tags=["health"])
    app.include_router(analyze.router, prefix="/api", tags=["analysis"])

    # Mounted last so it never shadows the API routes.
    if settings.static_dir and settings.static_dir.is_dir():
        app.mount("/", StaticFiles(directory=settings.static_dir, html=True), name="static")
        logger.info(f"Serving static files from {settings.static_dir}")

    return app
