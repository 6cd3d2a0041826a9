"""Lifecycle management for the application."""
from contextlib import asynccontextmanager
from fastapi import FastAPI
from ragcache.core.config import settings
from ragcache.core.logging import get_logger
from ragcache.core.container import ServiceContainer, set_container

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifecycle."""
    logger.info("Starting cache service...")

    # Tests may pre-populate app.state.container with fakes
    container = getattr(app.state, "container", None) or ServiceContainer()

    try:
        await container.initialize(settings)

        # Set global container for module-level access
        set_container(container)

        # Store container in app state for route access
        app.state.container = container

        logger.info("Cache service started successfully")

    except Exception as e:
        logger.error(f"Failed to initialize services: {e}")
        raise

    yield

    # Cleanup
    logger.info("Shutting down cache service...")
    await container.shutdown()
    set_container(None)

    logger.info("Cache service shut down")
