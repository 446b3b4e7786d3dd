"""FastAPI application."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from itinera.app.api.errors import register_error_handlers
from itinera.app.api.routes.auth import router as auth_router
from itinera.app.api.routes.health import router as health_router
from itinera.app.api.routes.itineraries import router as itineraries_router
from itinera.app.api.routes.itineraries import trip_itinerary_router
from itinera.app.api.routes.metrics import router as metrics_router
from itinera.app.api.routes.trips import public_router as public_trips_router
from itinera.app.api.routes.trips import router as trips_router
from itinera.app.config import get_settings
from itinera.app.db.engine import create_schema, get_async_engine
from itinera.app.utils.logging import configure_logging

logger = logging.getLogger(__name__)

VERSION = "0.1.0"


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    settings = get_settings()
    configure_logging(settings.log_level)

    if settings.create_schema_on_startup:
        await create_schema(get_async_engine())
        logger.info("[Startup] database schema created")

    logger.info(f"[Startup] identity_provider={settings.identity_provider}")
    yield


def create_app() -> FastAPI:
    """Build the application with routers, error handlers and CORS."""
    settings = get_settings()
    app = FastAPI(title="Itinera API", version=VERSION, lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.ui_origin],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_error_handlers(app)

    app.include_router(health_router, tags=["health"])
    app.include_router(metrics_router, tags=["metrics"])
    app.include_router(auth_router)
    app.include_router(trips_router)
    app.include_router(trip_itinerary_router)
    app.include_router(itineraries_router)
    app.include_router(public_trips_router)

    @app.get("/")
    async def root() -> dict[str, str]:
        """Root endpoint."""
        return {"message": "Itinera API", "version": VERSION}

    return app


app = create_app()
