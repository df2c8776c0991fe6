"""FastAPI application entrypoint and configuration.

This module provides the FastAPI application factory that configures
logging, sets up CORS middleware, includes the upload and geospatial API
routers, and exposes a health check endpoint for monitoring.

Example:
    The application can be run with uvicorn:
        $ uvicorn geoingest.main:app --reload

    Or imported and used programmatically:
        >>> from geoingest.main import app
        >>> # Use app in ASGI server
"""

import fastapi
from fastapi.middleware import cors

from geoingest.api import geospatial, ingest
from geoingest.core import config, logging_config


def create_app() -> fastapi.FastAPI:
    """Create and configure the FastAPI application.

    Configures the ``geoingest`` logger from settings, sets up CORS
    middleware, includes the API routers and adds a health check endpoint.

    Returns:
        Configured FastAPI application instance ready for ASGI server.
    """
    settings = config.get_settings()
    logging_config.setup_logging(settings.log_level)
    app = fastapi.FastAPI(title="Geospatial Ingest", version="0.1.0")

    app.include_router(ingest.router)
    app.include_router(geospatial.router)

    app.add_middleware(
        cors.CORSMiddleware,  # type: ignore[arg-type]
        allow_origins=settings.allow_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/health")
    async def health() -> dict[str, str]:  # type: ignore[misc]
        """Health check endpoint for monitoring and load balancers.

        Returns:
            Dictionary with status "ok" if the service is running.
        """
        return {"status": "ok"}

    return app


app = create_app()
