"""FastAPI application factory.

Creates the FastAPI app with lifespan management (logging, database engine,
shared provider HTTP client, geocoding engine), exception handlers, and
OpenAPI metadata.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from ghost_api.core.config import get_settings
from ghost_api.core.database import dispose_engine, get_session_factory, init_engine
from ghost_api.core.logging import setup_logging
from ghost_api.services.geocoding_service import create_geocoding_engine, create_http_client


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
    """Manage application lifecycle: engine, HTTP client and geocoder on startup; dispose on shutdown."""
    settings = get_settings()
    setup_logging(settings.log_level, log_dir=settings.log_dir, environment=settings.environment)

    use_database = settings.geocoder_cache_backend == "database"
    if use_database:
        init_engine(settings.database_url, echo=False, schema=settings.database_schema)

    client = create_http_client(settings)
    session_factory = get_session_factory() if use_database else None
    app.state.geocoding_engine = create_geocoding_engine(settings, client, session_factory)

    yield

    app.state.geocoding_engine = None
    await client.aclose()
    if use_database:
        await dispose_engine()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Returns:
        Configured FastAPI application instance.
    """
    settings = get_settings()

    app = FastAPI(
        title="GHOST API",
        description="Investigation management back end with cached, rate-limited address geocoding",
        version="0.1.0",
        lifespan=lifespan,
    )

    # Register exception handlers
    @app.exception_handler(ValueError)
    async def value_error_handler(request: Request, exc: ValueError) -> JSONResponse:
        return JSONResponse(
            status_code=400,
            content={"detail": str(exc)},
        )

    # Register middleware and routers
    from ghost_api.api.router import create_router, setup_middleware

    setup_middleware(app, settings)
    app.include_router(create_router(settings))

    return app
