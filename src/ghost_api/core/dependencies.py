"""FastAPI dependency injection for the geocoding engine."""

from fastapi import HTTPException, Request, status

from ghost_api.lib.geocoder import GeocodingEngine


def get_geocoding_engine(request: Request) -> GeocodingEngine:
    """Return the geocoding engine created during application startup.

    Raises:
        HTTPException: 503 if the engine has not been initialized.
    """
    engine: GeocodingEngine | None = getattr(request.app.state, "geocoding_engine", None)
    if engine is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Geocoding service not initialized",
        )
    return engine
