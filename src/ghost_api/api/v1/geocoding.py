"""Geocoding API endpoints: single address, batch, suggestions, and cache stats."""

from fastapi import APIRouter, Depends, HTTPException, Query, status
from loguru import logger

from ghost_api.core.dependencies import get_geocoding_engine
from ghost_api.lib.geocoder import GeocodingEngine
from ghost_api.schemas.geocoding import (
    AddressGeocodeRequest,
    AddressGeocodeResponse,
    AddressSuggestionResponse,
    BatchGeocodeRequest,
    BatchGeocodeResponse,
    CacheStatsResponse,
)
from ghost_api.services.geocoding_service import (
    geocode_locations,
    geocode_single_address,
    get_cache_stats,
    get_suggestions,
)

geocoding_router = APIRouter(prefix="/geocode", tags=["geocoding"])


@geocoding_router.get(
    "/suggestions",
    response_model=list[AddressSuggestionResponse],
)
async def address_suggestions(
    q: str = Query("", max_length=200, description="Partial address (at least 3 characters)"),
    limit: int | None = Query(None, ge=1, le=50, description="Maximum number of suggestions"),
    engine: GeocodingEngine = Depends(get_geocoding_engine),  # noqa: B008
) -> list[AddressSuggestionResponse]:
    """Autocomplete suggestions for a partial address, best match first."""
    if len(q.strip()) < 3:
        return []
    return await get_suggestions(engine, q, limit)


@geocoding_router.post(
    "/address",
    response_model=AddressGeocodeResponse,
)
async def geocode_address(
    request: AddressGeocodeRequest,
    engine: GeocodingEngine = Depends(get_geocoding_engine),  # noqa: B008
) -> AddressGeocodeResponse:
    """Geocode a single freeform address."""
    stripped = request.address.strip()
    if not stripped:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="Address must not be empty or whitespace-only.",
        )

    try:
        return await geocode_single_address(engine, stripped, request.min_confidence)
    except Exception as e:
        logger.error(f"Unexpected error during address geocoding: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to geocode address",
        ) from e


@geocoding_router.post(
    "/batch-enhanced",
    response_model=BatchGeocodeResponse,
)
async def geocode_batch(
    request: BatchGeocodeRequest,
    engine: GeocodingEngine = Depends(get_geocoding_engine),  # noqa: B008
) -> BatchGeocodeResponse:
    """Geocode a list of locations with the full fallback ladder."""
    try:
        return await geocode_locations(
            engine,
            request.locations,
            min_confidence=request.min_confidence,
            max_concurrent=request.max_concurrent,
        )
    except Exception as e:
        logger.error(f"Unexpected error during batch geocoding: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Enhanced batch geocoding failed",
        ) from e


@geocoding_router.get(
    "/stats",
    response_model=CacheStatsResponse,
)
async def cache_stats(
    engine: GeocodingEngine = Depends(get_geocoding_engine),  # noqa: B008
) -> CacheStatsResponse:
    """Geocoding cache statistics."""
    try:
        return await get_cache_stats(engine)
    except Exception as e:
        logger.error(f"Unexpected error reading geocoding stats: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to get geocoding stats",
        ) from e
