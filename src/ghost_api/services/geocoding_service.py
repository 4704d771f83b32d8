"""Geocoding service: builds the engine from settings and adapts it to API schemas."""

from collections.abc import Sequence

import httpx
from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ghost_api.core.config import Settings
from ghost_api.lib.geocoder import (
    BaseGeocodeCache,
    BatchSummary,
    DatabaseGeocodeCache,
    GeocodingEngine,
    InMemoryGeocodeCache,
    build_engine,
    needs_geocoding,
)
from ghost_api.schemas.geocoding import (
    AddressGeocodeResponse,
    AddressSuggestionResponse,
    BatchGeocodeResponse,
    BatchSummaryResponse,
    CacheStatsResponse,
    GeocodeResultResponse,
    LocationRecord,
)


def create_http_client(settings: Settings) -> httpx.AsyncClient:
    """Create the shared provider HTTP client."""
    return httpx.AsyncClient(timeout=settings.geocoder_nominatim_timeout)


def create_cache(
    settings: Settings,
    session_factory: async_sessionmaker[AsyncSession] | None = None,
) -> BaseGeocodeCache:
    """Select the cache backend configured in settings.

    Args:
        settings: Application settings.
        session_factory: Required for the ``database`` backend.

    Returns:
        The configured cache backend.

    Raises:
        ValueError: If the database backend is selected without a session factory.
    """
    if settings.geocoder_cache_backend == "memory":
        return InMemoryGeocodeCache()
    if session_factory is None:
        msg = "geocoder_cache_backend='database' requires an initialized session factory"
        raise ValueError(msg)
    return DatabaseGeocodeCache(session_factory)


def create_geocoding_engine(
    settings: Settings,
    client: httpx.AsyncClient,
    session_factory: async_sessionmaker[AsyncSession] | None = None,
) -> GeocodingEngine:
    """Build the geocoding engine from application settings."""
    cache = create_cache(settings, session_factory)
    logger.info(f"Geocoding engine using {type(cache).__name__}")
    return build_engine(
        client,
        cache,
        base_url=settings.geocoder_nominatim_base_url,
        user_agent=settings.geocoder_user_agent,
        email=settings.geocoder_nominatim_email,
        candidate_limit=settings.geocoder_candidate_limit,
        call_delay_min=settings.geocoder_call_delay_min,
        call_delay_max=settings.geocoder_call_delay_max,
        chunk_delay=settings.geocoder_chunk_delay,
        min_confidence=settings.geocoder_min_confidence,
        max_concurrent=settings.geocoder_max_concurrent,
        suggestion_limit=settings.geocoder_suggestion_limit,
    )


async def geocode_single_address(
    engine: GeocodingEngine,
    address: str,
    min_confidence: int | None = None,
) -> AddressGeocodeResponse:
    """Resolve one address through cache, provider and simplified retry.

    Args:
        engine: Geocoding engine.
        address: Raw freeform address.
        min_confidence: Results must score strictly above this (engine default when None).

    Returns:
        AddressGeocodeResponse; ``success`` is False when nothing cleared the threshold.
    """
    threshold = engine.min_confidence if min_confidence is None else min_confidence
    result = await engine.resolver.resolve(address, min_confidence=threshold)
    if result is None:
        return AddressGeocodeResponse(success=False, message="No results found or confidence too low")

    return AddressGeocodeResponse(
        success=True,
        result=GeocodeResultResponse.model_validate(result),
        cached=result.cached,
    )


async def geocode_locations(
    engine: GeocodingEngine,
    locations: Sequence[LocationRecord],
    *,
    min_confidence: int | None = None,
    max_concurrent: int | None = None,
) -> BatchGeocodeResponse:
    """Resolve a list of location records with the full fallback ladder."""
    results = await engine.batch.geocode_batch(
        locations,
        min_confidence=engine.min_confidence if min_confidence is None else min_confidence,
        max_concurrent=engine.max_concurrent if max_concurrent is None else max_concurrent,
    )
    summary = BatchSummary.from_records(results)
    return BatchGeocodeResponse(
        results=results,
        summary=BatchSummaryResponse.model_validate(summary),
    )


async def geocode_missing_locations(
    engine: GeocodingEngine,
    locations: list[LocationRecord],
    *,
    min_confidence: int | None = None,
    max_concurrent: int | None = None,
) -> list[LocationRecord]:
    """Resolve only the records that lack coordinates, before the caller persists them.

    This is the entry point for record handlers that save people or tools
    with attached locations, and backs `ghost-api geocode batch --missing-only`.
    Records that already have coordinates, or have nothing to resolve, are
    passed through untouched.  Order is preserved.
    """
    pending = [loc for loc in locations if needs_geocoding(loc)]
    if not pending:
        return locations

    logger.info(f"Geocoding {len(pending)} of {len(locations)} locations")
    await engine.batch.geocode_batch(
        pending,
        min_confidence=engine.min_confidence if min_confidence is None else min_confidence,
        max_concurrent=engine.max_concurrent if max_concurrent is None else max_concurrent,
    )
    return locations


async def get_suggestions(
    engine: GeocodingEngine,
    query: str,
    limit: int | None = None,
) -> list[AddressSuggestionResponse]:
    """Autocomplete suggestions for a partial address, best first."""
    suggestions = await engine.suggestions.get_suggestions(query, engine.suggestion_limit if limit is None else limit)
    return [AddressSuggestionResponse.model_validate(s) for s in suggestions]


async def get_cache_stats(engine: GeocodingEngine) -> CacheStatsResponse:
    """Content cache statistics."""
    stats = await engine.cache.stats()
    return CacheStatsResponse.model_validate(stats)
