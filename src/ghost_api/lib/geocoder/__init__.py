"""Geocoder library: address resolution with content caching and fallbacks.

Public API:
    - normalize_address / address_hash / normalize_query: Cache-key derivation
    - simplify_address: Strip unit, ordinal and floor parts for a retry
    - compose_location_query: Join a record's location fields
    - calculate_confidence / ConfidenceWeights: Candidate scoring
    - BaseGeocoder / NominatimGeocoder: Provider clients
    - BaseGeocodeCache / InMemoryGeocodeCache / DatabaseGeocodeCache: Content cache
    - AddressResolver: Single-address resolution chain and geographic tiers
    - BatchGeocoder: Chunked, rate-limited batch resolution
    - SuggestionService: Autocomplete
    - GeocodingEngine / build_engine: All of the above wired together
"""

from dataclasses import dataclass

import httpx

from ghost_api.lib.geocoder.address import (
    STREET_TYPES,
    NormalizedQuery,
    address_hash,
    compose_location_query,
    normalize_address,
    normalize_query,
    simplify_address,
)
from ghost_api.lib.geocoder.base import (
    Alternative,
    BaseGeocoder,
    CacheEntry,
    CacheStats,
    Candidate,
    CandidateAddress,
    GeocodeResult,
    GeocodingProviderError,
)
from ghost_api.lib.geocoder.batch import DEFAULT_MAX_CONCURRENT, BatchGeocoder, BatchSummary, chunked, needs_geocoding
from ghost_api.lib.geocoder.cache import BaseGeocodeCache, DatabaseGeocodeCache, InMemoryGeocodeCache
from ghost_api.lib.geocoder.nominatim import NominatimGeocoder
from ghost_api.lib.geocoder.resolver import (
    CITY_COUNTRY_TIER,
    COUNTRY_TIER,
    DEFAULT_MIN_CONFIDENCE,
    AddressResolver,
    FallbackTier,
    SleepFunc,
)
from ghost_api.lib.geocoder.scoring import DEFAULT_WEIGHTS, ConfidenceWeights, calculate_confidence
from ghost_api.lib.geocoder.suggest import DEFAULT_SUGGESTION_LIMIT, AddressSuggestion, SuggestionService


@dataclass
class GeocodingEngine:
    """The resolver, batch coordinator and suggestion service sharing one provider and cache.

    The numeric fields are the defaults applied when a caller does not
    supply its own threshold, concurrency or suggestion count.
    """

    resolver: AddressResolver
    batch: BatchGeocoder
    suggestions: SuggestionService
    min_confidence: int = DEFAULT_MIN_CONFIDENCE
    max_concurrent: int = DEFAULT_MAX_CONCURRENT
    suggestion_limit: int = DEFAULT_SUGGESTION_LIMIT

    @property
    def cache(self) -> BaseGeocodeCache:
        return self.resolver.cache


def build_engine(
    client: httpx.AsyncClient,
    cache: BaseGeocodeCache,
    *,
    base_url: str = "https://nominatim.openstreetmap.org",
    user_agent: str = "GHOST-OSINT-CRM/2.0 (OSINT Investigation Tool)",
    email: str = "",
    candidate_limit: int = 5,
    call_delay_min: float = 1.0,
    call_delay_max: float = 1.5,
    chunk_delay: float = 2.0,
    min_confidence: int = DEFAULT_MIN_CONFIDENCE,
    max_concurrent: int = DEFAULT_MAX_CONCURRENT,
    suggestion_limit: int = DEFAULT_SUGGESTION_LIMIT,
) -> GeocodingEngine:
    """Wire a Nominatim client, a cache, and the three services together.

    Args:
        client: Shared HTTP client (owned by the caller).
        cache: Content cache backend.
        base_url: Nominatim base URL.
        user_agent: User-Agent sent with every provider request.
        email: Optional contact email for the provider's usage policy.
        candidate_limit: Candidates requested per resolution lookup.
        call_delay_min: Lower bound of the per-call throttle in seconds.
        call_delay_max: Upper bound of the per-call throttle in seconds.
        chunk_delay: Pause between batch chunks in seconds.
        min_confidence: Default acceptance threshold (exclusive).
        max_concurrent: Default batch chunk size.
        suggestion_limit: Default number of suggestions.

    Returns:
        A ready-to-use GeocodingEngine.
    """
    geocoder = NominatimGeocoder(
        client,
        base_url=base_url,
        user_agent=user_agent,
        email=email,
        default_limit=candidate_limit,
    )
    resolver = AddressResolver(
        geocoder,
        cache,
        call_delay_min=call_delay_min,
        call_delay_max=call_delay_max,
        candidate_limit=candidate_limit,
    )
    return GeocodingEngine(
        resolver=resolver,
        batch=BatchGeocoder(resolver, chunk_delay=chunk_delay),
        suggestions=SuggestionService(geocoder),
        min_confidence=min_confidence,
        max_concurrent=max_concurrent,
        suggestion_limit=suggestion_limit,
    )


__all__ = [
    "CITY_COUNTRY_TIER",
    "COUNTRY_TIER",
    "DEFAULT_MIN_CONFIDENCE",
    "DEFAULT_WEIGHTS",
    "STREET_TYPES",
    "AddressResolver",
    "AddressSuggestion",
    "Alternative",
    "BaseGeocodeCache",
    "BaseGeocoder",
    "BatchGeocoder",
    "BatchSummary",
    "CacheEntry",
    "CacheStats",
    "Candidate",
    "CandidateAddress",
    "ConfidenceWeights",
    "DatabaseGeocodeCache",
    "FallbackTier",
    "GeocodeResult",
    "GeocodingEngine",
    "GeocodingProviderError",
    "InMemoryGeocodeCache",
    "NominatimGeocoder",
    "NormalizedQuery",
    "SleepFunc",
    "SuggestionService",
    "address_hash",
    "build_engine",
    "calculate_confidence",
    "chunked",
    "compose_location_query",
    "needs_geocoding",
    "normalize_address",
    "normalize_query",
    "simplify_address",
]
