"""Resolution chain: cache, provider, simplified retry, and geographic fallbacks.

Trust order, most to least specific::

    cache hit > full address > simplified address > city+country > country

Single-address resolution (:meth:`AddressResolver.resolve`) stops after the
simplified retry.  The two geographic tiers only run for location records
(:meth:`AddressResolver.resolve_location`), and each one caps the confidence
it reports so a coarse match never looks like a precise one.
"""

import asyncio
import random
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, replace

from loguru import logger

from ghost_api.lib.geocoder.address import (
    NormalizedQuery,
    SupportsLocation,
    compose_location_query,
    normalize_address,
    normalize_query,
    simplify_address,
)
from ghost_api.lib.geocoder.base import (
    Alternative,
    BaseGeocoder,
    CacheEntry,
    Candidate,
    GeocodeResult,
    GeocodingProviderError,
)
from ghost_api.lib.geocoder.cache import BaseGeocodeCache
from ghost_api.lib.geocoder.scoring import DEFAULT_WEIGHTS, ConfidenceWeights, calculate_confidence

DEFAULT_MIN_CONFIDENCE = 30
DEFAULT_CALL_DELAY_MIN = 1.0
DEFAULT_CALL_DELAY_MAX = 1.5
MAX_ALTERNATIVES = 2

SleepFunc = Callable[[float], Awaitable[None]]


@dataclass(frozen=True)
class FallbackTier:
    """A coarse geographic tier with its own threshold and confidence cap."""

    name: str
    min_confidence: int
    penalty: int
    floor: int

    def degrade(self, confidence: int) -> int:
        """Apply the tier penalty, never going below the tier floor."""
        return max(self.floor, confidence - self.penalty)


CITY_COUNTRY_TIER = FallbackTier("city_country", min_confidence=25, penalty=15, floor=25)
COUNTRY_TIER = FallbackTier("country", min_confidence=20, penalty=25, floor=20)


class AddressResolver:
    """Resolves free-text addresses to coordinates through the fallback ladder.

    Args:
        geocoder: Provider client used on cache misses.
        cache: Content cache consulted before, and written after, provider calls.
        weights: Confidence scoring weights.
        call_delay_min: Lower bound of the delay before each provider call.
        call_delay_max: Upper bound of the delay before each provider call.
        candidate_limit: Candidates requested per provider call.
        sleep: Awaitable sleep, injectable for tests.
    """

    def __init__(
        self,
        geocoder: BaseGeocoder,
        cache: BaseGeocodeCache,
        *,
        weights: ConfidenceWeights = DEFAULT_WEIGHTS,
        call_delay_min: float = DEFAULT_CALL_DELAY_MIN,
        call_delay_max: float = DEFAULT_CALL_DELAY_MAX,
        candidate_limit: int | None = None,
        sleep: SleepFunc = asyncio.sleep,
    ) -> None:
        if call_delay_max < call_delay_min:
            msg = f"call_delay_max ({call_delay_max}) must be >= call_delay_min ({call_delay_min})"
            raise ValueError(msg)
        self.geocoder = geocoder
        self.cache = cache
        self._weights = weights
        self._call_delay_min = call_delay_min
        self._call_delay_max = call_delay_max
        self._candidate_limit = candidate_limit
        self._sleep = sleep

    # --- ladder states -----------------------------------------------------

    @staticmethod
    def is_blank(address: str | None) -> bool:
        """Blank check: nothing to resolve, so no cache or provider access."""
        return not normalize_address(address)

    async def lookup_cache(self, query: NormalizedQuery, min_confidence: int) -> GeocodeResult | None:
        """Cache lookup: return a cached result only if it clears the threshold.

        Read failures are logged and behave like a miss.
        """
        try:
            entry = await self.cache.get(query.hash)
        except Exception:
            logger.exception("Geocoding cache read failed; continuing without cache")
            return None

        if entry is None:
            return None
        if entry.confidence <= min_confidence:
            logger.debug(f"Cached result below threshold ({entry.confidence} <= {min_confidence}), refreshing")
            return None
        result = entry.to_result()
        if result is not None:
            logger.debug(f"Geocoding cache hit for {query.hash[:12]}")
        return result

    async def resolve_full(self, query: NormalizedQuery) -> GeocodeResult | None:
        """Full-address provider call.

        Returns:
            The best-scoring candidate (unthresholded), or None if the
            provider returned nothing.
        """
        return await self._search_best(query.normalized)

    async def resolve_simplified(self, address: str) -> GeocodeResult | None:
        """Simplified-address retry with unit, ordinal and floor parts stripped.

        Returns:
            The best-scoring candidate for the simplified text, or None when
            simplification changes nothing or the provider finds nothing.
        """
        simplified = normalize_address(simplify_address(address))
        if not simplified or simplified == normalize_address(address):
            return None
        logger.debug("Retrying geocode with simplified address")
        return await self._search_best(simplified)

    async def resolve_city_country(
        self,
        city: str,
        country: str,
        *,
        tier: FallbackTier = CITY_COUNTRY_TIER,
    ) -> GeocodeResult | None:
        """City+country fallback with a lowered threshold and capped confidence."""
        return await self._resolve_tier(f"{city.strip()}, {country.strip()}", tier)

    async def resolve_country(self, country: str, *, tier: FallbackTier = COUNTRY_TIER) -> GeocodeResult | None:
        """Country-only fallback with the lowest threshold and cap."""
        return await self._resolve_tier(country.strip(), tier)

    # --- orchestration -----------------------------------------------------

    async def resolve(self, address: str | None, min_confidence: int = DEFAULT_MIN_CONFIDENCE) -> GeocodeResult | None:
        """Resolve one address: blank check, cache, full address, simplified retry.

        A low-confidence cache hit falls through to a fresh lookup, but the
        stale row is only replaced when the new lookup succeeds.

        Args:
            address: Free-text address.
            min_confidence: Results must score strictly above this.

        Returns:
            GeocodeResult, or None if the address is blank or unresolvable.
        """
        if address is None or self.is_blank(address):
            return None

        address = address.strip()
        query = normalize_query(address)

        cached = await self.lookup_cache(query, min_confidence)
        if cached is not None:
            return cached

        result = await self.resolve_full(query)
        if result is None:
            result = await self.resolve_simplified(address)

        if result is None or result.confidence <= min_confidence:
            return None

        await self.store(query, result)
        return result

    async def resolve_location(
        self,
        location: SupportsLocation,
        min_confidence: int = DEFAULT_MIN_CONFIDENCE,
    ) -> GeocodeResult | None:
        """Run the full ladder for a location record.

        Tries the combined address first, then city+country when both are
        present, then country alone when there is no city.
        """
        full_address = compose_location_query(location)
        if not full_address:
            return None

        result = await self.resolve(full_address, min_confidence)

        city = (location.city or "").strip()
        country = (location.country or "").strip()
        if result is None and city and country:
            result = await self.resolve_city_country(city, country)
        if result is None and country and not city:
            result = await self.resolve_country(country)
        return result

    async def store(self, query: NormalizedQuery, result: GeocodeResult) -> None:
        """Upsert a successful result. Write failures are logged and swallowed."""
        entry = CacheEntry(
            hash=query.hash,
            original_address=query.original,
            normalized_address=query.normalized,
            latitude=result.latitude,
            longitude=result.longitude,
            confidence=result.confidence,
            provider=result.provider,
            city=result.city,
            state=result.state,
            country_code=result.country,
            postal_code=result.postal_code,
        )
        try:
            await self.cache.upsert(query.hash, entry)
        except Exception:
            logger.exception("Geocoding cache write failed; result returned uncached")

    # --- internals ---------------------------------------------------------

    async def _resolve_tier(self, text: str, tier: FallbackTier) -> GeocodeResult | None:
        result = await self.resolve(text, min_confidence=tier.min_confidence)
        if result is None:
            return None
        degraded = tier.degrade(result.confidence)
        logger.debug(f"Geocoded at {tier.name} tier, confidence {result.confidence} -> {degraded}")
        return replace(result, confidence=degraded)

    async def _throttle(self) -> None:
        await self._sleep(random.uniform(self._call_delay_min, self._call_delay_max))  # noqa: S311

    async def _search_best(self, query_text: str) -> GeocodeResult | None:
        """Throttle, query the provider, and keep the best-scoring candidate."""
        await self._throttle()
        try:
            candidates = await self.geocoder.search(query_text, self._candidate_limit)
        except GeocodingProviderError as e:
            logger.warning(f"Geocoding provider failure treated as no result: {e}")
            return None

        if not candidates:
            return None
        return self._rank(candidates, query_text)

    def _rank(self, candidates: list[Candidate], query_text: str) -> GeocodeResult:
        scored = [(calculate_confidence(c, query_text, self._weights), c) for c in candidates]
        # Stable sort keeps provider order among equal scores
        scored.sort(key=lambda pair: pair[0], reverse=True)
        confidence, best = scored[0]
        return GeocodeResult(
            latitude=best.latitude,
            longitude=best.longitude,
            confidence=confidence,
            provider=self.geocoder.provider_name,
            display_name=best.display_name or None,
            city=best.address.city,
            state=best.address.state,
            country=best.address.country_code,
            postal_code=best.address.postal_code,
            alternatives=[
                Alternative(latitude=c.latitude, longitude=c.longitude, display_name=c.display_name)
                for _, c in scored[1 : 1 + MAX_ALTERNATIVES]
            ],
        )
